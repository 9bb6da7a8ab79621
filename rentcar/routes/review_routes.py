from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rentcar.exceptions import BookingError
from rentcar.responses.error import booking_error_response
from rentcar.responses.success import created_response
from rentcar.schemas.auth_schema import Actor
from rentcar.schemas.review_schema import ReviewCreate, ReviewResponse
from rentcar.services.container import Services
from rentcar.utils.dependencies import get_current_actor, get_db, get_services

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("/")
def create_review(
    review_in: ReviewCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    """Rate a completed rental; one review per booking, by its customer."""
    try:
        review = services.review_service.create_review(db, actor, review_in)
        return created_response("Review created", ReviewResponse.model_validate(review))
    except BookingError as e:
        return booking_error_response(e)
