import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rentcar.database.init import atomic
from rentcar.database.models import ActivityLog, Booking, Review, Vehicle
from rentcar.enums.activity_action import ActivityAction
from rentcar.enums.booking_status import BookingStatus
from rentcar.exceptions import ConflictError, NotFoundError, PermissionDeniedError, StateError
from rentcar.schemas.auth_schema import Actor
from rentcar.schemas.review_schema import ReviewCreate
from rentcar.services.clock import SystemClock

logger = logging.getLogger(__name__)


class ReviewService:
    """Customer ratings of finished rentals."""

    def __init__(self, clock=None):
        self.clock = clock or SystemClock()

    def create_review(self, db: Session, actor: Actor, review_in: ReviewCreate) -> Review:
        """
        Rate a completed booking.

        Only the customer who made the booking may review it, once.

        Raises:
            NotFoundError: Unknown booking
            PermissionDeniedError: The actor does not own the booking
            StateError: The booking is not completed
            ConflictError: The booking already has a review
        """
        booking = db.get(Booking, review_in.booking_id)
        if booking is None:
            raise NotFoundError(f"Booking with ID {review_in.booking_id} not found.")
        if booking.user_id != actor.id:
            raise PermissionDeniedError("Only the customer who made the booking can review it.")
        if booking.status != BookingStatus.COMPLETED.value:
            raise StateError(
                f"Booking {booking.id} is {booking.status}; only completed bookings can be reviewed."
            )
        if db.query(Review.id).filter(Review.booking_id == booking.id).first():
            raise ConflictError(f"Booking {booking.id} has already been reviewed.")

        now = self.clock.now()
        try:
            with atomic(db):
                review = Review(
                    booking_id=booking.id,
                    user_id=actor.id,
                    vehicle_id=booking.vehicle_id,
                    rating=review_in.rating,
                    comment=review_in.comment,
                    created_at=now,
                )
                db.add(review)
                db.flush()
                db.add(
                    ActivityLog(
                        user_id=actor.id,
                        action=ActivityAction.CREATE_REVIEW.value,
                        object_type="Review",
                        object_id=str(review.id),
                        meta={"booking_id": booking.id, "rating": review.rating},
                        created_at=now,
                    )
                )
        except IntegrityError:
            raise ConflictError(f"Booking {booking.id} has already been reviewed.")

        logger.info("Review %s left for booking %s (rating %s)", review.id, booking.id, review.rating)
        return review

    def get_reviews_for_vehicle(self, db: Session, vehicle_id: int) -> List[Review]:
        if db.get(Vehicle, vehicle_id) is None:
            raise NotFoundError(f"Vehicle with ID {vehicle_id} not found.")
        return (
            db.query(Review)
            .filter(Review.vehicle_id == vehicle_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )
