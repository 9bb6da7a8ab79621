from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rentcar.exceptions import BookingError
from rentcar.responses.error import booking_error_response
from rentcar.responses.success import data_response
from rentcar.schemas.review_schema import ReviewResponse
from rentcar.services.container import Services
from rentcar.utils.dependencies import get_current_actor, get_db, get_services

router = APIRouter(prefix="/vehicles", tags=["Vehicles"], dependencies=[Depends(get_current_actor)])


@router.get("/")
def list_vehicles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        return data_response(services.fleet_service.list_vehicles(db, page, limit, search))
    except BookingError as e:
        return booking_error_response(e)


@router.get("/{vehicle_id}")
def get_vehicle(
    vehicle_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        return data_response(services.fleet_service.get_vehicle(db, vehicle_id))
    except BookingError as e:
        return booking_error_response(e)


@router.get("/{vehicle_id}/reviews")
def get_vehicle_reviews(
    vehicle_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        reviews = services.review_service.get_reviews_for_vehicle(db, vehicle_id)
        return data_response([ReviewResponse.model_validate(r) for r in reviews])
    except BookingError as e:
        return booking_error_response(e)
