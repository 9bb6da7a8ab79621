from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rentcar.exceptions import BookingError
from rentcar.responses.error import bad_request_error, booking_error_response
from rentcar.responses.success import created_response, data_response, success_response
from rentcar.schemas.auth_schema import Actor
from rentcar.schemas.fleet_schema import (
    LocationCreate,
    LocationResponse,
    RentalPackageCreate,
    RentalPackageResponse,
    VehicleCreate,
    VehicleResponse,
    VehicleTypeCreate,
    VehicleTypeResponse,
    VehicleUpdate,
)
from rentcar.services.container import Services
from rentcar.services.report_service import ReportService
from rentcar.utils.dependencies import admin_required, get_db, get_services
from rentcar.utils.time_utils import to_utc_naive

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(admin_required)])


@router.post("/locations")
def create_location(
    location_in: LocationCreate,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    location = services.fleet_service.create_location(db, location_in)
    return created_response("Location created", LocationResponse.model_validate(location))


@router.get("/locations")
def get_locations(db: Session = Depends(get_db), services: Services = Depends(get_services)):
    return data_response([LocationResponse.model_validate(l) for l in services.fleet_service.get_locations(db)])


@router.post("/vehicle-types")
def create_vehicle_type(
    type_in: VehicleTypeCreate,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        vehicle_type = services.fleet_service.create_vehicle_type(db, type_in)
        return created_response("Vehicle type created", VehicleTypeResponse.model_validate(vehicle_type))
    except BookingError as e:
        return booking_error_response(e)


@router.get("/vehicle-types")
def get_vehicle_types(db: Session = Depends(get_db), services: Services = Depends(get_services)):
    return data_response(
        [VehicleTypeResponse.model_validate(t) for t in services.fleet_service.get_vehicle_types(db)]
    )


@router.post("/vehicles")
def create_vehicle(
    vehicle_in: VehicleCreate,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        vehicle = services.fleet_service.create_vehicle(db, vehicle_in)
        return created_response("Vehicle created", VehicleResponse.model_validate(vehicle))
    except BookingError as e:
        return booking_error_response(e)


@router.patch("/vehicles/{vehicle_id}")
def update_vehicle(
    vehicle_id: int,
    vehicle_in: VehicleUpdate,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        vehicle = services.fleet_service.update_vehicle(db, vehicle_id, vehicle_in)
        return success_response("Vehicle updated", VehicleResponse.model_validate(vehicle))
    except BookingError as e:
        return booking_error_response(e)


@router.delete("/vehicles/{vehicle_id}")
def delete_vehicle(
    vehicle_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        services.fleet_service.delete_vehicle(db, vehicle_id)
        return success_response("Vehicle deleted")
    except BookingError as e:
        return booking_error_response(e)


@router.post("/rental-packages")
def create_rental_package(
    package_in: RentalPackageCreate,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        package = services.fleet_service.create_rental_package(db, package_in)
        return created_response("Rental package created", RentalPackageResponse.model_validate(package))
    except BookingError as e:
        return booking_error_response(e)


@router.get("/rental-packages/{vehicle_type_id}")
def get_rental_packages(
    vehicle_type_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    packages = services.fleet_service.get_rental_packages(db, vehicle_type_id)
    return data_response([RentalPackageResponse.model_validate(p) for p in packages])


@router.post("/bookings/expire")
def expire_pending_bookings(
    actor: Actor = Depends(admin_required),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    booking_service = services.booking_service
    expired = booking_service.expire_pending_older_than(db, booking_service.pending_cutoff())
    return data_response({"expired_booking_ids": expired})


@router.get("/reports/rented")
def rented_vehicles_report(db: Session = Depends(get_db), services: Services = Depends(get_services)):
    return data_response(ReportService(db).get_rented_vehicles_report(services.clock.now()))


@router.get("/reports/dashboard")
def dashboard_stats(db: Session = Depends(get_db)):
    return data_response(ReportService(db).get_dashboard_stats())


@router.get("/reports/earnings")
def earnings_report(
    start_date: datetime = Query(..., description="Inclusive start of the period"),
    end_date: Optional[datetime] = Query(None, description="Exclusive end; defaults to one month later"),
    db: Session = Depends(get_db),
):
    start = to_utc_naive(start_date)
    end = to_utc_naive(end_date) if end_date else None
    if end is not None and end <= start:
        return bad_request_error("end_date must be after start_date.")
    return data_response(ReportService(db).get_earnings_report(start, end))
