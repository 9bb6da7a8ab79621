import logging
import math
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rentcar.database.init import atomic
from rentcar.database.models import Booking, Location, RentalPackage, Vehicle, VehicleType
from rentcar.enums.booking_status import BLOCKING_STATUSES
from rentcar.enums.vehicle_status import VehicleStatus
from rentcar.exceptions import ConflictError, NotFoundError, StateError, ValidationError
from rentcar.schemas.booking_schema import Pagination
from rentcar.schemas.fleet_schema import (
    LocationCreate,
    RentalPackageCreate,
    VehicleCreate,
    VehicleListResponse,
    VehicleResponse,
    VehicleTypeCreate,
    VehicleUpdate,
)
from rentcar.services.cache_service import Cache, CacheInvalidator, vehicle_detail_key, vehicle_list_key

logger = logging.getLogger(__name__)


class FleetService:
    """Reference data the booking flow reads: locations, vehicle types, vehicles, packages."""

    def __init__(self, cache: Cache, cache_ttl: int = 300):
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.invalidator = CacheInvalidator(cache)

    def create_location(self, db: Session, location_in: LocationCreate) -> Location:
        with atomic(db):
            location = Location(**location_in.model_dump())
            db.add(location)
        return location

    def get_locations(self, db: Session) -> List[Location]:
        return db.query(Location).order_by(Location.id).all()

    def create_vehicle_type(self, db: Session, type_in: VehicleTypeCreate) -> VehicleType:
        if db.query(VehicleType.id).filter(VehicleType.name == type_in.name).first():
            raise ConflictError(f"Vehicle type '{type_in.name}' already exists.")
        with atomic(db):
            vehicle_type = VehicleType(**type_in.model_dump())
            db.add(vehicle_type)
        return vehicle_type

    def get_vehicle_types(self, db: Session) -> List[VehicleType]:
        return db.query(VehicleType).order_by(VehicleType.id).all()

    def create_vehicle(self, db: Session, vehicle_in: VehicleCreate) -> Vehicle:
        if db.get(VehicleType, vehicle_in.vehicle_type_id) is None:
            raise NotFoundError(f"Vehicle type with ID {vehicle_in.vehicle_type_id} not found.")
        if vehicle_in.location_id is not None and db.get(Location, vehicle_in.location_id) is None:
            raise NotFoundError(f"Location with ID {vehicle_in.location_id} not found.")
        if db.query(Vehicle.id).filter(Vehicle.plate_number == vehicle_in.plate_number).first():
            raise ConflictError(f"Plate number {vehicle_in.plate_number} is already registered.")

        try:
            with atomic(db):
                vehicle = Vehicle(**vehicle_in.model_dump())
                db.add(vehicle)
        except IntegrityError:
            raise ConflictError(f"Plate number {vehicle_in.plate_number} is already registered.")
        logger.info("Vehicle %s (%s) added", vehicle.id, vehicle.plate_number)
        self.invalidator.vehicles_changed()
        return vehicle

    def list_vehicles(self, db: Session, page: int = 1, limit: int = 10, search: Optional[str] = None) -> dict:
        """
        One page of the fleet, newest first.

        Unfiltered pages are cached; searches always hit the database.

        Args:
            page: 1-based page number
            limit: Page size, 1 to 100
            search: Case-insensitive match on title, brand, model or plate

        Returns:
            JSON-ready dict with ``data`` and ``pagination``
        """
        if page < 1:
            raise ValidationError("page must be 1 or greater")
        if limit < 1 or limit > 100:
            raise ValidationError("limit must be between 1 and 100")

        cache_key = vehicle_list_key(page, limit)
        if not search:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        query = db.query(Vehicle)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Vehicle.title.ilike(pattern),
                    Vehicle.brand.ilike(pattern),
                    Vehicle.model.ilike(pattern),
                    Vehicle.plate_number.ilike(pattern),
                )
            )
        total = query.count()
        vehicles = (
            query.order_by(Vehicle.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        result = VehicleListResponse(
            data=[VehicleResponse.model_validate(v) for v in vehicles],
            pagination=Pagination(
                total_items=total,
                current_page=page,
                total_pages=math.ceil(total / limit),
                limit=limit,
            ),
        ).model_dump(mode="json")
        if not search:
            self.cache.set_with_ttl(cache_key, result, self.cache_ttl)
        return result

    def get_vehicle(self, db: Session, vehicle_id: int) -> dict:
        cache_key = vehicle_detail_key(vehicle_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        vehicle = db.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle with ID {vehicle_id} not found.")
        result = VehicleResponse.model_validate(vehicle).model_dump(mode="json")
        self.cache.set_with_ttl(cache_key, result, self.cache_ttl)
        return result

    def update_vehicle(self, db: Session, vehicle_id: int, vehicle_in: VehicleUpdate) -> Vehicle:
        """Apply a partial update.

        ``rented`` is owned by pickup and return: it can neither be set here nor
        changed while the vehicle is out.
        """
        changes = vehicle_in.model_dump(exclude_unset=True)
        status = changes.get("status")
        if status is not None:
            changes["status"] = status = VehicleStatus(status).value
            if status == VehicleStatus.RENTED.value:
                raise ValidationError("A vehicle becomes rented only through a pickup.")

        with atomic(db):
            vehicle = (
                db.query(Vehicle)
                .filter(Vehicle.id == vehicle_id)
                .populate_existing()
                .with_for_update()
                .first()
            )
            if vehicle is None:
                raise NotFoundError(f"Vehicle with ID {vehicle_id} not found.")
            if status is not None and status != vehicle.status and vehicle.status == VehicleStatus.RENTED.value:
                raise StateError(f"Vehicle {vehicle.id} is out on rent; record the return first.")
            if changes.get("location_id") is not None and db.get(Location, changes["location_id"]) is None:
                raise NotFoundError(f"Location with ID {changes['location_id']} not found.")

            new_type = changes.get("vehicle_type_id")
            if new_type is not None and new_type != vehicle.vehicle_type_id:
                if db.get(VehicleType, new_type) is None:
                    raise NotFoundError(f"Vehicle type with ID {new_type} not found.")
                if self._has_live_bookings(db, vehicle.id):
                    raise StateError(
                        f"Vehicle {vehicle.id} has open bookings priced for its current type."
                    )

            plate = changes.get("plate_number")
            if plate is not None and plate != vehicle.plate_number:
                taken = (
                    db.query(Vehicle.id)
                    .filter(Vehicle.plate_number == plate, Vehicle.id != vehicle.id)
                    .first()
                )
                if taken:
                    raise ConflictError(f"Plate number {plate} is already registered.")

            for key, value in changes.items():
                if value is not None:
                    setattr(vehicle, key, value)

        logger.info("Vehicle %s updated: %s", vehicle.id, sorted(changes))
        self.invalidator.vehicles_changed(vehicle.id)
        return vehicle

    def delete_vehicle(self, db: Session, vehicle_id: int):
        vehicle = db.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle with ID {vehicle_id} not found.")
        if db.query(Booking.id).filter(Booking.vehicle_id == vehicle_id).first():
            raise ConflictError(f"Vehicle {vehicle_id} has bookings and cannot be deleted.")

        with atomic(db):
            db.delete(vehicle)
        logger.info("Vehicle %s deleted", vehicle_id)
        self.invalidator.vehicles_changed(vehicle_id)

    def _has_live_bookings(self, db: Session, vehicle_id: int) -> bool:
        return (
            db.query(Booking.id)
            .filter(
                Booking.vehicle_id == vehicle_id,
                Booking.status.in_([s.value for s in BLOCKING_STATUSES]),
            )
            .first()
            is not None
        )

    def create_rental_package(self, db: Session, package_in: RentalPackageCreate) -> RentalPackage:
        if db.get(VehicleType, package_in.vehicle_type_id) is None:
            raise NotFoundError(f"Vehicle type with ID {package_in.vehicle_type_id} not found.")
        duplicate = (
            db.query(RentalPackage.id)
            .filter(
                RentalPackage.vehicle_type_id == package_in.vehicle_type_id,
                RentalPackage.duration_hours == package_in.duration_hours,
            )
            .first()
        )
        if duplicate:
            raise ConflictError(
                f"A {package_in.duration_hours}h package already exists for this vehicle type."
            )

        try:
            with atomic(db):
                package = RentalPackage(**package_in.model_dump())
                db.add(package)
        except IntegrityError:
            raise ConflictError(
                f"A {package_in.duration_hours}h package already exists for this vehicle type."
            )
        return package

    def get_rental_packages(self, db: Session, vehicle_type_id: int) -> List[RentalPackage]:
        return (
            db.query(RentalPackage)
            .filter(RentalPackage.vehicle_type_id == vehicle_type_id)
            .order_by(RentalPackage.duration_hours)
            .all()
        )
