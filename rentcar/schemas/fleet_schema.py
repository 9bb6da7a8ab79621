from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from rentcar.enums.vehicle_status import VehicleStatus
from rentcar.schemas.booking_schema import Pagination


class LocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    address: Optional[str] = None
    city: Optional[str] = None


class LocationResponse(LocationCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class VehicleTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    required_deposit: int = Field(default=0, ge=0)


class VehicleTypeResponse(VehicleTypeCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class VehicleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=150)
    plate_number: str = Field(min_length=1, max_length=20)
    vehicle_type_id: int
    location_id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    seats: Optional[int] = Field(default=None, gt=0)


class VehicleResponse(VehicleCreate):
    id: int
    status: VehicleStatus

    model_config = ConfigDict(from_attributes=True)


class VehicleUpdate(BaseModel):
    """Partial update; only the fields sent are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=150)
    plate_number: Optional[str] = Field(default=None, min_length=1, max_length=20)
    vehicle_type_id: Optional[int] = None
    location_id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    seats: Optional[int] = Field(default=None, gt=0)
    status: Optional[VehicleStatus] = None


class VehicleListResponse(BaseModel):
    data: List[VehicleResponse]
    pagination: Pagination


class RentalPackageCreate(BaseModel):
    vehicle_type_id: int
    name: Optional[str] = None
    duration_hours: int = Field(gt=0)
    price: int = Field(gt=0)


class RentalPackageResponse(RentalPackageCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)
