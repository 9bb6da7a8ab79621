from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime

from rentcar.enums.booking_status import BookingStatus
from rentcar.enums.payment_method import PaymentMethod
from rentcar.utils.time_utils import to_utc_naive


class BookingCreate(BaseModel):
    vehicle_id: int
    package_id: int
    start_datetime: datetime
    end_datetime: datetime
    pickup_location_id: Optional[int] = None
    dropoff_location_id: Optional[int] = None

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def normalise_datetime(cls, value: datetime) -> datetime:
        return to_utc_naive(value)

    @model_validator(mode="after")
    def check_window(self):
        if self.end_datetime <= self.start_datetime:
            raise ValueError("end_datetime must be after start_datetime")
        return self


class PickupRequest(BaseModel):
    security_deposit: int = Field(gt=0)
    payment_method: PaymentMethod


class ReturnFees(BaseModel):
    """Fees assessed by the agent when the vehicle comes back."""

    cleaning: int = Field(default=0, ge=0)
    damage: int = Field(default=0, ge=0)
    other: int = Field(default=0, ge=0)
    compensation: int = Field(default=0, ge=0)
    note: Optional[str] = None


class ReturnRequest(ReturnFees):
    actual_end_datetime: Optional[datetime] = None

    @field_validator("actual_end_datetime")
    @classmethod
    def normalise_datetime(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(value) if value is not None else None

    def fees(self) -> ReturnFees:
        return ReturnFees(
            cleaning=self.cleaning,
            damage=self.damage,
            other=self.other,
            compensation=self.compensation,
            note=self.note,
        )


class BookingResponse(BaseModel):
    id: int
    user_id: int
    vehicle_id: int
    package_id: int
    pickup_location_id: Optional[int] = None
    dropoff_location_id: Optional[int] = None
    status: BookingStatus
    start_datetime: datetime
    end_datetime: datetime
    original_end_datetime: Optional[datetime] = None
    actual_start_datetime: Optional[datetime] = None
    actual_end_datetime: Optional[datetime] = None
    base_price: int
    overage_fee: int
    extension_fee: int
    late_fee: int
    compensation_fee: int
    cleaning_fee: int
    damage_fee: int
    other_fee: int
    surcharge_note: Optional[str] = None
    total_surcharges: int
    total_price: int
    rental_deposit_paid: int
    booking_deposit_paid: int
    confirmed_by: Optional[int] = None
    confirmed_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    total_items: int
    current_page: int
    total_pages: int
    limit: int


class BookingListResponse(BaseModel):
    data: List[BookingResponse]
    pagination: Pagination
