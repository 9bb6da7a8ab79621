from sqlalchemy import Column, Integer, BigInteger, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from rentcar.database.init import Base
from rentcar.enums.booking_status import BookingStatus


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("rental_packages.id"), nullable=False)
    pickup_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    dropoff_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)

    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)
    # only set by the first (and only) extension
    original_end_datetime = Column(DateTime, nullable=True)
    actual_start_datetime = Column(DateTime, nullable=True)
    actual_end_datetime = Column(DateTime, nullable=True)

    # money columns hold the smallest currency unit
    base_price = Column(BigInteger, nullable=False)
    overage_fee = Column(BigInteger, nullable=False, default=0)
    extension_fee = Column(BigInteger, nullable=False, default=0)
    late_fee = Column(BigInteger, nullable=False, default=0)
    compensation_fee = Column(BigInteger, nullable=False, default=0)
    cleaning_fee = Column(BigInteger, nullable=False, default=0)
    damage_fee = Column(BigInteger, nullable=False, default=0)
    other_fee = Column(BigInteger, nullable=False, default=0)
    surcharge_note = Column(Text, nullable=True)
    total_surcharges = Column(BigInteger, nullable=False, default=0)
    total_price = Column(BigInteger, nullable=False)
    rental_deposit_paid = Column(BigInteger, nullable=False, default=0)
    booking_deposit_paid = Column(BigInteger, nullable=False, default=0)

    status = Column(String(20), default=BookingStatus.PENDING.value, nullable=False, index=True)

    confirmed_by = Column(Integer, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    picked_up_by = Column(Integer, nullable=True)
    returned_by = Column(Integer, nullable=True)
    cancelled_by = Column(Integer, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="bookings", foreign_keys=[user_id])
    vehicle = relationship("Vehicle", back_populates="bookings")
    package = relationship("RentalPackage")
    pickup_location = relationship("Location", foreign_keys=[pickup_location_id])
    dropoff_location = relationship("Location", foreign_keys=[dropoff_location_id])
    payments = relationship("Payment", back_populates="booking", order_by="Payment.id")
    invoices = relationship("Invoice", back_populates="booking", order_by="Invoice.id")

    @property
    def is_extended(self) -> bool:
        return self.original_end_datetime is not None

    @property
    def return_fees(self) -> int:
        return (
            self.late_fee
            + self.compensation_fee
            + self.cleaning_fee
            + self.damage_fee
            + self.other_fee
        )

    @property
    def rental_charges(self) -> int:
        return self.base_price + self.overage_fee + self.extension_fee

    def recompute_totals(self):
        """Re-derive the aggregate fee fields from the itemised surcharges."""
        self.total_surcharges = self.overage_fee + self.extension_fee + self.return_fees
        self.total_price = self.base_price + self.total_surcharges

    def __repr__(self):
        return f"<Booking(id={self.id}, vehicle_id={self.vehicle_id}, status={self.status})>"
