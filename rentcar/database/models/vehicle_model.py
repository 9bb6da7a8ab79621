from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from rentcar.database.init import Base
from rentcar.enums.vehicle_status import VehicleStatus


class VehicleType(Base):
    __tablename__ = "vehicle_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    # minimum security deposit collected at pickup, smallest currency unit
    required_deposit = Column(Integer, nullable=False, default=0)

    vehicles = relationship("Vehicle", back_populates="vehicle_type")
    rental_packages = relationship("RentalPackage", back_populates="vehicle_type")


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(150), nullable=False)
    plate_number = Column(String(20), unique=True, index=True, nullable=False)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)
    seats = Column(Integer, nullable=True)
    status = Column(String(20), default=VehicleStatus.AVAILABLE.value, nullable=False)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now(), nullable=True)

    vehicle_type = relationship("VehicleType", back_populates="vehicles")
    location = relationship("Location")
    bookings = relationship("Booking", back_populates="vehicle")
