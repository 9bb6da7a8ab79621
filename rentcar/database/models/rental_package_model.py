from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from rentcar.database.init import Base


class RentalPackage(Base):
    __tablename__ = "rental_packages"
    __table_args__ = (
        UniqueConstraint("vehicle_type_id", "duration_hours", name="uq_package_type_duration"),
    )

    id = Column(Integer, primary_key=True, index=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id"), nullable=False)
    name = Column(String(100), nullable=True)
    duration_hours = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)

    vehicle_type = relationship("VehicleType", back_populates="rental_packages")

    def __repr__(self):
        return f"<RentalPackage(id={self.id}, duration_hours={self.duration_hours}, price={self.price})>"
