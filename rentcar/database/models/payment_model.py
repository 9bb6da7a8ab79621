from sqlalchemy import Column, Integer, BigInteger, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from rentcar.database.init import Base
from rentcar.enums.payment_status import PaymentStatus


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # amount actually moved, tax included
    amount = Column(BigInteger, nullable=False)
    tax_amount = Column(BigInteger, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="VND")
    type = Column(String(30), nullable=False)
    provider = Column(String(50), nullable=False)
    transaction_id = Column(String(255), nullable=True, unique=True)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False)

    booking = relationship("Booking", back_populates="payments")
    invoice = relationship("Invoice", back_populates="payments")

    @property
    def net_amount(self) -> int:
        return self.amount - (self.tax_amount or 0)
