from sqlalchemy import Column, Integer, BigInteger, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship

from rentcar.database.init import Base
from rentcar.enums.invoice_status import InvoiceStatus


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reference_number = Column(String(20), unique=True, nullable=False, index=True)
    base_amount = Column(BigInteger, nullable=False)
    tax_rate = Column(Integer, nullable=False)
    tax_amount = Column(BigInteger, nullable=False)
    total_amount = Column(BigInteger, nullable=False)
    status = Column(String(20), default=InvoiceStatus.ISSUED.value, nullable=False)
    issued_by = Column(Integer, nullable=True)
    # object-storage key of the rendered document, attached after issue
    document_key = Column(String(255), nullable=True)

    issued_at = Column(DateTime, nullable=False)

    booking = relationship("Booking", back_populates="invoices")
    line_items = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.id",
    )
    payments = relationship("Payment", back_populates="invoice")

    def __repr__(self):
        return f"<Invoice(id={self.id}, reference_number='{self.reference_number}')>"
