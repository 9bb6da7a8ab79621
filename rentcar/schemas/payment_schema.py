from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from rentcar.enums.payment_status import PaymentStatus
from rentcar.enums.payment_type import PaymentType


class DepositConfirmation(BaseModel):
    """Payload of the payment-gateway callback for a booking deposit."""

    booking_id: int
    amount: int = Field(gt=0)
    transaction_id: str = Field(min_length=1, max_length=255)
    provider: str = "gateway"


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    invoice_id: Optional[int] = None
    amount: int
    tax_amount: int
    currency: str
    type: PaymentType
    provider: str
    transaction_id: Optional[str] = None
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
