from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime
from rentcar.enums.invoice_status import InvoiceStatus


class InvoiceLineItemCreate(BaseModel):
    description: str
    amount: int


class InvoiceLineItemResponse(InvoiceLineItemCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class InvoiceResponse(BaseModel):
    id: int
    booking_id: int
    reference_number: str
    base_amount: int
    tax_rate: int
    tax_amount: int
    total_amount: int
    status: InvoiceStatus
    document_key: Optional[str] = None
    issued_at: datetime
    line_items: List[InvoiceLineItemResponse] = []

    model_config = ConfigDict(from_attributes=True)
