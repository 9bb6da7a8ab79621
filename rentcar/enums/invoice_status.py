from enum import Enum

class InvoiceStatus(str, Enum):
    ISSUED = "issued"
    PAID = "paid"
