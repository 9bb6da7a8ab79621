from enum import Enum


class NotificationEvent(str, Enum):
    BOOKING_CHANGED = "BOOKING_CHANGED"
    INVOICE_CHANGED = "INVOICE_CHANGED"
