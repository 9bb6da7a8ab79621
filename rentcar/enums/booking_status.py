from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    RENTED = "rented"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# statuses that hold a reservation on the vehicle
BLOCKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.RENTED)
