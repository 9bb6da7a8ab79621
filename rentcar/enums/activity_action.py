from enum import Enum


class ActivityAction(str, Enum):
    CREATE_BOOKING = "CREATE_BOOKING"
    CONFIRM_BOOKING = "CONFIRM_BOOKING"
    CONFIRM_DEPOSIT = "CONFIRM_DEPOSIT"
    PICKUP_BOOKING = "PICKUP_BOOKING"
    EXTEND_BOOKING = "EXTEND_BOOKING"
    RETURN_BOOKING = "RETURN_BOOKING"
    CANCEL_BOOKING = "CANCEL_BOOKING"
    EXPIRE_BOOKING = "EXPIRE_BOOKING"
    CONFIRM_PAYMENT = "CONFIRM_PAYMENT"
    CREATE_REVIEW = "CREATE_REVIEW"
