from enum import Enum


class PaymentType(str, Enum):
    """What a payment record pays for"""

    BOOKING_DEPOSIT = "booking_deposit"
    SECURITY_DEPOSIT = "security_deposit"
    RENTAL_FEE = "rental_fee"
    SURCHARGE = "surcharge"
    REFUND = "refund"

    def __str__(self):
        return self.value


# payments whose pre-tax amount counts towards the rental charges
RENTAL_COVERING_TYPES = (PaymentType.RENTAL_FEE, PaymentType.BOOKING_DEPOSIT)
