from enum import Enum


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"


class PaymentProvider(str, Enum):
    """Channels that settle a payment without a desk agent"""

    GATEWAY = "gateway"
    SYSTEM = "system"
