"""Return-time reconciliation of the deposit held against what is owed."""

from typing import Iterable, NamedTuple

from rentcar.config import BookingPolicy
from rentcar.database.models.booking_model import Booking
from rentcar.database.models.payment_model import Payment
from rentcar.enums.payment_status import PaymentStatus
from rentcar.enums.payment_type import PaymentType, RENTAL_COVERING_TYPES
from rentcar.schemas.settlement_schema import Settlement
from rentcar.services import pricing_service


class ReturnCharges(NamedTuple):
    late: int = 0
    cleaning: int = 0
    damage: int = 0
    other: int = 0
    compensation: int = 0

    @property
    def total(self) -> int:
        return self.late + self.cleaning + self.damage + self.other + self.compensation


def _paid(payments: Iterable[Payment], types) -> list:
    wanted = {t.value for t in types}
    return [p for p in payments if p.status == PaymentStatus.PAID.value and p.type in wanted]


def rental_covered(payments: Iterable[Payment]) -> int:
    """Pre-tax amount already paid towards the rental charges."""
    return sum(p.net_amount for p in _paid(payments, RENTAL_COVERING_TYPES))


def deposit_held(payments: Iterable[Payment]) -> int:
    return sum(p.amount for p in _paid(payments, (PaymentType.SECURITY_DEPOSIT,)))


def settle(booking: Booking, payments: Iterable[Payment], fees: ReturnCharges, policy: BookingPolicy) -> Settlement:
    payments = list(payments)
    covered = rental_covered(payments)
    unpaid_rental = max(0, booking.rental_charges - covered)
    rental_tax = pricing_service.tax(unpaid_rental, policy)
    fees_tax = pricing_service.tax(fees.total, policy) if policy.tax_applies_to_surcharges else 0

    total_liability = unpaid_rental + rental_tax + fees.total + fees_tax
    held = deposit_held(payments)

    if held >= total_liability:
        refund_amount, collect_amount = held - total_liability, 0
    else:
        refund_amount, collect_amount = 0, total_liability - held

    breakdown = {
        "rental_charges": booking.rental_charges,
        "rental_covered": covered,
        "unpaid_rental": unpaid_rental,
        "rental_tax": rental_tax,
        "late_fee": fees.late,
        "cleaning_fee": fees.cleaning,
        "damage_fee": fees.damage,
        "other_fee": fees.other,
        "compensation_fee": fees.compensation,
        "return_fees": fees.total,
        "return_fees_tax": fees_tax,
    }
    return Settlement(
        refund_amount=refund_amount,
        collect_amount=collect_amount,
        deposit_held=held,
        total_liability=total_liability,
        breakdown=breakdown,
    )
