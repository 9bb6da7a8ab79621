"""Fee and surcharge arithmetic.

All functions are pure. Amounts are integers in the smallest currency unit;
intermediate values are exact ``Fraction`` objects and every public result is
rounded half-up exactly once, so the same inputs always yield the same amount.
"""

import math
from datetime import datetime, timedelta
from fractions import Fraction
from typing import NamedTuple

from rentcar.config import BookingPolicy
from rentcar.database.models.rental_package_model import RentalPackage

_MICROSECONDS_PER_HOUR = 3600 * 10**6


class PriceQuote(NamedTuple):
    base_price: int
    overage_hours: int
    overage_fee: int

    @property
    def total_price(self) -> int:
        return self.base_price + self.overage_fee


def round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def hours_between(start: datetime, end: datetime) -> Fraction:
    delta: timedelta = end - start
    microseconds = (delta.days * 86400 + delta.seconds) * 10**6 + delta.microseconds
    return Fraction(microseconds, _MICROSECONDS_PER_HOUR)


def hourly_rate(package: RentalPackage) -> Fraction:
    if not package.duration_hours or package.duration_hours <= 0:
        raise ValueError(f"Rental package {package.id} has no positive duration")
    return Fraction(package.price, package.duration_hours)


def base_price(package: RentalPackage) -> int:
    return int(package.price)


def overage_hours(package: RentalPackage, start: datetime, end: datetime) -> int:
    extra = hours_between(start, end) - package.duration_hours
    if extra <= 0:
        return 0
    return math.ceil(extra)


def overage_fee(package: RentalPackage, start: datetime, end: datetime) -> int:
    """Charge for the whole hours a requested window runs past the package."""
    return round_half_up(overage_hours(package, start, end) * hourly_rate(package))


def quote(package: RentalPackage, start: datetime, end: datetime) -> PriceQuote:
    extra = overage_hours(package, start, end)
    return PriceQuote(
        base_price=base_price(package),
        overage_hours=extra,
        overage_fee=round_half_up(extra * hourly_rate(package)),
    )


def extension_fee(package: RentalPackage, policy: BookingPolicy) -> int:
    """Flat block of ``extension_hours`` at the hourly rate plus a service fee
    on the package price."""
    block = hourly_rate(package) * policy.extension_hours
    service_fee = Fraction(package.price * policy.extension_service_fee_percent, 100)
    return round_half_up(block + service_fee)


def late_hours(scheduled_end: datetime, actual_return: datetime) -> Fraction:
    return hours_between(scheduled_end, actual_return)


def late_fee(base_amount: int, scheduled_end: datetime, actual_return: datetime, policy: BookingPolicy) -> int:
    hours = late_hours(scheduled_end, actual_return)
    if hours <= 0:
        return 0
    for upper_bound, percent in policy.late_fee_tiers:
        if hours <= upper_bound:
            return round_half_up(Fraction(base_amount * percent, 100))
    return round_half_up(Fraction(base_amount * policy.late_fee_max_percent, 100))


def tax(amount: int, policy: BookingPolicy) -> int:
    if amount <= 0:
        return 0
    return round_half_up(Fraction(amount * policy.tax_rate_percent, 100))
