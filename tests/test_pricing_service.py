from datetime import timedelta
from fractions import Fraction

import pytest

from conftest import at
from rentcar.config import BookingPolicy
from rentcar.database.models import RentalPackage
from rentcar.services import pricing_service


@pytest.fixture
def package():
    return RentalPackage(id=1, vehicle_type_id=1, duration_hours=4, price=40)


@pytest.fixture
def policy():
    return BookingPolicy(tax_rate_percent=8)


def test_round_half_up():
    assert pricing_service.round_half_up(Fraction(25, 2)) == 13
    assert pricing_service.round_half_up(Fraction(249, 20)) == 12
    assert pricing_service.round_half_up(Fraction(0)) == 0


def test_quote_within_package_has_no_overage(package):
    quote = pricing_service.quote(package, at(10), at(14))
    assert quote.base_price == 40
    assert quote.overage_hours == 0
    assert quote.overage_fee == 0
    assert quote.total_price == 40


def test_quote_shorter_than_package_still_charges_package(package):
    quote = pricing_service.quote(package, at(10), at(11))
    assert quote.total_price == 40


def test_quote_six_hours_on_four_hour_package(package):
    quote = pricing_service.quote(package, at(10), at(16))
    assert quote.overage_hours == 2
    assert quote.overage_fee == 20
    assert quote.total_price == 60


def test_partial_overage_hour_is_charged_as_whole(package):
    assert pricing_service.overage_hours(package, at(10), at(14, 30)) == 1
    assert pricing_service.overage_fee(package, at(10), at(14, 1)) == 10


def test_overage_rounds_once_on_exact_rate():
    package = RentalPackage(id=2, vehicle_type_id=1, duration_hours=3, price=100)
    # 100/3 per hour: one extra hour is 33.33, three are exactly 100
    assert pricing_service.overage_fee(package, at(10), at(14)) == 33
    assert pricing_service.overage_fee(package, at(10), at(16)) == 100


def test_overage_half_unit_rounds_up():
    package = RentalPackage(id=3, vehicle_type_id=1, duration_hours=4, price=50)
    assert pricing_service.overage_fee(package, at(10), at(15)) == 13


def test_package_without_duration_is_rejected():
    package = RentalPackage(id=4, vehicle_type_id=1, duration_hours=0, price=50)
    with pytest.raises(ValueError):
        pricing_service.hourly_rate(package)


def test_extension_fee(package, policy):
    # four hours at 10/hour plus 10% of the package price
    assert pricing_service.extension_fee(package, policy) == 44


def test_extension_fee_rounds_the_sum(policy):
    package = RentalPackage(id=2, vehicle_type_id=1, duration_hours=3, price=100)
    # 133.33 + 10
    assert pricing_service.extension_fee(package, policy) == 143


@pytest.mark.parametrize(
    "late_by, expected",
    [
        (timedelta(0), 0),
        (timedelta(minutes=-30), 0),
        (timedelta(minutes=30), 0),
        (timedelta(hours=1), 0),
        (timedelta(hours=1, minutes=1), 8),
        (timedelta(hours=4), 8),
        (timedelta(hours=5), 20),
        (timedelta(hours=8), 20),
        (timedelta(hours=9), 40),
        (timedelta(days=2), 40),
    ],
)
def test_late_fee_tiers(policy, late_by, expected):
    scheduled_end = at(16)
    assert pricing_service.late_fee(40, scheduled_end, scheduled_end + late_by, policy) == expected


def test_late_fee_uses_configured_tiers():
    policy = BookingPolicy(late_fee_tiers=[(2, 10)], late_fee_max_percent=30)
    assert pricing_service.late_fee(100, at(16), at(17), policy) == 10
    assert pricing_service.late_fee(100, at(16), at(19), policy) == 30


def test_tax(policy):
    assert pricing_service.tax(60, policy) == 5
    assert pricing_service.tax(40, policy) == 3
    assert pricing_service.tax(0, policy) == 0
    assert pricing_service.tax(-10, policy) == 0


def test_hours_between_keeps_fractions():
    assert pricing_service.hours_between(at(10), at(11, 30)) == Fraction(3, 2)
    assert pricing_service.hours_between(at(23, day=11), at(1, day=12)) == 2
