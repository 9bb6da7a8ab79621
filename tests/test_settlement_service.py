import random

import pytest

from rentcar.config import BookingPolicy
from rentcar.database.models import Booking, Payment
from rentcar.enums.payment_status import PaymentStatus
from rentcar.enums.payment_type import PaymentType
from rentcar.services.settlement_service import ReturnCharges, deposit_held, rental_covered, settle


def make_booking(base=40, overage=20, extension=0):
    return Booking(base_price=base, overage_fee=overage, extension_fee=extension)


def payment(type_, amount, tax=0, status=PaymentStatus.PAID):
    return Payment(type=type_.value, amount=amount, tax_amount=tax, status=status.value)


@pytest.fixture
def untaxed():
    return BookingPolicy(tax_rate_percent=0)


def test_deposit_covers_liability_and_the_rest_is_refunded(untaxed):
    booking = make_booking()
    payments = [payment(PaymentType.SECURITY_DEPOSIT, 100)]

    result = settle(booking, payments, ReturnCharges(late=20), untaxed)

    assert result.total_liability == 80
    assert result.deposit_held == 100
    assert result.refund_amount == 20
    assert result.collect_amount == 0


def test_unpaid_rental_is_taxed():
    policy = BookingPolicy(tax_rate_percent=8)
    booking = make_booking()
    payments = [payment(PaymentType.SECURITY_DEPOSIT, 100)]

    result = settle(booking, payments, ReturnCharges(late=20), policy)

    assert result.breakdown["unpaid_rental"] == 60
    assert result.breakdown["rental_tax"] == 5
    assert result.breakdown["return_fees_tax"] == 0
    assert result.total_liability == 85
    assert result.refund_amount == 15


def test_rental_paid_at_pickup_is_not_charged_again():
    policy = BookingPolicy(tax_rate_percent=8)
    booking = make_booking()
    payments = [
        payment(PaymentType.RENTAL_FEE, 65, tax=5),
        payment(PaymentType.SECURITY_DEPOSIT, 100),
    ]

    result = settle(booking, payments, ReturnCharges(late=20), policy)

    assert result.breakdown["rental_covered"] == 60
    assert result.breakdown["unpaid_rental"] == 0
    assert result.total_liability == 20
    assert result.refund_amount == 80


def test_booking_deposit_counts_towards_rental(untaxed):
    booking = make_booking()
    payments = [
        payment(PaymentType.BOOKING_DEPOSIT, 20),
        payment(PaymentType.SECURITY_DEPOSIT, 100),
    ]

    result = settle(booking, payments, ReturnCharges(), untaxed)

    assert result.breakdown["unpaid_rental"] == 40
    assert result.refund_amount == 60


def test_shortfall_is_collected(untaxed):
    booking = make_booking()
    payments = [payment(PaymentType.RENTAL_FEE, 60), payment(PaymentType.SECURITY_DEPOSIT, 10)]

    result = settle(booking, payments, ReturnCharges(late=20, damage=60), untaxed)

    assert result.total_liability == 80
    assert result.refund_amount == 0
    assert result.collect_amount == 70


def test_exact_match_neither_refunds_nor_collects(untaxed):
    booking = make_booking()
    payments = [payment(PaymentType.RENTAL_FEE, 60), payment(PaymentType.SECURITY_DEPOSIT, 80)]

    result = settle(booking, payments, ReturnCharges(cleaning=30, other=50), untaxed)

    assert (result.refund_amount, result.collect_amount) == (0, 0)


def test_surcharge_tax_is_opt_in():
    policy = BookingPolicy(tax_rate_percent=8, tax_applies_to_surcharges=True)
    booking = make_booking()
    payments = [payment(PaymentType.RENTAL_FEE, 65, tax=5), payment(PaymentType.SECURITY_DEPOSIT, 100)]

    result = settle(booking, payments, ReturnCharges(late=20), policy)

    assert result.breakdown["return_fees_tax"] == 2
    assert result.total_liability == 22


def test_unsettled_payments_are_ignored():
    payments = [
        payment(PaymentType.SECURITY_DEPOSIT, 100, status=PaymentStatus.PENDING),
        payment(PaymentType.SECURITY_DEPOSIT, 50, status=PaymentStatus.FAILED),
        payment(PaymentType.RENTAL_FEE, 60, status=PaymentStatus.CANCELLED),
        payment(PaymentType.SURCHARGE, 10),
    ]
    assert deposit_held(payments) == 0
    assert rental_covered(payments) == 0


def test_settlement_conserves_money():
    rng = random.Random(7)
    for _ in range(200):
        policy = BookingPolicy(
            tax_rate_percent=rng.choice([0, 8, 10]),
            tax_applies_to_surcharges=rng.choice([True, False]),
        )
        booking = make_booking(
            base=rng.randint(1, 500), overage=rng.randint(0, 200), extension=rng.choice([0, 44])
        )
        payments = [
            payment(PaymentType.SECURITY_DEPOSIT, rng.randint(0, 1000)),
            payment(PaymentType.RENTAL_FEE, rng.randint(0, 800)),
        ]
        charges = ReturnCharges(
            late=rng.randint(0, 300),
            cleaning=rng.randint(0, 50),
            damage=rng.choice([0, 0, 400]),
            compensation=rng.choice([0, 25]),
        )

        result = settle(booking, payments, charges, policy)

        assert result.refund_amount >= 0 and result.collect_amount >= 0
        assert result.refund_amount == 0 or result.collect_amount == 0
        assert result.refund_amount - result.collect_amount == result.deposit_held - result.total_liability
