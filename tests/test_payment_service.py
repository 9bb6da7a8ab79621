import pytest

from conftest import at
from rentcar.database.models import ActivityLog, Payment
from rentcar.enums.booking_status import BookingStatus
from rentcar.enums.invoice_status import InvoiceStatus
from rentcar.enums.payment_status import PaymentStatus
from rentcar.enums.payment_type import PaymentType
from rentcar.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)
from rentcar.schemas.booking_schema import ReturnFees
from rentcar.schemas.payment_schema import DepositConfirmation


@pytest.fixture
def payment_service(services):
    return services.payment_service


class TestDepositWebhook:
    def test_paid_deposit_confirms_the_booking(self, db, book, booking_service):
        booking = book(at(10), at(16))

        payment = booking_service.confirm_deposit(
            db, DepositConfirmation(booking_id=booking.id, amount=20, transaction_id="gw-1")
        )

        assert payment.status == PaymentStatus.PAID.value
        assert payment.type == PaymentType.BOOKING_DEPOSIT.value
        assert payment.provider == "gateway"
        assert booking.status == BookingStatus.CONFIRMED.value
        assert booking.booking_deposit_paid == 20
        assert booking.confirmed_by is None

    def test_second_deposit_on_confirmed_booking_adds_up(self, db, book, booking_service):
        booking = book(at(10), at(16))
        for txn in ("gw-1", "gw-2"):
            booking_service.confirm_deposit(
                db, DepositConfirmation(booking_id=booking.id, amount=20, transaction_id=txn)
            )
        assert booking.booking_deposit_paid == 40
        assert booking.status == BookingStatus.CONFIRMED.value

    def test_replayed_transaction_is_rejected(self, db, book, booking_service):
        booking = book(at(10), at(16))
        deposit = DepositConfirmation(booking_id=booking.id, amount=20, transaction_id="gw-1")
        booking_service.confirm_deposit(db, deposit)

        with pytest.raises(ConflictError):
            booking_service.confirm_deposit(db, deposit)

        assert booking.booking_deposit_paid == 20
        assert db.query(Payment).count() == 1

    def test_deposit_cannot_exceed_the_total(self, db, book, booking_service):
        booking = book(at(10), at(16))
        with pytest.raises(ValidationError):
            booking_service.confirm_deposit(
                db, DepositConfirmation(booking_id=booking.id, amount=61, transaction_id="gw-1")
            )
        assert booking.status == BookingStatus.PENDING.value

    def test_cancelled_booking_rejects_deposits(self, db, book, booking_service, customer):
        booking = book(at(10), at(16))
        booking_service.cancel(db, customer, booking.id)
        with pytest.raises(StateError):
            booking_service.confirm_deposit(
                db, DepositConfirmation(booking_id=booking.id, amount=20, transaction_id="gw-1")
            )

    def test_unknown_booking(self, db, booking_service, fleet):
        with pytest.raises(NotFoundError):
            booking_service.confirm_deposit(
                db, DepositConfirmation(booking_id=404, amount=20, transaction_id="gw-1")
            )


class TestMarkPaid:
    @pytest.fixture
    def outstanding(self, db, rented, booking_service, clock, admin):
        booking = rented()
        clock.set(at(15))
        return booking_service.return_vehicle(db, admin, booking.id, fees=ReturnFees(damage=150))

    def test_collects_outstanding_surcharge(self, db, outstanding, payment_service, admin):
        payment = payment_service.mark_paid(db, admin, outstanding.payment.id)

        assert payment.status == PaymentStatus.PAID.value
        assert payment.paid_at == at(15)
        assert outstanding.invoice.status == InvoiceStatus.PAID.value
        log = db.query(ActivityLog).filter(ActivityLog.object_type == "Payment").one()
        assert log.object_id == str(payment.id)

    def test_paid_payment_cannot_be_confirmed_again(self, db, outstanding, payment_service, admin):
        payment_service.mark_paid(db, admin, outstanding.payment.id)
        with pytest.raises(StateError):
            payment_service.mark_paid(db, admin, outstanding.payment.id)

    def test_customer_cannot_confirm_payments(self, db, outstanding, payment_service, customer):
        with pytest.raises(PermissionDeniedError):
            payment_service.mark_paid(db, customer, outstanding.payment.id)

    def test_unknown_payment(self, db, payment_service, admin):
        with pytest.raises(NotFoundError):
            payment_service.mark_paid(db, admin, 404)


class TestPaymentListing:
    def test_owner_sees_booking_payments_in_order(self, db, rented, payment_service, customer):
        booking = rented()
        payments = payment_service.get_payments_for_booking(db, customer, booking.id)
        assert [p.type for p in payments] == [
            PaymentType.RENTAL_FEE.value,
            PaymentType.SECURITY_DEPOSIT.value,
        ]

    def test_other_customer_is_refused(self, db, rented, payment_service, other_customer):
        booking = rented()
        with pytest.raises(PermissionDeniedError):
            payment_service.get_payments_for_booking(db, other_customer, booking.id)

    def test_unknown_booking(self, db, payment_service, admin):
        with pytest.raises(NotFoundError):
            payment_service.get_payments_for_booking(db, admin, 404)
