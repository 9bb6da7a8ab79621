import logging
from typing import List

from sqlalchemy.orm import Session

from rentcar.database.init import atomic
from rentcar.database.models.activity_log_model import ActivityLog
from rentcar.database.models.booking_model import Booking
from rentcar.database.models.invoice_model import Invoice
from rentcar.database.models.payment_model import Payment
from rentcar.enums.activity_action import ActivityAction
from rentcar.enums.invoice_status import InvoiceStatus
from rentcar.enums.payment_status import PaymentStatus
from rentcar.exceptions import NotFoundError, PermissionDeniedError, StateError
from rentcar.schemas.auth_schema import Actor
from rentcar.services.cache_service import Cache, CacheInvalidator
from rentcar.services.clock import SystemClock
from rentcar.services.notification_service import Notifier

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, cache: Cache, notifier: Notifier, clock=None):
        self.invalidator = CacheInvalidator(cache)
        self.notifier = notifier
        self.clock = clock or SystemClock()

    def get_payments_for_booking(
        self, db: Session, actor: Actor, booking_id: int, skip: int = 0, limit: int = 100
    ) -> List[Payment]:
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError(f"Booking with ID {booking_id} not found.")
        if not actor.is_admin and booking.user_id != actor.id:
            raise PermissionDeniedError("You do not have access to this booking.")
        return (
            db.query(Payment)
            .filter(Payment.booking_id == booking_id)
            .order_by(Payment.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def mark_paid(self, db: Session, actor: Actor, payment_id: int) -> Payment:
        """Record that an outstanding (pending) payment has been collected."""
        if not actor.is_admin:
            raise PermissionDeniedError("Only admins can confirm payments.")

        now = self.clock.now()
        with atomic(db):
            payment = (
                db.query(Payment)
                .filter(Payment.id == payment_id)
                .with_for_update()
                .first()
            )
            if not payment:
                raise NotFoundError(f"Payment with ID {payment_id} not found.")
            if payment.status != PaymentStatus.PENDING.value:
                raise StateError(f"Payment {payment.id} is already {payment.status}.")

            payment.status = PaymentStatus.PAID.value
            payment.paid_at = now
            invoice = None
            if payment.invoice_id:
                invoice = db.get(Invoice, payment.invoice_id)
                invoice.status = InvoiceStatus.PAID.value
            db.add(
                ActivityLog(
                    user_id=actor.id,
                    action=ActivityAction.CONFIRM_PAYMENT.value,
                    object_type="Payment",
                    object_id=str(payment.id),
                    meta={"amount": payment.amount, "invoice": invoice is not None},
                    created_at=now,
                )
            )

        logger.info("Payment %s for booking %s marked paid", payment.id, payment.booking_id)
        booking = payment.booking
        self.invalidator.booking_changed(booking.id, booking.user_id)
        if invoice is not None:
            self.notifier.invoice_changed(invoice.id, booking.id)
        return payment
