import logging
import math
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, NamedTuple, Optional

from sqlalchemy.orm import Session

from rentcar.config import BookingPolicy
from rentcar.database.init import atomic
from rentcar.database.models import (
    ActivityLog,
    Booking,
    Invoice,
    Location,
    Payment,
    RentalPackage,
    User,
    Vehicle,
)
from rentcar.enums.activity_action import ActivityAction
from rentcar.enums.booking_status import BookingStatus
from rentcar.enums.invoice_status import InvoiceStatus
from rentcar.enums.payment_method import PaymentMethod, PaymentProvider
from rentcar.enums.payment_status import PaymentStatus
from rentcar.enums.payment_type import PaymentType
from rentcar.enums.vehicle_status import VehicleStatus
from rentcar.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)
from rentcar.schemas.auth_schema import Actor
from rentcar.schemas.booking_schema import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    Pagination,
    ReturnFees,
)
from rentcar.schemas.invoice_schema import InvoiceLineItemCreate
from rentcar.schemas.payment_schema import DepositConfirmation
from rentcar.schemas.settlement_schema import Settlement
from rentcar.services import pricing_service
from rentcar.services.cache_service import Cache, CacheInvalidator, booking_detail_key, booking_list_key
from rentcar.services.clock import SystemClock
from rentcar.services.conflict_detector import ConflictDetector
from rentcar.services.invoice_service import InvoiceService
from rentcar.services.notification_service import Notifier
from rentcar.services.settlement_service import ReturnCharges, rental_covered, settle

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
EXTENDABLE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.RENTED)
RETURNABLE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.RENTED)


class PickupResult(NamedTuple):
    booking: Booking
    deposit_payment: Payment
    rental_payment: Optional[Payment]
    invoice: Optional[Invoice]


class ReturnResult(NamedTuple):
    booking: Booking
    settlement: Settlement
    payment: Optional[Payment]
    invoice: Optional[Invoice]
    document_key: Optional[str]


class VehicleLocks:
    """Process-local mutual exclusion per vehicle id.

    Pairs with the ``SELECT ... FOR UPDATE`` on the vehicle row so that the
    conflict check and the write that depends on it are serialised both within
    this process and across processes sharing the database.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # one entry per vehicle ever locked; bounded by the fleet size
        self._locks: Dict[int, threading.Lock] = {}

    @contextmanager
    def hold(self, vehicle_id: int):
        with self._guard:
            lock = self._locks.setdefault(vehicle_id, threading.Lock())
        with lock:
            yield


class BookingService:
    """The booking lifecycle: create, confirm, pickup, extend, return, cancel."""

    def __init__(
        self,
        policy: BookingPolicy,
        cache: Cache,
        notifier: Notifier,
        invoice_service: InvoiceService,
        clock=None,
        cache_ttl: int = 300,
    ):
        self.policy = policy
        self.cache = cache
        self.invalidator = CacheInvalidator(cache)
        self.notifier = notifier
        self.invoice_service = invoice_service
        self.clock = clock or SystemClock()
        self.cache_ttl = cache_ttl
        self.conflict_detector = ConflictDetector(policy)
        self.vehicle_locks = VehicleLocks()

    # ------------------------------------------------------------------ reads

    def get(self, db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    def get_visible(self, db: Session, actor: Actor, booking_id: int) -> Booking:
        booking = self._require_booking(db, booking_id)
        self._require_access(actor, booking)
        return booking

    def get_booking(self, db: Session, actor: Actor, booking_id: int) -> dict:
        cache_key = booking_detail_key(booking_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            if not actor.is_admin and cached["user_id"] != actor.id:
                raise PermissionDeniedError("You do not have access to this booking.")
            return cached

        booking = self.get_visible(db, actor, booking_id)
        data = BookingResponse.model_validate(booking).model_dump(mode="json")
        self.cache.set_with_ttl(cache_key, data, self.cache_ttl)
        return data

    def list_bookings(self, db: Session, actor: Actor, page: int = 1, limit: int = 10) -> dict:
        if page < 1:
            raise ValidationError("page must be 1 or greater")
        if limit < 1 or limit > 100:
            raise ValidationError("limit must be between 1 and 100")

        cache_key = booking_list_key(actor.role, actor.id, page)
        cached = self.cache.get(cache_key)
        if cached is not None and cached["pagination"]["limit"] == limit:
            return cached

        query = db.query(Booking)
        if not actor.is_admin:
            query = query.filter(Booking.user_id == actor.id)
        total = query.count()
        bookings = (
            query.order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        result = BookingListResponse(
            data=[BookingResponse.model_validate(b) for b in bookings],
            pagination=Pagination(
                total_items=total,
                current_page=page,
                total_pages=math.ceil(total / limit),
                limit=limit,
            ),
        ).model_dump(mode="json")
        self.cache.set_with_ttl(cache_key, result, self.cache_ttl)
        return result

    # ------------------------------------------------------------ transitions

    def create(
        self,
        db: Session,
        actor: Actor,
        booking_in: BookingCreate,
        customer_id: Optional[int] = None,
    ) -> Booking:
        """Reserve a vehicle for a window; the booking starts out ``pending``."""
        now = self.clock.now()
        start, end = booking_in.start_datetime, booking_in.end_datetime
        user_id = customer_id if customer_id is not None else actor.id
        if user_id != actor.id and not actor.is_admin:
            raise PermissionDeniedError("Only admins can book on behalf of another customer.")

        if end <= start:
            raise ValidationError("end_datetime must be after start_datetime.")
        if start < now:
            raise ValidationError("The booking window cannot start in the past.")
        if start - now < self._hours(self.policy.buffer_hours):
            raise ValidationError(
                f"Bookings must be made at least {self.policy.buffer_hours} hours before pickup."
            )

        with self.vehicle_locks.hold(booking_in.vehicle_id):
            with atomic(db):
                if db.get(User, user_id) is None:
                    raise NotFoundError(f"User with ID {user_id} not found.")
                vehicle = self._lock_vehicle(db, booking_in.vehicle_id)
                package = db.get(RentalPackage, booking_in.package_id)
                if package is None:
                    raise NotFoundError(f"Rental package with ID {booking_in.package_id} not found.")
                if package.vehicle_type_id != vehicle.vehicle_type_id:
                    raise ValidationError(
                        f"Rental package {package.id} does not apply to vehicle {vehicle.id}."
                    )
                if vehicle.status != VehicleStatus.AVAILABLE.value:
                    raise ConflictError(f"Vehicle {vehicle.id} is not available (status: {vehicle.status}).")
                for location_id in (booking_in.pickup_location_id, booking_in.dropoff_location_id):
                    if location_id is not None and db.get(Location, location_id) is None:
                        raise NotFoundError(f"Location with ID {location_id} not found.")

                released = self._ensure_free(db, vehicle.id, start, end)

                quote = pricing_service.quote(package, start, end)
                booking = Booking(
                    user_id=user_id,
                    vehicle_id=vehicle.id,
                    package_id=package.id,
                    pickup_location_id=booking_in.pickup_location_id,
                    dropoff_location_id=booking_in.dropoff_location_id,
                    start_datetime=start,
                    end_datetime=end,
                    base_price=quote.base_price,
                    overage_fee=quote.overage_fee,
                    extension_fee=0,
                    late_fee=0,
                    compensation_fee=0,
                    cleaning_fee=0,
                    damage_fee=0,
                    other_fee=0,
                    rental_deposit_paid=0,
                    booking_deposit_paid=0,
                    status=BookingStatus.PENDING.value,
                    created_at=now,
                )
                booking.recompute_totals()
                db.add(booking)
                db.flush()
                self._log(
                    db,
                    actor.id,
                    ActivityAction.CREATE_BOOKING,
                    booking,
                    {"total_price": booking.total_price, "overage_hours": quote.overage_hours},
                )

        logger.info(
            "Booking %s created for vehicle %s by user %s (total %s)",
            booking.id, booking.vehicle_id, booking.user_id, booking.total_price,
        )
        self._released(released)
        self._after_change(booking, ActivityAction.CREATE_BOOKING)
        return booking

    def confirm(self, db: Session, actor: Actor, booking_id: int) -> Booking:
        """Direct confirmation by an admin."""
        self._require_admin(actor, "confirm bookings")
        with atomic(db):
            booking = self._lock_booking(db, booking_id)
            self._require_status(booking, (BookingStatus.PENDING,), "confirm")
            self._mark_confirmed(booking, actor.id)
            self._log(db, actor.id, ActivityAction.CONFIRM_BOOKING, booking)

        logger.info("Booking %s confirmed by %s", booking.id, actor.id)
        self._after_change(booking, ActivityAction.CONFIRM_BOOKING)
        return booking

    def confirm_deposit(self, db: Session, deposit: DepositConfirmation) -> Payment:
        """Payment-gateway path: record the paid booking deposit and confirm.

        A deposit for an already confirmed booking is recorded without another
        transition; any other status is rejected.
        """
        now = self.clock.now()
        with atomic(db):
            booking = self._lock_booking(db, deposit.booking_id)
            self._require_status(
                booking, (BookingStatus.PENDING, BookingStatus.CONFIRMED), "accept a deposit for"
            )
            duplicate = (
                db.query(Payment.id).filter(Payment.transaction_id == deposit.transaction_id).first()
            )
            if duplicate:
                raise ConflictError(f"Transaction {deposit.transaction_id} was already recorded.")
            if booking.booking_deposit_paid + deposit.amount > booking.total_price:
                raise ValidationError("Deposit exceeds the booking total.")

            payment = Payment(
                booking_id=booking.id,
                user_id=booking.user_id,
                amount=deposit.amount,
                tax_amount=0,
                type=PaymentType.BOOKING_DEPOSIT.value,
                provider=deposit.provider,
                transaction_id=deposit.transaction_id,
                status=PaymentStatus.PAID.value,
                paid_at=now,
                created_at=now,
            )
            db.add(payment)
            booking.booking_deposit_paid += deposit.amount
            if booking.status == BookingStatus.PENDING.value:
                self._mark_confirmed(booking, None)
            booking.updated_at = now
            db.flush()
            self._log(
                db,
                None,
                ActivityAction.CONFIRM_DEPOSIT,
                booking,
                {"amount": deposit.amount, "transaction_id": deposit.transaction_id},
            )

        logger.info("Deposit %s recorded for booking %s", deposit.transaction_id, booking.id)
        self._after_change(booking, ActivityAction.CONFIRM_DEPOSIT)
        return payment

    def pickup(
        self,
        db: Session,
        actor: Actor,
        booking_id: int,
        security_deposit: int,
        payment_method: str,
    ) -> PickupResult:
        """Hand the vehicle over: collect the rental balance and the security deposit."""
        self._require_admin(actor, "record pickups")
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            allowed = ", ".join(m.value for m in PaymentMethod)
            raise ValidationError(f"Unsupported payment method '{payment_method}' ({allowed}).")
        if not isinstance(security_deposit, int) or security_deposit <= 0:
            raise ValidationError("security_deposit must be a positive amount.")

        now = self.clock.now()
        booking = self._require_booking(db, booking_id)
        with self.vehicle_locks.hold(booking.vehicle_id):
            with atomic(db):
                booking = self._lock_booking(db, booking_id)
                self._require_status(booking, (BookingStatus.CONFIRMED,), "pick up")
                vehicle = self._lock_vehicle(db, booking.vehicle_id)
                required = vehicle.vehicle_type.required_deposit or 0
                if security_deposit < required:
                    raise ValidationError(
                        f"Security deposit must be at least {required} for this vehicle type."
                    )

                if abs(now - booking.start_datetime) <= timedelta(minutes=self.policy.pickup_grace_minutes):
                    booking.start_datetime = now

                rental_payment, invoice = self._collect_rental_balance(db, booking, actor, method, now)

                deposit_payment = Payment(
                    booking_id=booking.id,
                    user_id=booking.user_id,
                    amount=security_deposit,
                    tax_amount=0,
                    type=PaymentType.SECURITY_DEPOSIT.value,
                    provider=method.value,
                    status=PaymentStatus.PAID.value,
                    paid_at=now,
                    created_at=now,
                )
                db.add(deposit_payment)

                booking.rental_deposit_paid += security_deposit
                booking.status = BookingStatus.RENTED.value
                booking.actual_start_datetime = now
                booking.picked_up_by = actor.id
                booking.updated_at = now
                vehicle.status = VehicleStatus.RENTED.value
                db.flush()
                self._log(
                    db,
                    actor.id,
                    ActivityAction.PICKUP_BOOKING,
                    booking,
                    {
                        "security_deposit": security_deposit,
                        "rental_paid": rental_payment.amount if rental_payment else 0,
                        "payment_method": method.value,
                    },
                )

        logger.info("Booking %s picked up (deposit %s)", booking.id, security_deposit)
        self._after_change(booking, ActivityAction.PICKUP_BOOKING)
        if invoice is not None:
            self.notifier.invoice_changed(invoice.id, booking.id)
        return PickupResult(booking, deposit_payment, rental_payment, invoice)

    def extend(self, db: Session, actor: Actor, booking_id: int) -> Booking:
        """Add the one-time extension block to the booking's planned end."""
        now = self.clock.now()
        booking = self._require_booking(db, booking_id)
        with self.vehicle_locks.hold(booking.vehicle_id):
            with atomic(db):
                booking = self._lock_booking(db, booking_id)
                self._require_access(actor, booking)
                self._require_status(booking, EXTENDABLE_STATUSES, "extend")
                if booking.is_extended:
                    raise ConflictError(f"Booking {booking.id} has already been extended once.")
                if booking.end_datetime - now < self._hours(self.policy.min_notice_hours):
                    raise ValidationError(
                        f"Extensions must be requested at least {self.policy.min_notice_hours} "
                        "hours before the booking ends."
                    )

                self._lock_vehicle(db, booking.vehicle_id)
                old_end = booking.end_datetime
                new_end = old_end + self._hours(self.policy.extension_hours)
                released = self._ensure_free(
                    db,
                    booking.vehicle_id,
                    old_end,
                    new_end + self._hours(self.policy.buffer_hours),
                    exclude_booking_id=booking.id,
                )

                fee = pricing_service.extension_fee(booking.package, self.policy)
                booking.original_end_datetime = old_end
                booking.end_datetime = new_end
                booking.extension_fee = fee
                booking.recompute_totals()
                booking.updated_at = now
                self._log(
                    db,
                    actor.id,
                    ActivityAction.EXTEND_BOOKING,
                    booking,
                    {"extension_fee": fee, "new_end": new_end.isoformat()},
                )

        logger.info("Booking %s extended to %s (fee %s)", booking.id, booking.end_datetime, booking.extension_fee)
        self._released(released)
        self._after_change(booking, ActivityAction.EXTEND_BOOKING)
        return booking

    def return_vehicle(
        self,
        db: Session,
        actor: Actor,
        booking_id: int,
        actual_end_datetime: Optional[datetime] = None,
        fees: Optional[ReturnFees] = None,
    ) -> ReturnResult:
        """Close the rental: assess return fees, settle against the deposit, free the vehicle."""
        self._require_admin(actor, "record returns")
        fees = fees or ReturnFees()
        now = self.clock.now()
        actual_end = actual_end_datetime or now
        if actual_end > now:
            raise ValidationError("The return time cannot be in the future.")

        booking = self._require_booking(db, booking_id)
        with self.vehicle_locks.hold(booking.vehicle_id):
            with atomic(db):
                booking = self._lock_booking(db, booking_id)
                self._require_status(booking, RETURNABLE_STATUSES, "return")
                if actual_end < (booking.actual_start_datetime or booking.start_datetime):
                    raise ValidationError("The return time cannot precede the rental start.")

                late = pricing_service.late_fee(
                    booking.base_price, booking.end_datetime, actual_end, self.policy
                )
                is_late = actual_end > booking.end_datetime
                if is_late and fees.compensation <= 0 and self._waiting_bookings(db, booking, actual_end, now):
                    raise ValidationError(
                        "The vehicle was returned late and the next reservation has already "
                        "started; a compensation fee is required."
                    )

                charges = ReturnCharges(
                    late=late,
                    cleaning=fees.cleaning,
                    damage=fees.damage,
                    other=fees.other,
                    compensation=fees.compensation,
                )
                booking.late_fee = charges.late
                booking.cleaning_fee = charges.cleaning
                booking.damage_fee = charges.damage
                booking.other_fee = charges.other
                booking.compensation_fee = charges.compensation
                booking.surcharge_note = fees.note
                booking.recompute_totals()

                settlement = settle(booking, booking.payments, charges, self.policy)
                payment, invoice = self._record_settlement(db, booking, actor, settlement, now)

                booking.actual_end_datetime = actual_end
                booking.status = BookingStatus.COMPLETED.value
                booking.returned_by = actor.id
                booking.updated_at = now
                vehicle = self._lock_vehicle(db, booking.vehicle_id)
                vehicle.status = VehicleStatus.AVAILABLE.value
                db.flush()
                self._log(
                    db,
                    actor.id,
                    ActivityAction.RETURN_BOOKING,
                    booking,
                    {
                        "refund_amount": settlement.refund_amount,
                        "collect_amount": settlement.collect_amount,
                        "late_fee": late,
                    },
                )

        logger.info(
            "Booking %s returned: refund %s, collect %s",
            booking.id, settlement.refund_amount, settlement.collect_amount,
        )
        document_key = None
        if invoice is not None:
            document_key = self.invoice_service.publish_document(db, invoice, booking)
        self._after_change(booking, ActivityAction.RETURN_BOOKING)
        if invoice is not None:
            self.notifier.invoice_changed(invoice.id, booking.id)
        return ReturnResult(booking, settlement, payment, invoice, document_key)

    def cancel(self, db: Session, actor: Actor, booking_id: int) -> Booking:
        now = self.clock.now()
        with atomic(db):
            booking = self._lock_booking(db, booking_id)
            self._require_access(actor, booking)
            self._require_status(booking, CANCELLABLE_STATUSES, "cancel")
            if not actor.is_admin and booking.start_datetime <= now:
                raise StateError("Bookings can only be cancelled before the rental starts.")
            booking.status = BookingStatus.CANCELLED.value
            booking.cancelled_by = actor.id
            booking.cancelled_at = now
            booking.updated_at = now
            self._log(db, actor.id, ActivityAction.CANCEL_BOOKING, booking)

        logger.info("Booking %s cancelled by %s", booking.id, actor.id)
        self._after_change(booking, ActivityAction.CANCEL_BOOKING)
        return booking

    def expire_pending_older_than(self, db: Session, cutoff: datetime) -> List[int]:
        """Cancel every pending booking created before ``cutoff``."""
        with atomic(db):
            expired = (
                db.query(Booking)
                .filter(
                    Booking.status == BookingStatus.PENDING.value,
                    Booking.created_at < cutoff,
                )
                .with_for_update()
                .all()
            )
            for booking in expired:
                self._expire(db, booking, cutoff)

        if expired:
            logger.info("Expired %d pending bookings created before %s", len(expired), cutoff)
        self._released(expired)
        return [b.id for b in expired]

    def pending_cutoff(self) -> datetime:
        return self.clock.now() - timedelta(minutes=self.policy.pending_timeout_minutes)

    # ---------------------------------------------------------------- helpers

    @staticmethod
    def _hours(hours: int) -> timedelta:
        return timedelta(hours=hours)

    def _require_booking(self, db: Session, booking_id: int) -> Booking:
        booking = self.get(db, booking_id)
        if booking is None:
            raise NotFoundError(f"Booking with ID {booking_id} not found.")
        return booking

    def _lock_booking(self, db: Session, booking_id: int) -> Booking:
        booking = (
            db.query(Booking)
            .filter(Booking.id == booking_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if booking is None:
            raise NotFoundError(f"Booking with ID {booking_id} not found.")
        return booking

    def _lock_vehicle(self, db: Session, vehicle_id: int) -> Vehicle:
        vehicle = (
            db.query(Vehicle)
            .filter(Vehicle.id == vehicle_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if vehicle is None:
            raise NotFoundError(f"Vehicle with ID {vehicle_id} not found.")
        return vehicle

    @staticmethod
    def _require_admin(actor: Actor, action: str):
        if not actor.is_admin:
            raise PermissionDeniedError(f"Only admins can {action}.")

    @staticmethod
    def _require_access(actor: Actor, booking: Booking):
        if not actor.is_admin and booking.user_id != actor.id:
            raise PermissionDeniedError("You do not have access to this booking.")

    @staticmethod
    def _require_status(booking: Booking, allowed: Iterable[BookingStatus], action: str):
        allowed = tuple(allowed)
        if booking.status not in {s.value for s in allowed}:
            expected = ", ".join(s.value for s in allowed)
            raise StateError(
                f"Cannot {action} booking {booking.id} in status '{booking.status}' "
                f"(expected: {expected})."
            )

    def _ensure_free(
        self,
        db: Session,
        vehicle_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Booking]:
        """Raise ConflictError unless the window is free.

        Pending bookings past the payment timeout do not block; they are
        expired in the caller's transaction and returned.
        """
        cutoff = self.pending_cutoff()
        conflicts = self.conflict_detector.find_conflicts(
            db, vehicle_id, start, end, exclude_booking_id=exclude_booking_id
        )
        stale = [b for b in conflicts if self._is_stale_pending(b, cutoff)]
        blocking = [b for b in conflicts if not self._is_stale_pending(b, cutoff)]
        if blocking:
            available_from = self.conflict_detector.next_available_at(blocking)
            raise ConflictError(
                f"Vehicle {vehicle_id} is already reserved for this period; "
                f"it is free again from {available_from:%Y-%m-%d %H:%M}.",
                available_from=available_from,
            )
        for booking in stale:
            self._expire(db, booking, cutoff)
        return stale

    @staticmethod
    def _is_stale_pending(booking: Booking, cutoff: datetime) -> bool:
        return booking.status == BookingStatus.PENDING.value and booking.created_at < cutoff

    def _expire(self, db: Session, booking: Booking, cutoff: datetime):
        now = self.clock.now()
        booking.status = BookingStatus.CANCELLED.value
        booking.cancelled_at = now
        booking.updated_at = now
        self._log(db, None, ActivityAction.EXPIRE_BOOKING, booking, {"cutoff": cutoff.isoformat()})

    def _waiting_bookings(self, db: Session, booking: Booking, actual_end: datetime, now: datetime) -> List[Booking]:
        """Later reservations that a late return runs into and that have already begun."""
        conflicts = self.conflict_detector.find_conflicts(
            db,
            booking.vehicle_id,
            booking.end_datetime,
            actual_end,
            exclude_booking_id=booking.id,
            stale_pending_before=self.pending_cutoff(),
        )
        return [
            b for b in conflicts
            if b.status in (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)
            and b.start_datetime >= booking.start_datetime
            and b.start_datetime < now
        ]

    def _mark_confirmed(self, booking: Booking, actor_id: Optional[int]):
        now = self.clock.now()
        booking.status = BookingStatus.CONFIRMED.value
        booking.confirmed_by = actor_id
        booking.confirmed_at = now
        booking.updated_at = now

    def _collect_rental_balance(self, db: Session, booking: Booking, actor: Actor, method: PaymentMethod, now: datetime):
        covered = rental_covered(booking.payments)
        balance = max(0, booking.rental_charges - covered)
        if balance == 0:
            return None, None

        tax = pricing_service.tax(balance, self.policy)
        line_items = self._rental_line_items(booking, covered)
        invoice = self.invoice_service.create(
            db,
            booking,
            line_items,
            tax_rate=self.policy.tax_rate_percent,
            tax_amount=tax,
            issued_at=now,
            issued_by=actor.id,
            status=InvoiceStatus.PAID,
        )
        payment = Payment(
            booking_id=booking.id,
            invoice_id=invoice.id,
            user_id=booking.user_id,
            amount=balance + tax,
            tax_amount=tax,
            type=PaymentType.RENTAL_FEE.value,
            provider=method.value,
            status=PaymentStatus.PAID.value,
            paid_at=now,
            created_at=now,
        )
        db.add(payment)
        return payment, invoice

    @staticmethod
    def _rental_line_items(booking: Booking, covered: int) -> List[InvoiceLineItemCreate]:
        items = [InvoiceLineItemCreate(description="Rental package", amount=booking.base_price)]
        if booking.overage_fee:
            items.append(InvoiceLineItemCreate(description="Overage hours", amount=booking.overage_fee))
        if booking.extension_fee:
            items.append(InvoiceLineItemCreate(description="Extension", amount=booking.extension_fee))
        if covered:
            items.append(InvoiceLineItemCreate(description="Paid in advance", amount=-covered))
        return items

    def _record_settlement(self, db: Session, booking: Booking, actor: Actor, settlement: Settlement, now: datetime):
        if settlement.refund_amount > 0:
            payment = Payment(
                booking_id=booking.id,
                user_id=booking.user_id,
                amount=settlement.refund_amount,
                tax_amount=0,
                type=PaymentType.REFUND.value,
                provider=PaymentProvider.SYSTEM.value,
                status=PaymentStatus.PAID.value,
                paid_at=now,
                created_at=now,
            )
            db.add(payment)
            return payment, None

        if settlement.collect_amount == 0:
            return None, None

        breakdown = settlement.breakdown
        tax = breakdown["rental_tax"] + breakdown["return_fees_tax"]
        items = []
        if breakdown["unpaid_rental"]:
            items.append(InvoiceLineItemCreate(description="Outstanding rental", amount=breakdown["unpaid_rental"]))
        for key, label in (
            ("late_fee", "Late return"),
            ("cleaning_fee", "Cleaning"),
            ("damage_fee", "Damage"),
            ("compensation_fee", "Compensation"),
            ("other_fee", "Other charges"),
        ):
            if breakdown[key]:
                items.append(InvoiceLineItemCreate(description=label, amount=breakdown[key]))
        if settlement.deposit_held:
            items.append(InvoiceLineItemCreate(description="Security deposit applied", amount=-settlement.deposit_held))

        invoice = self.invoice_service.create(
            db,
            booking,
            items,
            tax_rate=self.policy.tax_rate_percent,
            tax_amount=tax,
            issued_at=now,
            issued_by=actor.id,
        )
        payment = Payment(
            booking_id=booking.id,
            invoice_id=invoice.id,
            user_id=booking.user_id,
            amount=settlement.collect_amount,
            tax_amount=min(tax, settlement.collect_amount),
            type=PaymentType.SURCHARGE.value,
            provider=PaymentProvider.SYSTEM.value,
            status=PaymentStatus.PENDING.value,
            created_at=now,
        )
        db.add(payment)
        return payment, invoice

    def _log(self, db: Session, actor_id: Optional[int], action: ActivityAction, booking: Booking, meta: Optional[dict] = None):
        db.add(
            ActivityLog(
                user_id=actor_id,
                action=action.value,
                object_type="Booking",
                object_id=str(booking.id),
                meta=meta,
                created_at=self.clock.now(),
            )
        )

    def _released(self, bookings: List[Booking]):
        for booking in bookings:
            self._after_change(booking, ActivityAction.EXPIRE_BOOKING)

    def _after_change(self, booking: Booking, action: ActivityAction):
        self.invalidator.booking_changed(booking.id, booking.user_id, booking.vehicle_id)
        self.notifier.booking_changed(booking.id, booking.status, action.value)
