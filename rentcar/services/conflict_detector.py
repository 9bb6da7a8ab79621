from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from rentcar.config import BookingPolicy
from rentcar.database.models.booking_model import Booking
from rentcar.enums.booking_status import BookingStatus, BLOCKING_STATUSES


class ConflictDetector:
    """Answers whether a vehicle is free for a candidate window.

    Every pending, confirmed or rented booking on the vehicle occupies
    ``[start - buffer, end + buffer]``. Two intervals conflict iff
    ``a1 < b2 and a2 > b1``, so windows that only touch are free.
    """

    def __init__(self, policy: BookingPolicy):
        self.policy = policy

    @property
    def buffer(self) -> timedelta:
        return timedelta(hours=self.policy.buffer_hours)

    def find_conflicts(
        self,
        db: Session,
        vehicle_id: int,
        candidate_start: datetime,
        candidate_end: datetime,
        exclude_booking_id: Optional[int] = None,
        stale_pending_before: Optional[datetime] = None,
    ) -> List[Booking]:
        """Bookings on the vehicle whose buffered window overlaps the candidate.

        Pending bookings created before ``stale_pending_before`` are ignored:
        they are past the payment timeout and only wait for the expiry sweep.
        """
        query = db.query(Booking).filter(
            Booking.vehicle_id == vehicle_id,
            Booking.status.in_([s.value for s in BLOCKING_STATUSES]),
            Booking.start_datetime < candidate_end + self.buffer,
            Booking.end_datetime > candidate_start - self.buffer,
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        if stale_pending_before is not None:
            query = query.filter(
                or_(
                    Booking.status != BookingStatus.PENDING.value,
                    Booking.created_at >= stale_pending_before,
                )
            )
        return query.order_by(Booking.start_datetime).all()

    def has_conflict(
        self,
        db: Session,
        vehicle_id: int,
        candidate_start: datetime,
        candidate_end: datetime,
        exclude_booking_id: Optional[int] = None,
        stale_pending_before: Optional[datetime] = None,
    ) -> bool:
        return bool(
            self.find_conflicts(
                db,
                vehicle_id,
                candidate_start,
                candidate_end,
                exclude_booking_id=exclude_booking_id,
                stale_pending_before=stale_pending_before,
            )
        )

    def next_available_at(self, conflicts: List[Booking]) -> Optional[datetime]:
        if not conflicts:
            return None
        return max(b.end_datetime for b in conflicts) + self.buffer
