from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import datetime
from typing import Dict, Any, Optional

from dateutil.relativedelta import relativedelta

from rentcar.database.models.booking_model import Booking
from rentcar.database.models.invoice_model import Invoice
from rentcar.database.models.user_model import User
from rentcar.database.models.vehicle_model import Vehicle
from rentcar.enums.booking_status import BookingStatus
from rentcar.enums.user_role import UserRole


class ReportService:
    def __init__(self, db: Session):
        self.db = db

    def get_rented_vehicles_report(self, now: datetime) -> Dict[str, Any]:
        """
        List the vehicles currently out on rent.

        Args:
            now: Reference time used to flag overdue rentals

        Returns:
            Dict with the count and one entry per rented booking
        """
        bookings = (
            self.db.query(Booking)
            .filter(Booking.status == BookingStatus.RENTED.value)
            .order_by(Booking.end_datetime.asc())
            .all()
        )

        data = []
        for b in bookings:
            vehicle = b.vehicle
            data.append(
                {
                    "booking_id": b.id,
                    "vehicle": {
                        "id": vehicle.id if vehicle else None,
                        "title": vehicle.title if vehicle else "N/A",
                        "plate": vehicle.plate_number if vehicle else "N/A",
                        "type": vehicle.vehicle_type.name if vehicle and vehicle.vehicle_type else "",
                    },
                    "customer": {
                        "id": b.user_id,
                        "name": b.user.name if b.user else None,
                        "email": b.user.email if b.user else None,
                    },
                    "schedule": {
                        "start": b.start_datetime,
                        "end": b.end_datetime,
                        "is_extended": b.is_extended,
                        "is_overdue": b.end_datetime < now,
                    },
                    "estimated_total": b.total_price,
                }
            )

        return {"count": len(data), "data": data}

    def get_dashboard_stats(self) -> Dict[str, Any]:
        """Headline counts plus invoiced revenue."""
        counts = dict(
            self.db.query(Booking.status, func.count(Booking.id))
            .group_by(Booking.status)
            .all()
        )
        bookings = {status.value: counts.get(status.value, 0) for status in BookingStatus}
        bookings["total"] = sum(bookings.values())

        revenue = self.db.query(func.coalesce(func.sum(Invoice.total_amount), 0)).scalar()

        return {
            "overview": {
                "total_users": self.db.query(func.count(User.id)).scalar(),
                "total_vehicles": self.db.query(func.count(Vehicle.id)).scalar(),
                "total_revenue": int(revenue or 0),
            },
            "bookings": bookings,
        }

    def get_earnings_report(self, start: datetime, end: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Bookings, new customers and invoiced revenue for a period.

        Args:
            start: Inclusive start of the period
            end: Exclusive end of the period; one calendar month after ``start`` when omitted

        Returns:
            Dict with the period bounds and the three totals
        """
        if end is None:
            end = start + relativedelta(months=1)

        total_bookings = (
            self.db.query(func.count(Booking.id))
            .filter(Booking.created_at >= start, Booking.created_at < end)
            .scalar()
        )
        new_users = (
            self.db.query(func.count(User.id))
            .filter(
                User.role == UserRole.CUSTOMER.value,
                User.created_at >= start,
                User.created_at < end,
            )
            .scalar()
        )
        revenue = (
            self.db.query(func.coalesce(func.sum(Invoice.total_amount), 0))
            .filter(Invoice.issued_at >= start, Invoice.issued_at < end)
            .scalar()
        )

        return {
            "start_date": start,
            "end_date": end,
            "total_bookings": total_bookings,
            "new_users": new_users,
            "total_revenue": int(revenue or 0),
        }
