import logging

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import sessionmaker

from rentcar.services.booking_service import BookingService

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Periodic jobs that run next to the API process."""

    def __init__(self, session_factory: sessionmaker, booking_service: BookingService, interval_seconds: int = 60):
        self.session_factory = session_factory
        self.booking_service = booking_service
        self.scheduler = BackgroundScheduler()
        self.scheduler.add_job(
            self.expire_stale_bookings,
            "interval",
            seconds=interval_seconds,
            id="expire_pending_bookings",
            max_instances=1,
            coalesce=True,
        )

    def start(self):
        self.scheduler.start()
        logger.info("Background tasks initialized and scheduled")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def expire_stale_bookings(self):
        """Cancel pending bookings that were never paid within the timeout."""
        db = self.session_factory()
        try:
            cutoff = self.booking_service.pending_cutoff()
            expired = self.booking_service.expire_pending_older_than(db, cutoff)
            if expired:
                logger.info("Expired pending bookings: %s", expired)
            return expired
        except Exception:
            logger.error("Error while expiring pending bookings", exc_info=True)
            return []
        finally:
            db.close()
