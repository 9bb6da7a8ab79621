from datetime import timedelta

from conftest import at
from rentcar.enums.booking_status import BookingStatus
from rentcar.services.background_tasks import BackgroundTasks


def test_sweep_expires_stale_pending_bookings(db, session_factory, book, booking_service, clock):
    booking = book(at(10), at(14))
    clock.advance(timedelta(minutes=45))
    tasks = BackgroundTasks(session_factory, booking_service, interval_seconds=60)

    assert tasks.expire_stale_bookings() == [booking.id]

    db.expire_all()
    assert booking.status == BookingStatus.CANCELLED.value


def test_sweep_reports_errors_instead_of_raising(session_factory, booking_service):
    def broken(db, cutoff):
        raise RuntimeError("database went away")

    booking_service.expire_pending_older_than = broken
    tasks = BackgroundTasks(session_factory, booking_service)

    assert tasks.expire_stale_bookings() == []


def test_scheduler_registers_the_sweep(session_factory, booking_service):
    tasks = BackgroundTasks(session_factory, booking_service, interval_seconds=30)

    job = tasks.scheduler.get_job("expire_pending_bookings")

    assert job is not None
    assert job.trigger.interval == timedelta(seconds=30)
    tasks.shutdown()
