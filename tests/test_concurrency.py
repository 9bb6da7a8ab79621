import threading

from conftest import at
from rentcar.database.init import create_session_factory, init_db
from rentcar.database.models import Booking
from rentcar.enums.user_role import UserRole
from rentcar.exceptions import ConflictError
from rentcar.schemas.auth_schema import Actor
from rentcar.schemas.booking_schema import BookingCreate


def test_parallel_requests_for_the_same_window_admit_one(tmp_path, seed_fleet, booking_service):
    factory = create_session_factory(
        f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False}
    )
    init_db(factory)
    setup = factory()
    fleet = seed_fleet(setup)
    requests = [
        (
            Actor(id=user.id, role=UserRole.CUSTOMER),
            BookingCreate(
                vehicle_id=fleet.vehicle.id,
                package_id=fleet.package.id,
                start_datetime=at(10),
                end_datetime=at(14),
            ),
        )
        for user in (fleet.customer, fleet.other)
    ]
    setup.close()

    barrier = threading.Barrier(len(requests))
    outcomes = []

    def attempt(actor, booking_in):
        db = factory()
        try:
            barrier.wait()
            booking = booking_service.create(db, actor, booking_in)
            outcomes.append(("ok", booking.id))
        except ConflictError:
            outcomes.append(("conflict", None))
        finally:
            db.close()

    threads = [threading.Thread(target=attempt, args=request) for request in requests]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(kind for kind, _ in outcomes) == ["conflict", "ok"]
    check = factory()
    assert check.query(Booking).count() == 1
    check.close()
    factory.kw["bind"].dispose()
