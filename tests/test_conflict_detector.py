import pytest

from conftest import NOW, at
from rentcar.database.models import Booking
from rentcar.enums.booking_status import BookingStatus
from rentcar.services.conflict_detector import ConflictDetector


@pytest.fixture
def detector(policy):
    return ConflictDetector(policy)


@pytest.fixture
def add_booking(db, fleet):
    def _add(start, end, status=BookingStatus.CONFIRMED, vehicle=None, created_at=NOW):
        booking = Booking(
            user_id=fleet.customer.id,
            vehicle_id=(vehicle or fleet.vehicle).id,
            package_id=fleet.package.id,
            start_datetime=start,
            end_datetime=end,
            base_price=40,
            total_price=40,
            status=status.value,
            created_at=created_at,
        )
        db.add(booking)
        db.commit()
        return booking

    return _add


def test_candidate_inside_buffer_conflicts(db, fleet, detector, add_booking):
    existing = add_booking(at(10), at(14))
    conflicts = detector.find_conflicts(db, fleet.vehicle.id, at(15), at(17))
    assert [b.id for b in conflicts] == [existing.id]
    assert detector.next_available_at(conflicts) == at(18)


def test_windows_touching_the_buffer_are_free(db, fleet, detector, add_booking):
    add_booking(at(10), at(14))
    assert not detector.has_conflict(db, fleet.vehicle.id, at(18), at(20))
    assert not detector.has_conflict(db, fleet.vehicle.id, at(2), at(6))
    assert detector.has_conflict(db, fleet.vehicle.id, at(17, 59), at(20))
    assert detector.has_conflict(db, fleet.vehicle.id, at(2), at(6, 1))


def test_only_reserving_statuses_block(db, fleet, detector, add_booking):
    add_booking(at(10), at(14), status=BookingStatus.CANCELLED)
    add_booking(at(10), at(14), status=BookingStatus.COMPLETED)
    assert not detector.has_conflict(db, fleet.vehicle.id, at(12), at(13))

    for status in (BookingStatus.PENDING, BookingStatus.RENTED):
        add_booking(at(10), at(14), status=status)
    assert len(detector.find_conflicts(db, fleet.vehicle.id, at(12), at(13))) == 2


def test_other_vehicles_do_not_block(db, fleet, detector, add_booking):
    add_booking(at(10), at(14), vehicle=fleet.second_vehicle)
    assert not detector.has_conflict(db, fleet.vehicle.id, at(10), at(14))


def test_excluded_booking_is_ignored(db, fleet, detector, add_booking):
    existing = add_booking(at(10), at(14))
    assert not detector.has_conflict(
        db, fleet.vehicle.id, at(14), at(22), exclude_booking_id=existing.id
    )


def test_stale_pending_can_be_filtered_out(db, fleet, detector, add_booking):
    add_booking(at(10), at(14), status=BookingStatus.PENDING, created_at=at(7, day=10))
    assert detector.has_conflict(db, fleet.vehicle.id, at(12), at(13))
    assert not detector.has_conflict(
        db, fleet.vehicle.id, at(12), at(13), stale_pending_before=NOW
    )


def test_next_available_takes_latest_conflict(db, fleet, detector, add_booking):
    add_booking(at(8), at(10))
    add_booking(at(14), at(16))
    conflicts = detector.find_conflicts(db, fleet.vehicle.id, at(9), at(15))
    assert [b.start_datetime for b in conflicts] == [at(8), at(14)]
    assert detector.next_available_at(conflicts) == at(20)
    assert detector.next_available_at([]) is None
