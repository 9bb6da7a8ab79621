import pytest
from pydantic import ValidationError as SchemaValidationError

from conftest import at
from rentcar.database.models import ActivityLog
from rentcar.exceptions import ConflictError, NotFoundError, PermissionDeniedError, StateError
from rentcar.schemas.review_schema import ReviewCreate


@pytest.fixture
def review_service(services):
    return services.review_service


@pytest.fixture
def completed(db, rented, booking_service, clock, admin):
    booking = rented()
    clock.set(at(16))
    booking_service.return_vehicle(db, admin, booking.id)
    return booking


def test_customer_reviews_a_completed_rental(db, completed, review_service, customer):
    review = review_service.create_review(
        db, customer, ReviewCreate(booking_id=completed.id, rating=5, comment="Clean car")
    )

    assert review.id is not None
    assert review.vehicle_id == completed.vehicle_id
    assert review.user_id == customer.id
    log = db.query(ActivityLog).filter(ActivityLog.object_type == "Review").one()
    assert log.meta == {"booking_id": completed.id, "rating": 5}


def test_one_review_per_booking(db, completed, review_service, customer):
    review_service.create_review(db, customer, ReviewCreate(booking_id=completed.id, rating=4))
    with pytest.raises(ConflictError):
        review_service.create_review(db, customer, ReviewCreate(booking_id=completed.id, rating=1))


def test_only_the_booking_owner_can_review(db, completed, review_service, other_customer, admin):
    for actor in (other_customer, admin):
        with pytest.raises(PermissionDeniedError):
            review_service.create_review(db, actor, ReviewCreate(booking_id=completed.id, rating=3))


def test_unfinished_booking_cannot_be_reviewed(db, book, rented, review_service, customer):
    pending = book(at(10, day=13), at(14, day=13))
    with pytest.raises(StateError):
        review_service.create_review(db, customer, ReviewCreate(booking_id=pending.id, rating=5))

    out = rented()
    with pytest.raises(StateError):
        review_service.create_review(db, customer, ReviewCreate(booking_id=out.id, rating=5))


def test_unknown_booking(db, review_service, customer):
    with pytest.raises(NotFoundError):
        review_service.create_review(db, customer, ReviewCreate(booking_id=999, rating=5))


def test_rating_must_be_one_to_five():
    for rating in (0, 6):
        with pytest.raises(SchemaValidationError):
            ReviewCreate(booking_id=1, rating=rating)


def test_vehicle_reviews_newest_first(db, completed, review_service, customer, fleet):
    review = review_service.create_review(db, customer, ReviewCreate(booking_id=completed.id, rating=4))

    assert [r.id for r in review_service.get_reviews_for_vehicle(db, fleet.vehicle.id)] == [review.id]
    assert review_service.get_reviews_for_vehicle(db, fleet.second_vehicle.id) == []
    with pytest.raises(NotFoundError):
        review_service.get_reviews_for_vehicle(db, 999)
