from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy.pool import StaticPool

from rentcar.config import BookingPolicy
from rentcar.database.init import create_session_factory, init_db
from rentcar.database.models import Location, RentalPackage, User, Vehicle, VehicleType
from rentcar.enums.user_role import UserRole
from rentcar.schemas.auth_schema import Actor
from rentcar.schemas.booking_schema import BookingCreate
from rentcar.services.cache_service import InMemoryCache
from rentcar.services.clock import FrozenClock
from rentcar.services.container import build_services
from rentcar.services.notification_service import RecordingNotificationSink
from rentcar.services.storage_service import InMemoryObjectStorage

NOW = datetime(2030, 1, 10, 8, 0)


def at(hour, minute=0, day=11):
    """A wall-clock time in January 2030; bookings in the tests live on the 11th."""
    return datetime(2030, 1, day, hour, minute)


def _seed_fleet(db):
    customer = User(name="Jane Nguyen", email="jane@example.com", role=UserRole.CUSTOMER.value)
    other = User(name="Omar Tran", email="omar@example.com", role=UserRole.CUSTOMER.value)
    admin = User(name="Ada Le", email="ada@example.com", role=UserRole.ADMIN.value)
    location = Location(name="Downtown", address="1 Trang Tien", city="Hanoi")
    sedan = VehicleType(name="Sedan", required_deposit=100)
    suv = VehicleType(name="SUV", required_deposit=300)
    db.add_all([customer, other, admin, location, sedan, suv])
    db.flush()

    vehicle = Vehicle(
        title="Toyota Vios", plate_number="29A-12345", vehicle_type_id=sedan.id, location_id=location.id
    )
    second_vehicle = Vehicle(
        title="Honda City", plate_number="29A-67890", vehicle_type_id=sedan.id, location_id=location.id
    )
    package = RentalPackage(vehicle_type_id=sedan.id, name="4 hours", duration_hours=4, price=40)
    suv_package = RentalPackage(vehicle_type_id=suv.id, name="SUV 4 hours", duration_hours=4, price=90)
    db.add_all([vehicle, second_vehicle, package, suv_package])
    db.commit()

    return SimpleNamespace(
        customer=customer,
        other=other,
        admin=admin,
        location=location,
        sedan=sedan,
        suv=suv,
        vehicle=vehicle,
        second_vehicle=second_vehicle,
        package=package,
        suv_package=suv_package,
    )


@pytest.fixture
def seed_fleet():
    return _seed_fleet


@pytest.fixture
def session_factory():
    factory = create_session_factory(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(factory)
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def policy():
    return BookingPolicy()


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
def storage():
    return InMemoryObjectStorage()


@pytest.fixture
def services(policy, cache, sink, storage, clock):
    return build_services(policy, cache, sink, storage, "invoices", clock=clock)


@pytest.fixture
def booking_service(services):
    return services.booking_service


@pytest.fixture
def fleet(db):
    return _seed_fleet(db)


@pytest.fixture
def customer(fleet):
    return Actor(id=fleet.customer.id, role=UserRole.CUSTOMER)


@pytest.fixture
def other_customer(fleet):
    return Actor(id=fleet.other.id, role=UserRole.CUSTOMER)


@pytest.fixture
def admin(fleet):
    return Actor(id=fleet.admin.id, role=UserRole.ADMIN)


@pytest.fixture
def book(db, booking_service, fleet, customer):
    """Create a booking on the fleet's first vehicle unless told otherwise."""

    def _book(start, end, actor=None, vehicle=None, package=None):
        booking_in = BookingCreate(
            vehicle_id=(vehicle or fleet.vehicle).id,
            package_id=(package or fleet.package).id,
            start_datetime=start,
            end_datetime=end,
        )
        return booking_service.create(db, actor or customer, booking_in)

    return _book


@pytest.fixture
def rented(db, clock, booking_service, book, admin):
    """A 10:00-16:00 booking, confirmed and picked up on time with a 100 deposit."""

    def _rented(start=None, end=None):
        booking = book(start or at(10), end or at(16))
        booking_service.confirm(db, admin, booking.id)
        clock.set(booking.start_datetime)
        booking_service.pickup(db, admin, booking.id, 100, "cash")
        return booking

    return _rented
