from typing import NamedTuple, Optional

from rentcar.config import BookingPolicy
from rentcar.services.booking_service import BookingService
from rentcar.services.cache_service import Cache
from rentcar.services.clock import SystemClock
from rentcar.services.fleet_service import FleetService
from rentcar.services.invoice_service import InvoiceService
from rentcar.services.notification_service import NotificationSink, Notifier
from rentcar.services.payment_service import PaymentService
from rentcar.services.review_service import ReviewService
from rentcar.services.storage_service import ObjectStorage


class Services(NamedTuple):
    clock: object
    booking_service: BookingService
    payment_service: PaymentService
    invoice_service: InvoiceService
    fleet_service: FleetService
    review_service: ReviewService


def build_services(
    policy: BookingPolicy,
    cache: Cache,
    sink: NotificationSink,
    storage: ObjectStorage,
    invoice_bucket: str,
    clock: Optional[object] = None,
    cache_ttl: int = 300,
    url_ttl_seconds: int = 3600,
) -> Services:
    """Wire the collaborators together once; the result is shared by every request."""
    clock = clock or SystemClock()
    notifier = Notifier(sink)
    invoice_service = InvoiceService(storage, invoice_bucket, url_ttl_seconds)
    return Services(
        clock=clock,
        booking_service=BookingService(
            policy, cache, notifier, invoice_service, clock=clock, cache_ttl=cache_ttl
        ),
        payment_service=PaymentService(cache, notifier, clock=clock),
        invoice_service=invoice_service,
        fleet_service=FleetService(cache, cache_ttl=cache_ttl),
        review_service=ReviewService(clock=clock),
    )
