import logging
import threading
import time
from typing import Any, Dict, Optional, Protocol, Tuple

from rentcar.enums.user_role import UserRole

logger = logging.getLogger(__name__)


class Cache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set_with_ttl(self, key: str, value: Any, ttl: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def delete_prefix(self, prefix: str) -> None: ...


class InMemoryCache:
    """Thread-safe TTL cache keyed by plain strings."""

    def __init__(self, timer=time.monotonic):
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._timer = timer

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._timer() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set_with_ttl(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._timer() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [k for k in self._entries if k.startswith(prefix)]:
                del self._entries[key]

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


# Key builders. Every cached read and every invalidation goes through these so
# the two sides cannot drift apart.

VEHICLE_LIST_PREFIX = "vehicles:page:"


def vehicle_list_key(page: int, limit: int) -> str:
    return f"{VEHICLE_LIST_PREFIX}{page}:limit:{limit}"


def vehicle_detail_key(vehicle_id: int) -> str:
    return f"vehicle:{vehicle_id}"


def booking_detail_key(booking_id: int) -> str:
    return f"booking:detail:{booking_id}"


def booking_list_key(role: UserRole, user_id: int, page: int) -> str:
    if role == UserRole.ADMIN:
        return f"bookings:admin:page:{page}"
    return f"bookings:user:{user_id}:page:{page}"


def booking_list_prefix_for_user(user_id: int) -> str:
    return f"bookings:user:{user_id}:"


ADMIN_BOOKING_LIST_PREFIX = "bookings:admin:"


class CacheInvalidator:
    """Deletes the cache keys a booking mutation affects.

    Failures are logged and swallowed: the mutation has already committed, and
    a stale entry only lives until its TTL runs out.
    """

    def __init__(self, cache: Cache):
        self.cache = cache

    def booking_changed(self, booking_id: Optional[int], user_id: int, vehicle_id: Optional[int] = None):
        keys = [VEHICLE_LIST_PREFIX, ADMIN_BOOKING_LIST_PREFIX, booking_list_prefix_for_user(user_id)]
        for prefix in keys:
            self._safe(self.cache.delete_prefix, prefix)
        if booking_id is not None:
            self._safe(self.cache.delete, booking_detail_key(booking_id))
        if vehicle_id is not None:
            self._safe(self.cache.delete, vehicle_detail_key(vehicle_id))

    def vehicles_changed(self, vehicle_id: Optional[int] = None):
        self._safe(self.cache.delete_prefix, VEHICLE_LIST_PREFIX)
        if vehicle_id is not None:
            self._safe(self.cache.delete, vehicle_detail_key(vehicle_id))

    def _safe(self, operation, key: str):
        try:
            operation(key)
        except Exception:
            logger.warning("Cache invalidation failed for %s", key, exc_info=True)
