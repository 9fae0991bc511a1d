from enum import Enum


class BookingStatus(str, Enum):
    """Admin scheduling status. Flow: new -> pending -> active -> completed, cancelled from anywhere."""

    NEW = "new"
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value) -> "BookingStatus":
        """Accept enum members, canonical strings and the legacy customer-table vocabulary."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"unknown booking status {value!r}")
        raw = value.strip().lower()
        raw = LEGACY_STATUS_ALIASES.get(raw, raw)
        return cls(raw)


# Customer submissions used pending/confirmed/completed/cancelled; confirmed == active.
LEGACY_STATUS_ALIASES = {"confirmed": "active"}

BLOCKING_STATUSES = frozenset({BookingStatus.NEW, BookingStatus.PENDING, BookingStatus.ACTIVE})
UNASSIGNED_STATUSES = frozenset({BookingStatus.NEW, BookingStatus.PENDING})


class BookingSource(str, Enum):
    WEB = "web"
    WALK_IN = "walk_in"
    PHONE = "phone"


class VehicleStatus(str, Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    PARTIAL_CONFLICT = "partial_conflict"
    UNAVAILABLE = "unavailable"
    MAINTENANCE = "maintenance"
