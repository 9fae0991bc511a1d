"""
Vehicle availability for a requested rental window.

`resolve_availability` is the pure classifier; `check_vehicle_availability`
is the database-backed wrapper used by the public booking flow. The wrapper
applies AVAILABILITY_FAILURE_POLICY when the lookup itself fails.
"""
import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.booking import AdminBooking
from app.models.enums import AvailabilityStatus, BookingStatus, BLOCKING_STATUSES, VehicleStatus
from app.models.vehicle import Vehicle
from app.services.date_intervals import contains_fully, intervals_overlap, parse_date

logger = logging.getLogger(__name__)

# escalation order; a classification never moves left
_RANK = {
    AvailabilityStatus.AVAILABLE: 0,
    AvailabilityStatus.PARTIAL_CONFLICT: 1,
    AvailabilityStatus.UNAVAILABLE: 2,
}

BADGE_TEXT = {
    AvailabilityStatus.AVAILABLE: "Disponible",
    AvailabilityStatus.PARTIAL_CONFLICT: "Partiellement réservé",
    AvailabilityStatus.UNAVAILABLE: "Non disponible",
    AvailabilityStatus.MAINTENANCE: "En maintenance",
}

_MONTHS_FR = ["janv.", "févr.", "mars", "avr.", "mai", "juin",
              "juil.", "août", "sept.", "oct.", "nov.", "déc."]


class AvailabilityUnavailable(ValueError):
    """Raised by the fail-closed policy when bookings cannot be read."""


@dataclass
class Conflict:
    start: date
    end: date
    booking_reference: str | None = None


@dataclass
class VehicleAvailability:
    vehicle_id: int
    status: AvailabilityStatus
    conflicts: list[Conflict] = field(default_factory=list)


def _is_blocking(booking) -> bool:
    try:
        return BookingStatus.parse(booking.status) in BLOCKING_STATUSES
    except ValueError:
        logger.warning("ignoring booking %s with unknown status %r", getattr(booking, "id", "?"), booking.status)
        return False


def _blocking_vehicle_id(booking) -> int:
    return booking.assigned_vehicle_id or booking.vehicle_id


def resolve_availability_details(requested_start, requested_end, bookings, vehicles) -> dict[int, VehicleAvailability]:
    start = parse_date(requested_start)
    end = parse_date(requested_end)

    result: dict[int, VehicleAvailability] = {}
    for v in vehicles:
        status = AvailabilityStatus.MAINTENANCE if v.status == VehicleStatus.MAINTENANCE.value else AvailabilityStatus.AVAILABLE
        result[v.id] = VehicleAvailability(vehicle_id=v.id, status=status)

    for b in bookings:
        if not _is_blocking(b):
            continue
        entry = result.get(_blocking_vehicle_id(b))
        if entry is None or entry.status == AvailabilityStatus.MAINTENANCE:
            continue
        b_start, b_end = parse_date(b.departure_date), parse_date(b.return_date)
        if not intervals_overlap(b_start, b_end, start, end):
            continue
        entry.conflicts.append(Conflict(b_start, b_end, getattr(b, "booking_reference", None)))
        candidate = AvailabilityStatus.UNAVAILABLE if contains_fully(b_start, b_end, start, end) else AvailabilityStatus.PARTIAL_CONFLICT
        if _RANK[candidate] > _RANK[entry.status]:
            entry.status = candidate
    return result


def resolve_availability(requested_start, requested_end, bookings, vehicles) -> dict[int, AvailabilityStatus]:
    details = resolve_availability_details(requested_start, requested_end, bookings, vehicles)
    return {vid: d.status for vid, d in details.items()}


def _load_overlapping(db: Session, start: date, end: date) -> list[AdminBooking]:
    # Coarse filter in SQL; the resolver applies the exact overlap predicate.
    return list(db.scalars(
        select(AdminBooking).where(
            AdminBooking.status.in_([s.value for s in BLOCKING_STATUSES]),
            AdminBooking.departure_date <= end,
            AdminBooking.return_date >= start,
        )
    ))


@dataclass
class AvailabilityResult:
    items: list[VehicleAvailability] = field(default_factory=list)
    # True when the lookup failed and the caller should treat every vehicle as available
    degraded: bool = False


def check_vehicle_availability(db: Session, start_date, end_date, policy: str | None = None) -> AvailabilityResult:
    """Availability for every vehicle, flagged degraded when bookings could not be read."""
    start, end = parse_date(start_date), parse_date(end_date)
    policy = (policy or settings.AVAILABILITY_FAILURE_POLICY).lower()
    try:
        bookings = _load_overlapping(db, start, end)
        vehicles = list(db.scalars(select(Vehicle).order_by(Vehicle.id.asc())))
    except SQLAlchemyError as e:
        db.rollback()
        if policy == "closed":
            logger.error("availability lookup failed, refusing bookings (fail-closed): %s", e)
            raise AvailabilityUnavailable("availability temporarily unavailable") from e
        logger.warning("availability lookup failed, reporting all vehicles available (fail-open): %s", e)
        return AvailabilityResult(degraded=True)
    return AvailabilityResult(items=list(resolve_availability_details(start, end, bookings, vehicles).values()))


def get_booked_vehicle_ids(db: Session, departure_date, return_date) -> list[int]:
    """Vehicles with a blocking booking overlapping the window; hidden on the public booking page."""
    start, end = parse_date(departure_date), parse_date(return_date)
    try:
        bookings = _load_overlapping(db, start, end)
    except SQLAlchemyError as e:
        db.rollback()
        if (settings.AVAILABILITY_FAILURE_POLICY or "open") == "closed":
            raise AvailabilityUnavailable("availability temporarily unavailable") from e
        logger.warning("booked vehicle lookup failed, hiding nothing: %s", e)
        return []
    ids = {
        _blocking_vehicle_id(b)
        for b in bookings
        if intervals_overlap(b.departure_date, b.return_date, start, end) and _blocking_vehicle_id(b)
    }
    return sorted(ids)


def badge_text(status: AvailabilityStatus) -> str:
    return BADGE_TEXT[AvailabilityStatus(status)]


def format_conflict_dates(conflicts: list[Conflict]) -> str:
    """"3 juil. - 10 juil." for the first conflict, empty when there is none."""
    if not conflicts:
        return ""
    c = conflicts[0]

    def fmt(d: date) -> str:
        return f"{d.day} {_MONTHS_FR[d.month - 1]}"

    return f"{fmt(c.start)} - {fmt(c.end)}"
