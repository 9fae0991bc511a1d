import logging
import time
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.booking import AdminBooking
from app.models.customer_booking import CustomerBooking
from app.models.enums import BookingSource, BookingStatus, BLOCKING_STATUSES, UNASSIGNED_STATUSES, VehicleStatus
from app.models.vehicle import Vehicle
from app.schemas.booking import BookingSubmission, BookingUpdateIn, QuickAddIn, ReservationFilters
from app.services import email_service
from app.services.audit_service import log_audit
from app.services.date_intervals import compute_rental_days, intervals_overlap, parse_date_time, to_datetime

logger = logging.getLogger(__name__)

WALK_IN_PICKUP = "Direct"


class BookingNotFound(ValueError):
    pass


class VehicleNotFound(ValueError):
    pass


class BookingVersionConflict(ValueError):
    """The caller edited a stale copy of the booking."""


class BookingPersistenceError(RuntimeError):
    """The primary customer record could not be saved."""


# --- references --------------------------------------------------------------

def _reference_prefix(now: datetime) -> str:
    return f"{settings.BOOKING_REFERENCE_PREFIX}-{now.year:04d}-{now.month:02d}-"


def _max_sequence(db: Session, prefix: str) -> int:
    refs = list(db.scalars(select(CustomerBooking.booking_reference).where(CustomerBooking.booking_reference.like(prefix + "%"))))
    refs += list(db.scalars(select(AdminBooking.booking_reference).where(AdminBooking.booking_reference.like(prefix + "%"))))
    best = 0
    for ref in refs:
        tail = ref[len(prefix):]
        if tail.isdigit():
            best = max(best, int(tail))
    return best


def generate_booking_reference(db: Session, now: datetime | None = None) -> str:
    """HD-YYYY-MM-NNNN, one past the highest sequence issued this month in either table."""
    now = now or datetime.now(timezone.utc)
    prefix = _reference_prefix(now)
    try:
        seq = _max_sequence(db, prefix) + 1
    except SQLAlchemyError as e:
        db.rollback()
        fallback = str(int(time.time() * 1000))[-4:]
        logger.warning("reference lookup failed, using timestamp sequence %s: %s", fallback, e)
        return prefix + fallback
    return f"{prefix}{seq:04d}"


# --- pricing -------------------------------------------------------------------

# Offered on the booking page; the additional driver is the separate additionalDriver flag.
SUPPLEMENT_CATALOG = {
    "child_seat_all": {"type": "child_seat", "name": "Siège bébé enfants et rehausseur", "pricePerDay": 3},
    "insurance_basic": {"type": "insurance", "name": "Assurance de base", "pricePerDay": 0},
    "insurance_standard": {"type": "insurance", "name": "Assurance standard", "pricePerDay": 12},
    "insurance_premium": {"type": "insurance", "name": "Assurance premium", "pricePerDay": 20},
}


class UnknownSupplement(ValueError):
    pass


def price_supplements(selected) -> list[dict]:
    """Resolve the client's picks against the catalog. Client-sent names and prices are never used."""
    priced = []
    for s in selected or []:
        sid = s["id"] if isinstance(s, dict) else s.id
        entry = SUPPLEMENT_CATALOG.get(sid)
        if entry is None:
            raise UnknownSupplement(f"unknown supplement {sid!r}")
        qty = s.get("quantity") if isinstance(s, dict) else s.quantity
        priced.append({"id": sid, **entry, "quantity": qty})
    return priced


def compute_supplements_total(supplements, additional_driver: bool, rental_days: int) -> int:
    total = 0
    for s in supplements or []:
        price = s["pricePerDay"] if isinstance(s, dict) else s.pricePerDay
        qty = (s.get("quantity") if isinstance(s, dict) else s.quantity) or 1
        total += price * qty * rental_days
    if additional_driver:
        total += settings.ADDITIONAL_DRIVER_PRICE_PER_DAY * rental_days
    return total


# --- lookups -------------------------------------------------------------------

def get_booking(db: Session, booking_id: str) -> AdminBooking:
    b = db.get(AdminBooking, booking_id)
    if not b:
        raise BookingNotFound("booking not found")
    return b


def get_booking_by_reference(db: Session, reference: str) -> AdminBooking:
    b = db.query(AdminBooking).filter(AdminBooking.booking_reference == reference).first()
    if not b:
        raise BookingNotFound("booking not found")
    return b


def get_vehicle(db: Session, vehicle_id: int) -> Vehicle:
    v = db.get(Vehicle, vehicle_id)
    if not v:
        raise VehicleNotFound("vehicle not found")
    return v


def list_vehicles(db: Session, include_retired: bool = True) -> list[Vehicle]:
    q = select(Vehicle).order_by(Vehicle.id.asc())
    if not include_retired:
        q = q.where(Vehicle.status != VehicleStatus.RETIRED.value)
    return list(db.scalars(q))


def _check_version(b: AdminBooking, expected_version: int | None) -> None:
    if expected_version is not None and expected_version != b.version:
        raise BookingVersionConflict(f"booking was modified (version {b.version}, expected {expected_version})")


# --- creation ------------------------------------------------------------------

def create_booking(db: Session, submission: BookingSubmission) -> CustomerBooking:
    """Customer submission: write the full record, then mirror it for the back office."""
    vehicle = get_vehicle(db, submission.vehicleId)
    if vehicle.status != VehicleStatus.AVAILABLE.value:
        raise ValueError("vehicle is not available for booking")

    rental_days = compute_rental_days(to_datetime(submission.departureDate), to_datetime(submission.returnDate))
    vehicle_total = vehicle.price_per_day * rental_days
    supplements = price_supplements(submission.supplements)
    supplements_total = compute_supplements_total(supplements, submission.additionalDriver, rental_days)
    ref = generate_booking_reference(db)

    ci = submission.clientInfo
    cb = CustomerBooking(
        id=str(uuid.uuid4()),
        booking_reference=ref,
        status=BookingStatus.PENDING.value,
        departure_date=submission.departureDate,
        return_date=submission.returnDate,
        rental_days=rental_days,
        pickup_location=submission.pickupLocation,
        custom_pickup_location=submission.customPickupLocation,
        return_location=submission.returnLocation if submission.differentReturnLocation else None,
        different_return_location=submission.differentReturnLocation,
        vehicle_id=vehicle.id,
        vehicle_name=vehicle.name,
        vehicle_brand=vehicle.brand or "",
        vehicle_model=vehicle.model or "",
        vehicle_category=vehicle.category or "",
        vehicle_price_per_day=vehicle.price_per_day,
        supplements=supplements,
        additional_driver=submission.additionalDriver,
        first_name=ci.firstName,
        last_name=ci.lastName,
        email=ci.email,
        phone=ci.phone,
        country=ci.country,
        city=ci.city,
        address=ci.address,
        date_of_birth=ci.dateOfBirth,
        license_number=ci.driverLicense.documentNumber,
        license_issue_date=ci.driverLicense.issueDate,
        license_expiration_date=ci.driverLicense.expirationDate,
        extra_information=ci.extraInformation,
        notes=ci.notes,
        payment_method=ci.paymentMethod,
        vehicle_total=vehicle_total,
        supplements_total=supplements_total,
        total_price=vehicle_total + supplements_total,
        user_agent=submission.userAgent,
        locale=submission.locale,
    )
    try:
        db.add(cb)
        log_audit(db, "web", "booking.submitted", "booking", ref, {"vehicleId": vehicle.id, "total": cb.total_price})
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("saving booking %s failed", ref)
        raise BookingPersistenceError("booking could not be saved") from e
    db.refresh(cb)

    try:
        mirror_to_admin(db, cb)
    except Exception:
        db.rollback()
        logger.exception("admin mirror for %s failed; customer booking kept", ref)

    email_service.dispatch_booking_received(ref)
    return cb


def mirror_to_admin(db: Session, cb: CustomerBooking) -> AdminBooking:
    dep, dep_time = parse_date_time(cb.departure_date)
    ret, ret_time = parse_date_time(cb.return_date)
    b = AdminBooking(
        id=str(uuid.uuid4()),
        booking_reference=cb.booking_reference,
        status=BookingStatus.PENDING.value,
        source=BookingSource.WEB.value,
        departure_date=dep,
        return_date=ret,
        pickup_time=dep_time,
        return_time=ret_time,
        rental_days=cb.rental_days,
        pickup_location=cb.custom_pickup_location or cb.pickup_location,
        vehicle_id=cb.vehicle_id,
        vehicle_name=cb.vehicle_name,
        assigned_vehicle_id=cb.vehicle_id,
        client_name=f"{cb.first_name} {cb.last_name}".strip(),
        client_phone=cb.phone,
        client_email=cb.email,
        total_price=cb.total_price,
        version=1,
    )
    db.add(b)
    db.commit()
    return b


def create_walk_in_booking(db: Session, data: QuickAddIn, actor: str = "admin") -> AdminBooking:
    vehicle = get_vehicle(db, data.vehicleId)
    rental_days = compute_rental_days(data.departureDate, data.returnDate)
    price_per_day = data.pricePerDay if data.pricePerDay is not None else vehicle.price_per_day
    b = AdminBooking(
        id=str(uuid.uuid4()),
        booking_reference=generate_booking_reference(db),
        status=BookingStatus.ACTIVE.value,
        source=BookingSource.WALK_IN.value,
        departure_date=data.departureDate,
        return_date=data.returnDate,
        pickup_time=data.pickupTime,
        return_time=data.returnTime,
        rental_days=rental_days,
        pickup_location=WALK_IN_PICKUP,
        vehicle_id=vehicle.id,
        vehicle_name=vehicle.name,
        assigned_vehicle_id=vehicle.id,
        client_name=data.clientName.strip(),
        client_phone=(data.clientPhone or "").strip(),
        client_email=(data.clientEmail or "").strip().lower() or None,
        total_price=price_per_day * rental_days,
        version=1,
    )
    db.add(b)
    log_audit(db, actor, "booking.walk_in", "booking", b.id, {"reference": b.booking_reference, "vehicleId": vehicle.id})
    db.commit()
    db.refresh(b)
    return b


# --- staff mutations -------------------------------------------------------------

def update_booking_status(db: Session, booking_id: str, status, expected_version: int | None = None, actor: str = "admin") -> AdminBooking:
    """Any transition is allowed. Entering active notifies the client when an email is on file."""
    b = get_booking(db, booking_id)
    _check_version(b, expected_version)
    new_status = BookingStatus.parse(status)
    try:
        previous = BookingStatus.parse(b.status)
    except ValueError:
        previous = None
    b.status = new_status.value
    b.touch()
    log_audit(db, actor, "booking.status", "booking", b.id, {"from": previous.value if previous else None, "to": new_status.value})
    db.commit()
    db.refresh(b)

    if new_status == BookingStatus.ACTIVE and previous != BookingStatus.ACTIVE and b.client_email:
        email_service.dispatch_booking_confirmation(b.id)
    return b


def assign_vehicle(db: Session, booking_id: str, vehicle_id: int, expected_version: int | None = None, actor: str = "admin") -> AdminBooking:
    # No availability check here; callers only offer free vehicles.
    b = get_booking(db, booking_id)
    _check_version(b, expected_version)
    previous = b.assigned_vehicle_id
    b.assigned_vehicle_id = vehicle_id
    b.touch()
    log_audit(db, actor, "booking.assign", "booking", b.id, {"from": previous, "to": vehicle_id})
    db.commit()
    db.refresh(b)
    return b


def reschedule_booking(db: Session, booking_id: str, new_start: date, new_end: date | None = None,
                       new_vehicle_id: int | None = None, expected_version: int | None = None,
                       actor: str = "admin") -> AdminBooking | None:
    """Move a booking in time on its own row. Returns None when asked to change vehicle."""
    b = get_booking(db, booking_id)
    if new_vehicle_id is not None and new_vehicle_id != b.effective_vehicle_id:
        logger.info("reschedule of %s onto vehicle %s ignored; use assignment instead", b.booking_reference, new_vehicle_id)
        return None
    _check_version(b, expected_version)

    if new_end is None:
        new_end = new_start + (b.return_date - b.departure_date)
    if new_end < new_start:
        raise ValueError("returnDate must not be before departureDate")

    previous = (b.departure_date.isoformat(), b.return_date.isoformat())
    b.departure_date = new_start
    b.return_date = new_end
    b.rental_days = compute_rental_days(new_start, new_end)
    b.touch()
    log_audit(db, actor, "booking.reschedule", "booking", b.id,
              {"from": previous, "to": (new_start.isoformat(), new_end.isoformat())})
    db.commit()
    db.refresh(b)
    return b


def update_booking(db: Session, booking_id: str, changes: BookingUpdateIn, actor: str = "admin") -> AdminBooking:
    """Details-modal edit. A date change without explicit rental days recomputes them; price is kept as typed."""
    b = get_booking(db, booking_id)
    _check_version(b, changes.expectedVersion)
    data = changes.model_dump(exclude_unset=True, exclude={"expectedVersion"})

    columns = {
        "clientName": "client_name",
        "clientPhone": "client_phone",
        "clientEmail": "client_email",
        "departureDate": "departure_date",
        "returnDate": "return_date",
        "pickupTime": "pickup_time",
        "returnTime": "return_time",
        "rentalDays": "rental_days",
        "totalPrice": "total_price",
    }
    for key, value in data.items():
        if key in ("clientName",) and not (value or "").strip():
            raise ValueError("clientName cannot be empty")
        if key in ("clientPhone",) and value is None:
            value = ""
        if key in ("rentalDays", "totalPrice", "departureDate", "returnDate") and value is None:
            continue
        setattr(b, columns[key], value.strip() if isinstance(value, str) else value)
    if not b.client_email:
        b.client_email = None

    if b.return_date < b.departure_date:
        raise ValueError("returnDate must not be before departureDate")
    if ("departureDate" in data or "returnDate" in data) and data.get("rentalDays") is None:
        b.rental_days = compute_rental_days(b.departure_date, b.return_date)

    b.touch()
    log_audit(db, actor, "booking.update", "booking", b.id, data)
    db.commit()
    db.refresh(b)
    return b


def delete_booking(db: Session, booking_id: str, actor: str = "admin") -> None:
    """Hard delete of the scheduling record and the customer submission sharing its reference."""
    b = get_booking(db, booking_id)
    ref = b.booking_reference
    db.query(CustomerBooking).filter(CustomerBooking.booking_reference == ref).delete(synchronize_session=False)
    db.delete(b)
    log_audit(db, actor, "booking.delete", "booking", booking_id, {"reference": ref})
    db.commit()


# --- listing & dashboard -----------------------------------------------------------

def list_bookings(db: Session, filters: ReservationFilters | None = None) -> list[AdminBooking]:
    filters = filters or ReservationFilters()
    q = db.query(AdminBooking)
    if filters.search.strip():
        like = f"%{filters.search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(AdminBooking.client_name).like(like),
            func.lower(AdminBooking.booking_reference).like(like),
            func.lower(AdminBooking.vehicle_name).like(like),
            AdminBooking.client_phone.like(like),
        ))
    if filters.status != "all":
        q = q.filter(AdminBooking.status == filters.status)
    if filters.dateFrom:
        q = q.filter(AdminBooking.departure_date >= filters.dateFrom)
    if filters.dateTo:
        q = q.filter(AdminBooking.departure_date <= filters.dateTo)
    return q.order_by(AdminBooking.departure_date.desc(), AdminBooking.created_at.desc()).all()


def unassigned_bookings(bookings) -> list:
    out = []
    for b in bookings:
        try:
            status = BookingStatus.parse(b.status)
        except ValueError:
            continue
        if b.assigned_vehicle_id is None and status in UNASSIGNED_STATUSES:
            out.append(b)
    return out


def dashboard_kpis(db: Session, today: date | None = None) -> dict:
    today = today or date.today()
    vehicles = list_vehicles(db)
    busy_today = {
        b.effective_vehicle_id
        for b in db.query(AdminBooking).filter(AdminBooking.status.in_([s.value for s in BLOCKING_STATUSES])).all()
        if intervals_overlap(b.departure_date, b.return_date, today, today)
    }
    counts = dict(db.query(AdminBooking.status, func.count(AdminBooking.id)).group_by(AdminBooking.status).all())
    return {
        "totalCars": len(vehicles),
        "availableCars": sum(1 for v in vehicles if v.status == VehicleStatus.AVAILABLE.value and v.id not in busy_today),
        "activeReservations": counts.get(BookingStatus.ACTIVE.value, 0),
        "pendingReservations": counts.get(BookingStatus.PENDING.value, 0) + counts.get(BookingStatus.NEW.value, 0),
    }


def set_vehicle_status(db: Session, vehicle_id: int, status, actor: str = "admin") -> Vehicle:
    v = get_vehicle(db, vehicle_id)
    new_status = VehicleStatus(status)
    previous = v.status
    v.status = new_status.value
    log_audit(db, actor, "vehicle.status", "vehicle", v.id, {"from": previous, "to": new_status.value})
    db.commit()
    db.refresh(v)
    return v


def toggle_vehicle_maintenance(db: Session, vehicle_id: int, actor: str = "admin") -> Vehicle:
    v = get_vehicle(db, vehicle_id)
    if v.status == VehicleStatus.RETIRED.value:
        raise ValueError("retired vehicles cannot be toggled")
    target = VehicleStatus.AVAILABLE if v.status == VehicleStatus.MAINTENANCE.value else VehicleStatus.MAINTENANCE
    return set_vehicle_status(db, vehicle_id, target, actor=actor)

