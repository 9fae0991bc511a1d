import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.booking import BookingCreatedOut, BookingSubmission
from app.schemas.vehicle import AvailabilityOut, ConflictOut, VehicleAvailabilityOut, VehicleOut
from app.services import booking_service
from app.services.availability_service import (
    AvailabilityUnavailable, badge_text, check_vehicle_availability, format_conflict_dates, get_booked_vehicle_ids,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])

SAVE_FAILED_MESSAGE = "Une erreur est survenue lors de l'enregistrement de votre réservation. Veuillez réessayer."


def _check_range(start: date, end: date):
    if end < start:
        raise HTTPException(status_code=400, detail="endDate must not be before startDate")


@router.get("/public/vehicles", response_model=list[VehicleOut])
def list_vehicles(db: Session = Depends(get_db)):
    """Fleet offered on the booking page (retired cars are hidden)."""
    return [VehicleOut.from_model(v) for v in booking_service.list_vehicles(db, include_retired=False)]


@router.get("/public/availability", response_model=AvailabilityOut)
def availability(startDate: date, endDate: date, db: Session = Depends(get_db)):
    _check_range(startDate, endDate)
    try:
        checked = check_vehicle_availability(db, startDate, endDate)
    except AvailabilityUnavailable:
        raise HTTPException(status_code=503, detail="Disponibilités momentanément indisponibles")
    return AvailabilityOut(
        startDate=startDate.isoformat(),
        endDate=endDate.isoformat(),
        degraded=checked.degraded,
        items=[
            VehicleAvailabilityOut(
                vehicleId=r.vehicle_id,
                status=r.status,
                badge=badge_text(r.status),
                conflictDates=format_conflict_dates(r.conflicts),
                conflicts=[ConflictOut(startDate=c.start.isoformat(), endDate=c.end.isoformat(),
                                       bookingReference=c.booking_reference) for c in r.conflicts],
            )
            for r in checked.items
        ],
    )


@router.get("/public/booked-vehicle-ids")
def booked_vehicle_ids(departureDate: date, returnDate: date, db: Session = Depends(get_db)):
    _check_range(departureDate, returnDate)
    try:
        return {"vehicleIds": get_booked_vehicle_ids(db, departureDate, returnDate)}
    except AvailabilityUnavailable:
        raise HTTPException(status_code=503, detail="Disponibilités momentanément indisponibles")


@router.post("/public/bookings", response_model=BookingCreatedOut, status_code=201)
def submit_booking(body: BookingSubmission, db: Session = Depends(get_db)):
    try:
        cb = booking_service.create_booking(db, body)
    except booking_service.VehicleNotFound:
        raise HTTPException(status_code=404, detail="vehicle not found")
    except booking_service.BookingPersistenceError:
        raise HTTPException(status_code=500, detail=SAVE_FAILED_MESSAGE)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BookingCreatedOut(
        bookingReference=cb.booking_reference,
        status=cb.status,
        rentalDays=cb.rental_days,
        vehicleTotal=cb.vehicle_total,
        supplementsTotal=cb.supplements_total,
        totalPrice=cb.total_price,
    )


@router.get("/public/bookings/{reference}")
def booking_status(reference: str, db: Session = Depends(get_db)):
    """Lookup by reference for the confirmation page."""
    try:
        b = booking_service.get_booking_by_reference(db, reference.strip().upper())
    except booking_service.BookingNotFound:
        raise HTTPException(status_code=404, detail="booking not found")
    return {
        "bookingReference": b.booking_reference,
        "status": b.status,
        "departureDate": b.departure_date.isoformat(),
        "returnDate": b.return_date.isoformat(),
        "vehicleName": b.vehicle_name,
        "rentalDays": b.rental_days,
        "totalPrice": b.total_price,
    }
