import json
import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import StaffSession, get_dashboard, require_admin
from app.db.session import get_db
from app.schemas.booking import (
    AssignVehicleIn, BookingOut, BookingUpdateIn, QuickAddIn, ReservationFilters, RescheduleIn, StatusChangeIn,
)
from app.schemas.vehicle import DashboardKPIsOut, VehicleOut, VehicleStatusIn
from app.services import booking_service
from app.services.audit_service import list_audit
from app.services.dashboard_controller import DashboardController

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, (booking_service.BookingNotFound, booking_service.VehicleNotFound)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, booking_service.BookingVersionConflict):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def _db_failure(db: Session) -> HTTPException:
    db.rollback()
    logger.exception("admin write failed; transaction rolled back")
    return HTTPException(status_code=500, detail="La modification n'a pas pu être enregistrée. Veuillez réessayer.")


@router.get("/admin/bookings", response_model=list[BookingOut])
def list_bookings(search: str = "", status: str = "all", dateFrom: date | None = None, dateTo: date | None = None,
                  db: Session = Depends(get_db), me: StaffSession = Depends(require_admin)):
    try:
        filters = ReservationFilters(search=search, status=status, dateFrom=dateFrom, dateTo=dateTo)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid filters")
    return [BookingOut.from_model(b) for b in booking_service.list_bookings(db, filters)]


@router.get("/admin/bookings/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: str, db: Session = Depends(get_db), me: StaffSession = Depends(require_admin)):
    try:
        return BookingOut.from_model(booking_service.get_booking(db, booking_id))
    except ValueError as e:
        raise _http_error(e)


@router.post("/admin/bookings", response_model=BookingOut, status_code=201)
def create_walk_in(body: QuickAddIn, db: Session = Depends(get_db),
                   me: StaffSession = Depends(require_admin), ctl: DashboardController = Depends(get_dashboard)):
    try:
        b = booking_service.create_walk_in_booking(db, body, actor=me.username)
    except ValueError as e:
        raise _http_error(e)
    except SQLAlchemyError:
        raise _db_failure(db)
    ctl.load()
    ctl.store.close_quick_add()
    return BookingOut.from_model(b)


@router.patch("/admin/bookings/{booking_id}", response_model=BookingOut)
def update_booking(booking_id: str, body: BookingUpdateIn, db: Session = Depends(get_db),
                   me: StaffSession = Depends(require_admin), ctl: DashboardController = Depends(get_dashboard)):
    try:
        b = booking_service.update_booking(db, booking_id, body, actor=me.username)
    except ValueError as e:
        raise _http_error(e)
    except SQLAlchemyError:
        raise _db_failure(db)
    ctl.load()
    return BookingOut.from_model(b)


@router.post("/admin/bookings/{booking_id}/status", response_model=BookingOut)
def change_status(booking_id: str, body: StatusChangeIn, db: Session = Depends(get_db),
                  me: StaffSession = Depends(require_admin), ctl: DashboardController = Depends(get_dashboard)):
    try:
        b = booking_service.update_booking_status(db, booking_id, body.status, expected_version=body.expectedVersion,
                                                  actor=me.username)
    except ValueError as e:
        raise _http_error(e)
    except SQLAlchemyError:
        raise _db_failure(db)
    ctl.load()
    return BookingOut.from_model(b)


@router.post("/admin/bookings/{booking_id}/assign", response_model=BookingOut)
def assign_vehicle(booking_id: str, body: AssignVehicleIn, db: Session = Depends(get_db),
                   me: StaffSession = Depends(require_admin), ctl: DashboardController = Depends(get_dashboard)):
    try:
        b = booking_service.assign_vehicle(db, booking_id, body.vehicleId, expected_version=body.expectedVersion,
                                           actor=me.username)
    except ValueError as e:
        raise _http_error(e)
    except SQLAlchemyError:
        raise _db_failure(db)
    ctl.load()
    return BookingOut.from_model(b)


@router.post("/admin/bookings/{booking_id}/reschedule", response_model=BookingOut)
def reschedule(booking_id: str, body: RescheduleIn, db: Session = Depends(get_db),
               me: StaffSession = Depends(require_admin), ctl: DashboardController = Depends(get_dashboard)):
    try:
        b = booking_service.reschedule_booking(db, booking_id, body.departureDate, body.returnDate,
                                               new_vehicle_id=body.vehicleId, expected_version=body.expectedVersion,
                                               actor=me.username)
    except ValueError as e:
        raise _http_error(e)
    except SQLAlchemyError:
        raise _db_failure(db)
    if b is None:
        raise HTTPException(status_code=400, detail="moving a booking to another vehicle is done by assignment")
    ctl.load()
    return BookingOut.from_model(b)


@router.delete("/admin/bookings/{booking_id}")
def delete_booking(booking_id: str, db: Session = Depends(get_db),
                   me: StaffSession = Depends(require_admin), ctl: DashboardController = Depends(get_dashboard)):
    try:
        booking_service.delete_booking(db, booking_id, actor=me.username)
    except ValueError as e:
        raise _http_error(e)
    except SQLAlchemyError:
        raise _db_failure(db)
    ctl.load()
    return {"ok": True}


@router.get("/admin/vehicles", response_model=list[VehicleOut])
def list_vehicles(db: Session = Depends(get_db), me: StaffSession = Depends(require_admin)):
    return [VehicleOut.from_model(v) for v in booking_service.list_vehicles(db)]


@router.patch("/admin/vehicles/{vehicle_id}/status", response_model=VehicleOut)
def set_vehicle_status(vehicle_id: int, body: VehicleStatusIn, db: Session = Depends(get_db),
                       me: StaffSession = Depends(require_admin), ctl: DashboardController = Depends(get_dashboard)):
    try:
        v = booking_service.set_vehicle_status(db, vehicle_id, body.status, actor=me.username)
    except ValueError as e:
        raise _http_error(e)
    except SQLAlchemyError:
        raise _db_failure(db)
    ctl.load()
    return VehicleOut.from_model(v)


@router.post("/admin/vehicles/{vehicle_id}/toggle-maintenance", response_model=VehicleOut)
def toggle_maintenance(vehicle_id: int, db: Session = Depends(get_db),
                       me: StaffSession = Depends(require_admin), ctl: DashboardController = Depends(get_dashboard)):
    try:
        v = booking_service.toggle_vehicle_maintenance(db, vehicle_id, actor=me.username)
    except ValueError as e:
        raise _http_error(e)
    except SQLAlchemyError:
        raise _db_failure(db)
    ctl.load()
    return VehicleOut.from_model(v)


@router.get("/admin/kpis", response_model=DashboardKPIsOut)
def kpis(db: Session = Depends(get_db), me: StaffSession = Depends(require_admin)):
    return DashboardKPIsOut(**booking_service.dashboard_kpis(db))


@router.get("/admin/audit")
def audit(entityType: str | None = None, entityId: str | None = None, limit: int = 100,
          db: Session = Depends(get_db), me: StaffSession = Depends(require_admin)):
    items = list_audit(db, entity_type=entityType, entity_id=entityId, limit=min(limit, 500))
    return [
        {"id": a.id, "actor": a.actor, "action": a.action, "entityType": a.entity_type, "entityId": a.entity_id,
         "details": json.loads(a.details_json or "{}"), "createdAt": a.created_at.isoformat() if a.created_at else ""}
        for a in items
    ]
