"""
Per-session owner of the dashboard: the UI store, local copies of the fleet
and bookings, and the handlers the calendar calls.

Mutations are applied to the local copy first so the grid can be redrawn
immediately, then written through booking_service. When the write fails the
local copy is put back and the error is kept in `last_error` for the page.

Sync routes run on a thread pool, so one login can reach its controller from
two threads. Public methods hold the reentrant `lock`; routes that chain
several calls hold it for the whole request.
"""
import functools
import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.models.enums import BookingStatus, VehicleStatus
from app.schemas.booking import BookingUpdateIn, QuickAddIn
from app.services import booking_service
from app.services.dashboard_store import DashboardStore, SettingsPersistence
from app.services.gantt_service import GanttBooking, GanttGrid, GanttInteraction

logger = logging.getLogger(__name__)


def _locked(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)
    return wrapper


@dataclass
class VehicleSnapshot:
    id: int
    name: str
    status: str
    price_per_day: int = 0


class DashboardController:
    def __init__(self, session_factory: Callable, store: Optional[DashboardStore] = None, actor: str = "admin"):
        self.session_factory = session_factory
        self.store = store or DashboardStore(SettingsPersistence(session_factory))
        self.actor = actor
        self.vehicles: dict[int, VehicleSnapshot] = {}
        self.bookings: dict[str, GanttBooking] = {}
        self.last_error: Optional[str] = None
        self.lock = threading.RLock()

    @_locked
    def load(self) -> None:
        db = self.session_factory()
        try:
            vehicles = {v.id: VehicleSnapshot(v.id, v.name, v.status, v.price_per_day)
                        for v in booking_service.list_vehicles(db)}
            bookings = {}
            for b in booking_service.list_bookings(db):
                try:
                    bookings[b.id] = GanttBooking.from_record(b)
                except ValueError:
                    logger.warning("booking %s has unknown status %r, left off the calendar", b.id, b.status)
        finally:
            db.close()
        # readers never see a half-filled copy
        self.vehicles, self.bookings = vehicles, bookings

    def _sync(self, what: str, call) -> bool:
        db = self.session_factory()
        try:
            result = call(db)
        except (ValueError, SQLAlchemyError) as e:
            db.rollback()
            logger.warning("%s failed, local change reverted: %s", what, e)
            self.last_error = str(e)
            return False
        finally:
            db.close()
        if result is None:
            self.last_error = f"{what} was rejected"
            return False
        self.last_error = None
        return True

    # --- calendar ---

    @_locked
    def grid(self, today: date | None = None) -> GanttGrid:
        return GanttGrid.build(
            sorted(self.vehicles.values(), key=lambda v: v.id),
            list(self.bookings.values()),
            self.store.calendar_start_date,
            self.store.calendar_view_days,
            today=today,
        )

    @_locked
    def interaction(self, today: date | None = None) -> GanttInteraction:
        return GanttInteraction(
            self.grid(today),
            self.store,
            on_reschedule=self.reschedule_booking,
            on_status_change=self.change_booking_status,
            on_assign=self.assign_vehicle,
        )

    # --- optimistic mutations ---

    @_locked
    def change_booking_status(self, booking_id: str, status) -> bool:
        local = self.bookings.get(booking_id)
        if local is None:
            return False
        before = replace(local)
        local.status = BookingStatus.parse(status)
        ok = self._sync("status change", lambda db: booking_service.update_booking_status(
            db, booking_id, local.status, actor=self.actor))
        if not ok:
            self.bookings[booking_id] = before
        return ok

    @_locked
    def assign_vehicle(self, booking_id: str, vehicle_id: int) -> bool:
        local = self.bookings.get(booking_id)
        if local is None:
            return False
        before = replace(local)
        local.assigned_vehicle_id = vehicle_id
        ok = self._sync("vehicle assignment", lambda db: booking_service.assign_vehicle(
            db, booking_id, vehicle_id, actor=self.actor))
        if not ok:
            self.bookings[booking_id] = before
        return ok

    @_locked
    def reschedule_booking(self, booking_id: str, new_start: date, new_end: date, vehicle_id: int) -> bool:
        local = self.bookings.get(booking_id)
        if local is None:
            return False
        before = replace(local)
        local.start, local.end = new_start, new_end
        ok = self._sync("reschedule", lambda db: booking_service.reschedule_booking(
            db, booking_id, new_start, new_end, new_vehicle_id=vehicle_id, actor=self.actor))
        if not ok:
            self.bookings[booking_id] = before
        return ok

    @_locked
    def update_booking_details(self, booking_id: str, changes: BookingUpdateIn) -> bool:
        local = self.bookings.get(booking_id)
        if local is None:
            return False
        before = replace(local)
        if changes.clientName:
            local.client_name = changes.clientName
        if changes.departureDate:
            local.start = changes.departureDate
        if changes.returnDate:
            local.end = changes.returnDate
        fresh: list = []

        def call(db):
            b = booking_service.update_booking(db, booking_id, changes, actor=self.actor)
            fresh.append(GanttBooking.from_record(b))
            return b

        if not self._sync("booking update", call):
            self.bookings[booking_id] = before
            return False
        # server recomputes rental days and may normalise fields
        self.bookings[booking_id] = fresh[0]
        return True

    @_locked
    def toggle_vehicle_maintenance(self, vehicle_id: int) -> bool:
        local = self.vehicles.get(vehicle_id)
        if local is None or local.status == VehicleStatus.RETIRED.value:
            return False
        before = replace(local)
        local.status = (VehicleStatus.AVAILABLE if local.status == VehicleStatus.MAINTENANCE.value
                        else VehicleStatus.MAINTENANCE).value
        ok = self._sync("maintenance toggle", lambda db: booking_service.set_vehicle_status(
            db, vehicle_id, local.status, actor=self.actor))
        if not ok:
            self.vehicles[vehicle_id] = before
        return ok

    # --- pessimistic: the server assigns id and reference ---

    @_locked
    def add_walk_in_booking(self, data: QuickAddIn) -> Optional[GanttBooking]:
        created: list = []

        def call(db):
            b = booking_service.create_walk_in_booking(db, data, actor=self.actor)
            created.append(GanttBooking.from_record(b))
            return b

        if not self._sync("walk-in booking", call):
            return None
        snap = created[0]
        self.bookings[snap.id] = snap
        self.store.close_quick_add()
        return snap

    @_locked
    def delete_booking(self, booking_id: str) -> bool:
        if not self._sync("delete", lambda db: booking_service.delete_booking(db, booking_id, actor=self.actor) or True):
            return False
        self.bookings.pop(booking_id, None)
        if self.store.selected_booking_id == booking_id:
            self.store.close_booking_details()
        if self.store.selected_unassigned_booking_id == booking_id:
            self.store.select_unassigned_booking(None)
        return True


class DashboardSessions:
    """In-process registry of controllers keyed by the login token's session id.

    Each entry lives until its token expires (or, without a token expiry, for
    ACCESS_TOKEN_EXPIRE_MINUTES after its last use). Expired entries are dropped
    on the next lookup.
    """

    def __init__(self, session_factory: Callable, clock: Callable[[], float] = time.time):
        self.session_factory = session_factory
        self._controllers: dict[str, DashboardController] = {}
        self._expires: dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _evict_expired(self, now: float) -> None:
        for sid in [s for s, exp in self._expires.items() if exp <= now]:
            ctl = self._controllers.pop(sid, None)
            del self._expires[sid]
            if ctl is not None:
                ctl.store.logout()
                logger.info("dashboard session %s expired", sid)

    def get(self, sid: str, actor: str = "admin", session_factory: Optional[Callable] = None,
            expires_at: Optional[float] = None) -> DashboardController:
        factory = session_factory or self.session_factory
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            ctl = self._controllers.get(sid)
            if ctl is None:
                store = DashboardStore(SettingsPersistence(factory))
                store.set_authenticated(True)
                store.set_pin_verified(True)
                ctl = DashboardController(factory, store=store, actor=actor)
                ctl.load()
                self._controllers[sid] = ctl
            if expires_at is None:
                expires_at = now + settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
            # the PIN step reissues the token with a later exp for the same sid
            self._expires[sid] = max(expires_at, self._expires.get(sid, 0))
            return ctl

    def clear(self) -> None:
        with self._lock:
            self._controllers.clear()
            self._expires.clear()

    def discard(self, sid: str) -> None:
        with self._lock:
            ctl = self._controllers.pop(sid, None)
            self._expires.pop(sid, None)
        if ctl is not None:
            ctl.store.logout()

    def __len__(self) -> int:
        return len(self._controllers)
