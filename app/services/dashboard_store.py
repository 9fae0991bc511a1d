"""
UI state of one admin dashboard session.

Every write goes through a named action. Only the calendar window length
survives a reload (through the persistence object); authentication and the
rest of the state start fresh with each store.
"""
import logging
from datetime import date, timedelta
from typing import Callable, Literal, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from app.schemas.booking import ReservationFilters
from app.services import settings_service
from app.services.date_intervals import parse_date

logger = logging.getLogger(__name__)

Tab = Literal["calendar", "reservations", "vehicles"]
TABS = ("calendar", "reservations", "vehicles")
VIEW_DAYS = settings_service.ALLOWED_VIEW_DAYS
DEFAULT_VIEW_DAYS = settings_service.DEFAULT_VIEW_DAYS


class ViewDaysPersistence(Protocol):
    def load_view_days(self) -> Optional[int]: ...
    def save_view_days(self, days: int) -> None: ...


class MemoryPersistence:
    def __init__(self, days: Optional[int] = None):
        self.days = days

    def load_view_days(self) -> Optional[int]:
        return self.days

    def save_view_days(self, days: int) -> None:
        self.days = days


class SettingsPersistence:
    """Keeps the window length in the settings table, one short session per call."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def load_view_days(self) -> Optional[int]:
        db = self.session_factory()
        try:
            return settings_service.get_calendar_view_days(db)
        except SQLAlchemyError as e:
            logger.warning("could not load calendar view days: %s", e)
            return None
        finally:
            db.close()

    def save_view_days(self, days: int) -> None:
        db = self.session_factory()
        try:
            settings_service.set_calendar_view_days(db, days)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("could not save calendar view days: %s", e)
        finally:
            db.close()


class DashboardStore:
    def __init__(self, persistence: Optional[ViewDaysPersistence] = None,
                 today: Callable[[], date] = date.today):
        self._persistence = persistence or MemoryPersistence()
        self._today = today

        self.is_authenticated = False
        self.pin_verified = False

        self.active_tab: Tab = "calendar"
        stored = self._persistence.load_view_days()
        self.calendar_view_days: int = stored if stored in VIEW_DAYS else DEFAULT_VIEW_DAYS
        self.calendar_start_date: date = today()

        self.quick_add_open = False
        self.quick_add_date: Optional[date] = None
        self.quick_add_vehicle_id: Optional[int] = None
        self.booking_details_open = False
        self.selected_booking_id: Optional[str] = None

        self.unassigned_panel_expanded = False
        self.selected_unassigned_booking_id: Optional[str] = None

        self.reservation_filters = ReservationFilters()

    # auth

    def set_authenticated(self, value: bool) -> None:
        self.is_authenticated = bool(value)

    def set_pin_verified(self, value: bool) -> None:
        self.pin_verified = bool(value)

    def logout(self) -> None:
        self.is_authenticated = False
        self.pin_verified = False
        self.active_tab = "calendar"

    # navigation

    def set_active_tab(self, tab: Tab) -> None:
        if tab not in TABS:
            raise ValueError(f"unknown tab {tab!r}")
        self.active_tab = tab

    def set_calendar_view_days(self, days: int) -> None:
        if days not in VIEW_DAYS:
            raise ValueError(f"view days must be one of {VIEW_DAYS}")
        self.calendar_view_days = days
        self._persistence.save_view_days(days)

    def set_calendar_start_date(self, value) -> None:
        self.calendar_start_date = parse_date(value)

    def navigate_calendar(self, direction: Literal["prev", "next"]) -> None:
        if direction not in ("prev", "next"):
            raise ValueError("direction must be prev or next")
        offset = self.calendar_view_days if direction == "next" else -self.calendar_view_days
        self.calendar_start_date = self.calendar_start_date + timedelta(days=offset)

    def go_to_today(self) -> None:
        self.calendar_start_date = self._today()

    # modals

    def open_quick_add(self, day, vehicle_id: int) -> None:
        self.quick_add_open = True
        self.quick_add_date = parse_date(day)
        self.quick_add_vehicle_id = vehicle_id

    def close_quick_add(self) -> None:
        self.quick_add_open = False
        self.quick_add_date = None
        self.quick_add_vehicle_id = None

    def open_booking_details(self, booking_id: str) -> None:
        self.booking_details_open = True
        self.selected_booking_id = booking_id

    def close_booking_details(self) -> None:
        self.booking_details_open = False
        self.selected_booking_id = None

    # unassigned panel

    def toggle_unassigned_panel(self) -> None:
        self.unassigned_panel_expanded = not self.unassigned_panel_expanded

    def select_unassigned_booking(self, booking_id: Optional[str]) -> None:
        self.selected_unassigned_booking_id = booking_id

    # reservation list

    def set_reservation_filters(self, **changes) -> None:
        self.reservation_filters = ReservationFilters.model_validate({**self.reservation_filters.model_dump(), **changes})

    def reset_reservation_filters(self) -> None:
        self.reservation_filters = ReservationFilters()

    def snapshot(self) -> dict:
        f = self.reservation_filters
        return {
            "activeTab": self.active_tab,
            "calendarViewDays": self.calendar_view_days,
            "calendarStartDate": self.calendar_start_date.isoformat(),
            "quickAdd": {
                "open": self.quick_add_open,
                "date": self.quick_add_date.isoformat() if self.quick_add_date else None,
                "vehicleId": self.quick_add_vehicle_id,
            },
            "bookingDetails": {"open": self.booking_details_open, "bookingId": self.selected_booking_id},
            "unassignedPanelExpanded": self.unassigned_panel_expanded,
            "selectedUnassignedBookingId": self.selected_unassigned_booking_id,
            "reservationFilters": {
                "search": f.search,
                "status": f.status,
                "dateFrom": f.dateFrom.isoformat() if f.dateFrom else None,
                "dateTo": f.dateTo.isoformat() if f.dateTo else None,
            },
        }
