from datetime import date

import pytest

from app.services.dashboard_store import DashboardStore, MemoryPersistence, SettingsPersistence
from app.services.settings_service import get_calendar_view_days


def fixed_today():
    return date(2024, 7, 10)


def test_defaults():
    store = DashboardStore(today=fixed_today)
    assert not store.is_authenticated and not store.pin_verified
    assert store.active_tab == "calendar"
    assert store.calendar_view_days == 14
    assert store.calendar_start_date == date(2024, 7, 10)
    assert store.reservation_filters.status == "all"


def test_only_view_days_survive_a_new_store():
    persistence = MemoryPersistence()
    store = DashboardStore(persistence, today=fixed_today)
    store.set_authenticated(True)
    store.set_pin_verified(True)
    store.set_active_tab("vehicles")
    store.set_calendar_view_days(30)
    store.set_calendar_start_date("2024-09-01")
    store.set_reservation_filters(search="benali")

    fresh = DashboardStore(persistence, today=fixed_today)
    assert fresh.calendar_view_days == 30
    assert not fresh.is_authenticated
    assert fresh.active_tab == "calendar"
    assert fresh.calendar_start_date == date(2024, 7, 10)
    assert fresh.reservation_filters.search == ""


def test_stored_value_outside_allowed_set_falls_back():
    assert DashboardStore(MemoryPersistence(days=21)).calendar_view_days == 14


def test_invalid_view_days_are_rejected_and_not_saved():
    persistence = MemoryPersistence()
    store = DashboardStore(persistence)
    with pytest.raises(ValueError):
        store.set_calendar_view_days(10)
    assert persistence.days is None
    assert store.calendar_view_days == 14


def test_navigation_moves_by_window_length():
    store = DashboardStore(today=fixed_today)
    store.set_calendar_view_days(7)
    store.navigate_calendar("next")
    assert store.calendar_start_date == date(2024, 7, 17)
    store.navigate_calendar("prev")
    store.navigate_calendar("prev")
    assert store.calendar_start_date == date(2024, 7, 3)
    store.go_to_today()
    assert store.calendar_start_date == date(2024, 7, 10)
    with pytest.raises(ValueError):
        store.navigate_calendar("sideways")


def test_tab_validation_and_logout():
    store = DashboardStore()
    store.set_authenticated(True)
    store.set_pin_verified(True)
    with pytest.raises(ValueError):
        store.set_active_tab("billing")
    store.set_active_tab("reservations")
    store.logout()
    assert (store.is_authenticated, store.pin_verified, store.active_tab) == (False, False, "calendar")


def test_modals_and_unassigned_panel():
    store = DashboardStore()
    store.open_quick_add("2024-07-12", 4)
    assert (store.quick_add_open, store.quick_add_date, store.quick_add_vehicle_id) == (True, date(2024, 7, 12), 4)
    store.close_quick_add()
    assert store.quick_add_date is None and store.quick_add_vehicle_id is None

    store.open_booking_details("b-1")
    store.close_booking_details()
    assert not store.booking_details_open and store.selected_booking_id is None

    store.toggle_unassigned_panel()
    assert store.unassigned_panel_expanded
    store.toggle_unassigned_panel()
    assert not store.unassigned_panel_expanded


def test_filters_merge_and_validate():
    store = DashboardStore()
    store.set_reservation_filters(search="clio", status="pending")
    store.set_reservation_filters(dateFrom="2024-07-01")
    f = store.reservation_filters
    assert (f.search, f.status, f.dateFrom) == ("clio", "pending", date(2024, 7, 1))
    with pytest.raises(ValueError):
        store.set_reservation_filters(status="archived")
    store.reset_reservation_filters()
    assert store.reservation_filters.search == "" and store.reservation_filters.dateFrom is None


def test_snapshot_is_json_ready():
    store = DashboardStore(today=fixed_today)
    store.open_quick_add(date(2024, 7, 11), 3)
    snap = store.snapshot()
    assert snap["calendarStartDate"] == "2024-07-10"
    assert snap["quickAdd"] == {"open": True, "date": "2024-07-11", "vehicleId": 3}
    assert snap["reservationFilters"]["dateFrom"] is None


def test_settings_persistence_round_trip(session_factory, db):
    store = DashboardStore(SettingsPersistence(session_factory))
    assert store.calendar_view_days == 14
    store.set_calendar_view_days(60)
    assert get_calendar_view_days(db) == 60
    assert DashboardStore(SettingsPersistence(session_factory)).calendar_view_days == 60
