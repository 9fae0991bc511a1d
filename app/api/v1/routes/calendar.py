from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_dashboard
from app.schemas.gantt import ArmIn, CellClickIn, DashboardActionIn, DropIn, GanttOut, StatusPickIn
from app.services.dashboard_controller import DashboardController

router = APIRouter(tags=["calendar"])


def _grid(ctl: DashboardController) -> GanttOut:
    return GanttOut.from_grid(ctl.grid(), ctl.store, ctl.last_error)


@router.get("/calendar", response_model=GanttOut)
def calendar(refresh: bool = False, ctl: DashboardController = Depends(get_dashboard)):
    with ctl.lock:
        if refresh:
            ctl.load()
        return _grid(ctl)


@router.get("/calendar/state")
def state(ctl: DashboardController = Depends(get_dashboard)):
    return ctl.store.snapshot()


@router.post("/calendar/actions")
def dispatch_action(body: DashboardActionIn, ctl: DashboardController = Depends(get_dashboard)):
    """Apply one named store action and return the new UI state."""
    store = ctl.store
    required = {
        "set_active_tab": ("tab",),
        "set_calendar_view_days": ("days",),
        "set_calendar_start_date": ("date",),
        "navigate_calendar": ("direction",),
        "open_quick_add": ("date", "vehicleId"),
        "open_booking_details": ("bookingId",),
    }
    missing = [f for f in required.get(body.action, ()) if getattr(body, f) is None]
    if missing:
        raise HTTPException(status_code=400, detail=f"{body.action} needs {', '.join(missing)}")

    with ctl.lock:
        if body.action == "set_active_tab":
            store.set_active_tab(body.tab)
        elif body.action == "set_calendar_view_days":
            store.set_calendar_view_days(body.days)
        elif body.action == "set_calendar_start_date":
            store.set_calendar_start_date(body.date)
        elif body.action == "navigate_calendar":
            store.navigate_calendar(body.direction)
        elif body.action == "go_to_today":
            store.go_to_today()
        elif body.action == "open_quick_add":
            store.open_quick_add(body.date, body.vehicleId)
        elif body.action == "close_quick_add":
            store.close_quick_add()
        elif body.action == "open_booking_details":
            store.open_booking_details(body.bookingId)
        elif body.action == "close_booking_details":
            store.close_booking_details()
        elif body.action == "toggle_unassigned_panel":
            store.toggle_unassigned_panel()
        elif body.action == "select_unassigned_booking":
            store.select_unassigned_booking(body.bookingId)
        elif body.action == "set_reservation_filters":
            try:
                store.set_reservation_filters(**(body.filters or {}))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
        elif body.action == "reset_reservation_filters":
            store.reset_reservation_filters()
        return store.snapshot()


@router.post("/calendar/drop", response_model=GanttOut)
def drop(body: DropIn, ctl: DashboardController = Depends(get_dashboard)):
    """Drag-to-reschedule in one call: pick up, hover the target, release."""
    with ctl.lock:
        ui = ctl.interaction()
        if not ui.begin_drag(body.bookingId):
            raise HTTPException(status_code=404, detail="booking not on the calendar")
        ui.drag_over(body.vehicleId, body.date)
        if not ui.drop(body.vehicleId, body.date):
            ctl.last_error = "a booking can only be moved along its own vehicle row"
        return _grid(ctl)


@router.post("/calendar/status", response_model=GanttOut)
def pick_status(body: StatusPickIn, ctl: DashboardController = Depends(get_dashboard)):
    with ctl.lock:
        ui = ctl.interaction()
        if ui.open_status_menu(body.bookingId, body.x, body.y) is None:
            raise HTTPException(status_code=404, detail="booking not on the calendar")
        try:
            ui.choose_status(body.status)
        except ValueError:
            ui.click_outside()
            raise HTTPException(status_code=400, detail="unknown status")
        return _grid(ctl)


@router.post("/calendar/arm", response_model=GanttOut)
def arm(body: ArmIn, ctl: DashboardController = Depends(get_dashboard)):
    with ctl.lock:
        ctl.interaction().arm_unassigned(body.bookingId)
        return _grid(ctl)


@router.post("/calendar/rows/{vehicle_id}/tap", response_model=GanttOut)
def tap_row(vehicle_id: int, ctl: DashboardController = Depends(get_dashboard)):
    with ctl.lock:
        ctl.interaction().tap_vehicle_row(vehicle_id)
        return _grid(ctl)


@router.post("/calendar/cells/click")
def click_cell(body: CellClickIn, ctl: DashboardController = Depends(get_dashboard)):
    with ctl.lock:
        result = ctl.interaction().cell_click(body.vehicleId, body.date)
        return {"result": result, "state": ctl.store.snapshot()}
