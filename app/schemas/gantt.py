import datetime as dt
from pydantic import BaseModel
from typing import List, Literal, Optional

from app.models.enums import BookingStatus


class GanttBarOut(BaseModel):
    bookingId: str
    reference: str
    label: str
    status: BookingStatus
    color: str
    span: int
    slot: int
    slotCount: int
    clippedLeft: bool = False
    clippedRight: bool = False


class GanttCellOut(BaseModel):
    date: dt.date
    empty: bool
    maintenance: bool
    bookingIds: List[str] = []
    bars: List[GanttBarOut] = []


class GanttRowOut(BaseModel):
    vehicleId: int
    vehicleName: str
    vehicleStatus: str
    background: str
    cells: List[GanttCellOut]


class GanttColumnOut(BaseModel):
    date: dt.date
    label: str
    isToday: bool
    showMonth: bool
    shaded: bool


class UnassignedOut(BaseModel):
    bookingId: str
    reference: str
    clientName: str
    vehicleName: str
    departureDate: dt.date
    returnDate: dt.date
    armed: bool = False


class GanttOut(BaseModel):
    viewStart: dt.date
    viewDays: int
    columns: List[GanttColumnOut]
    rows: List[GanttRowOut]
    unassigned: List[UnassignedOut]
    state: dict
    lastError: Optional[str] = None

    @classmethod
    def from_grid(cls, grid, store, last_error=None) -> "GanttOut":
        armed = store.selected_unassigned_booking_id
        return cls(
            viewStart=grid.view_start,
            viewDays=grid.view_days,
            columns=[GanttColumnOut(date=c.day, label=c.label, isToday=c.is_today, showMonth=c.show_month, shaded=c.shaded)
                     for c in grid.columns],
            rows=[
                GanttRowOut(
                    vehicleId=r.vehicle_id,
                    vehicleName=r.vehicle_name,
                    vehicleStatus=r.vehicle_status.value,
                    background=r.background,
                    cells=[
                        GanttCellOut(
                            date=c.day,
                            empty=c.is_empty,
                            maintenance=c.maintenance,
                            bookingIds=c.booking_ids,
                            bars=[GanttBarOut(bookingId=b.booking_id, reference=b.reference, label=b.label,
                                              status=b.status, color=b.color, span=b.span, slot=b.slot,
                                              slotCount=b.slot_count, clippedLeft=b.clipped_left,
                                              clippedRight=b.clipped_right) for b in c.bars],
                        )
                        for c in r.cells
                    ],
                )
                for r in grid.rows
            ],
            unassigned=[
                UnassignedOut(bookingId=u.id, reference=u.reference, clientName=u.client_name,
                              vehicleName=u.vehicle_name, departureDate=u.start, returnDate=u.end,
                              armed=u.id == armed)
                for u in grid.unassigned
            ],
            state=store.snapshot(),
            lastError=last_error,
        )


class DashboardActionIn(BaseModel):
    """One named store action per request."""

    action: Literal[
        "set_active_tab", "set_calendar_view_days", "set_calendar_start_date", "navigate_calendar",
        "go_to_today", "open_quick_add", "close_quick_add", "open_booking_details", "close_booking_details",
        "toggle_unassigned_panel", "select_unassigned_booking", "set_reservation_filters",
        "reset_reservation_filters",
    ]
    tab: Optional[Literal["calendar", "reservations", "vehicles"]] = None
    days: Optional[Literal[7, 14, 30, 60]] = None
    date: Optional[dt.date] = None
    direction: Optional[Literal["prev", "next"]] = None
    vehicleId: Optional[int] = None
    bookingId: Optional[str] = None
    filters: Optional[dict] = None


class DropIn(BaseModel):
    bookingId: str
    vehicleId: int
    date: dt.date


class StatusPickIn(BaseModel):
    bookingId: str
    status: str
    x: int = 0
    y: int = 0


class ArmIn(BaseModel):
    bookingId: str


class CellClickIn(BaseModel):
    vehicleId: int
    date: dt.date
