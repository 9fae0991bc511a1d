"""
Vehicle x date scheduling grid for the back-office calendar.

`GanttGrid.build` lays bookings out over the visible window: one row per
vehicle, one cell per day. A booking draws a single bar in the cell where it
starts (or in the first visible cell when it started earlier) and that bar
spans forward; the cells it merely passes through only list it as an
occupant. Several bars anchored in the same cell of a row are stacked in
equal slices.

`GanttInteraction` holds the ephemeral pointer state on top of a grid:
drag-to-reschedule (same row only), the status picker and tap-to-assign for
unassigned bookings. It never talks to the database; the owner supplies
handlers.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Optional

from app.models.enums import BookingStatus, UNASSIGNED_STATUSES, VehicleStatus
from app.services.date_intervals import ONE_DAY, DateSequence, generate_date_sequence, parse_date

logger = logging.getLogger(__name__)

# new = purple, pending = orange, active = green, completed = blue, cancelled = red
STATUS_COLORS: dict[BookingStatus, str] = {
    BookingStatus.NEW: "bg-purple-500",
    BookingStatus.PENDING: "bg-orange-500",
    BookingStatus.ACTIVE: "bg-green-500",
    BookingStatus.COMPLETED: "bg-blue-500",
    BookingStatus.CANCELLED: "bg-red-500",
}

STATUS_LABELS: dict[BookingStatus, str] = {
    BookingStatus.NEW: "Nouvelle",
    BookingStatus.PENDING: "En attente",
    BookingStatus.ACTIVE: "Active",
    BookingStatus.COMPLETED: "Terminée",
    BookingStatus.CANCELLED: "Annulée",
}

VEHICLE_ROW_BACKGROUNDS: dict[VehicleStatus, str] = {
    VehicleStatus.AVAILABLE: "bg-white",
    VehicleStatus.MAINTENANCE: "bg-gray-200",
    VehicleStatus.RETIRED: "bg-gray-300",
}

for _name, _mapping, _enum in (("STATUS_COLORS", STATUS_COLORS, BookingStatus),
                               ("STATUS_LABELS", STATUS_LABELS, BookingStatus),
                               ("VEHICLE_ROW_BACKGROUNDS", VEHICLE_ROW_BACKGROUNDS, VehicleStatus)):
    _missing = set(_enum) - set(_mapping)
    if _missing:
        raise RuntimeError(f"{_name} is missing {sorted(m.value for m in _missing)}")

_DAYS_FR = ["lu", "ma", "me", "je", "ve", "sa", "di"]
_MONTHS_FR = ["janv.", "févr.", "mars", "avr.", "mai", "juin",
              "juil.", "août", "sept.", "oct.", "nov.", "déc."]


def status_color(status) -> str:
    return STATUS_COLORS[BookingStatus.parse(status)]


def status_label(status) -> str:
    return STATUS_LABELS[BookingStatus.parse(status)]


def bar_span(start: date, end: date, view_start: date, view_days: int) -> int:
    """Cells covered by a bar, clipped to both edges of the window."""
    view_end = view_start + timedelta(days=view_days)
    eff_start = max(start, view_start)
    eff_end = min(end, view_end)
    span = math.ceil((eff_end - eff_start) / ONE_DAY) + 1
    index = (eff_start - view_start).days
    return max(1, min(span, view_days - index))


@dataclass
class GanttBooking:
    """Grid-side snapshot of a booking; detached from the ORM."""

    id: str
    reference: str
    status: BookingStatus
    start: date
    end: date
    vehicle_id: int
    assigned_vehicle_id: Optional[int]
    client_name: str = ""
    vehicle_name: str = ""

    @property
    def row_vehicle_id(self) -> int:
        return self.assigned_vehicle_id or self.vehicle_id

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @classmethod
    def from_record(cls, b) -> "GanttBooking":
        return cls(
            id=b.id,
            reference=getattr(b, "booking_reference", "") or "",
            status=BookingStatus.parse(b.status),
            start=parse_date(b.departure_date),
            end=parse_date(b.return_date),
            vehicle_id=b.vehicle_id,
            assigned_vehicle_id=b.assigned_vehicle_id,
            client_name=getattr(b, "client_name", "") or "",
            vehicle_name=getattr(b, "vehicle_name", "") or "",
        )


@dataclass
class GanttBar:
    booking_id: str
    reference: str
    label: str
    status: BookingStatus
    color: str
    anchor: date
    span: int
    slot: int = 0
    slot_count: int = 1
    clipped_left: bool = False
    clipped_right: bool = False


@dataclass
class GanttCell:
    day: date
    vehicle_id: int
    maintenance: bool = False
    booking_ids: list[str] = field(default_factory=list)
    bars: list[GanttBar] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.booking_ids


@dataclass
class GanttRow:
    vehicle_id: int
    vehicle_name: str
    vehicle_status: VehicleStatus
    background: str
    cells: list[GanttCell]

    @property
    def in_maintenance(self) -> bool:
        return self.vehicle_status == VehicleStatus.MAINTENANCE


@dataclass
class GanttColumn:
    day: date
    is_today: bool
    show_month: bool
    label: str
    shaded: bool


class GanttGrid:
    def __init__(self, view_start: date, view_days: int, dates: DateSequence, columns: list[GanttColumn],
                 rows: list[GanttRow], bookings: dict[str, GanttBooking], unassigned: list[GanttBooking]):
        self.view_start = view_start
        self.view_days = view_days
        self.dates = dates
        self.columns = columns
        self.rows = rows
        self.bookings = bookings
        self.unassigned = unassigned
        self._rows_by_vehicle = {r.vehicle_id: r for r in rows}

    @classmethod
    def build(cls, vehicles, bookings, view_start, view_days: int, today: date | None = None) -> "GanttGrid":
        view_start = parse_date(view_start)
        today = today or date.today()
        dates = generate_date_sequence(view_start, view_days)

        columns = []
        for i, d in enumerate(dates):
            show_month = i == 0 or d.day == 1
            head = _MONTHS_FR[d.month - 1] if show_month else _DAYS_FR[d.weekday()]
            columns.append(GanttColumn(day=d, is_today=d == today, show_month=show_month,
                                       label=f"{head} {d.day}", shaded=d.month % 2 == 0))

        snapshots: dict[str, GanttBooking] = {}
        for b in bookings:
            try:
                snap = b if isinstance(b, GanttBooking) else GanttBooking.from_record(b)
            except ValueError:
                logger.warning("skipping booking %s with unknown status %r", getattr(b, "id", "?"), getattr(b, "status", None))
                continue
            snapshots[snap.id] = snap

        rows = []
        for v in vehicles:
            v_status = VehicleStatus(v.status)
            maintenance = v_status == VehicleStatus.MAINTENANCE
            cells = [GanttCell(day=d, vehicle_id=v.id, maintenance=maintenance) for d in dates]
            rows.append(GanttRow(vehicle_id=v.id, vehicle_name=v.name, vehicle_status=v_status,
                                 background=VEHICLE_ROW_BACKGROUNDS[v_status], cells=cells))

        grid = cls(view_start, view_days, dates, columns, rows, snapshots,
                   [s for s in snapshots.values() if s.assigned_vehicle_id is None and s.status in UNASSIGNED_STATUSES])

        # deterministic slot order inside a stacked cell
        for snap in sorted(snapshots.values(), key=lambda s: (s.start, s.end, s.reference, s.id)):
            row = grid.row(snap.row_vehicle_id)
            if row is None or snap.end < view_start or snap.start >= dates.end:
                continue
            first = max(snap.start, view_start)
            last = min(snap.end, dates.end - ONE_DAY)
            for i in range(dates.index(first), dates.index(last) + 1):
                row.cells[i].booking_ids.append(snap.id)
            row.cells[dates.index(first)].bars.append(GanttBar(
                booking_id=snap.id,
                reference=snap.reference,
                label=snap.client_name,
                status=snap.status,
                color=STATUS_COLORS[snap.status],
                anchor=first,
                span=bar_span(snap.start, snap.end, view_start, view_days),
                clipped_left=snap.start < view_start,
                clipped_right=snap.end >= dates.end,
            ))

        for row in rows:
            for cell in row.cells:
                for slot, bar in enumerate(cell.bars):
                    bar.slot = slot
                    bar.slot_count = len(cell.bars)
        return grid

    def row(self, vehicle_id: int) -> Optional[GanttRow]:
        return self._rows_by_vehicle.get(vehicle_id)

    def cell(self, vehicle_id: int, day) -> Optional[GanttCell]:
        row = self.row(vehicle_id)
        day = parse_date(day)
        if row is None or day not in self.dates:
            return None
        return row.cells[self.dates.index(day)]

    def bars(self):
        for row in self.rows:
            for cell in row.cells:
                yield from cell.bars


RescheduleHandler = Callable[[str, date, date, int], object]
StatusHandler = Callable[[str, BookingStatus], object]
AssignHandler = Callable[[str, int], object]


@dataclass
class StatusMenu:
    booking_id: str
    x: int
    y: int
    options: list[BookingStatus] = field(default_factory=lambda: list(BookingStatus))


class GanttInteraction:
    """Pointer state for one calendar view. All of it is throwaway and never persisted."""

    def __init__(self, grid: GanttGrid, store, on_reschedule: Optional[RescheduleHandler] = None,
                 on_status_change: Optional[StatusHandler] = None, on_assign: Optional[AssignHandler] = None):
        self.grid = grid
        self.store = store
        self.on_reschedule = on_reschedule
        self.on_status_change = on_status_change
        self.on_assign = on_assign

        self.dragged: Optional[GanttBooking] = None
        self.drop_target: Optional[tuple[int, date]] = None
        self.highlighted: set[tuple[int, date]] = set()
        self.status_menu: Optional[StatusMenu] = None

    # --- drag & drop ---

    @property
    def drag_enabled(self) -> bool:
        return self.on_reschedule is not None

    def begin_drag(self, booking_id: str) -> bool:
        if not self.drag_enabled:
            return False
        snap = self.grid.bookings.get(booking_id)
        if snap is None:
            return False
        self.dragged = snap
        self.drop_target = None
        row = self.grid.row(snap.row_vehicle_id)
        self.highlighted = {(c.vehicle_id, c.day) for c in row.cells if c.is_empty} if row else set()
        return True

    def _accepts(self, vehicle_id: int) -> bool:
        return self.dragged is not None and vehicle_id == self.dragged.row_vehicle_id

    def drag_over(self, vehicle_id: int, day) -> bool:
        """Hover feedback; the target only activates on the dragged booking's own row."""
        if not self._accepts(vehicle_id) or self.grid.cell(vehicle_id, day) is None:
            self.drop_target = None
            return False
        self.drop_target = (vehicle_id, parse_date(day))
        return True

    def drag_leave(self) -> None:
        self.drop_target = None

    def drop(self, vehicle_id: int, day) -> bool:
        try:
            if not self._accepts(vehicle_id) or self.on_reschedule is None:
                return False
            new_start = parse_date(day)
            new_end = new_start + self.dragged.duration
            self.on_reschedule(self.dragged.id, new_start, new_end, self.dragged.row_vehicle_id)
            return True
        finally:
            self.end_drag()

    def end_drag(self) -> None:
        self.dragged = None
        self.drop_target = None
        self.highlighted = set()

    def cell_highlight(self, vehicle_id: int, day) -> Optional[str]:
        key = (vehicle_id, parse_date(day))
        if self.drop_target == key:
            return "target"
        if key in self.highlighted:
            return "candidate"
        return None

    # --- status picker ---

    def open_status_menu(self, booking_id: str, x: int, y: int) -> Optional[StatusMenu]:
        if booking_id not in self.grid.bookings:
            return None
        self.status_menu = StatusMenu(booking_id=booking_id, x=x, y=y)
        return self.status_menu

    def choose_status(self, status) -> bool:
        menu = self.status_menu
        self.status_menu = None
        if menu is None or self.on_status_change is None:
            return False
        self.on_status_change(menu.booking_id, BookingStatus.parse(status))
        return True

    def click_outside(self) -> None:
        self.status_menu = None

    # --- tap to assign ---

    @property
    def selecting(self) -> bool:
        return self.store.selected_unassigned_booking_id is not None

    def arm_unassigned(self, booking_id: str) -> Optional[str]:
        """Toggle the armed booking; arming another one replaces it."""
        if self.store.selected_unassigned_booking_id == booking_id:
            self.store.select_unassigned_booking(None)
        else:
            self.store.select_unassigned_booking(booking_id)
        return self.store.selected_unassigned_booking_id

    def tap_vehicle_row(self, vehicle_id: int) -> bool:
        booking_id = self.store.selected_unassigned_booking_id
        if booking_id is None or self.on_assign is None:
            return False
        self.on_assign(booking_id, vehicle_id)
        self.store.select_unassigned_booking(None)
        return True

    # --- plain clicks ---

    def cell_click(self, vehicle_id: int, day) -> Optional[str]:
        """Bar in the cell opens its details; an empty bookable cell opens quick-add."""
        cell = self.grid.cell(vehicle_id, day)
        if cell is None:
            return None
        if self.selecting:
            return "assign" if self.tap_vehicle_row(vehicle_id) else None
        if cell.bars:
            self.store.open_booking_details(cell.bars[0].booking_id)
            return "details"
        if cell.is_empty and not cell.maintenance:
            self.store.open_quick_add(cell.day, vehicle_id)
            return "quick_add"
        return None
