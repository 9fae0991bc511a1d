from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from app.models.enums import BookingStatus
from app.services.dashboard_store import DashboardStore
from app.services.gantt_service import (
    STATUS_COLORS, GanttBooking, GanttGrid, GanttInteraction, bar_span, status_color, status_label,
)

VIEW_START = date(2024, 7, 1)
FLEET = [
    SimpleNamespace(id=4, name="Renault Clio 5", status="available"),
    SimpleNamespace(id=6, name="Dacia Logan", status="maintenance"),
    SimpleNamespace(id=7, name="Peugeot 208", status="available"),
]


def bk(bid, start, end, vehicle_id=4, status=BookingStatus.ACTIVE, assigned=-1, ref=None, client="Client"):
    return GanttBooking(id=bid, reference=ref or f"HD-2024-07-{bid}", status=status, start=start, end=end,
                        vehicle_id=vehicle_id, assigned_vehicle_id=vehicle_id if assigned == -1 else assigned,
                        client_name=client)


def grid(bookings, days=14):
    return GanttGrid.build(FLEET, bookings, VIEW_START, days, today=date(2024, 7, 3))


def test_every_status_has_a_distinct_color():
    assert len(set(STATUS_COLORS.values())) == len(BookingStatus)
    assert status_color("confirmed") == status_color(BookingStatus.ACTIVE) == "bg-green-500"
    assert status_label("cancelled") == "Annulée"


@pytest.mark.parametrize("start,end,expected", [
    (date(2024, 7, 3), date(2024, 7, 5), 3),
    (date(2024, 7, 3), date(2024, 7, 3), 1),
    (date(2024, 6, 28), date(2024, 7, 3), 3),    # clipped left
    (date(2024, 7, 12), date(2024, 7, 20), 3),   # clipped right
    (date(2024, 6, 1), date(2024, 8, 1), 14),    # wider than the window
])
def test_bar_span(start, end, expected):
    assert bar_span(start, end, VIEW_START, 14) == expected


def test_bar_anchored_once_on_first_visible_cell():
    g = grid([bk("1", date(2024, 6, 28), date(2024, 7, 3))])
    bars = list(g.bars())
    assert len(bars) == 1
    bar = bars[0]
    assert bar.anchor == VIEW_START
    assert bar.span == 3
    assert bar.clipped_left and not bar.clipped_right
    assert g.cell(4, "2024-07-02").booking_ids == ["1"]
    assert g.cell(4, "2024-07-02").bars == []
    assert g.cell(4, "2024-07-04").is_empty


def test_bookings_outside_window_are_not_drawn():
    g = grid([bk("1", date(2024, 6, 1), date(2024, 6, 30)), bk("2", date(2024, 7, 15), date(2024, 7, 18))])
    assert list(g.bars()) == []


def test_same_anchor_bars_are_stacked_deterministically():
    bookings = [
        bk("b", date(2024, 7, 2), date(2024, 7, 4), ref="HD-2024-07-0002"),
        bk("a", date(2024, 7, 2), date(2024, 7, 4), ref="HD-2024-07-0001"),
        bk("c", date(2024, 7, 2), date(2024, 7, 3), ref="HD-2024-07-0003"),
    ]
    cell = grid(bookings).cell(4, date(2024, 7, 2))
    assert [(b.booking_id, b.slot, b.slot_count) for b in cell.bars] == [("c", 0, 3), ("a", 1, 3), ("b", 2, 3)]
    assert [b.booking_id for b in grid(list(reversed(bookings))).cell(4, date(2024, 7, 2)).bars] == ["c", "a", "b"]


def test_rows_follow_assignment_and_show_cancelled():
    bookings = [
        bk("1", date(2024, 7, 2), date(2024, 7, 4), vehicle_id=4, assigned=7),
        bk("2", date(2024, 7, 8), date(2024, 7, 9), status=BookingStatus.CANCELLED),
    ]
    g = grid(bookings)
    assert g.cell(7, date(2024, 7, 2)).bars[0].booking_id == "1"
    assert g.cell(4, date(2024, 7, 2)).is_empty
    assert g.cell(4, date(2024, 7, 8)).bars[0].color == "bg-red-500"


def test_columns_and_maintenance_rows():
    g = grid([], days=7)
    assert len(g.columns) == 7
    assert g.columns[0].show_month and g.columns[0].label == "juil. 1"
    assert g.columns[2].is_today
    assert g.columns[1].label == "ma 2"
    assert g.row(6).in_maintenance
    assert g.row(6).background == "bg-gray-200"
    assert g.cell(6, "2024-07-08") is None


def test_unassigned_lists_new_and_pending_only():
    bookings = [
        bk("1", date(2024, 7, 2), date(2024, 7, 4), status=BookingStatus.NEW, assigned=None),
        bk("2", date(2024, 7, 2), date(2024, 7, 4), status=BookingStatus.CANCELLED, assigned=None),
    ]
    assert [b.id for b in grid(bookings).unassigned] == ["1"]


# --- interaction ---

def interaction(bookings, **handlers):
    store = DashboardStore()
    return GanttInteraction(grid(bookings), store, **handlers), store


def test_drop_keeps_duration_on_same_row():
    moves = []
    ix, _ = interaction([bk("1", date(2024, 7, 1), date(2024, 7, 5))],
                        on_reschedule=lambda *args: moves.append(args))
    assert ix.begin_drag("1")
    assert ix.cell_highlight(4, date(2024, 7, 9)) == "candidate"
    assert ix.cell_highlight(4, date(2024, 7, 2)) is None
    assert ix.drag_over(4, date(2024, 7, 11))
    assert ix.cell_highlight(4, date(2024, 7, 11)) == "target"
    assert ix.drop(4, date(2024, 7, 11))
    assert moves == [("1", date(2024, 7, 11), date(2024, 7, 15), 4)]
    assert ix.dragged is None and ix.drop_target is None and not ix.highlighted


def test_cross_row_drop_is_rejected_and_clears_state():
    moves = []
    ix, _ = interaction([bk("1", date(2024, 7, 1), date(2024, 7, 5))],
                        on_reschedule=lambda *args: moves.append(args))
    ix.begin_drag("1")
    assert not ix.drag_over(7, date(2024, 7, 3))
    assert ix.drop_target is None
    assert not ix.drop(7, date(2024, 7, 3))
    assert moves == []
    assert ix.dragged is None


def test_drag_disabled_without_handler():
    ix, _ = interaction([bk("1", date(2024, 7, 1), date(2024, 7, 5))])
    assert not ix.drag_enabled
    assert not ix.begin_drag("1")


def test_drop_clears_state_when_handler_raises():
    def boom(*args):
        raise RuntimeError("network")

    ix, _ = interaction([bk("1", date(2024, 7, 1), date(2024, 7, 5))], on_reschedule=boom)
    ix.begin_drag("1")
    with pytest.raises(RuntimeError):
        ix.drop(4, date(2024, 7, 8))
    assert ix.dragged is None


def test_status_menu():
    picked = []
    ix, _ = interaction([bk("1", date(2024, 7, 1), date(2024, 7, 5))],
                        on_status_change=lambda *args: picked.append(args))
    assert ix.open_status_menu("missing", 0, 0) is None
    menu = ix.open_status_menu("1", 120, 40)
    assert menu.options == list(BookingStatus)
    assert ix.choose_status("completed")
    assert picked == [("1", BookingStatus.COMPLETED)]
    assert ix.status_menu is None

    ix.open_status_menu("1", 0, 0)
    ix.click_outside()
    assert not ix.choose_status("active")
    assert picked == [("1", BookingStatus.COMPLETED)]


def test_tap_to_assign_flow():
    assigned = []
    ix, store = interaction([bk("1", date(2024, 7, 2), date(2024, 7, 4), status=BookingStatus.PENDING, assigned=None)],
                            on_assign=lambda *args: assigned.append(args))
    assert not ix.selecting
    assert ix.arm_unassigned("1") == "1"
    assert ix.selecting
    assert ix.cell_click(7, date(2024, 7, 10)) == "assign"
    assert assigned == [("1", 7)]
    assert store.selected_unassigned_booking_id is None

    ix.arm_unassigned("1")
    assert ix.arm_unassigned("1") is None


def test_cell_click_opens_details_or_quick_add():
    ix, store = interaction([bk("1", date(2024, 7, 2), date(2024, 7, 4))])
    assert ix.cell_click(4, date(2024, 7, 2)) == "details"
    assert store.booking_details_open and store.selected_booking_id == "1"
    # passed-through cell is occupied but has no bar
    assert ix.cell_click(4, date(2024, 7, 3)) is None
    assert ix.cell_click(6, date(2024, 7, 3)) is None
    assert ix.cell_click(7, date(2024, 7, 9)) == "quick_add"
    assert store.quick_add_open
    assert (store.quick_add_date, store.quick_add_vehicle_id) == (date(2024, 7, 9), 7)
    assert ix.cell_click(7, date(2024, 9, 1)) is None


def test_from_record_maps_legacy_status():
    rec = SimpleNamespace(id="x", booking_reference="HD-2024-07-0001", status="confirmed",
                          departure_date=date(2024, 7, 1), return_date=date(2024, 7, 1) + timedelta(days=2),
                          vehicle_id=4, assigned_vehicle_id=None, client_name="A", vehicle_name="Clio")
    snap = GanttBooking.from_record(rec)
    assert snap.status == BookingStatus.ACTIVE
    assert snap.row_vehicle_id == 4
    assert snap.duration == timedelta(days=2)
