"""
Calendar-day helpers shared by the availability resolver and the Gantt grid.

All dates are calendar dates and every interval is closed: a booking from
2024-06-01 to 2024-06-04 occupies four calendar days. Functions are pure and
never raise on reversed ranges; the comparison result is returned as-is.
"""
import math
from datetime import date, datetime, timedelta

ONE_DAY = timedelta(days=1)

# Single-location handover: a car returned on day D is not handed out again on D,
# so a return and a departure on the same day count as overlapping occupancy.
SAME_DAY_HANDOVER_CONFLICTS = True


class DateSequence:
    """Finite, re-iterable run of consecutive days (iterating twice yields the same days)."""

    def __init__(self, start: date, count: int):
        self.start = start
        self.count = max(int(count), 0)

    def __iter__(self):
        for i in range(self.count):
            yield self.start + timedelta(days=i)

    def __len__(self) -> int:
        return self.count

    def __getitem__(self, index: int) -> date:
        if index < 0:
            index += self.count
        if not 0 <= index < self.count:
            raise IndexError("date sequence index out of range")
        return self.start + timedelta(days=index)

    def __contains__(self, d: object) -> bool:
        return isinstance(d, date) and self.start <= d < self.end

    @property
    def end(self) -> date:
        """First day after the sequence."""
        return self.start + timedelta(days=self.count)

    def index(self, d: date) -> int:
        if d not in self:
            raise ValueError(f"{d} is not in the sequence")
        return (d - self.start).days

    def __repr__(self) -> str:
        return f"DateSequence(start={self.start.isoformat()}, count={self.count})"


def generate_date_sequence(start: date, count: int) -> DateSequence:
    return DateSequence(start, count)


def intervals_overlap(a_start: date, a_end: date, b_start: date, b_end: date,
                      same_day_conflicts: bool = SAME_DAY_HANDOVER_CONFLICTS) -> bool:
    if same_day_conflicts:
        return a_start <= b_end and a_end >= b_start
    return a_start < b_end and a_end > b_start


def contains_fully(outer_start: date, outer_end: date, inner_start: date, inner_end: date) -> bool:
    return outer_start <= inner_start and outer_end >= inner_end


def compute_rental_days(departure, return_) -> int:
    """Billable days: ceil of the elapsed time in days, never below 1."""
    if isinstance(departure, datetime) != isinstance(return_, datetime):
        departure = departure if isinstance(departure, datetime) else datetime.combine(departure, datetime.min.time())
        return_ = return_ if isinstance(return_, datetime) else datetime.combine(return_, datetime.min.time())
    days = math.ceil((return_ - departure) / ONE_DAY)
    return max(days, 1)


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def parse_date_time(value: str) -> tuple[date, str | None]:
    """Split the customer wire format "YYYY-MM-DD[THH:MM]" into (date, "HH:MM" | None)."""
    raw = (value or "").strip()
    if "T" in raw:
        day, time_part = raw.split("T", 1)
        return date.fromisoformat(day), (time_part[:5] or None)
    return date.fromisoformat(raw), None


def to_datetime(value: str) -> datetime:
    d, t = parse_date_time(value)
    if not t:
        return datetime.combine(d, datetime.min.time())
    hh, mm = map(int, t.split(":"))
    return datetime(d.year, d.month, d.day, hh, mm)
