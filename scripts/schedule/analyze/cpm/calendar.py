"""
Working-day calendar and date boundary conversion.

The CPM engine only works with integer offsets. This module defines the
calendar contract used to turn those offsets into dates, a caller-owned
working-day calendar, and the conversion of a CPMResult into dated rows.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Protocol, Union, runtime_checkable

from .models import CPMResult


Instant = Union[date, datetime]

DEFAULT_WORK_DAYS = frozenset({0, 1, 2, 3, 4})  # Monday=0 ... Friday=4
HOLIDAY_TYPES = ('public', 'company', 'custom')


@runtime_checkable
class CalendarMapper(Protocol):
    """Working-time arithmetic consumed at the engine boundary."""

    def add_working_units(self, start: Instant, units: int) -> date:
        ...

    def units_between(self, start: Instant, end: Instant) -> int:
        ...

    def is_working_instant(self, instant: Instant) -> bool:
        ...


def _as_date(instant: Instant) -> date:
    if isinstance(instant, datetime):
        return instant.date()
    return instant


@dataclass(frozen=True)
class Holiday:
    """A non-working date."""
    date: date
    name: str = ''
    holiday_type: str = 'public'

    def __post_init__(self):
        if self.holiday_type not in HOLIDAY_TYPES:
            raise ValueError(f"Unknown holiday type {self.holiday_type!r}; expected one of {HOLIDAY_TYPES}")


@dataclass
class WorkingDayCalendar:
    """
    Calendar where one working unit is one working day.

    Owned by the caller and passed explicitly; several calendars (project
    level, per resource) can coexist.

    Handles:
    - Work days of the week (Monday=0 ... Sunday=6)
    - Holidays (non-working dates)
    - Extra working days (dates worked despite the week pattern)
    """

    calendar_id: str = 'standard'
    name: str = ''
    work_days: frozenset[int] = DEFAULT_WORK_DAYS
    holidays: dict[date, Holiday] = field(default_factory=dict)
    extra_working_days: frozenset[date] = frozenset()

    def __post_init__(self):
        self.work_days = frozenset(self.work_days)
        self.extra_working_days = frozenset(self.extra_working_days)
        if any(d not in range(7) for d in self.work_days):
            raise ValueError(f"Work days must be weekday numbers 0-6, got {sorted(self.work_days)}")
        if not self.work_days:
            raise ValueError(f"Calendar {self.calendar_id} has no working days of the week")

    @classmethod
    def from_holidays(cls, holidays: list[Holiday], calendar_id: str = 'standard',
                      name: str = '', work_days=DEFAULT_WORK_DAYS) -> 'WorkingDayCalendar':
        """Build a calendar from a list of Holiday records."""
        return cls(
            calendar_id=calendar_id,
            name=name,
            work_days=frozenset(work_days),
            holidays={h.date: h for h in holidays},
        )

    def add_holiday(self, holiday: Holiday) -> None:
        self.holidays[holiday.date] = holiday

    def is_working_instant(self, instant: Instant) -> bool:
        """Check if a date (or the date of a datetime) is a work day."""
        day = _as_date(instant)
        if day in self.extra_working_days:
            return True
        if day in self.holidays:
            return False
        return day.weekday() in self.work_days

    def next_working_day(self, instant: Instant) -> date:
        """First working day strictly after the given date."""
        day = _as_date(instant) + timedelta(days=1)
        while not self.is_working_instant(day):
            day += timedelta(days=1)
        return day

    def previous_working_day(self, instant: Instant) -> date:
        """Last working day strictly before the given date."""
        day = _as_date(instant) - timedelta(days=1)
        while not self.is_working_instant(day):
            day -= timedelta(days=1)
        return day

    def snap_forward(self, instant: Instant) -> date:
        """The date itself if it is a working day, else the next one."""
        day = _as_date(instant)
        if self.is_working_instant(day):
            return day
        return self.next_working_day(day)

    def add_working_units(self, start: Instant, units: int) -> date:
        """
        Move a number of working days from start.

        Start is first advanced to a working day; negative units move
        backward.
        """
        current = self.snap_forward(start)

        if units >= 0:
            for _ in range(units):
                current = self.next_working_day(current)
        else:
            for _ in range(-units):
                current = self.previous_working_day(current)

        return current

    def units_between(self, start: Instant, end: Instant) -> int:
        """
        Count working days d with start <= d < end.

        Negative when end is before start, so that
        units_between(a, add_working_units(a, n)) == n for a working day a.
        """
        start_day = _as_date(start)
        end_day = _as_date(end)
        if end_day < start_day:
            return -self.units_between(end_day, start_day)

        count = 0
        current = start_day
        while current < end_day:
            if self.is_working_instant(current):
                count += 1
            current += timedelta(days=1)
        return count

    def count_working_days(self, start: Instant, end: Instant) -> int:
        """Count work days between two dates (inclusive)."""
        start_day = _as_date(start)
        end_day = _as_date(end)
        if end_day < start_day:
            return 0
        return self.units_between(start_day, end_day + timedelta(days=1))

    def get_holidays(self, start: Optional[Instant] = None,
                     end: Optional[Instant] = None) -> list[Holiday]:
        """Holidays in [start, end] (all holidays if no range), by date."""
        holidays = sorted(self.holidays.values(), key=lambda h: h.date)
        if start is None or end is None:
            return holidays
        start_day, end_day = _as_date(start), _as_date(end)
        return [h for h in holidays if start_day <= h.date <= end_day]

    def __repr__(self) -> str:
        return (f"WorkingDayCalendar({self.calendar_id}, {len(self.work_days)}-day week, "
                f"{len(self.holidays)} holidays)")


def date_to_offset(calendar: CalendarMapper, project_start: Instant, instant: Instant) -> int:
    """Convert a date into a working-unit offset from the project start."""
    epoch = calendar.add_working_units(project_start, 0)
    return calendar.units_between(epoch, instant)


def offset_to_date(calendar: CalendarMapper, project_start: Instant, offset: int) -> date:
    """Convert a working-unit offset into the date it falls on."""
    return calendar.add_working_units(project_start, offset)


@dataclass(frozen=True)
class DatedSchedule:
    """CPM dates for one task expressed as calendar dates."""

    task_id: str
    early_start: date
    early_finish: date
    late_start: date
    late_finish: date


def _finish_date(calendar: CalendarMapper, project_start: Instant,
                 start_offset: int, finish_offset: int) -> date:
    # A task occupies units [start, finish); its finish date is the last
    # working day it occupies. Milestones finish on their start date.
    if finish_offset <= start_offset:
        return offset_to_date(calendar, project_start, start_offset)
    return offset_to_date(calendar, project_start, finish_offset - 1)


def to_dated_schedule(result: CPMResult, calendar: CalendarMapper,
                      project_start: Instant) -> dict[str, DatedSchedule]:
    """
    Convert a CPMResult into calendar dates.

    Args:
        result: Offset-based CPM result
        calendar: Calendar used for the conversion
        project_start: Date of offset 0 (advanced to a working day)

    Returns:
        Dict mapping task_id to DatedSchedule, in topological order
    """
    dated = {}
    for task_id in result.topological_order:
        r = result.results[task_id]
        dated[task_id] = DatedSchedule(
            task_id=task_id,
            early_start=offset_to_date(calendar, project_start, r.early_start),
            early_finish=_finish_date(calendar, project_start, r.early_start, r.early_finish),
            late_start=offset_to_date(calendar, project_start, r.late_start),
            late_finish=_finish_date(calendar, project_start, r.late_start, r.late_finish),
        )
    return dated
