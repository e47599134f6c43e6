"""
Shift Capacity Model
Bounded production windows (Day / Night shifts on one press) with a
remaining-minutes budget, plus horizon generation.
"""

import calendar
import copy
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from settings import ShiftSettings

SHIFT_TYPES = ('Day', 'Night')
WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


def shift_capacity_minutes(start: time, end: time) -> int:
    """Length of a shift in minutes; an end at or before the start is next day."""
    start_minutes = start.hour * 60 + start.minute
    end_minutes = end.hour * 60 + end.minute
    if end_minutes <= start_minutes:
        end_minutes += 24 * 60
    return end_minutes - start_minutes


def add_elapsed(moment: datetime, delta: timedelta) -> datetime:
    """
    Add elapsed time to a timestamp.

    Aware timestamps are advanced in UTC and converted back, so a span
    across a DST change still lasts exactly `delta`.
    """
    if moment.tzinfo is None:
        return moment + delta
    return (moment.astimezone(timezone.utc) + delta).astimezone(moment.tzinfo)


def shift_clock_window(settings: ShiftSettings, shift_type: str) -> Tuple[time, time, int]:
    """Return (start clock, end clock, capacity minutes) for a shift type."""
    if shift_type == 'Day':
        start, end = settings.day_start, settings.day_end
    elif shift_type == 'Night':
        start, end = settings.night_start, settings.night_end
    else:
        raise ValueError(f"Unknown shift type '{shift_type}', expected one of {SHIFT_TYPES}")
    return start, end, shift_capacity_minutes(start, end)


@dataclass
class ShiftWindow:
    """
    One shift on one press.

    `remaining` is the unbooked part of `capacity` (both in minutes) and
    always satisfies 0 <= remaining <= capacity. Work is booked from the
    shift start onwards, so the next free minute is start + used minutes.
    """
    shift_id: str
    day: date
    shift_type: str  # 'Day' or 'Night'
    capacity: float
    remaining: Optional[float] = None
    weekday: str = ''

    def __post_init__(self):
        if self.shift_type not in SHIFT_TYPES:
            raise ValueError(f"Shift {self.shift_id}: unknown type '{self.shift_type}'")
        if self.remaining is None:
            self.remaining = self.capacity
        if self.capacity < 0 or not 0 <= self.remaining <= self.capacity:
            raise ValueError(
                f"Shift {self.shift_id}: remaining {self.remaining} outside 0..{self.capacity}")
        if not self.weekday:
            self.weekday = WEEKDAY_NAMES[self.day.weekday()]

    @property
    def used_minutes(self) -> float:
        return self.capacity - self.remaining

    def consume(self, minutes: float):
        """Book minutes against this shift. The caller checks the fit first."""
        if minutes < 0 or minutes > self.remaining:
            raise ValueError(
                f"Shift {self.shift_id}: cannot book {minutes} min, {self.remaining} min left")
        self.remaining -= minutes

    def start_time(self, settings: ShiftSettings) -> datetime:
        """Canonical start of the shift as an aware datetime."""
        start_clock, _, _ = shift_clock_window(settings, self.shift_type)
        return datetime.combine(self.day, start_clock, tzinfo=settings.zone())

    def start_time_of(self, settings: ShiftSettings, minutes_used: Optional[float] = None) -> datetime:
        """Timestamp at which new work begins after `minutes_used` booked minutes."""
        if minutes_used is None:
            minutes_used = self.used_minutes
        return add_elapsed(self.start_time(settings), timedelta(minutes=minutes_used))

    def end_time(self, settings: ShiftSettings) -> datetime:
        return add_elapsed(self.start_time(settings), timedelta(minutes=self.capacity))

    def to_dict(self) -> Dict:
        return {
            'id': self.shift_id,
            'day': self.day.isoformat(),
            'weekday': self.weekday,
            'type': self.shift_type,
            'capacityMinutes': self.capacity,
            'remainingMinutes': self.remaining,
        }


# =============================================================================
# HORIZON GENERATION
# =============================================================================

def horizon_days(reference_date: date, horizon: str = 'weekly',
                 include_today: bool = False) -> List[date]:
    """
    Calendar days covered by a scheduling horizon.

    weekly: Monday..Sunday of the reference week.
    monthly: first..last day of the reference month.
    Days before the reference date are never included; the reference date
    itself only when include_today is set.
    """
    if horizon == 'weekly':
        start = reference_date - timedelta(days=reference_date.weekday())
        end = start + timedelta(days=6)
    elif horizon == 'monthly':
        start = reference_date.replace(day=1)
        last_day = calendar.monthrange(reference_date.year, reference_date.month)[1]
        end = reference_date.replace(day=last_day)
    else:
        raise ValueError(f"Invalid schedule horizon '{horizon}'")

    days = []
    current = start
    while current <= end:
        if current > reference_date or (include_today and current == reference_date):
            days.append(current)
        current += timedelta(days=1)
    return days


def generate_shifts(days: Iterable[date], settings: ShiftSettings,
                    holidays: Optional[Iterable[date]] = None) -> List[ShiftWindow]:
    """One Day and one Night shift per non-holiday day, in calendar order."""
    if holidays is None:
        holidays = settings.holidays
    holiday_set = set(holidays)

    _, _, day_capacity = shift_clock_window(settings, 'Day')
    _, _, night_capacity = shift_clock_window(settings, 'Night')

    shifts = []
    for day in days:
        if day in holiday_set:
            continue
        date_str = day.isoformat()
        shifts.append(ShiftWindow(shift_id=f"{date_str}-day", day=day, shift_type='Day',
                                  capacity=day_capacity))
        shifts.append(ShiftWindow(shift_id=f"{date_str}-night", day=day, shift_type='Night',
                                  capacity=night_capacity))
    return shifts


def generate_horizon(settings: ShiftSettings, reference_date: Optional[date] = None) -> List[ShiftWindow]:
    """Shifts for the configured horizon around the reference date (default today)."""
    if reference_date is None:
        reference_date = datetime.now(settings.zone()).date()
    days = horizon_days(reference_date, settings.horizon, settings.include_today)
    return generate_shifts(days, settings)


def apply_existing_placements(shifts: List[ShiftWindow], placements: Iterable) -> List[ShiftWindow]:
    """
    Copy the shifts and deduct minutes already booked by saved placements.

    Placements are matched on `shift_id`; their `minutes_taken` is deducted
    and remaining capacity is clamped at zero. Placements for shifts outside
    the list are ignored.
    """
    result = copy.deepcopy(shifts)
    by_id = {shift.shift_id: shift for shift in result}
    for placement in placements:
        shift = by_id.get(placement.shift_id)
        if shift is not None:
            shift.remaining = max(0, shift.remaining - placement.minutes_taken)
    return result


def shifts_for_presses(shifts: List[ShiftWindow], press_nos: Iterable[int],
                       placements_by_press: Optional[Dict[int, List]] = None) -> Dict[int, List[ShiftWindow]]:
    """Independent copy of the horizon for every press, less its saved bookings."""
    placements_by_press = placements_by_press or {}
    return {
        press_no: apply_existing_placements(shifts, placements_by_press.get(press_no, []))
        for press_no in press_nos
    }
