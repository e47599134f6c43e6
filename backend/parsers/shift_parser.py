"""
Shift Parser
Maps shift rows onto ShiftWindow objects.
"""

from typing import List, Tuple

from algorithms.shifts import ShiftWindow, SHIFT_TYPES
from .common import to_rows, first_present, to_date, to_number, to_text


def parse_shifts(data) -> Tuple[List[ShiftWindow], List[str]]:
    """
    Parse shifts, keeping the input order (the scheduler's horizon order).

    Remaining capacity defaults to the full capacity and is clamped into
    0..capacity. Rows without an id, a day or a valid type are skipped.

    Returns:
        Tuple of (shifts, row errors)
    """
    rows = to_rows(data)
    shifts = []
    errors = []

    for index, row in enumerate(rows):
        shift_id = to_text(first_present(row, 'id', 'shiftId', 'Shift Id'))
        day = to_date(first_present(row, 'date', 'Date', 'day'))
        shift_type = (to_text(first_present(row, 'type', 'Type')) or '').capitalize()

        if not shift_id or day is None or shift_type not in SHIFT_TYPES:
            errors.append(f"Row {index}: Missing id/day or invalid shift type")
            continue

        capacity = max(0, to_number(first_present(row, 'capacityMinutes', 'capacity', 'Capacity')))
        remaining_raw = first_present(row, 'remainingMinutes', 'remainingCapacity', 'Remaining Capacity')
        remaining = capacity if remaining_raw is None else to_number(remaining_raw)

        shifts.append(ShiftWindow(
            shift_id=shift_id,
            day=day,
            shift_type=shift_type,
            capacity=capacity,
            remaining=min(max(0, remaining), capacity),
            weekday=to_text(row.get('weekday')) or '',
        ))

    if errors:
        print(f"[Parser] Shifts: {len(shifts)} parsed, {len(errors)} rejected")

    return shifts, errors
