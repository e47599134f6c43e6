"""
Production Condition Parser
Maps production condition rows onto ProductionCondition objects.

The shop's condition sheet records the cycle ("cure") time in seconds;
the API sends minutes. Per-cycle outputs are given for one-side and
two-side operation.
"""

import math
from typing import List, Tuple

from algorithms.conditions import ProductionCondition
from .common import to_rows, first_present, to_number, to_text

CURE_TIME_UNITS = ('minutes', 'seconds')


def cure_time_minutes(value, unit: str = 'minutes'):
    """Cure time in minutes; seconds are rounded up to whole minutes."""
    number = to_number(value)
    if unit == 'seconds':
        return math.ceil(number / 60) if number > 0 else 0
    return number


def parse_conditions(data, cure_time_unit: str = 'minutes') -> Tuple[List[ProductionCondition], List[str]]:
    """
    Parse production conditions.

    Rows without an item code or press number are skipped and reported.
    Non-numeric cure times and outputs become 0, which the scheduler then
    treats as an unusable condition.

    Returns:
        Tuple of (conditions, row errors)
    """
    if cure_time_unit not in CURE_TIME_UNITS:
        raise ValueError(f"Invalid cure time unit '{cure_time_unit}', expected one of {CURE_TIME_UNITS}")

    rows = to_rows(data)
    conditions = []
    errors = []

    for index, row in enumerate(rows):
        item_code = to_text(first_present(row, 'itemCode', 'Item Code'))
        press_no = to_number(first_present(row, 'pressNo', 'Press No'))
        if not item_code or not press_no:
            errors.append(f"Row {index}: Missing item code or press number")
            continue

        conditions.append(ProductionCondition(
            item_code=item_code,
            press_no=int(press_no),
            die_no=int(to_number(first_present(row, 'dieNo', 'Die No'))),
            material=to_text(first_present(row, 'material', 'Material')) or '',
            cure_time=cure_time_minutes(
                first_present(row, 'cureTimeMinutes', 'cureTime', 'Cure Time', 'cycle time'),
                cure_time_unit),
            pieces_per_cycle_1=to_number(first_present(
                row, 'outputPerCycleModeA', 'piecesPerCycle1', 'cycle time 1 side operation')),
            pieces_per_cycle_2=to_number(first_present(
                row, 'outputPerCycleModeB', 'piecesPerCycle2', 'cycle time 2 side operation')),
        ))

    unusable = sum(1 for c in conditions if not c.is_usable)
    print(f"[Parser] Production conditions: {len(conditions)} parsed, {len(errors)} rejected, "
          f"{unusable} without usable cure time/output")

    return conditions, errors
