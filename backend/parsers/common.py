"""
Parser Helpers
Cell coercion shared by the row parsers.
"""

import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

import pandas as pd


def to_rows(data: Union[pd.DataFrame, List[Dict[str, Any]], None]) -> List[Dict[str, Any]]:
    """Accept a DataFrame or a list of dicts (decoded JSON) and return dict rows."""
    if data is None:
        return []
    if isinstance(data, pd.DataFrame):
        return data.to_dict('records')
    return list(data)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def first_present(row: Dict[str, Any], *names: str) -> Any:
    """Value of the first non-blank column among the candidate names."""
    for name in names:
        value = row.get(name)
        if not is_blank(value):
            return value
    return None


def to_number(value: Any) -> Union[int, float]:
    """
    Coerce a cell to a number. Missing or unparseable values become 0.

    Integral floats (e.g. 1000.0 from Excel) come back as int.
    """
    if is_blank(value) or isinstance(value, bool):
        return 0
    try:
        number = float(str(value).replace(',', '').strip())
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number) if number.is_integer() else number


def to_text(value: Any) -> Optional[str]:
    """Cell as trimmed text; integral floats lose their '.0' suffix."""
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a cell into a timezone-aware datetime.

    Naive values are taken as UTC; anything unparseable becomes None.
    """
    if is_blank(value):
        return None
    parsed = pd.to_datetime(value, errors='coerce', utc=True)
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def to_date(value: Any) -> Optional[date]:
    """Calendar date of a cell as written, without shifting it to UTC."""
    if is_blank(value):
        return None
    parsed = pd.to_datetime(value, errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed.date()


def to_bool(value: Any, default: bool = False) -> bool:
    if is_blank(value):
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', 'yes', 'y', '1', 'enabled')
