"""
Application Settings
Shift clocks, horizon and folder configuration loaded from the environment.
"""

import os
from dataclasses import dataclass
from datetime import date, time, timezone, tzinfo
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# Load .env from the repository root (one level above backend/)
load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', '.env'))

VALID_HORIZONS = ('weekly', 'monthly')


def parse_clock(value: str) -> time:
    """
    Parse a "HH:MM" clock string.

    Raises:
        ValueError: if the text is not a valid 24-hour clock
    """
    try:
        hours, minutes = str(value).strip().split(':')
        return time(int(hours), int(minutes))
    except (TypeError, ValueError):
        raise ValueError(f"Invalid shift clock '{value}', expected HH:MM")


def _parse_holidays(raw: str) -> List[date]:
    holidays = []
    for part in (raw or '').split(','):
        part = part.strip()
        if part:
            holidays.append(date.fromisoformat(part))
    return holidays


@dataclass(frozen=True)
class ShiftSettings:
    """
    Canonical shift clocks for one plant.

    Clocks are interpreted in `tz_name`. A shift whose end clock is not
    after its start clock runs over midnight into the next day.
    """
    day_start: time = time(8, 0)
    day_end: time = time(20, 0)
    night_start: time = time(20, 0)
    night_end: time = time(8, 0)
    tz_name: str = 'UTC'
    horizon: str = 'weekly'
    include_today: bool = False
    holidays: Tuple[date, ...] = ()

    def __post_init__(self):
        if self.horizon not in VALID_HORIZONS:
            raise ValueError(f"Invalid schedule horizon '{self.horizon}', expected one of {VALID_HORIZONS}")
        self.zone()

    def zone(self) -> tzinfo:
        """Timezone the shift clocks are read in."""
        if self.tz_name.upper() == 'UTC':
            return timezone.utc
        return ZoneInfo(self.tz_name)

    @classmethod
    def from_env(cls) -> 'ShiftSettings':
        """Build settings from environment variables (see .env.example)."""
        return cls(
            day_start=parse_clock(os.environ.get('DAY_SHIFT_START', '08:00')),
            day_end=parse_clock(os.environ.get('DAY_SHIFT_END', '20:00')),
            night_start=parse_clock(os.environ.get('NIGHT_SHIFT_START', '20:00')),
            night_end=parse_clock(os.environ.get('NIGHT_SHIFT_END', '08:00')),
            tz_name=os.environ.get('SHIFT_TIMEZONE', 'UTC'),
            horizon=os.environ.get('SCHEDULE_HORIZON', 'weekly').lower(),
            include_today=os.environ.get('INCLUDE_TODAY', 'false').lower() == 'true',
            holidays=tuple(_parse_holidays(os.environ.get('HOLIDAYS', ''))),
        )


def get_data_dir() -> str:
    base_dir = os.path.dirname(os.path.abspath(__file__))
    return os.environ.get('DATA_DIR', os.path.join(base_dir, '..', 'data'))


def get_output_dir() -> str:
    base_dir = os.path.dirname(os.path.abspath(__file__))
    return os.environ.get('OUTPUT_DIR', os.path.join(base_dir, '..', 'outputs'))


def get_pipeline_settings_file() -> Optional[str]:
    return os.environ.get('PIPELINE_SETTINGS_FILE') or None
