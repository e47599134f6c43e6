"""Shared test fixtures for PressPlan tests."""

import os
import sys
import pytest
from datetime import date, datetime, timedelta, timezone

# Add backend to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from settings import ShiftSettings

# Keep the developer's .env out of the tests
for _name in ('DAY_SHIFT_START', 'DAY_SHIFT_END', 'NIGHT_SHIFT_START', 'NIGHT_SHIFT_END',
              'SHIFT_TIMEZONE', 'SCHEDULE_HORIZON', 'INCLUDE_TODAY', 'HOLIDAYS',
              'PIPELINE_SETTINGS_FILE'):
    os.environ.pop(_name, None)

from algorithms import Job, ProductionCondition, ShiftWindow


MONDAY = date(2024, 1, 1)  # A Monday


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def app():
    """Create Flask test application."""
    from app import app as flask_app
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()


@pytest.fixture
def settings():
    """Default 08:00 / 20:00 shift clocks in UTC."""
    return ShiftSettings()


@pytest.fixture
def make_job():
    """Factory for pending jobs with sensible defaults."""
    def _make(job_id='JC-001', item_code='ITEM-A', quantity=10, priority='Normal',
              material='EPDM', delivery=None, created=None, remaining=None):
        return Job(
            job_id=job_id,
            item_code=item_code,
            material=material,
            ordered_quantity=quantity,
            remaining_quantity=quantity if remaining is None else remaining,
            priority=priority,
            creation_date=created or utc(2023, 12, 20),
            delivery_date=delivery,
        )
    return _make


@pytest.fixture
def make_condition():
    """Factory for production conditions."""
    def _make(item_code='ITEM-A', press_no=1, die_no=1, material='EPDM',
              cure_time=10, ppc1=5, ppc2=0):
        return ProductionCondition(
            item_code=item_code,
            press_no=press_no,
            die_no=die_no,
            material=material,
            cure_time=cure_time,
            pieces_per_cycle_1=ppc1,
            pieces_per_cycle_2=ppc2,
        )
    return _make


@pytest.fixture
def make_shift():
    """Factory for shifts starting on the reference Monday."""
    def _make(day_offset=0, shift_type='Day', capacity=720, remaining=None):
        day = MONDAY + timedelta(days=day_offset)
        return ShiftWindow(
            shift_id=f"{day.isoformat()}-{shift_type.lower()}",
            day=day,
            shift_type=shift_type,
            capacity=capacity,
            remaining=remaining,
        )
    return _make


@pytest.fixture
def sample_jobs(make_job):
    """Three jobs of mixed priority for item ITEM-A and one for ITEM-B."""
    return [
        make_job('JC-001', quantity=40, priority='Low'),
        make_job('JC-002', quantity=30, priority='High', delivery=utc(2024, 1, 10)),
        make_job('JC-003', quantity=20, priority='Normal', delivery=utc(2024, 1, 5)),
        make_job('JC-004', item_code='ITEM-B', quantity=12, priority='High'),
    ]


@pytest.fixture
def sample_conditions(make_condition):
    """ITEM-A on presses 1 and 2, ITEM-B on press 2 only."""
    return [
        make_condition('ITEM-A', press_no=1, die_no=1, cure_time=10, ppc1=5),
        make_condition('ITEM-A', press_no=1, die_no=2, cure_time=10, ppc1=4, ppc2=8),
        make_condition('ITEM-A', press_no=2, die_no=3, cure_time=15, ppc1=6),
        make_condition('ITEM-B', press_no=2, die_no=4, cure_time=20, ppc1=2),
    ]


@pytest.fixture
def job_rows():
    """Job card rows as they come from the API."""
    return [
        {'id': 'JC-100', 'itemCode': 'ITEM-A', 'material': 'EPDM', 'orderedQuantity': 40,
         'remainingQuantity': 40, 'priority': 'High', 'createdAt': '2023-12-20T00:00:00Z',
         'deliveryAt': '2024-01-05T00:00:00Z'},
        {'id': 'JC-101', 'itemCode': 'ITEM-B', 'material': 'NBR', 'orderedQuantity': 10,
         'remainingQuantity': 10, 'priority': 'Normal', 'createdAt': '2023-12-21T00:00:00Z'},
    ]


@pytest.fixture
def condition_rows():
    """Production condition rows as they come from the API."""
    return [
        {'itemCode': 'ITEM-A', 'pressNo': 1, 'dieNo': 7, 'material': 'EPDM',
         'cureTimeMinutes': 10, 'outputPerCycleModeA': 5, 'outputPerCycleModeB': 0},
        {'itemCode': 'ITEM-B', 'pressNo': 2, 'dieNo': 8, 'material': 'NBR',
         'cureTimeMinutes': 20, 'outputPerCycleModeA': 2, 'outputPerCycleModeB': 0},
    ]
