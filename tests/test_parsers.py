"""Tests for row parsers."""

import json
import pytest
import pandas as pd
from datetime import date

from algorithms.tracking import PipelineConfigError, default_pipeline, resolve_planned_dates
from parsers import (
    cure_time_minutes,
    load_pipeline_settings,
    normalize_priority,
    parse_conditions,
    parse_jobs,
    parse_pipeline_settings,
    parse_placements,
    parse_shifts,
)
from parsers.common import to_number, to_timestamp
from conftest import utc


class TestCellCoercion:
    """Tests for shared cell helpers."""

    @pytest.mark.parametrize('value,expected', [('12', 12), (7.0, 7), ('2.5', 2.5), ('abc', 0),
                                                (None, 0), ('', 0), (float('nan'), 0)])
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    def test_naive_timestamp_is_utc(self):
        assert to_timestamp('2024-01-01 08:00') == utc(2024, 1, 1, 8, 0)

    def test_offset_timestamp_normalized(self):
        assert to_timestamp('2024-01-01T10:00:00+02:00') == utc(2024, 1, 1, 8, 0)

    def test_bad_timestamp_is_none(self):
        assert to_timestamp('not a date') is None
        assert to_timestamp(None) is None


class TestJobParser:
    """Tests for job card rows."""

    def test_api_rows(self, job_rows):
        jobs, errors = parse_jobs(job_rows)
        assert errors == []
        assert [j.job_id for j in jobs] == ['JC-100', 'JC-101']
        assert jobs[0].priority == 'High'
        assert jobs[0].delivery_date == utc(2024, 1, 5)
        assert jobs[1].delivery_date is None

    def test_sheet_headers_from_dataframe(self):
        df = pd.DataFrame([{
            'Job Card Number': 5501, 'Item Code': 'GSK-12', 'Material': 'EPDM',
            'Ordered Quantity': 500, 'Pending Qty': 120, 'Priority': 'normal',
            'Creation Date': '2024-01-02', 'Delivery Date': None,
        }])
        jobs, errors = parse_jobs(df)
        assert errors == []
        job = jobs[0]
        assert job.job_id == '5501'
        assert job.remaining_quantity == 120
        assert job.priority == 'Normal'
        assert job.creation_date == utc(2024, 1, 2)

    def test_remaining_defaults_to_ordered(self):
        jobs, _ = parse_jobs([{'id': 'J', 'itemCode': 'I', 'orderedQuantity': 40}])
        assert jobs[0].remaining_quantity == 40

    def test_bad_numbers_become_zero(self):
        jobs, _ = parse_jobs([{'id': 'J', 'itemCode': 'I', 'orderedQuantity': 'lots',
                               'remainingQuantity': '-5'}])
        assert jobs[0].ordered_quantity == 0
        assert jobs[0].remaining_quantity == 0

    def test_missing_id_reported(self):
        jobs, errors = parse_jobs([{'itemCode': 'I'}, {'id': 'J', 'itemCode': 'I'}])
        assert len(jobs) == 1
        assert errors == ['Row 0: Missing job id or item code']

    @pytest.mark.parametrize('value,expected', [('HIGH', 'High'), ('low', 'Low'), (None, 'None'),
                                                ('urgent', 'None'), ('', 'None')])
    def test_normalize_priority(self, value, expected):
        assert normalize_priority(value) == expected


class TestConditionParser:
    """Tests for production condition rows."""

    def test_api_rows(self, condition_rows):
        conditions, errors = parse_conditions(condition_rows)
        assert errors == []
        assert conditions[0].press_no == 1
        assert conditions[0].cure_time == 10
        assert conditions[0].pieces_per_cycle == 5

    def test_seconds_rounded_up(self):
        assert cure_time_minutes(61, 'seconds') == 2
        assert cure_time_minutes(600, 'seconds') == 10
        assert cure_time_minutes(0, 'seconds') == 0
        assert cure_time_minutes('12', 'minutes') == 12

    def test_sheet_headers_in_seconds(self):
        df = pd.DataFrame([{
            'Item Code': 'GSK-12', 'Press No': 4, 'Die No': 2, 'Material': 'EPDM',
            'cycle time': 450, 'cycle time 1 side operation': 6, 'cycle time 2 side operation': 12,
        }])
        conditions, _ = parse_conditions(df, cure_time_unit='seconds')
        assert conditions[0].cure_time == 8
        assert conditions[0].pieces_per_cycle == 12

    def test_bad_cure_time_kept_as_unusable(self):
        conditions, errors = parse_conditions([{'itemCode': 'I', 'pressNo': 1, 'cureTimeMinutes': 'n/a',
                                                'outputPerCycleModeA': 4}])
        assert errors == []
        assert conditions[0].cure_time == 0
        assert conditions[0].is_usable is False

    def test_missing_press_reported(self):
        conditions, errors = parse_conditions([{'itemCode': 'I'}])
        assert conditions == []
        assert len(errors) == 1

    def test_invalid_unit(self):
        with pytest.raises(ValueError):
            parse_conditions([], cure_time_unit='hours')


class TestShiftParser:
    """Tests for shift rows."""

    def test_api_rows(self):
        shifts, errors = parse_shifts([
            {'id': '2024-01-02-day', 'day': '2024-01-02', 'type': 'Day',
             'capacityMinutes': 720, 'remainingMinutes': 300},
            {'id': '2024-01-02-night', 'day': '2024-01-02', 'type': 'night', 'capacityMinutes': 720},
        ])
        assert errors == []
        assert shifts[0].day == date(2024, 1, 2)
        assert shifts[0].remaining == 300
        assert shifts[1].shift_type == 'Night'
        assert shifts[1].remaining == 720

    def test_remaining_clamped(self):
        shifts, _ = parse_shifts([{'id': 's', 'day': '2024-01-02', 'type': 'Day',
                                   'capacityMinutes': 100, 'remainingMinutes': 250}])
        assert shifts[0].remaining == 100

    def test_invalid_type_reported(self):
        shifts, errors = parse_shifts([{'id': 's', 'day': '2024-01-02', 'type': 'Swing'}])
        assert shifts == []
        assert len(errors) == 1

    def test_day_keeps_its_written_date(self):
        shifts, _ = parse_shifts([{'id': 's', 'day': '2024-01-01T00:00:00+05:30', 'type': 'Day',
                                   'capacityMinutes': 100}])
        assert shifts[0].day == date(2024, 1, 1)

    def test_round_trip_from_to_dict(self, make_shift):
        original = [make_shift(0, 'Day', 720, 500), make_shift(0, 'Night', 720)]
        shifts, _ = parse_shifts([s.to_dict() for s in original])
        assert shifts == original


class TestPlacementParser:
    """Tests for saved placement rows."""

    @pytest.fixture
    def saved_row(self):
        return {
            'id': 'JC-1-1-A', 'jobId': 'JC-1', 'itemCode': 'ITEM-A', 'material': 'EPDM',
            'priority': 'High', 'quantity': 37.2, 'pressNo': 1, 'dieNo': 2, 'minutesTaken': 80,
            'shiftId': '2024-01-01-day', 'startAt': '2024-01-01T08:00:00Z',
            'endAt': '2024-01-01T09:20:00Z', 'batch': 'B',
            'trackingSteps': [
                {'stageName': 'Molding', 'status': 'Completed', 'outputQty': 38,
                 'actualEndAt': '2024-01-01T18:00:00Z'},
                {'stageName': 'Painting', 'status': 'Pending'},
                {'stageName': 'Finishing', 'status': 'Weird'},
            ],
        }

    def test_parse_saved_row(self, saved_row):
        placements, errors = parse_placements([saved_row])
        assert errors == []
        placement = placements[0]
        assert placement.quantity == 38
        assert placement.batch_number == 2
        assert placement.end_time == utc(2024, 1, 1, 9, 20)
        assert [s.stage_name for s in placement.tracking_steps] == ['Molding', 'Painting', 'Finishing']
        assert placement.tracking_steps[2].status == 'Pending'

    def test_config_completes_steps(self, saved_row):
        placements, _ = parse_placements([saved_row], config=default_pipeline())
        steps = placements[0].tracking_steps
        assert [s.stage_name for s in steps] == default_pipeline().stage_names
        assert steps[0].actual_end == utc(2024, 1, 1, 18, 0)

    def test_generated_id(self, saved_row):
        del saved_row['id']
        placements, _ = parse_placements([saved_row])
        assert placements[0].placement_id == 'JC-1-1-B'

    def test_missing_shift_reported(self, saved_row):
        del saved_row['shiftId']
        placements, errors = parse_placements([saved_row])
        assert placements == []
        assert len(errors) == 1

    def test_round_trip_resolved(self, saved_row):
        placements, _ = parse_placements([saved_row], config=default_pipeline())
        resolved = resolve_planned_dates(placements[0], default_pipeline())
        reparsed, _ = parse_placements([resolved.to_dict()], config=default_pipeline())
        assert reparsed[0] == resolved


class TestPipelineSettingsParser:
    """Tests for stored pipeline settings."""

    def test_mapping_shape(self):
        config = parse_pipeline_settings({
            'Molding': {'enabled': True, 'dependsOn': 'scheduled_end_time', 'turnaround': 8,
                        'turnaroundUnit': 'hours'},
            'Finishing': {'enabled': 'false', 'dependsOn': 'Molding', 'turnaround': 1,
                          'turnaroundUnit': 'Days'},
        })
        assert config.stage_names == ['Molding', 'Finishing']
        assert config.get('Finishing').enabled is False
        assert config.get('Finishing').tat_unit == 'days'

    def test_mapping_in_sorted_key_order(self):
        settings = {name: entry for name, entry in sorted(default_pipeline().to_dict().items())}
        config = parse_pipeline_settings(settings)
        assert config.stage_names == default_pipeline().stage_names

    def test_mapping_follows_explicit_order(self):
        config = parse_pipeline_settings({
            'Pack': {'dependsOn': 'Wash'},
            'Wash': {'turnaround': 2},
            'Molding': {'turnaround': 8},
        }, order=['Wash', 'Pack'])
        assert config.stage_names == ['Wash', 'Pack', 'Molding']

    def test_order_must_be_list(self):
        with pytest.raises(PipelineConfigError):
            parse_pipeline_settings({'Wash': {}}, order='Wash')

    def test_list_shape(self):
        config = parse_pipeline_settings([
            {'stageName': 'Wash', 'turnaround': 2},
            {'stageName': 'Pack', 'dependsOn': 'Wash'},
        ])
        assert config.effective_dependency('Pack') == 'Wash'
        assert config.get('Wash').turnaround().total_seconds() == 7200

    def test_cycle_rejected(self):
        with pytest.raises(PipelineConfigError):
            parse_pipeline_settings({'A': {'dependsOn': 'B'}, 'B': {'dependsOn': 'A'}})

    @pytest.mark.parametrize('data', ['Molding', 42, None, ['Molding']])
    def test_wrong_shape(self, data):
        with pytest.raises(PipelineConfigError):
            parse_pipeline_settings(data)

    def test_load_from_file(self, tmp_path):
        path = tmp_path / 'pipeline.json'
        path.write_text(json.dumps(default_pipeline().to_dict()))
        config = load_pipeline_settings(str(path))
        assert config.to_dict() == default_pipeline().to_dict()

    def test_load_default(self):
        assert load_pipeline_settings(None).stage_names == default_pipeline().stage_names
