"""Tests for the shift capacity model, horizon generation and settings."""

import pytest
from datetime import date, time, timedelta, timezone

from settings import ShiftSettings, parse_clock
from algorithms.shifts import (
    ShiftWindow,
    apply_existing_placements,
    generate_horizon,
    generate_shifts,
    horizon_days,
    shift_capacity_minutes,
    shift_clock_window,
    shifts_for_presses,
)
from conftest import MONDAY, utc


class TestShiftSettings:
    """Tests for clock parsing and environment settings."""

    def test_parse_clock(self):
        assert parse_clock('08:00') == time(8, 0)
        assert parse_clock(' 20:30 ') == time(20, 30)

    @pytest.mark.parametrize('text', ['8am', '25:00', '', '12:61'])
    def test_parse_clock_invalid(self, text):
        with pytest.raises(ValueError):
            parse_clock(text)

    def test_defaults(self):
        settings = ShiftSettings()
        assert settings.day_start == time(8, 0)
        assert settings.night_start == time(20, 0)
        assert settings.horizon == 'weekly'

    def test_invalid_horizon(self):
        with pytest.raises(ValueError):
            ShiftSettings(horizon='yearly')

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('DAY_SHIFT_START', '06:00')
        monkeypatch.setenv('DAY_SHIFT_END', '14:00')
        monkeypatch.setenv('SCHEDULE_HORIZON', 'Monthly')
        monkeypatch.setenv('INCLUDE_TODAY', 'true')
        monkeypatch.setenv('HOLIDAYS', '2024-01-01, 2024-12-25')
        settings = ShiftSettings.from_env()
        assert settings.day_start == time(6, 0)
        assert settings.day_end == time(14, 0)
        assert settings.horizon == 'monthly'
        assert settings.include_today is True
        assert settings.holidays == (date(2024, 1, 1), date(2024, 12, 25))

    def test_from_env_invalid_clock(self, monkeypatch):
        monkeypatch.setenv('NIGHT_SHIFT_START', 'late')
        with pytest.raises(ValueError):
            ShiftSettings.from_env()


class TestShiftClock:
    """Tests for shift lengths and clock windows."""

    def test_same_day_capacity(self):
        assert shift_capacity_minutes(time(8, 0), time(20, 0)) == 720

    def test_overnight_capacity(self):
        assert shift_capacity_minutes(time(20, 0), time(8, 0)) == 720
        assert shift_capacity_minutes(time(22, 0), time(6, 0)) == 480

    def test_clock_window(self, settings):
        assert shift_clock_window(settings, 'Night') == (time(20, 0), time(8, 0), 720)

    def test_clock_window_unknown_type(self, settings):
        with pytest.raises(ValueError):
            shift_clock_window(settings, 'Swing')


class TestShiftWindow:
    """Tests for the capacity budget of one shift."""

    def test_remaining_defaults_to_capacity(self, make_shift):
        shift = make_shift(capacity=600)
        assert shift.remaining == 600
        assert shift.weekday == 'Monday'

    def test_remaining_above_capacity_rejected(self):
        with pytest.raises(ValueError):
            ShiftWindow('s', MONDAY, 'Day', capacity=100, remaining=120)

    def test_negative_remaining_rejected(self):
        with pytest.raises(ValueError):
            ShiftWindow('s', MONDAY, 'Day', capacity=100, remaining=-1)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            ShiftWindow('s', MONDAY, 'Evening', capacity=100)

    def test_consume(self, make_shift):
        shift = make_shift(capacity=100)
        shift.consume(30)
        assert shift.remaining == 70
        assert shift.used_minutes == 30

    def test_consume_more_than_remaining(self, make_shift):
        shift = make_shift(capacity=100, remaining=20)
        with pytest.raises(ValueError):
            shift.consume(21)
        assert shift.remaining == 20

    def test_start_time_day(self, make_shift, settings):
        shift = make_shift(shift_type='Day')
        assert shift.start_time(settings) == utc(2024, 1, 1, 8, 0)

    def test_start_time_night(self, make_shift, settings):
        shift = make_shift(shift_type='Night')
        assert shift.start_time(settings) == utc(2024, 1, 1, 20, 0)
        assert shift.end_time(settings) == utc(2024, 1, 2, 8, 0)

    def test_start_time_of_follows_usage(self, make_shift, settings):
        shift = make_shift(capacity=720, remaining=600)
        assert shift.start_time_of(settings) == utc(2024, 1, 1, 10, 0)
        assert shift.start_time_of(settings, 45) == utc(2024, 1, 1, 8, 45)

    def test_booked_minutes_are_elapsed_time_across_dst(self):
        # Berlin clocks jump from 02:00 to 03:00 on 2024-03-31
        settings = ShiftSettings(tz_name='Europe/Berlin')
        shift = ShiftWindow('2024-03-30-night', date(2024, 3, 30), 'Night', 720)

        start = shift.start_time(settings)
        end = shift.start_time_of(settings, 720)

        assert start.isoformat() == '2024-03-30T20:00:00+01:00'
        assert end.isoformat() == '2024-03-31T09:00:00+02:00'
        assert end.astimezone(timezone.utc) - start.astimezone(timezone.utc) == timedelta(minutes=720)

    def test_to_dict(self, make_shift):
        data = make_shift(shift_type='Night', capacity=720, remaining=100).to_dict()
        assert data == {
            'id': '2024-01-01-night',
            'day': '2024-01-01',
            'weekday': 'Monday',
            'type': 'Night',
            'capacityMinutes': 720,
            'remainingMinutes': 100,
        }


class TestHorizon:
    """Tests for weekly / monthly horizon generation."""

    def test_weekly_excludes_today_and_past(self):
        days = horizon_days(date(2024, 1, 3), 'weekly')
        assert days == [date(2024, 1, 4), date(2024, 1, 5), date(2024, 1, 6), date(2024, 1, 7)]

    def test_weekly_include_today(self):
        days = horizon_days(date(2024, 1, 3), 'weekly', include_today=True)
        assert days[0] == date(2024, 1, 3)
        assert len(days) == 5

    def test_weekly_on_sunday_is_empty(self):
        assert horizon_days(date(2024, 1, 7), 'weekly') == []

    def test_monthly(self):
        days = horizon_days(date(2024, 2, 27), 'monthly')
        assert days == [date(2024, 2, 28), date(2024, 2, 29)]

    def test_invalid_horizon(self):
        with pytest.raises(ValueError):
            horizon_days(MONDAY, 'daily')

    def test_generate_shifts_day_then_night(self, settings):
        shifts = generate_shifts([date(2024, 1, 2), date(2024, 1, 3)], settings)
        assert [s.shift_id for s in shifts] == [
            '2024-01-02-day', '2024-01-02-night', '2024-01-03-day', '2024-01-03-night']
        assert shifts[0].weekday == 'Tuesday'
        assert all(s.capacity == 720 and s.remaining == 720 for s in shifts)

    def test_generate_shifts_skips_holidays(self, settings):
        shifts = generate_shifts([date(2024, 1, 2), date(2024, 1, 3)], settings,
                                 holidays=[date(2024, 1, 2)])
        assert {s.day for s in shifts} == {date(2024, 1, 3)}

    def test_settings_holidays_used_by_default(self):
        settings = ShiftSettings(holidays=(date(2024, 1, 2),))
        shifts = generate_shifts([date(2024, 1, 2)], settings)
        assert shifts == []

    def test_capacity_from_clocks(self):
        settings = ShiftSettings(day_start=time(6, 0), day_end=time(14, 0),
                                 night_start=time(22, 0), night_end=time(6, 0))
        day, night = generate_shifts([date(2024, 1, 2)], settings)
        assert day.capacity == 480
        assert night.capacity == 480

    def test_generate_horizon(self):
        settings = ShiftSettings(horizon='weekly', include_today=True)
        shifts = generate_horizon(settings, reference_date=date(2024, 1, 6))
        assert [s.shift_id for s in shifts] == [
            '2024-01-06-day', '2024-01-06-night', '2024-01-07-day', '2024-01-07-night']


class TestExistingPlacements:
    """Tests for deducting saved bookings from a fresh horizon."""

    class _Booked:
        def __init__(self, shift_id, minutes):
            self.shift_id = shift_id
            self.minutes_taken = minutes

    def test_deducts_and_copies(self, make_shift):
        shifts = [make_shift(0, 'Day', 720), make_shift(0, 'Night', 720)]
        result = apply_existing_placements(shifts, [self._Booked('2024-01-01-day', 200)])
        assert result[0].remaining == 520
        assert result[1].remaining == 720
        assert shifts[0].remaining == 720

    def test_clamped_at_zero(self, make_shift):
        shifts = [make_shift(capacity=100)]
        result = apply_existing_placements(shifts, [self._Booked('2024-01-01-day', 80),
                                                    self._Booked('2024-01-01-day', 80)])
        assert result[0].remaining == 0

    def test_unknown_shift_ignored(self, make_shift):
        result = apply_existing_placements([make_shift()], [self._Booked('nope', 50)])
        assert result[0].remaining == 720

    def test_shifts_for_presses_independent(self, make_shift):
        shifts = [make_shift()]
        by_press = shifts_for_presses(shifts, [1, 2], {1: [self._Booked('2024-01-01-day', 100)]})
        assert by_press[1][0].remaining == 620
        assert by_press[2][0].remaining == 720
        by_press[2][0].consume(10)
        assert by_press[1][0].remaining == 620
