"""
PressPlan - Flask Web Application
Stateless JSON API around the press scheduler and the tracking pipeline
"""

import os
import sys
from dataclasses import replace
from datetime import date, datetime

from flask import Flask, request, jsonify
from flask_cors import CORS

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from settings import ShiftSettings, get_data_dir, get_output_dir, get_pipeline_settings_file
from algorithms import (
    PipelineConfigError,
    generate_horizon,
    schedule_press,
    schedule_presses,
    press_workload,
    shifts_for_presses,
    resolve_all,
    record_stage_progress,
    finished_goods_from_excess,
)
from parsers import (
    parse_jobs,
    parse_conditions,
    parse_shifts,
    parse_placements,
    parse_pipeline_settings,
    load_pipeline_settings,
)
from algorithms.tracking import STAGE_STATUSES
from parsers.common import to_bool, to_number, to_text, to_timestamp
from exporters import export_all_reports
from validators import validate_all_data
from data_loader import DataLoader


class PayloadError(ValueError):
    """Malformed request body. Rendered as a 400 with details."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or []


# ============== App Configuration ==============

def create_app():
    """Application factory for Flask app."""
    app = Flask(__name__)

    # Load configuration from environment
    app.config['ENV'] = os.environ.get('FLASK_ENV', 'development')
    app.config['DEBUG'] = os.environ.get('FLASK_DEBUG', 'true').lower() == 'true'
    app.config['DATA_FOLDER'] = get_data_dir()
    app.config['OUTPUT_FOLDER'] = get_output_dir()
    app.config['MAX_CONTENT_LENGTH'] = 16 * 1024 * 1024  # 16MB max JSON body

    # CORS for API access
    CORS(app)

    return app


app = create_app()


# ============== Request Helpers ==============

def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise PayloadError('Request body must be a JSON object.')
    return data


def _require_list(data: dict, key: str) -> list:
    value = data.get(key)
    if not isinstance(value, list):
        raise PayloadError(f"'{key}' must be a list.")
    return value


def _parse_or_fail(parser, rows, label):
    """Run a row parser; rows it rejects make the whole request a 400."""
    items, errors = parser(rows)
    if errors:
        raise PayloadError(f'Invalid {label}.', errors)
    return items


def _shift_settings(data: dict) -> ShiftSettings:
    """Environment shift settings with per-request horizon overrides."""
    settings = ShiftSettings.from_env()
    changes = {}
    if 'horizon' in data:
        changes['horizon'] = (to_text(data['horizon']) or '').lower()
    if 'includeToday' in data:
        changes['include_today'] = to_bool(data['includeToday'])
    if 'holidays' in data:
        holidays = data['holidays'] or []
        if not isinstance(holidays, list):
            raise PayloadError("'holidays' must be a list of YYYY-MM-DD dates.")
        try:
            changes['holidays'] = tuple(date.fromisoformat(str(h)) for h in holidays)
        except ValueError as e:
            raise PayloadError('Invalid holiday date.', [str(e)])
    if not changes:
        return settings
    try:
        return replace(settings, **changes)
    except ValueError as e:
        raise PayloadError(str(e))


def _reference_date(data: dict):
    raw = data.get('referenceDate')
    if raw in (None, ''):
        return None
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        raise PayloadError(f"Invalid referenceDate '{raw}', expected YYYY-MM-DD.")


def _pipeline(data: dict):
    """Pipeline from the request, else from the configured settings file."""
    if data.get('settings') is not None:
        return parse_pipeline_settings(data['settings'], order=data.get('order'))
    return load_pipeline_settings(get_pipeline_settings_file())


def _horizon(data: dict, settings: ShiftSettings):
    if data.get('shifts') is not None:
        return _parse_or_fail(parse_shifts, _require_list(data, 'shifts'), 'shifts')
    return generate_horizon(settings, _reference_date(data))


# ============== Routes ==============

@app.route('/api/health')
def api_health():
    """Liveness probe."""
    return jsonify({'status': 'ok', 'timestamp': datetime.now().isoformat()})


@app.route('/api/shifts/generate', methods=['POST'])
def api_generate_shifts():
    """Day and Night shifts for the weekly or monthly horizon."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise PayloadError('Request body must be a JSON object.')
    settings = _shift_settings(data)
    shifts = generate_horizon(settings, _reference_date(data))
    return jsonify({
        'horizon': settings.horizon,
        'timezone': settings.tz_name,
        'shifts': [s.to_dict() for s in shifts],
    })


@app.route('/api/schedule', methods=['POST'])
def api_schedule():
    """Schedule pending jobs onto one press."""
    data = _payload()
    press_no = int(to_number(data.get('pressNo')))
    if press_no <= 0:
        raise PayloadError("'pressNo' must be a positive press number.")

    settings = _shift_settings(data)
    jobs = _parse_or_fail(parse_jobs, _require_list(data, 'jobs'), 'jobs')
    conditions = _parse_or_fail(parse_conditions, _require_list(data, 'conditions'), 'conditions')
    shifts = _horizon(data, settings)

    result = schedule_press(jobs, conditions, shifts, press_no, settings=settings)
    return jsonify(result.to_dict())


def _schedule_all_presses(data: dict, jobs, conditions, saved):
    """Schedule every requested press, less saved bookings; export on request."""
    settings = _shift_settings(data)
    shifts = _horizon(data, settings)

    if data.get('pressNos') is not None:
        press_nos = [int(to_number(p)) for p in _require_list(data, 'pressNos')]
    else:
        press_nos = sorted({c.press_no for c in conditions})

    placements_by_press = {}
    for placement in saved:
        placements_by_press.setdefault(placement.press_no, []).append(placement)

    results = schedule_presses(
        jobs, conditions,
        shifts_for_presses(shifts, press_nos, placements_by_press),
        press_order=press_nos,
        carry_over=to_bool(data.get('carryOver'), default=True),
        settings=settings,
        existing_placements_by_press=placements_by_press,
    )
    response = results.to_dict()

    if to_bool(data.get('export')):
        tracked = resolve_all(results.placements, _pipeline(data))
        files = export_all_reports(results, tracked, app.config['OUTPUT_FOLDER'])
        response['reports'] = {name: os.path.basename(path) for name, path in files.items()}

    return response


@app.route('/api/schedule/presses', methods=['POST'])
def api_schedule_presses():
    """Schedule every press over the same horizon, optionally carrying leftovers over."""
    data = _payload()
    jobs = _parse_or_fail(parse_jobs, _require_list(data, 'jobs'), 'jobs')
    conditions = _parse_or_fail(parse_conditions, _require_list(data, 'conditions'), 'conditions')

    saved = []
    if data.get('existingPlacements') is not None:
        saved = _parse_or_fail(parse_placements, _require_list(data, 'existingPlacements'),
                               'existingPlacements')

    return jsonify(_schedule_all_presses(data, jobs, conditions, saved))


@app.route('/api/schedule/data', methods=['POST'])
def api_schedule_data():
    """Schedule every press from the newest spreadsheets in the data folder."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise PayloadError('Request body must be a JSON object.')

    loader = DataLoader(app.config['DATA_FOLDER'], pipeline=_pipeline(data))
    if not loader.load_all():
        raise PayloadError('Could not load input files from the data folder.',
                           [f"Data folder: {loader.data_dir}"])

    response = _schedule_all_presses(data, loader.jobs, loader.conditions, loader.saved_placements)
    response['dataSummary'] = loader.get_summary()
    return jsonify(response)


@app.route('/api/workload', methods=['POST'])
def api_workload():
    """Pending vs. scheduled quantity per press."""
    data = _payload()
    jobs = _parse_or_fail(parse_jobs, _require_list(data, 'jobs'), 'jobs')
    conditions = _parse_or_fail(parse_conditions, _require_list(data, 'conditions'), 'conditions')
    placements = _parse_or_fail(parse_placements, data.get('placements') or [], 'placements')

    workload = press_workload(jobs, conditions, placements)
    return jsonify({'workload': [w.to_dict() for w in workload]})


@app.route('/api/tracking/settings')
def api_tracking_settings():
    """Pipeline stage configuration in effect."""
    config = load_pipeline_settings(get_pipeline_settings_file())
    return jsonify({'settings': config.to_dict(), 'order': config.stage_names})


@app.route('/api/tracking/resolve', methods=['POST'])
def api_tracking_resolve():
    """Planned dates for every pipeline stage of one or more placements."""
    data = _payload()
    config = _pipeline(data)

    if data.get('placement') is not None:
        rows = [data['placement']]
    else:
        rows = _require_list(data, 'placements')
    placements = _parse_or_fail(lambda r: parse_placements(r, config=config), rows, 'placements')

    resolved = resolve_all(placements, config)
    return jsonify({
        'placements': [p.to_dict() for p in resolved],
        'finishedGoods': [e.to_dict() for e in finished_goods_from_excess(resolved)],
    })


@app.route('/api/tracking/progress', methods=['POST'])
def api_tracking_progress():
    """Record operator input for one stage and return the re-planned placement."""
    data = _payload()
    config = _pipeline(data)

    if not isinstance(data.get('placement'), dict):
        raise PayloadError("'placement' must be an object.")
    stage_name = to_text(data.get('stageName'))
    if not stage_name or stage_name not in config:
        raise PayloadError(f"Unknown pipeline stage '{stage_name}'.")
    status = to_text(data.get('status'))
    if status is not None and status not in STAGE_STATUSES:
        raise PayloadError(f"Unknown stage status '{status}'.", list(STAGE_STATUSES))

    placement = _parse_or_fail(lambda r: parse_placements(r, config=config),
                               [data['placement']], 'placement')[0]
    rating = data.get('satisfactionRating')
    updated = record_stage_progress(
        placement, stage_name, config,
        output_qty=to_number(data.get('outputQty')),
        rejected_qty=to_number(data.get('rejectedQty')),
        notes=to_text(data.get('notes')),
        actual_start=to_timestamp(data.get('actualStartAt')),
        actual_end=to_timestamp(data.get('actualEndAt')),
        satisfaction_rating=int(to_number(rating)) if rating is not None else None,
        status=status,
    )
    return jsonify({
        'placement': updated.to_dict(),
        'finishedGoods': [e.to_dict() for e in finished_goods_from_excess([updated])],
    })


@app.route('/api/validate', methods=['POST'])
def api_validate():
    """Pre-scheduling data checks."""
    data = _payload()
    jobs, job_errors = parse_jobs(data.get('jobs') or [])
    conditions, condition_errors = parse_conditions(data.get('conditions') or [])
    shifts = None
    shift_errors = []
    if data.get('shifts') is not None:
        shifts, shift_errors = parse_shifts(_require_list(data, 'shifts'))
    config = None
    if data.get('settings') is not None:
        config = parse_pipeline_settings(data['settings'], order=data.get('order'))

    report = validate_all_data(jobs, conditions, shifts, config)
    for error in job_errors + condition_errors + shift_errors:
        report.add_warning(f"Skipped row: {error}")
    return jsonify(report.to_dict())


# ============== Error Handlers ==============

@app.errorhandler(PayloadError)
def payload_error(e):
    """Handle malformed request bodies."""
    return jsonify({'error': e.message, 'details': e.details}), 400


@app.errorhandler(PipelineConfigError)
def pipeline_config_error(e):
    """Handle invalid pipeline configuration."""
    return jsonify({'error': 'Invalid pipeline configuration', 'details': [str(e)]}), 400


@app.errorhandler(404)
def not_found(e):
    """Handle 404 errors."""
    return jsonify({'error': 'Not found'}), 404


@app.errorhandler(405)
def method_not_allowed(e):
    """Handle 405 errors."""
    return jsonify({'error': 'Method not allowed'}), 405


@app.errorhandler(500)
def server_error(e):
    """Handle 500 errors."""
    return jsonify({'error': 'Internal server error'}), 500


# ============== Main ==============

def run_development():
    """Run the development server."""
    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))

    print("=" * 60)
    print("PressPlan - JSON API (Development)")
    print("=" * 60)
    print(f"Output folder: {app.config['OUTPUT_FOLDER']}")
    print(f"Starting server at http://{host}:{port}")
    print("=" * 60)
    print("WARNING: Using development server. For production, use:")
    print("  waitress-serve --port=5000 app:app")
    print("=" * 60)

    app.run(debug=True, host=host, port=port)


def run_production():
    """Run the production server with Waitress."""
    from waitress import serve

    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))

    print("=" * 60)
    print("PressPlan - JSON API (Production)")
    print("=" * 60)
    print(f"Output folder: {app.config['OUTPUT_FOLDER']}")
    print(f"Starting Waitress server at http://{host}:{port}")
    print("=" * 60)

    serve(app, host=host, port=port, threads=4)


if __name__ == '__main__':
    env = os.environ.get('FLASK_ENV', 'development')

    if env == 'production':
        run_production()
    else:
        run_development()
