"""
Data parsers package initialization.
"""

from .job_parser import parse_jobs, normalize_priority
from .condition_parser import parse_conditions, cure_time_minutes
from .shift_parser import parse_shifts
from .schedule_parser import parse_placements, parse_stage_states
from .pipeline_parser import parse_pipeline_settings, load_pipeline_settings

__all__ = [
    'parse_jobs',
    'normalize_priority',
    'parse_conditions',
    'cure_time_minutes',
    'parse_shifts',
    'parse_placements',
    'parse_stage_states',
    'parse_pipeline_settings',
    'load_pipeline_settings'
]
