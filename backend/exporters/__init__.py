"""
Exporters package
Export schedules and tracking plans to Excel.
"""

from .excel_exporter import (
    export_schedule,
    export_shift_utilization,
    export_tracking,
    export_all_reports
)

__all__ = [
    'export_schedule',
    'export_shift_utilization',
    'export_tracking',
    'export_all_reports'
]
