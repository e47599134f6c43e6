"""
Excel Exporter
Export press schedules, shift utilization and tracking plans to Excel format.
"""

import pandas as pd
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from openpyxl.utils import get_column_letter


def _excel_time(value: Optional[datetime]):
    """Excel has no timezones; write the wall-clock time of the stamp."""
    if value is None:
        return None
    return value.replace(tzinfo=None)


def _write_sheet(df: pd.DataFrame, output_path: str, sheet_name: str, max_width: int = 40):
    """Write one formatted sheet: auto-sized columns and a frozen header row."""
    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)

        worksheet = writer.sheets[sheet_name]

        # Auto-adjust column widths
        for idx, col in enumerate(df.columns):
            col_data = df[col].fillna('').astype(str)
            max_data_len = col_data.str.len().max() if len(col_data) > 0 else 0
            max_length = max(max_data_len, len(col)) + 2
            worksheet.column_dimensions[get_column_letter(idx + 1)].width = min(max_length, max_width)

        # Freeze top row
        worksheet.freeze_panes = 'A2'


def export_schedule(placements: List, output_path: str) -> str:
    """
    Export press placements to Excel, one row per batch.

    Args:
        placements: List of Placement objects
        output_path: Path for output Excel file

    Returns:
        Path to the created file
    """
    # Placements without a start time sort last on their press
    ordered = sorted(placements, key=lambda p: (p.press_no, p.start_time is None,
                                                p.start_time.timestamp() if p.start_time else 0,
                                                p.job_id))

    data = []
    for placement in ordered:
        data.append({
            'Press': placement.press_no,
            'Shift': placement.shift_id,
            'Job Card': placement.job_id,
            'Batch': placement.batch_label,
            'Item Code': placement.item_code,
            'Material': placement.material,
            'Die': placement.die_no,
            'Priority': placement.priority,
            'Quantity': placement.quantity,
            'Ordered Quantity': placement.ordered_quantity,
            'Minutes': placement.minutes_taken,
            'Start': _excel_time(placement.start_time),
            'End': _excel_time(placement.end_time),
            'Delivery Date': _excel_time(placement.delivery_date),
        })

    columns = ['Press', 'Shift', 'Job Card', 'Batch', 'Item Code', 'Material', 'Die', 'Priority',
               'Quantity', 'Ordered Quantity', 'Minutes', 'Start', 'End', 'Delivery Date']
    df = pd.DataFrame(data, columns=columns)
    _write_sheet(df, output_path, 'Press Schedule')

    print(f"[OK] Press schedule exported to: {output_path}")
    return output_path


def export_shift_utilization(shifts_by_press: Dict[int, List], output_path: str) -> str:
    """
    Export booked vs. available minutes per press shift.
    """
    data = []
    for press_no in sorted(shifts_by_press):
        for shift in shifts_by_press[press_no]:
            used = shift.capacity - shift.remaining
            data.append({
                'Press': press_no,
                'Shift': shift.shift_id,
                'Day': shift.weekday,
                'Type': shift.shift_type,
                'Capacity (min)': shift.capacity,
                'Booked (min)': used,
                'Free (min)': shift.remaining,
                'Utilization %': round(used / shift.capacity * 100, 1) if shift.capacity else 0,
            })

    columns = ['Press', 'Shift', 'Day', 'Type', 'Capacity (min)', 'Booked (min)',
               'Free (min)', 'Utilization %']
    df = pd.DataFrame(data, columns=columns)
    _write_sheet(df, output_path, 'Shift Utilization', max_width=25)

    print(f"[OK] Shift utilization exported to: {output_path}")
    return output_path


def export_tracking(placements: List, output_path: str) -> str:
    """
    Export the tracking plan: one row per placement and pipeline stage.

    Placements should already be resolved (planned dates filled in).
    """
    data = []
    for placement in placements:
        for step in placement.tracking_steps:
            data.append({
                'Job Card': placement.job_id,
                'Batch': placement.batch_label,
                'Item Code': placement.item_code,
                'Stage': step.stage_name,
                'Status': step.status,
                'Planned Start': _excel_time(step.planned_start),
                'Planned End': _excel_time(step.planned_end),
                'Actual Start': _excel_time(step.actual_start),
                'Actual End': _excel_time(step.actual_end),
                'Output Qty': step.output_qty,
                'Rejected Qty': step.rejected_qty,
                'Excess Qty': step.excess_qty,
                'Notes': step.notes,
            })

    columns = ['Job Card', 'Batch', 'Item Code', 'Stage', 'Status', 'Planned Start', 'Planned End',
               'Actual Start', 'Actual End', 'Output Qty', 'Rejected Qty', 'Excess Qty', 'Notes']
    df = pd.DataFrame(data, columns=columns)
    _write_sheet(df, output_path, 'Tracking')

    print(f"[OK] Tracking plan exported to: {output_path}")
    return output_path


def export_all_reports(results, tracked_placements: Optional[List] = None,
                       output_dir: str = None) -> Dict[str, str]:
    """
    Export all reports for a multi-press run.

    Args:
        results: MultiPressResult from schedule_presses
        tracked_placements: Placements with resolved tracking steps (optional)
        output_dir: Output directory path. Defaults to project's outputs folder.

    Returns:
        Dictionary of report names to file paths
    """
    if output_dir is None:
        # Default to project root's outputs folder
        project_root = Path(__file__).parent.parent.parent
        output_dir = project_root / "outputs"
    else:
        output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')

    files = {}

    schedule_path = output_dir / f"Press_Schedule_{timestamp}.xlsx"
    files['press_schedule'] = export_schedule(results.placements, str(schedule_path))

    utilization_path = output_dir / f"Shift_Utilization_{timestamp}.xlsx"
    shifts_by_press = {press_no: result.shifts for press_no, result in results.results.items()}
    files['shift_utilization'] = export_shift_utilization(shifts_by_press, str(utilization_path))

    if tracked_placements:
        tracking_path = output_dir / f"Tracking_Plan_{timestamp}.xlsx"
        files['tracking_plan'] = export_tracking(tracked_placements, str(tracking_path))

    print(f"\n[OK] All reports exported to: {output_dir}")

    return files
