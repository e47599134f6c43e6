"""
Saved Schedule Parser
Maps saved placement rows (with their tracking steps) back onto
Placement objects so they can be re-tracked or block shift capacity.
"""

import math
from typing import List, Optional, Tuple

from algorithms.scheduler import Placement, batch_label, batch_number
from algorithms.tracking import PipelineConfig, PipelineStageState, STAGE_STATUSES, ensure_steps
from .common import to_rows, first_present, to_number, to_text, to_timestamp
from .job_parser import normalize_priority


def parse_stage_states(data) -> List[PipelineStageState]:
    """Parse tracking step entries; unknown statuses fall back to Pending."""
    steps = []
    for entry in to_rows(data):
        name = to_text(first_present(entry, 'stageName', 'stepName'))
        if not name:
            continue
        status = to_text(entry.get('status')) or 'Pending'
        steps.append(PipelineStageState(
            stage_name=name,
            status=status if status in STAGE_STATUSES else 'Pending',
            input_qty=to_number(entry.get('inputQty')),
            output_qty=to_number(entry.get('outputQty')),
            rejected_qty=to_number(entry.get('rejectedQty')),
            excess_qty=to_number(entry.get('excessQty')),
            satisfaction_rating=int(to_number(entry.get('satisfactionRating'))),
            notes=to_text(entry.get('notes')) or '',
            actual_start=to_timestamp(first_present(entry, 'actualStartAt', 'actualStartDate')),
            actual_end=to_timestamp(first_present(entry, 'actualEndAt', 'actualEndDate')),
            planned_start=to_timestamp(first_present(entry, 'plannedStartAt', 'plannedStartDate')),
            planned_end=to_timestamp(first_present(entry, 'plannedEndAt', 'plannedEndDate')),
        ))
    return steps


def _parse_batch(value) -> int:
    text = to_text(value)
    if not text:
        return 1
    if text.isdigit():
        return max(1, int(text))
    try:
        return batch_number(text)
    except ValueError:
        return 1


def parse_placements(data, config: Optional[PipelineConfig] = None) -> Tuple[List[Placement], List[str]]:
    """
    Parse saved placements.

    Quantities are rounded up to whole pieces. When a pipeline config is
    given every placement gets a complete, ordered set of tracking steps.
    Rows without a job id, press number or shift id are skipped.

    Returns:
        Tuple of (placements, row errors)
    """
    rows = to_rows(data)
    placements = []
    errors = []

    for index, row in enumerate(rows):
        job_id = to_text(first_present(row, 'jobId', 'jobCardNumber', 'Job Card Number'))
        press_no = to_number(first_present(row, 'pressNo', 'Press No'))
        shift_id = to_text(first_present(row, 'shiftId', 'Shift Id'))
        if not job_id or not press_no or not shift_id:
            errors.append(f"Row {index}: Missing job id, press number or shift id")
            continue

        batch = _parse_batch(row.get('batch'))
        steps_raw = row.get('trackingSteps')
        steps = parse_stage_states(steps_raw) if isinstance(steps_raw, list) else []
        if config is not None:
            steps = ensure_steps(steps, config)

        placements.append(Placement(
            placement_id=to_text(row.get('id')) or f"{job_id}-{int(press_no)}-{batch_label(batch)}",
            job_id=job_id,
            item_code=to_text(first_present(row, 'itemCode', 'Item Code')) or '',
            material=to_text(first_present(row, 'material', 'Material')) or '',
            priority=normalize_priority(row.get('priority')),
            quantity=math.ceil(to_number(first_present(row, 'quantity', 'scheduledQuantity'))),
            press_no=int(press_no),
            die_no=int(to_number(first_present(row, 'dieNo', 'Die No'))),
            minutes_taken=to_number(first_present(row, 'minutesTaken', 'timeTaken')),
            shift_id=shift_id,
            start_time=to_timestamp(first_present(row, 'startAt', 'startTime')),
            end_time=to_timestamp(first_present(row, 'endAt', 'endTime')),
            ordered_quantity=to_number(row.get('orderedQuantity')),
            delivery_date=to_timestamp(first_present(row, 'deliveryAt', 'deliveryDate')),
            creation_date=to_timestamp(first_present(row, 'createdAt', 'creationDate')),
            batch_number=batch,
            tracking_steps=steps,
        ))

    print(f"[Parser] Saved placements: {len(placements)} parsed, {len(errors)} rejected")
    return placements, errors
