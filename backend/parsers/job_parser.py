"""
Job Parser
Maps pending job card rows (spreadsheet or JSON) onto Job objects.
"""

from typing import List, Tuple

from algorithms.scheduler import Job, PRIORITY_RANK
from .common import to_rows, first_present, to_number, to_text, to_timestamp


def normalize_priority(value) -> str:
    """Map free-text priority onto High / Normal / Low / None."""
    text = to_text(value)
    if not text:
        return 'None'
    for priority in PRIORITY_RANK:
        if text.lower() == priority.lower():
            return priority
    return 'None'


def parse_jobs(data) -> Tuple[List[Job], List[str]]:
    """
    Parse pending jobs.

    Accepts the camelCase names used by the API (id, itemCode, ...) or the
    job card sheet headers (Job Card Number, Item Code, ...). Numbers that
    do not parse become 0; rows without a job id or item code are skipped
    and reported.

    Returns:
        Tuple of (jobs, row errors)
    """
    rows = to_rows(data)
    jobs = []
    errors = []

    for index, row in enumerate(rows):
        job_id = to_text(first_present(row, 'id', 'jobCardNumber', 'Job Card Number', 'Job Card No'))
        item_code = to_text(first_present(row, 'itemCode', 'Item Code'))
        if not job_id or not item_code:
            errors.append(f"Row {index}: Missing job id or item code")
            continue

        ordered = to_number(first_present(row, 'orderedQuantity', 'Ordered Quantity', 'Order Qty'))
        remaining_raw = first_present(row, 'remainingQuantity', 'Remaining Quantity', 'Pending Qty')
        remaining = ordered if remaining_raw is None else to_number(remaining_raw)

        jobs.append(Job(
            job_id=job_id,
            item_code=item_code,
            material=to_text(first_present(row, 'material', 'Material')) or '',
            ordered_quantity=ordered,
            remaining_quantity=max(0, remaining),
            priority=normalize_priority(first_present(row, 'priority', 'Priority')),
            creation_date=to_timestamp(first_present(row, 'createdAt', 'creationDate', 'Creation Date')),
            delivery_date=to_timestamp(first_present(row, 'deliveryAt', 'deliveryDate', 'Delivery Date')),
        ))

    print(f"[Parser] Jobs: {len(jobs)} parsed, {len(errors)} rejected")
    for error in errors[:5]:
        print(f"  - {error}")

    return jobs, errors
