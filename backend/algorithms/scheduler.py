"""
Press Scheduler
Greedy slot-filling of pending jobs into the shifts of one press.
"""

import copy
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple, Union

from settings import ShiftSettings
from algorithms.conditions import ConditionIndex, ProductionCondition
from algorithms.shifts import ShiftWindow, add_elapsed

PRIORITY_RANK = {'High': 1, 'Normal': 2, 'Low': 3, 'None': 4}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def batch_label(sequence: int) -> str:
    """Spreadsheet-column style label for a batch number: 1 -> A, 27 -> AA."""
    if sequence < 1:
        raise ValueError(f"Batch sequence must be >= 1, got {sequence}")
    label = ''
    while sequence > 0:
        sequence, rem = divmod(sequence - 1, 26)
        label = chr(ord('A') + rem) + label
    return label


def batch_number(label: str) -> int:
    """Inverse of batch_label: A -> 1, AA -> 27."""
    label = (label or '').strip().upper()
    if not label.isalpha() or not label.isascii():
        raise ValueError(f"Invalid batch label '{label}'")
    number = 0
    for char in label:
        number = number * 26 + (ord(char) - ord('A') + 1)
    return number


@dataclass
class Job:
    """A pending job card waiting for press time."""
    job_id: str
    item_code: str
    material: str
    ordered_quantity: float
    remaining_quantity: float
    priority: str = 'None'  # High, Normal, Low, None
    creation_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None

    def __post_init__(self):
        if self.priority not in PRIORITY_RANK:
            raise ValueError(f"Job {self.job_id}: unknown priority '{self.priority}'")
        if self.remaining_quantity < 0:
            raise ValueError(f"Job {self.job_id}: remaining quantity cannot be negative")

    def sort_key(self) -> Tuple[int, float, float]:
        """Priority rank, then delivery date (missing last), then creation date."""
        delivery = self.delivery_date.timestamp() if self.delivery_date else math.inf
        created = self.creation_date.timestamp() if self.creation_date else math.inf
        return (PRIORITY_RANK[self.priority], delivery, created)

    def to_dict(self) -> Dict:
        return {
            'id': self.job_id,
            'itemCode': self.item_code,
            'material': self.material,
            'orderedQuantity': self.ordered_quantity,
            'remainingQuantity': self.remaining_quantity,
            'priority': self.priority,
            'createdAt': _iso(self.creation_date),
            'deliveryAt': _iso(self.delivery_date),
        }


@dataclass
class Placement:
    """One batch of a job booked into one shift on one press."""
    placement_id: str
    job_id: str
    item_code: str
    material: str
    priority: str
    quantity: float
    press_no: int
    die_no: int
    minutes_taken: float
    shift_id: str
    start_time: datetime
    end_time: datetime
    ordered_quantity: float = 0
    delivery_date: Optional[datetime] = None
    creation_date: Optional[datetime] = None
    batch_number: int = 1
    tracking_steps: List = field(default_factory=list)

    @property
    def batch_label(self) -> str:
        return batch_label(self.batch_number)

    def to_dict(self) -> Dict:
        return {
            'id': self.placement_id,
            'jobId': self.job_id,
            'itemCode': self.item_code,
            'material': self.material,
            'priority': self.priority,
            'quantity': self.quantity,
            'pressNo': self.press_no,
            'dieNo': self.die_no,
            'minutesTaken': self.minutes_taken,
            'shiftId': self.shift_id,
            'startAt': _iso(self.start_time),
            'endAt': _iso(self.end_time),
            'orderedQuantity': self.ordered_quantity,
            'deliveryAt': _iso(self.delivery_date),
            'createdAt': _iso(self.creation_date),
            'batch': self.batch_label,
            'trackingSteps': [step.to_dict() for step in self.tracking_steps],
        }


@dataclass
class ScheduleResult:
    """Outcome of one press run. Shifts and jobs are the engine's copies."""
    press_no: int
    placements: List[Placement] = field(default_factory=list)
    shifts: List[ShiftWindow] = field(default_factory=list)
    remaining_jobs: List[Job] = field(default_factory=list)
    skipped_jobs: List[Tuple[str, str]] = field(default_factory=list)  # (job_id, reason)

    @property
    def placements_by_shift(self) -> Dict[str, List[Placement]]:
        grouped = OrderedDict()
        for placement in self.placements:
            grouped.setdefault(placement.shift_id, []).append(placement)
        return grouped

    @property
    def scheduled_quantity(self) -> float:
        return sum(p.quantity for p in self.placements)

    def to_dict(self) -> Dict:
        return {
            'pressNo': self.press_no,
            'schedule': {shift_id: [p.to_dict() for p in batch]
                         for shift_id, batch in self.placements_by_shift.items()},
            'shifts': [s.to_dict() for s in self.shifts],
            'remainingJobs': [j.to_dict() for j in self.remaining_jobs],
            'skippedJobs': [{'jobId': job_id, 'reason': reason} for job_id, reason in self.skipped_jobs],
            'summary': {
                'placements': len(self.placements),
                'scheduledQuantity': self.scheduled_quantity,
                'remainingJobs': len(self.remaining_jobs),
            },
        }


def sort_jobs(jobs: Iterable[Job]) -> List[Job]:
    """Stable scheduling order (see Job.sort_key)."""
    return sorted(jobs, key=lambda job: job.sort_key())


class PressScheduler:
    """
    Fills the shifts of one press with pending jobs.

    Jobs are taken in priority / delivery / creation order; each job is
    split into batches across the shifts in the order given until either
    the job is fully placed or every shift has been tried. Inputs are
    deep-copied; the caller's jobs and shifts are never modified.
    """

    def __init__(self, jobs: Iterable[Job],
                 conditions: Union[ConditionIndex, Iterable[ProductionCondition]],
                 shifts: Iterable[ShiftWindow], press_no: int,
                 settings: Optional[ShiftSettings] = None,
                 existing_placements: Iterable[Placement] = ()):
        self.jobs = copy.deepcopy(list(jobs))
        if isinstance(conditions, ConditionIndex):
            self.conditions = conditions
        else:
            self.conditions = ConditionIndex(conditions)
        self.shifts = copy.deepcopy(list(shifts))
        self.press_no = press_no
        self.settings = settings or ShiftSettings()

        # Batch numbering continues after any saved batches on this press
        self._batch_counters: Dict[str, int] = {}
        for placement in existing_placements:
            if placement.press_no == press_no:
                current = self._batch_counters.get(placement.job_id, 0)
                self._batch_counters[placement.job_id] = max(current, placement.batch_number)

        # Results
        self.placements: List[Placement] = []
        self.skipped_jobs: List[Tuple[str, str]] = []

    def _next_batch_number(self, job_id: str) -> int:
        number = self._batch_counters.get(job_id, 0) + 1
        self._batch_counters[job_id] = number
        return number

    def _place_job(self, job: Job, condition: ProductionCondition):
        """Book batches of one job into the shifts until it is placed or shifts run out."""
        cure_time = condition.cure_time
        pieces_per_cycle = condition.pieces_per_cycle

        for shift in self.shifts:
            if job.remaining_quantity <= 0:
                break
            if shift.remaining <= 0:
                continue

            max_cycles = math.floor(shift.remaining / cure_time)
            # Fractional cure times: floor(r / c) * c can round above r
            while max_cycles > 0 and max_cycles * cure_time > shift.remaining:
                max_cycles -= 1
            if max_cycles <= 0:
                continue

            max_qty_in_shift = max_cycles * pieces_per_cycle
            qty = min(job.remaining_quantity, max_qty_in_shift)
            if qty <= 0:
                continue

            # Minutes follow the quantity actually placed, not max_cycles,
            # so a short batch never books a whole shift
            cycles = min(math.ceil(qty / pieces_per_cycle), max_cycles)
            minutes_needed = cycles * cure_time

            start_time = shift.start_time_of(self.settings)
            end_time = add_elapsed(start_time, timedelta(minutes=minutes_needed))
            batch_number = self._next_batch_number(job.job_id)

            self.placements.append(Placement(
                placement_id=f"{job.job_id}-{self.press_no}-{batch_label(batch_number)}",
                job_id=job.job_id,
                item_code=job.item_code,
                material=job.material,
                priority=job.priority,
                quantity=qty,
                press_no=self.press_no,
                die_no=condition.die_no,
                minutes_taken=minutes_needed,
                shift_id=shift.shift_id,
                start_time=start_time,
                end_time=end_time,
                ordered_quantity=job.ordered_quantity,
                delivery_date=job.delivery_date,
                creation_date=job.creation_date,
                batch_number=batch_number,
            ))

            shift.consume(minutes_needed)
            job.remaining_quantity -= qty

    def schedule(self) -> ScheduleResult:
        """Run the greedy placement and return placements, shifts and leftovers."""
        sorted_jobs = sort_jobs(self.jobs)

        for job in sorted_jobs:
            if job.remaining_quantity <= 0:
                continue

            condition = self.conditions.best_for(job.item_code, self.press_no, job.material)
            if condition is None:
                if self.conditions.match(job.item_code, self.press_no, job.material):
                    reason = 'No usable production condition'
                else:
                    reason = 'No production condition for press'
                self.skipped_jobs.append((job.job_id, reason))
                print(f"[Scheduler] Press {self.press_no}: skipping {job.job_id} ({reason})")
                continue

            self._place_job(job, condition)

        remaining_jobs = [job for job in sorted_jobs if job.remaining_quantity > 0]
        result = ScheduleResult(
            press_no=self.press_no,
            placements=self.placements,
            shifts=self.shifts,
            remaining_jobs=remaining_jobs,
            skipped_jobs=self.skipped_jobs,
        )

        print(f"[Scheduler] Press {self.press_no}: {len(result.placements)} placements, "
              f"{result.scheduled_quantity:g} pcs placed, {len(remaining_jobs)} jobs left over")
        return result


def schedule_press(jobs: Iterable[Job], conditions, shifts: Iterable[ShiftWindow], press_no: int,
                   settings: Optional[ShiftSettings] = None,
                   existing_placements: Iterable[Placement] = ()) -> ScheduleResult:
    """Schedule one press. See PressScheduler."""
    return PressScheduler(jobs, conditions, shifts, press_no, settings=settings,
                          existing_placements=existing_placements).schedule()


# =============================================================================
# MULTI-PRESS COMPOSITION
# =============================================================================

@dataclass
class MultiPressResult:
    """Per-press results plus the job pool left after all presses."""
    results: Dict[int, ScheduleResult] = field(default_factory=dict)
    remaining_jobs: List[Job] = field(default_factory=list)

    @property
    def placements(self) -> List[Placement]:
        return [p for result in self.results.values() for p in result.placements]

    def to_dict(self) -> Dict:
        return {
            'presses': {str(press_no): result.to_dict() for press_no, result in self.results.items()},
            'remainingJobs': [j.to_dict() for j in self.remaining_jobs],
        }


def schedule_presses(jobs: Iterable[Job], conditions,
                     shifts_by_press: Dict[int, List[ShiftWindow]],
                     press_order: Optional[List[int]] = None,
                     carry_over: bool = True,
                     settings: Optional[ShiftSettings] = None,
                     existing_placements_by_press: Optional[Dict[int, List[Placement]]] = None
                     ) -> MultiPressResult:
    """
    Run the press scheduler once per press.

    carry_over=True: presses run in sequence and each press receives the
    leftover pool of the previous one; remaining_jobs is the last leftover.
    carry_over=False: every press receives its own copy of the original
    pool; remaining_jobs are the jobs that got no placement on any press.

    existing_placements_by_press continues batch numbering after saved
    placements. Their minutes are deducted from the shifts by the caller
    (see shifts_for_presses).
    """
    jobs = list(jobs)
    index = conditions if isinstance(conditions, ConditionIndex) else ConditionIndex(conditions)
    if press_order is None:
        press_order = sorted(shifts_by_press)

    existing_placements_by_press = existing_placements_by_press or {}

    output = MultiPressResult()
    pool = jobs
    for press_no in press_order:
        shifts = shifts_by_press.get(press_no, [])
        source = pool if carry_over else jobs
        result = PressScheduler(source, index, shifts, press_no, settings=settings,
                                existing_placements=existing_placements_by_press.get(press_no, ())).schedule()
        output.results[press_no] = result
        if carry_over:
            pool = result.remaining_jobs

    if carry_over:
        output.remaining_jobs = copy.deepcopy(pool)
    else:
        placed_ids = {p.job_id for p in output.placements}
        output.remaining_jobs = [copy.deepcopy(j) for j in sort_jobs(jobs)
                                 if j.remaining_quantity > 0 and j.job_id not in placed_ids]
    return output


# =============================================================================
# PRESS WORKLOAD
# =============================================================================

@dataclass
class PressWorkload:
    press_no: int
    pending_quantity: float = 0
    scheduled_quantity: float = 0

    def to_dict(self) -> Dict:
        return {
            'pressNo': self.press_no,
            'pendingQuantity': self.pending_quantity,
            'scheduledQuantity': self.scheduled_quantity,
        }


def press_workload(jobs: Iterable[Job], conditions, placements: Iterable[Placement]) -> List[PressWorkload]:
    """
    Pending and scheduled quantity per press.

    A job's remaining quantity counts as pending on every press that has a
    condition for its item. Presses with nothing pending or scheduled are
    left out.
    """
    index = conditions if isinstance(conditions, ConditionIndex) else ConditionIndex(conditions)
    placements = list(placements)
    press_nos = set(index.press_numbers()) | {p.press_no for p in placements}
    workloads = {press_no: PressWorkload(press_no) for press_no in press_nos}

    for job in jobs:
        for press_no in index.presses_for_item(job.item_code):
            workloads[press_no].pending_quantity += job.remaining_quantity

    for placement in placements:
        workloads[placement.press_no].scheduled_quantity += placement.quantity

    return [w for _, w in sorted(workloads.items())
            if w.pending_quantity > 0 or w.scheduled_quantity > 0]
