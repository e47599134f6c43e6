"""
Data Validators
Pre-scheduling checks on jobs, production conditions, shifts and the
tracking pipeline. Nothing here blocks the scheduler; the report tells the
planner which rows it will skip and why.
"""

from collections import Counter
from typing import Iterable, List, Optional

from algorithms.conditions import ConditionIndex, ProductionCondition
from algorithms.scheduler import Job
from algorithms.shifts import ShiftWindow
from algorithms.tracking import PipelineConfig, ROOT_ANCHOR


class ValidationReport:
    """Container for validation results."""

    def __init__(self):
        self.errors = []  # Blocking errors
        self.warnings = []  # Non-blocking warnings
        self.info = []  # Informational messages

    @property
    def is_valid(self) -> bool:
        """Returns True if no blocking errors."""
        return len(self.errors) == 0

    def add_error(self, message: str):
        """Add a blocking error."""
        self.errors.append(message)

    def add_warning(self, message: str):
        """Add a warning."""
        self.warnings.append(message)

    def add_info(self, message: str):
        """Add informational message."""
        self.info.append(message)

    def to_dict(self) -> dict:
        return {
            'isValid': self.is_valid,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'info': list(self.info),
        }

    def print_report(self):
        """Print formatted validation report."""
        print("\n" + "=" * 70)
        print("VALIDATION REPORT")
        print("=" * 70)

        if self.is_valid:
            print("\n[OK] VALIDATION PASSED")
        else:
            print("\n[FAIL] VALIDATION FAILED")

        if self.errors:
            print(f"\n[ERROR] ERRORS ({len(self.errors)}):")
            for i, error in enumerate(self.errors[:10], 1):
                print(f"   {i}. {error}")
            if len(self.errors) > 10:
                print(f"   ... and {len(self.errors) - 10} more errors")

        if self.warnings:
            print(f"\n[WARN] WARNINGS ({len(self.warnings)}):")
            for i, warning in enumerate(self.warnings[:10], 1):
                print(f"   {i}. {warning}")
            if len(self.warnings) > 10:
                print(f"   ... and {len(self.warnings) - 10} more warnings")

        if self.info:
            print(f"\n[INFO] INFO ({len(self.info)}):")
            for i, info in enumerate(self.info[:5], 1):
                print(f"   {i}. {info}")
            if len(self.info) > 5:
                print(f"   ... and {len(self.info) - 5} more")


def validate_all_data(jobs: Iterable[Job], conditions: Iterable[ProductionCondition],
                      shifts: Optional[Iterable[ShiftWindow]] = None,
                      config: Optional[PipelineConfig] = None) -> ValidationReport:
    """
    Comprehensive validation of all scheduling inputs.

    Returns:
        ValidationReport with all validation results
    """
    report = ValidationReport()
    jobs = list(jobs)
    conditions = list(conditions)

    # 1. Validate Jobs
    _validate_jobs(jobs, report)

    # 2. Validate Production Conditions
    _validate_conditions(conditions, report)

    # 3. Validate Shifts
    if shifts is not None:
        _validate_shifts(list(shifts), report)

    # 4. Validate Pipeline
    if config is not None:
        _validate_pipeline(config, report)

    # 5. Cross-validation
    _cross_validate(jobs, conditions, report)

    return report


def _validate_jobs(jobs: List[Job], report: ValidationReport):
    """Validate pending jobs."""

    if not jobs:
        report.add_error("No pending jobs found")
        return

    report.add_info(f"Found {len(jobs)} jobs")

    counts = Counter(job.job_id for job in jobs)
    duplicates = sorted(job_id for job_id, count in counts.items() if count > 1)
    if duplicates:
        report.add_warning(f"Found {len(duplicates)} duplicate job ids: {duplicates[:5]}")

    fully_placed = sum(1 for job in jobs if job.remaining_quantity <= 0)
    if fully_placed:
        report.add_info(f"{fully_placed} jobs have no remaining quantity and will be skipped")

    by_priority = Counter(job.priority for job in jobs)
    report.add_info("Priority mix: " + ', '.join(
        f"{p}={by_priority[p]}" for p in ('High', 'Normal', 'Low', 'None') if by_priority[p]))


def _validate_conditions(conditions: List[ProductionCondition], report: ValidationReport):
    """Validate production conditions."""

    if not conditions:
        report.add_error("No production conditions found")
        return

    presses = sorted({c.press_no for c in conditions})
    report.add_info(f"Found {len(conditions)} production conditions on {len(presses)} presses")

    unusable = [c for c in conditions if not c.is_usable]
    if unusable:
        examples = [f"{c.item_code}/P{c.press_no}/D{c.die_no}" for c in unusable[:5]]
        report.add_warning(f"{len(unusable)} conditions have no cure time or output per cycle: {examples}")

    combos = Counter((c.item_code, c.press_no, c.die_no, c.material) for c in conditions)
    repeated = [key for key, count in combos.items() if count > 1]
    if repeated:
        report.add_warning(f"{len(repeated)} item/press/die/material combinations listed more than once")


def _validate_shifts(shifts: List[ShiftWindow], report: ValidationReport):
    """Validate the shift horizon."""

    if not shifts:
        report.add_warning("No shifts in the horizon - nothing can be scheduled")
        return

    total = sum(s.capacity for s in shifts)
    free = sum(s.remaining for s in shifts)
    report.add_info(f"Found {len(shifts)} shifts, {free:g} of {total:g} minutes free")

    counts = Counter(s.shift_id for s in shifts)
    duplicates = sorted(shift_id for shift_id, count in counts.items() if count > 1)
    if duplicates:
        report.add_warning(f"Duplicate shift ids: {duplicates[:5]}")

    full = sum(1 for s in shifts if s.remaining <= 0)
    if full:
        report.add_info(f"{full} shifts are fully booked")


def _validate_pipeline(config: PipelineConfig, report: ValidationReport):
    """Validate tracking pipeline ordering."""

    order = {name: i for i, name in enumerate(config.stage_names)}
    for stage in config:
        if not stage.enabled:
            continue
        dependency = config.effective_dependency(stage.name)
        if dependency != ROOT_ANCHOR and order[dependency] > order[stage.name]:
            report.add_warning(
                f"Stage '{stage.name}' depends on later stage '{dependency}' - its plan stays empty")

    disabled = [s.name for s in config if not s.enabled]
    if disabled:
        report.add_info(f"Disabled pipeline stages: {', '.join(disabled)}")


def _cross_validate(jobs: List[Job], conditions: List[ProductionCondition],
                    report: ValidationReport):
    """Cross-validate jobs against production conditions."""

    if not jobs or not conditions:
        return

    index = ConditionIndex(conditions)
    presses = index.press_numbers()

    unmatched = []
    for job in jobs:
        if job.remaining_quantity <= 0:
            continue
        if not any(index.best_for(job.item_code, press_no, job.material) for press_no in presses):
            unmatched.append(job.job_id)

    if unmatched:
        pct = len(unmatched) / len(jobs) * 100
        report.add_warning(
            f"{len(unmatched)} jobs have no usable production condition on any press "
            f"({pct:.1f}%): {unmatched[:5]}")
