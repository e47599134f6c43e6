"""
Tracking Pipeline
Post-production stages (finishing, inspection, dispatch, ...) that follow a
press placement, and the planned-date resolution across their dependencies.

Each stage waits on one anchor: either the placement's scheduled end time
or another stage. Disabled stages drop out of the chain, and an operator
entered actual end date always overrides the plan for downstream stages.
"""

import copy
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Dict, Iterable, Iterator, List, Optional

from algorithms.shifts import add_elapsed

ROOT_ANCHOR = 'scheduled_end_time'
TAT_UNITS = ('hours', 'days')
STAGE_STATUSES = ('Pending', 'In Progress', 'Completed')

INSPECTION_STAGE = 'Inspection'
FEEDBACK_STAGE = 'Feedback'


class PipelineConfigError(ValueError):
    """Pipeline configuration that cannot be resolved (unknown stage, cycle, bad unit)."""


@dataclass(frozen=True)
class PipelineStageConfig:
    """Configuration of one stage: enablement, anchor and turnaround time."""
    name: str
    enabled: bool = True
    depends_on: str = ROOT_ANCHOR
    tat: float = 0
    tat_unit: str = 'hours'

    def turnaround(self) -> timedelta:
        if self.tat_unit == 'days':
            return timedelta(days=self.tat)
        return timedelta(hours=self.tat)

    def planned_end(self, start: datetime) -> datetime:
        """Days move the calendar date and keep the wall clock; hours are elapsed time."""
        if self.tat_unit == 'days':
            return start + self.turnaround()
        return add_elapsed(start, self.turnaround())

    def to_dict(self) -> Dict:
        return {
            'stageName': self.name,
            'enabled': self.enabled,
            'dependsOn': self.depends_on,
            'turnaround': self.tat,
            'turnaroundUnit': self.tat_unit,
        }


DEFAULT_STAGES = (
    PipelineStageConfig('Molding', True, ROOT_ANCHOR, 8, 'hours'),
    PipelineStageConfig('Finishing', True, 'Molding', 1, 'days'),
    PipelineStageConfig('Inspection', True, 'Finishing', 1, 'days'),
    PipelineStageConfig('Pre-Dispatch', True, 'Inspection', 1, 'hours'),
    PipelineStageConfig('Dispatch', True, 'Pre-Dispatch', 2, 'hours'),
    PipelineStageConfig('FG Stock', True, 'Dispatch', 0, 'hours'),
    PipelineStageConfig('Feedback', False, 'Dispatch', 7, 'days'),
)


class PipelineConfig:
    """
    Validated pipeline: stages in declared order plus the dependency graph.

    Validation happens once here. Unknown dependencies, duplicate names,
    bad turnaround units and dependency cycles raise PipelineConfigError,
    so resolution itself can never loop.
    """

    def __init__(self, stages: Iterable[PipelineStageConfig]):
        self._stages = tuple(stages)
        self._by_name: Dict[str, PipelineStageConfig] = {}

        for stage in self._stages:
            if stage.name == ROOT_ANCHOR:
                raise PipelineConfigError(f"'{ROOT_ANCHOR}' is reserved and cannot be a stage name")
            if stage.name in self._by_name:
                raise PipelineConfigError(f"Stage '{stage.name}' is defined twice")
            if stage.tat_unit not in TAT_UNITS:
                raise PipelineConfigError(
                    f"Stage '{stage.name}': turnaround unit '{stage.tat_unit}' must be one of {TAT_UNITS}")
            if stage.tat < 0:
                raise PipelineConfigError(f"Stage '{stage.name}': turnaround cannot be negative")
            self._by_name[stage.name] = stage

        for stage in self._stages:
            if stage.depends_on != ROOT_ANCHOR and stage.depends_on not in self._by_name:
                raise PipelineConfigError(
                    f"Stage '{stage.name}' depends on unknown stage '{stage.depends_on}'")

        self._check_cycles()
        self._effective = {stage.name: self._walk_to_enabled(stage) for stage in self._stages}

    def _check_cycles(self):
        for stage in self._stages:
            seen = [stage.name]
            current = stage.depends_on
            while current != ROOT_ANCHOR:
                if current in seen:
                    chain = ' -> '.join(seen[seen.index(current):] + [current])
                    raise PipelineConfigError(f"Dependency cycle: {chain}")
                seen.append(current)
                current = self._by_name[current].depends_on

    def _walk_to_enabled(self, stage: PipelineStageConfig) -> str:
        current = stage.depends_on
        while current != ROOT_ANCHOR and not self._by_name[current].enabled:
            current = self._by_name[current].depends_on
        return current

    @classmethod
    def from_stages(cls, stages: Iterable[PipelineStageConfig]) -> 'PipelineConfig':
        return cls(stages)

    @property
    def stages(self) -> List[PipelineStageConfig]:
        return list(self._stages)

    @property
    def stage_names(self) -> List[str]:
        return [stage.name for stage in self._stages]

    def __iter__(self) -> Iterator[PipelineStageConfig]:
        return iter(self._stages)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self):
        return len(self._stages)

    def get(self, name: str) -> PipelineStageConfig:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown pipeline stage '{name}'")

    def effective_dependency(self, name: str) -> str:
        """Nearest enabled ancestor of a stage, or the root anchor."""
        self.get(name)
        return self._effective[name]

    def with_stage(self, name: str, **changes) -> 'PipelineConfig':
        """New configuration with one stage's fields replaced."""
        self.get(name)
        return PipelineConfig(replace(s, **changes) if s.name == name else s for s in self._stages)

    def to_dict(self) -> Dict[str, Dict]:
        return {stage.name: stage.to_dict() for stage in self._stages}


def default_pipeline() -> PipelineConfig:
    """Built-in seven-stage pipeline (Feedback disabled)."""
    return PipelineConfig(DEFAULT_STAGES)


# =============================================================================
# STAGE STATE
# =============================================================================

@dataclass
class PipelineStageState:
    """Progress of one placement through one stage."""
    stage_name: str
    status: str = 'Pending'
    input_qty: float = 0
    output_qty: float = 0
    rejected_qty: float = 0  # Inspection only
    excess_qty: float = 0  # Inspection only, moves to FG stock
    satisfaction_rating: int = 0  # Feedback only
    notes: str = ''
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    planned_start: Optional[datetime] = None
    planned_end: Optional[datetime] = None

    def to_dict(self) -> Dict:
        def iso(value):
            return value.isoformat() if value is not None else None

        return {
            'stageName': self.stage_name,
            'status': self.status,
            'inputQty': self.input_qty,
            'outputQty': self.output_qty,
            'rejectedQty': self.rejected_qty,
            'excessQty': self.excess_qty,
            'satisfactionRating': self.satisfaction_rating,
            'notes': self.notes,
            'actualStartAt': iso(self.actual_start),
            'actualEndAt': iso(self.actual_end),
            'plannedStartAt': iso(self.planned_start),
            'plannedEndAt': iso(self.planned_end),
        }


def create_initial_steps(config: PipelineConfig) -> List[PipelineStageState]:
    return [PipelineStageState(stage_name=name) for name in config.stage_names]


def ensure_steps(steps: Iterable[PipelineStageState], config: PipelineConfig) -> List[PipelineStageState]:
    """
    Steps for every configured stage in pipeline order.

    Existing states are kept, missing stages start as Pending and states
    for stages the configuration does not know are dropped.
    """
    by_name = {step.stage_name: step for step in steps}
    return [by_name.get(name) or PipelineStageState(stage_name=name) for name in config.stage_names]


# =============================================================================
# PLANNED DATE RESOLUTION
# =============================================================================

def resolve_planned_dates(placement, config: PipelineConfig):
    """
    Recompute planned start/end of every stage for one placement.

    Returns a copy of the placement; the input is left untouched. The
    placement's end time anchors the chain. A stage with an actual end date
    keeps it as its planned end and passes it on verbatim; other enabled
    stages start at their effective dependency's anchor and end one
    turnaround later. Disabled stages have no planned dates.
    """
    resolved = copy.deepcopy(placement)
    steps = ensure_steps(resolved.tracking_steps, config)
    anchors: Dict[str, datetime] = {}
    if resolved.end_time is not None:
        anchors[ROOT_ANCHOR] = resolved.end_time

    for stage, step in zip(config, steps):
        if not stage.enabled:
            step.planned_start = None
            step.planned_end = None
            continue

        if step.actual_end is not None:
            anchors[stage.name] = step.actual_end
            step.planned_start = step.actual_start
            step.planned_end = step.actual_end
            continue

        anchor = anchors.get(config.effective_dependency(stage.name))
        if anchor is None:
            # Dependency declared later in the pipeline
            step.planned_start = None
            step.planned_end = None
            continue

        step.planned_start = anchor
        step.planned_end = stage.planned_end(anchor)
        anchors[stage.name] = step.planned_end

    resolved.tracking_steps = steps
    return resolved


def resolve_all(placements: Iterable, config: PipelineConfig) -> List:
    return [resolve_planned_dates(p, config) for p in placements]


# =============================================================================
# PROGRESS RECORDING
# =============================================================================

def _find_step(placement, stage_name: str) -> Optional[PipelineStageState]:
    return next((s for s in placement.tracking_steps if s.stage_name == stage_name), None)


def stage_input_quantity(placement, stage_name: str, config: PipelineConfig) -> float:
    """Quantity arriving at a stage: the placed quantity or the upstream output."""
    dependency = config.effective_dependency(stage_name)
    if dependency == ROOT_ANCHOR:
        return round(placement.quantity)
    upstream = _find_step(placement, dependency)
    return upstream.output_qty if upstream else 0


def derive_status(measured_qty: float, input_qty: float) -> str:
    if measured_qty <= 0:
        return 'Pending'
    if measured_qty < input_qty:
        return 'In Progress'
    return 'Completed'


def record_stage_progress(placement, stage_name: str, config: PipelineConfig,
                          output_qty: float = 0, rejected_qty: float = 0,
                          notes: Optional[str] = None,
                          actual_start: Optional[datetime] = None,
                          actual_end: Optional[datetime] = None,
                          satisfaction_rating: Optional[int] = None,
                          status: Optional[str] = None):
    """
    Record operator input for one stage and return the re-resolved placement.

    Inspection splits its input into passed (input - rejected) and excess
    (passed beyond the placed quantity); the excess goes to finished-goods
    stock and the rest is the stage output. Status is derived from the
    output unless given explicitly; a feedback rating completes Feedback.
    """
    if status is not None and status not in STAGE_STATUSES:
        raise ValueError(f"Unknown stage status '{status}', expected one of {STAGE_STATUSES}")

    updated = copy.deepcopy(placement)
    updated.tracking_steps = ensure_steps(updated.tracking_steps, config)
    step = _find_step(updated, stage_name)
    if step is None:
        raise KeyError(f"Unknown pipeline stage '{stage_name}'")

    input_qty = stage_input_quantity(updated, stage_name, config)
    if stage_name == INSPECTION_STAGE:
        passed = input_qty - rejected_qty
        excess = max(0, passed - round(updated.quantity))
        step.rejected_qty = rejected_qty
        step.excess_qty = excess
        step.output_qty = passed - excess
        measured = passed
    else:
        step.output_qty = output_qty
        measured = output_qty

    step.input_qty = input_qty
    step.status = status or derive_status(measured, input_qty)
    if satisfaction_rating is not None:
        step.satisfaction_rating = satisfaction_rating
        if stage_name == FEEDBACK_STAGE and satisfaction_rating > 0:
            step.status = 'Completed'
    if notes is not None:
        step.notes = notes
    if actual_start is not None:
        step.actual_start = actual_start
    if actual_end is not None:
        step.actual_end = actual_end

    return resolve_planned_dates(updated, config)


@dataclass
class FinishedGoodsEntry:
    item_code: str
    quantity: float
    source_job: str
    placement_id: str = ''

    def to_dict(self) -> Dict:
        return {
            'itemCode': self.item_code,
            'quantity': self.quantity,
            'sourceJobId': self.source_job,
            'placementId': self.placement_id,
        }


def finished_goods_from_excess(placements: Iterable) -> List[FinishedGoodsEntry]:
    """Finished-goods stock created by inspection excess quantities."""
    entries = []
    for placement in placements:
        inspection = _find_step(placement, INSPECTION_STAGE)
        if inspection and inspection.excess_qty > 0:
            entries.append(FinishedGoodsEntry(
                item_code=placement.item_code,
                quantity=inspection.excess_qty,
                source_job=placement.job_id,
                placement_id=placement.placement_id,
            ))
    return entries
