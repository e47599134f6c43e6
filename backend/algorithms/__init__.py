"""
Scheduling Algorithms

This module provides the press scheduling engine and the tracking pipeline.

Available components:
- ConditionIndex: production condition lookup and best-die selection
- ShiftWindow: shift capacity model and horizon generation
- PressScheduler: greedy slot-filling of jobs into one press's shifts
- PipelineConfig / resolve_planned_dates: post-production stage planning
"""

from algorithms.conditions import (
    ProductionCondition,
    ConditionIndex,
    select_best
)

from algorithms.shifts import (
    ShiftWindow,
    generate_shifts,
    generate_horizon,
    horizon_days,
    apply_existing_placements,
    shifts_for_presses
)

from algorithms.scheduler import (
    Job,
    Placement,
    ScheduleResult,
    PressScheduler,
    MultiPressResult,
    PressWorkload,
    schedule_press,
    schedule_presses,
    press_workload,
    batch_label
)

from algorithms.tracking import (
    ROOT_ANCHOR,
    PipelineConfigError,
    PipelineStageConfig,
    PipelineConfig,
    PipelineStageState,
    FinishedGoodsEntry,
    default_pipeline,
    create_initial_steps,
    ensure_steps,
    resolve_planned_dates,
    resolve_all,
    stage_input_quantity,
    record_stage_progress,
    finished_goods_from_excess
)

__all__ = [
    # Conditions
    'ProductionCondition',
    'ConditionIndex',
    'select_best',
    # Shifts
    'ShiftWindow',
    'generate_shifts',
    'generate_horizon',
    'horizon_days',
    'apply_existing_placements',
    'shifts_for_presses',
    # Scheduler
    'Job',
    'Placement',
    'ScheduleResult',
    'PressScheduler',
    'MultiPressResult',
    'PressWorkload',
    'schedule_press',
    'schedule_presses',
    'press_workload',
    'batch_label',
    # Tracking
    'ROOT_ANCHOR',
    'PipelineConfigError',
    'PipelineStageConfig',
    'PipelineConfig',
    'PipelineStageState',
    'FinishedGoodsEntry',
    'default_pipeline',
    'create_initial_steps',
    'ensure_steps',
    'resolve_planned_dates',
    'resolve_all',
    'stage_input_quantity',
    'record_stage_progress',
    'finished_goods_from_excess',
]
