"""
Pipeline Settings Parser
Builds a PipelineConfig from stored module settings.

Two shapes are accepted: a mapping of stage name to settings (the saved
"module settings" object) or a list of stage settings. A list keeps its
declared order. Mapping keys carry no order (JSON encoders sort them), so a
mapping follows an explicit `order` list when one is given, otherwise the
standard stage sequence with any other stages after it.
"""

import json
from typing import Any, Dict, List, Optional

from algorithms.tracking import (
    PipelineConfig,
    PipelineConfigError,
    PipelineStageConfig,
    ROOT_ANCHOR,
    default_pipeline,
    DEFAULT_STAGES,
)
from .common import first_present, to_bool, to_number, to_text


def _parse_stage(entry: Dict[str, Any], fallback_name: Optional[str] = None) -> PipelineStageConfig:
    name = to_text(first_present(entry, 'stageName', 'name')) or fallback_name
    if not name:
        raise PipelineConfigError("Pipeline stage without a name")
    return PipelineStageConfig(
        name=name,
        enabled=to_bool(entry.get('enabled'), default=True),
        depends_on=to_text(first_present(entry, 'dependsOn', 'depends_on')) or ROOT_ANCHOR,
        tat=to_number(first_present(entry, 'turnaround', 'tat')),
        tat_unit=(to_text(first_present(entry, 'turnaroundUnit', 'tatUnit')) or 'hours').lower(),
    )


def _stage_order(names: List[str], order: Optional[List[str]] = None) -> List[str]:
    """Mapping keys in pipeline order: explicit order, then standard stages, then the rest."""
    if order is not None:
        if not isinstance(order, list):
            raise PipelineConfigError("Pipeline order must be a list of stage names")
        preferred = [to_text(name) for name in order]
    else:
        preferred = []
    preferred += [stage.name for stage in DEFAULT_STAGES]

    ordered = []
    for name in preferred + names:
        if name in names and name not in ordered:
            ordered.append(name)
    return ordered


def parse_pipeline_settings(data, order: Optional[List[str]] = None) -> PipelineConfig:
    """
    Parse pipeline settings into a validated configuration.

    Args:
        data: Mapping of stage name to settings, or a list of stage settings
        order: Stage names in pipeline order (mapping shape only)

    Raises:
        PipelineConfigError: on malformed entries, unknown dependencies or cycles
    """
    if isinstance(data, dict):
        stages = []
        for name in _stage_order(list(data), order):
            entry = data[name]
            if not isinstance(entry, dict):
                raise PipelineConfigError(f"Settings for stage '{name}' must be an object")
            stages.append(_parse_stage(entry, fallback_name=name))
    elif isinstance(data, list):
        stages = []
        for entry in data:
            if not isinstance(entry, dict):
                raise PipelineConfigError("Each pipeline stage must be an object")
            stages.append(_parse_stage(entry))
    else:
        raise PipelineConfigError("Pipeline settings must be an object or a list")

    return PipelineConfig.from_stages(stages)


def load_pipeline_settings(path: Optional[str] = None) -> PipelineConfig:
    """Load pipeline settings from a JSON file, or the default pipeline without one."""
    if not path:
        return default_pipeline()
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    config = parse_pipeline_settings(data)
    print(f"[Tracking] Loaded {len(config)} pipeline stages from {path}")
    return config
