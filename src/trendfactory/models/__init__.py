"""Data models for the trends pipeline."""

from .trend import PatternAnalysis, Trend, TrendQuality, DEFAULT_QUALITY_THRESHOLD
from .scene import (
    ContinuityConstraints,
    Scene,
    scene_id_for,
    validate_scene_sequence,
    MIN_SCENES,
    MAX_SCENES,
)
from .project import (
    ProjectState,
    Stage,
    STAGE_ORDER,
    stage_index,
    next_stage,
    previous_stage,
)
from .delta import (
    Delta,
    DeltaKind,
    DELTA_STAGE,
    TrendSynthesized,
    TrendQualityAssessed,
    EscalationPlanned,
    SceneVisualized,
    SceneVideoGenerated,
    parse_delta,
)

__all__ = [
    "PatternAnalysis",
    "Trend",
    "TrendQuality",
    "DEFAULT_QUALITY_THRESHOLD",
    "ContinuityConstraints",
    "Scene",
    "scene_id_for",
    "validate_scene_sequence",
    "MIN_SCENES",
    "MAX_SCENES",
    "ProjectState",
    "Stage",
    "STAGE_ORDER",
    "stage_index",
    "next_stage",
    "previous_stage",
    "Delta",
    "DeltaKind",
    "DELTA_STAGE",
    "TrendSynthesized",
    "TrendQualityAssessed",
    "EscalationPlanned",
    "SceneVisualized",
    "SceneVideoGenerated",
    "parse_delta",
]
