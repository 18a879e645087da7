"""Typed, stage-gated mutation payloads produced by agents."""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter, model_validator

from .base import CamelModel
from .project import Stage
from .scene import MAX_SCENES, MIN_SCENES, ContinuityConstraints, Scene, validate_scene_sequence
from .trend import PatternAnalysis, Trend, TrendQuality


class DeltaKind(str, Enum):
    """The closed set of delta kinds."""
    TREND_SYNTHESIZED = "TREND_SYNTHESIZED"
    TREND_QUALITY_ASSESSED = "TREND_QUALITY_ASSESSED"
    ESCALATION_PLANNED = "ESCALATION_PLANNED"
    SCENE_VISUALIZED = "SCENE_VISUALIZED"
    SCENE_VIDEO_GENERATED = "SCENE_VIDEO_GENERATED"


# Stage in which each kind may be applied.
DELTA_STAGE = {
    DeltaKind.TREND_SYNTHESIZED: Stage.INIT,
    DeltaKind.TREND_QUALITY_ASSESSED: Stage.INIT,
    DeltaKind.ESCALATION_PLANNED: Stage.INIT,
    DeltaKind.SCENE_VISUALIZED: Stage.SCRIPTED,
    DeltaKind.SCENE_VIDEO_GENERATED: Stage.VISUALIZED,
}


class TrendSynthesized(CamelModel):
    kind: Literal["TREND_SYNTHESIZED"] = "TREND_SYNTHESIZED"
    pattern_analysis: PatternAnalysis
    trend: Trend


class TrendQualityAssessed(CamelModel):
    kind: Literal["TREND_QUALITY_ASSESSED"] = "TREND_QUALITY_ASSESSED"
    trend_quality: TrendQuality


class EscalationPlanned(CamelModel):
    kind: Literal["ESCALATION_PLANNED"] = "ESCALATION_PLANNED"
    scenes: List[Scene] = Field(..., min_length=MIN_SCENES, max_length=MAX_SCENES)
    global_continuity: ContinuityConstraints

    @model_validator(mode="after")
    def _check_sequence(self) -> "EscalationPlanned":
        validate_scene_sequence(self.scenes, allow_empty=False)
        return self


class SceneVisualized(CamelModel):
    kind: Literal["SCENE_VISUALIZED"] = "SCENE_VISUALIZED"
    scene_id: str = Field(..., min_length=1)
    visual_prompt: str = Field(..., min_length=1)
    continuity_constraints: ContinuityConstraints
    concept_image_path: str = Field(..., min_length=1)


class SceneVideoGenerated(CamelModel):
    kind: Literal["SCENE_VIDEO_GENERATED"] = "SCENE_VIDEO_GENERATED"
    scene_id: str = Field(..., min_length=1)
    video_clip_path: str = Field(..., min_length=1)
    continuity_frame_path: Optional[str] = None


Delta = Annotated[
    Union[
        TrendSynthesized,
        TrendQualityAssessed,
        EscalationPlanned,
        SceneVisualized,
        SceneVideoGenerated,
    ],
    Field(discriminator="kind"),
]

# Per-scene kinds; every payload field except these is merged into the scene.
SCENE_DELTA_KEYS = {"kind", "scene_id"}

delta_adapter: TypeAdapter = TypeAdapter(Delta)


def parse_delta(data: dict) -> Delta:
    """Validate a raw ``{"kind": ..., ...}`` payload into its delta model."""
    return delta_adapter.validate_python(data)
