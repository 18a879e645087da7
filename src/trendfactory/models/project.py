"""Project state model."""

import secrets
import time
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from .base import CamelModel
from .scene import ContinuityConstraints, Scene, validate_scene_sequence
from .trend import PatternAnalysis, Trend, TrendQuality

SEED_MODULUS = 2**31 - 1


class Stage(str, Enum):
    """Pipeline stage, in execution order."""
    INIT = "INIT"
    SCRIPTED = "SCRIPTED"
    VISUALIZED = "VISUALIZED"
    VIDEO_GENERATED = "VIDEO_GENERATED"
    ASSEMBLED = "ASSEMBLED"


STAGE_ORDER: List[Stage] = list(Stage)


def stage_index(stage: Stage) -> int:
    """Position of ``stage`` in the fixed order."""
    return STAGE_ORDER.index(Stage(stage))


def next_stage(stage: Stage) -> Optional[Stage]:
    """The single legal successor of ``stage``, or None for the terminal stage."""
    index = stage_index(stage)
    if index + 1 >= len(STAGE_ORDER):
        return None
    return STAGE_ORDER[index + 1]


def previous_stage(stage: Stage) -> Stage:
    """The predecessor of ``stage``; INIT is its own predecessor."""
    index = stage_index(stage)
    return STAGE_ORDER[max(0, index - 1)]


def generate_seed() -> int:
    """Random seed in [0, 2**31 - 1)."""
    return secrets.randbelow(SEED_MODULUS)


def generate_run_id() -> str:
    """16 hex characters, unique per execution attempt."""
    return secrets.token_hex(8)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectState(CamelModel):
    """The single authoritative record of one project's progress."""

    # Identity
    project_id: str = Field(..., min_length=1, strict=True)
    run_id: str = Field(..., min_length=1, strict=True)
    seed: int = Field(..., strict=True)

    # Timestamps
    created_at: datetime
    updated_at: datetime

    stage: Stage

    # Content, each slice written by one delta kind
    pattern_analysis: Optional[PatternAnalysis] = None
    trend: Optional[Trend] = None
    trend_quality: Optional[TrendQuality] = None
    scenes: List[Scene] = Field(default_factory=list)
    global_continuity: Optional[ContinuityConstraints] = None

    # Meta
    error: Optional[str] = None
    regeneration_count: int = Field(0, ge=0, strict=True)

    @model_validator(mode="after")
    def _check_scene_sequence(self) -> "ProjectState":
        validate_scene_sequence(self.scenes)
        return self

    @classmethod
    def initial(cls, seed: Optional[int] = None) -> "ProjectState":
        """A fresh project at INIT with no content."""
        now = utcnow()
        return cls(
            project_id=f"trends_{int(time.time() * 1000)}",
            run_id=generate_run_id(),
            seed=generate_seed() if seed is None else seed,
            created_at=now,
            updated_at=now,
            stage=Stage.INIT,
        )

    def scene_index(self, scene_id: str) -> Optional[int]:
        """Position of the scene with ``scene_id``, or None."""
        for i, scene in enumerate(self.scenes):
            if scene.scene_id == scene_id:
                return i
        return None
