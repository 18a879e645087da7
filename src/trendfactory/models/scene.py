"""Scene and continuity constraint models."""

import re
from typing import Optional, Sequence

from pydantic import Field

from .base import CamelModel

MIN_SCENES = 4
MAX_SCENES = 6

SCENE_ID_PATTERN = re.compile(r"^scene_\d{2}$")


def scene_id_for(index: int) -> str:
    """Return the zero-padded identifier for the scene at ``index`` (0-based)."""
    return f"scene_{index + 1:02d}"


class ContinuityConstraints(CamelModel):
    """Visual rules that must hold across scenes."""

    lighting: str = Field(..., min_length=1, strict=True, description="Light source, quality, temperature")
    camera_axis: str = Field(..., min_length=1, strict=True, description="Camera height and movement")
    motion_energy: str = Field(..., min_length=1, strict=True, description="Pacing and motion level")
    color_palette: str = Field(..., min_length=1, strict=True, description="Color grading")
    environment_type: str = Field(..., min_length=1, strict=True, description="Kind of setting")


class Scene(CamelModel):
    """Represents a single scene in the escalation."""

    scene_id: str = Field(..., pattern=SCENE_ID_PATTERN.pattern, description="scene_01, scene_02, ...")
    intent: str = Field(..., min_length=1, strict=True, description="What happens in the scene")
    absurdity_level: int = Field(..., ge=1, le=10, strict=True, description="Escalation level 1-10")
    visual_prompt: Optional[str] = Field(None, min_length=1, description="Locked visual prompt")
    continuity_constraints: Optional[ContinuityConstraints] = Field(
        None, description="Scene-level constraints consistent with the global ones"
    )
    concept_image_path: Optional[str] = Field(None, description="Concept still")
    video_clip_path: Optional[str] = Field(None, description="Generated clip")
    continuity_frame_path: Optional[str] = Field(
        None, description="Last frame of the clip, seed image for the next scene"
    )


def validate_scene_sequence(scenes: Sequence[Scene], allow_empty: bool = True) -> None:
    """Check the ordering rules every scene list must satisfy.

    Raises:
        ValueError: On a bad length, an out-of-sequence id, or absurdity that
            does not strictly increase.
    """
    if not scenes and allow_empty:
        return

    if not MIN_SCENES <= len(scenes) <= MAX_SCENES:
        raise ValueError(
            f"Expected {MIN_SCENES}-{MAX_SCENES} scenes, got {len(scenes)}"
        )

    for i, scene in enumerate(scenes):
        expected = scene_id_for(i)
        if scene.scene_id != expected:
            raise ValueError(
                f"Invalid scene ID at position {i}: expected {expected}, got {scene.scene_id}"
            )
        if i > 0 and scene.absurdity_level <= scenes[i - 1].absurdity_level:
            raise ValueError(
                f"Absurdity must escalate: {scenes[i - 1].scene_id} "
                f"({scenes[i - 1].absurdity_level}) >= {scene.scene_id} "
                f"({scene.absurdity_level})"
            )
