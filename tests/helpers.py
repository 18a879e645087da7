"""Builders and stub agents shared by the test modules."""

from pathlib import Path
from typing import List, Optional, Sequence

from trendfactory.agents import AssemblyResult, PipelineAgents
from trendfactory.errors import ExternalServiceError
from trendfactory.models import (
    ContinuityConstraints,
    EscalationPlanned,
    PatternAnalysis,
    Scene,
    SceneVideoGenerated,
    SceneVisualized,
    Trend,
    TrendQuality,
    TrendQualityAssessed,
    TrendSynthesized,
    scene_id_for,
)

ABSURDITY_LEVELS = [2, 3, 5, 7, 9, 10]


def make_trend(name: str = "Inbox Zero Living") -> Trend:
    return Trend(
        name=name,
        promise="A calmer mind through an empty physical inbox.",
        behavior_pattern="Adherents process every object they own like an unread email.",
        algorithmic_hook="Before-and-after clips of emptied rooms loop well.",
        collapse_point="People archive their own furniture and sit on the floor.",
    )


def make_pattern_analysis() -> PatternAnalysis:
    return PatternAnalysis(
        format_patterns=["before/after reveal"],
        behavior_patterns=["ritualized decluttering"],
        algorithmic_incentives=["high completion rate on short loops"],
        lifecycle_mapping=["emergence", "peak", "collapse"],
    )


def make_constraints(**overrides) -> ContinuityConstraints:
    values = {
        "lighting": "soft warm window light from camera left",
        "camera_axis": "eye-level locked tripod",
        "motion_energy": "measured and deliberate",
        "color_palette": "warm neutrals with muted earth tones",
        "environment_type": "indoor minimalist apartment",
    }
    values.update(overrides)
    return ContinuityConstraints(**values)


def make_scenes(count: int = 5, levels: Optional[Sequence[int]] = None) -> List[Scene]:
    levels = levels or ABSURDITY_LEVELS
    return [
        Scene(
            scene_id=scene_id_for(i),
            intent=f"Step {i + 1} of the trend taken one notch further",
            absurdity_level=levels[i],
        )
        for i in range(count)
    ]


def passing_quality() -> TrendQuality:
    return TrendQuality.from_scores(8.0, 8.5, 7.5)


def failing_quality(reason: str = "Reads like a joke") -> TrendQuality:
    return TrendQuality.from_scores(4.0, 5.0, 3.0, rejection_reason=reason)


class StubTrendSynthesizer:
    name = "trend_synthesizer"

    def __init__(self) -> None:
        self.calls = []

    async def run(self, input_data):
        self.calls.append(input_data)
        return TrendSynthesized(
            pattern_analysis=make_pattern_analysis(),
            trend=make_trend(f"Trend {len(self.calls)}"),
        )


class StubQualityAssessor:
    """Passes or fails attempts according to ``outcomes``; passes beyond it."""

    name = "quality_assessor"

    def __init__(self, outcomes: Optional[Sequence[bool]] = None) -> None:
        self.outcomes = list(outcomes or [])
        self.calls = []

    async def run(self, input_data):
        index = len(self.calls)
        self.calls.append(input_data)
        passes = self.outcomes[index] if index < len(self.outcomes) else True
        quality = passing_quality() if passes else failing_quality()
        return TrendQualityAssessed(trend_quality=quality)


class StubEscalationPlanner:
    name = "escalation_planner"

    def __init__(self, fail: bool = False, levels: Optional[Sequence[int]] = None) -> None:
        self.fail = fail
        self.levels = levels
        self.calls = []

    async def run(self, input_data):
        self.calls.append(input_data)
        if self.fail:
            raise ExternalServiceError("planner unavailable")
        return EscalationPlanned(
            scenes=make_scenes(input_data.scene_count, self.levels),
            global_continuity=make_constraints(),
        )


class StubVisualLocker:
    name = "visual_locker"

    def __init__(self, constraints: Optional[ContinuityConstraints] = None) -> None:
        self.constraints = constraints
        self.calls = []

    async def run(self, input_data):
        self.calls.append(input_data)
        scene = input_data.scene
        return SceneVisualized(
            scene_id=scene.scene_id,
            visual_prompt=f"Wide shot in a quiet room. {scene.intent}. "
            f"Lighting: {input_data.global_continuity.lighting}.",
            continuity_constraints=self.constraints or input_data.global_continuity,
            concept_image_path=str(Path(input_data.output_dir) / "scenes" / f"{scene.scene_id}_concept.png"),
        )


class StubVideoGenerator:
    """Raises ExternalServiceError for any scene id listed in ``fail_on``."""

    name = "video_generator"

    def __init__(self, fail_on: Sequence[str] = ()) -> None:
        self.fail_on = set(fail_on)
        self.calls = []

    async def run(self, input_data):
        self.calls.append(input_data)
        scene_id = input_data.scene.scene_id
        if scene_id in self.fail_on:
            raise ExternalServiceError(f"Video generation failed for {scene_id}")
        return SceneVideoGenerated(
            scene_id=scene_id,
            video_clip_path=str(Path(input_data.output_dir) / "scenes" / f"{scene_id}_clip.mp4"),
        )


class StubContinuityEditor:
    """Raises on frame extraction for any scene id listed in ``failing_frames``."""

    name = "continuity_editor"

    def __init__(self, failing_frames: Sequence[str] = ()) -> None:
        self.failing_frames = set(failing_frames)
        self.frame_calls = []
        self.assembly_calls = []

    async def extract_continuity_frame(self, scene_id, clip_path, output_dir):
        self.frame_calls.append(scene_id)
        if scene_id in self.failing_frames:
            raise RuntimeError("ffmpeg could not decode the last frame")
        return str(Path(output_dir) / "frames" / f"{scene_id}_last.png")

    async def run(self, input_data):
        self.assembly_calls.append(input_data)
        return AssemblyResult(
            final_video_path=Path(input_data.output_dir) / "final" / f"{input_data.project_id}.mp4",
            scene_count=len(input_data.scenes),
        )


def make_agents(**overrides) -> PipelineAgents:
    agents = {
        "trend_synthesizer": StubTrendSynthesizer(),
        "quality_assessor": StubQualityAssessor(),
        "escalation_planner": StubEscalationPlanner(),
        "visual_locker": StubVisualLocker(),
        "video_generator": StubVideoGenerator(),
        "continuity_editor": StubContinuityEditor(),
    }
    agents.update(overrides)
    return PipelineAgents(**agents)
