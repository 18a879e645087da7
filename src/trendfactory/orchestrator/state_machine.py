"""Stage state machine: handlers, run loop, rerun and status.

Each non-terminal stage has one handler. A handler reads the committed state,
calls agents one at a time, applies the deltas they return in order and then
advances the stage. Every delta and every transition is persisted before the
next step, so an interrupted run resumes from the last committed record.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

from ..agents import (
    AssemblyInput,
    EscalationInput,
    PipelineAgents,
    QualityAssessmentInput,
    TrendSynthesisInput,
    VideoGenerationInput,
    VisualLockInput,
)
from ..config import config
from ..continuity import analyze_continuity, warn_on_contradictions
from ..errors import (
    InvalidTransitionError,
    MissingDataError,
    QualityGateExhaustedError,
    TrendFactoryError,
)
from ..models import (
    DEFAULT_QUALITY_THRESHOLD,
    ContinuityConstraints,
    ProjectState,
    SceneVideoGenerated,
    Stage,
    Trend,
    next_stage,
    previous_stage,
    stage_index,
)
from ..models.project import SEED_MODULUS
from .deltas import apply_delta
from .store import StateStore

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Knobs for one pipeline run."""

    base_dir: Path = field(default_factory=lambda: config.workspace)
    output_dir: Path = field(default_factory=lambda: config.output_dir)
    seed: Optional[int] = None
    max_trend_attempts: int = 3
    quality_threshold: float = DEFAULT_QUALITY_THRESHOLD
    scene_count: int = 5
    clip_duration: float = 6.0
    aspect_ratio: str = "16:9"
    use_image_to_video: bool = True
    transition: str = "none"
    transition_duration: float = 0.5
    normalize_clips: bool = True


@dataclass
class PipelineStatus:
    """Summary of the persisted state."""

    project_id: str
    run_id: str
    seed: int
    stage: Stage
    trend_name: Optional[str]
    scene_count: int
    quality_score: Optional[float]
    regeneration_count: int
    error: Optional[str]


def can_transition(current: Stage, target: Stage) -> bool:
    return next_stage(current) == Stage(target)


def transition_stage(state: ProjectState, target: Stage, store: StateStore) -> ProjectState:
    """Advance to ``target`` if it is the direct successor, clearing any error.

    Raises:
        InvalidTransitionError: For any pair outside the linear order.
    """
    target = Stage(target)
    if not can_transition(state.stage, target):
        allowed = next_stage(state.stage)
        raise InvalidTransitionError(
            f"Invalid stage transition: {state.stage.value} -> {target.value}. "
            f"Valid transitions from {state.stage.value}: "
            f"[{allowed.value if allowed else ''}]"
        )

    saved = store.save(state.model_copy(update={"stage": target, "error": None}))
    logger.info(f"Stage transition: {state.stage.value} -> {target.value}")
    return saved


def derive_attempt_seed(seed: int, attempt: int) -> int:
    """Seed for a trend synthesis attempt; attempt 0 uses the project seed."""
    return (seed + attempt) % SEED_MODULUS


def get_pipeline_status(store: StateStore) -> PipelineStatus:
    """Summarize the persisted state (creating it if absent)."""
    state = store.load()
    return PipelineStatus(
        project_id=state.project_id,
        run_id=state.run_id,
        seed=state.seed,
        stage=state.stage,
        trend_name=state.trend.name if state.trend else None,
        scene_count=len(state.scenes),
        quality_score=state.trend_quality.overall_score if state.trend_quality else None,
        regeneration_count=state.regeneration_count,
        error=state.error,
    )


def require_trend(state: ProjectState) -> Trend:
    if state.trend is None:
        raise MissingDataError("trend")
    return state.trend


def require_scenes(state: ProjectState) -> None:
    if not state.scenes:
        raise MissingDataError("scenes")


def require_global_continuity(state: ProjectState) -> ContinuityConstraints:
    if state.global_continuity is None:
        raise MissingDataError("globalContinuity")
    return state.global_continuity


Handler = Callable[[ProjectState, bool], Awaitable[ProjectState]]


class StateMachine:
    """Drives one project's state file from its current stage to ASSEMBLED."""

    def __init__(
        self,
        store: StateStore,
        agents: PipelineAgents,
        pipeline_config: Optional[PipelineConfig] = None,
    ) -> None:
        self._store = store
        self._agents = agents
        self._config = pipeline_config or PipelineConfig()
        self._fresh_trend = False
        self._handlers: Dict[Stage, Handler] = {
            Stage.INIT: self._handle_init,
            Stage.SCRIPTED: self._handle_scripted,
            Stage.VISUALIZED: self._handle_visualized,
            Stage.VIDEO_GENERATED: self._handle_video_generated,
        }

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def config(self) -> PipelineConfig:
        return self._config

    async def run_pipeline(self, rerun: bool = False) -> ProjectState:
        """Run handlers until the project is ASSEMBLED.

        Args:
            rerun: Regenerate each stage's work instead of skipping scenes
                that already have committed results.

        Returns:
            The final persisted state.

        Raises:
            TrendFactoryError: Or any other error a handler raised. The
                message is persisted on the state first; committed deltas
                are kept.
        """
        state = self._store.load()
        logger.info(
            f"Starting pipeline for {state.project_id} "
            f"(run {state.run_id}, seed {state.seed}, stage {state.stage.value})"
        )

        while state.stage != Stage.ASSEMBLED:
            handler = self._handlers.get(state.stage)
            if handler is None:
                raise TrendFactoryError(f"No handler for stage {state.stage.value}")

            logger.info(f"=== Stage {state.stage.value} ===")
            try:
                state = await handler(state, rerun)
            except Exception as e:
                logger.error(f"Pipeline failed in stage {state.stage.value}: {e}")
                self._record_error(e)
                raise

        logger.info(f"Pipeline complete: {state.project_id}")
        return state

    async def run_from_stage(self, target: Stage) -> ProjectState:
        """Rewind to the predecessor of ``target`` and regenerate from there.

        Trend, scenes and artifacts are left intact; the rewound stage's
        handler overwrites them as it goes. ``Stage.INIT`` also discards the
        accepted trend and reruns the quality gate, while ``Stage.SCRIPTED``
        keeps the trend and only replans the scenes.

        Raises:
            InvalidTransitionError: If the project has not reached ``target``.
        """
        target = Stage(target)
        state = self._store.load()
        if stage_index(state.stage) < stage_index(target):
            raise InvalidTransitionError(
                f"Cannot run from {target.value}: project is only at {state.stage.value}"
            )

        rewound = previous_stage(target)
        logger.info(f"Rewinding {state.project_id} from {state.stage.value} to {rewound.value}")
        self._store.save(state.model_copy(update={"stage": rewound, "error": None}))
        self._fresh_trend = target == Stage.INIT
        try:
            return await self.run_pipeline(rerun=True)
        finally:
            self._fresh_trend = False

    async def reset_and_run(self, seed: Optional[int] = None) -> ProjectState:
        """Discard the current project and run a new one."""
        self._store.reset(seed=seed if seed is not None else self._config.seed)
        return await self.run_pipeline()

    def _record_error(self, error: Exception) -> None:
        """Persist an error message onto the latest committed state."""
        message = str(error) or type(error).__name__
        try:
            latest = self._store.load()
            self._store.save(latest.model_copy(update={"error": message}))
        except TrendFactoryError as e:
            logger.error(f"Could not record error on state: {e}")

    # Stage handlers

    async def _handle_init(self, state: ProjectState, rerun: bool) -> ProjectState:
        """Quality-gated trend synthesis, then escalation planning."""
        accepted = state.trend_quality is not None and state.trend_quality.passes_threshold
        if state.trend is not None and accepted and not self._fresh_trend:
            logger.info(f'Reusing accepted trend "{state.trend.name}"')
        else:
            state = await self._synthesize_trend(state)

        if state.scenes and not rerun:
            logger.info(f"Reusing {len(state.scenes)} planned scenes")
        else:
            delta = await self._agents.escalation_planner.run(
                EscalationInput(
                    trend=require_trend(state),
                    seed=state.seed,
                    scene_count=self._config.scene_count,
                )
            )
            state = apply_delta(state, delta, self._store)

        return transition_stage(state, Stage.SCRIPTED, self._store)

    async def _synthesize_trend(self, state: ProjectState) -> ProjectState:
        """Synthesize and assess trends until one passes or attempts run out.

        A rejected attempt commits only its assessment, which bumps the
        regeneration count. An accepted one commits the trend, then its
        assessment.
        """
        rejected: List[str] = []
        last_reason: Optional[str] = None
        attempts = self._config.max_trend_attempts

        for attempt in range(attempts):
            attempt_seed = derive_attempt_seed(state.seed, attempt)
            logger.info(f"Trend attempt {attempt + 1}/{attempts} (seed {attempt_seed})")

            synthesized = await self._agents.trend_synthesizer.run(
                TrendSynthesisInput(seed=attempt_seed, attempt=attempt, avoid=list(rejected))
            )
            assessed = await self._agents.quality_assessor.run(
                QualityAssessmentInput(
                    trend=synthesized.trend,
                    pattern_analysis=synthesized.pattern_analysis,
                    threshold=self._config.quality_threshold,
                )
            )

            quality = assessed.trend_quality
            if quality.passes_threshold:
                state = apply_delta(state, synthesized, self._store)
                state = apply_delta(state, assessed, self._store)
                logger.info(
                    f'Accepted trend "{synthesized.trend.name}" (score {quality.overall_score})'
                )
                return state

            state = apply_delta(state, assessed, self._store)
            rejected.append(synthesized.trend.name)
            last_reason = quality.rejection_reason
            logger.warning(
                f'Rejected trend "{synthesized.trend.name}" '
                f"(score {quality.overall_score}): {last_reason}"
            )

        raise QualityGateExhaustedError(attempts, last_reason)

    async def _handle_scripted(self, state: ProjectState, rerun: bool) -> ProjectState:
        """Lock visuals for each scene in order."""
        trend = require_trend(state)
        require_scenes(state)
        global_continuity = require_global_continuity(state)

        for index in range(len(state.scenes)):
            scene = state.scenes[index]
            if not rerun and scene.visual_prompt and scene.concept_image_path:
                logger.info(f"Skipping {scene.scene_id}: visuals already locked")
                continue

            delta = await self._agents.visual_locker.run(
                VisualLockInput(
                    trend=trend,
                    scene=scene,
                    all_scenes=list(state.scenes),
                    global_continuity=global_continuity,
                    seed=state.seed,
                    output_dir=Path(self._config.output_dir),
                    aspect_ratio=self._config.aspect_ratio,
                )
            )
            warn_on_contradictions(scene.scene_id, delta.continuity_constraints, global_continuity)
            state = apply_delta(state, delta, self._store)

        return transition_stage(state, Stage.VISUALIZED, self._store)

    async def _handle_visualized(self, state: ProjectState, rerun: bool) -> ProjectState:
        """Generate clips in order, chaining each scene from the previous last frame."""
        trend = require_trend(state)
        require_scenes(state)
        for index, scene in enumerate(state.scenes):
            if not scene.visual_prompt:
                raise MissingDataError(f"scenes[{index}].visualPrompt", scene.scene_id)

        for index in range(len(state.scenes)):
            scene = state.scenes[index]
            if not rerun and scene.video_clip_path:
                logger.info(f"Skipping {scene.scene_id}: clip already generated")
                continue

            chained_frame = state.scenes[index - 1].continuity_frame_path if index > 0 else None
            if chained_frame:
                input_image = chained_frame
            elif self._config.use_image_to_video:
                input_image = scene.concept_image_path
            else:
                input_image = None

            generated = await self._agents.video_generator.run(
                VideoGenerationInput(
                    trend=trend,
                    scene=scene,
                    output_dir=Path(self._config.output_dir),
                    input_image=input_image,
                    chained=bool(chained_frame),
                    clip_duration=self._config.clip_duration,
                    aspect_ratio=self._config.aspect_ratio,
                    seed=state.seed,
                )
            )

            frame_path = await self._extract_continuity_frame(
                scene.scene_id, generated.video_clip_path
            )
            delta = SceneVideoGenerated(
                scene_id=scene.scene_id,
                video_clip_path=generated.video_clip_path,
                continuity_frame_path=frame_path,
            )
            state = apply_delta(state, delta, self._store)

        return transition_stage(state, Stage.VIDEO_GENERATED, self._store)

    async def _extract_continuity_frame(self, scene_id: str, clip_path: str) -> Optional[str]:
        """Extract the chaining frame; a failure leaves the next scene unchained."""
        try:
            return await self._agents.continuity_editor.extract_continuity_frame(
                scene_id, clip_path, Path(self._config.output_dir)
            )
        except Exception as e:
            logger.warning(
                f"Could not extract continuity frame for {scene_id}: {e}. "
                "Next scene will not be chained."
            )
            return None

    async def _handle_video_generated(self, state: ProjectState, rerun: bool) -> ProjectState:
        """Assemble the final video from every scene clip."""
        require_scenes(state)
        for index, scene in enumerate(state.scenes):
            if not scene.video_clip_path:
                raise MissingDataError(f"scenes[{index}].videoClipPath", scene.scene_id)

        analyze_continuity(state.scenes)

        result = await self._agents.continuity_editor.run(
            AssemblyInput(
                project_id=state.project_id,
                scenes=list(state.scenes),
                output_dir=Path(self._config.output_dir),
                transition=self._config.transition,
                transition_duration=self._config.transition_duration,
                normalize=self._config.normalize_clips,
            )
        )
        logger.info(f"Final video written to {result.final_video_path}")

        return transition_stage(state, Stage.ASSEMBLED, self._store)
