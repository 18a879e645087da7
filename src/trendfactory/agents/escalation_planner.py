"""Escalation planner agent that turns a trend into escalating scenes."""

from dataclasses import dataclass

from ..errors import AgentOutputError
from ..models import MAX_SCENES, MIN_SCENES, EscalationPlanned, Trend
from .base import ClaudeAgent


SYSTEM_PROMPT = """You are an escalation planner for a satirical video production pipeline.

Your task is to take a cultural trend and plan a short video of 4-6 scenes that
ESCALATES the trend to its logical extreme.

ESCALATION PRINCIPLES:
1. Start NORMAL. Scene 1 should be completely believable.
2. Each scene builds on the previous one.
3. The escalation must feel inevitable, not random.
4. The final scene reaches the collapse point, where the absurdity is undeniable.
5. No jokes. The humor comes from the escalation itself.

SCENE REQUIREMENTS:
- Each scene is 5-8 seconds of video
- No dialogue, no text, no narration
- Each scene shows a BEHAVIOR, not a concept
- Absurdity levels strictly increase on a 1-10 scale

CONTINUITY REQUIREMENTS:
Define GLOBAL continuity constraints that apply to every scene:
- lighting: light source direction, quality and color temperature
- cameraAxis: camera height and angle philosophy
- motionEnergy: pacing and energy level
- colorPalette: color grading shared by all scenes
- environmentType: the kind of setting

These constraints are enforced during image and video generation. Be specific.

Output ONLY a JSON object:
{
  "globalContinuity": {
    "lighting": "...",
    "cameraAxis": "...",
    "motionEnergy": "...",
    "colorPalette": "...",
    "environmentType": "..."
  },
  "scenes": [
    {"sceneId": "scene_01", "intent": "What happens (2-3 sentences)", "absurdityLevel": 2}
  ]
}"""


@dataclass
class EscalationInput:
    """Input for escalation planning."""

    trend: Trend
    seed: int
    scene_count: int = 5


class EscalationPlannerAgent(ClaudeAgent[EscalationInput, EscalationPlanned]):
    """Plans the scene sequence and the global continuity constraints."""

    @property
    def name(self) -> str:
        return "escalation_planner"

    @property
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT

    async def run(self, input_data: EscalationInput) -> EscalationPlanned:
        trend = input_data.trend
        scene_count = max(MIN_SCENES, min(MAX_SCENES, input_data.scene_count))
        self._logger.info(
            f'Planning escalation for trend "{trend.name}" (seed: {input_data.seed})'
        )

        data = await self._generate_json(
            self._build_prompt(trend, input_data.seed, scene_count),
            max_tokens=2048,
            temperature=0.6 + (input_data.seed % 100) / 500,
        )
        if not isinstance(data, dict):
            raise AgentOutputError(f"{self.name} expected a JSON object", payload=data)

        delta = self._validate(EscalationPlanned, {**data, "kind": "ESCALATION_PLANNED"})

        continuity = delta.global_continuity
        self._logger.info(f"Planned {len(delta.scenes)} scenes with global continuity:")
        self._logger.info(f"  - Lighting: {continuity.lighting}")
        self._logger.info(f"  - Camera: {continuity.camera_axis}")
        self._logger.info(f"  - Motion: {continuity.motion_energy}")
        self._logger.info(f"  - Palette: {continuity.color_palette}")
        self._logger.info(f"  - Environment: {continuity.environment_type}")
        for scene in delta.scenes:
            self._logger.debug(
                f"  - {scene.scene_id} (absurdity {scene.absurdity_level}): {scene.intent[:50]}..."
            )
        return delta

    def _build_prompt(self, trend: Trend, seed: int, scene_count: int) -> str:
        return f"""Plan a {scene_count}-scene video escalation for this trend:

TREND: {trend.name}
PROMISE: {trend.promise}
BEHAVIOR PATTERN: {trend.behavior_pattern}
ALGORITHMIC HOOK: {trend.algorithmic_hook}
COLLAPSE POINT: {trend.collapse_point}

Seed for this generation: {seed}

Create exactly {scene_count} scenes that escalate from believable behavior to the collapse point.

REQUIREMENTS:
1. Define globalContinuity first
2. Scene IDs must be scene_01, scene_02, scene_03, and so on
3. Absurdity levels must strictly increase from scene to scene
4. Start around level 2-3 and end at level 9-10
5. Each intent describes one specific VISUAL moment

Output ONLY the JSON object."""
