"""Visual locker agent: locked visual prompt and concept image per scene."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic import ConfigDict, Field

from ..models import ContinuityConstraints, Scene, SceneVisualized, Trend
from ..models.base import CamelModel
from ..services.anthropic import AnthropicClient
from ..services.imagen import ImagenClient
from .base import ClaudeAgent

MIN_VISUAL_PROMPT_LENGTH = 50

SYSTEM_PROMPT = """You are a visual prompt engineer for a video production pipeline.

Your task is to convert a scene intent into a precise, cinematic visual prompt.

You will be given GLOBAL CONTINUITY CONSTRAINTS. Incorporate them VERBATIM into
the visual prompt. No interpretation, no creativity, just execution.

VISUAL PROMPT STRUCTURE:
1. SHOT TYPE: as requested for the scene
2. SUBJECT: who or what is in frame, exact pose and action
3. SETTING: matches the environment type
4. LIGHTING: matches the lighting constraint exactly
5. CAMERA: matches the camera axis exactly
6. MOTION: matches the motion energy
7. COLOR: matches the color palette exactly

Also output scene-specific continuity constraints. They must be consistent
with the global constraints but specific to this scene.

Output ONLY a JSON object:
{
  "visualPrompt": "Detailed visual prompt (80-120 words)",
  "sceneConstraints": {
    "lighting": "...",
    "cameraAxis": "...",
    "motionEnergy": "...",
    "colorPalette": "...",
    "environmentType": "..."
  }
}"""


class VisualPromptOutput(CamelModel):
    """Raw visual locker output as returned by the model."""

    model_config = ConfigDict(extra="ignore")

    visual_prompt: str = Field(..., min_length=MIN_VISUAL_PROMPT_LENGTH)
    scene_constraints: ContinuityConstraints


@dataclass
class VisualLockInput:
    """Everything the locker needs for one scene."""

    trend: Trend
    scene: Scene
    all_scenes: List[Scene]
    global_continuity: ContinuityConstraints
    seed: int
    output_dir: Path
    aspect_ratio: str = "16:9"


def shot_type_for(absurdity_level: int) -> str:
    """Pick the shot type for an absurdity level."""
    if absurdity_level <= 3:
        return "Wide shot (establishing)"
    if absurdity_level <= 6:
        return "Medium shot (building)"
    return "Close-up or medium close-up (intensity)"


def continuity_lines(constraints: ContinuityConstraints) -> List[str]:
    return [
        f"Lighting: {constraints.lighting}",
        f"Camera: {constraints.camera_axis}",
        f"Motion: {constraints.motion_energy}",
        f"Color palette: {constraints.color_palette}",
        f"Environment: {constraints.environment_type}",
    ]


def echo_global_continuity(visual_prompt: str, constraints: ContinuityConstraints) -> str:
    """Append any global constraint the prompt does not already contain verbatim."""
    lowered = visual_prompt.lower()
    values = [
        constraints.lighting,
        constraints.camera_axis,
        constraints.motion_energy,
        constraints.color_palette,
        constraints.environment_type,
    ]
    missing = [
        line
        for line, value in zip(continuity_lines(constraints), values)
        if value.lower() not in lowered
    ]
    if not missing:
        return visual_prompt
    return f"{visual_prompt.rstrip()} " + ". ".join(missing) + "."


def build_image_prompt(visual_prompt: str, constraints: ContinuityConstraints) -> str:
    return (
        f"Cinematic still frame. {visual_prompt}\n\n"
        "TECHNICAL REQUIREMENTS:\n"
        f"- Lighting: {constraints.lighting}\n"
        f"- Camera: {constraints.camera_axis}\n"
        f"- Color grading: {constraints.color_palette}\n"
        f"- Environment: {constraints.environment_type}\n\n"
        "High quality, photorealistic, professional cinematography, documentary style."
    )


class VisualLockerAgent(ClaudeAgent[VisualLockInput, SceneVisualized]):
    """Locks the visual prompt and renders a concept image for one scene."""

    def __init__(
        self,
        client: Optional[AnthropicClient] = None,
        model: Optional[str] = None,
        image_client: Optional[ImagenClient] = None,
    ) -> None:
        super().__init__(client=client, model=model)
        self._image_client = image_client or ImagenClient()

    @property
    def name(self) -> str:
        return "visual_locker"

    @property
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT

    async def run(self, input_data: VisualLockInput) -> SceneVisualized:
        scene = input_data.scene
        self._logger.info(f"Locking visuals for {scene.scene_id} (seed: {input_data.seed})...")

        data = await self._generate_json(
            self._build_prompt(input_data),
            max_tokens=1024,
            temperature=0.4 + (input_data.seed % 100) / 1000,
        )
        output = self._validate(VisualPromptOutput, data)
        visual_prompt = echo_global_continuity(output.visual_prompt, input_data.global_continuity)

        image_path = Path(input_data.output_dir) / "scenes" / f"{scene.scene_id}_concept.png"
        self._logger.info(f"Generating concept image for {scene.scene_id}...")
        result = await asyncio.to_thread(
            self._image_client.generate_image,
            build_image_prompt(visual_prompt, input_data.global_continuity),
            image_path,
            aspect_ratio=input_data.aspect_ratio,
            seed=input_data.seed,
        )

        self._logger.info(f"Locked {scene.scene_id}: {visual_prompt[:60]}...")
        return SceneVisualized(
            scene_id=scene.scene_id,
            visual_prompt=visual_prompt,
            continuity_constraints=output.scene_constraints,
            concept_image_path=str(result.local_path),
        )

    def _build_prompt(self, input_data: VisualLockInput) -> str:
        scene = input_data.scene
        scenes = input_data.all_scenes
        index = next(
            (i for i, s in enumerate(scenes) if s.scene_id == scene.scene_id), 0
        )
        previous = (
            f"PREVIOUS SCENE: {scenes[index - 1].intent}" if index > 0 else "FIRST SCENE"
        )
        upcoming = (
            f"NEXT SCENE: {scenes[index + 1].intent}"
            if index < len(scenes) - 1
            else "FINAL SCENE"
        )
        constraints = input_data.global_continuity

        return f"""Generate a visual prompt for this scene.

TREND CONTEXT:
- Name: {input_data.trend.name}
- Promise: {input_data.trend.promise}

SCENE DETAILS:
- Scene {index + 1} of {len(scenes)}
- Scene ID: {scene.scene_id}
- Intent: {scene.intent}
- Absurdity level: {scene.absurdity_level}/10
- Shot type: {shot_type_for(scene.absurdity_level)}

===== GLOBAL CONTINUITY CONSTRAINTS (MUST MATCH EXACTLY) =====
LIGHTING: {constraints.lighting}
CAMERA AXIS: {constraints.camera_axis}
MOTION ENERGY: {constraints.motion_energy}
COLOR PALETTE: {constraints.color_palette}
ENVIRONMENT TYPE: {constraints.environment_type}
===============================================================

{previous}
{upcoming}

Seed: {input_data.seed}

REQUIREMENTS:
1. The visualPrompt MUST include every global constraint verbatim
2. The sceneConstraints MUST be consistent with the global constraints

Output ONLY the JSON object."""
