"""Video generator agent that renders one clip per scene with Veo."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..errors import ExternalServiceError
from ..models import Scene, SceneVideoGenerated, Trend
from ..services.veo import GenerationStatus, VeoClient
from .base import BaseAgent


@dataclass
class VideoGenerationInput:
    """One scene's clip request.

    ``input_image`` is the image the clip starts from, if any; ``chained`` is
    set when that image is the previous scene's continuity frame.
    """

    trend: Trend
    scene: Scene
    output_dir: Path
    input_image: Optional[str] = None
    chained: bool = False
    clip_duration: float = 6.0
    aspect_ratio: str = "16:9"
    seed: Optional[int] = None


def build_video_prompt(scene: Scene, chained: bool) -> str:
    """Compose the Veo prompt from the locked visual prompt and motion guidance."""
    parts = [scene.visual_prompt or scene.intent]

    if scene.absurdity_level <= 3:
        parts.append("Steady camera. Documentary style. Natural movement. Calm pacing.")
    elif scene.absurdity_level <= 6:
        parts.append("Subtle camera drift. Heightened attention to detail. Deliberate movement.")
    else:
        parts.append(
            "Slow, purposeful camera movement. Slightly surreal atmosphere. Tension in stillness."
        )

    if chained:
        parts.append(
            "Maintain visual continuity with the previous frame. "
            "Same lighting conditions. Same visual style."
        )

    parts.append("High quality. Cinematic. Professional cinematography.")
    return " ".join(parts)


class VideoGeneratorAgent(BaseAgent[VideoGenerationInput, SceneVideoGenerated]):
    """Generates a scene clip, optionally starting from an input image."""

    def __init__(self, client: Optional[VeoClient] = None) -> None:
        super().__init__()
        self._client = client or VeoClient()

    @property
    def name(self) -> str:
        return "video_generator"

    async def run(self, input_data: VideoGenerationInput) -> SceneVideoGenerated:
        scene = input_data.scene
        output_path = Path(input_data.output_dir) / "scenes" / f"{scene.scene_id}_clip.mp4"
        image_path = Path(input_data.input_image) if input_data.input_image else None

        self._logger.info(
            f"Generating video for {scene.scene_id}"
            + (f" from {image_path}" if image_path else " from text only")
        )

        result = await asyncio.to_thread(
            self._client.generate_clip,
            build_video_prompt(scene, input_data.chained),
            output_path,
            duration=input_data.clip_duration,
            aspect_ratio=input_data.aspect_ratio,
            scene_id=scene.scene_id,
            image_path=image_path,
            seed=input_data.seed,
        )

        if result.status != GenerationStatus.COMPLETED or result.local_path is None:
            self._logger.error(f"Video generation failed for {scene.scene_id}: {result.error_message}")
            raise ExternalServiceError(
                f"Video generation failed for {scene.scene_id}: {result.error_message}"
            )

        self._logger.info(f"Generated {result.local_path}")
        return SceneVideoGenerated(scene_id=scene.scene_id, video_clip_path=str(result.local_path))
