"""Continuity editor: continuity frames and final assembly."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..editor import VideoInfo, assemble_video, extract_last_frame, get_video_info
from ..models import Scene
from .base import BaseAgent

TRANSITIONS = ("none", "fade", "dissolve")


@dataclass
class AssemblyInput:
    """Clips to join and how to join them."""

    project_id: str
    scenes: List[Scene]
    output_dir: Path
    transition: str = "none"
    transition_duration: float = 0.5
    normalize: bool = True


@dataclass
class AssemblyResult:
    final_video_path: Path
    scene_count: int
    info: Optional[VideoInfo] = None


class ContinuityEditor(BaseAgent[AssemblyInput, AssemblyResult]):
    """Extracts continuity frames and assembles the final cut."""

    @property
    def name(self) -> str:
        return "continuity_editor"

    async def extract_continuity_frame(
        self, scene_id: str, clip_path: str, output_dir: Path
    ) -> str:
        """Save the last frame of a scene clip and return its path."""
        frame_path = Path(output_dir) / "frames" / f"{scene_id}_last.png"
        await asyncio.to_thread(extract_last_frame, Path(clip_path), frame_path)
        self._logger.info(f"Extracted continuity frame for {scene_id}: {frame_path}")
        return str(frame_path)

    async def run(self, input_data: AssemblyInput) -> AssemblyResult:
        if input_data.transition not in TRANSITIONS:
            raise ValueError(
                f"Unknown transition {input_data.transition!r}; expected one of {', '.join(TRANSITIONS)}"
            )

        clip_paths = [Path(scene.video_clip_path) for scene in input_data.scenes if scene.video_clip_path]
        output_path = Path(input_data.output_dir) / "final" / f"{input_data.project_id}.mp4"
        transition_duration = (
            input_data.transition_duration if input_data.transition != "none" else 0.0
        )

        self._logger.info(
            f"Assembling {len(clip_paths)} clips (transition: {input_data.transition})..."
        )
        await asyncio.to_thread(
            assemble_video,
            clip_paths,
            output_path,
            transition_duration=transition_duration,
            normalize=input_data.normalize,
        )

        info = await asyncio.to_thread(get_video_info, output_path)
        self._logger.info(
            f"Final video: {output_path} ({info.duration:.1f}s, {info.width}x{info.height})"
        )
        return AssemblyResult(final_video_path=output_path, scene_count=len(clip_paths), info=info)
