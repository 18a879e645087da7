"""Video compositor for normalizing, stitching and inspecting clips."""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from moviepy import VideoClip, VideoFileClip, concatenate_videoclips
from moviepy.video.fx import CrossFadeIn
from moviepy.video.io.ffmpeg_reader import ffmpeg_parse_infos

logger = logging.getLogger(__name__)

TARGET_WIDTH = 1920
TARGET_HEIGHT = 1080
TARGET_FPS = 30

# Seconds before the end of a clip to grab the continuity frame from;
# the very last timestamp often decodes to nothing.
LAST_FRAME_OFFSET = 0.05


@dataclass
class VideoInfo:
    """Basic stream information for a video file."""

    duration: float
    width: int
    height: int
    fps: float
    codec: str


def get_video_info(video_path: Path) -> VideoInfo:
    """Read duration, resolution, frame rate and codec of a video file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    if not video_path.exists():
        raise FileNotFoundError(f"Video not found: {video_path}")

    infos = ffmpeg_parse_infos(str(video_path))
    width, height = infos.get("video_size") or (0, 0)
    return VideoInfo(
        duration=float(infos.get("duration") or 0.0),
        width=int(width),
        height=int(height),
        fps=float(infos.get("video_fps") or 0.0),
        codec=str(infos.get("video_codec_name") or "unknown"),
    )


def extract_last_frame(video_path: Path, output_path: Path) -> Path:
    """Save the final frame of a video as an image.

    Args:
        video_path: Source video.
        output_path: Image path; the format follows the extension.

    Returns:
        Path to the saved frame.

    Raises:
        FileNotFoundError: If the video doesn't exist.
    """
    if not video_path.exists():
        raise FileNotFoundError(f"Video not found: {video_path}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with VideoFileClip(str(video_path)) as clip:
        timestamp = max(0.0, clip.duration - LAST_FRAME_OFFSET)
        clip.save_frame(str(output_path), t=timestamp)

    logger.debug(f"Extracted last frame of {video_path} to {output_path}")
    return output_path


def normalize_clip(
    clip: VideoClip,
    width: int = TARGET_WIDTH,
    height: int = TARGET_HEIGHT,
    fps: int = TARGET_FPS,
) -> VideoClip:
    """Crop a clip to the target aspect, then scale and retime it.

    Args:
        clip: Video clip to normalize.
        width: Target width in pixels.
        height: Target height in pixels.
        fps: Target frame rate.

    Returns:
        Normalized video clip.
    """
    clip = crop_to_aspect(clip, f"{width}:{height}")
    if (clip.w, clip.h) != (width, height):
        clip = clip.resized((width, height))
    return clip.with_fps(fps)


def stitch_clips(
    clip_paths: List[Path],
    transition_duration: float = 0.0,
    normalize: bool = True,
) -> VideoClip:
    """Concatenate video clips into a single video.

    Args:
        clip_paths: List of paths to video clip files.
        transition_duration: Duration of crossfade transitions in seconds.
            If 0, clips are concatenated back to back.
        normalize: Bring every clip to 1920x1080 at 30fps first.

    Returns:
        Concatenated video clip.

    Raises:
        FileNotFoundError: If a clip file doesn't exist.
        ValueError: If clip_paths is empty.
    """
    if not clip_paths:
        raise ValueError("No clips provided")

    clips: List[VideoClip] = []
    for clip_path in clip_paths:
        if not clip_path.exists():
            raise FileNotFoundError(f"Clip not found: {clip_path}")
        clip = VideoFileClip(str(clip_path))
        clips.append(normalize_clip(clip) if normalize else clip)

    if len(clips) == 1:
        return clips[0]

    if transition_duration > 0:
        clips = add_transitions(clips, transition_duration)
        # Negative padding overlaps each clip with the tail of the previous one
        return concatenate_videoclips(clips, method="compose", padding=-transition_duration)

    return concatenate_videoclips(clips, method="compose")


def add_transitions(
    clips: List[VideoClip],
    duration: float = 0.5
) -> List[VideoClip]:
    """Fade each clip after the first in over the previous one.

    Args:
        clips: List of video clips.
        duration: Duration of each crossfade in seconds.

    Returns:
        List of clips with fade effects applied.
    """
    if len(clips) < 2:
        return clips

    result: List[VideoClip] = [clips[0]]
    for clip in clips[1:]:
        fade = min(duration, clip.duration / 2)
        result.append(clip.with_effects([CrossFadeIn(fade)]))

    return result


def export(
    video: VideoClip,
    output_path: Path,
    fps: int = TARGET_FPS,
    codec: str = "libx264",
    audio_codec: str = "aac",
    bitrate: Optional[str] = None,
    preset: str = "medium"
) -> Path:
    """Export video to file with proper encoding.

    Args:
        video: Video clip to export.
        output_path: Path for output file.
        fps: Frames per second (default 30).
        codec: Video codec (default libx264).
        audio_codec: Audio codec (default aac).
        bitrate: Video bitrate (e.g., "5000k"). None for auto.
        preset: Encoding preset (ultrafast, fast, medium, slow, slower).

    Returns:
        Path to the exported video file.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    export_params = {
        "fps": fps,
        "codec": codec,
        "audio_codec": audio_codec,
        "preset": preset,
        "logger": None,
    }

    if bitrate:
        export_params["bitrate"] = bitrate

    video.write_videofile(str(output_path), **export_params)

    return output_path


def assemble_video(
    clip_paths: List[Path],
    output_path: Path,
    transition_duration: float = 0.0,
    normalize: bool = True,
) -> Path:
    """Stitch clips into one exported file.

    A single clip is copied unchanged.

    Returns:
        Path to the assembled video.
    """
    if not clip_paths:
        raise ValueError("No clips provided")

    output_path.parent.mkdir(parents=True, exist_ok=True)

    if len(clip_paths) == 1:
        if not clip_paths[0].exists():
            raise FileNotFoundError(f"Clip not found: {clip_paths[0]}")
        shutil.copyfile(clip_paths[0], output_path)
        return output_path

    video = stitch_clips(clip_paths, transition_duration, normalize=normalize)
    try:
        export(video, output_path)
    finally:
        video.close()

    logger.info(f"Assembled {len(clip_paths)} clips into {output_path}")
    return output_path


def crop_to_aspect(
    clip: VideoClip,
    aspect_ratio: str = "16:9"
) -> VideoClip:
    """Crop a video clip to a specific aspect ratio.

    Args:
        clip: Video clip to crop.
        aspect_ratio: Target aspect ratio (e.g., "16:9", "9:16").

    Returns:
        Cropped video clip.
    """
    parts = aspect_ratio.split(":")
    target_w = int(parts[0])
    target_h = int(parts[1])
    target_ratio = target_w / target_h

    current_w = clip.w
    current_h = clip.h
    current_ratio = current_w / current_h

    if abs(current_ratio - target_ratio) < 0.01:
        return clip

    if current_ratio > target_ratio:
        # Too wide - crop horizontally
        new_w = int(current_h * target_ratio)
        x1 = current_w // 2 - new_w // 2
        return clip.cropped(x1=x1, x2=x1 + new_w)
    else:
        # Too tall - crop vertically
        new_h = int(current_w / target_ratio)
        y1 = current_h // 2 - new_h // 2
        return clip.cropped(y1=y1, y2=y1 + new_h)
