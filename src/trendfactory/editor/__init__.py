"""Video editing and assembly module."""

from .compositor import (
    VideoInfo,
    get_video_info,
    extract_last_frame,
    normalize_clip,
    stitch_clips,
    add_transitions,
    export,
    assemble_video,
    crop_to_aspect,
)

__all__ = [
    "VideoInfo",
    "get_video_info",
    "extract_last_frame",
    "normalize_clip",
    "stitch_clips",
    "add_transitions",
    "export",
    "assemble_video",
    "crop_to_aspect",
]
