"""External service integrations."""

from .anthropic import AnthropicClient, extract_json
from .imagen import ImagenClient, ImageResult
from .veo import VeoClient, GenerationStatus, GenerationResult

__all__ = [
    "AnthropicClient",
    "extract_json",
    "ImagenClient",
    "ImageResult",
    "VeoClient",
    "GenerationStatus",
    "GenerationResult",
]
