"""Continuity checks across scenes.

Two read-only checks, neither of which ever stops the pipeline:

- :func:`find_contradictions` compares a scene's constraints with the global
  ones using antonym keyword pairs.
- :func:`analyze_continuity` looks at adjacent scenes for absurdity jumps and
  location or lighting changes in their visual prompts.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .models import ContinuityConstraints, Scene

logger = logging.getLogger(__name__)

CONTRADICTORY_PAIRS = [
    ("warm", "cold"),
    ("bright", "dark"),
    ("indoor", "outdoor"),
    ("natural", "artificial"),
    ("soft", "harsh"),
]

# Constraint fields the antonym lint looks at.
CHECKED_FIELDS = ["lighting", "color_palette", "environment_type"]

LOCATION_WORDS = ["room", "office", "kitchen", "street", "park", "home"]
LIGHTING_WORDS = ["morning", "evening", "night", "dark", "bright", "sunlight"]

MAX_ABSURDITY_JUMP = 3


@dataclass
class Contradiction:
    """A scene constraint that uses the antonym of a global keyword."""

    scene_id: str
    field_name: str
    global_value: str
    scene_value: str
    words: tuple

    def __str__(self) -> str:
        return (
            f"Potential constraint contradiction in {self.scene_id}.{self.field_name} "
            f"({self.words[0]}/{self.words[1]}): "
            f'global="{self.global_value}" vs scene="{self.scene_value}"'
        )


@dataclass
class ContinuityAnalysis:
    """Issues found between one scene and the next."""

    scene_id: str
    next_scene_id: str
    issues: List[str] = field(default_factory=list)

    @property
    def severity(self) -> str:
        if len(self.issues) >= 3:
            return "high"
        if self.issues:
            return "medium"
        return "low"


def find_contradictions(
    scene_id: str,
    scene: ContinuityConstraints,
    global_constraints: ContinuityConstraints,
) -> List[Contradiction]:
    """Compare scene constraints against global ones with antonym pairs.

    A field is flagged when the global value contains one word of a pair and
    the scene value contains the other. Matching is case-insensitive substring
    matching.
    """
    found: List[Contradiction] = []
    for name in CHECKED_FIELDS:
        global_value = getattr(global_constraints, name).lower()
        scene_value = getattr(scene, name).lower()
        for first, second in CONTRADICTORY_PAIRS:
            if (first in global_value and second in scene_value) or (
                second in global_value and first in scene_value
            ):
                found.append(
                    Contradiction(scene_id, name, global_value, scene_value, (first, second))
                )
    return found


def warn_on_contradictions(
    scene_id: str,
    scene: ContinuityConstraints,
    global_constraints: ContinuityConstraints,
) -> List[Contradiction]:
    """Log every contradiction as a warning and return them."""
    contradictions = find_contradictions(scene_id, scene, global_constraints)
    for contradiction in contradictions:
        logger.warning(f"WARNING: {contradiction}")
    return contradictions


def _first_keyword(text: str, words: Sequence[str]) -> Optional[str]:
    lowered = text.lower()
    return next((word for word in words if word in lowered), None)


def analyze_continuity(scenes: Sequence[Scene]) -> List[ContinuityAnalysis]:
    """Report continuity issues between each pair of adjacent scenes.

    Medium and high severity results are logged as warnings.
    """
    logger.info(f"Analyzing continuity across {len(scenes)} scenes...")
    analyses: List[ContinuityAnalysis] = []

    for current, upcoming in zip(scenes, scenes[1:]):
        analysis = ContinuityAnalysis(current.scene_id, upcoming.scene_id)

        jump = upcoming.absurdity_level - current.absurdity_level
        if jump > MAX_ABSURDITY_JUMP:
            analysis.issues.append(
                f"Large absurdity jump ({jump} levels) may cause visual discontinuity"
            )

        if current.visual_prompt and upcoming.visual_prompt:
            for label, words in (("Location", LOCATION_WORDS), ("Lighting", LIGHTING_WORDS)):
                before = _first_keyword(current.visual_prompt, words)
                after = _first_keyword(upcoming.visual_prompt, words)
                if before and after and before != after:
                    analysis.issues.append(f"{label} change detected: {before} -> {after}")

        analyses.append(analysis)

    for analysis in analyses:
        if analysis.severity != "low":
            logger.warning(
                f"{analysis.severity.upper()} continuity issues between "
                f"{analysis.scene_id} and {analysis.next_scene_id}:"
            )
            for issue in analysis.issues:
                logger.warning(f"  - {issue}")

    return analyses
