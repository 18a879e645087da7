"""Trend, pattern analysis and quality-gate models."""

from typing import List, Optional

from pydantic import Field

from .base import CamelModel

# Overall score a trend needs to pass the quality gate.
DEFAULT_QUALITY_THRESHOLD = 7.0


class PatternAnalysis(CamelModel):
    """Research notes that back a synthesized trend."""

    format_patterns: List[str] = Field(..., min_length=1, description="Recurring content formats")
    behavior_patterns: List[str] = Field(..., min_length=1, description="Observed participant behaviors")
    algorithmic_incentives: List[str] = Field(..., min_length=1, description="What distribution rewards")
    lifecycle_mapping: List[str] = Field(..., min_length=1, description="Emergence to collapse phases")


class Trend(CamelModel):
    """A short structured trend idea."""

    name: str = Field(..., min_length=1, strict=True, description="Short trend name")
    promise: str = Field(..., min_length=1, strict=True, description="What the trend claims to deliver")
    behavior_pattern: str = Field(..., min_length=1, strict=True, description="What adherents actually do")
    algorithmic_hook: str = Field(..., min_length=1, strict=True, description="Why it spreads")
    collapse_point: str = Field(..., min_length=1, strict=True, description="Where its logic breaks down")


class TrendQuality(CamelModel):
    """Result of one quality-gate assessment."""

    plausibility_score: float = Field(..., ge=0, le=10, strict=True)
    cloneability_score: float = Field(..., ge=0, le=10, strict=True)
    lifecycle_completeness_score: float = Field(..., ge=0, le=10, strict=True)
    overall_score: float = Field(..., ge=0, le=10, strict=True)
    passes_threshold: bool = Field(..., strict=True)
    rejection_reason: Optional[str] = None

    @classmethod
    def from_scores(
        cls,
        plausibility: float,
        cloneability: float,
        lifecycle_completeness: float,
        threshold: float = DEFAULT_QUALITY_THRESHOLD,
        rejection_reason: Optional[str] = None,
    ) -> "TrendQuality":
        """Derive the overall score and pass/fail from the three sub-scores.

        The overall score is the rounded mean. A failing assessment always
        carries a reason; one is synthesized if the assessor gave none.
        """
        overall = round((plausibility + cloneability + lifecycle_completeness) / 3, 2)
        passes = overall >= threshold
        if passes:
            rejection_reason = None
        elif not rejection_reason:
            rejection_reason = f"Overall score {overall} below threshold {threshold}"
        return cls(
            plausibility_score=float(plausibility),
            cloneability_score=float(cloneability),
            lifecycle_completeness_score=float(lifecycle_completeness),
            overall_score=overall,
            passes_threshold=passes,
            rejection_reason=rejection_reason,
        )
