"""Quality gate agent that scores a synthesized trend."""

from dataclasses import dataclass
from typing import Optional

from pydantic import ConfigDict, Field

from ..models import DEFAULT_QUALITY_THRESHOLD, PatternAnalysis, Trend, TrendQuality, TrendQualityAssessed
from ..models.base import CamelModel
from .base import ClaudeAgent


SYSTEM_PROMPT = """You are a quality reviewer for a satirical trend video pipeline.

You score an invented trend on three axes, each from 0 to 10:

- plausibilityScore: could a reader believe this trend is real?
- cloneabilityScore: could ordinary people copy the behavior from a short video?
- lifecycleCompletenessScore: does the trend have a clear promise, a spreading
  mechanism, and a collapse point that escalation can reach?

Be strict. A trend that is obviously a joke, depends on a specific platform or
celebrity, or has no visual behavior to film should score low.

Output ONLY a JSON object:
{
  "plausibilityScore": 0-10,
  "cloneabilityScore": 0-10,
  "lifecycleCompletenessScore": 0-10,
  "rejectionReason": "Why it would fail, or null if it is strong"
}"""


class QualityScores(CamelModel):
    """Raw scores as returned by the model."""

    model_config = ConfigDict(extra="ignore")

    plausibility_score: float = Field(..., ge=0, le=10)
    cloneability_score: float = Field(..., ge=0, le=10)
    lifecycle_completeness_score: float = Field(..., ge=0, le=10)
    rejection_reason: Optional[str] = None


@dataclass
class QualityAssessmentInput:
    """A candidate trend and the bar it must clear."""

    trend: Trend
    pattern_analysis: Optional[PatternAnalysis] = None
    threshold: float = DEFAULT_QUALITY_THRESHOLD


class QualityAssessorAgent(ClaudeAgent[QualityAssessmentInput, TrendQualityAssessed]):
    """Scores a trend; the overall score and pass/fail are derived locally."""

    @property
    def name(self) -> str:
        return "quality_assessor"

    @property
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT

    async def run(self, input_data: QualityAssessmentInput) -> TrendQualityAssessed:
        trend = input_data.trend
        self._logger.info(f'Assessing trend "{trend.name}"')

        data = await self._generate_json(
            self._build_prompt(input_data), max_tokens=1024, temperature=0.2
        )
        scores = self._validate(QualityScores, data)

        quality = TrendQuality.from_scores(
            scores.plausibility_score,
            scores.cloneability_score,
            scores.lifecycle_completeness_score,
            threshold=input_data.threshold,
            rejection_reason=scores.rejection_reason,
        )

        if quality.passes_threshold:
            self._logger.info(f"Trend passed quality gate ({quality.overall_score})")
        else:
            self._logger.info(
                f"Trend rejected ({quality.overall_score}): {quality.rejection_reason}"
            )
        return TrendQualityAssessed(trend_quality=quality)

    def _build_prompt(self, input_data: QualityAssessmentInput) -> str:
        trend = input_data.trend
        lines = [
            "Score this trend.",
            "",
            f"NAME: {trend.name}",
            f"PROMISE: {trend.promise}",
            f"BEHAVIOR PATTERN: {trend.behavior_pattern}",
            f"ALGORITHMIC HOOK: {trend.algorithmic_hook}",
            f"COLLAPSE POINT: {trend.collapse_point}",
        ]

        analysis = input_data.pattern_analysis
        if analysis:
            lines += [
                "",
                "RESEARCH NOTES:",
                f"- Formats: {'; '.join(analysis.format_patterns)}",
                f"- Behaviors: {'; '.join(analysis.behavior_patterns)}",
                f"- Incentives: {'; '.join(analysis.algorithmic_incentives)}",
                f"- Lifecycle: {'; '.join(analysis.lifecycle_mapping)}",
            ]

        lines += ["", "Output ONLY the JSON object."]
        return "\n".join(lines)
