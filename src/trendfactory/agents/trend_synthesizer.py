"""Trend synthesizer agent that invents a believable fake trend."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import AgentOutputError
from ..models import TrendSynthesized
from .base import ClaudeAgent


SYSTEM_PROMPT = """You are a trend synthesizer for a satirical video production pipeline.

Your task is to generate FAKE but BELIEVABLE cultural, social, or lifestyle trends. A trend should:

1. Sound plausible enough that someone might think it is real
2. Have an internal logic that makes sense initially
3. Contain a subtle absurdity that becomes apparent upon reflection
4. Reference real behavioral patterns without being tied to a specific platform or fandom

Before inventing the trend, briefly analyze how real trends work: the formats they take,
the behaviors participants repeat, what distribution algorithms reward, and how trends
move from emergence to collapse. Base the trend on that analysis.

RULES:
- NO JOKES. The humor comes from escalation, not from being funny.
- NO EXAGGERATION. It should read like a newspaper trend piece.
- NO POP CULTURE REFERENCES.
- Be specific. Use precise language and concrete examples.

Output ONLY a JSON object with exactly this structure:
{
  "patternAnalysis": {
    "formatPatterns": ["..."],
    "behaviorPatterns": ["..."],
    "algorithmicIncentives": ["..."],
    "lifecycleMapping": ["emergence: ...", "peak: ...", "collapse: ..."]
  },
  "trend": {
    "name": "Short trend name (2-4 words)",
    "promise": "What the trend claims to deliver (1-2 sentences)",
    "behaviorPattern": "The specific actions adherents take (2-3 sentences)",
    "algorithmicHook": "Why the format spreads (1-2 sentences)",
    "collapsePoint": "Where the trend's logic breaks down (1-2 sentences)"
  }
}"""


@dataclass
class TrendSynthesisInput:
    """Input for one synthesis attempt."""

    seed: int
    attempt: int = 0
    theme: Optional[str] = None
    avoid: List[str] = field(default_factory=list)


class TrendSynthesizerAgent(ClaudeAgent[TrendSynthesisInput, TrendSynthesized]):
    """Generates a trend and the pattern analysis behind it."""

    @property
    def name(self) -> str:
        return "trend_synthesizer"

    @property
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT

    async def run(self, input_data: TrendSynthesisInput) -> TrendSynthesized:
        self._logger.info(
            f"Synthesizing trend (attempt {input_data.attempt + 1}, seed {input_data.seed})"
        )

        data = await self._generate_json(
            self._build_prompt(input_data),
            max_tokens=2048,
            temperature=0.8 + (input_data.seed % 100) / 1000,
        )
        if not isinstance(data, dict):
            raise AgentOutputError(f"{self.name} expected a JSON object", payload=data)

        delta = self._validate(TrendSynthesized, {**data, "kind": "TREND_SYNTHESIZED"})
        self._logger.info(f'Generated trend: "{delta.trend.name}"')
        self._logger.debug(f"Promise: {delta.trend.promise}")
        return delta

    def _build_prompt(self, input_data: TrendSynthesisInput) -> str:
        prompt = "Generate a new satirical but believable cultural trend."

        if input_data.theme:
            prompt += f"\n\nTheme hint: {input_data.theme}"

        if input_data.avoid:
            prompt += (
                "\n\nThese trends were already rejected; produce something clearly different: "
                + ", ".join(input_data.avoid)
            )

        prompt += f"\n\nSeed for this generation: {input_data.seed}"
        prompt += "\n\nGenerate one trend now. Output ONLY the JSON object, nothing else."
        return prompt
