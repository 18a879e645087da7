"""Production agents that turn plain inputs into state deltas."""

from dataclasses import dataclass
from typing import Optional

from ..services.anthropic import AnthropicClient
from .base import BaseAgent, ClaudeAgent
from .continuity_editor import AssemblyInput, AssemblyResult, ContinuityEditor
from .escalation_planner import EscalationInput, EscalationPlannerAgent
from .quality_assessor import QualityAssessmentInput, QualityAssessorAgent
from .trend_synthesizer import TrendSynthesisInput, TrendSynthesizerAgent
from .video_generator import VideoGenerationInput, VideoGeneratorAgent
from .visual_locker import VisualLockInput, VisualLockerAgent


@dataclass
class PipelineAgents:
    """The set of agents the state machine drives."""

    trend_synthesizer: BaseAgent
    quality_assessor: BaseAgent
    escalation_planner: BaseAgent
    visual_locker: BaseAgent
    video_generator: BaseAgent
    continuity_editor: ContinuityEditor


def build_default_agents(model: Optional[str] = None) -> PipelineAgents:
    """Create the production agents backed by Claude, Imagen, Veo and moviepy.

    One Claude client is shared by the text agents.
    """
    client = AnthropicClient(model=model)
    return PipelineAgents(
        trend_synthesizer=TrendSynthesizerAgent(client=client, model=client.model),
        quality_assessor=QualityAssessorAgent(client=client, model=client.model),
        escalation_planner=EscalationPlannerAgent(client=client, model=client.model),
        visual_locker=VisualLockerAgent(client=client, model=client.model),
        video_generator=VideoGeneratorAgent(),
        continuity_editor=ContinuityEditor(),
    )


__all__ = [
    "BaseAgent",
    "ClaudeAgent",
    "PipelineAgents",
    "build_default_agents",
    "TrendSynthesizerAgent",
    "TrendSynthesisInput",
    "QualityAssessorAgent",
    "QualityAssessmentInput",
    "EscalationPlannerAgent",
    "EscalationInput",
    "VisualLockerAgent",
    "VisualLockInput",
    "VideoGeneratorAgent",
    "VideoGenerationInput",
    "ContinuityEditor",
    "AssemblyInput",
    "AssemblyResult",
]
