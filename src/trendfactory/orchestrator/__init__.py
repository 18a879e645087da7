"""State store, delta protocol and stage state machine."""

from .deltas import apply_delta
from .state_machine import (
    PipelineConfig,
    PipelineStatus,
    StateMachine,
    can_transition,
    derive_attempt_seed,
    get_pipeline_status,
    transition_stage,
)
from .store import STATE_FILE, StateStore

__all__ = [
    "apply_delta",
    "PipelineConfig",
    "PipelineStatus",
    "StateMachine",
    "can_transition",
    "derive_attempt_seed",
    "get_pipeline_status",
    "transition_stage",
    "STATE_FILE",
    "StateStore",
]
