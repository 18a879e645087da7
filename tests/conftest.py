"""Shared fixtures."""

from pathlib import Path

import pytest

from helpers import make_agents
from trendfactory.orchestrator import PipelineConfig, StateMachine, StateStore


@pytest.fixture
def store(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path)


@pytest.fixture
def pipeline_config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(base_dir=tmp_path, output_dir=tmp_path / "output", seed=42)


@pytest.fixture
def agents():
    return make_agents()


@pytest.fixture
def machine(store, agents, pipeline_config) -> StateMachine:
    return StateMachine(store, agents, pipeline_config)
