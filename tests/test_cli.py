import pytest
from typer.testing import CliRunner

import trendfactory.agents
from helpers import StubQualityAssessor, make_agents
from trendfactory import __version__
from trendfactory.cli import app
from trendfactory.config import config
from trendfactory.models import ProjectState, Stage
from trendfactory.orchestrator import StateStore

runner = CliRunner()


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(config, "anthropic_api_key", "test-key")
    monkeypatch.setattr(config, "google_cloud_project", "test-project")
    monkeypatch.setattr(config, "veo_output_bucket", "gs://test-bucket")


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_status_without_project(tmp_path):
    result = runner.invoke(app, ["status", "--workspace", str(tmp_path)])
    assert result.exit_code == 1
    assert "No project found" in result.output


def test_status_reports_state(tmp_path):
    StateStore(tmp_path).save(
        ProjectState.initial(seed=42).model_copy(
            update={"stage": Stage.SCRIPTED, "regeneration_count": 2, "error": "planner unavailable"}
        )
    )

    result = runner.invoke(app, ["status", "--workspace", str(tmp_path)])

    assert result.exit_code == 0
    assert "Stage: SCRIPTED" in result.output
    assert "Seed: 42" in result.output
    assert "Regenerations: 2" in result.output
    assert "Last error: planner unavailable" in result.output


def test_status_with_corrupt_file(tmp_path):
    (tmp_path / "project.state.json").write_text("{broken")
    result = runner.invoke(app, ["status", "--workspace", str(tmp_path)])
    assert result.exit_code == 1
    assert "Error loading project" in result.output


def test_status_with_undecodable_file(tmp_path):
    (tmp_path / "project.state.json").write_bytes(b"\xff\xfe\x00")
    result = runner.invoke(app, ["status", "--workspace", str(tmp_path)])
    assert result.exit_code == 1
    assert "Error loading project" in result.output


def test_run_requires_api_key(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "anthropic_api_key", "")
    result = runner.invoke(app, ["run", "--workspace", str(tmp_path)])
    assert result.exit_code == 1
    assert "ANTHROPIC_API_KEY" in result.output


def test_run_rejects_unknown_transition(tmp_path, configured):
    result = runner.invoke(app, ["run", "--workspace", str(tmp_path), "--transition", "wipe"])
    assert result.exit_code == 1
    assert "Invalid transition" in result.output


def test_run_completes_with_stub_agents(tmp_path, configured, monkeypatch):
    monkeypatch.setattr(trendfactory.agents, "build_default_agents", lambda: make_agents())

    result = runner.invoke(
        app,
        ["run", "--workspace", str(tmp_path), "--output", str(tmp_path / "out"), "--seed", "42"],
    )

    assert result.exit_code == 0, result.output
    assert "Pipeline complete" in result.output
    state = StateStore(tmp_path).load()
    assert state.stage == Stage.ASSEMBLED
    assert state.seed == 42


def test_run_failure_exits_1_and_keeps_error(tmp_path, configured, monkeypatch):
    monkeypatch.setattr(
        trendfactory.agents,
        "build_default_agents",
        lambda: make_agents(quality_assessor=StubQualityAssessor([False] * 5)),
    )

    result = runner.invoke(app, ["run", "--workspace", str(tmp_path), "--output", str(tmp_path / "out")])

    assert result.exit_code == 1
    assert "Pipeline failed" in result.output
    assert "quality gate" in StateStore(tmp_path).load().error
