"""CLI entry point for the trends factory pipeline."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .config import config
from .errors import StateValidationError
from .models import Stage
from .orchestrator import PipelineConfig, StateMachine, StateStore, get_pipeline_status

app = typer.Typer(
    name="trends-factory",
    help="Turn a fake trend into an escalating short video",
    no_args_is_help=True
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(name)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"trends-factory version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """Trends Factory - Synthesize a trend and escalate it into a video."""
    pass


@app.command()
def status(
    workspace: Optional[Path] = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Directory holding project.state.json (default: TF_WORKSPACE or .)"
    )
) -> None:
    """Show project status."""
    store = StateStore(workspace or config.workspace)
    if not store.exists():
        typer.echo(f"❌ No project found at {store.path}")
        typer.echo("   Run 'trends-factory run' to start a new project")
        raise typer.Exit(1)

    try:
        info = get_pipeline_status(store)
    except StateValidationError as e:
        typer.echo(f"❌ Error loading project: {e}")
        raise typer.Exit(1)

    typer.echo(f"📁 Project: {info.project_id}")
    typer.echo(f"   Run: {info.run_id}")
    typer.echo(f"   Seed: {info.seed}")
    typer.echo(f"   Stage: {info.stage.value}")
    typer.echo(f"   Trend: {info.trend_name or '-'}")
    typer.echo(f"   Scenes: {info.scene_count}")
    if info.quality_score is not None:
        typer.echo(f"   Quality score: {info.quality_score}")
    typer.echo(f"   Regenerations: {info.regeneration_count}")
    if info.error:
        typer.echo(f"⚠️  Last error: {info.error}")


@app.command()
def run(
    reset: bool = typer.Option(
        False,
        "--reset",
        help="Discard the current project and start a new one"
    ),
    from_stage: Optional[Stage] = typer.Option(
        None,
        "--from",
        "-f",
        help="Rewind to before this stage and regenerate from there",
        case_sensitive=False
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        "-s",
        help="Seed for a new project",
        min=0
    ),
    workspace: Optional[Path] = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Directory holding project.state.json (default: TF_WORKSPACE or .)"
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Directory for images, clips and the final video (default: TF_OUTPUT_DIR)"
    ),
    scenes: int = typer.Option(
        5,
        "--scenes",
        "-n",
        help="Number of scenes to plan",
        min=4,
        max=6
    ),
    max_attempts: int = typer.Option(
        3,
        "--max-attempts",
        help="Trend synthesis attempts before giving up",
        min=1
    ),
    transition: str = typer.Option(
        "none",
        "--transition",
        "-t",
        help="Transition between scenes: none, fade or dissolve"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Run the pipeline until the final video is assembled.

    Resumes the project in the workspace if one exists.
    """
    from .agents import build_default_agents
    from .agents.continuity_editor import TRANSITIONS

    setup_logging(verbose)

    if reset and from_stage is not None:
        typer.echo("❌ --reset and --from cannot be combined")
        raise typer.Exit(1)

    if transition not in TRANSITIONS:
        typer.echo(f"❌ Invalid transition: {transition}. Must be one of {', '.join(TRANSITIONS)}")
        raise typer.Exit(1)

    try:
        config.validate_required()
        config.validate_google_required()
    except ValueError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    pipeline_config = PipelineConfig(
        base_dir=workspace or config.workspace,
        output_dir=output or config.output_dir,
        seed=seed,
        max_trend_attempts=max_attempts,
        scene_count=scenes,
        transition=transition,
    )
    store = StateStore(pipeline_config.base_dir)

    if seed is not None and store.exists() and not reset:
        typer.echo("⚠️  Existing project found; --seed only applies with --reset")
    elif seed is not None and not store.exists():
        store.reset(seed=seed)

    try:
        machine = StateMachine(store, build_default_agents(), pipeline_config)
        typer.echo(f"🎬 Running pipeline in {store.path.parent}")

        if reset:
            state = asyncio.run(machine.reset_and_run(seed))
        elif from_stage is not None:
            typer.echo(f"   Rerunning from {from_stage.value}")
            state = asyncio.run(machine.run_from_stage(from_stage))
        else:
            state = asyncio.run(machine.run_pipeline())

    except Exception as e:
        typer.echo(f"❌ Pipeline failed: {e}")
        typer.echo("   Fix the problem and run again to resume")
        raise typer.Exit(1)

    final_path = Path(pipeline_config.output_dir) / "final" / f"{state.project_id}.mp4"
    typer.echo(f"\n✅ Pipeline complete: {state.project_id}")
    if state.trend:
        typer.echo(f"   Trend: {state.trend.name}")
    typer.echo(f"   Scenes: {len(state.scenes)}")
    typer.echo(f"   Video: {final_path}")


if __name__ == "__main__":
    app()
