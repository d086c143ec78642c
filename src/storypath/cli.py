"""StoryPath CLI - typer application entry point."""

from __future__ import annotations

import atexit
from pathlib import Path
from typing import TYPE_CHECKING, Annotated
from uuid import uuid4

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from storypath.observability import (
    close_file_logging,
    configure_logging,
    get_logger,
    session_context,
)

if TYPE_CHECKING:
    from storypath.config import EngineSettings
    from storypath.content.loader import Story
    from storypath.engine.navigation import NavigationEngine
    from storypath.graph.validation_types import ValidationResult

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="storypath",
    help="StoryPath: validate, inspect and play branching stories.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("storypath.yaml")

OUTCOME_STYLES = {
    "positive": "green",
    "negative": "red",
    "neutral": "yellow",
}

# Global state for option flags (set by callback, used by commands)
_config_path: Path = DEFAULT_CONFIG_PATH

StoryArg = Annotated[
    str | None,
    typer.Argument(help="Story file (.yaml/.json) or bundled story name. Default: anise_ray."),
]
StartOption = Annotated[
    str | None,
    typer.Option("--start", "-s", help="Starting scene id (overrides story and config)."),
]


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_to_file: Annotated[
        bool,
        typer.Option("--log", help="Enable file logging to ./logs/debug.jsonl."),
    ] = False,
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Engine settings file (default: ./storypath.yaml).",
            envvar="STORYPATH_CONFIG",
        ),
    ] = DEFAULT_CONFIG_PATH,
) -> None:
    """StoryPath: validate, inspect and play branching stories."""
    global _config_path
    _config_path = config

    configure_logging(verbosity=verbose, log_to_file=log_to_file, log_dir=Path())
    if log_to_file:
        atexit.register(close_file_logging)


# =============================================================================
# Helpers
# =============================================================================


def _load_settings() -> EngineSettings:
    from storypath.config import ConfigError, load_settings

    try:
        return load_settings(_config_path)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _resolve_story(story: str | None) -> Story:
    """Load a story from a path or a bundled story name.

    Resolution order:
    1. If story is None, use the default bundled story
    2. If story exists as a path, load that file
    3. Otherwise look for a bundled story with that name
    """
    from storypath.content.loader import (
        DEFAULT_STORY,
        StoryLoadError,
        list_builtin_stories,
        load_builtin_story,
        load_story,
    )

    try:
        if story is None:
            return load_builtin_story(DEFAULT_STORY)
        path = Path(story)
        if path.exists():
            return load_story(path)
        if story in list_builtin_stories():
            return load_builtin_story(story)
    except StoryLoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    console.print(
        f"[red]Error:[/red] No story file or bundled story named '{story}'. "
        "Run 'storypath stories' to list bundled stories."
    )
    raise typer.Exit(1)


def _starting_scene(story: Story, start: str | None, settings: EngineSettings) -> str:
    """Pick the starting scene: CLI flag, then story file, then settings."""
    return start or story.starting_scene_id or settings.starting_scene_id


def _print_validation(result: ValidationResult) -> None:
    if not result.errors and not result.warnings:
        return

    table = Table(title="Validation Issues")
    table.add_column("Severity", style="bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Scene", style="dim")
    table.add_column("Message")

    for issue in result.errors:
        table.add_row("[red]error[/red]", issue.kind.value, issue.scene_id or "-", issue.message)
    for issue in result.warnings:
        table.add_row(
            "[yellow]warning[/yellow]", issue.kind.value, issue.scene_id or "-", issue.message
        )

    console.print(table)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from storypath import __version__

    console.print(f"StoryPath v{__version__}")


@app.command()
def stories() -> None:
    """List bundled stories."""
    from storypath.content.loader import list_builtin_stories, load_builtin_story

    table = Table(title="Bundled Stories")
    table.add_column("Name", style="cyan")
    table.add_column("Title")
    table.add_column("Scenes", justify="right")

    for name in list_builtin_stories():
        story = load_builtin_story(name)
        table.add_row(name, story.title, str(len(story.graph)))

    console.print(table)


@app.command()
def validate(story: StoryArg = None, start: StartOption = None) -> None:
    """Check a story for broken references and malformed scenes.

    Exits with status 1 if the story has errors. Warnings are reported
    but do not fail the check.
    """
    from storypath.graph.validation import validate_story_graph

    settings = _load_settings()
    loaded = _resolve_story(story)
    starting_scene_id = _starting_scene(loaded, start, settings)

    result = validate_story_graph(loaded.graph, starting_scene_id)
    _print_validation(result)

    if result.is_valid:
        console.print(
            f"[green]✓[/green] [bold]{loaded.title}[/bold] is valid "
            f"({len(loaded.graph)} scenes, {len(result.warnings)} warning(s))"
        )
        return

    console.print(f"[red]✗[/red] [bold]{loaded.title}[/bold]: {result.summary}")
    raise typer.Exit(1)


@app.command()
def inspect(story: StoryArg = None, start: StartOption = None) -> None:
    """Show structure statistics for a story."""
    from storypath.inspection import inspect_story

    settings = _load_settings()
    loaded = _resolve_story(story)
    report = inspect_story(loaded.graph, _starting_scene(loaded, start, settings))

    table = Table(title=f"Story: {loaded.title}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    summary = report.summary
    table.add_row("Starting scene", report.starting_scene_id)
    table.add_row("Scenes", str(summary.total_scenes))
    table.add_row("Choices", str(summary.total_choices))
    endings = ", ".join(f"{k}: {v}" for k, v in summary.endings_by_outcome.items())
    table.add_row("Endings", f"{summary.ending_count} ({endings or 'none'})")
    table.add_row("Badges", ", ".join(summary.awarded_badges) or "-")
    if summary.discarded_badges:
        table.add_row(
            "Ignored badges",
            f"[yellow]{', '.join(summary.discarded_badges)}[/yellow] (not on a positive ending)",
        )

    branching = report.branching
    table.add_row("Branching scenes", str(branching.branching_scenes))
    table.add_row("Linear scenes", str(branching.linear_scenes))
    table.add_row("Choices per scene", f"avg {branching.avg_choices}, max {branching.max_choices}")

    reach = report.reachability
    table.add_row("Reachable scenes", f"{reach.reachable}/{summary.total_scenes}")
    if reach.unreachable:
        table.add_row("Unreachable", f"[yellow]{', '.join(reach.unreachable)}[/yellow]")
    for ending_id, depth in sorted(reach.shortest_paths.items(), key=lambda x: x[1]):
        table.add_row(f"  → {ending_id}", f"{depth} choice(s)")

    status = "[green]valid[/green]" if report.validation.is_valid else "[red]invalid[/red]"
    table.add_row("Validation", f"{status} ({report.validation.summary})")

    console.print()
    console.print(table)
    console.print()


@app.command()
def visualize(
    story: StoryArg = None,
    start: StartOption = None,
    fmt: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: dot or mermaid."),
    ] = "dot",
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to file instead of stdout."),
    ] = None,
    no_labels: Annotated[
        bool,
        typer.Option("--no-labels", help="Omit choice labels on edges."),
    ] = False,
) -> None:
    """Render the story graph as Graphviz DOT or Mermaid."""
    from storypath.visualization import build_story_diagram, render_dot, render_mermaid

    renderers = {"dot": render_dot, "mermaid": render_mermaid}
    if fmt not in renderers:
        console.print(f"[red]Error:[/red] Unknown format '{fmt}'. Use 'dot' or 'mermaid'.")
        raise typer.Exit(1)

    settings = _load_settings()
    loaded = _resolve_story(story)
    diagram = build_story_diagram(loaded.graph, _starting_scene(loaded, start, settings))
    markup = renderers[fmt](diagram, no_labels=no_labels)

    if output is None:
        typer.echo(markup)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(markup + "\n", encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote {fmt} diagram to {output}")


@app.command()
def play(
    story: StoryArg = None,
    start: StartOption = None,
    choices: Annotated[
        str | None,
        typer.Option(
            "--choices",
            help="Comma-separated choice numbers to play without prompting (e.g. 2,1,1).",
        ),
    ] = None,
) -> None:
    """Play a story in the terminal.

    At each scene enter a choice number, 'r' to restart or 'q' to quit.
    """
    from storypath.content.badges import load_builtin_badges
    from storypath.engine.navigation import NavigationEngine
    from storypath.engine.scheduler import ImmediateScheduler

    settings = _load_settings()
    loaded = _resolve_story(story)
    badges = load_builtin_badges()
    scripted = [c.strip() for c in choices.split(",") if c.strip()] if choices else None

    with session_context(story=loaded.name, session=uuid4().hex[:8]):
        engine = NavigationEngine(
            scheduler=ImmediateScheduler(), settings=settings.without_pacing()
        )
        engine.initialize(loaded.graph, _starting_scene(loaded, start, settings))

        console.print(f"[bold]{loaded.title}[/bold]")
        _play_session(engine, scripted)

        log.info("play_finished", state=engine.state.value, choices=len(engine.choice_history))

    outcome = engine.outcome
    if outcome is not None:
        style = OUTCOME_STYLES.get(outcome.type, "white")
        console.print(f"Outcome: [{style}]{outcome.type}[/{style}]")
        if outcome.badge:
            console.print(f"Badge earned: [bold]{badges.describe(outcome.badge)}[/bold]")
    if engine.choice_history:
        console.print(f"Path: {' → '.join(engine.choice_history)}")


def _play_session(engine: NavigationEngine, scripted: list[str] | None) -> None:
    """Read answers until the reader quits or the scripted answers run out."""
    while True:
        _render_engine(engine)

        if scripted is not None:
            if not scripted:
                return
            answer = scripted.pop(0)
            console.print(f"> {answer}")
        else:
            answer = typer.prompt("Choice (number, r=restart, q=quit)", default="q")

        answer = answer.strip().lower()
        if answer == "q":
            return
        if answer == "r":
            engine.restart()
            continue

        scene = engine.current_scene
        if scene is None or not engine.state.accepts_choices:
            console.print("[dim]Nothing to choose here. Enter 'r' to restart or 'q' to quit.[/dim]")
            continue
        if not scene.choices:
            console.print(
                "[yellow]This scene has no way forward. Enter 'r' to restart or 'q' to quit.[/yellow]"
            )
            continue
        if not answer.isdigit() or not 1 <= int(answer) <= len(scene.choices):
            console.print(f"[yellow]Please enter a number from 1 to {len(scene.choices)}.[/yellow]")
            continue
        engine.select_choice(scene.choices[int(answer) - 1])


def _render_engine(engine: NavigationEngine) -> None:
    from storypath.engine.state import NavigationState

    scene = engine.current_scene
    if scene is None:
        return

    if engine.state is NavigationState.ERROR_TERMINAL:
        console.print(Panel(scene.text, title="[red]Story unavailable[/red]", border_style="red"))
        console.print("[dim]Enter 'r' to retry from the start or 'q' to quit.[/dim]")
        return

    outcome = engine.outcome
    if outcome is not None:
        style = OUTCOME_STYLES.get(outcome.type, "white")
        console.print(
            Panel(scene.text, title=f"[{style}]The End[/{style}]", border_style=style)
        )
        return

    console.print(Panel(scene.text, title=scene.id, border_style="cyan"))
    if engine.error:
        console.print(f"[yellow]{engine.error}[/yellow]")
    for number, choice in enumerate(scene.choices, start=1):
        console.print(f"  [bold]{number}.[/bold] {choice.text}")


if __name__ == "__main__":
    app()
