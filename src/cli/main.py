"""
Typer CLI for the adaptive puzzle engine.

Commands:
    puzzle-engine recommend --user alice           - Show the next recommendation
    puzzle-engine simulate --persona bored_expert  - Run a simulated learner
    puzzle-engine profile --user alice             - Show stored profile stats
    puzzle-engine personas                         - List built-in personas

Usage:
    puzzle-engine --help
    puzzle-engine simulate --persona pattern_strong --puzzles 30 --seed 7
    puzzle-engine recommend --user alice --db sqlite:///profiles.db
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import get_settings
from src.core.log_config import setup_logging
from src.engine.engine_config import EngineConfig
from src.engine.models import PuzzleRecommendation
from src.engine.puzzle_engine import AdaptivePuzzleEngine
from src.puzzles.registry import ProviderRegistry
from src.simulation.personas import PERSONAS, get_persona, simulate
from src.storage.profile_store import InMemoryProfileStore
from src.storage.sql_store import SqlProfileStore

app = typer.Typer(
    help="Adaptive puzzle engine: personalized next-puzzle recommendations",
    no_args_is_help=True,
)

console = Console()


def _sql_store(db: str | None) -> SqlProfileStore:
    return SqlProfileStore(db or get_settings().database_url)


def _render_recommendation(rec: PuzzleRecommendation) -> None:
    puzzle = rec.puzzle
    body = [f"[bold]{puzzle.question}[/bold]", ""]
    for row in puzzle.layout_rows():
        body.append("  " + "  ".join(row))
    if puzzle.layout_rows():
        body.append("")
    for i, option in enumerate(puzzle.options):
        marker = "[green]*[/green]" if i == puzzle.correct_answer_index else " "
        body.append(f" {marker} {chr(65 + i)}. {option}")
    console.print(Panel("\n".join(body), title=puzzle.semantic_key, border_style="cyan"))

    classification = rec.classification
    table = Table(show_header=False, box=None)
    table.add_column(style="dim")
    table.add_column()
    table.add_row("State", f"{classification.base_state.value} ({classification.confidence:.0%})")
    table.add_row("Modifiers", ", ".join(m.value for m in classification.modifiers) or "-")
    table.add_row("Category", rec.category.display_name)
    table.add_row("Difficulty", f"{rec.dna.discovered_difficulty:.2f}")
    table.add_row("Predicted success", f"{rec.predicted_success:.0%}")
    table.add_row("Predicted engagement", f"{rec.predicted_engagement:.0%}")
    table.add_row("Reason", rec.selection_reason)
    if rec.strategy:
        table.add_row("Pool", " / ".join(str(c) for c in rec.strategy.counts()))
    console.print(table)
    notes = rec.strategy.notes if rec.strategy else []
    for line in [*classification.reasoning, *notes]:
        console.print(f"  [dim]- {line}[/dim]")


@app.command()
def recommend(
    user: str = typer.Option(..., "--user", "-u", help="User identifier"),
    db: str = typer.Option(None, "--db", help="SQLAlchemy database URL (defaults to settings)"),
    puzzle_type: str = typer.Option(None, "--type", "-t", help="Only recommend this puzzle type"),
):
    """Print the next recommended puzzle for a user."""
    store = _sql_store(db)
    engine = AdaptivePuzzleEngine(ProviderRegistry.with_defaults(), store)
    try:
        rec = asyncio.run(engine.recommend(user, force_type=puzzle_type))
    finally:
        store.close()
    _render_recommendation(rec)


@app.command("simulate")
def simulate_command(
    persona: str = typer.Option("new_learner", "--persona", "-p", help="Persona name (see `personas`)"),
    puzzles: int = typer.Option(20, "--puzzles", "-n", min=1, help="Number of puzzles to play"),
    seed: int = typer.Option(None, "--seed", help="Random seed for a reproducible run"),
):
    """Run a simulated learner through recommend/complete cycles."""
    try:
        learner = get_persona(persona)
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1) from e

    config = EngineConfig.from_settings().with_overrides(silent_mode=True)
    engine = AdaptivePuzzleEngine(ProviderRegistry.with_defaults(seed), InMemoryProfileStore(), config=config)
    steps = asyncio.run(simulate(learner, puzzles, engine, seed=seed))

    table = Table(title=f"Simulation: {learner.name}")
    table.add_column("#", justify="right")
    table.add_column("State")
    table.add_column("Modifiers", style="dim")
    table.add_column("Category")
    table.add_column("Type")
    table.add_column("Difficulty", justify="right")
    table.add_column("Result")
    table.add_column("Skill", justify="right")
    for step in steps:
        table.add_row(
            str(step.index),
            step.state,
            ",".join(step.modifiers),
            step.category,
            step.puzzle_type,
            f"{step.difficulty:.2f}",
            "[green]correct[/green]" if step.success else "[red]wrong[/red]",
            f"{step.skill:.2f}",
        )
    console.print(table)

    correct = sum(1 for s in steps if s.success)
    console.print(f"\nAccuracy: {correct}/{len(steps)} ({correct / len(steps):.0%})")


@app.command()
def profile(
    user: str = typer.Option(..., "--user", "-u", help="User identifier"),
    db: str = typer.Option(None, "--db", help="SQLAlchemy database URL (defaults to settings)"),
):
    """Show stored profile statistics for a user."""
    store = _sql_store(db)
    engine = AdaptivePuzzleEngine(ProviderRegistry.with_defaults(), store)
    try:
        metrics = asyncio.run(engine.get_learning_metrics(user))
    finally:
        store.close()

    summary = Table(title=f"Profile: {user}", show_header=False)
    summary.add_column(style="dim")
    summary.add_column()
    summary.add_row("Puzzles solved", str(metrics["total_attempts"]))
    summary.add_row("Correct", str(metrics["correct_answers"]))
    summary.add_row("Accuracy", f"{metrics['accuracy']:.0%}")
    summary.add_row("Sessions", str(metrics["total_sessions"]))
    summary.add_row("Avg session", f"{metrics['average_session_minutes']:.1f} min")
    progression = metrics["skill_progression"]
    summary.add_row("Skill", f"{progression['current']:.2f} ({progression['change']:+.2f})")
    summary.add_row("Momentum", f"{progression['momentum']:+.2f}")
    summary.add_row("Engagement score", f"{metrics['engagement_score']:.2f}")
    console.print(summary)

    if metrics["puzzle_types"]:
        types = Table(title="Puzzle types")
        types.add_column("Type")
        types.add_column("Attempts", justify="right")
        types.add_column("Accuracy", justify="right")
        types.add_column("Preference", justify="right")
        for name, stats in sorted(metrics["puzzle_types"].items()):
            types.add_row(
                name,
                str(stats["attempts"]),
                f"{stats['accuracy']:.0%}",
                f"{stats['preference_score']:.2f}",
            )
        console.print(types)


@app.command()
def personas():
    """List built-in simulated learner personas."""
    table = Table(title="Personas")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("History", justify="right")
    for name, persona in PERSONAS.items():
        table.add_row(name, persona.description, str(persona.seed_history))
    console.print(table)


def run() -> None:
    """CLI entry point."""
    setup_logging(level="WARNING")
    app()


if __name__ == "__main__":
    run()
