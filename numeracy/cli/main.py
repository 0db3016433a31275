"""
Numeracy Engine CLI.

Commands:
    numeracy diagnose FILE [--sessions N] [--json]   Screen an outcome log
    numeracy replay FILE                             Replay outcomes through progression
    numeracy config                                  Show effective configuration
    numeracy reset USER LEVEL                        Administrative level reset

Outcome files are JSON, either a list of outcomes or an object with
"outcomes" and optional "skills" / "sessions" keys. Outcomes missing
correct_answer / is_correct are completed from their operands.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from numeracy.config import Settings, get_settings
from numeracy.core.errors import NumeracyError
from numeracy.core.models import PrerequisiteSkillSnapshot, TaskOutcome
from numeracy.diagnostics.analyzer import analyze_outcomes, error_type_counts
from numeracy.diagnostics.interventions import (
    DEFAULT_INTERVENTIONS,
    InterventionTemplate,
    generate_interventions,
    load_intervention_table,
)
from numeracy.diagnostics.risk import classify_risk
from numeracy.log import configure_logging
from numeracy.progression.state_machine import ProgressionStateMachine, Transition
from numeracy.progression.support import SupportLevelAdapter

app = typer.Typer(
    name="numeracy",
    help="Adaptive progression and arithmetic screening engine",
    no_args_is_help=True,
)

console = Console()


# =============================================================================
# Helpers
# =============================================================================


def _load_log(path: Path) -> tuple[list[TaskOutcome], PrerequisiteSkillSnapshot, int | None]:
    if not path.exists():
        console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        console.print(f"[red]Error: {path} is not valid JSON: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    if isinstance(data, list):
        data = {"outcomes": data}
    if not isinstance(data, dict):
        console.print(f"[red]Error: {path} must hold a list of outcomes or an object with 'outcomes'[/red]")
        raise typer.Exit(1)
    try:
        outcomes = [TaskOutcome.from_dict(item) for item in data.get("outcomes", [])]
    except (KeyError, TypeError, ValueError) as exc:
        console.print(f"[red]Error: Invalid outcome record in {path}: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    try:
        skills = PrerequisiteSkillSnapshot.from_mapping(data.get("skills"))
        sessions = data.get("sessions")
        session_count = int(sessions) if sessions is not None else None
    except (AttributeError, TypeError, ValueError) as exc:
        console.print(f"[red]Error: Invalid skills or sessions in {path}: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc
    return outcomes, skills, session_count


def _interventions(settings: Settings) -> tuple[InterventionTemplate, ...]:
    if settings.interventions_file is None:
        return DEFAULT_INTERVENTIONS
    try:
        return load_intervention_table(settings.interventions_file)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Error: Invalid intervention table: {escape(str(exc))}[/red]")
        raise typer.Exit(1)


def _rate_row(table: Table, name: str, value: float) -> None:
    table.add_row(name, f"{value * 100:.0f}%")


# =============================================================================
# Commands
# =============================================================================


@app.callback()
def _configure(
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Override NUMERACY_LOG_LEVEL")
    ] = None,
) -> None:
    configure_logging(log_level or get_settings().log_level)


@app.command("diagnose")
def diagnose(
    file: Annotated[Path, typer.Argument(help="JSON outcome log")],
    sessions: Annotated[
        Optional[int], typer.Option("--sessions", "-s", help="Session count (default: distinct session ids)")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw risk profile as JSON")] = False,
):
    """
    Screen an outcome log for early arithmetic difficulties.

    Examples:
        numeracy diagnose outcomes.json
        numeracy diagnose outcomes.json --sessions 12 --json
    """
    settings = get_settings()
    outcomes, skills, file_sessions = _load_log(file)
    if sessions is None:
        sessions = file_sessions
    if sessions is None:
        sessions = len({o.session_id for o in outcomes if o.session_id})

    config = settings.engine
    analysis = analyze_outcomes(outcomes, config)
    profile = classify_risk(analysis, skills, sessions, config=config)
    profile = profile.with_recommendations(
        generate_interventions(profile.indicators, table=_interventions(settings))
    )

    if as_json:
        payload = {"analysis": analysis.to_dict(), "profile": profile.to_dict()}
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    rates = Table(title=f"Strategy analysis ({analysis.task_count} tasks, {sessions} sessions)", box=box.SIMPLE)
    rates.add_column("Measure", style="cyan")
    rates.add_column("Value", justify="right")
    _rate_row(rates, "Accuracy", analysis.accuracy)
    _rate_row(rates, "Counting strategies", analysis.counting_rate)
    _rate_row(rates, "Automatized", analysis.automatization_rate)
    _rate_row(rates, "Structured perception", analysis.structured_perception_rate)
    _rate_row(rates, "Decomposition failures", analysis.decomposition_failure_rate)
    rates.add_row("Error patterns", ", ".join(analysis.error_patterns) or "-")
    console.print(rates)

    errors = error_type_counts(outcomes[-config.window_size:])
    if errors:
        console.print("Error types: " + ", ".join(f"{name} x{count}" for name, count in errors.items()))

    color = profile.risk_level.color
    console.print(
        Panel(
            f"[{color}]{profile.risk_level.value.upper()}[/{color}]  confidence {profile.confidence:.0%}",
            title="Risk level",
            border_style=color,
        )
    )

    if profile.indicators:
        indicators = Table(title="Indicators", box=box.ROUNDED)
        indicators.add_column("Criterion", style="bold")
        indicators.add_column("Severity")
        indicators.add_column("Evidence")
        indicators.add_column("Source", style="dim")
        for indicator in profile.indicators:
            indicators.add_row(indicator.criterion, indicator.severity.value, indicator.evidence, indicator.citation)
        console.print(indicators)

    for rec in profile.recommendations:
        body = f"{rec.dosage}\n" + "\n".join(f"  - {m}" for m in rec.materials) + f"\n[dim]{rec.expected_outcome}[/dim]"
        console.print(Panel(body, title=f"{rec.intervention} ({rec.priority.value})", box=box.ROUNDED))


@app.command("replay")
def replay(
    file: Annotated[Path, typer.Argument(help="JSON outcome log")],
    start_level: Annotated[int, typer.Option("--start-level", help="Level to start from")] = 1,
):
    """Replay an outcome log through progression and support adaptation."""
    config = get_settings().engine
    outcomes, _, _ = _load_log(file)

    machine = ProgressionStateMachine(config)
    support = SupportLevelAdapter(config)
    try:
        state = machine.initial_state(start_level)
    except NumeracyError as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    table = Table(title="Level transitions", box=box.SIMPLE)
    table.add_column("Task", justify="right")
    table.add_column("Transition")
    table.add_column("Level", justify="right")
    table.add_column("Support", justify="right")
    table.add_column("Note")

    for index, outcome in enumerate(outcomes, start=1):
        previous_support = state.support_level
        state = support.apply(state, outcome.is_correct)
        update = machine.apply(state, outcome, outcome.timestamp)
        state = update.state
        if update.transition is not Transition.REMAINED or state.support_level != previous_support:
            note = update.milestone.title if update.milestone else update.message
            table.add_row(
                str(index),
                update.transition.value,
                f"{update.previous_level} -> {state.current_level}",
                f"{previous_support} -> {state.support_level}",
                note,
            )

    console.print(table)
    console.print(
        f"Final: level {state.current_level} (stage {state.current_stage}), "
        f"{state.total_correct}/{state.total_tasks} correct, support level {state.support_level}"
    )


@app.command("config")
def show_config():
    """Show the effective configuration."""
    settings = get_settings()

    table = Table(title="Settings", box=box.SIMPLE)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("database_url", settings.database_url)
    table.add_row("log_level", settings.log_level)
    table.add_row("interventions_file", str(settings.interventions_file or "(built-in)"))
    for name, value in settings.engine.model_dump().items():
        table.add_row(f"engine.{name}", str(value))
    console.print(table)


@app.command("reset")
def reset(
    user_id: Annotated[str, typer.Argument(help="Learner id")],
    level: Annotated[int, typer.Argument(help="Target level")],
):
    """Reset a learner to LEVEL in the configured database."""
    from numeracy.db.store import SqlAlchemyLearnerStore
    from numeracy.engine import NumeracyEngine

    settings = get_settings()
    engine = NumeracyEngine(
        SqlAlchemyLearnerStore.from_url(settings.database_url),
        settings.engine,
        interventions=_interventions(settings),
    )
    try:
        state = engine.reset_to_level(user_id, level)
    except NumeracyError as exc:
        logger.error(f"Reset failed: {exc}")
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    console.print(
        f"[green]{user_id} reset to level {state.current_level} (stage {state.current_stage})[/green]"
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
