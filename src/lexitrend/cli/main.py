"""Main CLI entry point for Lexitrend."""

import json

import typer
from dotenv import load_dotenv
from rich import print as rprint
from rich.panel import Panel
from rich.table import Table

from lexitrend.cli.helpers import (
    console,
    format_percent,
    format_signed,
    get_engine,
    load_data,
    load_settings,
    styled_status,
    truncate,
)
from lexitrend.core.classifier import filter_analyses, summarize
from lexitrend.core.models import Goal, WordStatus
from lexitrend.core.projections import parse_horizons
from lexitrend.logging_config import get_logger, setup_logging

load_dotenv()

app = typer.Typer(
    name="lexitrend",
    help="Learning analytics for vocabulary practice.",
    no_args_is_help=True,
)

logger = get_logger(__name__)


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
) -> None:
    """Set up logging before any command runs."""
    settings = load_settings()
    if verbose:
        settings.logging.level = "DEBUG"
    setup_logging(settings.logging)


def _dump(model) -> None:
    console.print_json(json.dumps(model.model_dump(mode="json")))


# ============================================================================
# WORDS commands
# ============================================================================


@app.command()
def words(
    chapter: str | None = typer.Option(
        None,
        "--chapter",
        "-c",
        help="Filter by chapter (use 'no-chapter' for words without one)",
    ),
    status: str | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Filter by status (new/promising/struggling/consolidated/critical/improving/inconsistent)",
    ),
    search: str | None = typer.Option(
        None,
        "--search",
        "-q",
        help="Search English and Italian text",
    ),
    difficult: bool = typer.Option(
        False,
        "--difficult",
        "-d",
        help="Only words marked difficult",
    ),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum rows to show"),
) -> None:
    """List words with their performance status."""
    status_filter = None
    if status:
        try:
            status_filter = WordStatus(status)
        except ValueError:
            rprint(f"[red]Invalid status: {status}[/red]")
            raise typer.Exit(1)

    settings = load_settings()
    word_records, _ = load_data(settings)
    analyses = list(get_engine().analyze_words(word_records).values())
    summary = summarize(analyses)

    matches = filter_analyses(
        analyses,
        search=search,
        chapter=chapter,
        difficult=True if difficult else None,
        status=status_filter,
    )

    if not matches:
        rprint("[dim]No words found.[/dim]")
        return

    table = Table(title=f"Words ({len(matches)} of {summary.total})")
    table.add_column("ID", style="dim", max_width=10)
    table.add_column("English", max_width=30)
    table.add_column("Italian", max_width=30)
    table.add_column("Chapter", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Streak", justify="right")
    table.add_column("Status")

    for analysis in matches[:limit]:
        table.add_row(
            analysis.word_id[:10],
            truncate(analysis.english),
            truncate(analysis.italian),
            analysis.chapter or "-",
            str(analysis.total_attempts),
            format_percent(analysis.accuracy) if analysis.has_performance else "-",
            str(analysis.current_streak),
            styled_status(analysis.status),
        )

    console.print(table)
    if len(matches) > limit:
        rprint(f"[dim]... {len(matches) - limit} more[/dim]")
    rprint(
        f"[dim]Tested: {summary.with_performance}/{summary.total}  "
        f"Average accuracy: {summary.avg_accuracy}%[/dim]"
    )


@app.command()
def word(
    word_id: str = typer.Argument(..., help="Word ID"),
    as_json: bool = typer.Option(False, "--json", help="Print the analysis as JSON"),
) -> None:
    """Show the performance analysis of a single word."""
    settings = load_settings()
    word_records, _ = load_data(settings)
    analysis = get_engine().analyze_word(word_records, word_id)
    if analysis is None:
        rprint(f"[red]Word not found: {word_id}[/red]")
        raise typer.Exit(1)

    if as_json:
        _dump(analysis)
        return

    lines = [
        f"[bold]{analysis.english}[/bold] / [bold]{analysis.italian}[/bold]",
        f"Chapter: {analysis.chapter or '-'}",
        f"Status: {styled_status(analysis.status)}  Trend: {analysis.trend.value}  "
        f"Difficulty: {analysis.difficulty.value}",
        "",
        f"Attempts: {analysis.total_attempts} "
        f"({analysis.correct_attempts} correct, {analysis.incorrect_attempts} wrong)",
        f"Accuracy: {analysis.accuracy}%  Recent: {analysis.recent_accuracy}%",
        f"Current streak: {analysis.current_streak}",
        f"Hints: {analysis.hints_used} ({analysis.hints_percentage}% of attempts)",
        f"Average time: {analysis.avg_time_ms / 1000:.1f}s",
    ]
    if analysis.recommendations:
        lines.append("")
        lines.extend(f"- {tip}" for tip in analysis.recommendations)

    console.print(Panel("\n".join(lines), title=analysis.word_id, border_style="blue"))


# ============================================================================
# CHAPTERS command
# ============================================================================


@app.command()
def chapters(
    as_json: bool = typer.Option(False, "--json", help="Print the analysis as JSON"),
) -> None:
    """Show per-chapter rollups."""
    settings = load_settings()
    word_records, sessions = load_data(settings)
    result = get_engine().analyze_chapters(word_records, sessions)

    if as_json:
        _dump(result)
        return

    processed = result.analysis.processed_data
    if not processed:
        rprint("[dim]No chapters found.[/dim]")
        return

    table = Table(title=f"Chapters ({len(processed)} total)")
    table.add_column("Chapter", style="cyan")
    table.add_column("Words", justify="right")
    table.add_column("Tested", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Hints", justify="right")
    table.add_column("Efficiency", justify="right")
    table.add_column("Completion", justify="right")
    table.add_column("Tests", justify="right")

    for chapter in processed:
        table.add_row(
            chapter.display_name,
            str(chapter.total_words),
            str(chapter.tested_words),
            format_percent(chapter.accuracy) if chapter.tested_words else "-",
            format_percent(chapter.hints_percentage),
            format_percent(chapter.efficiency),
            format_percent(chapter.completion_rate),
            str(chapter.tests_performed),
        )
    console.print(table)

    overview = result.overview_stats
    stats = result.session_stats
    summary = Table(title="Overview")
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    summary.add_row("Chapters tested", f"{overview.tested_chapters}/{overview.total_chapters}")
    summary.add_row("Best efficiency", format_percent(overview.best_efficiency))
    summary.add_row("Average accuracy", format_percent(overview.average_accuracy))
    summary.add_row("Average completion", format_percent(overview.average_completion))
    summary.add_row("Sessions", str(stats.total_sessions))
    summary.add_row("Words per session", str(stats.avg_words_per_session))
    summary.add_row("Preferred time", stats.preferred_time_slot or "-")
    if result.top_chapters:
        summary.add_row("Top chapters", ", ".join(c.chapter for c in result.top_chapters))
    if result.struggling_chapters:
        summary.add_row("Struggling", ", ".join(c.chapter for c in result.struggling_chapters))
    console.print(summary)

    for flag in result.data_quality.flags:
        rprint(f"[yellow]! {flag}[/yellow]")


# ============================================================================
# TRENDS command
# ============================================================================


@app.command()
def trends(
    horizon: list[str] | None = typer.Option(
        None,
        "--horizon",
        "-H",
        help="Projection horizon in days (7, 30, 60, 90); repeatable",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the analysis as JSON"),
) -> None:
    """Show learning velocity, projections and insights."""
    settings = load_settings()
    try:
        horizons = parse_horizons(horizon) if horizon else settings.analysis.timeframes()
    except ValueError:
        rprint(f"[red]Invalid horizon: {', '.join(horizon)}[/red]")
        raise typer.Exit(1)

    word_records, sessions = load_data(settings)
    result = get_engine().analyze_trends(
        word_records,
        sessions,
        goals=settings.analysis.goal_models(),
        horizons=horizons,
    )

    if as_json:
        _dump(result)
        return

    velocity = result.learning_velocity
    table = Table(title="Learning Velocity")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Sessions", str(velocity.session_count))
    table.add_row("Velocity", format_signed(velocity.current_velocity, " pts"))
    table.add_row("Acceleration", format_signed(velocity.acceleration, " pts"))
    table.add_row("Direction", velocity.direction.value)
    table.add_row("Stability", f"{velocity.stability_factor:.2f}")
    table.add_row("Overall improvement", format_signed(velocity.overall_improvement, " pts"))
    table.add_row("Confidence", format_percent(velocity.confidence))
    console.print(table)

    if result.future_projections:
        projections = Table(title="Projections")
        projections.add_column("Horizon", style="cyan")
        projections.add_column("Expected", justify="right")
        projections.add_column("Range", justify="right")
        projections.add_column("Confidence", justify="right")
        projections.add_column("Tests", justify="right")
        for projection in result.future_projections:
            expected = projection.expected_metrics
            projections.add_row(
                f"{projection.days} days",
                format_percent(expected.accuracy),
                f"{projection.pessimistic_metrics.accuracy:.0f}-"
                f"{projection.optimistic_metrics.accuracy:.0f}%",
                format_percent(projection.confidence),
                str(expected.tests_completed),
            )
        console.print(projections)

    insights = result.pattern_analysis.insights
    if insights:
        rprint("\n[bold]Insights[/bold]")
        for insight in insights:
            rprint(
                f"  ({insight.priority.value}) [bold]{insight.title}[/bold]: {insight.description}"
            )

    for limitation in result.analysis_metadata.limitations:
        rprint(f"[yellow]! {limitation}[/yellow]")


# ============================================================================
# RECOMMEND command
# ============================================================================


@app.command()
def recommend(
    goal: list[float] | None = typer.Option(
        None,
        "--goal",
        "-g",
        help="Target accuracy percentage; repeatable",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the recommendations as JSON"),
) -> None:
    """Show goal, weakness, timing and strategic recommendations."""
    settings = load_settings()
    if goal:
        if any(not 0 < g <= 100 for g in goal):
            rprint("[red]Goals must be between 0 and 100.[/red]")
            raise typer.Exit(1)
        goals = [Goal(name=f"{g:g}% accuracy", target_accuracy=g) for g in goal]
    else:
        goals = settings.analysis.goal_models()

    word_records, sessions = load_data(settings)
    result = get_engine().analyze_trends(
        word_records,
        sessions,
        goals=goals,
        horizons=settings.analysis.timeframes(),
    )
    system = result.recommendation_system

    if as_json:
        _dump(system)
        return

    if system.goal_based:
        table = Table(title="Goals")
        table.add_column("Goal", style="cyan")
        table.add_column("Current", justify="right")
        table.add_column("Estimate", justify="right")
        table.add_column("Milestones")
        for rec in system.goal_based:
            if rec.achieved:
                estimate = "[green]reached[/green]"
            elif rec.estimated_time_to_goal is None:
                estimate = "[red]not reachable at current pace[/red]"
            else:
                estimate = f"{rec.estimated_time_to_goal:.0f} days"
            table.add_row(
                rec.goal.name,
                format_percent(rec.current_value),
                estimate,
                " > ".join(f"{m.value:.0f}%" for m in rec.milestones),
            )
        console.print(table)

    for rec in system.weakness_based:
        best = rec.solutions[0]
        rprint(f"\n[bold red]{rec.title}[/bold red] (severity {rec.severity})")
        rprint(f"  Try: [bold]{best.name}[/bold]: {best.description}")
        for step in best.instructions:
            rprint(f"    - {step}")

    for rec in system.timing:
        window = rec.optimal_study_time
        rprint(
            f"\n[bold]Best time to study:[/bold] {window.label} "
            f"({window.average_performance:.0f}% accuracy)"
        )
        rprint(
            f"  Sessions of {rec.recommended_session_minutes} minutes, "
            f"{rec.optimal_frequency.sessions_per_week} per week "
            f"({rec.optimal_frequency.distribution})"
        )

    for rec in system.strategic:
        rprint(f"\n[bold]{rec.title}[/bold] [dim]({rec.trial_days}-day trial)[/dim]")
        rprint(f"  {rec.rationale}")
        for step in rec.implementation_steps:
            rprint(f"    - {step}")

    if not (system.goal_based or system.weakness_based or system.timing or system.strategic):
        rprint("[dim]No recommendations yet. Take a few tests first.[/dim]")


# ============================================================================
# SERVE command
# ============================================================================


@app.command()
def serve(
    port: int = typer.Option(
        8000,
        "--port",
        "-p",
        help="Port to run the server on",
    ),
    host: str = typer.Option(
        "127.0.0.1",
        "--host",
        help="Host to bind to",
    ),
    reload: bool = typer.Option(
        False,
        "--reload",
        "-r",
        help="Enable auto-reload for development",
    ),
) -> None:
    """Start the JSON API server."""
    import uvicorn

    rprint("\n[bold]Starting Lexitrend API[/bold]")
    rprint(f"  URL: http://{host}:{port}")
    rprint(f"  Docs: http://{host}:{port}/docs")
    rprint("\n[dim]Press Ctrl+C to stop[/dim]\n")
    logger.info("Serving on %s:%d", host, port)

    uvicorn.run(
        "lexitrend.web.app:app",
        host=host,
        port=port,
        reload=reload,
    )


# ============================================================================
# Main entry point
# ============================================================================


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
