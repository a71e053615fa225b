"""Shared CLI helpers: settings, data loading and formatting."""

from typing import Any

import typer
from rich import print as rprint
from rich.console import Console

from lexitrend.config import Settings, get_settings
from lexitrend.core.engine import AnalyticsEngine
from lexitrend.core.models import WordStatus
from lexitrend.core.store import HistoryStore, StoreError

console = Console()

STATUS_STYLES = {
    WordStatus.NEW: "dim",
    WordStatus.PROMISING: "cyan",
    WordStatus.STRUGGLING: "yellow",
    WordStatus.CONSOLIDATED: "green",
    WordStatus.CRITICAL: "bold red",
    WordStatus.IMPROVING: "blue",
    WordStatus.INCONSISTENT: "magenta",
}


def load_settings() -> Settings:
    """Read settings, exiting with an error message when they are invalid."""
    try:
        return get_settings()
    except ValueError as e:
        rprint(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)


def get_store(settings: Settings) -> HistoryStore:
    return HistoryStore(
        settings.paths.data_dir,
        settings.paths.words_file,
        settings.paths.history_file,
    )


def load_data(settings: Settings) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Load (words, sessions) or exit with the store error."""
    try:
        return get_store(settings).load()
    except StoreError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)


def get_engine() -> AnalyticsEngine:
    return AnalyticsEngine()


def styled_status(status: WordStatus) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.value}[/{style}]"


def format_percent(value: float) -> str:
    return f"{value:.0f}%"


def format_signed(value: float, unit: str = "") -> str:
    colour = "green" if value > 0 else "red" if value < 0 else "white"
    return f"[{colour}]{value:+.1f}{unit}[/{colour}]"


def truncate(text: str, width: int = 30) -> str:
    return text[:width] + "..." if len(text) > width else text
