"""Configuration settings loaded from the environment."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from lexitrend.core.models import Goal, ProjectionTimeframe
from lexitrend.core.projections import parse_horizons

load_dotenv()

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    return value if value else default


def _split(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


@dataclass
class PathSettings:
    """Where the input JSON files live."""

    data_dir: Path = field(default_factory=lambda: Path(_env("LEXITREND_DATA_DIR", "./data")))
    words_file: str = field(default_factory=lambda: _env("LEXITREND_WORDS_FILE", "words.json"))
    history_file: str = field(
        default_factory=lambda: _env("LEXITREND_HISTORY_FILE", "test_history.json")
    )


@dataclass
class LoggingSettings:
    level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO").upper())
    format: str = DEFAULT_FORMAT
    file: str | None = field(default_factory=lambda: _env("LOG_FILE"))


@dataclass
class AnalysisSettings:
    """Projection horizons and goals used when a request doesn't supply them."""

    horizons: list[str] = field(
        default_factory=lambda: _split(_env("LEXITREND_HORIZONS", "7,30,60,90"))
    )
    goals: list[str] = field(default_factory=lambda: _split(_env("LEXITREND_GOALS", "70,85")))

    def timeframes(self) -> list[ProjectionTimeframe]:
        return parse_horizons(self.horizons)

    def goal_models(self) -> list[Goal]:
        return [Goal(name=f"{float(g):g}% accuracy", target_accuracy=float(g)) for g in self.goals]


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""

    paths: PathSettings = field(default_factory=PathSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.logging.level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got {self.logging.level}")

        if not self.analysis.horizons:
            raise ValueError("LEXITREND_HORIZONS must list at least one horizon")
        try:
            self.analysis.timeframes()
        except ValueError:
            allowed = ", ".join(str(t.days) for t in ProjectionTimeframe)
            got = ",".join(self.analysis.horizons)
            raise ValueError(f"LEXITREND_HORIZONS may only contain {allowed}, got {got}") from None

        for goal in self.analysis.goals:
            try:
                value = float(goal)
            except ValueError:
                raise ValueError(f"LEXITREND_GOALS must be numbers, got {goal!r}") from None
            if not 0 < value <= 100:
                raise ValueError(f"LEXITREND_GOALS must be between 0 and 100, got {goal}")


def get_settings() -> Settings:
    """Read settings from the current environment and validate them."""
    settings = Settings()
    settings.validate()
    return settings
