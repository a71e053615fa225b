"""Tests for environment-driven settings and logging setup."""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from lexitrend.config import AnalysisSettings, LoggingSettings, Settings, get_settings
from lexitrend.core.models import ProjectionTimeframe
from lexitrend.logging_config import get_logger, setup_logging


class TestSettings:
    """Tests for reading settings from the environment."""

    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            settings = get_settings()
        assert settings.paths.data_dir == Path("./data")
        assert settings.paths.words_file == "words.json"
        assert settings.paths.history_file == "test_history.json"
        assert settings.logging.level == "INFO"
        assert settings.logging.file is None
        assert settings.analysis.timeframes() == list(ProjectionTimeframe)
        assert [g.target_accuracy for g in settings.analysis.goal_models()] == [70, 85]

    def test_environment_overrides(self, tmp_path):
        env = {
            "LEXITREND_DATA_DIR": str(tmp_path),
            "LEXITREND_WORDS_FILE": "vocab.json",
            "LOG_LEVEL": "debug",
            "LEXITREND_HORIZONS": "30, 7",
            "LEXITREND_GOALS": "90",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = get_settings()
        assert settings.paths.data_dir == tmp_path
        assert settings.paths.words_file == "vocab.json"
        assert settings.logging.level == "DEBUG"
        assert settings.analysis.timeframes() == [ProjectionTimeframe.DAYS_7, ProjectionTimeframe.DAYS_30]
        goals = settings.analysis.goal_models()
        assert [g.name for g in goals] == ["90% accuracy"]

    def test_empty_values_fall_back_to_defaults(self):
        with patch.dict("os.environ", {"LEXITREND_DATA_DIR": "", "LOG_LEVEL": ""}, clear=True):
            settings = get_settings()
        assert settings.paths.data_dir == Path("./data")
        assert settings.logging.level == "INFO"


class TestValidate:
    """Tests for settings validation."""

    def test_bad_log_level(self):
        settings = Settings(logging=LoggingSettings(level="LOUD"))
        with pytest.raises(ValueError, match="LOG_LEVEL"):
            settings.validate()

    def test_no_horizons(self):
        settings = Settings(analysis=AnalysisSettings(horizons=[], goals=["70"]))
        with pytest.raises(ValueError, match="at least one horizon"):
            settings.validate()

    def test_unknown_horizon(self):
        settings = Settings(analysis=AnalysisSettings(horizons=["7", "45"], goals=["70"]))
        with pytest.raises(ValueError, match="may only contain 7, 30, 60, 90"):
            settings.validate()

    @pytest.mark.parametrize("goal", ["abc", "0", "101", "-5"])
    def test_bad_goals(self, goal):
        settings = Settings(analysis=AnalysisSettings(horizons=["7"], goals=[goal]))
        with pytest.raises(ValueError, match="LEXITREND_GOALS"):
            settings.validate()

    def test_valid(self):
        Settings(analysis=AnalysisSettings(horizons=["7", "90_days"], goals=["70", "100"])).validate()


class TestLogging:
    """Tests for logging setup."""

    def _ours(self):
        return [h for h in logging.getLogger().handlers if getattr(h, "_lexitrend", False)]

    def test_console_handler(self):
        setup_logging(LoggingSettings(level="WARNING", file=None))
        try:
            assert logging.getLogger().level == logging.WARNING
            assert len(self._ours()) == 1
        finally:
            for handler in self._ours():
                logging.getLogger().removeHandler(handler)

    def test_repeated_setup_does_not_stack(self, tmp_path):
        log_file = tmp_path / "logs" / "lexitrend.log"
        settings = LoggingSettings(level="INFO", file=str(log_file))
        setup_logging(settings)
        setup_logging(settings)
        try:
            handlers = self._ours()
            assert len(handlers) == 2
            assert log_file.parent.exists()
        finally:
            for handler in self._ours():
                logging.getLogger().removeHandler(handler)
                handler.close()

    def test_get_logger(self):
        assert get_logger("lexitrend.test").name == "lexitrend.test"
