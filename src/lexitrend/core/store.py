"""Read-only JSON input adapter for the word catalogue and test history."""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Keys an export may wrap its records in
_WORD_KEYS = ("words", "wordPerformance", "items")
_HISTORY_KEYS = ("testHistory", "test_history", "sessions", "history")


class StoreError(Exception):
    """Raised when an input file can't be read or isn't the expected JSON."""


class HistoryStore:
    """Loads words and test sessions from JSON files in a data directory.

    Missing files read as empty collections. Records are returned as raw
    dicts; validation happens in the engine.
    """

    def __init__(
        self,
        data_dir: Path,
        words_file: str = "words.json",
        history_file: str = "test_history.json",
    ):
        self.data_dir = Path(data_dir)
        self.words_path = self.data_dir / words_file
        self.history_path = self.data_dir / history_file

    def load_words(self) -> list[dict[str, Any]]:
        return self._load(self.words_path, _WORD_KEYS)

    def load_history(self) -> list[dict[str, Any]]:
        return self._load(self.history_path, _HISTORY_KEYS)

    def load(self) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """Return (words, sessions)."""
        return self.load_words(), self.load_history()

    def _load(self, path: Path, keys: tuple[str, ...]) -> list[dict[str, Any]]:
        if not path.exists():
            logger.info("%s not found, using an empty collection", path)
            return []

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"{path.name} is not valid JSON: {e}") from e
        except OSError as e:
            raise StoreError(f"Cannot read {path}: {e}") from e

        if isinstance(data, dict):
            for key in keys:
                if isinstance(data.get(key), list):
                    data = data[key]
                    break
            else:
                raise StoreError(f"{path.name} must hold a list or one of {', '.join(keys)}")
        if not isinstance(data, list):
            raise StoreError(f"{path.name} must hold a JSON list")

        records = [item for item in data if isinstance(item, dict)]
        if len(records) != len(data):
            dropped = len(data) - len(records)
            logger.warning("Ignoring %d non-object entries in %s", dropped, path.name)
        logger.debug("Loaded %d record(s) from %s", len(records), path)
        return records
