"""Shared sample data: a small catalogue and six days of improving tests."""

import json
from pathlib import Path

import pytest


def _attempts(pattern: str, day: int = 1) -> list[dict]:
    return [
        {
            "timestamp": f"2024-01-0{day}T18:0{i}:00Z",
            "correct": ch in "CH",
            "usedHint": ch == "H",
            "hintsCount": 1 if ch == "H" else 0,
            "timeSpentMs": 4000,
        }
        for i, ch in enumerate(pattern)
    ]


@pytest.fixture
def sample_words() -> list[dict]:
    return [
        {
            "wordId": "w1",
            "english": "house",
            "italian": "casa",
            "chapter": 1,
            "learned": True,
            "attempts": _attempts("CCICCC"),
        },
        {
            "wordId": "w2",
            "english": "dog",
            "italian": "cane",
            "chapter": 1,
            "attempts": _attempts("IHCI"),
        },
        {
            "wordId": "w3",
            "english": "to eat",
            "italian": "mangiare",
            "chapter": 2,
            "difficult": True,
            "attempts": _attempts("IIIC"),
        },
        {
            "wordId": "w4",
            "english": "bread",
            "italian": "pane",
            "chapter": 2,
            "attempts": [],
        },
        {"wordId": "w5", "english": "water", "italian": "acqua"},
    ]


@pytest.fixture
def sample_sessions() -> list[dict]:
    sessions = []
    for day, (correct, hints) in enumerate([(5, 3), (6, 3), (6, 2), (7, 2), (8, 1), (9, 1)], start=1):
        sessions.append(
            {
                "id": f"t{day}",
                "timestamp": f"2024-01-0{day}T18:00:00Z",
                "totalWords": 10,
                "correctWords": correct,
                "incorrectWords": 10 - correct,
                "hintsUsed": hints,
                "totalTimeMs": 300_000,
                "perChapterBreakdown": {
                    "1": {"correct": correct - 2, "incorrect": 9 - correct},
                    "2": {"correct": 2, "incorrect": 1},
                },
            }
        )
    return sessions


@pytest.fixture
def data_dir(tmp_path: Path, sample_words, sample_sessions) -> Path:
    """A data directory holding both sample files."""
    directory = tmp_path / "data"
    directory.mkdir()
    (directory / "words.json").write_text(json.dumps(sample_words), encoding="utf-8")
    (directory / "test_history.json").write_text(json.dumps(sample_sessions), encoding="utf-8")
    return directory
