"""Content-fingerprinted memo for analysis results."""

import hashlib
import json
import logging
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _field(item: Any, *names: str) -> Any:
    if isinstance(item, BaseModel):
        for name in names:
            if hasattr(item, name):
                return getattr(item, name)
        return None
    if isinstance(item, Mapping):
        for name in names:
            if item.get(name) is not None:
                return item[name]
    return None


def _attempts(item: Any) -> list:
    attempts = _field(item, "attempts")
    return attempts if isinstance(attempts, list) else []


def _stamp(value: Any) -> str | None:
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def fingerprint(
    words: Sequence[Any],
    sessions: Sequence[Any],
    options: Mapping[str, Any] | None = None,
) -> str:
    """SHA-256 over collection sizes, last ids and last timestamps plus options.

    Appending a word, an attempt or a session changes the fingerprint, as
    does any change in the request options.
    """
    last_word = words[-1] if words else None
    last_session = sessions[-1] if sessions else None
    last_attempts = _attempts(last_word) if last_word is not None else []
    payload = {
        "words": len(words),
        "attempts": sum(len(_attempts(w)) for w in words),
        "last_word": _field(last_word, "word_id", "wordId", "id"),
        "last_attempt": _stamp(_field(last_attempts[-1], "timestamp")) if last_attempts else None,
        "sessions": len(sessions),
        "last_session": _field(last_session, "id"),
        "last_session_at": _stamp(_field(last_session, "timestamp")),
        "options": options or {},
    }
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class AnalysisCache(Generic[T]):
    """Keeps the result for the most recent fingerprint.

    Concurrent callers asking for the same fingerprint share one Future, so
    at most one computation per fingerprint runs at a time. When a newer
    fingerprint is requested while an older computation is in flight, the
    older result is still returned to its callers but never stored.
    """

    def __init__(self):
        self._stored: tuple[str, T] | None = None
        self._latest_key: str | None = None
        self._in_flight: dict[str, Future] = {}

    def get(self, key: str) -> T | None:
        stored = self._stored
        if stored is not None and stored[0] == key:
            return stored[1]
        return None

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        stored = self._stored
        if stored is not None and stored[0] == key:
            logger.debug("Analysis cache hit %s", key[:12])
            return stored[1]

        future: Future = Future()
        existing = self._in_flight.setdefault(key, future)
        if existing is not future:
            logger.debug("Joining in-flight analysis %s", key[:12])
            return existing.result()

        # Another caller may have stored this key between the check above and setdefault
        stored = self._stored
        if stored is not None and stored[0] == key:
            self._in_flight.pop(key, None)
            future.set_result(stored[1])
            return stored[1]

        self._latest_key = key
        try:
            result = compute()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            if self._latest_key == key:
                self._stored = (key, result)
            else:
                logger.debug("Discarding superseded analysis %s", key[:12])
            return result
        finally:
            self._in_flight.pop(key, None)

    def invalidate(self) -> None:
        """Drop the stored result so the next call recomputes."""
        self._stored = None
        self._latest_key = None
