"""Tests for the fingerprinted analysis cache."""

import threading

import pytest

from lexitrend.core.cache import AnalysisCache, fingerprint


class TestFingerprint:
    def test_stable(self, sample_words, sample_sessions):
        assert fingerprint(sample_words, sample_sessions) == fingerprint(sample_words, sample_sessions)

    def test_new_session_changes_key(self, sample_words, sample_sessions):
        before = fingerprint(sample_words, sample_sessions)
        extra = {"id": "t7", "timestamp": "2024-01-07T18:00:00Z", "percentage": 90}
        assert fingerprint(sample_words, sample_sessions + [extra]) != before

    def test_new_attempt_changes_key(self, sample_words, sample_sessions):
        before = fingerprint(sample_words, sample_sessions)
        sample_words[0]["attempts"].append({"correct": True, "timestamp": "2024-01-08T09:00:00Z"})
        assert fingerprint(sample_words, sample_sessions) != before

    def test_options_change_key(self, sample_words, sample_sessions):
        assert fingerprint(sample_words, sample_sessions, {"horizons": ["7_days"]}) != fingerprint(
            sample_words, sample_sessions, {"horizons": ["30_days"]}
        )

    def test_empty(self):
        assert len(fingerprint([], [])) == 64


class TestAnalysisCache:
    def test_hit(self):
        cache = AnalysisCache()
        calls = []

        def compute():
            calls.append(1)
            return {"value": len(calls)}

        first = cache.get_or_compute("k", compute)
        assert cache.get_or_compute("k", compute) is first
        assert cache.get("k") is first
        assert len(calls) == 1

    def test_only_latest_key_is_kept(self):
        cache = AnalysisCache()
        cache.get_or_compute("a", lambda: "A")
        cache.get_or_compute("b", lambda: "B")
        assert cache.get("a") is None
        assert cache.get("b") == "B"

    def test_superseded_result_is_returned_but_not_stored(self):
        cache = AnalysisCache()

        def slow_a():
            # a newer request arrives while "a" is still computing
            cache.get_or_compute("b", lambda: "B")
            return "A"

        assert cache.get_or_compute("a", slow_a) == "A"
        assert cache.get("a") is None
        assert cache.get("b") == "B"

    def test_invalidate(self):
        cache = AnalysisCache()
        cache.get_or_compute("k", lambda: "old")
        cache.invalidate()
        assert cache.get("k") is None
        assert cache.get_or_compute("k", lambda: "new") == "new"

    def test_failure_is_not_cached(self):
        cache = AnalysisCache()

        def boom():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            cache.get_or_compute("k", boom)
        assert cache.get_or_compute("k", lambda: "ok") == "ok"

    def test_concurrent_callers_share_one_computation(self):
        cache = AnalysisCache()
        started = threading.Event()
        release = threading.Event()
        calls = []

        def compute():
            calls.append("first")
            started.set()
            release.wait(timeout=5)
            return object()

        def other():
            calls.append("second")
            return object()

        results = {}
        first = threading.Thread(target=lambda: results.setdefault("first", cache.get_or_compute("k", compute)))
        first.start()
        started.wait(timeout=5)

        second = threading.Thread(target=lambda: results.setdefault("second", cache.get_or_compute("k", other)))
        second.start()
        release.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert calls == ["first"]
        assert results["first"] is results["second"]
