from __future__ import annotations

import threading
from concurrent.futures import Executor, Future

import pytest

from backend.scoring.models import Review, ScoreResult


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class ManualExecutor(Executor):
    """Holds submitted work until the test runs it."""

    def __init__(self) -> None:
        self.pending: list[tuple[Future, object, tuple, dict]] = []

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_pending(self) -> None:
        while self.pending:
            future, fn, args, kwargs = self.pending.pop(0)
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as exc:
                future.set_exception(exc)


class FakeScorer:
    def __init__(self, result: ScoreResult | None = None, error: Exception | None = None) -> None:
        self.result = result or ScoreResult(compare_fun=0.9, ai_comment="Najesz się niewielkim kosztem")
        self.error = error
        self.gate: threading.Event | None = None
        self.calls: list[list[Review]] = []
        self._lock = threading.Lock()

    def score(self, reviews):
        with self._lock:
            self.calls.append(list(reviews))
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.result


SAMPLE_REVIEWS = {
    "r1": [
        Review(text="Ogromne porcje, tanio.", rating=5, average_price=40),
        Review(text="Duże talerze.", rating=4, average_price=45),
    ],
    "r2": [Review(text="Małe porcje.", rating=3, average_price=120)],
    "empty": [],
}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def scorer() -> FakeScorer:
    return FakeScorer()


@pytest.fixture
def sample_reviews() -> dict:
    return SAMPLE_REVIEWS
