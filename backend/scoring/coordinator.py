"""
Score coordinator
=================

Single entry point for "give me the value-for-money score of restaurant X".

For every request the coordinator either:

* returns the stored record when it is younger than the TTL (``ready``),
* reports that a scoring run for the restaurant is already going (``pending``), or
* registers an in-flight marker and launches a background run (``started``).

The in-flight markers live in a mutex-guarded dict, so the check-and-set is
atomic whether callers come from an event loop or from a threadpool.  A
background run always removes its own marker, whatever happens to the scorer.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Protocol

from .config import DEFAULT_SCORING_CONFIG, ScoringConfig
from .errors import ScorerError, ScorerTimeoutError
from .models import (
    InFlightMarker,
    ReviewSet,
    ScoreOutcome,
    ScoreRecord,
    ScoreResult,
    ScoreStatus,
)
from .result_store import ResultStore
from .reviews import ReviewStore

logger = logging.getLogger(__name__)


class Scorer(Protocol):
    def score(self, reviews: ReviewSet) -> ScoreResult: ...


class ScoreCoordinator:
    def __init__(
        self,
        result_store: ResultStore,
        review_store: ReviewStore,
        scorer: Scorer,
        config: ScoringConfig = DEFAULT_SCORING_CONFIG,
        clock: Callable[[], float] = time.time,
        executor: Executor | None = None,
    ) -> None:
        self._result_store = result_store
        self._review_store = review_store
        self._scorer = scorer
        self._config = config
        self._clock = clock

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.max_workers, thread_name_prefix="score-run"
        )
        self._scorer_pool = ThreadPoolExecutor(
            max_workers=config.max_workers, thread_name_prefix="scorer-call"
        )

        self._lock = threading.Lock()
        self._markers: dict[str, InFlightMarker] = {}
        self._counters: Counter[str] = Counter()

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def is_fresh(self, record: ScoreRecord) -> bool:
        return self._clock() - record.computed_at < self._config.ttl_seconds

    def request_score(self, restaurant_id: str) -> ScoreOutcome:
        """
        Serve a fresh score, or make sure exactly one run is computing it.

        ``StorageError`` from the result store propagates; no marker is set
        in that case.
        """
        record = self._result_store.get(restaurant_id)
        if record is not None and self.is_fresh(record):
            with self._lock:
                self._counters["ready"] += 1
            return ScoreOutcome(status=ScoreStatus.ready, record=record)

        with self._lock:
            if restaurant_id in self._markers:
                self._counters["pending"] += 1
                return ScoreOutcome(status=ScoreStatus.pending)
            marker = InFlightMarker(restaurant_id=restaurant_id, started_at=self._clock())
            self._markers[restaurant_id] = marker
            self._counters["started"] += 1

        try:
            self._executor.submit(self._run, marker)
        except Exception:
            self._release(marker)
            raise

        logger.info("Started score computation for restaurant %s", restaurant_id)
        return ScoreOutcome(status=ScoreStatus.started)

    def in_flight(self, restaurant_id: str) -> InFlightMarker | None:
        with self._lock:
            return self._markers.get(restaurant_id)

    def invalidate(self, restaurant_id: str) -> bool:
        """Drop the stored score so the next request recomputes it."""
        return self._result_store.delete(restaurant_id)

    def stats(self) -> dict:
        with self._lock:
            counters = dict(self._counters)
            in_flight = len(self._markers)
        ready = counters.get("ready", 0)
        total = ready + counters.get("pending", 0) + counters.get("started", 0)
        return {
            "ready": ready,
            "pending": counters.get("pending", 0),
            "started": counters.get("started", 0),
            "succeeded": counters.get("succeeded", 0),
            "failed": counters.get("failed", 0),
            "in_flight": in_flight,
            "hit_rate": round(ready / total * 100, 1) if total > 0 else 0.0,
        }

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
        self._scorer_pool.shutdown(wait=False, cancel_futures=True)

    # ── background run ──────────────────────────────────────────────────

    def _run(self, marker: InFlightMarker) -> None:
        restaurant_id = marker.restaurant_id
        try:
            # A run that finished between the caller's lookup and our marker
            # may already have stored a fresh record.
            current = self._result_store.get(restaurant_id)
            if current is not None and self.is_fresh(current):
                logger.info("Fresh score for restaurant %s already stored, skipping", restaurant_id)
                return

            reviews = self._review_store.list_reviews(restaurant_id)
            result = self._call_scorer(reviews)
            record = ScoreRecord(
                restaurant_id=restaurant_id,
                compare_fun=result.compare_fun,
                ai_comment=result.ai_comment,
                computed_at=self._clock(),
            )
            self._result_store.put(record)
            self._count("succeeded")
            logger.info(
                "Stored score %.3f for restaurant %s (%d reviews)",
                record.compare_fun,
                restaurant_id,
                len(reviews),
            )
        except ScorerError:
            self._count("failed")
            logger.warning("Scorer failed for restaurant %s", restaurant_id, exc_info=True)
        except Exception:
            self._count("failed")
            logger.error("Score computation for restaurant %s failed", restaurant_id, exc_info=True)
        finally:
            self._release(marker)

    def _call_scorer(self, reviews: ReviewSet) -> ScoreResult:
        future = self._scorer_pool.submit(self._scorer.score, reviews)
        try:
            return future.result(timeout=self._config.scorer_timeout)
        except FuturesTimeoutError as exc:
            future.cancel()
            raise ScorerTimeoutError(
                f"Scorer did not answer within {self._config.scorer_timeout}s"
            ) from exc

    def _release(self, marker: InFlightMarker) -> None:
        with self._lock:
            if self._markers.get(marker.restaurant_id) is marker:
                del self._markers[marker.restaurant_id]

    def _count(self, key: str) -> None:
        with self._lock:
            self._counters[key] += 1
