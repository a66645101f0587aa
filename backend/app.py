from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, Response

from .llm.groq_client import GroqScorer
from .scoring.config import DEFAULT_SCORING_CONFIG
from .scoring.coordinator import ScoreCoordinator
from .scoring.errors import NotFoundError, StorageError
from .scoring.models import ScoreStatus
from .scoring.result_store import SqlResultStore
from .scoring.reviews import CsvReviewStore, ReviewStore

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Please wait, your request is still in progress"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config = DEFAULT_SCORING_CONFIG
    review_store = CsvReviewStore()
    coordinator = ScoreCoordinator(
        result_store=SqlResultStore(config.database_url),
        review_store=review_store,
        scorer=GroqScorer(),
        config=config,
    )
    app.state.review_store = review_store
    app.state.coordinator = coordinator
    try:
        yield
    finally:
        coordinator.shutdown(wait=False)


app = FastAPI(title="Restaurant Value Score API", version="1.0.0", lifespan=lifespan)


def get_coordinator(request: Request) -> ScoreCoordinator:
    return request.app.state.coordinator


def get_review_store(request: Request) -> ReviewStore:
    return request.app.state.review_store


def json_response(message: str = "Success", status: int = 200, data: Any = None) -> dict:
    return {"message": message, "status": status, "data": data if data is not None else {}}


def require_restaurant(review_store: ReviewStore, restaurant_id: str) -> None:
    """Raise ``NotFoundError`` for ids the review store does not know."""
    if not review_store.restaurant_exists(restaurant_id):
        raise NotFoundError(f"Unknown restaurant {restaurant_id!r}")


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/restaurants")
def restaurants(review_store: ReviewStore = Depends(get_review_store)) -> list[dict]:
    return review_store.list_restaurants()


@app.get("/api/restaurants/{restaurant_id}")
def restaurant_score(
    restaurant_id: str,
    response: Response,
    coordinator: ScoreCoordinator = Depends(get_coordinator),
    review_store: ReviewStore = Depends(get_review_store),
) -> dict:
    try:
        require_restaurant(review_store, restaurant_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Invalid restaurant id")

    try:
        outcome = coordinator.request_score(restaurant_id)
    except StorageError:
        logger.warning("Score store unavailable for restaurant %s", restaurant_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Something went wrong!")

    payload = outcome.model_dump(mode="json", by_alias=True, exclude_none=True)
    if outcome.status is ScoreStatus.ready:
        return json_response(data=payload)

    # pending / started: the client polls again later
    response.status_code = 202
    response.headers["Retry-After"] = str(coordinator.config.retry_after_seconds)
    return json_response(message=RETRY_MESSAGE, status=202, data=payload)


# ── Ops endpoints ────────────────────────────────────────────────────────


@app.get("/scores/stats")
def score_stats(coordinator: ScoreCoordinator = Depends(get_coordinator)) -> dict:
    return coordinator.stats()
