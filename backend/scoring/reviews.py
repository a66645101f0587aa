from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Protocol

import pandas as pd

from .models import Review, ReviewSet

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
_RESTAURANTS_CSV = _DATA_DIR / "restaurants.csv"
_REVIEWS_CSV = _DATA_DIR / "reviews.csv"

RESTAURANT_COLUMNS = [
    "id",
    "name",
    "description",
    "cuisine",
    "price_range",
    "address",
    "opening_time",
    "closing_time",
    "image_url",
]


class ReviewStore(Protocol):
    def list_reviews(self, restaurant_id: str) -> ReviewSet: ...

    def restaurant_exists(self, restaurant_id: str) -> bool: ...

    def list_restaurants(self) -> list[dict[str, Any]]: ...


def _optional_float(value: Any) -> float | None:
    if value is None or pd.isna(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class CsvReviewStore:
    """Read-only review store over the processed CSV files, loaded on first use."""

    def __init__(
        self,
        restaurants_csv: Path = _RESTAURANTS_CSV,
        reviews_csv: Path = _REVIEWS_CSV,
    ) -> None:
        self._restaurants_csv = restaurants_csv
        self._reviews_csv = reviews_csv
        self._restaurants: pd.DataFrame | None = None
        self._reviews: pd.DataFrame | None = None
        self._lock = threading.Lock()

    def _load(self) -> tuple[pd.DataFrame, pd.DataFrame]:
        with self._lock:
            if self._restaurants is None or self._reviews is None:
                restaurants = pd.read_csv(self._restaurants_csv, dtype=str, keep_default_na=False)
                reviews = pd.read_csv(self._reviews_csv, dtype={"restaurant_id": str})
                reviews["review"] = reviews["review"].fillna("").astype(str)
                self._restaurants = restaurants
                self._reviews = reviews
            return self._restaurants, self._reviews

    def restaurant_exists(self, restaurant_id: str) -> bool:
        restaurants, _ = self._load()
        return bool((restaurants["id"] == str(restaurant_id)).any())

    def list_restaurants(self) -> list[dict[str, Any]]:
        restaurants, _ = self._load()
        columns = [c for c in RESTAURANT_COLUMNS if c in restaurants.columns]
        return restaurants[columns].to_dict(orient="records")

    def list_reviews(self, restaurant_id: str) -> ReviewSet:
        """Reviews in file order. A restaurant without reviews yields ``[]``."""
        _, reviews = self._load()
        rows = reviews.loc[reviews["restaurant_id"] == str(restaurant_id)]
        return [
            Review(
                text=row.review,
                rating=_optional_float(row.rating),
                average_price=_optional_float(row.average_price),
            )
            for row in rows.itertuples(index=False)
        ]


class InMemoryReviewStore:
    def __init__(
        self,
        reviews: dict[str, ReviewSet] | None = None,
        restaurants: list[dict[str, Any]] | None = None,
    ) -> None:
        self._reviews = {k: list(v) for k, v in (reviews or {}).items()}
        if restaurants is None:
            restaurants = [{"id": rid, "name": rid} for rid in self._reviews]
        self._restaurants = list(restaurants)

    def restaurant_exists(self, restaurant_id: str) -> bool:
        return any(r["id"] == restaurant_id for r in self._restaurants)

    def list_restaurants(self) -> list[dict[str, Any]]:
        return list(self._restaurants)

    def list_reviews(self, restaurant_id: str) -> ReviewSet:
        return list(self._reviews.get(restaurant_id, []))
