from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    # Serialised with camelCase keys, e.g. ``compareFun``, ``aiComment``.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Review(_CamelModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    rating: float | None = None
    average_price: float | None = None


ReviewSet = list[Review]


class ScoreResult(_CamelModel):
    compare_fun: float
    ai_comment: str


class ScoreRecord(_CamelModel):
    """Latest computed score for one restaurant. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    restaurant_id: str = Field(..., min_length=1)
    compare_fun: float
    ai_comment: str
    computed_at: float = Field(..., description="Unix timestamp of the computation")


class InFlightMarker(_CamelModel):
    model_config = ConfigDict(frozen=True)

    restaurant_id: str
    started_at: float


class ScoreStatus(str, Enum):
    ready = "ready"
    pending = "pending"
    started = "started"


class ScoreOutcome(_CamelModel):
    status: ScoreStatus
    record: ScoreRecord | None = None
