from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from groq import APITimeoutError, Groq, GroqError

from ..scoring.errors import ScorerError, ScorerTimeoutError
from ..scoring.models import ReviewSet, ScoreResult
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Wszystkie recenzje są w języku polskim. Odpowiadaj po polsku.\n\n"
    "You rate the value for money of ONE restaurant from its reviews. "
    "Each review has a text, a rating and the average price paid.\n"
    "1. Give every review a portion score f from 1 to 10 based only on how it "
    'describes portion size ("ogromne", "duże", "hojne" score high; '
    '"małe", "mikroskopijne", "niewystarczające" score low).\n'
    "2. Average f, the ratings and the prices.\n"
    "3. compareFun = avg_f * avg_rating * (1 / avg_price).\n\n"
    "Return ONLY valid JSON in this exact format:\n"
    '{"compareFun": 0.0, "aiComment": "<short Polish verdict>"}\n'
    'Use "Najesz się niewielkim kosztem" when compareFun > 0.8, '
    '"Mogłoby być lepiej" between 0.5 and 0.8, '
    'and "Dużo wydasz i się nie najesz" below 0.5.'
)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def comment_for_score(compare_fun: float) -> str:
    """Standard verdict for a compareFun value."""
    if compare_fun > 0.8:
        return "Najesz się niewielkim kosztem"
    if compare_fun >= 0.5:
        return "Mogłoby być lepiej"
    return "Dużo wydasz i się nie najesz"


def _build_user_message(reviews: ReviewSet) -> str:
    payload = [
        {
            "textReviews": r.text,
            "rating": r.rating,
            "averagePrice": r.average_price,
        }
        for r in reviews
    ]
    return "JSON Data:\n" + json.dumps(payload, ensure_ascii=False, indent=2)


def parse_score(content: str) -> ScoreResult:
    """
    Parse the model answer into a ScoreResult.

    Accepts a bare ``{"compareFun", "aiComment"}`` object, optionally wrapped
    in markdown fences or in an ``{"analysisResults": [...]}`` envelope.
    Raises ScorerError for anything else.
    """
    cleaned = _FENCE_RE.sub("", content).strip()
    try:
        parsed: Any = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ScorerError("Scorer returned invalid JSON") from exc

    if isinstance(parsed, dict) and isinstance(parsed.get("analysisResults"), list):
        results = parsed["analysisResults"]
        parsed = results[0] if results else None
    if not isinstance(parsed, dict):
        raise ScorerError("Scorer answer is not a JSON object")

    try:
        compare_fun = float(parsed["compareFun"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ScorerError("Scorer answer has no numeric compareFun") from exc
    if not math.isfinite(compare_fun):
        raise ScorerError(f"Scorer returned a non-finite compareFun: {compare_fun}")

    comment = str(parsed.get("aiComment") or "").strip()
    return ScoreResult(
        compare_fun=compare_fun,
        ai_comment=comment or comment_for_score(compare_fun),
    )


class GroqScorer:
    """Value-for-money scorer backed by the Groq chat completions API."""

    def __init__(self, config: LLMConfig = DEFAULT_LLM_CONFIG) -> None:
        self._config = config

    def score(self, reviews: ReviewSet) -> ScoreResult:
        config = self._config
        if not config.enabled or not config.api_key:
            raise ScorerError("Groq scorer is disabled or has no API key")
        if not reviews:
            raise ScorerError("No reviews to score")

        try:
            client = Groq(api_key=config.api_key, timeout=config.timeout)
            response = client.chat.completions.create(
                model=config.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": _build_user_message(reviews)},
                ],
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                response_format={"type": "json_object"},
            )
        except APITimeoutError as exc:
            raise ScorerTimeoutError(f"Groq did not answer within {config.timeout}s") from exc
        except GroqError as exc:
            raise ScorerError(f"Groq request failed: {exc}") from exc

        content = response.choices[0].message.content or ""
        logger.debug("Groq scorer answer: %s", content)
        return parse_score(content)
