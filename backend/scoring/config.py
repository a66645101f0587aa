from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class ScoringConfig:
    ttl_seconds: float = float(os.getenv("SCORE_TTL_SECONDS", "600"))  # 10 minutes
    scorer_timeout: float = float(os.getenv("SCORER_TIMEOUT_SECONDS", "30"))
    max_workers: int = int(os.getenv("SCORER_MAX_WORKERS", "4"))
    database_url: str = os.getenv("SCORES_DATABASE_URL", "sqlite:///scores.db")
    retry_after_seconds: int = 5


DEFAULT_SCORING_CONFIG = ScoringConfig()
