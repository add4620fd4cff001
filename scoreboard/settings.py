import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

HOLES_PER_ROUND = 18
SCORE_MIN = 1
SCORE_MAX = 20
PAR_MIN = 3
PAR_MAX = 6
DEFAULT_PAR = 4
PLAYER_NAME_MAX = 100
COURSE_NAME_MAX = 200
LOCATION_MAX = 100
ANONYMOUS_EMAIL = "anonymous@example.com"
DEFAULT_REFRESH_INTERVAL_SECONDS = 30


@dataclass(frozen=True)
class Settings:
    database_url: str
    scoring_pin: str
    golf_api_key: str
    default_location: str = ""
    refresh_interval_seconds: int = DEFAULT_REFRESH_INTERVAL_SECONDS


def _normalize_database_url(value: Optional[str]) -> str:
    if not value:
        return "postgresql://localhost/golf_scoreboard"
    normalized = value.strip()
    # Some hosts still hand out the legacy scheme.
    if normalized.startswith("postgres://"):
        return "postgresql://" + normalized[len("postgres://"):]
    return normalized


def _refresh_interval(value: Optional[str]) -> int:
    if not value:
        return DEFAULT_REFRESH_INTERVAL_SECONDS
    try:
        interval = int(value)
    except ValueError:
        logger.warning("Ignoring REFRESH_INTERVAL_SECONDS=%s (not an integer)", value)
        return DEFAULT_REFRESH_INTERVAL_SECONDS
    if interval <= 0:
        logger.warning("Ignoring REFRESH_INTERVAL_SECONDS=%s (must be positive)", value)
        return DEFAULT_REFRESH_INTERVAL_SECONDS
    return interval


def load_settings() -> Settings:
    return Settings(
        database_url=_normalize_database_url(os.getenv("DATABASE_URL")),
        scoring_pin=os.getenv("SCORING_PIN", "1234"),
        golf_api_key=os.getenv("GOLF_API_KEY", ""),
        default_location=os.getenv("DEFAULT_LOCATION", "").strip(),
        refresh_interval_seconds=_refresh_interval(os.getenv("REFRESH_INTERVAL_SECONDS")),
    )
