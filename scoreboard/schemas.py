import re

from pydantic import BaseModel, field_validator

from scoreboard.settings import (
    COURSE_NAME_MAX,
    HOLES_PER_ROUND,
    LOCATION_MAX,
    PAR_MAX,
    PAR_MIN,
    PLAYER_NAME_MAX,
    SCORE_MAX,
    SCORE_MIN,
)

_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+=", re.IGNORECASE)


def sanitize_text(value: str) -> str:
    """Strip markup-ish fragments from free text before it is stored."""
    cleaned = value.replace("<", "").replace(">", "")
    cleaned = _JS_PROTOCOL.sub("", cleaned)
    cleaned = _EVENT_HANDLER.sub("", cleaned)
    return cleaned.strip()


def player_name_errors(name: str) -> list[str]:
    errors: list[str] = []
    if not name:
        errors.append("Player name is required")
        return errors
    if len(name) > PLAYER_NAME_MAX:
        errors.append(f"Player name must be less than {PLAYER_NAME_MAX} characters")
    if not all(ch.isalnum() or ch.isspace() or ch in ".-" for ch in name):
        errors.append("Player name contains invalid characters")
    return errors


def _required_text_errors(value: str, label: str, limit: int) -> list[str]:
    if not value:
        return [f"{label} is required"]
    if len(value) > limit:
        return [f"{label} must be less than {limit} characters"]
    return []


def score_errors(scores: list[int]) -> list[str]:
    errors: list[str] = []
    if len(scores) != HOLES_PER_ROUND:
        errors.append(f"Exactly {HOLES_PER_ROUND} scores are required")
    for hole, score in enumerate(scores, 1):
        if not SCORE_MIN <= score <= SCORE_MAX:
            errors.append(f"Hole {hole}: Score must be between {SCORE_MIN} and {SCORE_MAX}")
    return errors


def par_errors(pars: list[int]) -> list[str]:
    errors: list[str] = []
    if len(pars) != HOLES_PER_ROUND:
        errors.append(f"Exactly {HOLES_PER_ROUND} pars are required")
    for hole, par in enumerate(pars, 1):
        if not PAR_MIN <= par <= PAR_MAX:
            errors.append(f"Hole {hole}: Par must be between {PAR_MIN} and {PAR_MAX}")
    return errors


def _raise_if(errors: list[str]) -> None:
    if errors:
        raise ValueError(", ".join(errors))


class PinnedPayload(BaseModel):
    pin: str


class CoursePayload(PinnedPayload):
    name: str
    pars: list[int]

    @field_validator("name")
    @classmethod
    def _clean_name(cls, value: str) -> str:
        cleaned = sanitize_text(value)
        _raise_if(_required_text_errors(cleaned, "Course name", COURSE_NAME_MAX))
        return cleaned

    @field_validator("pars")
    @classmethod
    def _check_pars(cls, value: list[int]) -> list[int]:
        _raise_if(par_errors(value))
        return value


class CourseUpdatePayload(CoursePayload):
    old_name: str

    @field_validator("old_name")
    @classmethod
    def _clean_old_name(cls, value: str) -> str:
        cleaned = sanitize_text(value)
        _raise_if(_required_text_errors(cleaned, "Original course name", COURSE_NAME_MAX))
        return cleaned


class ScorePayload(PinnedPayload):
    location: str
    player_name: str
    scores: list[int]
    user_email: str | None = None

    @field_validator("location")
    @classmethod
    def _clean_location(cls, value: str) -> str:
        cleaned = sanitize_text(value)
        _raise_if(_required_text_errors(cleaned, "Location", LOCATION_MAX))
        return cleaned

    @field_validator("player_name")
    @classmethod
    def _clean_player_name(cls, value: str) -> str:
        cleaned = sanitize_text(value)
        _raise_if(player_name_errors(cleaned))
        return cleaned

    @field_validator("scores")
    @classmethod
    def _check_scores(cls, value: list[int]) -> list[int]:
        _raise_if(score_errors(value))
        return value

    @field_validator("user_email")
    @classmethod
    def _clean_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return sanitize_text(value) or None


class ScoreUpdatePayload(ScorePayload):
    id: int

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Invalid score id")
        return value


class RankingRequest(BaseModel):
    location: str | None = None
