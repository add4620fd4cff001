import logging
import math
from typing import Any, Iterable, Optional

import psycopg

from scoreboard.ranking import PlayerRound
from scoreboard.settings import ANONYMOUS_EMAIL, DEFAULT_PAR, HOLES_PER_ROUND

logger = logging.getLogger(__name__)


class DuplicateCourseError(Exception):
    pass


def ensure_schema(database_url: str) -> None:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                create table if not exists courses (
                    id serial primary key,
                    name text not null,
                    pars integer[] not null,
                    created_at timestamptz not null default now()
                );
                """
            )
            cur.execute(
                """
                create unique index if not exists courses_name_key
                on courses (lower(trim(name)));
                """
            )
            cur.execute(
                """
                create table if not exists score_submissions (
                    id serial primary key,
                    submitted_at timestamptz not null default now(),
                    email text not null,
                    player_name text not null,
                    scores integer[] not null,
                    location text not null
                );
                """
            )


def ping(database_url: str) -> bool:
    with psycopg.connect(database_url, connect_timeout=5) as conn:
        with conn.cursor() as cur:
            cur.execute("select 1;")
            return cur.fetchone() is not None


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip() if value is not None else ""
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (OverflowError, ValueError):
        return None


def _fit_round(values: Optional[Iterable[Any]]) -> list[Any]:
    fitted = list(values or [])[:HOLES_PER_ROUND]
    fitted.extend([None] * (HOLES_PER_ROUND - len(fitted)))
    return fitted


def coerce_pars(values: Optional[Iterable[Any]]) -> list[int]:
    pars = []
    for value in _fit_round(values):
        parsed = _parse_int(value)
        pars.append(parsed if parsed else DEFAULT_PAR)
    return pars


def coerce_scores(values: Optional[Iterable[Any]]) -> list[int]:
    scores = []
    for value in _fit_round(values):
        parsed = _parse_int(value)
        scores.append(parsed if parsed is not None else 0)
    return scores


def _row_to_course(row: tuple) -> dict:
    return {
        "id": row[0],
        "name": row[1],
        "pars": coerce_pars(row[2]),
        "created_at": row[3],
    }


def _row_to_score(row: tuple) -> dict:
    return {
        "id": row[0],
        "submitted_at": row[1],
        "email": row[2],
        "player_name": row[3],
        "scores": coerce_scores(row[4]),
        "location": row[5],
    }


def fetch_courses(database_url: str) -> list[dict]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                select id, name, pars, created_at
                from courses
                order by id;
                """
            )
            return [_row_to_course(row) for row in cur.fetchall()]


def fetch_course_by_name(database_url: str, name: str) -> Optional[dict]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                select id, name, pars, created_at
                from courses
                where lower(trim(name)) = lower(trim(%s))
                limit 1;
                """,
                (name,),
            )
            row = cur.fetchone()
            return _row_to_course(row) if row else None


def insert_course(database_url: str, name: str, pars: list[int]) -> int:
    try:
        with psycopg.connect(database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into courses (name, pars)
                    values (%s, %s)
                    returning id;
                    """,
                    (name, pars),
                )
                row = cur.fetchone()
    except psycopg.errors.UniqueViolation as exc:
        raise DuplicateCourseError(f"Course {name!r} already exists") from exc
    logger.info("Added course %s", name)
    return row[0] if row else 0


def update_course(database_url: str, old_name: str, name: str, pars: list[int]) -> bool:
    try:
        with psycopg.connect(database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    update courses
                    set name = %s,
                        pars = %s
                    where lower(trim(name)) = lower(trim(%s))
                    returning id;
                    """,
                    (name, pars, old_name),
                )
                updated = cur.fetchone() is not None
    except psycopg.errors.UniqueViolation as exc:
        raise DuplicateCourseError(f"Course {name!r} already exists") from exc
    if updated:
        logger.info("Updated course %s -> %s", old_name, name)
    return updated


def delete_course(database_url: str, name: str) -> bool:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                delete from courses
                where lower(trim(name)) = lower(trim(%s))
                returning id;
                """,
                (name,),
            )
            deleted = cur.fetchone() is not None
    if deleted:
        logger.info("Deleted course %s", name)
    return deleted


def fetch_scores(database_url: str, location: Optional[str] = None) -> list[dict]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            query = """
                select id, submitted_at, email, player_name, scores, location
                from score_submissions
            """
            params: tuple = ()
            if location is not None:
                query += "\n                where lower(trim(location)) = lower(trim(%s))"
                params = (location,)
            query += "\n                order by id;"
            cur.execute(query, params)
            return [_row_to_score(row) for row in cur.fetchall()]


def insert_score(
    database_url: str,
    player_name: str,
    scores: list[int],
    location: str,
    email: Optional[str] = None,
) -> Optional[int]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                insert into score_submissions (email, player_name, scores, location)
                values (%s, %s, %s, %s)
                returning id;
                """,
                (email or ANONYMOUS_EMAIL, player_name, scores, location),
            )
            row = cur.fetchone()
    logger.info("Added score for %s at %s", player_name, location)
    return row[0] if row else None


def update_score(
    database_url: str,
    score_id: int,
    player_name: str,
    scores: list[int],
    location: str,
) -> bool:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                update score_submissions
                set player_name = %s,
                    scores = %s,
                    location = %s
                where id = %s
                returning id;
                """,
                (player_name, scores, location, score_id),
            )
            updated = cur.fetchone() is not None
    if updated:
        logger.info("Updated score %s for %s", score_id, player_name)
    return updated


def delete_score(database_url: str, score_id: int) -> bool:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                "delete from score_submissions where id = %s returning id;",
                (score_id,),
            )
            deleted = cur.fetchone() is not None
    if deleted:
        logger.info("Deleted score %s", score_id)
    return deleted


def fetch_ranking_inputs(
    database_url: str, location: str
) -> Optional[tuple[list[int], list[PlayerRound]]]:
    course = fetch_course_by_name(database_url, location)
    if not course:
        return None
    players = [
        PlayerRound(name=entry["player_name"] or "Unknown", scores=entry["scores"])
        for entry in fetch_scores(database_url, location)
    ]
    return course["pars"], players
