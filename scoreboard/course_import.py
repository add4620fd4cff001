"""Turn golf course API records into 18-hole par profiles."""

import logging
from typing import Any

from scoreboard import db
from scoreboard.golf_api import fetch_course
from scoreboard.settings import DEFAULT_PAR, HOLES_PER_ROUND, PAR_MAX, PAR_MIN

logger = logging.getLogger(__name__)


class CourseImportError(Exception):
    pass


def _pick_tee(course: dict[str, Any], tee_name: str | None) -> dict[str, Any]:
    tees_payload = course.get("tees") or {}
    tees = []
    for gender in ("male", "female"):
        tees.extend(tees_payload.get(gender, []) or [])
    if not tees:
        raise CourseImportError(f"Course {course.get('id')} has no tees")
    if not tee_name:
        return tees[0]
    wanted = tee_name.strip().lower()
    for tee in tees:
        if (tee.get("tee_name") or "").strip().lower() == wanted:
            return tee
    raise CourseImportError(f"Course {course.get('id')} has no tee named {tee_name!r}")


def pars_from_course(course: dict[str, Any], tee_name: str | None = None) -> list[int]:
    holes = _pick_tee(course, tee_name).get("holes") or []
    if len(holes) < HOLES_PER_ROUND:
        raise CourseImportError(
            f"Course {course.get('id')} lists {len(holes)} holes, {HOLES_PER_ROUND} are required"
        )
    pars = []
    for hole in holes[:HOLES_PER_ROUND]:
        par = hole.get("par")
        if not isinstance(par, int) or not PAR_MIN <= par <= PAR_MAX:
            par = DEFAULT_PAR
        pars.append(par)
    return pars


def course_display_name(course: dict[str, Any]) -> str:
    club = (course.get("club_name") or "").strip()
    name = (course.get("course_name") or "").strip()
    if club and name and name.lower() not in club.lower():
        return f"{club} - {name}"
    return name or club or f"Course {course.get('id')}"


def import_course(
    database_url: str,
    course_id: int,
    api_key: str,
    tee_name: str | None = None,
    name: str | None = None,
) -> dict:
    course = fetch_course(course_id, api_key)
    pars = pars_from_course(course, tee_name)
    course_name = (name or "").strip() or course_display_name(course)
    existing = db.fetch_course_by_name(database_url, course_name)
    if existing:
        db.update_course(database_url, existing["name"], course_name, pars)
        action = "updated"
    else:
        db.insert_course(database_url, course_name, pars)
        action = "created"
    logger.info("Imported course %s (%s) from API id %s", course_name, action, course_id)
    return {
        "course_id": course["id"],
        "name": course_name,
        "pars": pars,
        "totalPar": sum(pars),
        "action": action,
    }
