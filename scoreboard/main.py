import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

import psycopg
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, ValidationError

from scoreboard import golf_api
from scoreboard.course_import import CourseImportError, import_course
from scoreboard.db import (
    DuplicateCourseError,
    delete_course,
    delete_score,
    ensure_schema,
    fetch_courses,
    fetch_ranking_inputs,
    fetch_scores,
    insert_course,
    insert_score,
    ping,
    update_course,
    update_score,
)
from scoreboard.ranking import RankingInputError, RankingResult, calculate_ranking
from scoreboard.schemas import (
    CoursePayload,
    CourseUpdatePayload,
    RankingRequest,
    ScorePayload,
    ScoreUpdatePayload,
    sanitize_text,
)
from scoreboard.settings import load_settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
GROUP_LABELS = {
    "groupA": "Group A (handicap 12 and under)",
    "groupB": "Group B (handicap 12.1 - 24)",
    "groupC": "Group C (handicap 24.1 - 36)",
}

app = FastAPI(title="Golf Scoreboard")

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
settings = load_settings()

PayloadModel = TypeVar("PayloadModel", bound=BaseModel)


class InvalidPayload(Exception):
    def __init__(self, details: list[dict]):
        super().__init__("Invalid payload")
        self.details = details


@app.exception_handler(InvalidPayload)
async def invalid_payload_handler(request: Request, exc: InvalidPayload):
    return JSONResponse({"error": "Invalid payload", "details": exc.details}, status_code=422)


async def _read_payload(request: Request, model: type[PayloadModel]) -> PayloadModel:
    try:
        return model.model_validate(await request.json())
    except ValidationError as exc:
        raise InvalidPayload(
            [{"loc": list(error["loc"]), "msg": error["msg"]} for error in exc.errors()]
        )
    except ValueError:
        raise InvalidPayload([{"loc": ["body"], "msg": "Body must be valid JSON"}])


def _pin_rejected(pin: str | None) -> JSONResponse | None:
    if pin != settings.scoring_pin:
        return JSONResponse({"error": "Invalid PIN"}, status_code=403)
    return None


def _course_summary(course: dict) -> dict:
    return {"name": course["name"], "pars": course["pars"], "totalPar": sum(course["pars"])}


def _rank_location(location: str) -> RankingResult | None:
    inputs = fetch_ranking_inputs(settings.database_url, location)
    if inputs is None:
        return None
    pars, players = inputs
    return calculate_ranking(pars, players)


def _resolve_standings_location(location: str | None, courses: list[dict]) -> str:
    cleaned = sanitize_text(location or "")
    if cleaned:
        return cleaned
    if settings.default_location:
        return settings.default_location
    return courses[0]["name"] if courses else ""


@app.on_event("startup")
def startup() -> None:
    ensure_schema(settings.database_url)


@app.get("/", response_class=RedirectResponse)
async def index():
    return RedirectResponse(url="/standings")


@app.get("/standings", response_class=HTMLResponse)
async def standings_page(request: Request, location: str | None = None):
    courses = fetch_courses(settings.database_url)
    selected = _resolve_standings_location(location, courses)
    ranking = _rank_location(selected) if selected else None
    groups = []
    if ranking:
        payload = ranking.as_dict()
        groups = [
            {"key": key, "label": label, "players": payload[key]}
            for key, label in GROUP_LABELS.items()
        ]
    return templates.TemplateResponse(
        request,
        "standings.html",
        {
            "courses": [_course_summary(course) for course in courses],
            "location": selected,
            "course_found": ranking is not None,
            "total_par": ranking.total_par if ranking else None,
            "groups": groups,
            "refresh_seconds": settings.refresh_interval_seconds,
            "updated_at": datetime.now(timezone.utc),
        },
    )


@app.get("/api/keep-alive")
async def api_keep_alive():
    try:
        alive = ping(settings.database_url)
    except psycopg.Error as exc:
        logger.warning("Keep-alive ping failed: %s", exc)
        alive = False
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": "Database is alive" if alive else "Ping sent",
    }


@app.get("/api/courses")
async def api_courses():
    return {"courses": [_course_summary(course) for course in fetch_courses(settings.database_url)]}


@app.post("/api/courses")
async def api_add_course(request: Request):
    payload = await _read_payload(request, CoursePayload)
    rejected = _pin_rejected(payload.pin)
    if rejected:
        return rejected
    try:
        course_id = insert_course(settings.database_url, payload.name, payload.pars)
    except DuplicateCourseError:
        return JSONResponse({"error": "Course already exists"}, status_code=409)
    return {"success": True, "id": course_id, "message": "Course added"}


@app.put("/api/courses")
async def api_update_course(request: Request):
    payload = await _read_payload(request, CourseUpdatePayload)
    rejected = _pin_rejected(payload.pin)
    if rejected:
        return rejected
    try:
        updated = update_course(settings.database_url, payload.old_name, payload.name, payload.pars)
    except DuplicateCourseError:
        return JSONResponse({"error": "Course already exists"}, status_code=409)
    if not updated:
        raise HTTPException(status_code=404, detail="Course not found")
    return {"success": True, "message": "Course updated"}


@app.delete("/api/courses")
async def api_delete_course(name: str = "", pin: str = ""):
    rejected = _pin_rejected(pin)
    if rejected:
        return rejected
    cleaned = sanitize_text(name)
    if not cleaned:
        raise HTTPException(status_code=400, detail="Course name is required")
    if not delete_course(settings.database_url, cleaned):
        raise HTTPException(status_code=404, detail="Course not found")
    return {"success": True, "message": "Course deleted"}


@app.get("/api/courses/search")
async def api_course_search(query: str):
    try:
        results = golf_api.search_courses(query, settings.golf_api_key)
    except golf_api.GolfApiError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return results


@app.post("/api/courses/import/{course_id}")
async def api_course_import(
    course_id: int,
    pin: str = "",
    tee: str | None = None,
    name: str | None = None,
):
    rejected = _pin_rejected(pin)
    if rejected:
        return rejected
    try:
        summary = import_course(
            settings.database_url,
            course_id,
            settings.golf_api_key,
            tee_name=tee,
            name=sanitize_text(name) if name else None,
        )
    except (golf_api.GolfApiError, CourseImportError) as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return summary


@app.get("/api/scores")
async def api_scores(location: str | None = None):
    cleaned = sanitize_text(location) if location else None
    scores = fetch_scores(settings.database_url, cleaned or None)
    return {
        "scores": [
            {
                "id": entry["id"],
                "timestamp": entry["submitted_at"].isoformat() if entry["submitted_at"] else "",
                "email": entry["email"],
                "playerName": entry["player_name"],
                "scores": entry["scores"],
                "location": entry["location"],
            }
            for entry in scores
        ]
    }


@app.post("/api/scores")
async def api_add_score(request: Request):
    payload = await _read_payload(request, ScorePayload)
    rejected = _pin_rejected(payload.pin)
    if rejected:
        return rejected
    record_id = insert_score(
        settings.database_url,
        player_name=payload.player_name,
        scores=payload.scores,
        location=payload.location,
        email=payload.user_email,
    )
    return {
        "success": True,
        "id": record_id,
        "totalScore": sum(payload.scores),
        "message": "Score added successfully",
    }


@app.put("/api/scores")
async def api_update_score(request: Request):
    payload = await _read_payload(request, ScoreUpdatePayload)
    rejected = _pin_rejected(payload.pin)
    if rejected:
        return rejected
    updated = update_score(
        settings.database_url,
        payload.id,
        player_name=payload.player_name,
        scores=payload.scores,
        location=payload.location,
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Score not found")
    return {"success": True, "message": "Score updated successfully"}


@app.delete("/api/scores")
async def api_delete_score(id: int | None = None, pin: str = ""):
    rejected = _pin_rejected(pin)
    if rejected:
        return rejected
    if id is None or id < 1:
        raise HTTPException(status_code=400, detail="Invalid score id")
    if not delete_score(settings.database_url, id):
        raise HTTPException(status_code=404, detail="Score not found")
    return {"success": True, "message": "Score deleted successfully"}


@app.post("/api/calculate-ranking")
async def api_calculate_ranking(request: Request):
    payload = await _read_payload(request, RankingRequest)
    location = sanitize_text(payload.location or "")
    if not location:
        return JSONResponse({"error": "Location is required"}, status_code=400)
    try:
        ranking = _rank_location(location)
    except RankingInputError as exc:
        return JSONResponse({"error": "Failed to calculate ranking", "details": str(exc)}, status_code=400)
    if ranking is None:
        return JSONResponse({"error": "Course not found for this location"}, status_code=404)
    return ranking.as_dict()
