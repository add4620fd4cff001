import logging
import os
from typing import Any

import requests

logger = logging.getLogger(__name__)

API_BASE = "https://api.golfcourseapi.com/v1"


class GolfApiError(Exception):
    pass


def _headers(api_key: str) -> dict[str, str]:
    key = api_key or os.getenv("GOLF_API_KEY", "")
    if not key:
        raise GolfApiError("Missing Golf Course API key.")
    return {"Authorization": f"Key {key}"}


def _get(url: str, api_key: str, timeout: int, **kwargs: Any) -> requests.Response:
    try:
        return requests.get(url, headers=_headers(api_key), timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        logger.warning("Golf course API request to %s failed: %s", url, exc)
        raise GolfApiError(f"Golf course API unreachable: {exc}") from exc


def search_courses(query: str, api_key: str) -> dict[str, Any]:
    if not query:
        return {"courses": []}
    response = _get(f"{API_BASE}/search", api_key, 15, params={"search_query": query})
    if response.status_code != 200:
        logger.warning("Course search for %r returned %s", query, response.status_code)
        raise GolfApiError(f"Search failed: {response.status_code} {response.text}")
    return response.json()


def fetch_course(course_id: int, api_key: str) -> dict[str, Any]:
    response = _get(f"{API_BASE}/courses/{course_id}", api_key, 20)
    if response.status_code != 200:
        logger.warning("Course fetch for id %s returned %s", course_id, response.status_code)
        raise GolfApiError(f"Course fetch failed: {response.status_code} {response.text}")
    payload = response.json()
    if not isinstance(payload, dict) or "course" not in payload:
        raise GolfApiError(
            f"Course fetch returned unexpected payload for id {course_id}: {response.text}"
        )
    course = payload["course"]
    if not isinstance(course, dict) or "id" not in course:
        raise GolfApiError(
            f"Course fetch returned unexpected course data for id {course_id}: {response.text}"
        )
    return course
