from datetime import datetime, timezone

import psycopg
import pytest
from fastapi.testclient import TestClient

import scoreboard.main as main
from scoreboard.db import DuplicateCourseError
from scoreboard.ranking import PlayerRound
from scoreboard.settings import Settings

PARS = [4, 3, 5, 4, 6, 4, 5, 4, 5, 3, 6, 4, 5, 5, 4, 3, 5, 5]


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(
        main,
        "settings",
        Settings(
            database_url="postgresql://localhost/test",
            scoring_pin="9999",
            golf_api_key="",
        ),
    )
    monkeypatch.setattr(main, "ensure_schema", lambda *_: None)
    return TestClient(main.app)


def _score_payload(**overrides):
    payload = {
        "location": "Royal Lakeside",
        "player_name": "Anan Chai",
        "scores": [4] * 18,
        "pin": "9999",
    }
    payload.update(overrides)
    return payload


def test_index_redirects_to_standings(client, monkeypatch):
    monkeypatch.setattr(main, "fetch_courses", lambda *_: [])
    response = client.get("/", follow_redirects=False)
    assert response.status_code in (302, 307)
    assert response.headers["location"] == "/standings"


def test_ranking_requires_location(client):
    response = client.post("/api/calculate-ranking", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Location is required"


def test_ranking_null_location_is_missing(client):
    response = client.post("/api/calculate-ranking", json={"location": None})
    assert response.status_code == 400
    assert response.json()["error"] == "Location is required"


def test_ranking_unknown_course_is_not_found(client, monkeypatch):
    monkeypatch.setattr(main, "fetch_ranking_inputs", lambda *_: None)
    response = client.post("/api/calculate-ranking", json={"location": "Nowhere"})
    assert response.status_code == 404


def test_ranking_with_no_players_returns_empty_groups(client, monkeypatch):
    monkeypatch.setattr(main, "fetch_ranking_inputs", lambda *_: (PARS, []))
    response = client.post("/api/calculate-ranking", json={"location": "Royal Lakeside"})
    assert response.status_code == 200
    assert response.json() == {"groupA": [], "groupB": [], "groupC": [], "totalPar": sum(PARS)}


def test_ranking_groups_every_player_once(client, monkeypatch):
    players = [
        PlayerRound("Par Pat", list(PARS)),
        PlayerRound("Bogey Bo", [p + 1 for p in PARS]),
        PlayerRound("Double Dee", [p + 2 for p in PARS]),
    ]
    seen = {}

    def fake_inputs(database_url, location):
        seen["location"] = location
        return PARS, players

    monkeypatch.setattr(main, "fetch_ranking_inputs", fake_inputs)
    response = client.post("/api/calculate-ranking", json={"location": "  Royal Lakeside "})
    assert response.status_code == 200
    body = response.json()
    assert seen["location"] == "Royal Lakeside"
    assert body["totalPar"] == sum(PARS) == 80
    names = [entry["name"] for key in ("groupA", "groupB", "groupC") for entry in body[key]]
    assert sorted(names) == ["Bogey Bo", "Double Dee", "Par Pat"]
    assert body["groupA"][0]["name"] == "Par Pat"
    assert body["groupA"][0]["rank"] == 1


def test_ranking_rejects_malformed_rounds(client, monkeypatch):
    monkeypatch.setattr(
        main,
        "fetch_ranking_inputs",
        lambda *_: (PARS, [PlayerRound("Short Card", [4] * 9)]),
    )
    response = client.post("/api/calculate-ranking", json={"location": "Royal Lakeside"})
    assert response.status_code == 400
    assert "Short Card" in response.json()["details"]


def test_add_score_rejects_wrong_pin(client, monkeypatch):
    monkeypatch.setattr(main, "insert_score", lambda *_args, **_kwargs: 1)
    response = client.post("/api/scores", json=_score_payload(pin="0000"))
    assert response.status_code == 403


def test_add_score_validates_scores(client):
    response = client.post("/api/scores", json=_score_payload(scores=[4] * 17 + [25]))
    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "Invalid payload"
    assert "Hole 18" in body["details"][0]["msg"]


def test_add_score_rejects_invalid_json(client):
    response = client.post(
        "/api/scores",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 422


def test_add_score_stores_sanitized_values(client, monkeypatch):
    stored = {}

    def fake_insert(database_url, **kwargs):
        stored.update(kwargs)
        return 7

    monkeypatch.setattr(main, "insert_score", fake_insert)
    response = client.post(
        "/api/scores",
        json=_score_payload(player_name="  Anan Chai ", location="<Royal Lakeside> "),
    )
    assert response.status_code == 200
    assert response.json()["id"] == 7
    assert response.json()["totalScore"] == 72
    assert stored["player_name"] == "Anan Chai"
    assert stored["location"] == "Royal Lakeside"
    assert stored["email"] is None


def test_update_missing_score_is_not_found(client, monkeypatch):
    monkeypatch.setattr(main, "update_score", lambda *_args, **_kwargs: False)
    response = client.put("/api/scores", json=_score_payload(id=12))
    assert response.status_code == 404


def test_delete_score_requires_id(client):
    response = client.delete("/api/scores", params={"pin": "9999"})
    assert response.status_code == 400


def test_list_scores(client, monkeypatch):
    submitted = datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc)
    monkeypatch.setattr(
        main,
        "fetch_scores",
        lambda *_: [
            {
                "id": 1,
                "submitted_at": submitted,
                "email": "anonymous@example.com",
                "player_name": "Anan Chai",
                "scores": [4] * 18,
                "location": "Royal Lakeside",
            }
        ],
    )
    response = client.get("/api/scores")
    assert response.status_code == 200
    entry = response.json()["scores"][0]
    assert entry["playerName"] == "Anan Chai"
    assert entry["timestamp"] == submitted.isoformat()


def test_list_courses_includes_total_par(client, monkeypatch):
    monkeypatch.setattr(
        main,
        "fetch_courses",
        lambda *_: [{"id": 1, "name": "Royal Lakeside", "pars": PARS, "created_at": None}],
    )
    response = client.get("/api/courses")
    assert response.json() == {"courses": [{"name": "Royal Lakeside", "pars": PARS, "totalPar": sum(PARS)}]}


def test_add_duplicate_course_conflicts(client, monkeypatch):
    def duplicate(*_args, **_kwargs):
        raise DuplicateCourseError("exists")

    monkeypatch.setattr(main, "insert_course", duplicate)
    response = client.post("/api/courses", json={"name": "Royal Lakeside", "pars": PARS, "pin": "9999"})
    assert response.status_code == 409


def test_add_course_validates_pars(client):
    response = client.post(
        "/api/courses",
        json={"name": "Royal Lakeside", "pars": [4] * 17 + [7], "pin": "9999"},
    )
    assert response.status_code == 422


def test_delete_unknown_course(client, monkeypatch):
    monkeypatch.setattr(main, "delete_course", lambda *_: False)
    response = client.delete("/api/courses", params={"name": "Nowhere", "pin": "9999"})
    assert response.status_code == 404


def test_keep_alive_reports_ok_when_database_is_down(client, monkeypatch):
    def broken(*_args):
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(main, "ping", broken)
    response = client.get("/api/keep-alive")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["message"] == "Ping sent"


def test_course_search_maps_api_errors(client, monkeypatch):
    def failing(*_args):
        raise main.golf_api.GolfApiError("Missing Golf Course API key.")

    monkeypatch.setattr(main.golf_api, "search_courses", failing)
    response = client.get("/api/courses/search", params={"query": "pebble"})
    assert response.status_code == 502


def test_standings_page_lists_ranked_players(client, monkeypatch):
    monkeypatch.setattr(
        main,
        "fetch_courses",
        lambda *_: [{"id": 1, "name": "Royal Lakeside", "pars": PARS, "created_at": None}],
    )
    monkeypatch.setattr(
        main,
        "fetch_ranking_inputs",
        lambda *_: (PARS, [PlayerRound("Par Pat", list(PARS))]),
    )
    response = client.get("/standings")
    assert response.status_code == 200
    assert "Royal Lakeside" in response.text
    assert "Par Pat" in response.text
    assert f"Par {sum(PARS)}" in response.text


def test_standings_page_without_courses(client, monkeypatch):
    monkeypatch.setattr(main, "fetch_courses", lambda *_: [])
    response = client.get("/standings")
    assert response.status_code == 200
    assert "No courses have been set up yet." in response.text
