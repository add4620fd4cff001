from scoreboard import db
from scoreboard.ranking import PlayerRound


def test_coerce_pars_defaults_malformed_values_to_four():
    raw = ["5", "", None, "abc", 0, 3, "4.0"]
    pars = db.coerce_pars(raw)
    assert len(pars) == 18
    assert pars[:7] == [5, 4, 4, 4, 4, 3, 4]
    assert pars[7:] == [4] * 11


def test_coerce_pars_truncates_long_rows():
    assert db.coerce_pars([3] * 20) == [3] * 18


def test_coerce_scores_defaults_malformed_values_to_zero():
    scores = db.coerce_scores(["4", "x", None, 6.0, True])
    assert scores[:5] == [4, 0, 0, 6, 0]
    assert scores[5:] == [0] * 13


def test_coerce_non_finite_floats():
    assert db.coerce_scores([float("inf"), float("-inf"), float("nan")])[:3] == [0, 0, 0]
    assert db.coerce_pars([float("inf"), float("nan"), 5.0])[:3] == [4, 4, 5]


def test_coerce_scores_handles_missing_row():
    assert db.coerce_scores(None) == [0] * 18


def test_fetch_ranking_inputs_for_unknown_course(monkeypatch):
    monkeypatch.setattr(db, "fetch_course_by_name", lambda *_: None)
    assert db.fetch_ranking_inputs("postgresql://unused", "Nowhere") is None


def test_fetch_ranking_inputs_builds_player_rounds(monkeypatch):
    pars = [4] * 18
    monkeypatch.setattr(
        db,
        "fetch_course_by_name",
        lambda *_: {"id": 1, "name": "Royal Lakeside", "pars": pars, "created_at": None},
    )
    requested = {}

    def fake_scores(database_url, location=None):
        requested["location"] = location
        return [
            {"id": 1, "player_name": "Anan", "scores": [5] * 18},
            {"id": 2, "player_name": "", "scores": [4] * 18},
        ]

    monkeypatch.setattr(db, "fetch_scores", fake_scores)
    result = db.fetch_ranking_inputs("postgresql://unused", "royal lakeside")

    assert requested["location"] == "royal lakeside"
    assert result == (
        pars,
        [PlayerRound("Anan", [5] * 18), PlayerRound("Unknown", [4] * 18)],
    )
