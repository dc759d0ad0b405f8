"""
Testing API via TestClient
- Trick: temporarily replace dictionary.random_word so the target is predictable.
- Tool: pytest's "monkeypatch" fixture does that for just one test at a time.
"""

import pytest

import wordduel.main as app_main

MISSES = ["ghost", "robot", "lemon", "world", "sugar", "tiger"]


@pytest.fixture
def fixed_word(monkeypatch):
    # Patch the dictionary object main.py actually uses
    monkeypatch.setattr(app_main.dictionary, "random_word", lambda: "crane")
    return "crane"


def _user(client, name):
    response = client.post("/users", json={"username": name})
    assert response.status_code == 200
    return response.json()["id"]


# ---------------- Solo ----------------

def test_start_and_win_with_fixed_word(client, fixed_word):
    """
    Flow:
    1) Start a game; target is "crane" due to patch.
    2) Short guess -> 400, not a word -> 400, digits -> 422.
    3) Wrong word -> 200 + feedback, target still hidden.
    4) Winning guess -> 'won' and word revealed.
    """
    response = client.post("/games")
    assert response.status_code == 200
    new_game = response.json()
    assert "word" not in new_game
    assert new_game["attempts_left"] == 6
    game_id = new_game["game_id"]

    response = client.post(f"/games/{game_id}/guess", json={"guess": "cran"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Not enough letters"

    response = client.post(f"/games/{game_id}/guess", json={"guess": "xxxxx"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Not in word list"

    response = client.post(f"/games/{game_id}/guess", json={"guess": "cr4ne"})
    assert response.status_code == 422

    response = client.post(f"/games/{game_id}/guess", json={"guess": "Trace"})
    assert response.status_code == 200
    body = response.json()
    assert body["feedback"] == {
        "word": "trace",
        "evaluation": ["absent", "correct", "correct", "present", "correct"],
    }
    assert (body["green_count"], body["yellow_count"]) == (3, 1)
    assert body["attempts_left"] == 5
    assert body["word"] is None

    response = client.post(f"/games/{game_id}/guess", json={"guess": "crane"})
    assert response.status_code == 200
    final = response.json()
    assert final["status"] == "won"
    assert final["word"] == "crane"


def test_cannot_guess_after_game_finished(client, fixed_word):
    game_id = client.post("/games").json()["game_id"]
    assert client.post(f"/games/{game_id}/guess", json={"guess": "crane"}).status_code == 200

    response = client.post(f"/games/{game_id}/guess", json={"guess": "crane"})
    assert response.status_code == 409

    state = client.get(f"/games/{game_id}").json()
    assert state["status"] == "won"
    assert state["attempts_left"] == 5
    assert len(state["history"]) == 1


def test_game_state_and_unknown_game(client, fixed_word):
    game_id = client.post("/games").json()["game_id"]
    client.post(f"/games/{game_id}/guess", json={"guess": "trace"})

    state = client.get(f"/games/{game_id}").json()
    assert state["word"] is None
    assert state["letters"]["r"] == "correct"
    assert state["letters"]["t"] == "absent"

    assert client.get("/games/nope").status_code == 404
    assert client.post("/games/nope/guess", json={"guess": "crane"}).status_code == 404


def test_hard_mode_game(client, fixed_word):
    game_id = client.post("/games?hard_mode=true").json()["game_id"]
    client.post(f"/games/{game_id}/guess", json={"guess": "trace"})

    response = client.post(f"/games/{game_id}/guess", json={"guess": "ghost"})
    assert response.status_code == 400
    assert response.json()["detail"] == "2nd letter must be R"


def test_stats_after_a_loss(client, fixed_word):
    """
    Flow:
    1) Reset scoreboard.
    2) Make 6 wrong guesses to force a loss.
    3) Check /stats reflects a loss.
    """
    assert client.post("/stats/reset").status_code == 200

    gid = client.post("/games").json()["game_id"]
    for word in MISSES:
        r = client.post(f"/games/{gid}/guess", json={"guess": word})
        assert r.status_code == 200
    assert r.json()["status"] == "lost"
    assert r.json()["word"] == "crane"

    stats = client.get("/stats").json()
    assert stats["games_played"] == 1
    assert stats["games_won"] == 0
    assert stats["current_streak"] == 0
    assert stats["win_rate"] == 0.0


# ---------------- Rooms ----------------

def test_room_flow(client, fixed_word):
    alice = _user(client, "alice")
    bob = _user(client, "bob")
    assert _user(client, "alice") == alice

    room = client.post("/rooms", json={"host_id": alice}).json()
    assert room["status"] == "waiting"
    assert "current_word" not in room
    room_id = room["id"]

    joined = client.post("/rooms/join", json={"code": room["code"], "player_id": bob})
    assert joined.status_code == 200
    assert joined.json()["status"] == "playing"
    assert joined.json()["player2_id"] == bob

    # Bob wins in 3
    response = client.put(
        f"/rooms/{room_id}/players/{bob}/state",
        json={"guess_count": 3, "green_count": 5, "status": "won"},
    )
    assert response.status_code == 200
    assert response.json()["completed_at"] is not None

    theirs = client.get(f"/rooms/{room_id}/opponent", params={"player_id": alice}).json()
    assert theirs["participant_id"] == bob
    assert theirs["status"] == "won"

    result = client.post(
        f"/rooms/{room_id}/result",
        json={
            "player1_id": alice, "player2_id": bob, "winner_id": bob,
            "player1_guesses": 7, "player2_guesses": 3, "word": "CRANE",
        },
    )
    assert result.status_code == 200
    assert result.json()["word"] == "crane"

    h2h = client.get("/head-to-head", params={"a": bob, "b": alice}).json()
    assert h2h == {"wins_a": 1, "wins_b": 0, "draws": 0, "total": 1}

    nxt = client.post(f"/rooms/{room_id}/next")
    assert nxt.status_code == 200
    theirs = client.get(f"/rooms/{room_id}/opponent", params={"player_id": alice}).json()
    assert theirs["status"] == "playing"

    left = client.post(f"/rooms/{room_id}/leave")
    assert left.json()["status"] == "finished"


def test_room_errors(client, fixed_word):
    alice = _user(client, "alice")
    bob = _user(client, "bob")
    carol = _user(client, "carol")

    assert client.post("/rooms", json={"host_id": "nobody"}).status_code == 401
    room = client.post("/rooms", json={"host_id": alice}).json()

    assert client.post("/rooms/join", json={"code": "ZZZZZZ", "player_id": bob}).status_code == 404
    assert client.post("/rooms/join", json={"code": room["code"], "player_id": alice}).status_code == 409
    client.post("/rooms/join", json={"code": room["code"], "player_id": bob})
    assert client.post("/rooms/join", json={"code": room["code"], "player_id": carol}).status_code == 409

    response = client.put(f"/rooms/{room['id']}/players/{carol}/state", json={"guess_count": 1})
    assert response.status_code == 401

    response = client.post(
        f"/rooms/{room['id']}/result",
        json={
            "player1_id": bob, "player2_id": alice, "winner_id": None,
            "player1_guesses": 7, "player2_guesses": 7, "word": "crane",
        },
    )
    assert response.status_code == 400

    assert client.get("/rooms/missing").status_code == 404
    assert client.get("/head-to-head", params={"a": alice, "b": alice}).status_code == 400


def test_user_stats_endpoint(client):
    alice = _user(client, "alice")
    stats = client.get(f"/users/{alice}/stats").json()
    assert stats["games_played"] == 0
    assert stats["guess_distribution"] == {str(n): 0 for n in range(1, 7)}
    assert client.get("/users/nobody/stats").status_code == 401
