# tests/test_repository.py
import pytest

from wordduel.errors import NotAuthenticated, PersistenceError, RoomFull, RoomNotFound
from wordduel.models import HeadToHead as HeadToHeadORM
from wordduel.models import MatchResult as MatchResultORM
from wordduel.repository import DBRoomStore
from wordduel.room_store import HeadToHead, MatchParticipantState


@pytest.fixture
def repo(db_session):
    return DBRoomStore(db_session)


@pytest.fixture
def room(repo):
    alice = repo.create_or_get_user("alice")
    bob = repo.create_or_get_user("bob")
    created = repo.create_room(alice.id, "crane")
    return repo.join_room(created.code, bob.id)


def test_repository_flow(repo, room):
    alice_id, bob_id = room.player1_id, room.player2_id
    assert room.status == "playing"
    assert repo.get_room(room.id) == room

    # Progress (not finished)
    state = repo.report_state(room.id, bob_id, MatchParticipantState(bob_id, guess_count=2, green_count=1))
    assert state.status == "playing"
    assert state.completed_at is None

    # Finished
    state = repo.report_state(
        room.id, bob_id, MatchParticipantState(bob_id, guess_count=4, green_count=5, status="won")
    )
    assert state.completed_at is not None
    theirs = repo.get_opponent_state(room.id, alice_id)
    assert theirs.won
    assert theirs.guess_count == 4


def test_users_are_unique_by_name(repo):
    first = repo.create_or_get_user("alice")
    assert repo.create_or_get_user("alice") == first
    assert repo.get_user(first.id) == first
    with pytest.raises(NotAuthenticated):
        repo.get_user("nobody")


def test_join_rules(repo, room):
    carol = repo.create_or_get_user("carol")
    with pytest.raises(RoomFull):
        repo.join_room(room.code, carol.id)
    with pytest.raises(RoomNotFound):
        repo.join_room("ZZZZZZ", carol.id)
    with pytest.raises(NotAuthenticated):
        repo.report_state(room.id, carol.id, MatchParticipantState(carol.id))


def test_result_and_ledger_commit_together(repo, room, db_session):
    alice_id, bob_id = room.player1_id, room.player2_id
    repo.save_match_result(room.id, (alice_id, bob_id), bob_id, (7, 4), "crane")
    repo.save_match_result(room.id, (alice_id, bob_id), None, (3, 3), "ghost")

    assert repo.get_head_to_head(alice_id, bob_id) == HeadToHead(0, 1, 1, 2)
    assert repo.get_head_to_head(bob_id, alice_id) == HeadToHead(1, 0, 1, 2)
    assert db_session.query(MatchResultORM).count() == 2
    assert db_session.query(HeadToHeadORM).count() == 1


def test_foreign_winner_rolls_back(repo, room, db_session):
    with pytest.raises(ValueError):
        repo.save_match_result(room.id, (room.player1_id, room.player2_id), "carol", (3, 4), "crane")
    assert db_session.query(MatchResultORM).count() == 0
    assert repo.get_head_to_head(room.player1_id, room.player2_id) == HeadToHead()


def test_database_failure_is_a_persistence_error(repo, room, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(repo.db, "commit", broken_commit)
    with pytest.raises(PersistenceError):
        repo.update_user_stats(room.player1_id, True, 3)


def test_user_stats_round_trip(repo, room):
    alice_id = room.player1_id
    repo.update_user_stats(alice_id, True, 3)
    repo.update_user_stats(alice_id, True, 3)
    repo.update_user_stats(alice_id, False, 6)

    stats = repo.get_user_stats(alice_id)
    assert stats.games_played == 3
    assert stats.games_won == 2
    assert stats.current_streak == 0
    assert stats.max_streak == 2
    assert stats.guess_distribution[3] == 2


def test_next_puzzle_resets_progress_and_publishes(repo, room):
    seen = []
    repo.subscribe_to_room(room.id, seen.append)
    repo.report_state(room.id, room.player2_id, MatchParticipantState(room.player2_id, guess_count=6, status="lost"))

    updated = repo.start_next_puzzle(room.id, "GHOST")
    assert updated.current_word == "ghost"
    assert seen == [updated]
    assert repo.get_opponent_state(room.id, room.player1_id) == MatchParticipantState(room.player2_id)

    closed = repo.leave_room(room.id)
    assert closed.status == "finished"
    assert seen[-1] == closed


def test_push_from_report_state(repo, room):
    seen = []
    repo.subscribe_to_opponent_state(room.id, room.player1_id, seen.append)
    repo.report_state(room.id, room.player2_id, MatchParticipantState(room.player2_id, guess_count=1))
    repo.report_state(room.id, room.player1_id, MatchParticipantState(room.player1_id, guess_count=1))
    assert [s.participant_id for s in seen] == [room.player2_id]


def test_next_puzzle_counter_persists(repo, room):
    assert room.puzzle == 0
    repo.start_next_puzzle(room.id, "crane")
    assert repo.get_room(room.id).puzzle == 1
