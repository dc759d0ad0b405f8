"""
DB-backed room store that mirrors the in-memory InMemoryRoomStore API.

Public methods follow room_store.RoomStore. Results come back as the same
frozen records (Room, MatchParticipantState, HeadToHead, ...) so callers
never see ORM objects.

Push updates are delivered in-process through a SubscriptionHub after the
write commits.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from threading import RLock
from typing import Iterator, Optional, Tuple
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import NotAuthenticated, PersistenceError, RoomFull, RoomNotFound
from .models import GameState as GameStateORM
from .models import HeadToHead as HeadToHeadORM
from .models import MatchResult as MatchResultORM
from .models import Room as RoomORM
from .models import User as UserORM
from .models import UserStats as UserStatsORM
from .room_store import (
    HeadToHead, LedgerEntry, MatchParticipantState, MatchRecord, Room, RoomCallback,
    StateCallback, User, generate_room_code, ledger_key, opponent_filter,
)
from .stats import PlayerStats, apply_game
from .subscriptions import SubscriptionHandle, SubscriptionHub, room_topic, state_topic
from .types import Word

logger = logging.getLogger(__name__)


# --- Small builders so callers get plain records back ---

def _to_user(u: UserORM) -> User:
    return User(id=u.id, username=u.username)


def _to_room(r: RoomORM) -> Room:
    return Room(
        id=r.id,
        code=r.code,
        player1_id=r.player1_id,
        player2_id=r.player2_id,
        current_word=r.current_word,
        status=r.status,
        puzzle=r.puzzle,
    )


def _to_state(s: GameStateORM) -> MatchParticipantState:
    return MatchParticipantState(
        participant_id=s.user_id,
        guess_count=s.guess_count,
        green_count=s.green_count,
        yellow_count=s.yellow_count,
        status=s.status,
        completed_at=s.completed_at,
    )


def _to_stats(s: Optional[UserStatsORM]) -> PlayerStats:
    stats = PlayerStats()
    if s is None:
        return stats
    stats.games_played = s.games_played
    stats.games_won = s.games_won
    stats.current_streak = s.current_streak
    stats.max_streak = s.max_streak
    for key, count in (s.guess_distribution or {}).items():
        stats.guess_distribution[int(key)] = count
    return stats


class DBRoomStore:
    """Drop-in replacement for InMemoryRoomStore, backed by SQLAlchemy."""

    def __init__(self, db: Session, hub: Optional[SubscriptionHub] = None):
        self.db = db
        self.hub = hub or SubscriptionHub()
        # a Session is not thread safe; the poll thread and the caller share this one
        self._lock = RLock()

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        with self._lock:
            try:
                yield self.db
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                raise PersistenceError(str(exc)) from exc
            except Exception:
                self.db.rollback()
                raise

    # --- helpers ---

    def _user(self, user_id: str) -> UserORM:
        user = self.db.get(UserORM, user_id)
        if user is None:
            raise NotAuthenticated(f"Unknown user {user_id}")
        return user

    def _room(self, room_id: str) -> RoomORM:
        room = self.db.get(RoomORM, room_id)
        if room is None:
            raise RoomNotFound(f"Room {room_id} not found")
        return room

    def _state(self, room_id: str, user_id: str) -> Optional[GameStateORM]:
        return self.db.execute(
            select(GameStateORM).where(
                GameStateORM.room_id == room_id, GameStateORM.user_id == user_id
            )
        ).scalar_one_or_none()

    def _unique_code(self) -> str:
        while True:
            code = generate_room_code()
            taken = self.db.execute(select(RoomORM.id).where(RoomORM.code == code)).first()
            if taken is None:
                return code

    # --- users ---

    def create_or_get_user(self, username: str) -> User:
        name = username.strip()
        if not name:
            raise ValueError("Username must not be blank.")
        query = select(UserORM).where(UserORM.username == name)
        try:
            with self._transaction() as db:
                existing = db.execute(query).scalar_one_or_none()
                if existing is not None:
                    return _to_user(existing)
                user = UserORM(id=str(uuid4()), username=name, created_at=datetime.utcnow())
                db.add(user)
                created = _to_user(user)
            return created
        except PersistenceError as exc:
            # someone registered the same name first
            if not isinstance(exc.__cause__, IntegrityError):
                raise
            with self._transaction() as db:
                return _to_user(db.execute(query).scalar_one())

    def get_user(self, user_id: str) -> User:
        with self._transaction():
            return _to_user(self._user(user_id))

    # --- rooms ---

    def create_room(self, host_id: str, word: Word) -> Room:
        now = datetime.utcnow()
        with self._transaction() as db:
            self._user(host_id)
            room = RoomORM(
                id=str(uuid4()),
                code=self._unique_code(),
                player1_id=host_id,
                current_word=word.lower(),
                status="waiting",
                puzzle=0,
                created_at=now,
                updated_at=now,
            )
            db.add(room)
            db.add(GameStateORM(room_id=room.id, user_id=host_id, status="playing"))
            db.flush()
            created = _to_room(room)
        logger.info("Room %s created by %s", created.code, host_id)
        return created

    def join_room(self, code: str, player_id: str) -> Room:
        wanted = code.strip().upper()
        with self._transaction() as db:
            self._user(player_id)
            room = db.execute(select(RoomORM).where(RoomORM.code == wanted)).scalar_one_or_none()
            if room is None:
                raise RoomNotFound(f"No room with code {wanted}")
            if room.status != "waiting" or room.player1_id == player_id:
                raise RoomFull(f"Room {wanted} cannot be joined")
            room.player2_id = player_id
            room.status = "playing"
            room.updated_at = datetime.utcnow()
            db.add(GameStateORM(room_id=room.id, user_id=player_id, status="playing"))
            db.flush()
            joined = _to_room(room)
        logger.info("Player %s joined room %s", player_id, joined.code)
        self.hub.publish(room_topic(joined.id), joined)
        return joined

    def get_room(self, room_id: str) -> Room:
        with self._transaction():
            return _to_room(self._room(room_id))

    # --- progress ---

    def report_state(
        self, room_id: str, player_id: str, state: MatchParticipantState
    ) -> MatchParticipantState:
        with self._transaction() as db:
            room = self._room(room_id)
            if player_id not in (room.player1_id, room.player2_id):
                raise NotAuthenticated(f"{player_id} is not in room {room.code}")
            row = self._state(room_id, player_id)
            if row is None:
                row = GameStateORM(room_id=room_id, user_id=player_id)
                db.add(row)
            row.guess_count = state.guess_count
            row.green_count = state.green_count
            row.yellow_count = state.yellow_count
            row.status = state.status
            if state.status == "playing":
                row.completed_at = None
            else:
                row.completed_at = state.completed_at or datetime.utcnow()
            db.flush()
            reported = _to_state(row)
        self.hub.publish(state_topic(room_id), reported)
        return reported

    def get_opponent_state(self, room_id: str, my_id: str) -> Optional[MatchParticipantState]:
        with self._transaction():
            room = self._room(room_id)
            if my_id == room.player1_id:
                opponent_id = room.player2_id
            elif my_id == room.player2_id:
                opponent_id = room.player1_id
            else:
                opponent_id = None
            if opponent_id is None:
                return None
            row = self._state(room_id, opponent_id)
            return _to_state(row) if row is not None else None

    def subscribe_to_opponent_state(
        self, room_id: str, my_id: str, callback: StateCallback
    ) -> SubscriptionHandle:
        self.get_room(room_id)
        return self.hub.subscribe(state_topic(room_id), opponent_filter(my_id, callback))

    def subscribe_to_room(self, room_id: str, callback: RoomCallback) -> SubscriptionHandle:
        self.get_room(room_id)
        return self.hub.subscribe(room_topic(room_id), callback)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        self.hub.unsubscribe(handle)

    # --- results ---

    def save_match_result(
        self,
        room_id: str,
        player_ids: Tuple[str, str],
        winner_id: Optional[str],
        guess_counts: Tuple[int, int],
        word: Word,
    ) -> MatchRecord:
        player1_id, player2_id = player_ids
        low_id, high_id = ledger_key(player1_id, player2_id)
        now = datetime.utcnow()
        record_id = str(uuid4())
        # the result row and the ledger row commit together or not at all
        with self._transaction() as db:
            self._room(room_id)
            row = MatchResultORM(
                id=record_id,
                room_id=room_id,
                player1_id=player1_id,
                player2_id=player2_id,
                winner_id=winner_id,
                player1_guesses=guess_counts[0],
                player2_guesses=guess_counts[1],
                word=word,
                created_at=now,
            )
            db.add(row)

            ledger = db.execute(
                select(HeadToHeadORM)
                .where(
                    HeadToHeadORM.player_low_id == low_id,
                    HeadToHeadORM.player_high_id == high_id,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if ledger is None:
                ledger = HeadToHeadORM(
                    player_low_id=low_id, player_high_id=high_id,
                    wins_low=0, wins_high=0, draws=0, total_games=0,
                )
                db.add(ledger)

            entry = LedgerEntry(ledger.wins_low, ledger.wins_high, ledger.draws, ledger.total_games)
            entry.record(low_id, high_id, winner_id)
            ledger.wins_low = entry.wins_low
            ledger.wins_high = entry.wins_high
            ledger.draws = entry.draws
            ledger.total_games = entry.total

        logger.info("Saved match result for room %s (winner=%s)", room_id, winner_id)
        return MatchRecord(
            id=record_id,
            room_id=room_id,
            player1_id=player1_id,
            player2_id=player2_id,
            winner_id=winner_id,
            player1_guesses=guess_counts[0],
            player2_guesses=guess_counts[1],
            word=word,
            created_at=now,
        )

    def get_head_to_head(self, id_a: str, id_b: str) -> HeadToHead:
        low_id, high_id = ledger_key(id_a, id_b)
        with self._transaction() as db:
            ledger = db.get(HeadToHeadORM, (low_id, high_id))
            if ledger is None:
                return HeadToHead()
            entry = LedgerEntry(ledger.wins_low, ledger.wins_high, ledger.draws, ledger.total_games)
            return entry.oriented(id_a, id_b)

    # --- stats ---

    def update_user_stats(self, user_id: str, won: bool, guesses: int) -> PlayerStats:
        with self._transaction() as db:
            self._user(user_id)
            row = db.get(UserStatsORM, user_id)
            if row is None:
                row = UserStatsORM(
                    user_id=user_id, games_played=0, games_won=0,
                    current_streak=0, max_streak=0, guess_distribution={},
                )
                db.add(row)
            stats = apply_game(_to_stats(row), won, guesses)
            row.games_played = stats.games_played
            row.games_won = stats.games_won
            row.current_streak = stats.current_streak
            row.max_streak = stats.max_streak
            # reassign (not mutate) so the JSON column is marked dirty
            row.guess_distribution = {str(k): v for k, v in stats.guess_distribution.items()}
        return stats

    def get_user_stats(self, user_id: str) -> PlayerStats:
        with self._transaction() as db:
            return _to_stats(db.get(UserStatsORM, user_id))

    # --- puzzle flow ---

    def start_next_puzzle(self, room_id: str, new_word: Word) -> Room:
        with self._transaction() as db:
            room = self._room(room_id)
            room.current_word = new_word.lower()
            room.puzzle += 1
            if room.player2_id is not None:
                room.status = "playing"
            room.updated_at = datetime.utcnow()
            rows = db.execute(
                select(GameStateORM).where(GameStateORM.room_id == room_id)
            ).scalars().all()
            for row in rows:
                row.guess_count = 0
                row.green_count = 0
                row.yellow_count = 0
                row.status = "playing"
                row.completed_at = None
            db.flush()
            updated = _to_room(room)
        logger.info("Room %s moved to a new puzzle", updated.code)
        self.hub.publish(room_topic(room_id), updated)
        return updated

    def leave_room(self, room_id: str) -> Room:
        with self._transaction() as db:
            room = self._room(room_id)
            room.status = "finished"
            room.updated_at = datetime.utcnow()
            db.flush()
            updated = _to_room(room)
        logger.info("Room %s finished", updated.code)
        self.hub.publish(room_topic(room_id), updated)
        return updated
