"""
Room store: where the two players of a match meet.

The core only talks to the `RoomStore` protocol. `InMemoryRoomStore` is the
process-local implementation (tests, offline play); `repository.DBRoomStore`
is the durable one.

Room lifecycle: waiting (host only) -> playing (two players, shared word)
-> finished (someone left).
"""

import logging
import secrets
from copy import deepcopy
from dataclasses import dataclass, field, replace
from datetime import datetime
from threading import RLock
from typing import Callable, Dict, List, Optional, Protocol, Tuple
from uuid import uuid4

from .errors import NotAuthenticated, RoomFull, RoomNotFound
from .stats import PlayerStats, apply_game
from .subscriptions import SubscriptionHandle, SubscriptionHub, room_topic, state_topic
from .types import ParticipantStatus, RoomStatus, Word

logger = logging.getLogger(__name__)

# No 0/O or 1/I, they are easy to misread when a code is shared aloud
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 6


def generate_room_code() -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def ledger_key(id_a: str, id_b: str) -> Tuple[str, str]:
    """Same key whichever order the two ids come in."""
    return (id_a, id_b) if id_a <= id_b else (id_b, id_a)


@dataclass(frozen=True)
class User:
    id: str
    username: str


@dataclass(frozen=True)
class Room:
    id: str
    code: str
    player1_id: str  # host; the only player that writes match results
    current_word: Word
    status: RoomStatus = "waiting"
    player2_id: Optional[str] = None
    # bumped by every start_next_puzzle, even when the word repeats
    puzzle: int = 0

    def opponent_of(self, player_id: str) -> Optional[str]:
        if player_id == self.player1_id:
            return self.player2_id
        if player_id == self.player2_id:
            return self.player1_id
        return None

    def has_player(self, player_id: str) -> bool:
        return player_id in (self.player1_id, self.player2_id)


@dataclass(frozen=True)
class MatchParticipantState:
    participant_id: str
    guess_count: int = 0
    green_count: int = 0
    yellow_count: int = 0
    status: ParticipantStatus = "playing"
    completed_at: Optional[datetime] = None

    @property
    def terminal(self) -> bool:
        return self.status != "playing"

    @property
    def won(self) -> bool:
        return self.status == "won"


@dataclass(frozen=True)
class HeadToHead:
    """Scores between two players, oriented to the order they were asked in."""

    wins_a: int = 0
    wins_b: int = 0
    draws: int = 0
    total: int = 0


@dataclass(frozen=True)
class MatchRecord:
    id: str
    room_id: str
    player1_id: str
    player2_id: str
    winner_id: Optional[str]
    player1_guesses: int
    player2_guesses: int
    word: Word
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class LedgerEntry:
    """Head-to-head counters stored under the sorted id pair (low, high)."""

    wins_low: int = 0
    wins_high: int = 0
    draws: int = 0
    total: int = 0

    def record(self, low_id: str, high_id: str, winner_id: Optional[str]) -> None:
        if winner_id is None:
            self.draws += 1
        elif winner_id == low_id:
            self.wins_low += 1
        elif winner_id == high_id:
            self.wins_high += 1
        else:
            raise ValueError(f"Winner {winner_id} did not play this match.")
        self.total += 1

    def oriented(self, id_a: str, id_b: str) -> HeadToHead:
        if id_a <= id_b:
            return HeadToHead(self.wins_low, self.wins_high, self.draws, self.total)
        return HeadToHead(self.wins_high, self.wins_low, self.draws, self.total)


RoomCallback = Callable[[Room], None]
StateCallback = Callable[[MatchParticipantState], None]


class RoomStore(Protocol):
    def create_or_get_user(self, username: str) -> User: ...

    def get_user(self, user_id: str) -> User: ...

    def create_room(self, host_id: str, word: Word) -> Room: ...

    def join_room(self, code: str, player_id: str) -> Room: ...

    def get_room(self, room_id: str) -> Room: ...

    def report_state(
        self, room_id: str, player_id: str, state: MatchParticipantState
    ) -> MatchParticipantState: ...

    def get_opponent_state(self, room_id: str, my_id: str) -> Optional[MatchParticipantState]: ...

    def subscribe_to_opponent_state(
        self, room_id: str, my_id: str, callback: StateCallback
    ) -> SubscriptionHandle: ...

    def subscribe_to_room(self, room_id: str, callback: RoomCallback) -> SubscriptionHandle: ...

    def unsubscribe(self, handle: SubscriptionHandle) -> None: ...

    def save_match_result(
        self,
        room_id: str,
        player_ids: Tuple[str, str],
        winner_id: Optional[str],
        guess_counts: Tuple[int, int],
        word: Word,
    ) -> MatchRecord: ...

    def get_head_to_head(self, id_a: str, id_b: str) -> HeadToHead: ...

    def update_user_stats(self, user_id: str, won: bool, guesses: int) -> PlayerStats: ...

    def get_user_stats(self, user_id: str) -> PlayerStats: ...

    def start_next_puzzle(self, room_id: str, new_word: Word) -> Room: ...

    def leave_room(self, room_id: str) -> Room: ...


def opponent_filter(my_id: str, callback: StateCallback) -> StateCallback:
    """Wrap a state callback so it only sees the other player's updates."""

    def deliver(state: MatchParticipantState) -> None:
        if state.participant_id != my_id:
            callback(state)

    return deliver


class InMemoryRoomStore:
    """Room store held in process memory. Thread safe; pushes through a SubscriptionHub."""

    def __init__(self, hub: Optional[SubscriptionHub] = None) -> None:
        self.hub = hub or SubscriptionHub()
        self._lock = RLock()
        self._users: Dict[str, User] = {}
        self._rooms: Dict[str, Room] = {}
        # (room_id, player_id) -> latest reported state
        self._states: Dict[Tuple[str, str], MatchParticipantState] = {}
        self._results: List[MatchRecord] = []
        self._ledger: Dict[Tuple[str, str], LedgerEntry] = {}
        self._stats: Dict[str, PlayerStats] = {}

    # --- users ---

    def create_or_get_user(self, username: str) -> User:
        name = username.strip()
        if not name:
            raise ValueError("Username must not be blank.")
        with self._lock:
            for user in self._users.values():
                if user.username == name:
                    return user
            user = User(id=str(uuid4()), username=name)
            self._users[user.id] = user
            return user

    def get_user(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise NotAuthenticated(f"Unknown user {user_id}")
        return user

    # --- rooms ---

    def _room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound(f"Room {room_id} not found")
        return room

    def _unique_code(self) -> str:
        taken = {room.code for room in self._rooms.values()}
        while True:
            code = generate_room_code()
            if code not in taken:
                return code

    def create_room(self, host_id: str, word: Word) -> Room:
        self.get_user(host_id)
        with self._lock:
            room = Room(
                id=str(uuid4()),
                code=self._unique_code(),
                player1_id=host_id,
                current_word=word.lower(),
            )
            self._rooms[room.id] = room
            self._states[(room.id, host_id)] = MatchParticipantState(participant_id=host_id)
        logger.info("Room %s created by %s", room.code, host_id)
        return room

    def join_room(self, code: str, player_id: str) -> Room:
        self.get_user(player_id)
        wanted = code.strip().upper()
        with self._lock:
            room = next((r for r in self._rooms.values() if r.code == wanted), None)
            if room is None:
                raise RoomNotFound(f"No room with code {wanted}")
            if room.status != "waiting" or room.player1_id == player_id:
                raise RoomFull(f"Room {wanted} cannot be joined")
            room = replace(room, player2_id=player_id, status="playing")
            self._rooms[room.id] = room
            self._states[(room.id, player_id)] = MatchParticipantState(participant_id=player_id)
        logger.info("Player %s joined room %s", player_id, room.code)
        self.hub.publish(room_topic(room.id), room)
        return room

    def get_room(self, room_id: str) -> Room:
        with self._lock:
            return self._room(room_id)

    # --- progress ---

    def report_state(
        self, room_id: str, player_id: str, state: MatchParticipantState
    ) -> MatchParticipantState:
        with self._lock:
            room = self._room(room_id)
            if not room.has_player(player_id):
                raise NotAuthenticated(f"{player_id} is not in room {room.code}")
            if state.participant_id != player_id:
                state = replace(state, participant_id=player_id)
            if state.terminal and state.completed_at is None:
                state = replace(state, completed_at=datetime.utcnow())
            self._states[(room_id, player_id)] = state
        self.hub.publish(state_topic(room_id), state)
        return state

    def get_opponent_state(self, room_id: str, my_id: str) -> Optional[MatchParticipantState]:
        with self._lock:
            room = self._room(room_id)
            opponent_id = room.opponent_of(my_id)
            if opponent_id is None:
                return None
            return self._states.get((room_id, opponent_id))

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
        with self._lock:
            self._room(room_id)
            record = MatchRecord(
                id=str(uuid4()),
                room_id=room_id,
                player1_id=player1_id,
                player2_id=player2_id,
                winner_id=winner_id,
                player1_guesses=guess_counts[0],
                player2_guesses=guess_counts[1],
                word=word,
            )
            # result row and ledger move together
            key = ledger_key(player1_id, player2_id)
            entry = deepcopy(self._ledger.get(key, LedgerEntry()))
            entry.record(key[0], key[1], winner_id)
            self._ledger[key] = entry
            self._results.append(record)
        logger.info("Saved match result for room %s (winner=%s)", room_id, winner_id)
        return record

    def match_results(self, room_id: Optional[str] = None) -> List[MatchRecord]:
        with self._lock:
            return [r for r in self._results if room_id is None or r.room_id == room_id]

    def get_head_to_head(self, id_a: str, id_b: str) -> HeadToHead:
        with self._lock:
            entry = self._ledger.get(ledger_key(id_a, id_b), LedgerEntry())
            return entry.oriented(id_a, id_b)

    # --- stats ---

    def update_user_stats(self, user_id: str, won: bool, guesses: int) -> PlayerStats:
        self.get_user(user_id)
        with self._lock:
            stats = self._stats.setdefault(user_id, PlayerStats())
            apply_game(stats, won, guesses)
            return deepcopy(stats)

    def get_user_stats(self, user_id: str) -> PlayerStats:
        with self._lock:
            return deepcopy(self._stats.get(user_id, PlayerStats()))

    # --- puzzle flow ---

    def start_next_puzzle(self, room_id: str, new_word: Word) -> Room:
        with self._lock:
            room = self._room(room_id)
            status = "playing" if room.player2_id is not None else room.status
            room = replace(
                room, current_word=new_word.lower(), status=status, puzzle=room.puzzle + 1
            )
            self._rooms[room_id] = room
            for player_id in (room.player1_id, room.player2_id):
                if player_id is not None:
                    self._states[(room_id, player_id)] = MatchParticipantState(participant_id=player_id)
        logger.info("Room %s moved to a new puzzle", room.code)
        self.hub.publish(room_topic(room_id), room)
        return room

    def leave_room(self, room_id: str) -> Room:
        with self._lock:
            room = replace(self._room(room_id), status="finished")
            self._rooms[room_id] = room
        logger.info("Room %s finished", room.code)
        self.hub.publish(room_topic(room_id), room)
        return room
