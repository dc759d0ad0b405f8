"""
Match arbitration between two players sharing a target word.

- decide_match: the tie-break, a pure function of the two terminal states.
- CompletionWatch: learns that the opponent finished, by push or by poll,
  whichever reports first; after that both channels are switched off.
- MatchCoordinator: ties the local GameSession to a room, reports progress,
  surfaces the result once and keeps the head-to-head scoreboard.

Only the room host writes the match result; the guest computes the same
result for display and writes nothing.
"""

import logging
from dataclasses import dataclass, replace
from threading import Event, Thread, current_thread
from typing import Callable, List, Literal, Optional

from .dictionary import Dictionary
from .errors import NotAuthenticated, RoomStoreError
from .events import EventDispatcher, Handler
from .room_store import HeadToHead, MatchParticipantState, Room, RoomStore, User
from .session import GameSession, SubmitOutcome
from .stats import PlayerStats, apply_game
from .subscriptions import SubscriptionHandle
from .types import MAX_ATTEMPTS, NON_WIN_GUESS_COUNT, ParticipantStatus, Word

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    winner_id: Optional[str]
    is_draw: bool
    my_guess_count: Optional[int]  # None unless I won
    opponent_guess_count: Optional[int]  # None unless the opponent won
    word: Word

    def outcome_for(self, player_id: str) -> Literal["won", "lost", "draw"]:
        if self.is_draw:
            return "draw"
        return "won" if self.winner_id == player_id else "lost"


def comparable_guess_count(state: MatchParticipantState) -> int:
    """Guesses used for a win; anything else ranks behind every win."""
    if not state.won:
        return NON_WIN_GUESS_COUNT
    if not 1 <= state.guess_count <= MAX_ATTEMPTS:
        raise ValueError(f"A win needs 1..{MAX_ATTEMPTS} guesses, got {state.guess_count}.")
    return state.guess_count


def decide_match(
    mine: MatchParticipantState, theirs: MatchParticipantState, word: Word
) -> MatchResult:
    """
    Both won: fewer guesses wins, equal counts draw.
    One won: that player wins.
    Neither won: draw.
    """
    if not mine.terminal or not theirs.terminal:
        raise ValueError("Both players must have finished before deciding a match.")

    my_count = comparable_guess_count(mine)
    their_count = comparable_guess_count(theirs)

    if my_count < their_count:
        winner_id: Optional[str] = mine.participant_id
    elif their_count < my_count:
        winner_id = theirs.participant_id
    else:
        winner_id = None

    return MatchResult(
        winner_id=winner_id,
        is_draw=winner_id is None,
        my_guess_count=mine.guess_count if mine.won else None,
        opponent_guess_count=theirs.guess_count if theirs.won else None,
        word=word,
    )


def apply_to_scoreboard(board: HeadToHead, my_id: str, result: MatchResult) -> HeadToHead:
    """Scoreboard oriented as (me, opponent)."""
    if result.is_draw:
        return replace(board, draws=board.draws + 1, total=board.total + 1)
    if result.winner_id == my_id:
        return replace(board, wins_a=board.wins_a + 1, total=board.total + 1)
    return replace(board, wins_b=board.wins_b + 1, total=board.total + 1)


class CompletionWatch:
    """
    Waits for the opponent's terminal state on two channels at once:
    a push subscription and a poll every `poll_interval` seconds.

    The watch holds a single token. A channel that sees the opponent finish
    must take the token before delivering; list.pop is atomic, so exactly
    one channel gets it and every later report is dropped. Disarming is
    idempotent and can happen from any thread, including a channel's own.
    """

    def __init__(
        self,
        store: RoomStore,
        room_id: str,
        my_id: str,
        on_finished: Callable[[MatchParticipantState], None],
        poll_interval: float = 1.0,
    ) -> None:
        self.store = store
        self.room_id = room_id
        self.my_id = my_id
        self.on_finished = on_finished
        self.poll_interval = poll_interval
        self._token: List[object] = []
        self._handle: Optional[SubscriptionHandle] = None
        self._stop = Event()
        self._thread: Optional[Thread] = None

    @property
    def armed(self) -> bool:
        return bool(self._token)

    @property
    def push_active(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        """Open both channels. The opponent may already be done, so check once right away."""
        self._token = [object()]
        self._stop.clear()
        try:
            self._handle = self.store.subscribe_to_opponent_state(
                self.room_id, self.my_id, self._on_push
            )
        except RoomStoreError as exc:
            logger.warning("Push subscription for room %s failed (%s); polling only", self.room_id, exc)
            self._handle = None

        if self.poll_once() or not self.armed:
            return

        self._thread = Thread(
            target=self._poll_loop, name=f"completion-poll-{self.room_id}", daemon=True
        )
        self._thread.start()

    def disarm(self) -> None:
        self._token.clear()
        self._stop.set()

        handle, self._handle = self._handle, None
        if handle is not None:
            try:
                self.store.unsubscribe(handle)
            except RoomStoreError as exc:
                logger.warning("Unsubscribe from room %s failed: %s", self.room_id, exc)

        thread = self._thread
        if thread is not None and thread is not current_thread() and thread.is_alive():
            thread.join(timeout=self.poll_interval + 1.0)

    def poll_once(self) -> bool:
        """One poll tick. True if this tick delivered the result."""
        if not self.armed:
            return False
        try:
            state = self.store.get_opponent_state(self.room_id, self.my_id)
        except RoomStoreError as exc:
            logger.warning("Polling room %s failed: %s", self.room_id, exc)
            return False
        logger.debug("Polled room %s: opponent %s", self.room_id, state.status if state else "absent")
        if state is None or not state.terminal:
            return False
        return self._deliver(state, "poll")

    def _on_push(self, state: MatchParticipantState) -> None:
        if state.terminal:
            self._deliver(state, "push")

    def _poll_loop(self) -> None:
        while not self._stop.wait(self.poll_interval):
            if self.poll_once():
                return

    def _deliver(self, state: MatchParticipantState, channel: str) -> bool:
        try:
            self._token.pop()
        except IndexError:
            logger.debug("Ignored late %s completion for room %s", channel, self.room_id)
            return False
        logger.debug("Opponent completion for room %s arrived by %s", self.room_id, channel)
        self.disarm()
        self.on_finished(state)
        return True


def _participant_status(outcome: SubmitOutcome) -> ParticipantStatus:
    if outcome.status == "won":
        return "won"
    if outcome.status == "lost":
        return "lost"
    return "playing"


class MatchCoordinator:
    """
    One player's side of a duel. Owns the local GameSession; everything it
    knows about the opponent comes through the room store.

    Events (see events.EventDispatcher): opponent_joined(User),
    opponent_update(MatchParticipantState), puzzle_reset(word),
    room_closed(Room), result(MatchResult).
    """

    def __init__(
        self,
        store: RoomStore,
        dictionary: Dictionary,
        user: Optional[User],
        poll_interval: float = 1.0,
        hard_mode: bool = False,
        events: Optional[EventDispatcher] = None,
    ) -> None:
        self.store = store
        self.dictionary = dictionary
        self.user = user
        self.poll_interval = poll_interval
        self.events = events or EventDispatcher()

        self.session = GameSession(dictionary, hard_mode=hard_mode)
        self.session.add_listener(self._on_local_submit)

        self.room: Optional[Room] = None
        self.opponent: Optional[User] = None
        # oriented (me, opponent)
        self.scoreboard = HeadToHead()
        # stats that could not be written to the store
        self.local_stats = PlayerStats()
        self.last_result: Optional[MatchResult] = None

        self._my_state: Optional[MatchParticipantState] = None
        self._watch: Optional[CompletionWatch] = None
        self._room_handle: Optional[SubscriptionHandle] = None
        self._progress_handle: Optional[SubscriptionHandle] = None

    # --- event registration ---

    def on_result(self, handler: Handler) -> Callable[[], None]:
        return self.events.on("result", handler)

    def on_opponent_joined(self, handler: Handler) -> Callable[[], None]:
        return self.events.on("opponent_joined", handler)

    def on_puzzle_reset(self, handler: Handler) -> Callable[[], None]:
        return self.events.on("puzzle_reset", handler)

    def on_opponent_update(self, handler: Handler) -> Callable[[], None]:
        return self.events.on("opponent_update", handler)

    def on_room_closed(self, handler: Handler) -> Callable[[], None]:
        return self.events.on("room_closed", handler)

    # --- state ---

    @property
    def is_host(self) -> bool:
        return (
            self.room is not None
            and self.user is not None
            and self.room.player1_id == self.user.id
        )

    @property
    def watching(self) -> bool:
        return self._watch is not None and self._watch.armed

    def _require_user(self) -> User:
        if self.user is None:
            raise NotAuthenticated("Not logged in")
        return self.user

    # --- room lifecycle ---

    def create_room(self) -> Room:
        user = self._require_user()
        if self.room is not None:
            self.leave_room()
        room = self.store.create_room(user.id, self.dictionary.random_word())
        self._enter(room)
        return room

    def join_room(self, code: str) -> Room:
        user = self._require_user()
        if self.room is not None:
            self.leave_room()
        room = self.store.join_room(code, user.id)
        self._enter(room)
        self._load_opponent()
        return room

    def next_puzzle(self) -> Room:
        """Any player may move the room on; both sides reset when the room changes."""
        if self.room is None:
            raise RuntimeError("Not in a room")
        room = self.store.start_next_puzzle(self.room.id, self.dictionary.random_word())
        # also covers a dead push channel; a duplicate update is ignored
        self._apply_room(room)
        return room

    def leave_room(self) -> None:
        """Disarms everything this match started, then tells the store."""
        room = self.room
        self._disarm_watch()
        for attr in ("_room_handle", "_progress_handle"):
            handle = getattr(self, attr)
            setattr(self, attr, None)
            if handle is not None:
                try:
                    self.store.unsubscribe(handle)
                except RoomStoreError as exc:
                    logger.warning("Unsubscribe failed: %s", exc)

        self.room = None
        self.opponent = None
        self.scoreboard = HeadToHead()
        self._my_state = None
        if room is None:
            return
        try:
            self.store.leave_room(room.id)
            logger.info("Left room %s", room.code)
        except RoomStoreError as exc:
            logger.warning("Leaving room %s failed: %s", room.code, exc)

    def close(self) -> None:
        if self.room is not None:
            self.leave_room()
        self.events.close()

    def _enter(self, room: Room) -> None:
        self.room = room
        self.last_result = None
        self._my_state = MatchParticipantState(participant_id=self._require_user().id)
        self.session.start(room.current_word)
        try:
            self._room_handle = self.store.subscribe_to_room(room.id, self._apply_room)
        except RoomStoreError as exc:
            logger.warning("Room updates for %s unavailable: %s", room.code, exc)
        try:
            self._progress_handle = self.store.subscribe_to_opponent_state(
                room.id, self._require_user().id, self._on_opponent_progress
            )
        except RoomStoreError as exc:
            logger.warning("Opponent updates for %s unavailable: %s", room.code, exc)

    def _load_opponent(self) -> None:
        if self.room is None or self.user is None:
            return
        opponent_id = self.room.opponent_of(self.user.id)
        if opponent_id is None:
            return
        try:
            self.opponent = self.store.get_user(opponent_id)
        except RoomStoreError as exc:
            logger.warning("Could not load opponent %s: %s", opponent_id, exc)
            self.opponent = User(id=opponent_id, username="Opponent")
        self._load_head_to_head()

    def _load_head_to_head(self) -> bool:
        if self.user is None or self.opponent is None:
            return False
        try:
            self.scoreboard = self.store.get_head_to_head(self.user.id, self.opponent.id)
            return True
        except RoomStoreError as exc:
            logger.warning("Head-to-head reload failed: %s", exc)
            return False

    def _apply_room(self, updated: Room) -> None:
        old = self.room
        if old is None or old.id != updated.id:
            return
        self.room = updated

        if old.player2_id is None and updated.player2_id is not None:
            self._load_opponent()
            logger.info("Opponent joined room %s", updated.code)
            self.events.emit("opponent_joined", self.opponent)

        if updated.status != "finished" and updated.puzzle != old.puzzle:
            self._disarm_watch()
            self.last_result = None
            self._my_state = MatchParticipantState(participant_id=self._require_user().id)
            self.session.start(updated.current_word)
            logger.info("Room %s started a new puzzle", updated.code)
            self.events.emit("puzzle_reset", updated.current_word)

        if updated.status == "finished" and old.status != "finished":
            self._disarm_watch()
            self.events.emit("room_closed", updated)

    # --- progress ---

    def submit(self, guess: Word, hard_mode: Optional[bool] = None) -> SubmitOutcome:
        return self.session.submit(guess, hard_mode)

    def _on_local_submit(self, outcome: SubmitOutcome) -> None:
        if self.user is None:
            return
        state = MatchParticipantState(
            participant_id=self.user.id,
            guess_count=outcome.row,
            green_count=outcome.green_count,
            yellow_count=outcome.yellow_count,
            status=_participant_status(outcome),
        )
        self._my_state = state
        if self.room is not None:
            try:
                self.store.report_state(self.room.id, self.user.id, state)
            except RoomStoreError as exc:
                logger.warning("Reporting progress to room %s failed: %s", self.room.code, exc)

        if outcome.terminal:
            self._record_stats(outcome.won, outcome.row)
            # an abandoned room has nobody left to finish
            if self.room is not None and self.room.status != "finished":
                self._start_watch()

    def _on_opponent_progress(self, state: MatchParticipantState) -> None:
        self.events.emit("opponent_update", state)

    def _record_stats(self, won: bool, guesses: int) -> None:
        try:
            self.store.update_user_stats(self._require_user().id, won, guesses)
        except RoomStoreError as exc:
            logger.warning("Stats write failed (%s); keeping them locally", exc)
            apply_game(self.local_stats, won, guesses)

    # --- completion ---

    def _start_watch(self) -> None:
        self._disarm_watch()
        watch = CompletionWatch(
            self.store,
            self.room.id,
            self._require_user().id,
            self._on_opponent_finished,
            poll_interval=self.poll_interval,
        )
        self._watch = watch
        watch.arm()

    def _disarm_watch(self) -> None:
        watch, self._watch = self._watch, None
        if watch is not None:
            watch.disarm()

    def compute_result(self, opponent_state: MatchParticipantState) -> MatchResult:
        """Pure: same two terminal states, same result."""
        if self._my_state is None or self.room is None:
            raise RuntimeError("No match in progress")
        return decide_match(self._my_state, opponent_state, self.room.current_word)

    def _on_opponent_finished(self, opponent_state: MatchParticipantState) -> None:
        if self.last_result is not None:
            return
        result = self.compute_result(opponent_state)
        self.last_result = result

        before = self.scoreboard
        if self.is_host:
            self._save_result(result, opponent_state)
        if not self._load_head_to_head() or self.scoreboard.total <= before.total:
            # store unreachable, or the host has not written yet
            self.scoreboard = apply_to_scoreboard(before, self._require_user().id, result)

        logger.info("Match in room %s finished: %s", self.room.code, result.outcome_for(self.user.id))
        self.events.emit("result", result)

    def _save_result(self, result: MatchResult, opponent_state: MatchParticipantState) -> None:
        room = self.room
        mine = self._my_state
        by_player = {
            mine.participant_id: comparable_guess_count(mine),
            opponent_state.participant_id: comparable_guess_count(opponent_state),
        }
        player2_id = room.player2_id or opponent_state.participant_id
        try:
            self.store.save_match_result(
                room.id,
                (room.player1_id, player2_id),
                result.winner_id,
                (by_player[room.player1_id], by_player[player2_id]),
                result.word,
            )
        except RoomStoreError as exc:
            logger.warning("Saving the result of room %s failed: %s", room.code, exc)
