"""
In-memory store for single-player games.
Holds solo sessions by id plus the local statistics book, which is also
where a multiplayer client records its stats when the room store is down.
"""

from dataclasses import dataclass, field
from threading import RLock
from time import time
from typing import Dict, Optional
from uuid import uuid4

from .dictionary import Dictionary
from .session import GameSession, SubmitOutcome
from .stats import PlayerStats, apply_game
from .types import Word


@dataclass
class SoloGame:
    id: str
    session: GameSession
    created_at: float = field(default_factory=time)
    updated_at: float = field(default_factory=time)
    # stats are counted once, on the transition into a terminal state
    counted: bool = False


class GameStore:
    def __init__(self, dictionary: Dictionary) -> None:
        self.dictionary = dictionary
        self._games: Dict[str, SoloGame] = {}
        self._lock = RLock()
        self._stats = PlayerStats()

    def create(self, target: Optional[Word] = None, hard_mode: bool = False) -> SoloGame:
        session = GameSession(self.dictionary, hard_mode=hard_mode)
        session.start(target or self.dictionary.random_word())
        game = SoloGame(id=str(uuid4()), session=session)
        with self._lock:
            self._games[game.id] = game
        return game

    def get(self, game_id: str) -> Optional[SoloGame]:
        with self._lock:
            return self._games.get(game_id)

    def guess(self, game_id: str, attempt: Word) -> Optional[SubmitOutcome]:
        """
        Returns None if there is no such game.
        Rejected guesses raise (see errors.GuessRejected) and change nothing.
        """
        with self._lock:
            game = self._games.get(game_id)
            if game is None:
                return None

            outcome = game.session.submit(attempt)
            game.updated_at = time()

            if outcome.terminal and not game.counted:
                game.counted = True
                self.record_result(outcome.won, outcome.row)
            return outcome

    # --- local scoreboard ---

    def record_result(self, won: bool, guesses: int) -> PlayerStats:
        with self._lock:
            return apply_game(self._stats, won, guesses)

    def get_stats(self) -> PlayerStats:
        return self._stats

    def reset_stats(self) -> None:
        with self._lock:
            self._stats = PlayerStats()
