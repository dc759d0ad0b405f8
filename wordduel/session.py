"""
One player's game: a target word, up to six guesses, and the outcome.

The session is a plain state object. It knows nothing about boards, tiles
or toasts; whoever renders the game listens for `SubmitOutcome`s and draws
them.
"""

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Dict, List, Optional, Tuple

from .dictionary import Dictionary
from .engine import count_marks, evaluate, merge_letter_states
from .errors import HardModeViolation, IncompleteGuess, NotAWord, SessionTerminal
from .hard_mode import HardModeHints, HardModeValidator
from .types import MAX_ATTEMPTS, Evaluation, LetterState, SessionStatus, Word

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Guess:
    word: Word
    evaluation: Tuple[LetterState, ...]


@dataclass(frozen=True)
class SubmitOutcome:
    """What an accepted guess changed; enough to update a board and the opponent."""

    guess: Guess
    row: int  # rows used so far, 1..6
    status: SessionStatus
    green_count: int
    yellow_count: int

    @property
    def evaluation(self) -> Evaluation:
        return list(self.guess.evaluation)

    @property
    def terminal(self) -> bool:
        return self.status != "active"

    @property
    def won(self) -> bool:
        return self.status == "won"


SubmitListener = Callable[[SubmitOutcome], None]


class GameSession:
    def __init__(self, dictionary: Dictionary, hard_mode: bool = False) -> None:
        self.dictionary = dictionary
        self.hard_mode = hard_mode
        self.target: Optional[Word] = None
        self.guesses: List[Guess] = []
        self.status: SessionStatus = "active"
        self.validator = HardModeValidator()
        self._listeners: List[SubmitListener] = []
        # one submit at a time; each is fully applied before the next starts
        self._lock = RLock()

    # --- lifecycle ---

    def start(self, target: Word) -> None:
        target = target.strip().lower()
        if len(target) == 0 or not target.isalpha():
            raise ValueError("Target must be a non-empty alphabetic word.")
        with self._lock:
            self.target = target
            self.guesses = []
            self.status = "active"
            self.validator.reset()

    def add_listener(self, listener: SubmitListener) -> Callable[[], None]:
        """Called after every accepted guess. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # --- state ---

    @property
    def row(self) -> int:
        return len(self.guesses)

    @property
    def terminal(self) -> bool:
        return self.status != "active"

    @property
    def won(self) -> bool:
        return self.status == "won"

    @property
    def hints(self) -> HardModeHints:
        return self.validator.hints

    def letter_states(self) -> Dict[str, LetterState]:
        known: Dict[str, LetterState] = {}
        for guess in self.guesses:
            known = merge_letter_states(known, guess.word, guess.evaluation)
        return known

    def last_evaluation(self) -> Optional[Evaluation]:
        if not self.guesses:
            return None
        return list(self.guesses[-1].evaluation)

    # --- transition ---

    def submit(self, candidate: Word, hard_mode: Optional[bool] = None) -> SubmitOutcome:
        """
        Try one guess. Raises a GuessRejected subclass and leaves everything
        as it was if the guess is not allowed; otherwise applies it and
        returns the outcome.
        """
        if hard_mode is None:
            hard_mode = self.hard_mode
        word = candidate.strip().lower()

        with self._lock:
            if self.target is None:
                raise SessionTerminal("No puzzle in progress")
            if self.terminal:
                raise SessionTerminal()
            if len(word) != len(self.target):
                raise IncompleteGuess()
            if not self.dictionary.is_valid_word(word):
                raise NotAWord()
            if hard_mode:
                violation = self.validator.check(word)
                if violation is not None:
                    raise HardModeViolation(violation)

            evaluation = evaluate(word, self.target)
            guess = Guess(word=word, evaluation=tuple(evaluation))
            self.guesses.append(guess)
            self.validator.record_result(word, evaluation)

            if word == self.target:
                self.status = "won"
            elif self.row >= MAX_ATTEMPTS:
                self.status = "lost"

            greens, yellows = count_marks(evaluation)
            outcome = SubmitOutcome(
                guess=guess,
                row=self.row,
                status=self.status,
                green_count=greens,
                yellow_count=yellows,
            )
            logger.debug("Accepted guess %d/%d (%s)", outcome.row, MAX_ATTEMPTS, outcome.status)

        for listener in list(self._listeners):
            listener(outcome)
        return outcome
