"""
Hard mode: every new guess must reuse all hints revealed so far.

Hints are kept as an immutable value (HardModeHints). `record_result`
returns the next value instead of editing the old one, so a session's
hints can be rebuilt by replaying its guesses.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional, Union

from .types import LetterState, Word


def ordinal(n: int) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'"""
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


@dataclass(frozen=True)
class PositionViolation:
    position: int  # 0-based
    letter: str

    def describe(self) -> str:
        return f"{ordinal(self.position + 1)} letter must be {self.letter.upper()}"


@dataclass(frozen=True)
class MissingLetterViolation:
    letter: str

    def describe(self) -> str:
        return f"Guess must contain {self.letter.upper()}"


Violation = Union[PositionViolation, MissingLetterViolation]


@dataclass(frozen=True)
class HardModeHints:
    # position -> letter confirmed correct there
    correct: Mapping[int, str] = field(default_factory=lambda: MappingProxyType({}))
    # letters known to be in the word but not yet pinned anywhere
    present: FrozenSet[str] = frozenset()


def check(hints: HardModeHints, guess: Word) -> Optional[Violation]:
    """
    Returns the first hint the guess ignores, or None if it is allowed.
    Positions are checked before letters, both in a stable order.
    """
    guess = guess.lower()
    for position in sorted(hints.correct):
        letter = hints.correct[position]
        if position >= len(guess) or guess[position] != letter:
            return PositionViolation(position, letter)

    for letter in sorted(hints.present):
        if letter not in guess:
            return MissingLetterViolation(letter)

    return None


def record_result(
    hints: HardModeHints, guess: Word, evaluation: Iterable[LetterState]
) -> HardModeHints:
    """Fold one accepted guess into the hints and return the new hints."""
    guess = guess.lower()
    correct = dict(hints.correct)
    present = set(hints.present)

    for position, state in enumerate(evaluation):
        letter = guess[position]
        if state == "correct":
            correct[position] = letter
            # pinned now, no longer "somewhere"
            present.discard(letter)
        elif state == "present":
            if letter not in correct.values():
                present.add(letter)

    return HardModeHints(correct=MappingProxyType(correct), present=frozenset(present))


class HardModeValidator:
    """
    Holds the current hints for one game session.
    `check` never changes anything; only `record_result` moves the hints forward.
    """

    def __init__(self) -> None:
        self.hints = HardModeHints()

    def reset(self) -> None:
        self.hints = HardModeHints()

    def check(self, guess: Word) -> Optional[Violation]:
        return check(self.hints, guess)

    def record_result(self, guess: Word, evaluation: Iterable[LetterState]) -> HardModeHints:
        self.hints = record_result(self.hints, guess, evaluation)
        return self.hints
