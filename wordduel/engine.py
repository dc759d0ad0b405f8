"""
Pure game logic (no HTTP, no storage).
We score every position of a guess against the target word:
- correct: right letter, right place
- present: letter is in the target but somewhere else
- absent: letter is not in the target (or already used up by other matches)

Duplicates are handled: a letter is only credited as many times as it
occurs in the target.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from .types import LETTER_STRENGTH, Evaluation, LetterState, Word


def evaluate(guess: Word, target: Word) -> Evaluation:
    """
    Example:
      target = "crane"
      guess  = "trace"
      result = [absent, correct, correct, present, correct]
      ('c' at index 3 is present because the target's first 'c' is unused)
    """

    guess = guess.lower()
    target = target.lower()

    # 0. Validate lengths match
    n = len(target)
    if n == 0 or len(guess) != n:
        raise ValueError("Guess and target must be the same non-zero length.")

    result: List[LetterState] = ["absent"] * n
    # None marks a letter that was already matched
    guess_letters: List[Optional[str]] = list(guess)
    target_letters: List[Optional[str]] = list(target)

    # 1. Exact matches consume both sides
    for i in range(n):
        if guess_letters[i] == target_letters[i]:
            result[i] = "correct"
            guess_letters[i] = None
            target_letters[i] = None

    # 2. Displaced matches, left to right, consume the first unused occurrence
    for i in range(n):
        letter = guess_letters[i]
        if letter is None:
            continue
        if letter in target_letters:
            result[i] = "present"
            target_letters[target_letters.index(letter)] = None

    return result


def is_win(guess: Word, target: Word) -> bool:
    """Win = same word, ignoring case."""
    if not target or len(guess) != len(target):
        return False
    return guess.lower() == target.lower()


def count_marks(evaluation: Iterable[LetterState]) -> Tuple[int, int]:
    """Returns (green_count, yellow_count) for reporting to the opponent."""
    greens = 0
    yellows = 0
    for state in evaluation:
        if state == "correct":
            greens += 1
        elif state == "present":
            yellows += 1
    return (greens, yellows)


def merge_letter_states(
    known: Dict[str, LetterState], guess: Word, evaluation: Iterable[LetterState]
) -> Dict[str, LetterState]:
    """
    Fold one evaluated guess into a per-letter summary (the keyboard view).
    A letter only ever moves up: absent -> present -> correct.
    Returns a new dict; `known` is left alone.
    """
    merged = dict(known)
    for letter, state in zip(guess.lower(), evaluation):
        current = merged.get(letter)
        if current is None or LETTER_STRENGTH[state] > LETTER_STRENGTH[current]:
            merged[letter] = state
    return merged
