"""
Labels and fixed protocol constants shared by both players.
"""

from typing import Dict, List, Literal

Word = str  # 5 lowercase letters
LetterState = Literal["absent", "present", "correct"]
Evaluation = List[LetterState]  # one state per position
SessionStatus = Literal["active", "won", "lost"]
ParticipantStatus = Literal["playing", "won", "lost"]
RoomStatus = Literal["waiting", "playing", "finished"]

WORD_LENGTH = 5
MAX_ATTEMPTS = 6
# A non-win counts as one more guess than the worst possible win
NON_WIN_GUESS_COUNT = MAX_ATTEMPTS + 1

LETTER_STRENGTH: Dict[str, int] = {"absent": 0, "present": 1, "correct": 2}
