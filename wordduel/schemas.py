"""
Explicit validation & Pydantic models
- Define the structure of API requests and responses.
- The target word of a solo game is never part of a response until the
  game is over.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

LetterStateOut = Literal["absent", "present", "correct"]


# 1. Solo play

class NewGameResponse(BaseModel):
    game_id: str = Field(..., description="Unique ID for the game; the word is never returned")
    attempts_left: int = Field(..., description="How many guesses remain")
    status: Literal["active", "won", "lost"] = Field(..., description="Current state of the game")
    hard_mode: bool = Field(..., description="Whether revealed hints must be reused")


class GuessRequest(BaseModel):
    guess: str = Field(..., description="A 5-letter word")

    @field_validator("guess")
    @classmethod
    def validate_letters(cls, guess: str) -> str:
        """
        Only letters are allowed. Length and dictionary membership are
        checked by the game itself so the player gets the usual messages.
        """
        guess = guess.strip()
        if not guess.isalpha():
            raise ValueError("Guess must contain only letters.")
        return guess.lower()

    model_config = {"json_schema_extra": {"examples": [{"guess": "crane"}]}}


class GuessEntryOut(BaseModel):
    word: str = Field(..., description="The player's guess")
    evaluation: List[LetterStateOut] = Field(..., description="One state per position")


class GameStateOut(BaseModel):
    game_id: str
    attempts_left: int
    status: Literal["active", "won", "lost"]
    hard_mode: bool
    history: List[GuessEntryOut] = Field(..., description="All guesses made so far with feedback")
    letters: Dict[str, LetterStateOut] = Field(..., description="Best known state per letter")
    word: Optional[str] = Field(None, description="The target word (only once the game is over)")


class GuessResponse(BaseModel):
    attempts_left: int
    status: Literal["active", "won", "lost"]
    feedback: GuessEntryOut
    green_count: int
    yellow_count: int
    word: Optional[str] = Field(None, description="The target word (only once the game is over)")


class StatsOut(BaseModel):
    games_played: int
    games_won: int
    current_streak: int
    max_streak: int
    win_rate: float
    guess_distribution: Dict[int, int] = Field(..., description="Wins by number of guesses used")


# 2. Rooms

class UserIn(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)


class UserOut(BaseModel):
    id: str
    username: str


class CreateRoomRequest(BaseModel):
    host_id: str


class JoinRoomRequest(BaseModel):
    code: str = Field(..., min_length=6, max_length=6)
    player_id: str


class RoomOut(BaseModel):
    id: str
    code: str
    player1_id: str
    player2_id: Optional[str]
    status: Literal["waiting", "playing", "finished"]
    puzzle: int = Field(0, description="Increments on every next puzzle")


class ParticipantStateIn(BaseModel):
    guess_count: int = Field(..., ge=0, le=6)
    green_count: int = Field(0, ge=0, le=5)
    yellow_count: int = Field(0, ge=0, le=5)
    status: Literal["playing", "won", "lost"] = "playing"


class ParticipantStateOut(ParticipantStateIn):
    participant_id: str
    completed_at: Optional[datetime] = None


class MatchResultIn(BaseModel):
    player1_id: str
    player2_id: str
    winner_id: Optional[str] = Field(None, description="NULL means draw")
    player1_guesses: int = Field(..., ge=1, le=7, description="7 when the player did not win")
    player2_guesses: int = Field(..., ge=1, le=7)
    word: str = Field(..., min_length=5, max_length=5)


class MatchResultOut(MatchResultIn):
    id: str
    room_id: str


class HeadToHeadOut(BaseModel):
    wins_a: int
    wins_b: int
    draws: int
    total: int
