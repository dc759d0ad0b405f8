"""
SQLAlchemy ORM models for the durable room store.

Tables:
- users: one row per username
- rooms: one row per room (code, players, shared word, lifecycle status)
- game_states: each player's reported progress in a room
- match_results: one row per finished match, written by the host only
- head_to_head: the score ledger, one row per unordered pair of players
- user_stats: per-player statistics (guess distribution stored as JSON)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base
from .types import ParticipantStatus, RoomStatus


class User(Base):
    __tablename__ = "users"

    # UUIDs generated in code; stored as strings
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(6), unique=True, index=True, nullable=False)

    # player1 is the host and the only writer of match results
    player1_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    player2_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)

    current_word: Mapped[str] = mapped_column(String(5), nullable=False)
    # counts next-puzzle resets so a repeated word still reads as a new puzzle
    puzzle: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[RoomStatus] = mapped_column(
        Enum("waiting", "playing", "finished", name="room_status"),
        nullable=False,
        default="waiting",
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class GameState(Base):
    __tablename__ = "game_states"
    __table_args__ = (UniqueConstraint("room_id", "user_id", name="uq_game_state_player"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("rooms.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    guess_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    green_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    yellow_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[ParticipantStatus] = mapped_column(
        Enum("playing", "won", "lost", name="participant_status"),
        nullable=False,
        default="playing",
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class MatchResult(Base):
    __tablename__ = "match_results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    room_id: Mapped[str] = mapped_column(String(36), ForeignKey("rooms.id"), index=True)
    player1_id: Mapped[str] = mapped_column(String(36), nullable=False)
    player2_id: Mapped[str] = mapped_column(String(36), nullable=False)
    # NULL = draw
    winner_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    # 7 when the player did not win
    player1_guesses: Mapped[int] = mapped_column(Integer, nullable=False)
    player2_guesses: Mapped[int] = mapped_column(Integer, nullable=False)
    word: Mapped[str] = mapped_column(String(5), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class HeadToHead(Base):
    """Keyed by the sorted pair so (a, b) and (b, a) hit the same row."""

    __tablename__ = "head_to_head"

    player_low_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    player_high_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    wins_low: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wins_high: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    draws: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_games: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class UserStats(Base):
    __tablename__ = "user_stats"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), primary_key=True)

    games_played: Mapped[int] = mapped_column(Integer, default=0)
    games_won: Mapped[int] = mapped_column(Integer, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    max_streak: Mapped[int] = mapped_column(Integer, default=0)

    # {"1": n, ..., "6": n}; JSON object keys are strings
    guess_distribution: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
