"""
Per-player statistics (games played, wins, streaks, guess distribution).
Shared by the local scoreboard and the room stores so every backend
counts a finished game the same way.
"""

from dataclasses import dataclass, field
from typing import Dict

from .types import MAX_ATTEMPTS


def _empty_distribution() -> Dict[int, int]:
    return {n: 0 for n in range(1, MAX_ATTEMPTS + 1)}


@dataclass
class PlayerStats:
    games_played: int = 0
    games_won: int = 0

    current_streak: int = 0
    max_streak: int = 0

    # guesses used -> number of wins with that many guesses
    guess_distribution: Dict[int, int] = field(default_factory=_empty_distribution)

    @property
    def win_rate(self) -> float:
        if self.games_played == 0:
            return 0.0
        return self.games_won / self.games_played


def apply_game(stats: PlayerStats, won: bool, guesses: int) -> PlayerStats:
    """Record one finished game. Call it exactly once per game."""
    stats.games_played += 1
    if won:
        stats.games_won += 1
        stats.current_streak += 1
        if stats.current_streak > stats.max_streak:
            stats.max_streak = stats.current_streak
        stats.guess_distribution[guesses] = stats.guess_distribution.get(guesses, 0) + 1
    else:
        stats.current_streak = 0
    return stats
