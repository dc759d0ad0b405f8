"""
Word dictionary with a clear fallback.
Valid guesses and solution words can be pulled from a remote list (one word
per line). If anything goes wrong (no internet, timeout, bad response), we
fall back to the bundled list so the game still works.
"""

import logging
from secrets import choice
from typing import Iterable, List, Optional, Protocol

import requests

from .types import WORD_LENGTH, Word

logger = logging.getLogger(__name__)

# Bundled solutions; every one of them is also a valid guess
FALLBACK_WORDS = (
    "about", "above", "actor", "acute", "adopt", "after", "again", "agent",
    "alarm", "album", "alert", "alike", "alive", "allow", "alone", "apple",
    "arena", "argue", "arise", "aside", "audio", "award", "badge", "basic",
    "beach", "begin", "bench", "birth", "black", "blade", "blame", "blank",
    "blend", "block", "board", "brain", "brave", "bread", "break", "brick",
    "brief", "bring", "broad", "brown", "build", "cabin", "candy", "carry",
    "catch", "cause", "chain", "chair", "chalk", "charm", "chart", "cheap",
    "check", "chest", "chief", "child", "civic", "claim", "class", "clean",
    "clear", "climb", "clock", "close", "cloud", "coach", "coast", "count",
    "court", "cover", "crane", "crash", "cream", "crisp", "cross", "crowd",
    "crown", "curve", "cycle", "dance", "delay", "depth", "diary", "dream",
    "dress", "drink", "drive", "eagle", "early", "earth", "eerie", "eight",
    "elder", "empty", "enjoy", "enter", "equal", "error", "event", "exact",
    "fairy", "faith", "false", "feast", "field", "fifth", "fight", "final",
    "flame", "fleet", "floor", "focus", "force", "frame", "fresh", "front",
    "fruit", "ghost", "giant", "glass", "globe", "grace", "grade", "grand",
    "grant", "grape", "grass", "great", "green", "group", "guard", "guess",
    "guide", "happy", "heart", "heavy", "hello", "honey", "horse", "hotel",
    "house", "human", "humor", "ideal", "image", "index", "inner", "input",
    "issue", "jelly", "juice", "knife", "label", "large", "laser", "laugh",
    "layer", "learn", "lemon", "level", "light", "limit", "llama", "local",
    "logic", "loose", "lucky", "lunch", "magic", "major", "maker", "march",
    "match", "mayor", "metal", "model", "money", "month", "motor", "mount",
    "mouse", "mouth", "music", "nerve", "never", "night", "noise", "north",
    "novel", "nurse", "ocean", "offer", "often", "olive", "order", "other",
    "outer", "owner", "paint", "panel", "paper", "party", "peace", "pearl",
    "phase", "phone", "piano", "piece", "pilot", "pitch", "place", "plain",
    "plane", "plant", "plate", "point", "pound", "power", "press", "price",
    "pride", "prime", "print", "prize", "proof", "proud", "queen", "quick",
    "quiet", "radio", "raise", "range", "rapid", "ratio", "reach", "react",
    "ready", "refer", "right", "rival", "river", "robot", "round", "route",
    "royal", "rural", "scale", "scene", "scope", "score", "sense", "serve",
    "seven", "shape", "share", "sharp", "sheep", "shelf", "shell", "shift",
    "shine", "shirt", "shock", "shoot", "short", "sight", "skill", "sleep",
    "slice", "slide", "small", "smart", "smile", "smoke", "snake", "solid",
    "solve", "sound", "south", "space", "spare", "speak", "speed", "spend",
    "spice", "spoon", "sport", "staff", "stage", "stand", "start", "state",
    "steam", "steel", "stick", "still", "stone", "store", "storm", "story",
    "sugar", "sunny", "super", "sweet", "table", "teach", "thank", "theme",
    "thick", "thing", "think", "third", "those", "three", "throw", "tiger",
    "title", "toast", "today", "topic", "total", "touch", "tower", "trace",
    "track", "trade", "train", "treat", "trend", "trial", "tribe", "truck",
    "trust", "truth", "twice", "uncle", "under", "union", "unity", "upper",
    "upset", "urban", "usual", "value", "video", "visit", "vital", "voice",
    "waste", "watch", "water", "wheel", "where", "while", "white", "whole",
    "woman", "world", "worry", "worth", "would", "write", "wrong", "yield",
    "young", "youth", "zebra",
)


class Dictionary(Protocol):
    def is_valid_word(self, word: Word) -> bool: ...

    def random_word(self) -> Word: ...


def _clean(words: Iterable[str]) -> List[str]:
    cleaned = []
    for raw in words:
        word = raw.strip().lower()
        if len(word) == WORD_LENGTH and word.isalpha() and word.isascii():
            cleaned.append(word)
    return cleaned


class WordList:
    """
    Closed vocabulary: `valid` is everything a player may guess,
    `solutions` is what a target word is drawn from.
    """

    def __init__(self, valid: Iterable[str], solutions: Optional[Iterable[str]] = None):
        self.valid = frozenset(_clean(valid))
        if solutions is None:
            pool = sorted(self.valid)
        else:
            pool = _clean(solutions)
        if not pool:
            raise ValueError("Word list has no solution words.")
        self.solutions = tuple(pool)
        # a solution is always guessable
        self.valid = self.valid | frozenset(self.solutions)

    def __len__(self) -> int:
        return len(self.valid)

    def is_valid_word(self, word: Word) -> bool:
        return word.strip().lower() in self.valid

    def random_word(self) -> Word:
        return choice(self.solutions)


def fetch_words(url: str, timeout_seconds: float = 3.0) -> List[str]:
    """Download a newline separated word list. Raises on any failure."""
    response = requests.get(url, timeout=timeout_seconds)
    response.raise_for_status()

    words = _clean(response.text.splitlines())
    if not words:
        raise ValueError(f"{url} returned no {WORD_LENGTH}-letter words.")
    return words


def load_word_list(url: Optional[str] = None) -> WordList:
    """Remote list when `url` is set and reachable, bundled list otherwise."""
    if url:
        try:
            words = fetch_words(url)
            logger.info("Loaded %d words from %s", len(words), url)
            return WordList(words)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Word list download failed (%s); using bundled words", exc)
    return WordList(FALLBACK_WORDS)
