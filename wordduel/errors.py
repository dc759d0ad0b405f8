"""
Exceptions raised by the game core and the room store.

Guess rejections are local validation failures: the session is left
untouched and the message is meant to be shown to the player as is.
Room store errors come from the collaborator and are surfaced unchanged.
"""

from typing import Optional


class GuessRejected(ValueError):
    """Raised when a submitted guess is not accepted."""

    message = "Guess rejected"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class IncompleteGuess(GuessRejected):
    message = "Not enough letters"


class NotAWord(GuessRejected):
    message = "Not in word list"


class HardModeViolation(GuessRejected):
    """Raised when a guess ignores a hint already revealed in hard mode."""

    def __init__(self, detail):
        self.detail = detail
        super().__init__(detail.describe())


class SessionTerminal(GuessRejected):
    message = "Game is already over"


class RoomStoreError(Exception):
    """Raised when an error occurs in the room store."""

    pass


class RoomNotFound(RoomStoreError):
    pass


class RoomFull(RoomStoreError):
    pass


class NotAuthenticated(RoomStoreError):
    pass


class PersistenceError(RoomStoreError):
    """A write or read against durable storage failed; safe to retry."""

    pass


class TransportError(RoomStoreError):
    """The push channel or the network path to the store failed."""

    pass
