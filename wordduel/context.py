"""
Client context: the explicitly built bundle of settings, dictionary and
room store that every match of one client shares.

Nothing here is a module-level singleton. Open a context, log in, start
matches, and close it; closing leaves every open room and stops every
completion watch the context started.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .coordinator import MatchCoordinator
from .dictionary import Dictionary, load_word_list
from .room_store import InMemoryRoomStore, RoomStore, User
from .store import GameStore

logger = logging.getLogger(__name__)


class DuelContext:
    def __init__(
        self,
        store: RoomStore,
        dictionary: Dictionary,
        settings: Optional[Settings] = None,
        db: Optional[Session] = None,
    ) -> None:
        self.store = store
        self.dictionary = dictionary
        self.settings = settings or get_settings()
        self.user: Optional[User] = None
        self.solo = GameStore(dictionary)
        self._db = db
        self._matches: List[MatchCoordinator] = []
        self.closed = False

    @classmethod
    def open(cls, settings: Optional[Settings] = None, durable: bool = False) -> "DuelContext":
        """In-memory room store by default; `durable=True` uses the configured database."""
        settings = settings or get_settings()
        dictionary = load_word_list(settings.word_list_url)
        if not durable:
            return cls(InMemoryRoomStore(), dictionary, settings)

        from .db import SessionLocal
        from .repository import DBRoomStore

        db = SessionLocal()
        return cls(DBRoomStore(db), dictionary, settings, db=db)

    def __enter__(self) -> "DuelContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def login(self, username: str) -> User:
        self.user = self.store.create_or_get_user(username)
        for match in self._matches:
            match.user = self.user
        logger.info("Logged in as %s", self.user.username)
        return self.user

    def new_match(self, hard_mode: Optional[bool] = None) -> MatchCoordinator:
        if self.closed:
            raise RuntimeError("Context is closed")
        match = MatchCoordinator(
            self.store,
            self.dictionary,
            self.user,
            poll_interval=self.settings.poll_interval,
            hard_mode=self.settings.hard_mode if hard_mode is None else hard_mode,
        )
        self._matches.append(match)
        return match

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for match in self._matches:
            match.close()
        self._matches = []
        if self._db is not None:
            self._db.close()
            self._db = None
