"""
Dev convenience: create the room store tables if they don't exist.
Call this at startup in local/dev only; tests pass their own engine.
"""

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from . import models  # noqa: F401  registers the tables on Base
from .db import Base, engine

logger = logging.getLogger(__name__)


def create_all(bind: Optional[Engine] = None) -> None:
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Tables ready: %s", ", ".join(sorted(Base.metadata.tables)))


def drop_all(bind: Optional[Engine] = None) -> None:
    Base.metadata.drop_all(bind=bind or engine)
