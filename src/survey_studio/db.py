from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from .config import Settings


_settings = Settings()
engine = create_engine(_settings.database_url, echo=False)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create tables if they do not exist."""
    # Registers the tables on SQLModel.metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


@contextmanager
def get_session(bind: Optional[Engine] = None) -> Iterator[Session]:
    with Session(bind or engine) as session:
        yield session
