from pathlib import Path
from typing import List

import pytest
from sqlalchemy.orm import sessionmaker

from encodenote.db.base import Base, make_engine
from encodenote.models.vault import Vault  # noqa: F401  (registers the table)
from encodenote.services.presence import Connection, PresenceHub


class RecordingConnection(Connection):
    """In-memory stand-in for a socket: keeps every event it is sent."""

    def __init__(self, name: str = "conn") -> None:
        self.name = name
        self.events: List[dict] = []
        self.open = True

    @property
    def is_open(self) -> bool:
        return self.open

    def send(self, event: dict) -> None:
        self.events.append(event)

    def close(self) -> None:
        self.open = False

    def __repr__(self) -> str:
        return f"RecordingConnection({self.name!r})"


@pytest.fixture()
def engine(tmp_path: Path):
    engine = make_engine(f"sqlite:///{tmp_path / 'vaults.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def hub() -> PresenceHub:
    return PresenceHub()


@pytest.fixture()
def make_connection():
    def _make(name: str = "conn") -> RecordingConnection:
        return RecordingConnection(name)
    return _make
