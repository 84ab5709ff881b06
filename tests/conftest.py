"""Shared fixtures: temporary SQLite database and a small catalog."""

import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from cellar_valuation.db.models import Base, InventoryLotDB, ProducerDB, UserDB, WineDB
from cellar_valuation.valuation.config import reset_default_config


@pytest.fixture(autouse=True)
def _reset_config():
    """Keep the global config cache from leaking between tests."""
    reset_default_config()
    yield
    reset_default_config()


@pytest.fixture
def temp_db_path():
    """Create a temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def engine(temp_db_path):
    """Create a test database engine."""
    url = f"sqlite:///{temp_db_path}"
    engine = create_engine(url, echo=False, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def session(session_factory):
    """Create a database session for testing."""
    session = session_factory()
    yield session
    session.close()


def add_user(session: Session, email: str) -> int:
    user = UserDB(email=email)
    session.add(user)
    session.flush()
    return user.id


def add_wine(
    session: Session,
    user_id: int,
    producer: str,
    name: str,
    lots: list[tuple[int | None, int, float | None]] = (),
) -> int:
    """Add a wine and its inventory lots given as (vintage, quantity, price)."""
    producer_db = ProducerDB(user_id=user_id, name=producer)
    session.add(producer_db)
    session.flush()
    wine = WineDB(user_id=user_id, producer_id=producer_db.id, name=name, color="red")
    session.add(wine)
    session.flush()
    for vintage, quantity, price in lots:
        session.add(
            InventoryLotDB(
                user_id=user_id,
                wine_id=wine.id,
                vintage=vintage,
                quantity=quantity,
                purchase_price_per_bottle=price,
            )
        )
    session.flush()
    return wine.id


@pytest.fixture
def cellar(session: Session) -> dict[str, int]:
    """
    One user holding two wines, plus a second user with one wine.

    Returns ids keyed by name.
    """
    alice = add_user(session, "alice@example.com")
    bob = add_user(session, "bob@example.com")
    chateau_x = add_wine(session, alice, "X Estate", "Château X", [(2015, 6, 40.0), (2016, 3, 45.0)])
    brut = add_wine(session, alice, "Maison Y", "Brut Reserve", [(None, 2, 30.0)])
    bobs_wine = add_wine(session, bob, "Z Cellars", "Old Vine Zin", [(2019, 1, 25.0)])
    session.commit()
    return {"alice": alice, "bob": bob, "chateau_x": chateau_x, "brut": brut, "bobs_wine": bobs_wine}
