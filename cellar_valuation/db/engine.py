"""
Database Engine
===============

Engine and session plumbing for the valuation store.

The weekly batch and the API write to the same tables, so SQLite
connections run in WAL mode with a busy timeout. A writer that loses the
race waits for the lock instead of failing straight away.
"""

import logging
import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".cellar_valuation" / "cellar.db"

SQLITE_BUSY_TIMEOUT_MS = 30_000

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_database_url(db_path: Path | str | None = None) -> str:
    """
    Resolve the database URL.

    An explicit path wins, then ``DATABASE_URL`` (a full URL or a bare file
    path), then the per-user default file.
    """
    env_url = os.environ.get("DATABASE_URL")
    if db_path is None and env_url and "://" in env_url:
        return env_url

    path = Path(db_path or env_url or DEFAULT_DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def _configure_sqlite(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute(f"PRAGMA busy_timeout = {SQLITE_BUSY_TIMEOUT_MS}")
    finally:
        cursor.close()


def create_db_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    """Build an engine; SQLite connections get the pragmas above."""
    url = get_database_url(db_path)
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    event.listen(engine, "connect", _configure_sqlite)
    return engine


def _get_session_factory(db_path: Path | str | None = None) -> sessionmaker[Session]:
    global _engine, _session_factory
    if _session_factory is None:
        _engine = create_db_engine(db_path)
        _session_factory = sessionmaker(bind=_engine, autoflush=False)
        logger.debug(f"Database engine created for {_engine.url}")
    return _session_factory


def reset_engine() -> None:
    """Drop the cached engine so the next session reconnects (tests)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_session(db_path: Path | str | None = None) -> Generator[Session, None, None]:
    """
    Yield a session on the shared engine. Callers commit their own writes.

    Usage:
        with get_session() as session:
            service = ValuationService(session)
    """
    session = _get_session_factory(db_path)()
    try:
        yield session
    finally:
        session.close()


def init_db(db_path: Path | str | None = None) -> None:
    """Create every table from the ORM metadata. Deployments use migrations."""
    from cellar_valuation.db.models import Base

    _get_session_factory(db_path)
    Base.metadata.create_all(bind=_engine)


def run_migrations(db_path: Path | str | None = None) -> None:
    """
    Upgrade the database to the latest Alembic revision.

    Raises:
        FileNotFoundError: If alembic.ini is missing from the project root
    """
    alembic_ini = Path(__file__).resolve().parents[2] / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"Alembic config not found: {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("sqlalchemy.url", get_database_url(db_path))
    command.upgrade(config, "head")
