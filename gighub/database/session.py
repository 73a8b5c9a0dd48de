from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from gighub.config import Settings


Base = declarative_base()

SQLITE_BUSY_TIMEOUT_SECONDS = 30


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def create_db_engine(database_url: str) -> Engine:
    is_sqlite = database_url.startswith("sqlite")
    connect_args = (
        {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS} if is_sqlite else {}
    )
    engine = create_engine(
        database_url,
        pool_pre_ping=True,
        future=True,
        connect_args=connect_args,
    )
    if is_sqlite:
        # Cascading deletes on sessions/password_reset_tokens depend on this.
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, class_=Session)


def ensure_data_dir_writable(data_dir: str) -> None:
    """Fail early with a readable message instead of a cryptic SQLite one."""
    directory = Path(data_dir)
    directory.mkdir(parents=True, exist_ok=True)
    probe = directory / ".writable"
    try:
        probe.touch()
    except OSError as exc:
        raise RuntimeError(
            f"The data directory ({str(directory)!r}) is not writable. Please check permissions."
        ) from exc
    probe.unlink(missing_ok=True)


def setup_engine(settings: Settings) -> Engine:
    if settings.database_url == f"sqlite:///{Path(settings.data_dir) / settings.database_name}":
        ensure_data_dir_writable(settings.data_dir)
    return create_db_engine(settings.database_url)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

