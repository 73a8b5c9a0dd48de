"""Ordered, transactional schema migrations.

Migration scripts are plain SQL files named ``<version>_<description>.sql``
(e.g. ``002_create_auth_tables.sql``). Each script is applied at most once:
its statements and the matching ``schema_migrations`` row are committed in a
single transaction, so a failed script never leaves a version record behind
and a recorded version always has its schema changes.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import sqlparse
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from gighub.errors import MigrationError
from gighub.utils.logging import logger


MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_VERSION_RE = re.compile(r"[0-9]+")

_CREATE_TRACKING_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
)
"""
_CURRENT_VERSION = "SELECT COALESCE(MAX(version), 0) FROM schema_migrations"


def parse_version(name: str) -> int | None:
    """Return the leading numeric token of ``name``, or None if there is none."""
    prefix = name.split("_", 1)[0]
    if not _VERSION_RE.fullmatch(prefix):
        return None
    return int(prefix)


@dataclass(frozen=True)
class MigrationScript:
    name: str
    sql: str

    @property
    def version(self) -> int | None:
        return parse_version(self.name)


def load_migration_scripts(directory: Path | str = MIGRATIONS_DIR) -> list[MigrationScript]:
    try:
        paths = sorted(Path(directory).glob("*.sql"))
        scripts = [MigrationScript(name=path.name, sql=path.read_text(encoding="utf-8")) for path in paths]
    except OSError as exc:
        raise MigrationError(f"error reading migrations from {directory}: {exc}") from exc
    return sorted(scripts, key=lambda script: (script.version or 0, script.name))


def split_statements(sql: str) -> list[str]:
    """Split a script into single statements with comments removed.

    sqlparse keeps ``CREATE TRIGGER ... BEGIN ... END`` bodies together and
    ignores ``;`` inside literals and comments.
    """
    statements: list[str] = []
    for raw in sqlparse.split(sql):
        statement = sqlparse.format(raw, strip_comments=True).strip()
        if statement and statement != ";":
            statements.append(statement)
    return statements


def current_version(engine: Engine) -> int:
    try:
        with engine.connect() as connection:
            return int(connection.execute(text(_CURRENT_VERSION)).scalar_one())
    except SQLAlchemyError as exc:
        raise MigrationError(f"error getting current version: {exc}") from exc


def _ensure_tracking_table(engine: Engine) -> None:
    try:
        with engine.begin() as connection:
            connection.execute(text(_CREATE_TRACKING_TABLE))
    except SQLAlchemyError as exc:
        raise MigrationError(f"error creating schema_migrations: {exc}") from exc


def _begin_exclusive(connection: Connection) -> None:
    # pysqlite runs DDL outside any transaction unless one is opened explicitly.
    if connection.dialect.name == "sqlite":
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def _apply(engine: Engine, script: MigrationScript, version: int) -> bool:
    with engine.connect() as connection:
        try:
            _begin_exclusive(connection)
            # Another process may have applied it since the version was read.
            if int(connection.execute(text(_CURRENT_VERSION)).scalar_one()) >= version:
                connection.rollback()
                return False
            for statement in split_statements(script.sql):
                connection.exec_driver_sql(statement)
            connection.execute(
                text("INSERT INTO schema_migrations (version) VALUES (:version)"),
                {"version": version},
            )
        except SQLAlchemyError as exc:
            connection.rollback()
            raise MigrationError(f"error running migration {script.name}: {exc}") from exc

        try:
            connection.commit()
        except SQLAlchemyError as exc:
            raise MigrationError(f"error committing migration {script.name}: {exc}") from exc
    return True


def run_migrations(engine: Engine, scripts: Iterable[MigrationScript] | None = None) -> list[int]:
    """Bring the schema up to the highest version in ``scripts``.

    Returns the versions applied by this call; an up-to-date store yields an
    empty list. Any failure raises MigrationError and stops the run.
    """
    if scripts is None:
        scripts = load_migration_scripts()

    candidates: dict[int, MigrationScript] = {}
    for script in scripts:
        version = script.version
        if version is None:
            logger.debug("Ignoring migration without a version prefix: %s", script.name)
            continue
        if version in candidates:
            raise MigrationError(
                f"duplicate migration version {version}: {candidates[version].name}, {script.name}"
            )
        candidates[version] = script

    _ensure_tracking_table(engine)
    current = current_version(engine)

    applied: list[int] = []
    for version in sorted(candidates):
        if version <= current:
            continue
        script = candidates[version]
        logger.info("Running migration %s...", script.name)
        if _apply(engine, script, version):
            applied.append(version)

    if applied:
        logger.info("Schema migrated to version %s", applied[-1])
    return applied
