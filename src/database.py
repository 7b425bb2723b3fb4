"""Database engine setup and the query executor used by request handlers."""

import itertools
import logging
import re
import threading
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql.elements import TextClause

from src.exceptions import StorageError

logger = logging.getLogger(__name__)

Base: Any = declarative_base()

_PLACEHOLDER = re.compile(r"\?")


def create_db_engine(database_url: str) -> Engine:
    """Create an engine, allowing SQLite connections to cross threads."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    """Initialize the database by creating all tables."""
    # Import all models here so they are registered with Base.metadata
    from src import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def bind_positional(sql: str, params: Sequence[Any]) -> tuple[TextClause, dict[str, Any]]:
    """Turn ``?`` placeholders into named bind parameters.

    Values are never spliced into the SQL text; each ``?`` becomes ``:pN`` and
    the value is passed to the driver separately.
    """
    counter = itertools.count()
    statement = _PLACEHOLDER.sub(lambda _: f":p{next(counter)}", sql)
    expected = next(counter)
    if expected != len(params):
        raise ValueError(f"Statement expects {expected} parameters, got {len(params)}")
    return text(statement), {f"p{index}": value for index, value in enumerate(params)}


def _error_message(exc: SQLAlchemyError) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig).strip()
    return str(exc)


class QueryExecutor:
    """Runs parameterized statements over one long-lived connection.

    The connection is opened on first use and kept until :meth:`close`.
    Statements auto-commit and are executed one at a time; concurrent callers
    wait on an internal lock instead of sharing the connection.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._connection: Connection | None = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def open(self) -> None:
        """Open the connection eagerly."""
        with self._lock:
            self._ensure_connection()

    def _ensure_connection(self) -> Connection:
        if self._connection is None:
            try:
                connection = self._engine.connect()
            except SQLAlchemyError as e:
                logger.error(f"Could not connect to database: {e}")
                raise StorageError(_error_message(e)) from e
            self._connection = connection.execution_options(isolation_level="AUTOCOMMIT")
            logger.info(f"Opened database connection to {self._engine.url.render_as_string()}")
        return self._connection

    def execute(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute a statement and return every row it produced."""
        statement, bound = bind_positional(sql, params)
        with self._lock:
            connection = self._ensure_connection()
            try:
                result = connection.execute(statement, bound)
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings().all()]
            except SQLAlchemyError as e:
                logger.error(f"Statement failed: {e}")
                connection.rollback()
                raise StorageError(_error_message(e)) from e

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        """Execute a statement and return its first row, if any."""
        rows = self.execute(sql, params)
        return rows[0] if rows else None

    def close(self) -> None:
        """Close the connection and dispose of the engine's pool."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                logger.info("Closed database connection")
        self._engine.dispose()
