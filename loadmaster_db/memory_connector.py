# loadmaster_db/memory_connector.py
"""
In-memory / file SQLite adapter for automated tests.

This module provides a concrete implementation of `DatabaseInterface` that
needs no platform bootstrap. It wraps the standard `sqlite3` library, which is
synchronous; every contract method is still a coroutine so callers await it
exactly as they would the native adapter.
"""

import asyncio
import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import structlog

from loadmaster_db.base_connector import DatabaseInterface
from loadmaster_db.db_types import DatabaseResponse, SqlStatement
from loadmaster_db.errors import DatabaseError, InitializationError, SchemaError
from loadmaster_db.normalizer import (
    error_response,
    format_mutation,
    format_rows,
    is_read_statement,
)
from loadmaster_db.transaction import run_transaction

log = structlog.get_logger(__name__)

MEMORY = ":memory:"


class InMemoryDatabaseService(DatabaseInterface):
    """
    Manages a `sqlite3` connection for tests.

    Use `from_memory()` for a throwaway database or `from_file()` to open an
    existing database file, optionally read-only.
    """

    def __init__(self, db_path: str = MEMORY, readonly: bool = False):
        """
        Opens the connection.

        Args:
            - db_path (str): Database file path, or ":memory:".
            - readonly (bool): Open the file in read-only mode. Ignored for
                               in-memory databases.

        Raises:
            - InitializationError: If the connection cannot be opened.
        """
        self.db_path = db_path
        self.readonly = readonly and db_path != MEMORY
        self._lock = asyncio.Lock()
        try:
            if self.readonly:
                uri = f"{Path(db_path).resolve().as_uri()}?mode=ro"
                self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
                    uri, uri=True, isolation_level=None
                )
            else:
                self._conn = sqlite3.connect(db_path, isolation_level=None)
            self._conn.row_factory = sqlite3.Row  # Enable dictionary-like row access.
            self._conn.execute("PRAGMA foreign_keys = ON;")
        except sqlite3.Error as e:
            log.exception("Failed to open test database.", path=db_path, error=str(e))
            raise InitializationError(f"Failed to open test database {db_path}: {e}") from e
        log.info("Test database opened.", path=db_path, readonly=self.readonly)

    @classmethod
    def from_memory(cls) -> "InMemoryDatabaseService":
        return cls(MEMORY)

    @classmethod
    def from_file(cls, db_path: str, readonly: bool = False) -> "InMemoryDatabaseService":
        return cls(str(db_path), readonly=readonly)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise InitializationError("Database not initialized.")
        return self._conn

    def _run(self, sql: str, params: Tuple[Any, ...]) -> DatabaseResponse:
        """Executes one statement, classifying it by its leading keyword."""
        cursor = self._connection().execute(sql, params)
        try:
            if is_read_statement(sql):
                return format_rows(cursor.fetchall())
            return format_mutation(cursor.rowcount, cursor.lastrowid)
        finally:
            cursor.close()

    async def _execute(self, sql: str, params: Tuple[Any, ...]) -> DatabaseResponse:
        return self._run(sql, params)

    async def execute_query(
        self, sql: str, params: Sequence[Any] = ()
    ) -> DatabaseResponse:
        async with self._lock:
            try:
                return self._run(sql, tuple(params or ()))
            except (sqlite3.Error, DatabaseError, ValueError, OverflowError, TypeError) as e:
                log.error("Error executing query.", sql=sql, error=str(e))
                return error_response(e)

    async def initialize_schema(self, sql: str) -> None:
        """Applies the whole script with the driver's multi-statement support."""
        async with self._lock:
            try:
                self._connection().executescript(sql)
            except sqlite3.Error as e:
                log.error("Error initializing schema.", error=str(e))
                raise SchemaError(f"Schema initialization failed: {e}") from e

    async def execute_transaction(
        self, statements: Sequence[SqlStatement]
    ) -> List[DatabaseResponse]:
        """Explicit BEGIN / COMMIT around the statements, ROLLBACK on failure."""
        async with self._lock:
            conn = self._connection()

            async def begin():
                conn.execute("BEGIN")

            async def commit():
                conn.execute("COMMIT")

            async def rollback():
                if conn.in_transaction:
                    conn.execute("ROLLBACK")

            return await run_transaction(
                statements,
                execute=self._execute,
                begin=begin,
                commit=commit,
                rollback=rollback,
            )

    def load_test_data(self, sql: str) -> None:
        """
        Runs a raw multi-statement script, bypassing normalization.

        Meant for test fixtures only; it is not part of `DatabaseInterface`.
        """
        self._connection().executescript(sql)

    async def close(self) -> None:
        async with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                log.info("Test database closed.", path=self.db_path)
