# loadmaster_db/native_connector.py
"""
Native (production) database adapter.

This module provides the concrete implementation of `DatabaseInterface` used by
the running application. It owns exactly one aiosqlite connection, obtained
through the platform bootstrap policy, and serializes every operation on it.
"""

import asyncio
import sqlite3
from typing import Any, List, Optional, Sequence, Tuple

import aiosqlite
import structlog

from loadmaster_db.base_connector import DatabaseInterface
from loadmaster_db.bootstrap import BootstrapPolicy
from loadmaster_db.db_types import DatabaseResponse, SqlStatement
from loadmaster_db.errors import (
    BootstrapError,
    DatabaseError,
    InitializationError,
    SchemaError,
)
from loadmaster_db.normalizer import RawResult, error_response, normalize_raw_results
from loadmaster_db.schema import split_sql_statements
from loadmaster_db.transaction import run_transaction

log = structlog.get_logger(__name__)


class NativeDatabaseService(DatabaseInterface):
    """
    Manages the production connection and its operations.

    Instances are built with `NativeDatabaseService.initialize(policy)`, which
    runs the bootstrap once and wraps any failure in `BootstrapError`.
    """

    def __init__(self, connection: aiosqlite.Connection, platform: Optional[str] = None):
        self._conn: Optional[aiosqlite.Connection] = connection
        self._lock = asyncio.Lock()
        self.platform = platform

    @classmethod
    async def initialize(cls, policy: BootstrapPolicy) -> "NativeDatabaseService":
        """
        Bootstraps the database file and opens the connection.

        Workflow:
        1.  Delegates to `policy.resolve_and_open()` (existence check, optional
            copy, open).
        2.  Wraps file-system and driver failures in `BootstrapError`.
        """
        platform = policy.platform.value
        log.info("Initializing native database.", platform=platform)
        try:
            connection = await policy.resolve_and_open()
        except (OSError, sqlite3.Error) as e:
            log.exception("Database bootstrap failed.", platform=platform, error=str(e))
            raise BootstrapError(f"Failed to bootstrap database on {platform}: {e}") from e
        log.info("Database initialized successfully.", platform=platform)
        return cls(connection, platform=platform)

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise InitializationError("Database not initialized.")
        return self._conn

    async def _execute_raw(self, sql: str, params: Tuple[Any, ...]) -> RawResult:
        """Runs one statement and captures the driver-native result."""
        async with self._connection().execute(sql, params) as cursor:
            rows = await cursor.fetchall()
            return RawResult(
                rows=[dict(row) for row in rows],
                columns=cursor.description,
                rows_affected=cursor.rowcount,
                insert_id=cursor.lastrowid,
            )

    async def _execute(self, sql: str, params: Tuple[Any, ...]) -> DatabaseResponse:
        return normalize_raw_results([await self._execute_raw(sql, params)])

    async def execute_query(
        self, sql: str, params: Sequence[Any] = ()
    ) -> DatabaseResponse:
        """Executes one statement; driver errors come back as an error response."""
        async with self._lock:
            try:
                return await self._execute(sql, tuple(params or ()))
            except (sqlite3.Error, DatabaseError, ValueError, OverflowError, TypeError) as e:
                log.error("Error executing query.", sql=sql, error=str(e))
                return error_response(e)

    async def initialize_schema(self, sql: str) -> None:
        """Splits the script into statements and applies them one by one."""
        statements = split_sql_statements(sql)
        log.info("Starting schema initialization.", statements=len(statements))
        async with self._lock:
            conn = self._connection()
            for index, statement in enumerate(statements, start=1):
                try:
                    await conn.execute(statement)
                except sqlite3.Error as e:
                    log.error(
                        "Error executing schema statement.",
                        index=index,
                        total=len(statements),
                        sql=statement[:80],
                        error=str(e),
                    )
                    raise SchemaError(f"Schema statement {index} failed: {e}") from e
        log.info("Schema initialization completed successfully.")

    async def execute_transaction(
        self, statements: Sequence[SqlStatement]
    ) -> List[DatabaseResponse]:
        async with self._lock:
            conn = self._connection()

            async def begin():
                await conn.execute("BEGIN")

            return await run_transaction(
                statements,
                execute=self._execute,
                begin=begin,
                commit=conn.commit,
                rollback=conn.rollback,
            )

    async def close(self) -> None:
        """Closes the connection if it is open."""
        async with self._lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None
                log.info("SQLite connection closed.")
