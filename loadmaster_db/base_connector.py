# loadmaster_db/base_connector.py
"""
Defines the abstract base class for all database adapters.

This module provides the `DatabaseInterface` Abstract Base Class (ABC).
By defining a standard interface (a "contract"), we ensure that every adapter
(the native production adapter and the in-memory test adapter) exposes the
same three operations with the same response shape. Application code talks
only to this contract and never to a driver directly.

Every operation is a coroutine, whether the underlying driver is asynchronous
(aiosqlite) or synchronous (sqlite3).
"""

from abc import ABC, abstractmethod
from typing import Any, List, Sequence

from loadmaster_db.db_types import DatabaseResponse, SqlStatement


class DatabaseInterface(ABC):
    """
    Abstract Base Class that defines the interface for database adapters.

    Any class that inherits from DatabaseInterface MUST implement all methods
    decorated with `@abstractmethod`.
    """

    @abstractmethod
    async def execute_query(
        self, sql: str, params: Sequence[Any] = ()
    ) -> DatabaseResponse:
        """
        Executes a single SQL statement and returns a normalized response.

        This method never raises for a failing statement. A driver error is
        logged and returned as a response with empty `results`, `count == 0`
        and a populated `error`.

        Args:
            - sql (str): The SQL statement to execute.
            - params (Sequence[Any]): Bind values for `?` placeholders.

        Returns:
            - Row results for reads, or one changes/last_insert_id result for writes.
        """

    @abstractmethod
    async def initialize_schema(self, sql: str) -> None:
        """
        Applies one or more semicolon-terminated DDL statements.

        Re-running the same script must not fail, so table creation must use
        `CREATE TABLE IF NOT EXISTS`.

        Raises:
            - SchemaError: If any statement fails.
        """

    @abstractmethod
    async def execute_transaction(
        self, statements: Sequence[SqlStatement]
    ) -> List[DatabaseResponse]:
        """
        Executes all statements, in order, as one atomic unit.

        Returns:
            - One response per statement, in input order.

        Raises:
            - TransactionError: If any statement fails. The whole transaction is
              rolled back and no partial responses are returned.
        """

    @abstractmethod
    async def close(self) -> None:
        """
        Closes the underlying connection and releases its resources.

        Safe to call more than once.
        """
