"""
Result normalization.

Drivers hand back results in their own shapes: aiosqlite cursors with a
description, a row list, a row count and a last row id; sqlite3 cursors for the
test adapter. This module turns all of them into `DatabaseResponse` /
`QueryResult` values so callers only ever see one response shape.
"""

import sqlite3
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loadmaster_db.db_types import DatabaseResponse, QueryResult
from loadmaster_db.errors import DatabaseError, QueryError


@dataclass(frozen=True)
class RawResult:
    """
    Driver-native outcome of one executed statement.

    `columns` is the cursor description; it is `None` for statements that do
    not produce a row set (INSERT/UPDATE/DELETE/DDL).
    """

    rows: List[Dict[str, Any]] = field(default_factory=list)
    columns: Optional[Sequence[Any]] = None
    rows_affected: int = 0
    insert_id: Optional[int] = None


def is_read_statement(sql: str) -> bool:
    """Text classification used by the test adapter: SELECT means a row set."""
    return sql.strip().lower().startswith("select")


def format_rows(rows: Iterable[Dict[str, Any]]) -> DatabaseResponse:
    results = [QueryResult(data=dict(row)) for row in rows]
    return DatabaseResponse(results=results, count=len(results))


def format_mutation(changes: int, last_insert_id: Optional[int]) -> DatabaseResponse:
    # sqlite3 reports -1 for statements it does not count (DDL, PRAGMA).
    result = QueryResult(changes=max(changes or 0, 0), last_insert_id=last_insert_id)
    return DatabaseResponse(results=[result], count=1)


def normalize_raw_results(raw_results: Iterable[RawResult]) -> DatabaseResponse:
    """
    Classifies each raw result and merges them into one response.

    Rules, per raw result:
    - Non-empty row set: one `QueryResult(data=row)` per row. Any affected-row
      count the driver also reports is ignored (read semantics win).
    - Empty row set from a row-producing statement: contributes nothing.
    - No row set at all: exactly one `QueryResult(changes, last_insert_id)`.
    """
    results: List[QueryResult] = []
    for raw in raw_results:
        if raw.rows:
            results.extend(QueryResult(data=dict(row)) for row in raw.rows)
        elif raw.columns is None:
            results.append(
                QueryResult(
                    changes=max(raw.rows_affected or 0, 0),
                    last_insert_id=raw.insert_id,
                )
            )
    return DatabaseResponse(results=results, count=len(results))


def error_code_for(exc: BaseException) -> str:
    if isinstance(exc, DatabaseError):
        return exc.code
    if isinstance(exc, sqlite3.Error):
        return getattr(exc, "sqlite_errorname", None) or QueryError.default_code
    return QueryError.default_code


def error_response(exc: BaseException) -> DatabaseResponse:
    """Builds the error-bearing response returned by `execute_query`."""
    message = str(exc) or type(exc).__name__
    return DatabaseResponse.failure(message=message, code=error_code_for(exc))
