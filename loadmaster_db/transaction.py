"""
Transaction coordination shared by both adapters.

The coordinator is driver-agnostic: each adapter hands in coroutines that
begin, commit and roll back on its own connection, plus a statement executor
that raises on failure (unlike `execute_query`, which absorbs errors).
"""

from typing import Any, Awaitable, Callable, List, Mapping, Sequence, Tuple, Union

import structlog

from loadmaster_db.db_types import DatabaseResponse, SqlStatement
from loadmaster_db.errors import TransactionError

log = structlog.get_logger(__name__)

StatementExecutor = Callable[[str, Tuple[Any, ...]], Awaitable[DatabaseResponse]]
ConnectionStep = Callable[[], Awaitable[None]]
StatementLike = Union[SqlStatement, Mapping[str, Any]]


def coerce_statement(statement: StatementLike) -> SqlStatement:
    """Accepts `SqlStatement` or a `{"sql": ..., "params": [...]}` mapping."""
    if isinstance(statement, SqlStatement):
        return statement
    if isinstance(statement, Mapping) and "sql" in statement:
        return SqlStatement(sql=statement["sql"], params=tuple(statement.get("params") or ()))
    raise TypeError(f"Not a SQL statement: {statement!r}")


async def run_transaction(
    statements: Sequence[StatementLike],
    execute: StatementExecutor,
    begin: ConnectionStep,
    commit: ConnectionStep,
    rollback: ConnectionStep,
) -> List[DatabaseResponse]:
    """
    Executes `statements` in input order inside one transaction.

    Workflow:
    1.  Calls `begin()`.
    2.  Executes each statement with `execute()`, collecting one response each.
    3.  Calls `commit()` once every statement succeeded.
    4.  On any failure, calls `rollback()` and raises `TransactionError`
        chained to the original driver error. No responses are returned.
    """
    pending = [coerce_statement(statement) for statement in statements]
    responses: List[DatabaseResponse] = []
    current = -1

    try:
        await begin()
        for current, statement in enumerate(pending):
            responses.append(await execute(statement.sql, tuple(statement.params or ())))
        current = len(pending)
        await commit()
    except Exception as exc:
        failed_sql = pending[current].sql if 0 <= current < len(pending) else None
        log.error(
            "Transaction failed, rolling back.",
            statement_index=current,
            sql=failed_sql,
            error=str(exc),
        )
        try:
            await rollback()
        except Exception as rollback_exc:
            log.error("Rollback failed.", error=str(rollback_exc))
        if isinstance(exc, TransactionError):
            raise
        index = current if 0 <= current < len(pending) else None
        where = f"statement {index}" if index is not None else "transaction boundary"
        raise TransactionError(
            f"Transaction failed at {where}: {exc}", statement_index=index
        ) from exc

    log.debug("Transaction committed.", statements=len(pending))
    return responses
