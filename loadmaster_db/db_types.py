"""
Common result and statement types shared by every database adapter.

These are transient value objects: a `DatabaseResponse` is built for one call
and handed back to the caller, it has no persisted identity.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class QueryResult:
    """
    One row of a read, or the outcome of one mutation.

    Exactly one shape is populated: `data` for reads, or `changes` /
    `last_insert_id` for writes.
    """

    data: Optional[Dict[str, Any]] = None
    changes: Optional[int] = None
    last_insert_id: Optional[int] = None

    def __post_init__(self):
        is_row = self.data is not None
        is_mutation = self.changes is not None or self.last_insert_id is not None
        if is_row and is_mutation:
            raise ValueError("QueryResult cannot hold both row data and a mutation outcome")
        if not is_row and not is_mutation:
            raise ValueError("QueryResult must hold row data or a mutation outcome")

    @property
    def is_row(self) -> bool:
        return self.data is not None

    def to_dict(self) -> Dict[str, Any]:
        if self.is_row:
            return {"data": dict(self.data)}
        return {"changes": self.changes, "lastInsertId": self.last_insert_id}


@dataclass(frozen=True)
class ErrorInfo:
    message: str
    code: Optional[str] = None


@dataclass(frozen=True)
class DatabaseResponse:
    """
    Uniform response for every query.

    Invariant: when `error` is set, `results` is empty and `count` is 0.
    """

    results: Tuple[QueryResult, ...] = ()
    count: int = 0
    error: Optional[ErrorInfo] = None

    def __post_init__(self):
        # Accept any sequence from callers but store an immutable tuple.
        object.__setattr__(self, "results", tuple(self.results))
        if self.error is not None and (self.results or self.count != 0):
            raise ValueError("An error response must have no results and a count of 0")

    @classmethod
    def failure(cls, message: str, code: Optional[str] = None) -> "DatabaseResponse":
        return cls(results=(), count=0, error=ErrorInfo(message=message, code=code))

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def rows(self) -> List[Dict[str, Any]]:
        """The `data` mappings of all row-bearing results, in order."""
        return [result.data for result in self.results if result.is_row]

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "results": [result.to_dict() for result in self.results],
            "count": self.count,
        }
        if self.error is not None:
            payload["error"] = {"message": self.error.message, "code": self.error.code}
        return payload


@dataclass(frozen=True)
class SqlStatement:
    """A parameterized statement, used as transaction input."""

    sql: str
    params: Sequence[Any] = field(default_factory=tuple)


@dataclass(frozen=True)
class SchemaDefinition:
    """A named unit of schema; definitions are concatenated in dependency order."""

    table_name: str
    create_statement: str
