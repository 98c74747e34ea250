"""Error hierarchy for the database layer."""

from typing import Optional


class DatabaseError(Exception):
    """Base class for every error raised by the database layer."""

    default_code = "DB_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, code={self.code!r})"


class InitializationError(DatabaseError):
    """The adapter or its connection could not be constructed."""

    default_code = "DB_INIT_ERROR"


class BootstrapError(InitializationError):
    """A platform file copy or open step failed during bootstrap."""

    default_code = "DB_BOOTSTRAP_ERROR"


class QueryError(DatabaseError):
    """A single query failed. Absorbed into `DatabaseResponse.error`."""

    default_code = "DB_ERROR"


class SchemaError(DatabaseError):
    """Applying DDL failed, or a schema definition is not re-appliable."""

    default_code = "DB_SCHEMA_ERROR"


class TransactionError(DatabaseError):
    """A statement inside a transaction failed; the transaction was rolled back."""

    default_code = "DB_TRANSACTION_ERROR"

    def __init__(
        self,
        message: str,
        statement_index: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.statement_index = statement_index
