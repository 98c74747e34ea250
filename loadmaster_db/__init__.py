"""Database abstraction layer for the LoadMaster application."""

from loadmaster_db.base_connector import DatabaseInterface
from loadmaster_db.db_types import (
    DatabaseResponse,
    ErrorInfo,
    QueryResult,
    SchemaDefinition,
    SqlStatement,
)
from loadmaster_db.factory import DatabaseFactory

__all__ = [
    "DatabaseFactory",
    "DatabaseInterface",
    "DatabaseResponse",
    "ErrorInfo",
    "QueryResult",
    "SchemaDefinition",
    "SqlStatement",
]
