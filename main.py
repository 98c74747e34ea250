# main.py
"""
Main command-line interface for managing the LoadMaster database.
Provides commands to initialize the app database, print the schema script and
run ad-hoc queries through the same adapter the application uses.
"""

import argparse
import asyncio
import json
import sys
from typing import Any, List, Optional

import structlog

from config import get_database_settings_from_env, setup_logging
from loadmaster_db.build_database import initialize_app_database
from loadmaster_db.errors import DatabaseError
from loadmaster_db.factory import DatabaseFactory
from loadmaster_db.schema import generate_schema_sql

log = structlog.get_logger(__name__)


def parse_param(raw: str) -> Any:
    """JSON literals (numbers, null, true, quoted strings) are decoded, anything else stays a string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="LoadMaster Database Management Tool.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    subparsers = parser.add_subparsers(
        dest="command", required=True, help="Available commands"
    )

    # --- 'init-db' command ---
    subparsers.add_parser(
        "init-db", help="Create the schema and default data if the database is empty."
    )

    # --- 'schema' command ---
    subparsers.add_parser("schema", help="Print the canonical schema script.")

    # --- 'query' command ---
    parser_query = subparsers.add_parser(
        "query", help="Run one SQL statement and print the normalized response."
    )
    parser_query.add_argument("sql", help="SQL statement with ? placeholders.")
    parser_query.add_argument(
        "params", nargs="*", help="Bind values, parsed as JSON when possible."
    )
    return parser


async def run_command(args: argparse.Namespace, factory: DatabaseFactory) -> int:
    """Executes the parsed command against the factory's adapter; returns an exit code."""
    db = await factory.get_database()
    try:
        if args.command == "init-db":
            if await initialize_app_database(db):
                log.info("Database initialized.")
            else:
                log.info("No initialization needed.")
            return 0

        if args.command == "query":
            params = [parse_param(p) for p in args.params]
            response = await db.execute_query(args.sql, params)
            print(json.dumps(response.to_dict(), indent=2, default=str))
            return 0 if response.ok else 1
    finally:
        await factory.reset_instance()

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    """Parses command-line arguments and executes the requested action."""
    args = build_parser().parse_args(argv)
    # Initialize logging before anything touches the database.
    setup_logging()

    if args.command == "schema":
        print(generate_schema_sql())
        return 0

    try:
        factory = DatabaseFactory(get_database_settings_from_env())
        return asyncio.run(run_command(args, factory))
    except (DatabaseError, ValueError):
        log.exception("A fatal database error occurred in the management script.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
