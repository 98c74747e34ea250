# loadmaster_db/schema.py
"""
Schema definitions and schema-script handling for the LoadMaster database.

The schema is a fixed, ordered list of `SchemaDefinition`s. Order matters only
for foreign keys: parent tables come before the tables that reference them.
All statements use `CREATE TABLE IF NOT EXISTS` so the generated script can be
applied any number of times against the same database.
"""

import re
import sqlite3
from typing import List, Optional, Sequence

import structlog

from loadmaster_db.base_connector import DatabaseInterface
from loadmaster_db.db_types import SchemaDefinition
from loadmaster_db.errors import SchemaError

log = structlog.get_logger(__name__)

_CREATE_TABLE = re.compile(r"\bCREATE\s+TABLE\b", re.IGNORECASE)
_CREATE_TABLE_IF_NOT_EXISTS = re.compile(
    r"\bCREATE\s+TABLE\s+IF\s+NOT\s+EXISTS\b", re.IGNORECASE
)

_SCHEMA_DEFINITIONS: List[SchemaDefinition] = [
    SchemaDefinition(
        table_name="user",
        create_statement="""
        CREATE TABLE IF NOT EXISTS user (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            last_login TEXT
        );""",
    ),
    SchemaDefinition(
        table_name="aircraft",
        create_statement="""
        CREATE TABLE IF NOT EXISTS aircraft (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            type TEXT NOT NULL,
            name TEXT NOT NULL,
            empty_weight REAL NOT NULL,
            empty_mac REAL NOT NULL,
            cargo_bay_width REAL NOT NULL,
            treadways_width REAL NOT NULL,
            treadways_dist_from_center REAL NOT NULL,
            ramp_length REAL NOT NULL,
            ramp_max_incline REAL NOT NULL,
            ramp_min_incline REAL NOT NULL
        );""",
    ),
    SchemaDefinition(
        table_name="mission",
        create_statement="""
        CREATE TABLE IF NOT EXISTS mission (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            created_date TEXT NOT NULL,
            modified_date TEXT NOT NULL,
            front_crew_weight REAL NOT NULL DEFAULT 0,
            back_crew_weight REAL NOT NULL DEFAULT 0,
            configuration_weights REAL NOT NULL DEFAULT 0,
            crew_gear_weight REAL NOT NULL DEFAULT 0,
            food_weight REAL NOT NULL DEFAULT 0,
            safety_gear_weight REAL NOT NULL DEFAULT 0,
            etc_weight REAL NOT NULL DEFAULT 0,
            outboard_fuel REAL NOT NULL DEFAULT 0,
            inboard_fuel REAL NOT NULL DEFAULT 0,
            fuselage_fuel REAL NOT NULL DEFAULT 0,
            auxiliary_fuel REAL NOT NULL DEFAULT 0,
            external_fuel REAL NOT NULL DEFAULT 0,
            aircraft_id INTEGER NOT NULL,
            FOREIGN KEY (aircraft_id) REFERENCES aircraft (id)
        );""",
    ),
    SchemaDefinition(
        table_name="cargo_type",
        create_statement="""
        CREATE TABLE IF NOT EXISTS cargo_type (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            name TEXT NOT NULL,
            default_weight REAL NOT NULL,
            default_length REAL NOT NULL,
            default_width REAL NOT NULL,
            default_height REAL NOT NULL,
            default_forward_overhang REAL NOT NULL,
            default_back_overhang REAL NOT NULL,
            default_cog REAL NOT NULL,
            type TEXT CHECK (type IN ('bulk', '2_wheeled', '4_wheeled')) NOT NULL,
            FOREIGN KEY (user_id) REFERENCES user (id)
        );""",
    ),
    SchemaDefinition(
        table_name="cargo_item",
        create_statement="""
        CREATE TABLE IF NOT EXISTS cargo_item (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            mission_id INTEGER NOT NULL,
            cargo_type_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            weight REAL NOT NULL,
            length REAL NOT NULL,
            width REAL NOT NULL,
            height REAL NOT NULL,
            forward_overhang REAL NOT NULL,
            back_overhang REAL NOT NULL,
            cog REAL NOT NULL,
            x_start_position REAL NOT NULL,
            y_start_position REAL NOT NULL,
            status TEXT CHECK (status IN ('inventory', 'onStage', 'onDeck')) NOT NULL,
            FOREIGN KEY (mission_id) REFERENCES mission (id),
            FOREIGN KEY (cargo_type_id) REFERENCES cargo_type (id)
        );""",
    ),
    SchemaDefinition(
        table_name="fuel_state",
        create_statement="""
        CREATE TABLE IF NOT EXISTS fuel_state (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            mission_id INTEGER NOT NULL,
            total_fuel REAL NOT NULL,
            main_tank_1_fuel REAL NOT NULL,
            main_tank_2_fuel REAL NOT NULL,
            main_tank_3_fuel REAL NOT NULL,
            main_tank_4_fuel REAL NOT NULL,
            external_1_fuel REAL NOT NULL,
            external_2_fuel REAL NOT NULL,
            mac_contribution REAL NOT NULL,
            FOREIGN KEY (mission_id) REFERENCES mission (id)
        );""",
    ),
    SchemaDefinition(
        table_name="fuel_mac_quants",
        create_statement="""
        CREATE TABLE IF NOT EXISTS fuel_mac_quants (
            outboard_fuel REAL NOT NULL,
            inboard_fuel REAL NOT NULL,
            fuselage_fuel REAL NOT NULL,
            auxiliary_fuel REAL NOT NULL,
            external_fuel REAL NOT NULL,
            mac_contribution REAL NOT NULL
        );""",
    ),
    SchemaDefinition(
        table_name="compartment",
        create_statement="""
        CREATE TABLE IF NOT EXISTS compartment (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            aircraft_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            x_start REAL NOT NULL,
            x_end REAL NOT NULL,
            floor_area REAL NOT NULL,
            usable_volume REAL NOT NULL,
            FOREIGN KEY (aircraft_id) REFERENCES aircraft (id)
        );""",
    ),
    SchemaDefinition(
        table_name="load_constraints",
        create_statement="""
        CREATE TABLE IF NOT EXISTS load_constraints (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            compartment_id INTEGER NOT NULL,
            max_cumulative_weight REAL,
            max_concentrated_load REAL,
            max_running_load_treadway REAL,
            max_running_load_between_treadways REAL,
            FOREIGN KEY (compartment_id) REFERENCES compartment (id)
        );""",
    ),
    SchemaDefinition(
        table_name="allowed_mac_constraints",
        create_statement="""
        CREATE TABLE IF NOT EXISTS allowed_mac_constraints (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            gross_aircraft_weight REAL NOT NULL,
            min_mac REAL NOT NULL,
            max_mac REAL NOT NULL
        );""",
    ),
]


def get_schema_definitions() -> List[SchemaDefinition]:
    """Returns all schema definitions in foreign-key dependency order."""
    return list(_SCHEMA_DEFINITIONS)


def validate_definition(definition: SchemaDefinition) -> None:
    """Rejects table definitions that would fail when the script is re-applied."""
    statement = definition.create_statement
    if _CREATE_TABLE.search(statement) and not _CREATE_TABLE_IF_NOT_EXISTS.search(
        statement
    ):
        raise SchemaError(
            f"Table '{definition.table_name}' must be created with CREATE TABLE IF NOT EXISTS"
        )


def generate_schema_sql(
    definitions: Optional[Sequence[SchemaDefinition]] = None,
) -> str:
    """
    Concatenates the create statements into one schema script.

    Args:
        - definitions: Defaults to `get_schema_definitions()`. The given order
                       is kept as is.

    Raises:
        - SchemaError: If a definition is not safe to re-apply.
    """
    definitions = get_schema_definitions() if definitions is None else definitions
    parts = []
    for definition in definitions:
        validate_definition(definition)
        statement = definition.create_statement.strip()
        if not statement.endswith(";"):
            statement += ";"
        parts.append(statement)
    return "\n\n".join(parts)


def _is_blank(chunk: str) -> bool:
    """True when a chunk holds nothing but whitespace, comments and semicolons."""
    without_block_comments = re.sub(r"/\*.*?\*/", "", chunk, flags=re.DOTALL)
    without_line_comments = re.sub(r"--[^\n]*", "", without_block_comments)
    return not without_line_comments.replace(";", "").strip()


def split_sql_statements(script: str) -> List[str]:
    """
    Splits a script into individual statements at real statement boundaries.

    A semicolon only ends a statement when SQLite's own tokenizer reports the
    text so far as complete (`sqlite3.complete_statement`). Semicolons inside
    string literals, quoted identifiers, comments and `CREATE TRIGGER ... END`
    bodies therefore never split a statement. A final statement without a
    terminating semicolon is still returned.
    """
    statements: List[str] = []
    start = 0
    for position, char in enumerate(script):
        if char != ";":
            continue
        candidate = script[start : position + 1]
        if sqlite3.complete_statement(candidate):
            if not _is_blank(candidate):
                statements.append(candidate.strip())
            start = position + 1

    remainder = script[start:]
    if not _is_blank(remainder):
        statements.append(remainder.strip())
    return statements


async def initialize_loadmaster_database(db: DatabaseInterface) -> None:
    """Applies the canonical LoadMaster schema to the given adapter."""
    log.info("Creating LoadMaster database schema...")
    await db.initialize_schema(generate_schema_sql())
    log.info("Schema creation complete.", tables=len(_SCHEMA_DEFINITIONS))
