# loadmaster_db/build_database.py
"""
First-run initialization of the application database.
"""

import time
from datetime import datetime, timezone
from typing import List

import structlog

from loadmaster_db.base_connector import DatabaseInterface
from loadmaster_db.db_types import SqlStatement
from loadmaster_db.schema import initialize_loadmaster_database

log = structlog.get_logger(__name__)

DEFAULT_AIRCRAFT_NAME = "Hercules"
DEFAULT_CARGO_TYPE_NAME = "Standard Pallet"
DEFAULT_MISSION_NAME = "Default Mission"


def default_seed_statements(now: str) -> List[SqlStatement]:
    """
    Statements that insert the default aircraft, cargo type, mission and cargo
    item. Later rows look up their parents by name, so the whole list can run
    as a single transaction.
    """
    aircraft_id = "(SELECT id FROM aircraft WHERE name = ? ORDER BY id DESC LIMIT 1)"
    cargo_type_id = "(SELECT id FROM cargo_type WHERE name = ? ORDER BY id DESC LIMIT 1)"
    mission_id = "(SELECT id FROM mission WHERE name = ? ORDER BY id DESC LIMIT 1)"
    return [
        SqlStatement(
            sql="""
            INSERT INTO aircraft (
                type, name, empty_weight, empty_mac, cargo_bay_width,
                treadways_width, treadways_dist_from_center, ramp_length,
                ramp_max_incline, ramp_min_incline
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            params=("C-130", DEFAULT_AIRCRAFT_NAME, 75000, 84, 10, 2, 1, 10, 15, 5),
        ),
        SqlStatement(
            sql="""
            INSERT INTO cargo_type (
                name, default_weight, default_length, default_width, default_height,
                default_forward_overhang, default_back_overhang, default_cog, type
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            params=(DEFAULT_CARGO_TYPE_NAME, 2000, 108, 88, 96, 0, 0, 54, "bulk"),
        ),
        SqlStatement(
            sql=f"""
            INSERT INTO mission (
                name, created_date, modified_date, front_crew_weight, back_crew_weight,
                configuration_weights, crew_gear_weight, food_weight,
                safety_gear_weight, etc_weight, aircraft_id
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, {aircraft_id})""",
            params=(
                DEFAULT_MISSION_NAME, now, now, 500, 500, 500, 300, 200, 150, 100,
                DEFAULT_AIRCRAFT_NAME,
            ),
        ),
        SqlStatement(
            sql=f"""
            INSERT INTO cargo_item (
                mission_id, cargo_type_id, name, weight, length, width, height,
                forward_overhang, back_overhang, cog, x_start_position,
                y_start_position, status
            )
            VALUES ({mission_id}, {cargo_type_id}, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            params=(
                DEFAULT_MISSION_NAME, DEFAULT_CARGO_TYPE_NAME,
                "Default Cargo Item", 1000, 108, 88, 96, 0, 0, 54, 0, 0, "inventory",
            ),
        ),
    ]


async def initialize_app_database(db: DatabaseInterface) -> bool:
    """
    Creates the schema and default data unless the database is already set up.

    Workflow:
    1.  Queries the aircraft table. Rows mean a previous run finished, so
        nothing is done. A missing table shows up as an error response, which
        is treated like an empty table.
    2.  Applies the canonical schema.
    3.  Inserts the default records in one transaction.

    Returns:
        - bool: True if the database was initialized by this call, False if it
                already was.

    Raises:
        - SchemaError / TransactionError: Propagated unchanged; a failed seed
          leaves no partial rows behind.
    """
    existing = await db.execute_query("SELECT * FROM aircraft")
    if existing.count > 0:
        log.info("Database already initialized.", aircraft=existing.count)
        return False

    start_time = time.time()
    log.info("[1/2] Creating database schema...")
    await initialize_loadmaster_database(db)

    log.info("[2/2] Inserting default aircraft, cargo type, mission and cargo item...")
    now = datetime.now(timezone.utc).isoformat()
    responses = await db.execute_transaction(default_seed_statements(now))

    total_time = time.time() - start_time
    log.info(
        "--- App Database Initialized ---",
        aircraft_id=responses[0].results[0].last_insert_id,
        mission_id=responses[2].results[0].last_insert_id,
        total_time=f"{total_time:.2f}s",
    )
    return True
