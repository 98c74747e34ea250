import pytest

from loadmaster_db.db_types import SchemaDefinition
from loadmaster_db.errors import SchemaError
from loadmaster_db.memory_connector import InMemoryDatabaseService
from loadmaster_db.schema import (
    generate_schema_sql,
    get_schema_definitions,
    initialize_loadmaster_database,
    split_sql_statements,
)

EXPECTED_ORDER = [
    "user",
    "aircraft",
    "mission",
    "cargo_type",
    "cargo_item",
    "fuel_state",
    "fuel_mac_quants",
    "compartment",
    "load_constraints",
    "allowed_mac_constraints",
]


def test_definitions_follow_dependency_order():
    assert [d.table_name for d in get_schema_definitions()] == EXPECTED_ORDER


def test_generated_script_contains_every_table_in_order():
    script = generate_schema_sql()
    positions = [
        script.index(f"CREATE TABLE IF NOT EXISTS {name} (") for name in EXPECTED_ORDER
    ]
    assert positions == sorted(positions)
    assert len(split_sql_statements(script)) == len(EXPECTED_ORDER)


def test_non_idempotent_definition_is_rejected():
    bad = SchemaDefinition(table_name="t", create_statement="CREATE TABLE t (id INTEGER)")
    with pytest.raises(SchemaError):
        generate_schema_sql([bad])


def test_missing_semicolon_is_added():
    definition = SchemaDefinition(
        table_name="t", create_statement="CREATE TABLE IF NOT EXISTS t (id INTEGER)"
    )
    assert generate_schema_sql([definition]).endswith(";")


class TestSplitStatements:
    def test_simple_script(self):
        assert split_sql_statements("CREATE TABLE a (x);\nCREATE TABLE b (y);") == [
            "CREATE TABLE a (x);",
            "CREATE TABLE b (y);",
        ]

    def test_semicolon_inside_string_literal(self):
        script = "INSERT INTO t VALUES ('a;b');\nINSERT INTO t VALUES ('c');"
        assert split_sql_statements(script) == [
            "INSERT INTO t VALUES ('a;b');",
            "INSERT INTO t VALUES ('c');",
        ]

    def test_trigger_body_stays_whole(self):
        script = """
            CREATE TRIGGER tr AFTER INSERT ON t BEGIN
                UPDATE t SET x = 1;
                UPDATE t SET y = 2;
            END;
            SELECT 1;
        """
        statements = split_sql_statements(script)
        assert len(statements) == 2
        assert statements[0].startswith("CREATE TRIGGER")
        assert statements[0].endswith("END;")

    def test_comments_and_empty_statements_are_dropped(self):
        script = "-- leading comment; with a semicolon\n;;\nSELECT 1;\n/* trailing */"
        assert split_sql_statements(script) == ["SELECT 1;"]

    def test_trailing_statement_without_semicolon(self):
        assert split_sql_statements("SELECT 1; SELECT 2") == ["SELECT 1;", "SELECT 2"]


@pytest.mark.asyncio
async def test_loadmaster_schema_is_idempotent():
    db = InMemoryDatabaseService.from_memory()
    try:
        await initialize_loadmaster_database(db)
        await initialize_loadmaster_database(db)

        tables = await db.execute_query(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
        )
        assert sorted(row["name"] for row in tables.rows) == sorted(EXPECTED_ORDER)
    finally:
        await db.close()
