import pytest

from loadmaster_db.db_types import SqlStatement
from loadmaster_db.errors import SchemaError, TransactionError
from loadmaster_db.memory_connector import InMemoryDatabaseService

from tests.conftest import ITEMS_SCHEMA


def assert_response_invariant(response):
    if response.error is not None:
        assert response.results == ()
        assert response.count == 0
    else:
        assert response.count == len(response.results)


class TestExecuteQuery:
    @pytest.mark.asyncio
    async def test_select_returns_rows(self, memory_db):
        response = await memory_db.execute_query("SELECT * FROM items WHERE id = ?", [1])

        assert response.error is None
        assert response.count == 1
        assert response.results[0].data == {"id": 1, "name": "Item 1"}

    @pytest.mark.asyncio
    async def test_insert_then_select_round_trip(self, memory_db):
        insert = await memory_db.execute_query(
            "INSERT INTO items (name) VALUES (?)", ["Widget"]
        )
        assert insert.count == 1
        assert insert.results[0].changes == 1

        select = await memory_db.execute_query(
            "SELECT * FROM items WHERE name = ?", ["Widget"]
        )
        assert select.count == 1
        assert select.results[0].data["name"] == "Widget"
        assert select.results[0].data["id"] == insert.results[0].last_insert_id

    @pytest.mark.asyncio
    async def test_select_without_match_is_empty(self, memory_db):
        response = await memory_db.execute_query(
            "SELECT * FROM items WHERE id = ?", [999999]
        )

        assert response.results == ()
        assert response.count == 0
        assert response.error is None

    @pytest.mark.asyncio
    async def test_update_and_delete_report_changes(self, memory_db):
        update = await memory_db.execute_query(
            "UPDATE categories SET name = ? WHERE id = ?", ["Updated", 2]
        )
        assert update.results[0].changes == 1

        delete = await memory_db.execute_query("DELETE FROM categories WHERE id > ?", [1])
        assert delete.results[0].changes == 2

        remaining = await memory_db.execute_query("SELECT * FROM categories")
        assert [row["name"] for row in remaining.rows] == ["Category A"]

    @pytest.mark.asyncio
    async def test_statement_classification_ignores_case_and_whitespace(self, memory_db):
        response = await memory_db.execute_query("  \n  sElEcT name FROM items ORDER BY id")
        assert response.rows == [{"name": "Item 1"}, {"name": "Item 2"}]

    @pytest.mark.asyncio
    async def test_errors_are_returned_not_raised(self, memory_db):
        response = await memory_db.execute_query("SELECT * FROM nonexistent_table")

        assert response.error is not None
        assert "nonexistent_table" in response.error.message
        assert response.error.code
        assert_response_invariant(response)

    @pytest.mark.asyncio
    async def test_constraint_violation_is_returned(self, memory_db):
        response = await memory_db.execute_query(
            "INSERT INTO items (id, name) VALUES (?, ?)", [1, "Duplicate"]
        )

        assert response.error is not None
        assert response.count == 0

    @pytest.mark.asyncio
    async def test_unbindable_parameter_is_returned(self, memory_db):
        response = await memory_db.execute_query("SELECT ? AS v", [2**64])

        assert response.error is not None
        assert response.error.code == "DB_ERROR"
        assert response.count == 0
        assert response.results == ()

    @pytest.mark.asyncio
    async def test_response_invariant_holds(self, memory_db):
        queries = [
            ("SELECT * FROM items", []),
            ("SELECT * FROM items WHERE id = ?", [42]),
            ("INSERT INTO categories (name) VALUES (?)", ["New"]),
            ("INVALID SQL", []),
            ("SELECT * FROM items WHERE id = ?", []),
        ]
        for sql, params in queries:
            assert_response_invariant(await memory_db.execute_query(sql, params))


class TestInitializeSchema:
    @pytest.mark.asyncio
    async def test_schema_is_idempotent(self, memory_db):
        await memory_db.initialize_schema(ITEMS_SCHEMA)
        await memory_db.initialize_schema(ITEMS_SCHEMA)

        tables = await memory_db.execute_query(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        assert [row["name"] for row in tables.rows] == ["categories", "items"]

    @pytest.mark.asyncio
    async def test_malformed_schema_raises(self, memory_db):
        with pytest.raises(SchemaError):
            await memory_db.initialize_schema("CREATE INVALID TABLE")


class TestExecuteTransaction:
    @pytest.mark.asyncio
    async def test_statements_run_in_order(self, memory_db):
        responses = await memory_db.execute_transaction(
            [
                SqlStatement("INSERT INTO items (name) VALUES ('A')"),
                SqlStatement("SELECT * FROM items WHERE name='A'"),
            ]
        )

        assert len(responses) == 2
        assert responses[0].results[0].changes == 1
        assert responses[1].results[0].data["name"] == "A"

    @pytest.mark.asyncio
    async def test_mixed_statements(self, memory_db):
        responses = await memory_db.execute_transaction(
            [
                SqlStatement("INSERT INTO items (id, name) VALUES (?, ?)", [5, "transaction-item"]),
                SqlStatement("UPDATE items SET name = ? WHERE id = ?", ["modified", 5]),
                {"sql": "SELECT * FROM items WHERE id = ?", "params": [5]},
            ]
        )

        assert [r.count for r in responses] == [1, 1, 1]
        assert responses[0].results[0].last_insert_id == 5
        assert responses[2].results[0].data["name"] == "modified"

    @pytest.mark.asyncio
    async def test_failure_rolls_back_everything(self, memory_db):
        with pytest.raises(TransactionError) as excinfo:
            await memory_db.execute_transaction(
                [
                    SqlStatement("INSERT INTO items (name) VALUES (?)", ["Valid"]),
                    SqlStatement("INSERT INTO items (name) VALUES (?)", [None]),
                ]
            )

        assert excinfo.value.statement_index == 1
        response = await memory_db.execute_query(
            "SELECT * FROM items WHERE name IS NULL OR name = ?", ["Valid"]
        )
        assert response.count == 0

        # The connection is usable again after the rollback.
        again = await memory_db.execute_transaction(
            [SqlStatement("INSERT INTO items (name) VALUES (?)", ["Valid"])]
        )
        assert again[0].results[0].changes == 1

    @pytest.mark.asyncio
    async def test_empty_transaction(self, memory_db):
        assert await memory_db.execute_transaction([]) == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_file_database_persists(self, tmp_path):
        path = tmp_path / "persist.db"
        db = InMemoryDatabaseService.from_file(str(path))
        await db.initialize_schema(ITEMS_SCHEMA)
        await db.execute_query("INSERT INTO items (name) VALUES (?)", ["Kept"])
        await db.close()

        reopened = InMemoryDatabaseService.from_file(str(path), readonly=True)
        try:
            response = await reopened.execute_query("SELECT name FROM items")
            assert response.rows == [{"name": "Kept"}]
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_closed_database(self):
        db = InMemoryDatabaseService.from_memory()
        await db.close()
        await db.close()

        response = await db.execute_query("SELECT 1")
        assert response.error is not None
        assert response.error.code == "DB_INIT_ERROR"
