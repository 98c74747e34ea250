# ==============================================================================
# CONFTEST - Pytest Fixtures and Configuration
# ==============================================================================
# Shared fixtures for all tests
# ==============================================================================

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from config import DatabaseMode, DatabaseSettings, Platform
from loadmaster_db.factory import DatabaseFactory
from loadmaster_db.memory_connector import InMemoryDatabaseService

ITEMS_SCHEMA = """
    CREATE TABLE IF NOT EXISTS items (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE
    );

    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY,
        name TEXT
    );
"""

ITEMS_DATA = """
    INSERT INTO items (id, name) VALUES
        (1, 'Item 1'),
        (2, 'Item 2');

    INSERT INTO categories (id, name) VALUES
        (1, 'Category A'),
        (2, 'Category B'),
        (3, 'Category C');
"""


def make_bundled_database(path: Path, marker: str = "bundled") -> Path:
    """Creates a small pre-populated SQLite file, like the one shipped with the app."""
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(ITEMS_SCHEMA)
        conn.execute("CREATE TABLE IF NOT EXISTS markers (value TEXT)")
        conn.execute("INSERT INTO markers (value) VALUES (?)", (marker,))
        conn.commit()
    finally:
        conn.close()
    return path


def native_settings(tmp_path: Path, platform: Platform) -> DatabaseSettings:
    return DatabaseSettings(
        mode=DatabaseMode.NATIVE,
        platform=platform,
        documents_dir=str(tmp_path / "documents"),
        assets_dir=str(tmp_path / "assets"),
        bundle_dir=str(tmp_path / "bundle"),
        library_dir=str(tmp_path / "library"),
    )


@pytest.fixture
def test_settings() -> DatabaseSettings:
    return DatabaseSettings(mode=DatabaseMode.TEST)


@pytest_asyncio.fixture
async def memory_db() -> AsyncGenerator[InMemoryDatabaseService, None]:
    """In-memory adapter with the items/categories fixture tables loaded."""
    db = InMemoryDatabaseService.from_memory()
    await db.initialize_schema(ITEMS_SCHEMA)
    db.load_test_data(ITEMS_DATA)
    yield db
    await db.close()


@pytest_asyncio.fixture
async def factory(test_settings: DatabaseSettings) -> AsyncGenerator[DatabaseFactory, None]:
    factory = DatabaseFactory(test_settings)
    yield factory
    await factory.reset_instance()
