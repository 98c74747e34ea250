# loadmaster_db/factory.py
"""
Database factory: builds the adapter once and hands out that same instance.

The factory is an explicit handle. The application creates one from its
`DatabaseSettings` at start-up and passes it to whatever needs the database;
nothing reads a module-level global. The adapter variant is chosen from
`settings.mode`, never from the ambient environment.
"""

import asyncio
from typing import Optional

import structlog

from config import DatabaseMode, DatabaseSettings
from loadmaster_db.base_connector import DatabaseInterface
from loadmaster_db.bootstrap import FileSystem, SQLiteDriver, select_bootstrap_policy
from loadmaster_db.errors import InitializationError
from loadmaster_db.memory_connector import InMemoryDatabaseService
from loadmaster_db.native_connector import NativeDatabaseService

log = structlog.get_logger(__name__)


class DatabaseFactory:
    """
    Lazily constructs and caches exactly one `DatabaseInterface`.

    Example:
        >>> factory = DatabaseFactory(get_database_settings_from_env())
        >>> db = await factory.get_database()
        >>> response = await db.execute_query("SELECT * FROM aircraft")
    """

    def __init__(
        self,
        settings: DatabaseSettings,
        file_system: Optional[FileSystem] = None,
        driver: Optional[SQLiteDriver] = None,
    ):
        self.settings = settings
        self._file_system = file_system
        self._driver = driver
        self._instance: Optional[DatabaseInterface] = None
        self._lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._instance is not None

    async def get_database(self) -> DatabaseInterface:
        """
        Returns the shared adapter, building it on first use.

        Concurrent first callers wait on the same lock, so only one adapter is
        ever constructed per reset cycle.

        Raises:
            - InitializationError: If the adapter could not be built.
        """
        if self._instance is not None:
            return self._instance

        async with self._lock:
            if self._instance is None:
                self._instance = await self._build()
        return self._instance

    async def _build(self) -> DatabaseInterface:
        mode = DatabaseMode(self.settings.mode)
        log.info("Initializing database instance...", mode=mode.value)
        try:
            if mode is DatabaseMode.TEST:
                log.info("Using InMemoryDatabaseService for test environment.")
                if self.settings.test_database_path:
                    return InMemoryDatabaseService.from_file(
                        self.settings.test_database_path,
                        readonly=self.settings.test_readonly,
                    )
                return InMemoryDatabaseService.from_memory()

            log.info(
                "Using NativeDatabaseService for production environment.",
                platform=self.settings.platform.value,
            )
            policy = select_bootstrap_policy(self.settings, self._file_system, self._driver)
            return await NativeDatabaseService.initialize(policy)
        except InitializationError:
            raise
        except Exception as e:
            log.exception("Failed to initialize a database implementation.", error=str(e))
            raise InitializationError(f"Failed to initialize database: {e}") from e

    async def reset_instance(self) -> None:
        """
        Closes and forgets the current adapter; the next `get_database()` builds a new one.

        Safe to call when no adapter has been built.
        """
        async with self._lock:
            instance, self._instance = self._instance, None
            if instance is not None:
                await instance.close()
                log.info("Database instance reset.")
