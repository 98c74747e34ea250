# loadmaster_db/bootstrap.py
"""
Platform bootstrap for the native database adapter.

The application ships a pre-populated `loadmaster.db`. Before the first
connection, that file has to be made available at a writable, openable
location, and each platform does this differently:

- Android: copy the packaged asset into the documents directory on first run,
  then open the writable copy (`CopyOnFirstRunPolicy`).
- iOS: open the bundled database directly and let the driver materialize a
  working copy in its default location (`DirectBundleOpenPolicy`).
- Windows: same shape as Android, but the source is addressed through the
  `ms-appx:///` bundle scheme (`BundlePathCopyPolicy`).

One policy is selected per adapter, once, from the injected platform identity.
The file-system and driver work is delegated to the `FileSystem` and
`SQLiteDriver` collaborators so tests can point them at temporary directories.
"""

import asyncio
import os
import shutil
from abc import ABC, abstractmethod
from typing import Dict, Optional, Type

import aiosqlite
import structlog

from config import DatabaseSettings, Platform

log = structlog.get_logger(__name__)

MS_APPX_SCHEME = "ms-appx:///"


class FileSystem:
    """
    Asynchronous file operations used during bootstrap.

    Blocking calls run in a worker thread so the event loop is never stalled
    by a large database copy.
    """

    def __init__(self, assets_dir: str, bundle_dir: str):
        self.assets_dir = assets_dir
        self.bundle_dir = bundle_dir

    def resolve_bundle_uri(self, uri: str) -> str:
        """Maps `ms-appx:///Assets/x.db` onto a path under the bundle directory."""
        if uri.startswith(MS_APPX_SCHEME):
            relative = uri[len(MS_APPX_SCHEME) :]
            return os.path.join(self.bundle_dir, *relative.split("/"))
        return uri

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def copy_file(self, source: str, destination: str) -> None:
        source_path = self.resolve_bundle_uri(source)

        def _copy():
            if not os.path.exists(source_path):
                raise FileNotFoundError(f"Bundled database not found: {source_path}")
            os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
            shutil.copyfile(source_path, destination)

        await asyncio.to_thread(_copy)
        log.info("Copied database file.", source=source_path, destination=destination)

    async def copy_file_assets(self, asset_name: str, destination: str) -> None:
        await self.copy_file(os.path.join(self.assets_dir, asset_name), destination)


class SQLiteDriver:
    """
    Opens aiosqlite connections.

    `open_database` mirrors the native SQLite plugin: a relative name is placed
    in the driver's default location, and `create_from_location` seeds that file
    from a bundled copy when it does not exist yet.
    """

    def __init__(self, default_location: str, file_system: FileSystem):
        self.default_location = default_location
        self.file_system = file_system

    async def open_database(
        self,
        name: str,
        location: Optional[str] = None,
        create_from_location: Optional[str] = None,
    ) -> aiosqlite.Connection:
        path = name if os.path.isabs(name) else os.path.join(
            location or self.default_location, name
        )
        if create_from_location and not await self.file_system.exists(path):
            await self.file_system.copy_file(create_from_location, path)
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)

        # Autocommit mode: transactions are opened explicitly with BEGIN.
        conn = await aiosqlite.connect(path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        # This PRAGMA is essential for enforcing foreign key constraints.
        await conn.execute("PRAGMA foreign_keys = ON;")
        log.info("SQLite connection successful.", path=path)
        return conn


class BootstrapPolicy(ABC):
    """One platform's way of making the database file openable."""

    platform: Platform

    def __init__(
        self, settings: DatabaseSettings, file_system: FileSystem, driver: SQLiteDriver
    ):
        self.settings = settings
        self.file_system = file_system
        self.driver = driver

    @property
    def database_name(self) -> str:
        return self.settings.database_name

    @abstractmethod
    async def resolve_and_open(self) -> aiosqlite.Connection:
        """Makes the database file available and returns an open connection."""


class CopyOnFirstRunPolicy(BootstrapPolicy):
    platform = Platform.ANDROID

    @property
    def writable_path(self) -> str:
        return os.path.join(self.settings.documents_dir, self.database_name)

    async def resolve_and_open(self) -> aiosqlite.Connection:
        if not await self.file_system.exists(self.writable_path):
            log.info("First run, copying database from assets.", target=self.writable_path)
            await self.file_system.copy_file_assets(self.database_name, self.writable_path)
        return await self.driver.open_database(self.writable_path)


class DirectBundleOpenPolicy(BootstrapPolicy):
    platform = Platform.IOS

    async def resolve_and_open(self) -> aiosqlite.Connection:
        return await self.driver.open_database(
            self.database_name,
            location=self.settings.library_dir,
            create_from_location=os.path.join(self.settings.bundle_dir, self.database_name),
        )


class BundlePathCopyPolicy(BootstrapPolicy):
    platform = Platform.WINDOWS

    @property
    def writable_path(self) -> str:
        return os.path.join(self.settings.documents_dir, self.database_name)

    @property
    def bundle_uri(self) -> str:
        return f"{MS_APPX_SCHEME}Assets/{self.database_name}"

    async def resolve_and_open(self) -> aiosqlite.Connection:
        if not await self.file_system.exists(self.writable_path):
            log.info("First run, copying database from bundle.", source=self.bundle_uri)
            await self.file_system.copy_file(self.bundle_uri, self.writable_path)
        return await self.driver.open_database(self.writable_path)


_POLICIES: Dict[Platform, Type[BootstrapPolicy]] = {
    Platform.ANDROID: CopyOnFirstRunPolicy,
    Platform.IOS: DirectBundleOpenPolicy,
    Platform.WINDOWS: BundlePathCopyPolicy,
}


def select_bootstrap_policy(
    settings: DatabaseSettings,
    file_system: Optional[FileSystem] = None,
    driver: Optional[SQLiteDriver] = None,
) -> BootstrapPolicy:
    """Builds the bootstrap policy for `settings.platform`."""
    try:
        policy_cls = _POLICIES[Platform(settings.platform)]
    except (KeyError, ValueError):
        raise ValueError(f"No bootstrap policy for platform: {settings.platform}") from None

    file_system = file_system or FileSystem(settings.assets_dir, settings.bundle_dir)
    driver = driver or SQLiteDriver(settings.library_dir, file_system)
    log.info("Selected bootstrap policy.", platform=policy_cls.platform.value, policy=policy_cls.__name__)
    return policy_cls(settings, file_system, driver)
