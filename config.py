# config.py
"""
Centralized configuration management, project-wide constants, and logging setup.

This module acts as the single source of truth for configurable parameters,
preventing the use of "magic strings" or numbers throughout the application.
It also initializes the application's logging system to ensure consistent,
structured, and informative logs from all modules.

The environment is read exactly once, here, by `get_database_settings_from_env()`.
Everything downstream (the database factory, the adapters) receives an explicit
`DatabaseSettings` value instead of inspecting `os.environ` on its own.
"""

import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import structlog

# --- Project Constants ---

# --- File and Directory Names ---
# The pre-populated database ships under this single name on every platform.
DATABASE_NAME = "loadmaster.db"

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")

DOCUMENTS_DIR = os.path.join(
    DATA_DIR, "documents"
)  # Writable per-user directory (the copy-on-first-run target).
ASSETS_DIR = os.path.join(
    DATA_DIR, "assets"
)  # Read-only packaged assets (Android `copyFileAssets` source).
BUNDLE_DIR = os.path.join(
    DATA_DIR, "bundle"
)  # Application bundle root (iOS main bundle, Windows `ms-appx:///`).
LIBRARY_DIR = os.path.join(
    DATA_DIR, "library"
)  # Driver "default" location where bundled databases are materialized.

# --- Environment Variable Names ---
ENV_MODE = "LOADMASTER_ENV"
ENV_PLATFORM = "LOADMASTER_PLATFORM"
ENV_DIRS: Dict[str, str] = {
    "documents_dir": "LOADMASTER_DOCUMENTS_DIR",
    "assets_dir": "LOADMASTER_ASSETS_DIR",
    "bundle_dir": "LOADMASTER_BUNDLE_DIR",
    "library_dir": "LOADMASTER_LIBRARY_DIR",
}
ENV_TEST_DB = "LOADMASTER_TEST_DB"
ENV_TEST_DB_READONLY = "LOADMASTER_TEST_DB_READONLY"


class DatabaseMode(str, Enum):
    """Which adapter variant the factory builds."""

    NATIVE = "native"
    TEST = "test"


class Platform(str, Enum):
    """Platform identity used to pick the bootstrap policy."""

    ANDROID = "android"
    IOS = "ios"
    WINDOWS = "windows"


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Everything the database factory needs to build an adapter.

    Attributes:
        - mode: `DatabaseMode.NATIVE` for the production adapter, `TEST` for the
                in-memory/file adapter used by automated tests.
        - platform: Drives the bootstrap policy of the native adapter.
        - test_database_path: File used by the test adapter. `None` means a
                              pure in-memory database.
    """

    mode: DatabaseMode = DatabaseMode.NATIVE
    platform: Platform = Platform.ANDROID
    database_name: str = DATABASE_NAME
    documents_dir: str = DOCUMENTS_DIR
    assets_dir: str = ASSETS_DIR
    bundle_dir: str = BUNDLE_DIR
    library_dir: str = LIBRARY_DIR
    test_database_path: Optional[str] = None
    test_readonly: bool = False


# --- Logging Setup ---


def setup_logging(level: int = logging.INFO):
    """
    Configures structlog for rich, context-aware, and structured logging.

    Workflow:
    1.  Sets up Python's standard logging module as the base.
    2.  Configures structlog to wrap this base logger.
    3.  Defines a chain of "processors" that enrich and format log records before output.
        - This chain adds context, timestamps, log levels, and exception information.
    4.  The final processor (`ConsoleRenderer`) formats the log record into a
        human-readable, colorized line for development environments.
    """
    # Step 1: Configure the standard library's logging.
    # structlog will pass its final, processed log records to this handler.
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )

    # Step 2: Configure structlog's processor chain.
    # Processors are executed in the order they are listed.
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            # For production, this could be swapped with `structlog.processors.JSONRenderer()`.
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# --- Database Configuration ---


def detect_platform(sys_platform: str = sys.platform) -> Platform:
    """Maps the interpreter's platform string onto a bootstrap platform."""
    if sys_platform.startswith("win"):
        return Platform.WINDOWS
    if sys_platform == "darwin":
        return Platform.IOS
    return Platform.ANDROID


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def get_database_settings_from_env() -> DatabaseSettings:
    """
    Loads database settings from environment variables.

    Workflow:
    1.  Reads `LOADMASTER_ENV`; the value "test" selects the test adapter,
        anything else (including absence) selects the native adapter.
    2.  Reads `LOADMASTER_PLATFORM`, falling back to `detect_platform()`.
    3.  Applies any directory overrides and the test database options.

    Expected Input:
    - Environment variables (all optional):
        - LOADMASTER_ENV: "test" to run against the test adapter.
        - LOADMASTER_PLATFORM: "android", "ios" or "windows".
        - LOADMASTER_DOCUMENTS_DIR / _ASSETS_DIR / _BUNDLE_DIR / _LIBRARY_DIR
        - LOADMASTER_TEST_DB: file path for the test adapter.
        - LOADMASTER_TEST_DB_READONLY: "1"/"true" to open it read-only.

    Returns:
        - A `DatabaseSettings` instance.

    Raises:
        - ValueError: If `LOADMASTER_PLATFORM` names an unknown platform.
    """
    log = structlog.get_logger("config.database")

    mode = (
        DatabaseMode.TEST
        if (os.getenv(ENV_MODE) or "").strip().lower() == DatabaseMode.TEST.value
        else DatabaseMode.NATIVE
    )

    raw_platform = os.getenv(ENV_PLATFORM)
    if raw_platform:
        try:
            platform = Platform(raw_platform.strip().lower())
        except ValueError:
            log.error(
                "Unknown platform in environment",
                value=raw_platform,
                allowed=[p.value for p in Platform],
                error_type="ConfigurationError",
            )
            raise ValueError(f"Unsupported {ENV_PLATFORM}: {raw_platform}") from None
    else:
        platform = detect_platform()

    overrides = {
        field: os.environ[env_name]
        for field, env_name in ENV_DIRS.items()
        if os.getenv(env_name)
    }

    settings = DatabaseSettings(
        mode=mode,
        platform=platform,
        test_database_path=os.getenv(ENV_TEST_DB) or None,
        test_readonly=_env_flag(os.getenv(ENV_TEST_DB_READONLY)),
        **overrides,
    )
    log.info(
        "Database settings loaded from environment",
        mode=settings.mode.value,
        platform=settings.platform.value,
    )
    return settings
