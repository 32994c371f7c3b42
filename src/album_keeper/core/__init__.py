"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Database connection and schema (SQLite)
- Logging (Loguru)
- Console management (Rich)
"""

from .config import (
    Config,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
    ensure_directories,
)

from .database import (
    SCHEMA_VERSION,
    get_database_path,
    get_db_connection,
    init_database,
    migrate_database,
    utc_now_iso,
)

from .console import get_console, report, upload_progress

__all__ = [
    # Config
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    "ensure_directories",
    # Database
    "SCHEMA_VERSION",
    "get_database_path",
    "get_db_connection",
    "init_database",
    "migrate_database",
    "utc_now_iso",
    # Console
    "get_console",
    "report",
    "upload_progress",
]
