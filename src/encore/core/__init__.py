"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Key/value persistence (SQLite)
- Output and logging (Loguru, Rich)

Clean architecture principle: The core layer has no dependencies on
domain or application layers.
"""

# Errors
from .exceptions import EncoreError

# Configuration
from .config import (
    Config,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
    ensure_directories,
)

# Database
from .database import (
    get_database_path,
    get_db_connection,
    init_database,
    get_value,
    set_value,
    delete_value,
)

# Console and output
from .console import get_console, print_table, safe_print
from .output import get_log_file_path, log, setup_loguru

__all__ = [
    "EncoreError",
    # Config
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    "ensure_directories",
    # Database
    "get_database_path",
    "get_db_connection",
    "init_database",
    "get_value",
    "set_value",
    "delete_value",
    # Console and output
    "get_console",
    "print_table",
    "safe_print",
    "get_log_file_path",
    "log",
    "setup_loguru",
]
