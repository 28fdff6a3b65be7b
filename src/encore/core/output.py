"""
Unified output system using Loguru.
User-facing messages go to the log file and, unless silenced, to the console.
"""

from pathlib import Path

from loguru import logger

from .console import safe_print

_echo_enabled = True

_LEVEL_STYLES = {
    "debug": "cyan",
    "info": None,
    "warning": "yellow",
    "error": "bold red",
}


def get_log_file_path() -> Path:
    """Get the default path to the log file."""
    from .config import get_data_dir

    return get_data_dir() / "encore.log"


def setup_loguru(log_file: Path, level: str = "INFO", console_output: bool = True) -> None:
    """
    Configure loguru for file logging.

    Args:
        log_file: Path to log file
        level: Minimum level for file logging (DEBUG, INFO, WARNING, ERROR)
        console_output: Whether log() messages are echoed to the console
    """
    global _echo_enabled

    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default stderr handler
    logger.remove()

    logger.add(
        log_file,
        rotation="10 MB",
        retention=5,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )

    _echo_enabled = console_output
    logger.info(f"Loguru initialized: {log_file} (level={level})")


def log(message: str, level: str = "info") -> None:
    """
    Unified logging: writes to file AND prints to the console.

    Use this instead of print() for user-facing messages that should also be logged.

    Args:
        message: User-facing message
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level)
    log_func(message)

    if _echo_enabled and level != "debug":
        safe_print(message, style=_LEVEL_STYLES.get(level))
