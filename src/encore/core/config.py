"""
Configuration management for Encore
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class APIConfig:
    """Configuration for the remote catalog and session endpoints."""

    catalog_url: str = "http://localhost:5000/api/audius"
    session_url: str = "http://localhost:5000/api"
    timeout: float = 15.0  # Seconds per HTTP request
    retries: int = 2  # Extra attempts on connection errors and 5xx


@dataclass
class AuthConfig:
    """Configuration for the logged-in identity."""

    token: Optional[str] = None  # Bearer token; None means logged out


@dataclass
class PlayerConfig:
    """Configuration for music player settings."""

    mpv_socket_path: Optional[str] = None
    volume: int = 100  # 0-100
    poll_interval: float = 0.25  # Seconds between engine status samples


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/encore/encore.log)
    )
    console_output: bool = False  # Also echo log() messages to the console


@dataclass
class Config:
    """Main configuration object."""

    api: APIConfig = field(default_factory=APIConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "encore"
    return Path.home() / ".config" / "encore"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            if config_path.exists():
                return config_path
            return None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/encore (or ~/.config/encore)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "encore"
    return Path.home() / ".local" / "share" / "encore"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Encore Configuration

[api]
# Public catalog (track metadata, stream URLs)
catalog_url = "http://localhost:5000/api/audius"

# Session service (liked songs, recently played, playlists)
session_url = "http://localhost:5000/api"

# Per-request timeout in seconds
timeout = 15.0

# Extra attempts on connection errors and server errors
retries = 2

[auth]
# Bearer token for the session service (or set ENCORE_TOKEN)
# token = "your-token-here"

[player]
# Path for mpv socket (auto-detected if not specified)
# mpv_socket_path = "/tmp/encore-mpv-socket"

# Default volume (0-100)
volume = 100

# Seconds between playback position samples
poll_interval = 0.25

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/encore/encore.log)
# log_file = "/path/to/custom/encore.log"

# Also echo messages to the console
console_output = false
""".strip()


def _parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML, falling back to defaults per key."""
    config = Config()

    if "api" in toml_data:
        api_data = toml_data["api"]
        config.api = APIConfig(
            catalog_url=api_data.get("catalog_url", config.api.catalog_url).rstrip("/"),
            session_url=api_data.get("session_url", config.api.session_url).rstrip("/"),
            timeout=float(api_data.get("timeout", config.api.timeout)),
            retries=max(0, int(api_data.get("retries", config.api.retries))),
        )

    if "auth" in toml_data:
        config.auth = AuthConfig(token=toml_data["auth"].get("token") or None)

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            mpv_socket_path=player_data.get("mpv_socket_path"),
            volume=max(0, min(100, int(player_data.get("volume", config.player.volume)))),
            poll_interval=float(
                player_data.get("poll_interval", config.player.poll_interval)
            ),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - ENCORE_TOKEN
    - ENCORE_CATALOG_URL
    - ENCORE_SESSION_URL
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        config = Config()
    else:
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
            config = _parse_config(toml_data)
        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            print(f"Error loading configuration from {config_path}: {e}")
            print("Using default configuration.")
            config = Config()

    token = os.environ.get("ENCORE_TOKEN")
    if token:
        config.auth.token = token
    catalog_url = os.environ.get("ENCORE_CATALOG_URL")
    if catalog_url:
        config.api.catalog_url = catalog_url.rstrip("/")
    session_url = os.environ.get("ENCORE_SESSION_URL")
    if session_url:
        config.api.session_url = session_url.rstrip("/")

    return config


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
