"""
Configuration management for Album Keeper
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class ArchiveConfig:
    """Configuration for the Internet Archive storage endpoints."""

    s3_endpoint: str = "https://s3.us.archive.org"
    download_base_url: str = "https://archive.org/download"
    details_base_url: str = "https://archive.org/details"
    collection: str = "opensource_audio"
    mediatype: str = "audio"
    bucket_prefix: str = "music"


@dataclass
class UploadConfig:
    """Configuration for direct uploads from the session to the archive."""

    transfer_progress_ceiling: int = 90  # 90-100 reserved for store acknowledgement
    chunk_size: int = 64 * 1024
    request_timeout_seconds: float = 300.0
    cover_max_attempts: int = 3
    cover_retry_delay_seconds: float = 1.0
    # Client-side progress estimate (used while real transfer progress is unavailable)
    estimate_seconds_per_mb: float = 2.0
    estimate_min_seconds: float = 10.0
    estimate_step: int = 2

    def validate(self) -> None:
        """Validate upload configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not 0 < self.transfer_progress_ceiling < 100:
            raise ValueError(
                f"transfer_progress_ceiling must be between 1 and 99, "
                f"got {self.transfer_progress_ceiling}"
            )
        if self.cover_max_attempts < 1:
            raise ValueError("cover_max_attempts must be at least 1")


@dataclass
class ProcessingConfig:
    """Configuration for readiness polling of freshly uploaded tracks."""

    poll_interval_seconds: float = 15.0
    probe_timeout_seconds: float = 5.0
    # Assume ready after this long since creation when the probe can't reach the store
    ready_fallback_seconds: float = 300.0


@dataclass
class TrackListConfig:
    """Configuration for the ordered track list."""

    delete_animation_seconds: float = 0.3


@dataclass
class TrashConfig:
    """Configuration for the recently-deleted album buffer."""

    max_entries: int = 10


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/album-keeper/album-keeper.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of rotated files to keep
    console_output: bool = False  # Also output to stderr (for debugging)


@dataclass
class WebConfig:
    """Configuration for the FastAPI backend."""

    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:5173"]
    )


@dataclass
class ClientConfig:
    """Configuration for the upload session (CLI) talking to the backend."""

    api_base_url: str = "http://127.0.0.1:8000"
    user_id: str = ""


@dataclass
class Config:
    """Main configuration object."""

    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    uploads: UploadConfig = field(default_factory=UploadConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    tracklist: TrackListConfig = field(default_factory=TrackListConfig)
    trash: TrashConfig = field(default_factory=TrashConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    web: WebConfig = field(default_factory=WebConfig)
    client: ClientConfig = field(default_factory=ClientConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "album-keeper"
    return Path.home() / ".config" / "album-keeper"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Used during development so the project's config file is picked up
    regardless of the working directory.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            if config_path.exists():
                return config_path
            # Found project root but no config.toml there
            return None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/album-keeper (or ~/.config/album-keeper)
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
        return Path(data_home) / "album-keeper"
    return Path.home() / ".local" / "share" / "album-keeper"


def ensure_directories() -> None:
    """Ensure the config and data directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Album Keeper Configuration

[archive]
# Internet Archive S3-compatible endpoint used for uploads
s3_endpoint = "https://s3.us.archive.org"

# Public URLs for playback and item pages
download_base_url = "https://archive.org/download"
details_base_url = "https://archive.org/details"

# Collection and media type recorded on every uploaded item
collection = "opensource_audio"
mediatype = "audio"

# Prefix for generated item identifiers (music-<timestamp>-<random>)
bucket_prefix = "music"

[uploads]
# Progress reserved for the byte transfer; the rest waits for the store's acknowledgement
transfer_progress_ceiling = 90

# Bytes per streamed chunk
chunk_size = 65536

# Cover uploads retry a fixed number of times with a fixed delay
cover_max_attempts = 3
cover_retry_delay_seconds = 1.0

[processing]
# Seconds between readiness checks of processing tracks
poll_interval_seconds = 15

# Timeout for a single HEAD probe
probe_timeout_seconds = 5

# Assume a track is ready this many seconds after creation if the probe keeps failing
ready_fallback_seconds = 300

[tracklist]
# Exit animation before a deleted track leaves the list
delete_animation_seconds = 0.3

[trash]
# Number of recently deleted albums kept for undo
max_entries = 10

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/album-keeper/album-keeper.log)
# log_file = "/path/to/custom/album-keeper.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of rotated log files to keep
backup_count = 5

# Also output logs to stderr (useful for debugging)
console_output = false

[web]
host = "127.0.0.1"
port = 8000
allowed_origins = ["http://localhost:5173"]

[client]
# Backend used by `album-keeper upload`
api_base_url = "http://127.0.0.1:8000"

# Identity sent as X-User-Id (or set ALBUM_KEEPER_USER_ID)
# user_id = "me"
""".strip()


def _section(toml_data: dict, name: str, default):
    """Build a config section dataclass from TOML, keeping defaults for missing keys."""
    section_data = toml_data.get(name)
    if not isinstance(section_data, dict):
        return default
    known = {
        key: value
        for key, value in section_data.items()
        if key in default.__dataclass_fields__
    }
    return type(default)(**{**default.__dict__, **known})


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - ALBUM_KEEPER_API_URL
    - ALBUM_KEEPER_USER_ID
    - ALLOWED_ORIGINS (comma separated)
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
        config = Config()
    else:
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
            config = _config_from_toml(toml_data)
        except (OSError, tomllib.TOMLDecodeError, TypeError) as e:
            print(f"Error loading configuration from {config_path}: {e}")
            print("Using default configuration.")
            config = Config()

    _apply_env_overrides(config)
    return config


def _config_from_toml(toml_data: dict) -> Config:
    """Parse configuration sections."""
    config = Config(
        archive=_section(toml_data, "archive", ArchiveConfig()),
        uploads=_section(toml_data, "uploads", UploadConfig()),
        processing=_section(toml_data, "processing", ProcessingConfig()),
        tracklist=_section(toml_data, "tracklist", TrackListConfig()),
        trash=_section(toml_data, "trash", TrashConfig()),
        logging=_section(toml_data, "logging", LoggingConfig()),
        web=_section(toml_data, "web", WebConfig()),
        client=_section(toml_data, "client", ClientConfig()),
    )

    config.logging.level = config.logging.level.upper()
    if config.logging.log_file:
        config.logging.log_file = str(Path(config.logging.log_file).expanduser())

    try:
        config.uploads.validate()
    except ValueError as e:
        print(f"Warning: Invalid upload configuration: {e}")
        print("Using default upload configuration.")
        config.uploads = UploadConfig()

    return config


def _apply_env_overrides(config: Config) -> None:
    api_url = os.environ.get("ALBUM_KEEPER_API_URL")
    user_id = os.environ.get("ALBUM_KEEPER_USER_ID")
    origins = os.environ.get("ALLOWED_ORIGINS")

    if api_url:
        config.client.api_base_url = api_url
    if user_id:
        config.client.user_id = user_id
    if origins:
        config.web.allowed_origins = [o.strip() for o in origins.split(",") if o.strip()]
