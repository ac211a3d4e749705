"""Configuration for redcoder using pydantic-settings.

Values are layered: explicit overrides (CLI) > JSON config file >
``REDCODER_*`` environment variables > defaults.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Annotated, Any

from pydantic import BeforeValidator, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from redcoder.exceptions import ConfigurationError
from redcoder.models.enums import TargetFormat

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "redcoder.config.json"
PROJECT_NAME = "redcoder"

DEFAULT_TRANSCODE_FORMATS = [TargetFormat.FLAC, TargetFormat.MP3_320, TargetFormat.MP3_V0]


def _default_concurrency() -> int:
    return os.cpu_count() or 1


def _split_formats(v: Any) -> Any:
    """Allow ``"flac,mp3-v0"`` in addition to a JSON list."""
    if isinstance(v, str) and v.lstrip().startswith("["):
        return json.loads(v)
    if isinstance(v, str):
        return [part.strip() for part in v.split(",") if part.strip()]
    return v


FormatList = Annotated[list[TargetFormat], NoDecode, BeforeValidator(_split_formats)]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REDCODER_",
        extra="ignore",
    )

    # Tracker credentials and endpoints
    api_key: str | None = Field(default=None, description="Tracker API key")
    tracker_url: str = Field(
        default="https://redacted.sh", description="Tracker base URL"
    )
    announce_url: str = Field(
        default="https://flacsfor.me", description="Tracker announce base URL"
    )
    source_tag: str = Field(default="RED", description="Torrent source tag")

    # Directories
    content_directory: Path | None = Field(
        default=None, description="Directory holding downloaded source releases"
    )
    transcode_directory: Path | None = Field(
        default=None, description="Directory transcodes are written to"
    )
    torrent_directory: Path | None = Field(
        default=None, description="Directory .torrent files are written to"
    )
    spectrogram_directory: Path | None = Field(
        default=None, description="Directory spectrograms are written to"
    )

    # Behaviour
    allowed_transcode_formats: FormatList = Field(
        default_factory=lambda: list(DEFAULT_TRANSCODE_FORMATS),
        description="Formats to transcode to",
    )
    concurrency: int = Field(
        default_factory=_default_concurrency,
        ge=1,
        description="Maximum number of external encoder processes",
    )
    automatic_upload: bool = Field(default=False, description="Upload automatically")
    move_transcode_to_content: bool = Field(
        default=False, description="Move finished transcodes to the content directory"
    )
    skip_hash_check: bool = Field(default=False, description="Skip torrent hash check")
    skip_spectrogram: bool = Field(
        default=False, description="Skip spectrogram review"
    )
    skip_existing_formats_check: bool = Field(
        default=False, description="Transcode even if the format already exists"
    )
    dry_run: bool = Field(default=False, description="Never upload")

    @model_validator(mode="after")
    def fill_empty_formats(self) -> Settings:
        if not self.allowed_transcode_formats:
            self.allowed_transcode_formats = list(DEFAULT_TRANSCODE_FORMATS)
        return self

    def missing_required(self) -> list[str]:
        """Names of required settings that are unset."""
        required = [
            "api_key",
            "content_directory",
            "transcode_directory",
            "torrent_directory",
        ]
        if not self.skip_spectrogram:
            required.append("spectrogram_directory")
        return [name for name in required if getattr(self, name) in (None, "")]

    def require_complete(self) -> None:
        """Raise if any required setting is missing.

        Raises:
            ConfigurationError: Listing every missing key.
        """
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(
                "You have to specify "
                + ", ".join(missing)
                + " either as argument or in the config file"
            )


def _env_config_path(env: str) -> Path | None:
    value = os.environ.get(env)
    if not value:
        return None
    candidate = Path(value) / PROJECT_NAME / CONFIG_FILE_NAME
    return candidate if candidate.exists() else None


def find_config_file(cwd: Path | None = None) -> Path | None:
    """Search the default locations for a config file.

    Order: current directory, ``%APPDATA%/redcoder`` (Windows),
    ``$XDG_CONFIG_HOME/redcoder``, ``~/.config/redcoder``, ``~``.
    """
    cwd = cwd or Path.cwd()
    local = cwd / CONFIG_FILE_NAME
    if local.exists():
        return local

    if sys.platform == "win32" and (path := _env_config_path("APPDATA")):
        return path

    if path := _env_config_path("XDG_CONFIG_HOME"):
        return path

    home = Path.home()
    for candidate in (
        home / ".config" / PROJECT_NAME / CONFIG_FILE_NAME,
        home / CONFIG_FILE_NAME,
    ):
        if candidate.exists():
            return candidate
    return None


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data


def load_settings(
    config_file: Path | None = None,
    *,
    require_complete: bool = True,
    **overrides: Any,
) -> Settings:
    """Load settings from file, environment and explicit overrides.

    Args:
        config_file: Explicit config file; searched for when omitted.
        require_complete: Raise if required keys are missing.
        **overrides: Values from the command line. ``None`` and empty
            lists mean "not given" and do not override lower layers.

    Raises:
        ConfigurationError: If the file is unreadable, a value is invalid,
            or required keys are missing.
    """
    path = config_file or find_config_file()
    values: dict[str, Any] = {}
    if path is not None:
        logger.debug("Using config file %s", path)
        values.update(_read_config_file(path))
    else:
        logger.debug("No config file found")

    values.update(
        {k: v for k, v in overrides.items() if v is not None and v != [] and v != ()}
    )

    try:
        settings = Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if require_complete:
        settings.require_complete()
    return settings
