from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://127.0.0.1:8000"
DEFAULT_EXPIRY_SECONDS = 300

ENV_PREFIX = "S3LENS_"


class Settings(BaseSettings):
    """Runtime settings from the config file and ``S3LENS_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        frozen=True,
    )

    api_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    api_token: Optional[str] = None
    profile: Optional[str] = None
    region: Optional[str] = None
    expiry_seconds: int = DEFAULT_EXPIRY_SECONDS
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @field_validator("token_expires_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment first, then constructor values (which carry the config file).
        return env_settings, init_settings

    def with_overrides(self, **values: object) -> "Settings":
        changes = {key: value for key, value in values.items() if value is not None}
        return self.model_copy(update=changes)


def config_base_dir() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        base = Path(config_home).expanduser()
    else:
        base = Path.home() / ".config"
    return base / "s3lens"


def default_config_path() -> Path:
    return config_base_dir() / "config.json"


def parse_timestamp(value: object) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _read_config_file(path: Path) -> dict[str, object]:
    try:
        values = JsonConfigSettingsSource(Settings, json_file=path)()
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)
        return {}
    if not isinstance(values, dict):
        return {}
    return values


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings; ``S3LENS_*`` variables win over the config file.

    Raises ``pydantic.ValidationError`` for values of the wrong type.
    """
    return Settings(**_read_config_file(path or default_config_path()))
