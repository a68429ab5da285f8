import logging
from typing import Any, Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Level names of the former debug flag
LEGACY_LOG_LEVELS = {"standard": "INFO", "debug": "DEBUG", "trace": "DEBUG"}


class ConfigurationError(Exception):
    pass


class Settings(BaseSettings):
    # General
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "stderr"  # stderr, stdout or a file path
    COLLECTOR_MODE: str = "production"

    # Meter
    METER_URL: str = ""
    DATA_COLLECTION_INTERVAL: int = Field(default=60, gt=0)

    # Persistence
    DATA_FILE: str = "wallbox_stats.yaml"
    BACKUP_INTERVAL: int = Field(default=60, gt=0)

    # Web server
    WEBSERVER_HOST: str = "0.0.0.0"
    WEBSERVER_PORT: int = 4000
    WEBSERVICE_VERSION: bool = False
    WEBSERVICE_CURRENTDATA: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = LEGACY_LOG_LEVELS.get(value.lower(), value.upper())
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def webserver_enabled(self) -> bool:
        return self.WEBSERVICE_VERSION or self.WEBSERVICE_CURRENTDATA


# Keys of the former config file format, nested sections joined with "."
LEGACY_CONFIG_KEYS = {
    "datacollectioninterval": "DATA_COLLECTION_INTERVAL",
    "backupintervall": "BACKUP_INTERVAL",
    "backupinterval": "BACKUP_INTERVAL",
    "datafile": "DATA_FILE",
    "meterurl": "METER_URL",
    "debug.file": "LOG_FILE",
    "debug.flag": "LOG_LEVEL",
    "webserver.port": "WEBSERVER_PORT",
    "webserver.webservices.version": "WEBSERVICE_VERSION",
    "webserver.webservices.currentdata": "WEBSERVICE_CURRENTDATA",
}


def _flatten(data: dict, prefix: str = "") -> dict[str, Any]:
    flat = {}
    for key, value in data.items():
        name = f"{prefix}{str(key).lower()}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{name}."))
        else:
            flat[name] = value
    return flat


def read_config_file(path: str) -> dict[str, Any]:
    """
    Read a YAML config file.
    Keys are matched case-insensitively against the settings; the former
    nested format (debug, webserver sections) is translated as well.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Error reading config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    values = {}
    unknown = []
    for key, value in _flatten(data).items():
        field = LEGACY_CONFIG_KEYS.get(key, key.upper())
        if field not in Settings.model_fields:
            unknown.append(key)
            continue
        values[field] = value

    if unknown:
        raise ConfigurationError(f"Unknown keys in config file {path}: {', '.join(sorted(unknown))}")

    return values


def load_settings(config_file: Optional[str] = None, **overrides: Any) -> Settings:
    """
    Build the settings once at startup.

    Precedence: explicit overrides (CLI flags), then the config file,
    then environment / .env, then defaults.
    """
    values = read_config_file(config_file) if config_file else {}
    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
