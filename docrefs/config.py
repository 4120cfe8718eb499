# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import os

from functools import cached_property
from pathlib import Path

from docrefs.dependencies import get_service, has_service, register_service
from docrefs.logger import LogLevel, LogOutput, LogFormat, setup_logging
from pydantic import field_validator
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict


def _find_project_path() -> str:
    """Find project root by looking for pyproject.toml in current dir and parents."""
    current = Path.cwd()

    for path in [current] + list(current.parents):
        if (path / "pyproject.toml").exists():
            return str(path)

    return str(current)


class BaseSettings(PydanticBaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_prefix="DOCREFS_",
        extra="ignore",
    )

    # Logging
    log_level: LogLevel = LogLevel.INFO
    log_output: LogOutput = LogOutput.CONSOLE
    log_format: LogFormat | str = LogFormat.TEXT_LIGHT
    log_file: str = ""

    # Database
    database_url: str = ""
    database_isolation_level: str | None = None
    documents_table: str = "documents"

    # Transactions
    transaction_max_attempts: int = 5

    # Search
    search_index_collection: str = "search_index"
    search_id_separator: str = "^"

    @classmethod
    def from_env_file(cls, env_file: str):
        """Create Settings with custom env file path."""
        return cls(_env_file=env_file)

    @property
    def project_path(self) -> str:
        return _find_project_path()

    @cached_property
    def log_path(self) -> str:
        if not self.log_file:
            return os.path.join(self.project_path, "logs", "docrefs.log")

        if os.path.isabs(self.log_file):
            return self.log_file

        return os.path.join(self.project_path, self.log_file)

    @field_validator("log_format")
    def validate_log_format(cls, v):
        if isinstance(v, str) and v in [item.value for item in LogFormat]:
            return LogFormat(v)
        return v

    @field_validator("transaction_max_attempts")
    def validate_transaction_max_attempts(cls, v):
        if v < 1:
            raise ValueError("TRANSACTION_MAX_ATTEMPTS must be at least 1")
        return v

    @field_validator("search_id_separator")
    def validate_search_id_separator(cls, v):
        if not v or "/" in v:
            raise ValueError("SEARCH_ID_SEPARATOR must be a non-empty string without '/'")
        return v


def init_settings(env_file: str | None = None) -> BaseSettings:
    """Load the settings once, register them as a service and configure logging."""
    if has_service(BaseSettings):
        return get_service(BaseSettings)

    settings = BaseSettings.from_env_file(env_file or ".env")
    register_service(settings, BaseSettings)
    setup_logging(settings)

    return settings


def get_settings() -> BaseSettings:
    return get_service(BaseSettings)


__all__ = [
    "BaseSettings",
    "init_settings",
    "get_settings",
]
