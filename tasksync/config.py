"""
Configuration for tasksync.

Two layers:

1. ``Settings`` (pydantic-settings): process-level knobs read from the
   environment (prefix ``TASKSYNC_``) or a ``.env`` file, such as where the
   config file lives, the log level and the server bind address.
2. The TOML config file: which backend holds the task list, which peers to
   sync with and how the day summary is tuned::

       [backend]
       kind = "sqlite"
       uri = "file:///home/me/.local/share/tasksync/tasks.db"

       [[sync]]
       kind = "api"
       uri = "http://tasks.example.org:8080"

       [summary]
       start = "08:00"
       end = "17:00"
       goal = "PT30M"
       tags.meeting = "PT30M"

``build_storage`` is the only place that turns a backend entry into a
concrete TaskStorage.
"""
import logging
import os
import tomllib
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

import pydantic
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tasksync.db_adapter import FILE_URI_PREFIX, resolve_sqlite_path
from tasksync.exceptions import ValidationError
from tasksync.storage.api_storage import DEFAULT_TIMEOUT, APIStorage
from tasksync.storage.interface import TaskStorage
from tasksync.storage.sqlite_storage import SQLiteStorage
from tasksync.tasks.models import SummaryConfig

logger = logging.getLogger(__name__)

APP_NAME = "tasksync"
CONFIG_FILE_NAME = "config.toml"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def default_config_path() -> str:
    """``$XDG_CONFIG_HOME/tasksync/config.toml`` (``~/.config`` when unset)."""
    config_home = os.getenv("XDG_CONFIG_HOME") or os.path.join(Path.home(), ".config")
    return os.path.join(config_home, APP_NAME, CONFIG_FILE_NAME)


class Settings(BaseSettings):
    """Process settings for tasksync.

    All values can be set via ``TASKSYNC_*`` environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_path: str = Field(default_factory=default_config_path)
    log_level: str = "WARNING"
    server_host: str = "127.0.0.1"
    server_port: int = 8080
    api_timeout: float = DEFAULT_TIMEOUT

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class BackendKind(str, Enum):
    SQLITE = "sqlite"
    API = "api"


class BackendConfig(BaseModel):
    kind: BackendKind
    uri: str

    @model_validator(mode="after")
    def check_uri(self) -> "BackendConfig":
        if self.kind == BackendKind.SQLITE and not self.uri.startswith(FILE_URI_PREFIX):
            raise ValueError(f"Expected path to start with {FILE_URI_PREFIX} but found {self.uri}")
        return self


class TasksConfig(BaseModel):
    backend: BackendConfig
    sync: List[BackendConfig] = Field(default_factory=list)
    summary: SummaryConfig = Field(default_factory=SummaryConfig)


def load_config(path: Optional[str] = None) -> TasksConfig:
    """
    Load and validate the TOML config file.

    Args:
        path: Config file, defaults to ``Settings.config_path``

    Raises:
        ValidationError: If the file is missing, unreadable or invalid
    """
    path = path or get_settings().config_path
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ValidationError(
            f"Couldn't find config file {path}",
            field="config_path",
            value=path,
        ) from e
    except tomllib.TOMLDecodeError as e:
        raise ValidationError(f"Config file {path} is not valid TOML: {e}", field="config_path", value=path) from e

    try:
        config = TasksConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid config file {path}: {e}", field="config_path", value=path) from e
    logger.debug(f"Loaded config from {path}: backend={config.backend.kind.value}, peers={len(config.sync)}")
    return config


def build_storage(backend: BackendConfig, timeout: Optional[float] = None) -> TaskStorage:
    """
    Construct the storage described by a backend entry.

    Args:
        backend: Validated backend entry
        timeout: HTTP timeout for remote backends, defaults to ``Settings.api_timeout``
    """
    if backend.kind == BackendKind.SQLITE:
        return SQLiteStorage(resolve_sqlite_path(backend.uri, require_scheme=True))
    if backend.kind == BackendKind.API:
        if timeout is None:
            timeout = get_settings().api_timeout
        return APIStorage(backend.uri, timeout=timeout)
    raise ValidationError(f"Unsupported backend kind: {backend.kind}", field="kind", value=backend.kind)


def build_sync_peer(config: TasksConfig, timeout: Optional[float] = None) -> TaskStorage:
    """
    Construct the peer used by ``sync``: the first ``[[sync]]`` entry.

    Raises:
        ValidationError: If no peer is configured
    """
    if not config.sync:
        raise ValidationError("No [[sync]] peer configured", field="sync")
    if len(config.sync) > 1:
        logger.warning(f"{len(config.sync)} sync peers configured, only the first one is used")
    return build_storage(config.sync[0], timeout=timeout)


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once for an entry point."""
    level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
