"""Configuration loading helpers."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field, ValidationError

from .models import ConnectionConfig, DatabaseType, ExecOptions
from .pool import DEFAULT_EVICTION_INTERVAL, DEFAULT_IDLE_TIMEOUT
from .runtime import DEFAULT_THREAD_NAME

LOG = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "sqlhub" / "config.toml"
CONFIG_ENV = "SQLHUB_CONFIG"


def config_path() -> Path:
    """Location of config.toml; ``SQLHUB_CONFIG`` overrides the default."""

    override = os.environ.get(CONFIG_ENV)
    return Path(override).expanduser() if override else CONFIG_FILE


class PoolSettings(BaseModel):
    idle_timeout: float = Field(default=DEFAULT_IDLE_TIMEOUT, gt=0)
    eviction_interval: float = Field(default=DEFAULT_EVICTION_INTERVAL, gt=0)


class RuntimeSettings(BaseModel):
    thread_name: str = DEFAULT_THREAD_NAME


class ExecDefaults(BaseModel):
    """Script execution defaults applied when the caller passes no options."""

    stop_on_error: bool = True
    transactional: bool = False
    max_rows: int | None = Field(default=1000, ge=1)

    def to_options(self) -> ExecOptions:
        return ExecOptions(
            stop_on_error=self.stop_on_error,
            transactional=self.transactional,
            max_rows=self.max_rows,
        )


class ConnectionRecordConfig(BaseModel):
    """Connection record stored in config.toml."""

    id: str
    name: str
    database_type: str
    host: str = ""
    port: int | None = None
    username: str = ""
    password: str = ""
    database: str | None = None
    connection_type: str = "database"

    def to_connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            id=self.id,
            name=self.name,
            database_type=DatabaseType.parse(self.database_type),
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            database=self.database,
            connection_type=self.connection_type,
        )


class AppConfig(BaseModel):
    """Shape of the configuration file."""

    log_level: str = "INFO"
    pool: PoolSettings = Field(default_factory=PoolSettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    exec: ExecDefaults = Field(default_factory=ExecDefaults)
    connections: list[ConnectionRecordConfig] = Field(default_factory=list)

    def find_connection(self, key: str) -> ConnectionRecordConfig | None:
        """Look a record up by id first, then by name."""

        for record in self.connections:
            if record.id == key:
                return record
        for record in self.connections:
            if record.name == key:
                return record
        return None

    def with_connection(self, record: ConnectionRecordConfig) -> AppConfig:
        """Return a copy with ``record`` added or replacing the record with the same id."""

        connections = [existing for existing in self.connections if existing.id != record.id]
        connections.append(record)
        return self.model_copy(update={"connections": connections})

    def without_connection(self, connection_id: str) -> AppConfig:
        connections = [existing for existing in self.connections if existing.id != connection_id]
        return self.model_copy(update={"connections": connections})


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing or malformed."""

    target = path or config_path()
    try:
        with target.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        LOG.warning("Ignoring unreadable config file", exc_info=True, extra={"path": str(target)})
        return AppConfig()
    try:
        return AppConfig.model_validate(raw)
    except ValidationError:
        LOG.warning("Ignoring invalid config file", exc_info=True, extra={"path": str(target)})
        return AppConfig()


def save_config(config: AppConfig, path: Path | None = None) -> None:
    """Persist configuration to disk."""

    target = path or config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [f"log_level = {_quote(config.log_level)}", ""]
    lines.append("[pool]")
    lines.append(f"idle_timeout = {config.pool.idle_timeout!r}")
    lines.append(f"eviction_interval = {config.pool.eviction_interval!r}")
    lines.append("")
    lines.append("[runtime]")
    lines.append(f"thread_name = {_quote(config.runtime.thread_name)}")
    lines.append("")
    lines.append("[exec]")
    lines.append(f"stop_on_error = {str(config.exec.stop_on_error).lower()}")
    lines.append(f"transactional = {str(config.exec.transactional).lower()}")
    if config.exec.max_rows is not None:
        lines.append(f"max_rows = {config.exec.max_rows}")
    for record in config.connections:
        lines.append("")
        lines.append("[[connections]]")
        lines.append(f"id = {_quote(record.id)}")
        lines.append(f"name = {_quote(record.name)}")
        lines.append(f"database_type = {_quote(record.database_type)}")
        if record.host:
            lines.append(f"host = {_quote(record.host)}")
        if record.port is not None:
            lines.append(f"port = {record.port}")
        if record.username:
            lines.append(f"username = {_quote(record.username)}")
        if record.password:
            lines.append(f"password = {_quote(record.password)}")
        if record.database:
            lines.append(f"database = {_quote(record.database)}")
        if record.connection_type != "database":
            lines.append(f"connection_type = {_quote(record.connection_type)}")
    target.write_text("\n".join(lines) + "\n")


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


__all__ = [
    "AppConfig",
    "CONFIG_ENV",
    "CONFIG_FILE",
    "ConnectionRecordConfig",
    "ExecDefaults",
    "PoolSettings",
    "RuntimeSettings",
    "config_path",
    "load_config",
    "save_config",
]
