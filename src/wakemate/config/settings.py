from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from .paths import CONFIG_ENV_VAR, default_config_path, default_data_dir, expand_path

DEFAULT_PORT = 7777


class DatabaseConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    path: str = Field(default_factory=lambda: str(default_data_dir()))


class ServerConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    command_timeout: float = Field(default=3.0, gt=0)


class DiscoveryConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    # three octets 0-255 without leading zeros, then a trailing dot
    subnet_prefix: str = Field(
        default="192.168.1.",
        pattern=r"^((25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)\.){3}$",
    )
    first_host: int = Field(default=2, ge=1, le=254)
    last_host: int = Field(default=254, ge=1, le=254)
    timeout: float = Field(default=1.0, gt=0)
    parallel_probes: int = Field(default=32, ge=1, le=254)

    @model_validator(mode="after")
    def _check_range(self) -> DiscoveryConfig:
        if self.first_host > self.last_host:
            raise ValueError("first_host must not be greater than last_host")
        return self

    @property
    def hosts(self) -> range:
        return range(self.first_host, self.last_host + 1)


class SyncConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    interval: float = Field(default=30.0, ge=15, le=60)
    probe_timeout: float = Field(default=2.0, gt=0)
    parallel_probes: int = Field(default=16, ge=1)
    wake_recheck_delay: float = Field(default=10.0, ge=0)


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def data_dir_from_settings(settings: Settings) -> Path:
    return expand_path(settings.database.path)


def _toml_value(value: object) -> str:
    # JSON literals for str/int/float are valid TOML
    return json.dumps(value)


def render_settings_toml(settings: Settings) -> str:
    lines = ["# WakeMATE configuration"]
    for section, model in (
        ("database", settings.database),
        ("server", settings.server),
        ("discovery", settings.discovery),
        ("sync", settings.sync),
    ):
        lines.append("")
        lines.append(f"[{section}]")
        for key, value in model.model_dump().items():
            lines.append(f"{key} = {_toml_value(value)}")
    lines.append("")
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
