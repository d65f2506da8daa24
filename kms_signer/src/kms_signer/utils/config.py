"""Configuration loading utilities for the KMS signer."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

CONFIG_ENV = "KMS_SIGNER_CONFIG"
LOG_LEVEL_ENV = "KMS_SIGNER_LOG_LEVEL"

DEFAULT_BACKEND = "kms_signer.plugins.kms.gcp:GoogleCloudKMS"


class KMSConfig(BaseModel):
    backend: str = Field(default=DEFAULT_BACKEND, description="Service plugin as module:Class")
    endpoint: Optional[str] = Field(default=None, description="API endpoint override")
    cache_ttl_seconds: float = Field(default=300.0, gt=0, description="Lifetime of an auto-discovered key version")
    request_timeout: Optional[float] = Field(default=None, gt=0, description="Per-operation deadline in seconds")

    @field_validator("backend")
    @classmethod
    def _validate_backend(cls, value: str) -> str:
        module, sep, attr = value.partition(":")
        if not module or not sep or not attr:
            raise ValueError("backend must be given as 'module.path:ClassName'")
        return value


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Logging verbosity level")

    def normalized_level(self) -> str:
        return os.getenv(LOG_LEVEL_ENV, self.level).upper()


class AppConfig(BaseModel):
    kms: KMSConfig = Field(default_factory=KMSConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


DEFAULT_CONFIG = AppConfig()


def config_search_paths(explicit: Optional[Path] = None) -> Iterable[Path]:
    if explicit:
        yield explicit
    env_path = os.getenv(CONFIG_ENV)
    if env_path:
        yield Path(env_path).expanduser()
    yield Path.cwd() / ".kms-signer" / "config.yaml"
    yield Path.home() / ".kms-signer" / "config.yaml"


def load_config(path: Optional[Path] = None) -> AppConfig:
    if path is not None and not path.is_file():
        raise ValueError(f"Configuration file not found: {path}")
    for candidate in config_search_paths(path):
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
            try:
                return AppConfig.model_validate(data)
            except ValidationError as exc:
                raise ValueError(f"Invalid configuration in {candidate}: {exc}") from exc
    return DEFAULT_CONFIG.model_copy(deep=True)


def dump_default_config(target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(DEFAULT_CONFIG.model_dump(mode="json"), handle, sort_keys=False)


__all__ = [
    "AppConfig",
    "CONFIG_ENV",
    "DEFAULT_BACKEND",
    "DEFAULT_CONFIG",
    "KMSConfig",
    "LOG_LEVEL_ENV",
    "LoggingConfig",
    "config_search_paths",
    "dump_default_config",
    "load_config",
]
