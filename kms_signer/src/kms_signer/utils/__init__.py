from __future__ import annotations

from .config import (
    AppConfig,
    DEFAULT_CONFIG,
    KMSConfig,
    LoggingConfig,
    dump_default_config,
    load_config,
)

__all__ = [
    "AppConfig",
    "DEFAULT_CONFIG",
    "KMSConfig",
    "LoggingConfig",
    "dump_default_config",
    "load_config",
]
