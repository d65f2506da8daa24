from __future__ import annotations

import importlib
from typing import Any

from ..utils.config import KMSConfig
from .kms.base import KMSService


def load_plugin(path: str, class_name: str | None = None) -> Any:
    """Dynamically load a plugin class given module path and class name.

    Example: load_plugin('kms_signer.plugins.kms.memory', 'InMemoryKMS') or
    load_plugin('kms_signer.plugins.kms.memory:InMemoryKMS')
    """
    if class_name is None:
        path, _, class_name = path.partition(":")
    mod = importlib.import_module(path)
    return getattr(mod, class_name)


def load_service(config: KMSConfig) -> KMSService:
    """Instantiate the configured service backend"""
    factory = load_plugin(config.backend)
    kwargs: dict[str, Any] = {}
    if config.endpoint:
        kwargs["endpoint"] = config.endpoint
    service = factory(**kwargs)
    if not isinstance(service, KMSService):
        raise TypeError(f"{config.backend} does not implement the KMSService interface")
    return service


__all__ = ["load_plugin", "load_service"]
