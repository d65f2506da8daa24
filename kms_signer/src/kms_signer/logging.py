"""Structured logging for the KMS signer.

Records are JSON lines on stderr; stdout stays reserved for command output
such as PEM keys. Key material never reaches a log line: raw bytes and fields
named like signatures, digests or keys are replaced by their length.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping, Optional, TextIO

import structlog

_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

SENSITIVE_FIELDS = frozenset({"signature", "digest", "private_key", "public_key", "pem", "key_material"})

EventDict = MutableMapping[str, Any]


def configure_logging(level: Optional[str] = None, *, stream: Optional[TextIO] = None) -> None:
    numeric_level = _LEVELS.get((level or "info").lower(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        handlers=[logging.StreamHandler(stream or sys.stderr)],
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.stdlib.add_log_level,
            _add_component,
            _add_error_phase,
            redact_key_material,
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def _add_component(logger: Any, _name: str, event_dict: EventDict) -> EventDict:
    if "component" not in event_dict:
        event_dict["component"] = getattr(logger, "name", None) or "kms_signer"
    return event_dict


def _add_error_phase(_logger: Any, _name: str, event_dict: EventDict) -> EventDict:
    """Flatten an ``error`` exception into its message and failing phase"""
    error = event_dict.get("error")
    if isinstance(error, BaseException):
        phase = getattr(error, "phase", None)
        if phase is not None:
            event_dict.setdefault("phase", phase)
        event_dict["error"] = str(error) or type(error).__name__
    return event_dict


def redact_key_material(_logger: Any, _name: str, event_dict: EventDict) -> EventDict:
    for field, value in event_dict.items():
        if isinstance(value, (bytes, bytearray, memoryview)):
            event_dict[field] = f"<{len(value)} bytes redacted>"
        elif field in SENSITIVE_FIELDS and value is not None:
            event_dict[field] = "<redacted>"
    return event_dict


__all__ = ["SENSITIVE_FIELDS", "configure_logging", "redact_key_material"]
