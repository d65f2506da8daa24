"""Sign with keys held in a remote key-management service."""
from __future__ import annotations

from .context import CallContext
from .core.exceptions import KMSSignerError
from .crypto.algorithms import DEFAULT_ALGORITHM, HashFunction, supported_algorithms
from .reference import KeyReference, parse, validate
from .services.signer_service import SignerService
from .version import __version__

__all__ = [
    "CallContext",
    "DEFAULT_ALGORITHM",
    "HashFunction",
    "KMSSignerError",
    "KeyReference",
    "SignerService",
    "__version__",
    "parse",
    "supported_algorithms",
    "validate",
]
