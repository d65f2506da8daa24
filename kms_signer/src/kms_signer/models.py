# Typed models exchanged with the key-management service.
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .crypto.algorithms import HashFunction, NativeAlgorithm

if TYPE_CHECKING:
    from .crypto.verifier import Verifier


class KeyPurpose(str, Enum):
    ASYMMETRIC_SIGN = "ASYMMETRIC_SIGN"
    ASYMMETRIC_DECRYPT = "ASYMMETRIC_DECRYPT"
    ENCRYPT_DECRYPT = "ENCRYPT_DECRYPT"
    MAC = "MAC"


class VersionState(str, Enum):
    PENDING_GENERATION = "PENDING_GENERATION"
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"
    DESTROYED = "DESTROYED"
    DESTROY_SCHEDULED = "DESTROY_SCHEDULED"


@dataclass(frozen=True, slots=True)
class KeyRing:
    name: str


@dataclass(frozen=True, slots=True)
class CryptoKey:
    """Key metadata; ``purpose`` keeps the raw service value when it is unknown"""
    name: str
    purpose: str
    algorithm: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CryptoKeyVersion:
    name: str
    state: str
    algorithm: str

    @property
    def version_id(self) -> str:
        return self.name.rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class Digest:
    """A precomputed digest, sent in the request field named after its hash"""
    hash_func: HashFunction
    value: bytes


@dataclass(frozen=True, slots=True)
class SignResponse:
    name: str
    signature: bytes
    signature_crc32c: Optional[int]
    verified_digest_crc32c: bool = False


@dataclass(frozen=True, slots=True)
class ResolvedKeyVersion:
    """Snapshot of the key version in use, replaced as a whole on refresh"""
    version: CryptoKeyVersion
    verifier: "Verifier"
    hash_func: HashFunction

    @property
    def name(self) -> str:
        return self.version.name

    @property
    def algorithm(self) -> NativeAlgorithm:
        return NativeAlgorithm(self.version.algorithm)


__all__ = [
    "CryptoKey",
    "CryptoKeyVersion",
    "Digest",
    "KeyPurpose",
    "KeyRing",
    "ResolvedKeyVersion",
    "SignResponse",
    "VersionState",
]
