"""Caller-facing signature algorithm names and their KMS-native counterparts.

The table is fixed. Anything the service reports outside of it (symmetric
keys, MAC keys, decryption keys, algorithms added later) is rejected rather
than mapped to a default.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from cryptography.hazmat.primitives import hashes

from ..core.exceptions import UnsupportedAlgorithm, UnsupportedHash

ECDSA_P256_SHA256 = "ecdsa-p256-sha256"
ECDSA_P384_SHA384 = "ecdsa-p384-sha384"
RSA_PKCS1V15_2048_SHA256 = "rsa-pkcs1v15-2048-sha256"
RSA_PKCS1V15_3072_SHA256 = "rsa-pkcs1v15-3072-sha256"
RSA_PKCS1V15_4096_SHA256 = "rsa-pkcs1v15-4096-sha256"
RSA_PKCS1V15_4096_SHA512 = "rsa-pkcs1v15-4096-sha512"
RSA_PSS_2048_SHA256 = "rsa-pss-2048-sha256"
RSA_PSS_3072_SHA256 = "rsa-pss-3072-sha256"
RSA_PSS_4096_SHA256 = "rsa-pss-4096-sha256"
RSA_PSS_4096_SHA512 = "rsa-pss-4096-sha512"

DEFAULT_ALGORITHM = ECDSA_P256_SHA256


class HashFunction(str, Enum):
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    def algorithm(self) -> hashes.HashAlgorithm:
        return _HASH_ALGORITHMS[self]()

    @property
    def digest_size(self) -> int:
        return self.algorithm().digest_size

    def digest(self, data: bytes) -> bytes:
        h = hashes.Hash(self.algorithm())
        h.update(data)
        return h.finalize()

    @classmethod
    def coerce(cls, value: Any) -> "HashFunction":
        """Accept a member, a name such as ``"SHA-256"`` or a ``cryptography`` hash"""
        if isinstance(value, cls):
            return value
        if isinstance(value, hashes.HashAlgorithm):
            value = value.name
        if isinstance(value, str):
            normalized = value.lower().replace("-", "").replace("_", "")
            for member in cls:
                if member.value == normalized:
                    return member
        raise UnsupportedHash(f"unsupported hash function {value!r}")


_HASH_ALGORITHMS = {
    HashFunction.SHA256: hashes.SHA256,
    HashFunction.SHA384: hashes.SHA384,
    HashFunction.SHA512: hashes.SHA512,
}


class NativeAlgorithm(str, Enum):
    """CryptoKeyVersionAlgorithm names as reported by the service"""

    EC_SIGN_P256_SHA256 = "EC_SIGN_P256_SHA256"
    EC_SIGN_P384_SHA384 = "EC_SIGN_P384_SHA384"
    RSA_SIGN_PKCS1_2048_SHA256 = "RSA_SIGN_PKCS1_2048_SHA256"
    RSA_SIGN_PKCS1_3072_SHA256 = "RSA_SIGN_PKCS1_3072_SHA256"
    RSA_SIGN_PKCS1_4096_SHA256 = "RSA_SIGN_PKCS1_4096_SHA256"
    RSA_SIGN_PKCS1_4096_SHA512 = "RSA_SIGN_PKCS1_4096_SHA512"
    RSA_SIGN_PSS_2048_SHA256 = "RSA_SIGN_PSS_2048_SHA256"
    RSA_SIGN_PSS_3072_SHA256 = "RSA_SIGN_PSS_3072_SHA256"
    RSA_SIGN_PSS_4096_SHA256 = "RSA_SIGN_PSS_4096_SHA256"
    RSA_SIGN_PSS_4096_SHA512 = "RSA_SIGN_PSS_4096_SHA512"


class Family(str, Enum):
    ECDSA = "ecdsa"
    RSA_PKCS1V15 = "rsa-pkcs1v15"
    RSA_PSS = "rsa-pss"


@dataclass(frozen=True, slots=True)
class AlgorithmSpec:
    name: str
    native: NativeAlgorithm
    family: Family
    hash_func: HashFunction
    curve: Optional[str] = None
    key_size: Optional[int] = None


_SPECS: Tuple[AlgorithmSpec, ...] = (
    AlgorithmSpec(ECDSA_P256_SHA256, NativeAlgorithm.EC_SIGN_P256_SHA256, Family.ECDSA, HashFunction.SHA256, curve="secp256r1"),
    AlgorithmSpec(ECDSA_P384_SHA384, NativeAlgorithm.EC_SIGN_P384_SHA384, Family.ECDSA, HashFunction.SHA384, curve="secp384r1"),
    AlgorithmSpec(RSA_PKCS1V15_2048_SHA256, NativeAlgorithm.RSA_SIGN_PKCS1_2048_SHA256, Family.RSA_PKCS1V15, HashFunction.SHA256, key_size=2048),
    AlgorithmSpec(RSA_PKCS1V15_3072_SHA256, NativeAlgorithm.RSA_SIGN_PKCS1_3072_SHA256, Family.RSA_PKCS1V15, HashFunction.SHA256, key_size=3072),
    AlgorithmSpec(RSA_PKCS1V15_4096_SHA256, NativeAlgorithm.RSA_SIGN_PKCS1_4096_SHA256, Family.RSA_PKCS1V15, HashFunction.SHA256, key_size=4096),
    AlgorithmSpec(RSA_PKCS1V15_4096_SHA512, NativeAlgorithm.RSA_SIGN_PKCS1_4096_SHA512, Family.RSA_PKCS1V15, HashFunction.SHA512, key_size=4096),
    AlgorithmSpec(RSA_PSS_2048_SHA256, NativeAlgorithm.RSA_SIGN_PSS_2048_SHA256, Family.RSA_PSS, HashFunction.SHA256, key_size=2048),
    AlgorithmSpec(RSA_PSS_3072_SHA256, NativeAlgorithm.RSA_SIGN_PSS_3072_SHA256, Family.RSA_PSS, HashFunction.SHA256, key_size=3072),
    AlgorithmSpec(RSA_PSS_4096_SHA256, NativeAlgorithm.RSA_SIGN_PSS_4096_SHA256, Family.RSA_PSS, HashFunction.SHA256, key_size=4096),
    AlgorithmSpec(RSA_PSS_4096_SHA512, NativeAlgorithm.RSA_SIGN_PSS_4096_SHA512, Family.RSA_PSS, HashFunction.SHA512, key_size=4096),
)

ALGORITHMS: Mapping[str, AlgorithmSpec] = MappingProxyType({s.name: s for s in _SPECS})
_BY_NATIVE: Mapping[NativeAlgorithm, AlgorithmSpec] = MappingProxyType({s.native: s for s in _SPECS})


def supported_algorithms() -> list[str]:
    return [s.name for s in _SPECS]


def to_native(name: str) -> NativeAlgorithm:
    spec = ALGORITHMS.get(name)
    if spec is None:
        raise UnsupportedAlgorithm(f"unknown algorithm requested: {name!r}")
    return spec.native


def spec_for(native: NativeAlgorithm | str) -> AlgorithmSpec:
    try:
        key = NativeAlgorithm(native)
    except ValueError:
        raise UnsupportedAlgorithm(f"unknown algorithm specified by KMS: {native!r}") from None
    return _BY_NATIVE[key]


def hash_for(native: NativeAlgorithm | str) -> HashFunction:
    return spec_for(native).hash_func


__all__ = [
    "ALGORITHMS",
    "AlgorithmSpec",
    "DEFAULT_ALGORITHM",
    "Family",
    "HashFunction",
    "NativeAlgorithm",
    "hash_for",
    "spec_for",
    "supported_algorithms",
    "to_native",
    "ECDSA_P256_SHA256",
    "ECDSA_P384_SHA384",
    "RSA_PKCS1V15_2048_SHA256",
    "RSA_PKCS1V15_3072_SHA256",
    "RSA_PKCS1V15_4096_SHA256",
    "RSA_PKCS1V15_4096_SHA512",
    "RSA_PSS_2048_SHA256",
    "RSA_PSS_3072_SHA256",
    "RSA_PSS_4096_SHA256",
    "RSA_PSS_4096_SHA512",
]
