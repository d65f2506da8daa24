"""Process-local key-management service.

Keys are generated with ``cryptography`` and never leave the instance, which
mirrors the remote service closely enough to exercise resolution, rotation,
integrity checks and provisioning without network access. ``calls`` counts
every RPC by method name.
"""
from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa, utils

from ...context import CallContext
from ...core.exceptions import ResourceAlreadyExists, ResourceNotFound, TransientServiceError
from ...crypto.algorithms import Family, NativeAlgorithm, spec_for
from ...crypto.checksum import crc32c
from ...crypto.pem import public_key_pem
from ...models import (
    CryptoKey,
    CryptoKeyVersion,
    Digest,
    KeyPurpose,
    KeyRing,
    SignResponse,
    VersionState,
)

_CURVES = {"secp256r1": ec.SECP256R1, "secp384r1": ec.SECP384R1}


def generate_private_key(algorithm: NativeAlgorithm) -> Any:
    spec = spec_for(algorithm)
    if spec.family is Family.ECDSA:
        return ec.generate_private_key(_CURVES[spec.curve]())
    return rsa.generate_private_key(public_exponent=65537, key_size=spec.key_size)


@dataclass
class _Version:
    name: str
    algorithm: NativeAlgorithm
    private_key: Any
    state: VersionState = VersionState.ENABLED

    def snapshot(self) -> CryptoKeyVersion:
        return CryptoKeyVersion(name=self.name, state=self.state.value, algorithm=self.algorithm.value)


@dataclass
class _Key:
    name: str
    purpose: KeyPurpose
    algorithm: Optional[NativeAlgorithm]
    versions: Dict[int, _Version] = field(default_factory=dict)


class InMemoryKMS:
    def __init__(self, *, endpoint: Optional[str] = None) -> None:
        self.endpoint = endpoint
        self.calls: Counter[str] = Counter()
        self._lock = threading.RLock()
        self._key_rings: Dict[str, KeyRing] = {}
        self._keys: Dict[str, _Key] = {}

    def _enter(self, method: str, ctx: CallContext) -> None:
        ctx.check(method)
        self.calls[method] += 1

    def _key(self, name: str) -> _Key:
        key = self._keys.get(name)
        if key is None:
            raise ResourceNotFound(f"CryptoKey {name} not found")
        return key

    def _version(self, name: str) -> _Version:
        key_name, sep, version_id = name.rpartition("/cryptoKeyVersions/")
        key = self._keys.get(key_name) if sep else None
        version = key.versions.get(int(version_id)) if key and version_id.isdigit() else None
        if version is None:
            raise ResourceNotFound(f"CryptoKeyVersion {name} not found")
        return version

    # ----- Key rings -----
    def get_key_ring(self, name: str, ctx: CallContext) -> KeyRing:
        self._enter("GetKeyRing", ctx)
        with self._lock:
            ring = self._key_rings.get(name)
        if ring is None:
            raise ResourceNotFound(f"KeyRing {name} not found")
        return ring

    def create_key_ring(self, parent: str, key_ring_id: str, ctx: CallContext) -> KeyRing:
        self._enter("CreateKeyRing", ctx)
        name = f"{parent}/keyRings/{key_ring_id}"
        with self._lock:
            if name in self._key_rings:
                raise ResourceAlreadyExists(f"KeyRing {name} already exists")
            ring = self._key_rings[name] = KeyRing(name=name)
        return ring

    # ----- Keys -----
    def get_crypto_key(self, name: str, ctx: CallContext) -> CryptoKey:
        self._enter("GetCryptoKey", ctx)
        with self._lock:
            key = self._key(name)
            return CryptoKey(
                name=key.name,
                purpose=key.purpose.value,
                algorithm=key.algorithm.value if key.algorithm else None,
            )

    def create_crypto_key(
        self,
        parent: str,
        key_id: str,
        purpose: KeyPurpose,
        algorithm: NativeAlgorithm,
        ctx: CallContext,
    ) -> CryptoKey:
        self._enter("CreateCryptoKey", ctx)
        return self._create_key(parent, key_id, purpose, algorithm)

    def _create_key(
        self, parent: str, key_id: str, purpose: KeyPurpose, algorithm: NativeAlgorithm
    ) -> CryptoKey:
        name = f"{parent}/cryptoKeys/{key_id}"
        with self._lock:
            if parent not in self._key_rings:
                raise ResourceNotFound(f"KeyRing {parent} not found")
            if name in self._keys:
                raise ResourceAlreadyExists(f"CryptoKey {name} already exists")
            purpose = KeyPurpose(purpose)
            key = _Key(name=name, purpose=purpose, algorithm=NativeAlgorithm(algorithm))
            self._keys[name] = key
            if purpose is KeyPurpose.ASYMMETRIC_SIGN:
                self._add_version(key, key.algorithm)
        return CryptoKey(name=name, purpose=purpose.value, algorithm=key.algorithm.value)

    def add_key(
        self,
        key_name: str,
        algorithm: NativeAlgorithm | str = NativeAlgorithm.EC_SIGN_P256_SHA256,
        *,
        purpose: KeyPurpose = KeyPurpose.ASYMMETRIC_SIGN,
    ) -> CryptoKey:
        """Create a key ring and key directly, without counting RPCs"""
        parent, _, key_id = key_name.rpartition("/cryptoKeys/")
        with self._lock:
            self._key_rings.setdefault(parent, KeyRing(name=parent))
        return self._create_key(parent, key_id, purpose, NativeAlgorithm(algorithm))

    # ----- Versions -----
    def _add_version(self, key: _Key, algorithm: NativeAlgorithm) -> _Version:
        number = max(key.versions, default=0) + 1
        version = _Version(
            name=f"{key.name}/cryptoKeyVersions/{number}",
            algorithm=algorithm,
            private_key=generate_private_key(algorithm),
        )
        key.versions[number] = version
        return version

    def add_version(
        self, key_name: str, algorithm: NativeAlgorithm | str | None = None
    ) -> CryptoKeyVersion:
        """Rotate: add a new enabled version to an existing key"""
        with self._lock:
            key = self._key(key_name)
            native = NativeAlgorithm(algorithm) if algorithm is not None else key.algorithm
            return self._add_version(key, native).snapshot()

    def set_version_state(self, version_name: str, state: VersionState | str) -> None:
        with self._lock:
            self._version(version_name).state = VersionState(state)

    def private_key(self, version_name: str) -> Any:
        with self._lock:
            return self._version(version_name).private_key

    def get_crypto_key_version(self, name: str, ctx: CallContext) -> CryptoKeyVersion:
        self._enter("GetCryptoKeyVersion", ctx)
        with self._lock:
            return self._version(name).snapshot()

    def list_crypto_key_versions(
        self,
        parent: str,
        ctx: CallContext,
        *,
        filter: str = "",
        order_by: str = "",
    ) -> Iterator[CryptoKeyVersion]:
        """List versions; ``name desc`` orders by numeric version id, newest first"""
        self._enter("ListCryptoKeyVersions", ctx)
        with self._lock:
            key = self._key(parent)
            items = sorted(key.versions.items())
            if order_by.strip().lower() == "name desc":
                items.reverse()
            versions = [v.snapshot() for _, v in items]
        if filter:
            field_name, _, expected = filter.partition("=")
            if field_name.strip() != "state":
                raise TransientServiceError(f"INVALID_ARGUMENT: unsupported filter {filter!r}")
            versions = [v for v in versions if v.state == expected.strip()]
        return iter(versions)

    def get_public_key(self, name: str, ctx: CallContext) -> str:
        self._enter("GetPublicKey", ctx)
        with self._lock:
            version = self._version(name)
            if version.state is not VersionState.ENABLED:
                raise TransientServiceError(f"FAILED_PRECONDITION: {name} is not enabled")
            return public_key_pem(version.private_key.public_key()).decode("ascii")

    def asymmetric_sign(
        self,
        name: str,
        digest: Digest,
        ctx: CallContext,
        *,
        digest_crc32c: Optional[int] = None,
    ) -> SignResponse:
        self._enter("AsymmetricSign", ctx)
        with self._lock:
            version = self._version(name)
            if version.state is not VersionState.ENABLED:
                raise TransientServiceError(f"FAILED_PRECONDITION: {name} is not enabled")
            spec = spec_for(version.algorithm)
            if digest.hash_func is not spec.hash_func:
                raise TransientServiceError(
                    f"INVALID_ARGUMENT: {spec.native.value} requires a {spec.hash_func.value} digest"
                )
            prehashed = utils.Prehashed(spec.hash_func.algorithm())
            key = version.private_key
            if spec.family is Family.ECDSA:
                signature = key.sign(digest.value, ec.ECDSA(prehashed))
            elif spec.family is Family.RSA_PKCS1V15:
                signature = key.sign(digest.value, padding.PKCS1v15(), prehashed)
            else:
                pss = padding.PSS(
                    mgf=padding.MGF1(spec.hash_func.algorithm()),
                    salt_length=padding.PSS.DIGEST_LENGTH,
                )
                signature = key.sign(digest.value, pss, prehashed)
        verified = digest_crc32c is not None and crc32c(digest.value) == digest_crc32c
        return SignResponse(
            name=name,
            signature=signature,
            signature_crc32c=crc32c(signature),
            verified_digest_crc32c=verified,
        )


__all__ = ["InMemoryKMS", "generate_private_key"]
