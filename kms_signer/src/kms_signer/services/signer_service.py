# Sign with a remote key and verify locally against its cached public key.
from __future__ import annotations

import time
from typing import Any, Callable, Optional

import structlog
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from ..context import CallContext, ensure_context
from ..core.exceptions import (
    Canceled,
    DeadlineExceeded,
    RemoteSignFailed,
    ServiceError,
    VerificationFailed,
)
from ..crypto import algorithms
from ..crypto.algorithms import HashFunction
from ..crypto.checksum import check_sign_response, crc32c
from ..crypto.verifier import Readable, digest_of, read_all
from ..models import Digest, ResolvedKeyVersion
from ..plugins.kms.base import KMSService
from ..reference import KeyReference, parse
from ..utils.config import AppConfig, load_config
from .cache import DEFAULT_TTL_SECONDS, ResolutionCache
from .key_manager import KeyManager
from .resolver import KeyVersionResolver

logger = structlog.get_logger(__name__)


class SignerService:
    """Signer/verifier for one remote key.

    Construction parses the reference and resolves the key version right
    away, so an instance never exists for a key that cannot be used. The
    private key never leaves the service; verification happens locally with
    the public key of the resolved version.
    """

    def __init__(
        self,
        reference: str,
        service: KMSService,
        *,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        request_timeout: Optional[float] = None,
        ctx: Optional[CallContext] = None,
        clock: Callable[[], float] = time.monotonic,
        owns_service: bool = False,
    ) -> None:
        self._reference = parse(reference)
        if not self._reference.pinned and cache_ttl <= 0:
            raise ValueError("cache_ttl must be positive for auto-discovered key versions")
        self._service = service
        self._request_timeout = request_timeout
        self._owns_service = owns_service
        self._resolver = KeyVersionResolver(service)
        self._keys = KeyManager(service, self._reference)
        ttl = 0 if self._reference.pinned else cache_ttl
        self._cache = ResolutionCache(self._load, ttl=ttl, clock=clock)
        try:
            self._cache.get(self._context(ctx))
        except Exception:
            self.close()
            raise

    @classmethod
    def from_config(
        cls,
        reference: str,
        config: Optional[AppConfig] = None,
        *,
        service: Optional[KMSService] = None,
        ctx: Optional[CallContext] = None,
        owns_service: Optional[bool] = None,
    ) -> SignerService:
        """Build a signer from configuration.

        A service loaded from ``config.kms.backend`` is closed with the signer;
        a passed-in ``service`` only when ``owns_service`` is true.
        """
        from ..plugins.manager import load_service

        config = config or load_config()
        if owns_service is None:
            owns_service = service is None
        service = service or load_service(config.kms)
        return cls(
            reference,
            service,
            cache_ttl=config.kms.cache_ttl_seconds,
            request_timeout=config.kms.request_timeout,
            ctx=ctx,
            owns_service=owns_service,
        )

    @classmethod
    def provision(
        cls,
        reference: str,
        algorithm: str,
        service: KMSService,
        *,
        ctx: Optional[CallContext] = None,
        **kwargs: Any,
    ) -> SignerService:
        """Create the referenced key if needed, then return a primed signer for it"""
        timeout = kwargs.get("request_timeout")
        try:
            ref = parse(reference)
            algorithms.to_native(algorithm)
            KeyManager(service, ref).create_key(algorithm, ensure_context(ctx).with_timeout(timeout))
        except Exception:
            if kwargs.get("owns_service"):
                _close_service(service)
            raise
        return cls(reference, service, ctx=ctx, **kwargs)

    @property
    def reference(self) -> KeyReference:
        return self._reference

    @property
    def pinned(self) -> bool:
        return self._reference.pinned

    @property
    def cache_ttl(self) -> float:
        return self._cache.ttl

    @staticmethod
    def default_algorithm() -> str:
        return algorithms.DEFAULT_ALGORITHM

    @staticmethod
    def supported_algorithms() -> list[str]:
        return algorithms.supported_algorithms()

    def _context(self, ctx: Optional[CallContext]) -> CallContext:
        return ensure_context(ctx).with_timeout(self._request_timeout)

    def _load(self, ctx: CallContext) -> ResolvedKeyVersion:
        return self._resolver.resolve(self._reference, ctx)

    def key_version(self, ctx: Optional[CallContext] = None) -> ResolvedKeyVersion:
        """The resolved key version, refreshing it if the cached one expired"""
        return self._cache.get(self._context(ctx))

    def hash_func(self, ctx: Optional[CallContext] = None) -> HashFunction:
        return self.key_version(ctx).hash_func

    def public_key(self, ctx: Optional[CallContext] = None) -> PublicKeyTypes:
        return self.key_version(ctx).verifier.public_key()

    def sign(
        self,
        digest: bytes,
        hash_func: HashFunction | str,
        checksum: int = 0,
        *,
        ctx: Optional[CallContext] = None,
    ) -> bytes:
        """Sign a precomputed digest.

        ``checksum`` is the CRC-32C of ``digest``; when non-zero it is sent
        along so the service can reject a request corrupted in transit.
        """
        hash_func = HashFunction.coerce(hash_func)
        ctx = self._context(ctx)
        resolved = self._cache.get(ctx)
        return self._sign(resolved, bytes(digest), hash_func, checksum, ctx)

    def sign_message(self, message: Readable, *, ctx: Optional[CallContext] = None) -> bytes:
        """Hash ``message`` with the key's hash function and sign the digest"""
        ctx = self._context(ctx)
        resolved = self._cache.get(ctx)
        digest = digest_of(message, resolved.hash_func)
        return self._sign(resolved, digest, resolved.hash_func, crc32c(digest), ctx)

    def _sign(
        self,
        resolved: ResolvedKeyVersion,
        digest: bytes,
        hash_func: HashFunction,
        checksum: int,
        ctx: CallContext,
    ) -> bytes:
        ctx.check("AsymmetricSign")
        try:
            response = self._service.asymmetric_sign(
                resolved.name,
                Digest(hash_func=hash_func, value=digest),
                ctx,
                digest_crc32c=checksum or None,
            )
        except (Canceled, DeadlineExceeded):
            raise
        except ServiceError as exc:
            raise RemoteSignFailed("calling AsymmetricSign", cause=exc) from exc
        return check_sign_response(response, checksum)

    def verify(
        self,
        signature: Readable,
        message: Readable = b"",
        *,
        digest: Optional[bytes] = None,
        ctx: Optional[CallContext] = None,
    ) -> None:
        """Raise :class:`VerificationFailed` unless ``signature`` is valid.

        In auto-discovery mode a failure may mean the key was rotated since it
        was resolved, so the cache is invalidated and verification is retried
        once against a freshly resolved version. Pinned versions cannot rotate
        and fail immediately.
        """
        ctx = self._context(ctx)
        sig = read_all(signature)
        msg = read_all(message) if digest is None else b""

        resolved = self._cache.get(ctx)
        try:
            resolved.verifier.verify_signature(sig, msg, digest=digest)
            return
        except VerificationFailed as exc:
            if self._reference.pinned:
                raise VerificationFailed(
                    f"failed to verify for fixed version {resolved.name}", cause=exc
                ) from exc
            logger.info("verify_retry_after_rotation", version=resolved.name)

        self._cache.invalidate()
        resolved = self._cache.get(ctx)
        try:
            resolved.verifier.verify_signature(sig, msg, digest=digest)
        except VerificationFailed as exc:
            raise VerificationFailed(
                f"failed to verify with key version {resolved.name}", cause=exc
            ) from exc

    def create_key(self, algorithm: str, *, ctx: Optional[CallContext] = None) -> PublicKeyTypes:
        """Ensure the referenced key exists and return its public key"""
        algorithms.to_native(algorithm)
        ctx = self._context(ctx)
        if self._keys.create_key(algorithm, ctx):
            self._cache.invalidate()
        return self._cache.get(ctx).verifier.public_key()

    def close(self) -> None:
        self._cache.invalidate()
        if self._owns_service:
            _close_service(self._service)

    def __enter__(self) -> SignerService:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def _close_service(service: KMSService) -> None:
    close = getattr(service, "close", None)
    if callable(close):
        close()


__all__ = ["SignerService"]
