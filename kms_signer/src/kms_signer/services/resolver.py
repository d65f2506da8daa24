# Resolve a key reference to the concrete key version to sign and verify with.
from __future__ import annotations

import structlog

from ..context import CallContext
from ..core.exceptions import (
    Canceled,
    DeadlineExceeded,
    InvalidPEM,
    KeyResolutionFailed,
    NoEnabledVersion,
    NotASigningKey,
    PublicKeyFetchFailed,
    ServiceError,
)
from ..crypto.algorithms import hash_for
from ..crypto.pem import load_public_key_pem
from ..crypto.verifier import load_verifier
from ..models import CryptoKeyVersion, KeyPurpose, ResolvedKeyVersion
from ..plugins.kms.base import ENABLED_FILTER, NAME_DESC, KMSService
from ..reference import KeyReference

logger = structlog.get_logger(__name__)


class KeyVersionResolver:
    """Queries the service for the version a reference points at.

    Pinned references fetch their version directly. Otherwise the enabled
    version with the greatest name wins, which for the service's numeric
    version ids is the most recently created one. Nothing is cached here.
    """

    def __init__(self, service: KMSService) -> None:
        self._service = service

    def resolve(self, reference: KeyReference, ctx: CallContext) -> ResolvedKeyVersion:
        try:
            ctx.check("GetCryptoKey")
            key = self._service.get_crypto_key(reference.key_name, ctx)
            if key.purpose != KeyPurpose.ASYMMETRIC_SIGN:
                raise NotASigningKey(
                    f"specified key cannot be used to sign: {key.name} has purpose {key.purpose}"
                )
            version = self._select_version(reference, ctx)
        except (Canceled, DeadlineExceeded):
            raise
        except ServiceError as exc:
            raise KeyResolutionFailed(
                f"initializing key version for {reference.key_name}", cause=exc
            ) from exc

        ctx.check("GetPublicKey")
        try:
            pem = self._service.get_public_key(version.name, ctx)
            public_key = load_public_key_pem(pem)
        except (Canceled, DeadlineExceeded):
            raise
        except (ServiceError, InvalidPEM) as exc:
            raise PublicKeyFetchFailed(
                f"unable to fetch public key for {version.name}", cause=exc
            ) from exc

        hash_func = hash_for(version.algorithm)
        verifier = load_verifier(version.algorithm, public_key)
        logger.info(
            "key_version_resolved",
            version=version.name,
            algorithm=version.algorithm,
            pinned=reference.pinned,
        )
        return ResolvedKeyVersion(version=version, verifier=verifier, hash_func=hash_func)

    def _select_version(self, reference: KeyReference, ctx: CallContext) -> CryptoKeyVersion:
        if reference.version_name is not None:
            ctx.check("GetCryptoKeyVersion")
            return self._service.get_crypto_key_version(reference.version_name, ctx)

        ctx.check("ListCryptoKeyVersions")
        versions = self._service.list_crypto_key_versions(
            reference.key_name, ctx, filter=ENABLED_FILTER, order_by=NAME_DESC
        )
        version = next(iter(versions), None)
        if version is None:
            raise NoEnabledVersion(f"unable to find an enabled key version for {reference.key_name}")
        return version


__all__ = ["KeyVersionResolver"]
