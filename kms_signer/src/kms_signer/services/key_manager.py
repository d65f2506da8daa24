# Manage the lifecycle of remote keys (key ring and signing key creation).
from __future__ import annotations

import structlog

from ..context import CallContext
from ..core.exceptions import (
    Canceled,
    DeadlineExceeded,
    ProvisioningFailed,
    ResourceAlreadyExists,
    ResourceNotFound,
    ServiceError,
)
from ..crypto.algorithms import NativeAlgorithm, to_native
from ..models import CryptoKey, KeyPurpose
from ..plugins.kms.base import KMSService
from ..reference import KeyReference

logger = structlog.get_logger(__name__)


class KeyManager:
    """Create key rings and asymmetric signing keys idempotently"""

    def __init__(self, service: KMSService, reference: KeyReference) -> None:
        self._service = service
        self._reference = reference

    def ensure_key_ring(self, ctx: CallContext) -> None:
        name = self._reference.key_ring_name
        try:
            ctx.check("GetKeyRing")
            ring = self._service.get_key_ring(name, ctx)
            logger.info("key_ring_exists", key_ring=ring.name)
            return
        except ResourceNotFound:
            pass

        try:
            ctx.check("CreateKeyRing")
            ring = self._service.create_key_ring(
                self._reference.location_name, self._reference.key_ring, ctx
            )
        except ResourceAlreadyExists:
            logger.info("key_ring_exists", key_ring=name)
            return
        except (Canceled, DeadlineExceeded):
            raise
        except ServiceError as exc:
            raise ProvisioningFailed(f"creating key ring {name}", cause=exc) from exc
        logger.info("key_ring_created", key_ring=ring.name)

    def create_key(self, algorithm: str, ctx: CallContext) -> bool:
        """Ensure the referenced key exists; return ``True`` if it was created here.

        The algorithm name is validated before any remote call is made.
        """
        native: NativeAlgorithm = to_native(algorithm)
        self.ensure_key_ring(ctx)

        name = self._reference.key_name
        try:
            ctx.check("GetCryptoKey")
            existing = self._service.get_crypto_key(name, ctx)
            logger.info("crypto_key_exists", key=existing.name)
            return False
        except ResourceNotFound:
            pass

        try:
            ctx.check("CreateCryptoKey")
            created: CryptoKey = self._service.create_crypto_key(
                self._reference.key_ring_name,
                self._reference.key,
                KeyPurpose.ASYMMETRIC_SIGN,
                native,
                ctx,
            )
        except ResourceAlreadyExists:
            logger.info("crypto_key_exists", key=name)
            return False
        except (Canceled, DeadlineExceeded):
            raise
        except ServiceError as exc:
            raise ProvisioningFailed(f"creating crypto key {name}", cause=exc) from exc
        logger.info("crypto_key_created", key=created.name, algorithm=native.value)
        return True


__all__ = ["KeyManager"]
