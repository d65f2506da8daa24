from __future__ import annotations

from typing import Iterator, Optional, Protocol, runtime_checkable

from ...context import CallContext
from ...crypto.algorithms import NativeAlgorithm
from ...models import CryptoKey, CryptoKeyVersion, Digest, KeyPurpose, KeyRing, SignResponse

ENABLED_FILTER = "state=ENABLED"
NAME_DESC = "name desc"


@runtime_checkable
class KMSService(Protocol):
    """The subset of the key-management RPC surface used by the signer.

    Implementations translate their transport errors into
    :class:`~kms_signer.core.exceptions.ResourceNotFound`,
    :class:`~kms_signer.core.exceptions.ResourceAlreadyExists`,
    :class:`~kms_signer.core.exceptions.Canceled`,
    :class:`~kms_signer.core.exceptions.DeadlineExceeded` or
    :class:`~kms_signer.core.exceptions.TransientServiceError`, and honor the
    context's deadline on every call.
    """

    def get_crypto_key(self, name: str, ctx: CallContext) -> CryptoKey: ...

    def get_crypto_key_version(self, name: str, ctx: CallContext) -> CryptoKeyVersion: ...

    def list_crypto_key_versions(
        self,
        parent: str,
        ctx: CallContext,
        *,
        filter: str = "",
        order_by: str = "",
    ) -> Iterator[CryptoKeyVersion]: ...

    def get_public_key(self, name: str, ctx: CallContext) -> str:
        """Return the PEM-encoded public key of a key version"""
        ...

    def asymmetric_sign(
        self,
        name: str,
        digest: Digest,
        ctx: CallContext,
        *,
        digest_crc32c: Optional[int] = None,
    ) -> SignResponse: ...

    def create_crypto_key(
        self,
        parent: str,
        key_id: str,
        purpose: KeyPurpose,
        algorithm: NativeAlgorithm,
        ctx: CallContext,
    ) -> CryptoKey: ...

    def get_key_ring(self, name: str, ctx: CallContext) -> KeyRing: ...

    def create_key_ring(self, parent: str, key_ring_id: str, ctx: CallContext) -> KeyRing: ...


__all__ = ["ENABLED_FILTER", "KMSService", "NAME_DESC"]
