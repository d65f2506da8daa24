"""Google Cloud KMS backend.

Translates between the ``google-cloud-kms`` client and the signer's own
models, and maps ``google.api_core`` errors onto the signer's exception
taxonomy. The caller's remaining deadline becomes the RPC timeout.
"""
from __future__ import annotations

import contextlib
from typing import Any, Dict, Iterator, Optional

from google.api_core import exceptions as gexc
from google.cloud import kms

from ...context import CallContext
from ...core.exceptions import (
    Canceled,
    DeadlineExceeded,
    ResourceAlreadyExists,
    ResourceNotFound,
    TransientServiceError,
)
from ...crypto.algorithms import NativeAlgorithm
from ...models import CryptoKey, CryptoKeyVersion, Digest, KeyPurpose, KeyRing, SignResponse


def _enum_name(value: Any) -> str:
    return getattr(value, "name", None) or str(value)


@contextlib.contextmanager
def _translate_errors(method: str, ctx: CallContext) -> Iterator[None]:
    ctx.check(method)
    try:
        yield
    except gexc.NotFound as exc:
        raise ResourceNotFound(method, cause=exc) from exc
    except gexc.AlreadyExists as exc:
        raise ResourceAlreadyExists(method, cause=exc) from exc
    except gexc.DeadlineExceeded as exc:
        raise DeadlineExceeded(method, cause=exc) from exc
    except gexc.Cancelled as exc:
        raise Canceled(method, cause=exc) from exc
    except gexc.GoogleAPIError as exc:
        raise TransientServiceError(method, cause=exc) from exc


class GoogleCloudKMS:
    def __init__(self, client: Any = None, *, endpoint: Optional[str] = None) -> None:
        if client is None:
            options = {"api_endpoint": endpoint} if endpoint else None
            client = kms.KeyManagementServiceClient(client_options=options)
        self._client = client

    @staticmethod
    def _call_options(ctx: CallContext) -> Dict[str, Any]:
        remaining = ctx.remaining()
        return {} if remaining is None else {"timeout": remaining}

    def close(self) -> None:
        transport = getattr(self._client, "transport", None)
        if transport is not None:
            transport.close()

    def get_crypto_key(self, name: str, ctx: CallContext) -> CryptoKey:
        with _translate_errors("GetCryptoKey", ctx):
            key = self._client.get_crypto_key(request={"name": name}, **self._call_options(ctx))
        template = getattr(key, "version_template", None)
        algorithm = _enum_name(template.algorithm) if template is not None else None
        return CryptoKey(name=key.name, purpose=_enum_name(key.purpose), algorithm=algorithm)

    def get_crypto_key_version(self, name: str, ctx: CallContext) -> CryptoKeyVersion:
        with _translate_errors("GetCryptoKeyVersion", ctx):
            version = self._client.get_crypto_key_version(request={"name": name}, **self._call_options(ctx))
        return _to_version(version)

    def list_crypto_key_versions(
        self,
        parent: str,
        ctx: CallContext,
        *,
        filter: str = "",
        order_by: str = "",
    ) -> Iterator[CryptoKeyVersion]:
        request = {"parent": parent, "filter": filter, "order_by": order_by}
        with _translate_errors("ListCryptoKeyVersions", ctx):
            pager = self._client.list_crypto_key_versions(request=request, **self._call_options(ctx))
        return self._iterate_pages(pager, ctx)

    def _iterate_pages(self, pager: Any, ctx: CallContext) -> Iterator[CryptoKeyVersion]:
        # later pages are fetched lazily and can fail mid-iteration
        iterator = iter(pager)
        while True:
            with _translate_errors("ListCryptoKeyVersions", ctx):
                version = next(iterator, None)
            if version is None:
                return
            yield _to_version(version)

    def get_public_key(self, name: str, ctx: CallContext) -> str:
        with _translate_errors("GetPublicKey", ctx):
            public_key = self._client.get_public_key(request={"name": name}, **self._call_options(ctx))
        return public_key.pem

    def asymmetric_sign(
        self,
        name: str,
        digest: Digest,
        ctx: CallContext,
        *,
        digest_crc32c: Optional[int] = None,
    ) -> SignResponse:
        request: Dict[str, Any] = {
            "name": name,
            "digest": {digest.hash_func.value: digest.value},
        }
        if digest_crc32c is not None:
            request["digest_crc32c"] = digest_crc32c
        with _translate_errors("AsymmetricSign", ctx):
            response = self._client.asymmetric_sign(request=request, **self._call_options(ctx))
        return SignResponse(
            name=response.name or name,
            signature=response.signature,
            signature_crc32c=response.signature_crc32c,
            verified_digest_crc32c=bool(response.verified_digest_crc32c),
        )

    def create_crypto_key(
        self,
        parent: str,
        key_id: str,
        purpose: KeyPurpose,
        algorithm: NativeAlgorithm,
        ctx: CallContext,
    ) -> CryptoKey:
        request = {
            "parent": parent,
            "crypto_key_id": key_id,
            "crypto_key": {
                "purpose": kms.CryptoKey.CryptoKeyPurpose[KeyPurpose(purpose).value],
                "version_template": {
                    "algorithm": kms.CryptoKeyVersion.CryptoKeyVersionAlgorithm[NativeAlgorithm(algorithm).value],
                },
            },
        }
        with _translate_errors("CreateCryptoKey", ctx):
            key = self._client.create_crypto_key(request=request, **self._call_options(ctx))
        return CryptoKey(
            name=key.name,
            purpose=_enum_name(key.purpose),
            algorithm=NativeAlgorithm(algorithm).value,
        )

    def get_key_ring(self, name: str, ctx: CallContext) -> KeyRing:
        with _translate_errors("GetKeyRing", ctx):
            ring = self._client.get_key_ring(request={"name": name}, **self._call_options(ctx))
        return KeyRing(name=ring.name)

    def create_key_ring(self, parent: str, key_ring_id: str, ctx: CallContext) -> KeyRing:
        request = {"parent": parent, "key_ring_id": key_ring_id, "key_ring": {}}
        with _translate_errors("CreateKeyRing", ctx):
            ring = self._client.create_key_ring(request=request, **self._call_options(ctx))
        return KeyRing(name=ring.name)


def _to_version(version: Any) -> CryptoKeyVersion:
    return CryptoKeyVersion(
        name=version.name,
        state=_enum_name(version.state),
        algorithm=_enum_name(version.algorithm),
    )


__all__ = ["GoogleCloudKMS"]
