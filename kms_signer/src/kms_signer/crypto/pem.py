# PEM helpers for public keys returned by the service.
from __future__ import annotations

from cryptography.exceptions import UnsupportedAlgorithm as UnsupportedKeyType
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from ..core.exceptions import InvalidPEM


def load_public_key_pem(data: bytes | str) -> PublicKeyTypes:
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        return serialization.load_pem_public_key(data)
    except (ValueError, TypeError, UnsupportedKeyType) as exc:
        raise InvalidPEM("invalid public key PEM", cause=exc) from exc


def public_key_pem(public_key: PublicKeyTypes) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


__all__ = ["load_public_key_pem", "public_key_pem"]
