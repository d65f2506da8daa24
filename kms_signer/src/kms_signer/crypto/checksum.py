# CRC-32C integrity checks for AsymmetricSign requests and responses.
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import google_crc32c

from ..core.exceptions import RequestCorrupted, ResponseCorrupted

if TYPE_CHECKING:
    from ..models import SignResponse


def crc32c(data: bytes) -> int:
    """Castagnoli CRC-32C, bit-compatible with the service's own checksums"""
    return google_crc32c.value(bytes(data))


def checksum_matches(data: bytes, expected: Optional[int]) -> bool:
    if expected is None:
        return False
    return crc32c(data) == int(expected)


def check_sign_response(response: "SignResponse", request_checksum: int) -> bytes:
    """Validate both directions of an AsymmetricSign exchange.

    A non-zero ``request_checksum`` must have been verified by the service.
    The signature checksum is always recomputed locally.
    """
    if request_checksum and not response.verified_digest_crc32c:
        raise RequestCorrupted("AsymmetricSign: request corrupted in-transit")
    if not checksum_matches(response.signature, response.signature_crc32c):
        raise ResponseCorrupted("AsymmetricSign: response corrupted in-transit")
    return response.signature


__all__ = ["check_sign_response", "checksum_matches", "crc32c"]
