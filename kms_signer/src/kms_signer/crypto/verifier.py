from __future__ import annotations

from typing import BinaryIO, Optional, Protocol, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa, utils
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from ..core.exceptions import UnsupportedAlgorithm, VerificationFailed
from .algorithms import Family, HashFunction, NativeAlgorithm, spec_for

Readable = Union[bytes, bytearray, memoryview, BinaryIO]

_CHUNK = 1 << 20


def read_all(data: Readable) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    return data.read()


def digest_of(message: Readable, hash_func: HashFunction) -> bytes:
    h = hashes.Hash(hash_func.algorithm())
    if isinstance(message, (bytes, bytearray, memoryview)):
        h.update(bytes(message))
    else:
        for chunk in iter(lambda: message.read(_CHUNK), b""):
            h.update(chunk)
    return h.finalize()


class Verifier(Protocol):
    hash_func: HashFunction

    def public_key(self) -> PublicKeyTypes: ...

    def verify_signature(
        self, signature: Readable, message: Readable, *, digest: Optional[bytes] = None
    ) -> None: ...


class _BaseVerifier:
    """Holds a public key and verifies signatures produced by the remote private key.

    The message is hashed locally with ``hash_func``; callers that already hold
    the digest may pass it via ``digest`` and the message is then ignored.
    """

    def __init__(self, public_key: PublicKeyTypes, hash_func: HashFunction) -> None:
        self._public_key = public_key
        self.hash_func = HashFunction.coerce(hash_func)

    def public_key(self) -> PublicKeyTypes:
        return self._public_key

    def verify_signature(
        self, signature: Readable, message: Readable, *, digest: Optional[bytes] = None
    ) -> None:
        sig = read_all(signature)
        if digest is None:
            digest = digest_of(message, self.hash_func)
        try:
            self._verify(sig, digest, utils.Prehashed(self.hash_func.algorithm()))
        except (InvalidSignature, ValueError) as exc:
            raise VerificationFailed("invalid signature when validating") from exc

    def _verify(self, signature: bytes, digest: bytes, prehashed: utils.Prehashed) -> None:
        raise NotImplementedError


class ECDSAVerifier(_BaseVerifier):
    def __init__(self, public_key: ec.EllipticCurvePublicKey, hash_func: HashFunction) -> None:
        if not isinstance(public_key, ec.EllipticCurvePublicKey):
            raise UnsupportedAlgorithm("ECDSA verifier requires an elliptic curve public key")
        super().__init__(public_key, hash_func)

    def _verify(self, signature: bytes, digest: bytes, prehashed: utils.Prehashed) -> None:
        self._public_key.verify(signature, digest, ec.ECDSA(prehashed))


class RSAPKCS1v15Verifier(_BaseVerifier):
    def __init__(self, public_key: rsa.RSAPublicKey, hash_func: HashFunction) -> None:
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise UnsupportedAlgorithm("RSA verifier requires an RSA public key")
        super().__init__(public_key, hash_func)

    def _verify(self, signature: bytes, digest: bytes, prehashed: utils.Prehashed) -> None:
        self._public_key.verify(signature, digest, padding.PKCS1v15(), prehashed)


class RSAPSSVerifier(_BaseVerifier):
    def __init__(self, public_key: rsa.RSAPublicKey, hash_func: HashFunction) -> None:
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise UnsupportedAlgorithm("RSA verifier requires an RSA public key")
        super().__init__(public_key, hash_func)

    def _verify(self, signature: bytes, digest: bytes, prehashed: utils.Prehashed) -> None:
        pss = padding.PSS(
            mgf=padding.MGF1(self.hash_func.algorithm()),
            salt_length=padding.PSS.AUTO,
        )
        self._public_key.verify(signature, digest, pss, prehashed)


_FAMILIES = {
    Family.ECDSA: ECDSAVerifier,
    Family.RSA_PKCS1V15: RSAPKCS1v15Verifier,
    Family.RSA_PSS: RSAPSSVerifier,
}


def load_verifier(native: NativeAlgorithm | str, public_key: PublicKeyTypes) -> Verifier:
    """Build the verifier matching a native algorithm over ``public_key``"""
    spec = spec_for(native)
    if spec.curve is not None and getattr(getattr(public_key, "curve", None), "name", None) != spec.curve:
        raise UnsupportedAlgorithm(f"public key does not use curve {spec.curve} required by {spec.native.value}")
    return _FAMILIES[spec.family](public_key, spec.hash_func)


__all__ = [
    "ECDSAVerifier",
    "RSAPKCS1v15Verifier",
    "RSAPSSVerifier",
    "Verifier",
    "digest_of",
    "load_verifier",
    "read_all",
]
