"""Central exception hierarchy.

Every error carries the ``phase`` it was raised in so callers can tell a bad
reference apart from a remote failure or an integrity violation. Wrapped
service errors keep their original message and are chained as ``__cause__``.
"""
from __future__ import annotations


class KMSSignerError(Exception):
    """Base exception for all failures"""

    phase = "kms"

    def __init__(self, message: str = "", *, cause: BaseException | None = None) -> None:
        if cause is not None:
            reason = cause.detail if isinstance(cause, KMSSignerError) else str(cause) or type(cause).__name__
            message = f"{message}: {reason}" if message else reason
        self.detail = message
        super().__init__(f"{self.phase}: {message}" if message else self.phase)


class MalformedReference(KMSSignerError):
    """Raised when a key reference does not match the reference grammar"""

    phase = "reference"


class UnsupportedAlgorithm(KMSSignerError):
    """Raised for algorithm names or native algorithms outside the supported table"""

    phase = "algorithm"


class UnsupportedHash(KMSSignerError):
    """Raised when a digest uses a hash function the service cannot sign"""

    phase = "signing"


class NotASigningKey(KMSSignerError):
    """Raised when the referenced key is not an asymmetric signing key"""

    phase = "resolution"


class NoEnabledVersion(KMSSignerError):
    """Raised when auto-discovery finds no enabled key version"""

    phase = "resolution"


class KeyResolutionFailed(KMSSignerError):
    """Raised when the key or its versions cannot be read from the service"""

    phase = "resolution"


class PublicKeyFetchFailed(KMSSignerError):
    """Raised when the public key of a key version cannot be obtained"""

    phase = "resolution"


class InvalidPEM(KMSSignerError):
    """Raised when PEM data cannot be decoded into a public key"""

    phase = "resolution"


class RemoteSignFailed(KMSSignerError):
    """Raised when the service rejects or fails an AsymmetricSign call"""

    phase = "signing"


class RequestCorrupted(KMSSignerError):
    """Raised when the service could not verify the digest checksum"""

    phase = "integrity"


class ResponseCorrupted(KMSSignerError):
    """Raised when the returned signature does not match its checksum"""

    phase = "integrity"


class VerificationFailed(KMSSignerError):
    """Raised when a signature does not verify against the resolved key"""

    phase = "verification"


class ProvisioningFailed(KMSSignerError):
    """Raised when a key ring or key cannot be created"""

    phase = "provisioning"


class ServiceError(KMSSignerError):
    """Base for failures reported by the remote key-management service"""

    phase = "service"


class ResourceNotFound(ServiceError):
    """Raised by services when the named resource does not exist"""


class ResourceAlreadyExists(ServiceError):
    """Raised by services when creating a resource that already exists"""


class TransientServiceError(ServiceError):
    """Generic wrap of any other remote failure"""


class Canceled(ServiceError):
    """Raised when the caller cancelled the operation"""


class DeadlineExceeded(ServiceError):
    """Raised when the caller's deadline elapsed before the operation finished"""


__all__ = [
    "Canceled",
    "DeadlineExceeded",
    "InvalidPEM",
    "KeyResolutionFailed",
    "KMSSignerError",
    "MalformedReference",
    "NoEnabledVersion",
    "NotASigningKey",
    "ProvisioningFailed",
    "PublicKeyFetchFailed",
    "RemoteSignFailed",
    "RequestCorrupted",
    "ResourceAlreadyExists",
    "ResourceNotFound",
    "ResponseCorrupted",
    "ServiceError",
    "TransientServiceError",
    "UnsupportedAlgorithm",
    "UnsupportedHash",
    "VerificationFailed",
]
