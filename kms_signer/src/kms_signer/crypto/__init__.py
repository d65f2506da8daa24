from .algorithms import HashFunction, NativeAlgorithm, hash_for, supported_algorithms, to_native
from .checksum import crc32c
from .pem import load_public_key_pem, public_key_pem
from .verifier import load_verifier

__all__ = [
    "HashFunction",
    "NativeAlgorithm",
    "crc32c",
    "hash_for",
    "load_public_key_pem",
    "load_verifier",
    "public_key_pem",
    "supported_algorithms",
    "to_native",
]
