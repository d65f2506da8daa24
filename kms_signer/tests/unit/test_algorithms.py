import pytest
from cryptography.hazmat.primitives import hashes

from kms_signer.core.exceptions import UnsupportedAlgorithm, UnsupportedHash
from kms_signer.crypto import algorithms
from kms_signer.crypto.algorithms import HashFunction, NativeAlgorithm, hash_for, to_native

EXPECTED = {
    "ecdsa-p256-sha256": (NativeAlgorithm.EC_SIGN_P256_SHA256, HashFunction.SHA256),
    "ecdsa-p384-sha384": (NativeAlgorithm.EC_SIGN_P384_SHA384, HashFunction.SHA384),
    "rsa-pkcs1v15-2048-sha256": (NativeAlgorithm.RSA_SIGN_PKCS1_2048_SHA256, HashFunction.SHA256),
    "rsa-pkcs1v15-3072-sha256": (NativeAlgorithm.RSA_SIGN_PKCS1_3072_SHA256, HashFunction.SHA256),
    "rsa-pkcs1v15-4096-sha256": (NativeAlgorithm.RSA_SIGN_PKCS1_4096_SHA256, HashFunction.SHA256),
    "rsa-pkcs1v15-4096-sha512": (NativeAlgorithm.RSA_SIGN_PKCS1_4096_SHA512, HashFunction.SHA512),
    "rsa-pss-2048-sha256": (NativeAlgorithm.RSA_SIGN_PSS_2048_SHA256, HashFunction.SHA256),
    "rsa-pss-3072-sha256": (NativeAlgorithm.RSA_SIGN_PSS_3072_SHA256, HashFunction.SHA256),
    "rsa-pss-4096-sha256": (NativeAlgorithm.RSA_SIGN_PSS_4096_SHA256, HashFunction.SHA256),
    "rsa-pss-4096-sha512": (NativeAlgorithm.RSA_SIGN_PSS_4096_SHA512, HashFunction.SHA512),
}


@pytest.mark.parametrize("name", sorted(EXPECTED))
def test_name_maps_to_native_and_hash(name: str) -> None:
    native = to_native(name)
    assert (native, hash_for(native)) == EXPECTED[name]


def test_table_is_exhaustive() -> None:
    assert set(algorithms.supported_algorithms()) == set(EXPECTED)
    assert algorithms.DEFAULT_ALGORITHM in EXPECTED


@pytest.mark.parametrize("name", ["", "ECDSA-P256-SHA256", "ed25519", "rsa-pss-1024-sha256", "hmac-sha256"])
def test_unknown_names_fail(name: str) -> None:
    with pytest.raises(UnsupportedAlgorithm):
        to_native(name)


@pytest.mark.parametrize(
    "native",
    ["GOOGLE_SYMMETRIC_ENCRYPTION", "RSA_DECRYPT_OAEP_2048_SHA256", "HMAC_SHA256", "EC_SIGN_SECP256K1_SHA256", ""],
)
def test_unsupported_native_algorithms_fail_closed(native: str) -> None:
    with pytest.raises(UnsupportedAlgorithm):
        hash_for(native)


def test_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        algorithms.ALGORITHMS["rsa-pss-1024-sha256"] = algorithms.ALGORITHMS["rsa-pss-2048-sha256"]  # type: ignore[index]


@pytest.mark.parametrize(
    "value, expected",
    [
        (HashFunction.SHA384, HashFunction.SHA384),
        ("sha256", HashFunction.SHA256),
        ("SHA-512", HashFunction.SHA512),
        ("SHA_384", HashFunction.SHA384),
        (hashes.SHA256(), HashFunction.SHA256),
    ],
)
def test_hash_function_coerce(value: object, expected: HashFunction) -> None:
    assert HashFunction.coerce(value) is expected


@pytest.mark.parametrize("value", ["sha1", "md5", hashes.SHA1(), hashes.SHA3_256(), 256, None])
def test_hash_function_coerce_rejects(value: object) -> None:
    with pytest.raises(UnsupportedHash):
        HashFunction.coerce(value)


def test_hash_digest_sizes() -> None:
    assert HashFunction.SHA256.digest_size == 32
    assert HashFunction.SHA384.digest_size == 48
    assert len(HashFunction.SHA512.digest(b"data")) == 64
