from __future__ import annotations

import pytest

from kms_signer.plugins.kms.memory import InMemoryKMS

KEY_NAME = "projects/p/locations/l/keyRings/r/cryptoKeys/k"


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def key_name() -> str:
    return KEY_NAME


@pytest.fixture
def ref() -> str:
    return f"gcpkms://{KEY_NAME}"


@pytest.fixture
def pinned_ref() -> str:
    return f"gcpkms://{KEY_NAME}/versions/1"


@pytest.fixture
def kms() -> InMemoryKMS:
    service = InMemoryKMS()
    service.add_key(KEY_NAME)
    return service


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
