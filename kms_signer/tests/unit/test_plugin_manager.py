import pytest

from kms_signer.plugins.kms import InMemoryKMS, KMSService
from kms_signer.plugins.manager import load_plugin, load_service
from kms_signer.utils.config import KMSConfig


def test_load_plugin_accepts_both_forms() -> None:
    assert load_plugin("kms_signer.plugins.kms.memory", "InMemoryKMS") is InMemoryKMS
    assert load_plugin("kms_signer.plugins.kms.memory:InMemoryKMS") is InMemoryKMS


def test_load_service_passes_endpoint() -> None:
    service = load_service(
        KMSConfig(backend="kms_signer.plugins.kms.memory:InMemoryKMS", endpoint="localhost:9000")
    )
    assert isinstance(service, InMemoryKMS)
    assert isinstance(service, KMSService)
    assert service.endpoint == "localhost:9000"


def test_load_service_rejects_non_services() -> None:
    with pytest.raises(TypeError):
        load_service(KMSConfig(backend="collections:OrderedDict"))


def test_unknown_module() -> None:
    with pytest.raises(ModuleNotFoundError):
        load_plugin("kms_signer.plugins.kms.nope:Missing")
