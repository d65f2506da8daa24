from __future__ import annotations

import base64
import logging
from pathlib import Path

import pytest
import structlog
from cryptography.hazmat.primitives import serialization
from typer.testing import CliRunner

from kms_signer import cli
from kms_signer.plugins.kms.memory import InMemoryKMS
from kms_signer.utils.config import CONFIG_ENV, LOG_LEVEL_ENV, AppConfig, load_config
from kms_signer.version import __version__

KEY = "projects/p/locations/global/keyRings/cli/cryptoKeys/k"
REF = f"gcpkms://{KEY}"

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def kms(monkeypatch: pytest.MonkeyPatch) -> InMemoryKMS:
    service = InMemoryKMS()
    monkeypatch.setattr(cli, "_service", lambda cfg: service)
    return service


def test_version() -> None:
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert f"kms-signer {__version__}" in result.output


def test_algorithms_marks_default() -> None:
    result = runner.invoke(cli.app, ["algorithms"])
    assert result.exit_code == 0
    assert "ecdsa-p256-sha256 (default)" in result.output
    assert "rsa-pss-4096-sha512" in result.output


def test_selftest() -> None:
    result = runner.invoke(cli.app, ["selftest"])
    assert result.exit_code == 0, result.output
    assert "Selftest OK" in result.output


def test_create_key_then_public_key(kms: InMemoryKMS) -> None:
    created = runner.invoke(cli.app, ["create-key", "--ref", REF, "--algorithm", "ecdsa-p384-sha384"])
    assert created.exit_code == 0, created.output
    assert kms.calls["CreateCryptoKey"] == 1

    again = runner.invoke(cli.app, ["create-key", "--ref", REF, "--algorithm", "ecdsa-p384-sha384"])
    assert again.exit_code == 0, again.output
    assert kms.calls["CreateCryptoKey"] == 1

    shown = runner.invoke(cli.app, ["public-key", "--ref", REF])
    assert shown.exit_code == 0, shown.output
    expected = kms.private_key(f"{KEY}/cryptoKeyVersions/1").public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    assert expected.decode("ascii") in shown.stdout


def test_public_key_to_file(kms: InMemoryKMS, tmp_path: Path) -> None:
    kms.add_key(KEY)
    target = tmp_path / "key.pem"
    result = runner.invoke(cli.app, ["public-key", "--ref", REF, "-o", str(target)])
    assert result.exit_code == 0, result.output
    assert target.read_bytes().startswith(b"-----BEGIN PUBLIC KEY-----")


def test_sign_and_verify_file(kms: InMemoryKMS, tmp_path: Path) -> None:
    kms.add_key(KEY)
    artifact = tmp_path / "artifact.bin"
    artifact.write_bytes(b"release bits" * 1000)

    signed = runner.invoke(cli.app, ["sign", "--ref", REF, "-i", str(artifact)])
    assert signed.exit_code == 0, signed.output
    sig_path = tmp_path / "artifact.bin.sig"
    assert base64.b64decode(sig_path.read_text(encoding="utf-8"))

    verified = runner.invoke(cli.app, ["verify", "--ref", REF, "-i", str(artifact), "-s", str(sig_path)])
    assert verified.exit_code == 0, verified.output
    assert "Verify OK" in verified.output

    artifact.write_bytes(b"tampered")
    failed = runner.invoke(cli.app, ["verify", "--ref", REF, "-i", str(artifact), "-s", str(sig_path)])
    assert failed.exit_code == 2
    assert "Verify FAILED" in failed.output


def test_errors_exit_non_zero(kms: InMemoryKMS) -> None:
    malformed = runner.invoke(cli.app, ["public-key", "--ref", "gcpkms://projects/p"])
    assert malformed.exit_code == 1
    assert "reference:" in malformed.output

    missing = runner.invoke(cli.app, ["public-key", "--ref", REF])
    assert missing.exit_code == 1
    assert "resolution:" in missing.output

    unknown = runner.invoke(cli.app, ["create-key", "--ref", REF, "--algorithm", "dsa-1024-sha1"])
    assert unknown.exit_code == 1
    assert "algorithm:" in unknown.output
    assert sum(kms.calls.values()) == 1


def test_invalid_config_file(tmp_path: Path) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("kms:\n  cache_ttl_seconds: -5\n", encoding="utf-8")
    result = runner.invoke(cli.app, ["--config", str(config), "algorithms"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_config_selects_backend(tmp_path: Path) -> None:
    config = tmp_path / "memory.yaml"
    config.write_text("kms:\n  backend: kms_signer.plugins.kms.memory:InMemoryKMS\n", encoding="utf-8")
    result = runner.invoke(cli.app, ["--config", str(config), "public-key", "--ref", REF])
    assert result.exit_code == 1
    assert "not found" in result.output


class _ClosableKMS(InMemoryKMS):
    closed = 0

    def close(self) -> None:
        self.closed += 1


def test_commands_close_the_service(monkeypatch: pytest.MonkeyPatch) -> None:
    service = _ClosableKMS()
    monkeypatch.setattr(cli, "_service", lambda cfg: service)

    missing = runner.invoke(cli.app, ["public-key", "--ref", REF])
    assert missing.exit_code == 1
    assert service.closed == 1

    created = runner.invoke(cli.app, ["create-key", "--ref", REF])
    assert created.exit_code == 0, created.output
    assert service.closed == 2

    shown = runner.invoke(cli.app, ["public-key", "--ref", REF])
    assert shown.exit_code == 0, shown.output
    assert service.closed == 3


def test_init_config_writes_defaults(tmp_path: Path) -> None:
    written = runner.invoke(cli.app, ["init-config"])
    assert written.exit_code == 0, written.output
    target = tmp_path / "home" / ".kms-signer" / "config.yaml"
    assert load_config(target) == AppConfig()

    refused = runner.invoke(cli.app, ["init-config"])
    assert refused.exit_code == 1
    assert "already exists" in refused.output

    custom = tmp_path / "custom.yaml"
    forced = runner.invoke(cli.app, ["init-config", "-o", str(custom), "--force"])
    assert forced.exit_code == 0, forced.output
    assert custom.is_file()
