# CLI implementation using Typer for commands like public-key, sign, verify, create-key.
from __future__ import annotations

import base64
import contextlib
from pathlib import Path
from typing import Iterator, Optional

import structlog
import typer

from .core.exceptions import KMSSignerError, VerificationFailed
from .crypto.algorithms import DEFAULT_ALGORITHM, supported_algorithms
from .crypto.pem import public_key_pem
from .logging import configure_logging
from .plugins.kms.base import KMSService
from .plugins.kms.memory import InMemoryKMS
from .plugins.manager import load_service
from .services.signer_service import SignerService
from .utils.config import AppConfig, dump_default_config, load_config
from .version import __version__

logger = structlog.get_logger(__name__)

app = typer.Typer(help="Sign and verify with keys held in a remote KMS", no_args_is_help=True)

SELFTEST_REFERENCE = "gcpkms://projects/selftest/locations/global/keyRings/selftest/cryptoKeys/selftest"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"kms-signer {__version__}")
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    try:
        cfg = load_config(config)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    configure_logging(cfg.logging.normalized_level())
    ctx.obj = cfg


def _service(cfg: AppConfig) -> KMSService:
    return load_service(cfg.kms)


def _signer(ctx: typer.Context, ref: str) -> SignerService:
    cfg: AppConfig = ctx.obj
    return SignerService.from_config(ref, cfg, service=_service(cfg), owns_service=True)


@contextlib.contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except KMSSignerError as exc:
        logger.debug("command_failed", error=exc)
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


@app.command("algorithms")
def list_algorithms() -> None:
    """List supported signing algorithms"""
    for name in supported_algorithms():
        marker = " (default)" if name == DEFAULT_ALGORITHM else ""
        typer.echo(f"{name}{marker}")


@app.command("public-key")
def public_key(
    ctx: typer.Context,
    ref: str = typer.Option(..., "--ref", help="gcpkms:// key reference"),
    output: Optional[Path] = typer.Option(None, "-o", help="Write PEM to file instead of stdout"),
) -> None:
    """Print the PEM public key of the resolved key version"""
    with _reported_errors():
        with _signer(ctx, ref) as signer:
            pem = public_key_pem(signer.public_key())
    if output:
        output.write_bytes(pem)
        typer.echo(f"Public key -> {output}")
    else:
        typer.echo(pem.decode("ascii"), nl=False)


@app.command("sign")
def sign(
    ctx: typer.Context,
    ref: str = typer.Option(..., "--ref", help="gcpkms:// key reference"),
    input: Path = typer.Option(..., "-i", exists=True, readable=True, help="File to sign"),
    sig: Optional[Path] = typer.Option(None, "-s", help="Signature Path (default: <input>.sig)"),
) -> None:
    """Detached signature over a file, written base64-encoded"""
    sig_path = sig or input.with_suffix(input.suffix + ".sig")
    with _reported_errors():
        with _signer(ctx, ref) as signer, input.open("rb") as handle:
            signature = signer.sign_message(handle)
    sig_path.write_text(base64.b64encode(signature).decode("ascii"), encoding="utf-8")
    typer.echo(f"Signed -> {sig_path}")


@app.command("verify")
def verify(
    ctx: typer.Context,
    ref: str = typer.Option(..., "--ref", help="gcpkms:// key reference"),
    input: Path = typer.Option(..., "-i", exists=True, readable=True),
    sig: Path = typer.Option(..., "-s", exists=True, readable=True),
) -> None:
    """Verify a detached base64 signature"""
    signature = base64.b64decode(sig.read_text(encoding="utf-8").strip())
    ok = True
    with _reported_errors():
        with _signer(ctx, ref) as signer:
            try:
                signer.verify(signature, input.read_bytes())
            except VerificationFailed:
                ok = False
    typer.echo("Verify OK" if ok else "Verify FAILED")
    raise typer.Exit(code=0 if ok else 2)


@app.command("create-key")
def create_key(
    ctx: typer.Context,
    ref: str = typer.Option(..., "--ref", help="gcpkms:// key reference"),
    algorithm: str = typer.Option(DEFAULT_ALGORITHM, "--algorithm", help="See `algorithms`"),
) -> None:
    """Create the key (and key ring) if missing and print its public key"""
    cfg: AppConfig = ctx.obj
    with _reported_errors():
        signer = SignerService.provision(
            ref,
            algorithm,
            _service(cfg),
            cache_ttl=cfg.kms.cache_ttl_seconds,
            request_timeout=cfg.kms.request_timeout,
            owns_service=True,
        )
        with signer:
            pem = public_key_pem(signer.public_key())
    typer.echo(pem.decode("ascii"), nl=False)


@app.command("init-config")
def init_config(
    output: Optional[Path] = typer.Option(
        None, "-o", help="Where to write the configuration (default: ~/.kms-signer/config.yaml)"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write the default configuration as YAML"""
    output = output or Path.home() / ".kms-signer" / "config.yaml"
    if output.exists() and not force:
        typer.echo(f"{output} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(code=1)
    dump_default_config(output)
    typer.echo(f"Config -> {output}")


@app.command("selftest")
def selftest() -> None:
    """Provision, sign and verify against an in-memory service"""
    with _reported_errors():
        signer = SignerService.provision(SELFTEST_REFERENCE, DEFAULT_ALGORITHM, InMemoryKMS())
        with signer:
            data = b"hello world"
            signer.verify(signer.sign_message(data), data)
    typer.echo("Selftest OK")


def main() -> None:
    app(prog_name="kms-signer")


if __name__ == "__main__":
    main()
