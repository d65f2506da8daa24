# Parse and validate gcpkms:// key references.
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .core.exceptions import MalformedReference

REFERENCE_SCHEME = "gcpkms://"

REFERENCE_FORMAT = (
    "gcpkms://projects/[PROJECT_ID]/locations/[LOCATION]/keyRings/[KEY_RING]"
    "/cryptoKeys/[KEY]/versions/[VERSION]"
)

_REFERENCE_RE = re.compile(
    r"^gcpkms://projects/([^/\s]+)/locations/([^/\s]+)/keyRings/([^/\s]+)"
    r"/cryptoKeys/([^/\s]+)(?:/versions/([^/\s]+))?\Z"
)


@dataclass(frozen=True, slots=True)
class KeyReference:
    """Decomposed key reference; ``version`` is ``None`` in auto-discovery mode"""

    project: str
    location: str
    key_ring: str
    key: str
    version: Optional[str] = None

    @property
    def pinned(self) -> bool:
        return self.version is not None

    @property
    def location_name(self) -> str:
        return f"projects/{self.project}/locations/{self.location}"

    @property
    def key_ring_name(self) -> str:
        return f"{self.location_name}/keyRings/{self.key_ring}"

    @property
    def key_name(self) -> str:
        return f"{self.key_ring_name}/cryptoKeys/{self.key}"

    @property
    def version_name(self) -> Optional[str]:
        if self.version is None:
            return None
        return f"{self.key_name}/cryptoKeyVersions/{self.version}"

    def __str__(self) -> str:
        ref = f"{REFERENCE_SCHEME}{self.key_ring_name}/cryptoKeys/{self.key}"
        if self.version is not None:
            ref += f"/versions/{self.version}"
        return ref


def _match(ref: str) -> re.Match[str]:
    match = _REFERENCE_RE.match(ref) if isinstance(ref, str) else None
    if match is None:
        raise MalformedReference(f"kms specification should be in the format {REFERENCE_FORMAT}")
    return match


def validate(ref: str) -> None:
    """Raise :class:`MalformedReference` unless ``ref`` matches the grammar.

    Segments are non-empty and contain neither slashes nor whitespace.
    """
    _match(ref)


def parse(ref: str) -> KeyReference:
    project, location, key_ring, key, version = _match(ref).groups()
    return KeyReference(
        project=project,
        location=location,
        key_ring=key_ring,
        key=key,
        version=version,
    )


__all__ = ["KeyReference", "REFERENCE_FORMAT", "REFERENCE_SCHEME", "parse", "validate"]
