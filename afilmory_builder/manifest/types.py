from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

# Raw manifest JSON; older versions do not fit the current pydantic models.
ManifestDocument = dict[str, Any]

UNKNOWN_VERSION = "unknown"


@dataclass(frozen=True)
class MigrationContext:
    from_version: str
    to_version: str


ManifestTransform = Callable[[ManifestDocument, MigrationContext], ManifestDocument]


@dataclass(frozen=True)
class MigrationStep:
    from_version: str
    to_version: str
    exec: ManifestTransform


class MigrationPathError(RuntimeError):
    """Raised in strict mode when no usable migration path exists."""

    def __init__(self, from_version: str, to_version: str, reason: str) -> None:
        super().__init__(f"Cannot migrate manifest {from_version} -> {to_version}: {reason}")
        self.from_version = from_version
        self.to_version = to_version
        self.reason = reason
