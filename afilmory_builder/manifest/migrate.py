"""Manifest schema migration engine.

Steps form an open chain keyed by source version. ``ManifestMigrator``
drives a document from its stored version to the target, remembering the
transitions it has taken so a misbehaving step cannot loop forever.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from afilmory_builder.core.models import CURRENT_MANIFEST_VERSION

from .steps import MIGRATION_STEPS
from .types import (
    UNKNOWN_VERSION,
    ManifestDocument,
    MigrationContext,
    MigrationPathError,
    MigrationStep,
)

logger = logging.getLogger(__name__)


def read_version(document: Any) -> str:
    if isinstance(document, Mapping):
        version = document.get("version")
        if isinstance(version, str) and version:
            return version
    return UNKNOWN_VERSION


class ManifestMigrator:
    """Runs registered migration steps until a document reaches the target version.

    When a cycle is detected or no step is registered for the current
    version the document's ``version`` is forced to the target without
    touching its content. ``strict=True`` raises ``MigrationPathError``
    instead.
    """

    def __init__(
        self,
        steps: Optional[Iterable[MigrationStep]] = None,
        *,
        strict: bool = False,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.steps: list[MigrationStep] = list(MIGRATION_STEPS if steps is None else steps)
        self.strict = strict
        self.log = log or logger

    def register(self, step: MigrationStep) -> None:
        self.steps.append(step)

    def find_step(self, version: str) -> Optional[MigrationStep]:
        return next((step for step in self.steps if step.from_version == version), None)

    def _force_version(
        self, document: Any, current: str, target: str, reason: str
    ) -> ManifestDocument:
        if self.strict:
            raise MigrationPathError(current, target, reason)
        self.log.warning(
            "Manifest migration %s -> %s: %s; forcing version without transforming content",
            current,
            target,
            reason,
        )
        working = document if isinstance(document, dict) else {}
        working["version"] = target
        return working

    def migrate(self, document: Any, target: str = CURRENT_MANIFEST_VERSION) -> ManifestDocument:
        current = read_version(document)
        working = document
        visited: set[str] = set()

        while current != target:
            transition = f"{current}->{target}"
            if transition in visited:
                return self._force_version(working, current, target, "migration cycle detected")
            visited.add(transition)

            step = self.find_step(current)
            if step is None:
                return self._force_version(working, current, target, "no migration step registered")

            self.log.info("Running manifest migration step %s -> %s", step.from_version, step.to_version)
            working = step.exec(working, MigrationContext(step.from_version, step.to_version))
            declared = working.get("version") if isinstance(working, Mapping) else None
            current = declared if isinstance(declared, str) and declared else step.to_version

        return working


def migrate_manifest(
    document: Any,
    target: str = CURRENT_MANIFEST_VERSION,
    *,
    steps: Optional[Iterable[MigrationStep]] = None,
    strict: bool = False,
) -> ManifestDocument:
    return ManifestMigrator(steps, strict=strict).migrate(document, target)
