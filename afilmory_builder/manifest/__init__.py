"""Manifest persistence and schema migrations."""

from .migrate import ManifestMigrator, migrate_manifest, read_version
from .steps import MIGRATION_STEPS
from .store import (
    load_manifest_document,
    migrate_manifest_file_if_needed,
    read_manifest,
    save_manifest,
    write_manifest_document,
)
from .types import (
    UNKNOWN_VERSION,
    ManifestDocument,
    MigrationContext,
    MigrationPathError,
    MigrationStep,
)

__all__ = [
    "MIGRATION_STEPS",
    "ManifestDocument",
    "ManifestMigrator",
    "MigrationContext",
    "MigrationPathError",
    "MigrationStep",
    "UNKNOWN_VERSION",
    "load_manifest_document",
    "migrate_manifest",
    "migrate_manifest_file_if_needed",
    "read_manifest",
    "read_version",
    "save_manifest",
    "write_manifest_document",
]
