from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from afilmory_builder.core.models import CURRENT_MANIFEST_VERSION, AfilmoryManifest

from .migrate import ManifestMigrator, read_version
from .types import ManifestDocument

logger = logging.getLogger(__name__)


def load_manifest_document(path: str | Path) -> Any:
    """Read the raw manifest JSON without validating its shape."""
    with Path(path).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def write_manifest_document(path: str | Path, document: ManifestDocument) -> None:
    """Write ``document`` atomically: temp file in the same directory, then replace."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def migrate_manifest_file_if_needed(
    path: str | Path,
    document: Any = None,
    *,
    migrator: Optional[ManifestMigrator] = None,
) -> Optional[ManifestDocument]:
    """Migrate the manifest at ``path`` to the current version and persist it.

    Returns the migrated document, or None when it was already current (no
    write happens). Read, write and transform failures are logged and re-raised.
    """
    try:
        if document is None:
            document = load_manifest_document(path)
        if read_version(document) == CURRENT_MANIFEST_VERSION:
            return None
        migrated = (migrator or ManifestMigrator()).migrate(document, CURRENT_MANIFEST_VERSION)
        write_manifest_document(path, migrated)
        logger.info("Manifest %s updated to version %s", path, CURRENT_MANIFEST_VERSION)
        return migrated
    except Exception:
        logger.exception("Manifest migration failed for %s", path)
        raise


def read_manifest(path: str | Path) -> Optional[AfilmoryManifest]:
    """Load, migrate if needed and validate the manifest; None if the file is absent."""
    manifest_path = Path(path)
    if not manifest_path.exists():
        return None
    document = load_manifest_document(manifest_path)
    migrated = migrate_manifest_file_if_needed(manifest_path, document)
    return AfilmoryManifest.model_validate(migrated if migrated is not None else document)


def save_manifest(path: str | Path, manifest: AfilmoryManifest) -> None:
    write_manifest_document(path, manifest.to_json_dict())
