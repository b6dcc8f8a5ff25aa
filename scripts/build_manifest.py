#!/usr/bin/env python
"""
Build (or refresh) the photo manifest from the configured storage provider.

Usage:
  python scripts/build_manifest.py
  STORAGE_PROVIDER=local STORAGE_LOCAL_ROOT=~/Pictures python scripts/build_manifest.py --output photos-manifest.json
  python scripts/build_manifest.py --migrate-only
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from afilmory_builder.core.env import configure_logging, load_dotenv_if_present
from afilmory_builder.ingest import BuilderConfig, build_manifest
from afilmory_builder.manifest import migrate_manifest_file_if_needed
from afilmory_builder.storage import UnsupportedProviderError, default_registry


def main() -> int:
    parser = argparse.ArgumentParser(description="Build the photo manifest from storage.")
    parser.add_argument("--output", type=Path, help="Manifest path (default: MANIFEST_PATH)")
    parser.add_argument("--force", action="store_true", help="Reprocess every photo")
    parser.add_argument(
        "--migrate-only",
        action="store_true",
        help="Only upgrade the existing manifest to the current schema",
    )
    args = parser.parse_args()

    load_dotenv_if_present()
    configure_logging()
    config = BuilderConfig.from_env()
    if args.output:
        config.manifest_path = args.output
    if args.force:
        config.force = True

    if args.migrate_only:
        if not config.manifest_path.exists():
            print(f"No manifest found at {config.manifest_path}")
            return 1
        migrated = migrate_manifest_file_if_needed(config.manifest_path)
        print("Manifest already current" if migrated is None else "Manifest migrated")
        return 0

    registry = default_registry()
    try:
        result = build_manifest(config, registry)
    except UnsupportedProviderError as exc:
        available = ", ".join(sorted(registry.list_registered_providers()))
        print(f"{exc} (available: {available})", file=sys.stderr)
        return 2

    print(
        f"Manifest {'updated' if result.has_updates else 'unchanged'}: "
        f"{len(result.manifest.data)} photos, {result.processed} processed, "
        f"{result.failed} failed -> {config.manifest_path}"
    )
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
