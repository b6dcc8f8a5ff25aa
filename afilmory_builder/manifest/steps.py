"""Registered manifest schema migrations, keyed by source version."""

from __future__ import annotations

import logging
import re
from typing import Any

from .types import UNKNOWN_VERSION, ManifestDocument, MigrationContext, MigrationStep

logger = logging.getLogger(__name__)

_WEBP_SUFFIX = re.compile(r"\.webp$")

_LEGACY_LIVE_FIELDS = ("isLivePhoto", "livePhotoVideoUrl", "livePhotoVideoS3Key")
_LEGACY_MOTION_FIELDS = ("motionPhotoOffset", "motionPhotoVideoSize", "presentationTimestampUs")


def reset_manifest(raw: Any, ctx: MigrationContext) -> ManifestDocument:
    """Pre-v6 manifests cannot be upgraded; start from an empty one."""
    logger.error(
        "Manifest version %s is no longer supported; creating a new %s manifest",
        ctx.from_version,
        ctx.to_version,
    )
    return {"version": ctx.to_version, "data": [], "cameras": [], "lenses": []}


def thumbnails_to_jpeg(raw: ManifestDocument, ctx: MigrationContext) -> ManifestDocument:
    for item in raw.get("data") or []:
        if isinstance(item, dict) and isinstance(item.get("thumbnailUrl"), str):
            item["thumbnailUrl"] = _WEBP_SUFFIX.sub(".jpg", item["thumbnailUrl"])
    raw["version"] = ctx.to_version
    return raw


def _video_source(item: dict[str, Any]) -> dict[str, Any] | None:
    offset = item.get("motionPhotoOffset")
    if isinstance(offset, (int, float)) and not isinstance(offset, bool) and offset > 0:
        video: dict[str, Any] = {"type": "motion-photo", "offset": offset}
        if item.get("motionPhotoVideoSize"):
            video["size"] = item["motionPhotoVideoSize"]
        if item.get("presentationTimestampUs"):
            video["presentationTimestamp"] = item["presentationTimestampUs"]
        return video

    if item.get("isLivePhoto") and item.get("livePhotoVideoUrl"):
        if item.get("livePhotoVideoS3Key"):
            return {
                "type": "live-photo",
                "videoUrl": item["livePhotoVideoUrl"],
                "s3Key": item["livePhotoVideoS3Key"],
            }
        logger.warning(
            "Live Photo data for %s is incomplete (missing video S3 key); skipping video field",
            item.get("id") or item.get("originalUrl"),
        )
    return None


def consolidate_video_sources(raw: ManifestDocument, ctx: MigrationContext) -> ManifestDocument:
    """Fold the v7 Live Photo / Motion Photo fields into a single ``video`` source."""
    logger.info(
        "Migrating %s -> %s: converting Live/Motion Photo fields to video sources",
        ctx.from_version,
        ctx.to_version,
    )
    for item in raw.get("data") or []:
        if not isinstance(item, dict):
            continue
        video = _video_source(item)
        if video is not None:
            item["video"] = video
        for field in _LEGACY_LIVE_FIELDS + _LEGACY_MOTION_FIELDS:
            item.pop(field, None)
    raw["version"] = ctx.to_version
    return raw


MIGRATION_STEPS: list[MigrationStep] = [
    *(
        MigrationStep(legacy, "v6", reset_manifest)
        for legacy in (UNKNOWN_VERSION, "v1", "v2", "v3", "v4", "v5")
    ),
    MigrationStep("v6", "v7", thumbnails_to_jpeg),
    MigrationStep("v7", "v8", consolidate_video_sources),
]
