from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from afilmory_builder.core.env import env_str
from afilmory_builder.core.models import (
    CURRENT_MANIFEST_VERSION,
    AfilmoryManifest,
    CameraInfo,
    LensInfo,
    LivePhotoVideo,
    MotionPhotoVideo,
    PhotoManifestItem,
)
from afilmory_builder.manifest import read_manifest, save_manifest
from afilmory_builder.photo import detect_motion_photo
from afilmory_builder.storage import ProviderRegistry, StorageConfig, StorageProvider, default_registry

from .exif_reader import camera_from_exif, date_taken_from_exif, lens_from_exif, read_image_info
from .scanner import PhotoSource, photo_id_for_key, scan_photos, tags_for_key

logger = logging.getLogger(__name__)


@dataclass
class BuilderConfig:
    manifest_path: Path
    storage: StorageConfig
    prefix: str = ""
    force: bool = False

    @classmethod
    def from_env(cls) -> "BuilderConfig":
        return cls(
            manifest_path=Path(env_str("MANIFEST_PATH") or "photos-manifest.json"),
            storage=StorageConfig.from_env(),
            prefix=env_str("STORAGE_PREFIX", "") or "",
            force=env_str("BUILD_FORCE", "0") == "1",
        )


@dataclass
class BuildResult:
    manifest: AfilmoryManifest
    has_updates: bool
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    deleted: int = 0
    failures: list[str] = field(default_factory=list)


def _live_video_key(item: PhotoManifestItem) -> Optional[str]:
    return item.video.s3_key if isinstance(item.video, LivePhotoVideo) else None


def _is_unchanged(previous: PhotoManifestItem, source: PhotoSource) -> bool:
    # An embedded motion-photo payload takes precedence over a sibling video.
    if not isinstance(previous.video, MotionPhotoVideo):
        sibling = source.live_video.key if source.live_video is not None else None
        if _live_video_key(previous) != sibling:
            return False
    if previous.etag and source.photo.etag:
        return previous.etag == source.photo.etag
    return (
        previous.last_modified is not None
        and previous.last_modified == source.photo.last_modified
        and previous.size == source.photo.size
    )


def _collect_equipment(items: list[PhotoManifestItem]) -> tuple[list[CameraInfo], list[LensInfo]]:
    cameras: dict[str, CameraInfo] = {}
    lenses: dict[str, LensInfo] = {}
    for item in items:
        exif = item.exif or {}
        camera = camera_from_exif(exif)
        if camera is not None:
            cameras.setdefault(camera.display_name, camera)
        lens = lens_from_exif(exif)
        if lens is not None:
            lenses.setdefault(lens.display_name, lens)
    return (
        sorted(cameras.values(), key=lambda c: c.display_name),
        sorted(lenses.values(), key=lambda lens: lens.display_name),
    )


class ManifestBuilder:
    """Builds the photo manifest from every supported photo in a storage provider."""

    def __init__(
        self,
        provider: StorageProvider,
        manifest_path: str | Path,
        *,
        prefix: str = "",
        force: bool = False,
    ) -> None:
        self.provider = provider
        self.manifest_path = Path(manifest_path)
        self.prefix = prefix
        self.force = force

    def process_photo(self, source: PhotoSource) -> PhotoManifestItem:
        """Read one photo and assemble its manifest entry."""
        data = self.provider.read(source.key)
        width, height, exif = read_image_info(data)
        motion = detect_motion_photo(data, exif, logger)

        video = None
        if motion is not None:
            video = MotionPhotoVideo(
                offset=motion.motion_photo_offset,
                size=motion.motion_photo_video_size,
                presentation_timestamp=motion.presentation_timestamp_us,
            )
        elif source.live_video is not None:
            video = LivePhotoVideo(
                video_url=self.provider.resolve_url(source.live_video.key),
                s3_key=source.live_video.key,
            )

        return PhotoManifestItem(
            id=photo_id_for_key(source.key),
            title=photo_id_for_key(source.key),
            date_taken=date_taken_from_exif(exif) or source.photo.last_modified,
            tags=tags_for_key(source.key),
            original_url=self.provider.resolve_url(source.key),
            width=width,
            height=height,
            aspect_ratio=(width / height) if width and height else None,
            s3_key=source.key,
            last_modified=source.photo.last_modified,
            size=source.photo.size if source.photo.size is not None else len(data),
            etag=source.photo.etag,
            exif=exif or None,
            video=video,
        )

    def build(self) -> BuildResult:
        previous = read_manifest(self.manifest_path)
        previous_items = {item.s3_key: item for item in (previous.data if previous else [])}

        sources = scan_photos(self.provider, self.prefix)
        logger.info("Build: found %d photos in storage", len(sources))

        items: list[PhotoManifestItem] = []
        result = BuildResult(manifest=AfilmoryManifest(), has_updates=False)
        for source in sources:
            prior = previous_items.get(source.key)
            if prior is not None and not self.force and _is_unchanged(prior, source):
                items.append(prior)
                result.skipped += 1
                continue
            try:
                items.append(self.process_photo(source))
                result.processed += 1
            except Exception:
                logger.exception("Build: failed to process %s", source.key)
                result.failed += 1
                result.failures.append(source.key)
                if prior is not None:
                    items.append(prior)

        current_keys = {source.key for source in sources}
        result.deleted = len(set(previous_items) - current_keys)

        items.sort(key=lambda item: item.date_taken or "", reverse=True)
        cameras, lenses = _collect_equipment(items)
        manifest = AfilmoryManifest(
            version=CURRENT_MANIFEST_VERSION, data=items, cameras=cameras, lenses=lenses
        )
        result.manifest = manifest
        result.has_updates = previous is None or manifest.to_json_dict() != previous.to_json_dict()

        if result.has_updates:
            save_manifest(self.manifest_path, manifest)
        logger.info(
            "Build: %d processed, %d unchanged, %d failed, %d removed",
            result.processed,
            result.skipped,
            result.failed,
            result.deleted,
        )
        return result


def build_manifest(
    config: BuilderConfig, registry: Optional[ProviderRegistry] = None
) -> BuildResult:
    """Create the configured storage provider and run a full manifest build."""
    provider = (registry or default_registry()).create_provider(config.storage)
    builder = ManifestBuilder(
        provider, config.manifest_path, prefix=config.prefix, force=config.force
    )
    return builder.build()
