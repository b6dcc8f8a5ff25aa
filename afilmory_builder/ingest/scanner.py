from __future__ import annotations

from pathlib import PurePosixPath
from typing import Optional

from pydantic import BaseModel

from afilmory_builder.storage import StorageObject, StorageProvider

SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif", ".tif", ".tiff"}
LIVE_VIDEO_EXTENSIONS = {".mov", ".mp4"}


class PhotoSource(BaseModel):
    """A photo object in storage plus its sibling Live Photo video, if any."""

    photo: StorageObject
    live_video: Optional[StorageObject] = None

    @property
    def key(self) -> str:
        return self.photo.key


def _base_key(key: str) -> str:
    path = PurePosixPath(key)
    return str(path.with_suffix("")).lower()


def photo_id_for_key(key: str) -> str:
    return PurePosixPath(key).stem


def tags_for_key(key: str) -> list[str]:
    """Directory names above the photo, used as tags."""
    return [part for part in PurePosixPath(key).parent.parts if part not in {"", "."}]


def scan_photos(provider: StorageProvider, prefix: str = "") -> list[PhotoSource]:
    """List supported photos under ``prefix`` and pair same-named .mov/.mp4 files."""
    objects = provider.list_objects(prefix)
    videos = {
        _base_key(obj.key): obj
        for obj in objects
        if PurePosixPath(obj.key).suffix.lower() in LIVE_VIDEO_EXTENSIONS
    }
    sources: list[PhotoSource] = []
    for obj in objects:
        if PurePosixPath(obj.key).suffix.lower() not in SUPPORTED_EXTENSIONS:
            continue
        sources.append(PhotoSource(photo=obj, live_video=videos.get(_base_key(obj.key))))
    return sources
