from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

CURRENT_MANIFEST_VERSION = "v8"

# Pre-v8 video fields; a v8 item carrying any of them is malformed.
LEGACY_VIDEO_FIELDS = (
    "isLivePhoto",
    "livePhotoVideoUrl",
    "livePhotoVideoS3Key",
    "motionPhotoOffset",
    "motionPhotoVideoSize",
    "presentationTimestampUs",
)


class ManifestModel(BaseModel):
    """Base for models persisted in the manifest JSON (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MotionPhotoMetadata(ManifestModel):
    """Location of a video payload embedded in (or appended to) an image file."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    is_motion_photo: bool
    motion_photo_offset: Optional[int] = Field(default=None, ge=0)
    motion_photo_video_size: Optional[int] = Field(default=None, ge=0)
    presentation_timestamp_us: Optional[int] = None


class MotionPhotoVideo(ManifestModel):
    type: Literal["motion-photo"] = "motion-photo"
    offset: int = Field(gt=0)
    size: Optional[int] = None
    presentation_timestamp: Optional[int] = None


class LivePhotoVideo(ManifestModel):
    type: Literal["live-photo"] = "live-photo"
    video_url: str
    s3_key: str = Field(alias="s3Key")


VideoSource = Annotated[Union[MotionPhotoVideo, LivePhotoVideo], Field(discriminator="type")]


class CameraInfo(ManifestModel):
    make: str
    model: str
    display_name: str


class LensInfo(ManifestModel):
    make: Optional[str] = None
    model: str
    display_name: str


class PhotoManifestItem(ManifestModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    title: str = ""
    description: str = ""
    date_taken: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    original_url: str
    thumbnail_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    aspect_ratio: Optional[float] = None
    s3_key: str = Field(alias="s3Key")
    last_modified: Optional[str] = None
    size: Optional[int] = None
    etag: Optional[str] = None
    exif: Optional[dict[str, Any]] = None
    video: Optional[VideoSource] = None

    @model_validator(mode="before")
    @classmethod
    def _reject_legacy_video_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            stale = [name for name in LEGACY_VIDEO_FIELDS if name in data]
            if stale:
                raise ValueError(f"legacy video fields present: {', '.join(stale)}")
        return data


class AfilmoryManifest(ManifestModel):
    version: str = CURRENT_MANIFEST_VERSION
    data: list[PhotoManifestItem] = Field(default_factory=list)
    cameras: list[CameraInfo] = Field(default_factory=list)
    lenses: list[LensInfo] = Field(default_factory=list)
