import pytest
from pydantic import ValidationError

from afilmory_builder.core.models import (
    AfilmoryManifest,
    LivePhotoVideo,
    MotionPhotoVideo,
    PhotoManifestItem,
)
from afilmory_builder.storage import StorageConfig


def test_manifest_item_uses_camel_case_aliases() -> None:
    item = PhotoManifestItem(
        id="a",
        original_url="https://cdn.test/a.jpg",
        s3_key="2024/a.jpg",
        date_taken="2024-01-01T00:00:00+00:00",
        video=MotionPhotoVideo(offset=2048, size=4096),
    )

    dumped = item.to_json_dict()

    assert dumped["originalUrl"] == "https://cdn.test/a.jpg"
    assert dumped["s3Key"] == "2024/a.jpg"
    assert dumped["dateTaken"].startswith("2024")
    assert dumped["video"] == {"type": "motion-photo", "offset": 2048, "size": 4096}
    assert "thumbnailUrl" not in dumped
    assert PhotoManifestItem.model_validate(dumped) == item


def test_video_source_is_discriminated_by_type() -> None:
    manifest = AfilmoryManifest.model_validate(
        {
            "version": "v8",
            "data": [
                {
                    "id": "live",
                    "originalUrl": "https://cdn.test/live.jpg",
                    "s3Key": "live.jpg",
                    "video": {"type": "live-photo", "videoUrl": "https://cdn.test/live.mov", "s3Key": "live.mov"},
                },
                {
                    "id": "motion",
                    "originalUrl": "https://cdn.test/motion.jpg",
                    "s3Key": "motion.jpg",
                    "video": {"type": "motion-photo", "offset": 100},
                },
            ],
        }
    )

    live, motion = manifest.data
    assert isinstance(live.video, LivePhotoVideo)
    assert live.video.s3_key == "live.mov"
    assert isinstance(motion.video, MotionPhotoVideo)
    assert motion.video.size is None


def test_manifest_item_rejects_legacy_video_fields() -> None:
    with pytest.raises(ValidationError, match="isLivePhoto"):
        PhotoManifestItem.model_validate(
            {"id": "x", "originalUrl": "u", "s3Key": "x.jpg", "isLivePhoto": True}
        )


def test_motion_video_offset_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        MotionPhotoVideo(offset=0)


def test_unknown_item_fields_are_preserved() -> None:
    item = PhotoManifestItem.model_validate(
        {"id": "x", "originalUrl": "u", "s3Key": "x.jpg", "blurhash": "LEHV6n"}
    )
    assert item.to_json_dict()["blurhash"] == "LEHV6n"


def test_storage_config_keeps_provider_options() -> None:
    config = StorageConfig(provider="s3", bucket="gallery", region="eu-west-1")

    assert config.options() == {"bucket": "gallery", "region": "eu-west-1"}
    assert config.option("endpoint", "default") == "default"
