import json
from io import BytesIO
from pathlib import Path

import httpx
from PIL import Image

from afilmory_builder.core.models import CURRENT_MANIFEST_VERSION
from afilmory_builder.ingest import (
    BuilderConfig,
    ManifestBuilder,
    build_manifest,
    camera_from_exif,
    date_taken_from_exif,
    lens_from_exif,
    read_image_info,
    scan_photos,
)
from afilmory_builder.storage import LocalStorageProvider, StorageConfig
from afilmory_builder.storage.github import GitHubStorageProvider


def _jpeg_bytes(with_exif: bool = False, size: tuple[int, int] = (12, 8)) -> bytes:
    img = Image.new("RGB", size, color="red")
    buf = BytesIO()
    if with_exif:
        exif = Image.Exif()
        exif[36867] = "2021:01:02 03:04:05"
        exif[306] = "2021:01:02 03:04:05"  # fallback DateTime
        exif[271] = "TestMake"
        exif[272] = "TestModel"
        exif[42036] = "TestLens"
        img.save(buf, format="JPEG", exif=exif)
    else:
        img.save(buf, format="JPEG")
    return buf.getvalue()


def _with_xmp(jpeg: bytes, xmp: str) -> bytes:
    body = b"http://ns.adobe.com/xap/1.0/\x00" + xmp.encode("utf-8")
    segment = b"\xff\xe1" + (len(body) + 2).to_bytes(2, "big") + body
    return jpeg[:2] + segment + jpeg[2:]


def _mp4(size: int = 16 * 1024) -> bytes:
    header = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom"
    return header + b"\x00" * (size - len(header))


def _motion_photo() -> tuple[bytes, int]:
    video = _mp4()
    still = _with_xmp(
        _jpeg_bytes(),
        '<x:xmpmeta xmlns:x="adobe:ns:meta/"><rdf:RDF><rdf:Description '
        f'GCamera:MotionPhoto="1" GCamera:MicroVideoOffset="{len(video)}"/>'
        "</rdf:RDF></x:xmpmeta>",
    )
    return still + video, len(still)


def _populate(root: Path) -> int:
    (root / "2021").mkdir(parents=True)
    (root / "2021" / "exif.jpg").write_bytes(_jpeg_bytes(with_exif=True))
    (root / "plain.jpg").write_bytes(_jpeg_bytes())
    (root / "live.jpg").write_bytes(_jpeg_bytes())
    (root / "live.MOV").write_bytes(b"\x00\x00\x00\x14ftypqt  " + b"\x00" * 64)
    motion, still_size = _motion_photo()
    (root / "motion.jpg").write_bytes(motion)
    (root / "notes.txt").write_text("skip me")
    return still_size


def test_read_image_info_flattens_exif() -> None:
    width, height, exif = read_image_info(_jpeg_bytes(with_exif=True))

    assert (width, height) == (12, 8)
    assert exif["Make"] == "TestMake"
    assert exif["Model"] == "TestModel"
    assert date_taken_from_exif(exif) == "2021-01-02T03:04:05+00:00"
    camera = camera_from_exif(exif)
    assert camera is not None and camera.display_name == "TestMake TestModel"
    lens = lens_from_exif(exif)
    assert lens is not None and lens.model == "TestLens"


def test_read_image_info_tolerates_garbage() -> None:
    assert read_image_info(b"not an image") == (None, None, {})


def test_scan_photos_pairs_live_videos(tmp_path: Path) -> None:
    _populate(tmp_path)
    sources = {source.key: source for source in scan_photos(LocalStorageProvider(tmp_path))}

    assert set(sources) == {"2021/exif.jpg", "plain.jpg", "live.jpg", "motion.jpg"}
    assert sources["live.jpg"].live_video is not None
    assert sources["live.jpg"].live_video.key == "live.MOV"
    assert sources["plain.jpg"].live_video is None


def test_build_writes_manifest(tmp_path: Path) -> None:
    photos = tmp_path / "photos"
    still_size = _populate(photos)
    manifest_path = tmp_path / "out" / "photos-manifest.json"

    result = ManifestBuilder(LocalStorageProvider(photos), manifest_path).build()

    assert result.has_updates
    assert result.processed == 4
    assert result.failed == 0
    stored = json.loads(manifest_path.read_text())
    assert stored["version"] == CURRENT_MANIFEST_VERSION
    items = {item["s3Key"]: item for item in stored["data"]}

    assert items["2021/exif.jpg"]["tags"] == ["2021"]
    assert items["2021/exif.jpg"]["dateTaken"] == "2021-01-02T03:04:05+00:00"
    assert items["2021/exif.jpg"]["aspectRatio"] == 1.5
    assert items["motion.jpg"]["video"] == {
        "type": "motion-photo",
        "offset": still_size,
        "size": 16 * 1024,
    }
    assert items["live.jpg"]["video"]["type"] == "live-photo"
    assert items["live.jpg"]["video"]["s3Key"] == "live.MOV"
    assert "video" not in items["plain.jpg"]
    assert stored["cameras"] == [
        {"make": "TestMake", "model": "TestModel", "displayName": "TestMake TestModel"}
    ]
    assert stored["lenses"] == [{"model": "TestLens", "displayName": "TestLens"}]


def test_rebuild_skips_unchanged_and_tracks_deletions(tmp_path: Path) -> None:
    photos = tmp_path / "photos"
    _populate(photos)
    manifest_path = tmp_path / "photos-manifest.json"
    provider = LocalStorageProvider(photos)
    ManifestBuilder(provider, manifest_path).build()

    second = ManifestBuilder(provider, manifest_path).build()
    assert not second.has_updates
    assert second.skipped == 4
    assert second.processed == 0

    (photos / "plain.jpg").unlink()
    third = ManifestBuilder(provider, manifest_path).build()
    assert third.has_updates
    assert third.deleted == 1
    assert len(third.manifest.data) == 3


def test_single_failure_does_not_abort_build(tmp_path: Path) -> None:
    class FlakyProvider(LocalStorageProvider):
        def read(self, key: str) -> bytes:
            if key == "plain.jpg":
                raise OSError("disk hiccup")
            return super().read(key)

    photos = tmp_path / "photos"
    _populate(photos)

    result = ManifestBuilder(FlakyProvider(photos), tmp_path / "m.json").build()

    assert result.failed == 1
    assert result.failures == ["plain.jpg"]
    assert result.processed == 3


def test_build_migrates_previous_manifest(tmp_path: Path) -> None:
    photos = tmp_path / "photos"
    photos.mkdir()
    (photos / "plain.jpg").write_bytes(_jpeg_bytes())
    manifest_path = tmp_path / "photos-manifest.json"
    manifest_path.write_text(
        json.dumps(
            {
                "version": "v7",
                "data": [
                    {
                        "id": "gone",
                        "originalUrl": "https://cdn.test/gone.jpg",
                        "s3Key": "gone.jpg",
                        "isLivePhoto": True,
                        "livePhotoVideoUrl": "https://cdn.test/gone.mov",
                        "livePhotoVideoS3Key": "gone.mov",
                    }
                ],
                "cameras": [],
                "lenses": [],
            }
        )
    )

    config = BuilderConfig(
        manifest_path=manifest_path,
        storage=StorageConfig(provider="local", root=str(photos)),
    )
    result = build_manifest(config)

    assert result.deleted == 1
    stored = json.loads(manifest_path.read_text())
    assert stored["version"] == CURRENT_MANIFEST_VERSION
    assert [item["s3Key"] for item in stored["data"]] == ["plain.jpg"]


def test_builder_config_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MANIFEST_PATH", str(tmp_path / "m.json"))
    monkeypatch.setenv("STORAGE_LOCAL_ROOT", str(tmp_path))
    monkeypatch.setenv("BUILD_FORCE", "1")

    config = BuilderConfig.from_env()

    assert config.manifest_path == tmp_path / "m.json"
    assert config.storage.provider == "local"
    assert config.storage.option("root") == str(tmp_path)
    assert config.force is True


def test_live_video_changes_trigger_reprocessing(tmp_path: Path) -> None:
    photos = tmp_path / "photos"
    photos.mkdir()
    (photos / "live.jpg").write_bytes(_jpeg_bytes())
    (photos / "live.mov").write_bytes(b"\x00" * 64)
    manifest_path = tmp_path / "photos-manifest.json"
    provider = LocalStorageProvider(photos)
    ManifestBuilder(provider, manifest_path).build()

    (photos / "live.mov").unlink()
    without_video = ManifestBuilder(provider, manifest_path).build()
    assert without_video.processed == 1
    assert without_video.manifest.data[0].video is None

    (photos / "live.mp4").write_bytes(b"\x00" * 64)
    with_video = ManifestBuilder(provider, manifest_path).build()
    assert with_video.processed == 1
    video = with_video.manifest.data[0].video
    assert video is not None and video.type == "live-photo"
    assert video.s3_key == "live.mp4"


def test_motion_photo_found_from_xmp_without_exif_hints(tmp_path: Path) -> None:
    data, still_size = _motion_photo()
    _, _, exif = read_image_info(data)
    assert "MicroVideoOffset" not in exif

    (tmp_path / "motion.jpg").write_bytes(data)
    result = ManifestBuilder(LocalStorageProvider(tmp_path), tmp_path / "m.json").build()

    video = result.manifest.data[0].video
    assert video is not None and video.type == "motion-photo"
    assert video.offset == still_size


def test_unchanged_github_blob_is_not_downloaded_again(tmp_path: Path) -> None:
    photo = _jpeg_bytes(with_exif=True)
    raw_reads: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/repos/octo/gallery/git/trees/main":
            tree = [{"path": "a.jpg", "type": "blob", "size": len(photo), "sha": "blob-1"}]
            return httpx.Response(200, json={"tree": tree, "truncated": False})
        if request.url.path == "/repos/octo/gallery/contents/a.jpg":
            raw_reads.append(request.url.path)
            return httpx.Response(200, content=photo)
        return httpx.Response(404)

    client = httpx.Client(base_url="https://api.github.com", transport=httpx.MockTransport(handler))
    provider = GitHubStorageProvider("octo", "gallery", client=client)
    manifest_path = tmp_path / "photos-manifest.json"

    first = ManifestBuilder(provider, manifest_path).build()
    second = ManifestBuilder(provider, manifest_path).build()

    assert first.processed == 1
    assert json.loads(manifest_path.read_text())["data"][0]["etag"] == "blob-1"
    assert second.processed == 0
    assert second.skipped == 1
    assert not second.has_updates
    assert len(raw_reads) == 1
