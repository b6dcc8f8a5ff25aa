"""Build pipeline: list photos in storage, read metadata and assemble the manifest."""

from .exif_reader import camera_from_exif, date_taken_from_exif, lens_from_exif, read_image_info
from .pipeline import BuilderConfig, BuildResult, ManifestBuilder, build_manifest
from .scanner import SUPPORTED_EXTENSIONS, PhotoSource, scan_photos

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "BuildResult",
    "BuilderConfig",
    "ManifestBuilder",
    "PhotoSource",
    "build_manifest",
    "camera_from_exif",
    "date_taken_from_exif",
    "lens_from_exif",
    "read_image_info",
    "scan_photos",
]
