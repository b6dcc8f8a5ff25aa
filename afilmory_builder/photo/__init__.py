"""Motion photo detection over raw image bytes."""

from .motion_photo import MAX_XMP_SCAN_BYTES, MIN_VIDEO_SIZE_BYTES, detect_motion_photo

__all__ = ["MAX_XMP_SCAN_BYTES", "MIN_VIDEO_SIZE_BYTES", "detect_motion_photo"]
