from __future__ import annotations

import logging
import numbers
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Optional

from PIL import ExifTags, Image

from afilmory_builder.core.models import CameraInfo, LensInfo

logger = logging.getLogger(__name__)

EXIF_IFD_TAG = 0x8769
GPS_IFD_TAG = 0x8825

_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


def _to_float(value: object) -> Optional[float]:
    if isinstance(value, tuple) and len(value) == 2 and value[1]:
        return float(value[0]) / float(value[1])
    if isinstance(value, (int, float)) or isinstance(value, numbers.Real):
        return float(value)
    return None


def _to_primitive(value: Any) -> Any:
    """Flatten Pillow EXIF values (rationals, bytes, tuples) into JSON primitives."""
    if isinstance(value, str):
        return value.strip("\x00 ").strip()
    if value is None or isinstance(value, (bool, int)):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("ascii").strip("\x00 ").strip() or None
        except UnicodeDecodeError:
            return None
    if isinstance(value, (tuple, list)):
        items = [_to_primitive(v) for v in value]
        return [item for item in items if item is not None] or None
    as_float = _to_float(value)
    if as_float is None or as_float != as_float:
        return None
    return int(as_float) if as_float.is_integer() and not isinstance(value, float) else as_float


def _named(tags: dict, names: dict[int, str]) -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for tag_id, raw in tags.items():
        name = names.get(tag_id)
        if not name or name in {"MakerNote", "UserComment", "ExifOffset", "GPSInfo"}:
            continue
        value = _to_primitive(raw)
        if value is not None and value != "":
            flat[name] = value
    return flat


def read_image_info(data: bytes) -> tuple[Optional[int], Optional[int], dict[str, Any]]:
    """Return ``(width, height, exif_map)`` for an encoded image.

    The EXIF map is flat (``{"Make": "FUJIFILM", "FNumber": 2.8, ...}``);
    unreadable images yield ``(None, None, {})``.

    Only TIFF/EXIF IFDs are read, so motion-photo hints (``MotionPhoto``,
    ``MicroVideoOffset``) never appear here; ``detect_motion_photo`` finds
    them in the XMP packet of the raw bytes instead.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
            exif = img.getexif()
            flat = _named(dict(exif), ExifTags.TAGS)
            try:
                flat.update(_named(dict(exif.get_ifd(EXIF_IFD_TAG)), ExifTags.TAGS))
            except Exception:
                logger.debug("No EXIF sub-IFD present")
            try:
                flat.update(_named(dict(exif.get_ifd(GPS_IFD_TAG)), ExifTags.GPSTAGS))
            except Exception:
                logger.debug("No GPS IFD present")
    except Exception as exc:
        # A single unreadable image must not fail the build.
        logger.debug("Unable to read image metadata: %s", exc)
        return None, None, {}
    return width, height, flat


def date_taken_from_exif(exif: dict[str, Any]) -> Optional[str]:
    raw = exif.get("DateTimeOriginal") or exif.get("DateTime")
    if not raw:
        return None
    try:
        taken = datetime.strptime(str(raw), _DATETIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None
    return taken.isoformat()


def camera_from_exif(exif: dict[str, Any]) -> Optional[CameraInfo]:
    make = str(exif.get("Make") or "").strip()
    model = str(exif.get("Model") or "").strip()
    if not make or not model:
        return None
    display = model if model.lower().startswith(make.lower()) else f"{make} {model}"
    return CameraInfo(make=make, model=model, display_name=display)


def lens_from_exif(exif: dict[str, Any]) -> Optional[LensInfo]:
    model = str(exif.get("LensModel") or "").strip()
    if not model:
        return None
    make = str(exif.get("LensMake") or "").strip() or None
    display = f"{make} {model}" if make and not model.lower().startswith(make.lower()) else model
    return LensInfo(make=make, model=model, display_name=display)
