"""Motion Photo detection.

Locates a video payload embedded at the end of an image file (Google
Motion Photo / Samsung MicroVideo) without decoding the image. Signals come
from the already-parsed EXIF map and from a regex scan of the XMP packet;
candidate offsets are validated by looking for the MP4 ``ftyp`` box.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, Mapping, Optional

from afilmory_builder.core.models import MotionPhotoMetadata

logger = logging.getLogger(__name__)

MAX_XMP_SCAN_BYTES = 512 * 1024
MIN_VIDEO_SIZE_BYTES = 8 * 1024
FALLBACK_SCAN_BYTES = 8 * 1024 * 1024
FTYP_WINDOW_BYTES = 32
MP4_FTYP = b"ftyp"

XMP_START = "<x:xmpmeta"
XMP_END = "</x:xmpmeta>"

MOTION_FLAG_TAGS = ("MotionPhoto", "GCamera:MotionPhoto", "MicroVideo", "GCamera:MicroVideo")
OFFSET_TAGS = ("MicroVideoOffset", "GCamera:MicroVideoOffset")
TIMESTAMP_TAGS = ("MotionPhotoPresentationTimestampUs", "MicroVideoPresentationTimestampUs")

_LEADING_INT = re.compile(r"[+-]?\d+")


def _to_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return False


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value.strip())
        return int(match.group(0)) if match else None
    return None


def _extract_xmp_segment(buffer: bytes) -> Optional[str]:
    head = buffer[:MAX_XMP_SCAN_BYTES]
    if not head:
        return None
    text = head.decode("utf-8", errors="replace")
    start = text.find(XMP_START)
    if start == -1:
        return None
    end = text.find(XMP_END, start)
    if end == -1:
        return None
    return text[start : end + len(XMP_END)]


def _element_value(xmp: str, tag: str) -> Optional[str]:
    match = re.search(rf"<[^:>]*:{re.escape(tag)}>([^<]+)</[^>]+>", xmp, re.IGNORECASE)
    return match.group(1) if match else None


def _attribute_value(xmp: str, attr: str) -> Optional[str]:
    name = re.escape(attr)
    if ":" not in attr:
        name = rf"(?:[\w-]+:)?{name}"
    match = re.search(rf'{name}="([^"]+)"', xmp, re.IGNORECASE)
    return match.group(1) if match else None


def _xmp_values(xmp: str, names: Iterable[str]) -> list[Optional[str]]:
    """Element matches for every name, then attribute matches for every name."""
    names = tuple(names)
    return [_element_value(xmp, n) for n in names] + [_attribute_value(xmp, n) for n in names]


def _is_plausible_mp4(chunk: bytes) -> bool:
    if len(chunk) < MIN_VIDEO_SIZE_BYTES:
        return False
    return MP4_FTYP in chunk[:FTYP_WINDOW_BYTES]


def _within_bounds(start: int, length: int) -> bool:
    return 0 < start < length - MIN_VIDEO_SIZE_BYTES


def _resolve_from_candidates(
    buffer: bytes, candidates: list[int], log: logging.Logger
) -> Optional[int]:
    length = len(buffer)
    for candidate in candidates:
        starts = [candidate]
        if candidate < length and length - candidate != candidate:
            starts.append(length - candidate)
        for start in starts:
            if not _within_bounds(start, length):
                continue
            if _is_plausible_mp4(buffer[start:]):
                if start != candidate:
                    log.debug(
                        "[motion-photo] Interpreted offset %d as start %d from file end",
                        candidate,
                        start,
                    )
                return start
    return None


def _resolve_by_scan(buffer: bytes, log: logging.Logger) -> Optional[int]:
    length = len(buffer)
    cursor = buffer.find(MP4_FTYP, max(0, length - FALLBACK_SCAN_BYTES))
    while cursor != -1:
        start = cursor - 4
        if _within_bounds(start, length) and _is_plausible_mp4(buffer[start:]):
            log.info("[motion-photo] Located MP4 via fallback scan at offset %d", start)
            return start
        cursor = buffer.find(MP4_FTYP, cursor + 1)
    return None


def detect_motion_photo(
    raw_image: bytes,
    exif_data: Optional[Mapping[str, Any]] = None,
    log: Optional[logging.Logger] = None,
) -> Optional[MotionPhotoMetadata]:
    """Return the embedded video location of a motion photo, or None.

    ``None`` is the normal answer for ordinary images and also for motion
    photos whose payload cannot be located. Never raises.
    """
    log = log or logger
    try:
        buffer = bytes(raw_image)
        exif = exif_data or {}

        detected = _to_bool(exif.get("MotionPhoto")) or _to_bool(exif.get("MicroVideo"))

        timestamp_raw = next(
            (exif[name] for name in TIMESTAMP_TAGS if exif.get(name) is not None), None
        )
        timestamp = _to_number(timestamp_raw)

        candidates: dict[int, None] = {}

        def add_candidate(value: Optional[float]) -> None:
            if value is None or not math.isfinite(value):
                return
            offset = int(value)
            if offset <= 0:
                return
            candidates.setdefault(offset, None)

        add_candidate(_to_number(exif.get("MicroVideoOffset")))

        xmp = _extract_xmp_segment(buffer)
        if xmp:
            if not detected:
                flags = [_to_bool(v) for v in _xmp_values(xmp, MOTION_FLAG_TAGS) if v is not None]
                if any(flags):
                    detected = True
                    log.info("[motion-photo] XMP detected MotionPhoto flags")

            for value in _xmp_values(xmp, OFFSET_TAGS):
                add_candidate(_to_number(value))

            if timestamp is None:
                timestamp = next(
                    (
                        number
                        for number in (_to_number(v) for v in _xmp_values(xmp, TIMESTAMP_TAGS))
                        if number is not None
                    ),
                    None,
                )

        if not detected and not candidates:
            return None

        candidate_list = list(candidates)
        offset = _resolve_from_candidates(buffer, candidate_list, log)
        if offset is None:
            offset = _resolve_by_scan(buffer, log)

        if offset is None:
            log.warning(
                "[motion-photo] Unable to locate MP4 after trying offsets %s",
                ", ".join(str(c) for c in candidate_list) or "none",
            )
            return None

        video_size = len(buffer) - offset
        log.info(
            "[motion-photo] Detected Motion Photo at offset %d, video size %d bytes",
            offset,
            video_size,
        )
        return MotionPhotoMetadata(
            is_motion_photo=True,
            motion_photo_offset=offset,
            motion_photo_video_size=video_size,
            presentation_timestamp_us=int(timestamp) if timestamp is not None else None,
        )
    except Exception:
        log.exception("[motion-photo] Unexpected error while detecting")
        return None
