"""Companion video handling and the pre-flight media-mode decision."""

from __future__ import annotations

import mimetypes
import pathlib
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import EncodingError
from .structures import MediaMode, MediaPayload

LARGE_MEDIA_THRESHOLD = 50 * 1024 * 1024

# Container types offered by the video picker; the platform mime table may lack some.
VIDEO_EXTENSIONS = {
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".mkv": "video/x-matroska",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".avi": "video/x-msvideo",
}

# Receives the video path and its byte size; True keeps the video attached.
LargeMediaDecision = Callable[[pathlib.Path, int], bool]


@dataclass(frozen=True)
class MediaDecision:
    """Outcome of the single per-run media decision."""

    mode: MediaMode
    reason: str


def should_offer_media(media_mode: MediaMode, video_present: bool) -> bool:
    """Media is attempted only when a video exists and the run is not lite."""

    return video_present and media_mode is not MediaMode.LITE


def media_size(path: pathlib.Path) -> int:
    try:
        return path.stat().st_size
    except OSError as exc:
        raise EncodingError(f"Could not access video file {path}: {exc}") from exc


def guess_mime_type(path: pathlib.Path) -> str:
    mime_type = VIDEO_EXTENSIONS.get(path.suffix.lower())
    if mime_type is None:
        mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith(("video/", "audio/")):
        raise EncodingError(
            f"Could not determine a playable media type for {path.name}."
        )
    return mime_type


def needs_large_media_decision(
    video_path: Optional[pathlib.Path],
    *,
    supports_media: bool,
    threshold: int = LARGE_MEDIA_THRESHOLD,
) -> bool:
    """True when a run would have to ask whether to keep an oversized video."""

    if video_path is None or not supports_media:
        return False
    return media_size(video_path) > threshold


def encode_media(path: pathlib.Path) -> MediaPayload:
    """Read a video file into an attachable payload."""

    mime_type = guess_mime_type(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise EncodingError(f"Could not read video file {path}: {exc}") from exc
    return MediaPayload(mime_type=mime_type, data=data)


def decide_media_mode(
    video_path: Optional[pathlib.Path],
    requested_mode: MediaMode,
    decide_large: LargeMediaDecision,
    *,
    supports_media: bool = True,
    threshold: int = LARGE_MEDIA_THRESHOLD,
) -> MediaDecision:
    """Settle the media mode once, before any batch is sent."""

    if not should_offer_media(requested_mode, video_path is not None):
        if video_path is None:
            return MediaDecision(MediaMode.LITE, "No video supplied; translating from text only.")
        return MediaDecision(MediaMode.LITE, "Lite mode enabled; the video will not be sent.")

    assert video_path is not None
    if not supports_media:
        return MediaDecision(
            MediaMode.LITE,
            "The selected provider cannot read video; switched to text-only mode.",
        )

    if needs_large_media_decision(video_path, supports_media=True, threshold=threshold):
        if not decide_large(video_path, media_size(video_path)):
            return MediaDecision(
                MediaMode.LITE,
                "Video is larger than "
                f"{threshold // (1024 * 1024)} MB; switched to text-only mode.",
            )
        return MediaDecision(MediaMode.FULL, "Large video kept at your request.")
    return MediaDecision(MediaMode.FULL, "Video attached to every batch.")
