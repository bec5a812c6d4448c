"""
Content Encoder
===============
Turns a screen recording into the provider's inline-data part.

    {"inline_data": {"mime_type": "video/mp4", "data": "<base64>"}}

MIME Resolution:
    1. The type declared by the caller wins.
    2. Otherwise the type is guessed from the file name.
    3. Otherwise DEFAULT_MIME_TYPE (video/mp4).

A session encodes its recording once and reuses the resulting MediaPart for
every refinement call; nothing here caches or re-reads on its own.
"""
import base64
import logging
import mimetypes
import os
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

from vibefix.core.constants import DEFAULT_MIME_TYPE
from vibefix.core.errors import MediaReadError

logger = logging.getLogger(__name__)

MediaSource = Union[str, os.PathLike, bytes, bytearray, BinaryIO]


@dataclass(frozen=True)
class MediaPart:
    """Base64 payload plus MIME type, ready to embed in a request."""
    data: str
    mime_type: str = DEFAULT_MIME_TYPE

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    def to_part(self) -> dict:
        return {"inline_data": {"mime_type": self.mime_type, "data": self.data}}


def _guess_mime_type(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    guessed, _ = mimetypes.guess_type(name)
    return guessed


def _read_source(source: MediaSource) -> tuple[bytes, Optional[str]]:
    """Return the raw bytes of a source and a file name to guess from, if any."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), None
    if isinstance(source, (str, os.PathLike)):
        path = os.fspath(source)
        with open(path, "rb") as f:
            return f.read(), path
    raw = source.read()
    if not isinstance(raw, (bytes, bytearray)):
        raise TypeError("media file objects must be opened in binary mode")
    return bytes(raw), getattr(source, "name", None)


def encode_media(source: MediaSource, mime_type: Optional[str] = None) -> MediaPart:
    """
    Read a recording and encode it as an inline-data part.

    Parameters
    ----------
    source : path, bytes or binary file object
        The recording to encode.
    mime_type : str or None
        Declared content type. Guessed from the file name when omitted.

    Returns
    -------
    MediaPart
        Base64 payload and resolved MIME type.

    Raises
    ------
    MediaReadError
        If the source cannot be read. The underlying exception is the __cause__.
    """
    try:
        raw, name = _read_source(source)
    except (OSError, TypeError, ValueError) as e:
        raise MediaReadError(f"File reading failed: {e}") from e

    if not raw:
        raise MediaReadError("Failed to read file: the recording is empty")

    resolved = mime_type or _guess_mime_type(name) or DEFAULT_MIME_TYPE
    logger.debug("Encoded %d bytes of media as %s", len(raw), resolved)
    return MediaPart(data=base64.b64encode(raw).decode("ascii"), mime_type=resolved)


def encode_data_url(url: str, mime_type: Optional[str] = None) -> MediaPart:
    """
    Build a MediaPart from a browser data URL (data:<mime>;base64,<payload>).

    Only the payload after the comma is kept. A bare base64 string without a
    header is accepted as-is.
    """
    if not url:
        raise MediaReadError("Failed to read file: the data URL is empty")

    header, sep, payload = url.partition(",")
    if not sep:
        return MediaPart(data=url, mime_type=mime_type or DEFAULT_MIME_TYPE)

    declared = None
    if header.startswith("data:"):
        declared = header[len("data:"):].split(";", 1)[0] or None
    if not payload:
        raise MediaReadError("Failed to read file: the data URL has no payload")
    return MediaPart(data=payload, mime_type=mime_type or declared or DEFAULT_MIME_TYPE)


def ensure_video(part: MediaPart) -> MediaPart:
    """Reject attachments that are not video recordings."""
    if not part.is_video:
        raise MediaReadError(
            f"Please upload a video file (got {part.mime_type})."
        )
    return part
