"""Helpers for images sent by the UI as base64 strings or data URLs."""

import base64
import binascii
from typing import Optional, Tuple

from config import ALLOWED_IMAGE_TYPES, DEFAULT_IMAGE_TYPE, MAX_IMAGE_BYTES


def split_data_url(value: str) -> Tuple[Optional[str], str]:
    """Split "data:<type>;base64,<payload>" into (type, payload); plain base64 returns (None, value)."""
    value = value.strip()
    if not value.startswith("data:"):
        return None, value
    header, sep, payload = value.partition(",")
    if not sep or ";base64" not in header:
        raise ValueError("Image data URL must be base64 encoded.")
    media_type = header[len("data:"):].split(";", 1)[0].strip().lower()
    return (media_type or None), payload


def normalize_media_type(media_type: Optional[str]) -> str:
    if not media_type:
        return DEFAULT_IMAGE_TYPE
    normalized = media_type.lower().split(";", 1)[0].strip()
    if normalized == "image/jpg":
        normalized = "image/jpeg"
    if normalized not in ALLOWED_IMAGE_TYPES:
        raise ValueError(f"Unsupported image content type: {media_type}")
    return normalized


def decode_image(value: str, media_type: Optional[str] = None) -> Tuple[bytes, str]:
    """
    Decode an image sent as base64 or as a data URL.

    The media type comes from the explicit argument first, then from the data
    URL header, then defaults to image/png. Raises ValueError when the payload is
    not valid base64, is empty, is too large, or has an unsupported type.
    """
    url_type, payload = split_data_url(value)
    resolved_type = normalize_media_type(media_type or url_type)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image is not valid base64.") from exc
    if not data:
        raise ValueError("Image is empty.")
    if len(data) > MAX_IMAGE_BYTES:
        raise ValueError(f"Image is larger than {MAX_IMAGE_BYTES // (1024 * 1024)} MB.")
    return data, resolved_type


def to_data_url(data: bytes, media_type: str = DEFAULT_IMAGE_TYPE) -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"
