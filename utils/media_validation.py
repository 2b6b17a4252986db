"""Validation helpers for reference images and result screenshots."""

import base64
import binascii
from typing import Tuple

from fastapi import HTTPException

ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/webp",
    "image/gif",
}


def split_data_url(data_url: str) -> Tuple[str, str]:
    """Return ``(mime_type, base64_payload)`` for a ``data:`` URL.

    Raises:
        ValueError: If the value is not a base64 data URL.
    """
    if not data_url or not data_url.startswith("data:"):
        raise ValueError("Image must be a data URL.")
    header, sep, payload = data_url.partition(",")
    if not sep or ";base64" not in header:
        raise ValueError("Image data URL must be base64 encoded.")
    mime_type = header[len("data:"):].split(";", 1)[0].strip().lower()
    return mime_type, payload


def ensure_image_data_url(raw: bytes, mime_type: str = "image/png") -> str:
    """Return a data URL for raw image bytes."""
    return f"data:{mime_type};base64,{base64.b64encode(raw).decode('utf-8')}"


def validate_reference_image(value: str) -> str:
    """Validate an image handle received from the presentation layer.

    Accepts ``http(s)`` URLs untouched and base64 data URLs of a supported
    image type; anything else is rejected with HTTP 422 so websocket and
    HTTP callers share one error shape.
    """
    value = (value or "").strip()
    if value.startswith(("http://", "https://")):
        return value
    try:
        mime_type, payload = split_data_url(value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if mime_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=415, detail=f"Unsupported image content type: {mime_type}")
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=422, detail="Image payload is not valid base64.") from exc
    return value
