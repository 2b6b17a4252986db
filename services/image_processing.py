"""Image processing service.

Provides a small OOP wrapper around Pillow that keeps reference images and
result screenshots within the size the vision model accepts. Images are
passed around as data URLs (``data:image/png;base64,...``); images that
already fit are returned unchanged, larger ones are scaled down (preserving
aspect ratio) and re-encoded.

Public class: `ImageProcessor`

Example:
    processor = ImageProcessor(max_dimension=2048)
    data_url = processor.process_data_url(data_url)
"""
from __future__ import annotations

import base64
import io
from typing import Tuple

from PIL import Image

from utils.media_validation import split_data_url

DEFAULT_MAX_DIMENSION = 2048
DEFAULT_MAX_BYTES = 5 * 1024 * 1024


class ImageProcessor:
    """Downscale images encoded as data URLs.

    Args:
        max_dimension: Maximum width and height of the processed image.
        max_bytes: Maximum size of the decoded image payload.
        background: Background color used when flattening transparent images to JPEG.
    """

    def __init__(
        self,
        max_dimension: int = DEFAULT_MAX_DIMENSION,
        max_bytes: int = DEFAULT_MAX_BYTES,
        background: Tuple[int, int, int] | None = None,
    ):
        self.max_dimension = max_dimension
        self.max_bytes = max_bytes
        self.background = background or (255, 255, 255)

    def process_data_url(self, data_url: str) -> str:
        """Return a data URL that satisfies the configured limits.

        Remote URLs (``http(s)://``) are returned untouched.

        Raises:
            ValueError: If the data URL cannot be decoded or opened as an image.
        """
        if not data_url or data_url.startswith(("http://", "https://")):
            return data_url

        _, payload = split_data_url(data_url)
        try:
            raw = base64.b64decode(payload, validate=True)
        except Exception as exc:
            raise ValueError("Invalid base64 data provided") from exc

        try:
            src = Image.open(io.BytesIO(raw))
            src.load()
        except Exception as exc:
            raise ValueError("Decoded bytes are not a supported image format") from exc

        if len(raw) <= self.max_bytes and max(src.size) <= self.max_dimension:
            return data_url

        src = src.convert("RGBA")
        src.thumbnail((self.max_dimension, self.max_dimension), Image.LANCZOS)

        # Flatten alpha against the background color
        background = Image.new("RGB", src.size, self.background)
        background.paste(src, mask=src.split()[3])

        out_bytes = self._encode(background, "PNG")
        if len(out_bytes) <= self.max_bytes:
            return self._to_data_url("image/png", out_bytes)

        quality = 95
        while quality >= 10:
            out_bytes = self._encode(background, "JPEG", quality=quality)
            if len(out_bytes) <= self.max_bytes:
                break
            quality -= 10
        return self._to_data_url("image/jpeg", out_bytes)

    @staticmethod
    def _encode(image: Image.Image, fmt: str, **options) -> bytes:
        out_io = io.BytesIO()
        image.save(out_io, format=fmt, optimize=True, **options)
        return out_io.getvalue()

    @staticmethod
    def _to_data_url(mime_type: str, data: bytes) -> str:
        return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"
