"""Thumbnail generator service.

Provides a small OOP wrapper around Pillow to create thumbnails from raw
image bytes. The resulting thumbnail fits within 400x400 pixels, is never
enlarged, and is returned as JPEG bytes.

Public class: `ThumbnailGenerator`

Example:
    tg = ThumbnailGenerator(max_size=(400, 400))
    thumb_jpeg = tg.create_thumbnail(image_bytes)
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError


class ThumbnailGenerator:
    """Generate JPEG thumbnails from image bytes.

    Args:
        max_size: Maximum width and height for the thumbnail. Defaults to (400, 400).
        quality: JPEG quality of the output. Defaults to 85.
        background: Color used to flatten images with transparency. Defaults to white.
    """

    def __init__(
        self,
        max_size: Tuple[int, int] = (400, 400),
        quality: int = 85,
        background: Tuple[int, int, int] | None = None,
    ):
        self.max_size = max_size
        self.quality = quality
        self.background = background or (255, 255, 255)

    def create_thumbnail(self, data: bytes) -> bytes:
        """Create a thumbnail from raw image bytes.

        Args:
            data: Encoded JPEG or PNG bytes.

        Returns:
            JPEG-encoded thumbnail bytes.

        Raises:
            ValueError: If the bytes cannot be opened as an image.
        """
        if not data:
            raise ValueError("Image bytes are required for thumbnailing")

        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ValueError("Bytes are not a supported image format") from exc

        src = src.convert("RGBA")
        src.thumbnail(self.max_size, Image.LANCZOS)

        # Flatten alpha against the background color; JPEG has no alpha channel.
        background = Image.new("RGB", src.size, self.background)
        background.paste(src, mask=src.split()[3])

        out_io = io.BytesIO()
        background.save(out_io, format="JPEG", quality=self.quality, optimize=True)
        return out_io.getvalue()

    def is_decodable(self, data: bytes) -> bool:
        """Return True when Pillow can identify `data` as an image."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
        except Exception:  # pylint: disable=broad-exception-caught
            return False
        return True
