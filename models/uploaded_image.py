from __future__ import annotations

from dataclasses import dataclass


@dataclass
class UploadedImage:
    """A validated clothing photo held in memory for one submission.

    Attributes:
        filename: Client-supplied filename (may be a placeholder).
        content_type: Normalized MIME type, `image/jpeg` or `image/png`.
        data: Raw image bytes.
    """

    filename: str
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        return "png" if self.content_type == "image/png" else "jpg"
