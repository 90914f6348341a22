"""Validation helpers for uploaded clothing photos."""

from typing import List, Optional, Sequence

from fastapi import UploadFile

from models.uploaded_image import UploadedImage
from services.errors import InvalidInput
from services.thumbnail_generator import ThumbnailGenerator

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "image/jpeg",
    "image/jpg": "image/jpeg",
    "image/png": "image/png",
}
EXTENSION_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}


def resolve_content_type(filename: Optional[str], content_type: Optional[str]) -> str:
    """Return the normalized MIME type of an upload or raise `InvalidInput`.

    The declared content type is authoritative when present; the file
    extension is only consulted when the client sent no content type.
    """
    if content_type:
        normalized = content_type.lower().split(";", 1)[0].strip()
        if normalized in ALLOWED_IMAGE_TYPES:
            return ALLOWED_IMAGE_TYPES[normalized]
        if normalized != "application/octet-stream":
            raise InvalidInput("Invalid file type. Only JPG, JPEG, and PNG are allowed.")

    lowered = (filename or "").lower()
    for extension, mime_type in EXTENSION_TYPES.items():
        if lowered.endswith(extension):
            return mime_type
    raise InvalidInput("Invalid file type. Only JPG, JPEG, and PNG are allowed.")


def validate_image_bytes(
    filename: str,
    content_type: str,
    data: bytes,
    max_bytes: int,
    thumbnailer: Optional[ThumbnailGenerator] = None,
) -> UploadedImage:
    """Check size and decodability of one upload."""
    if not data:
        raise InvalidInput(f"Uploaded image {filename} is empty.")
    if len(data) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise InvalidInput(f"Uploaded image {filename} exceeds the {limit_mb:g} MB limit.")
    if not (thumbnailer or ThumbnailGenerator()).is_decodable(data):
        raise InvalidInput(f"Uploaded file {filename} is not a readable image.")
    return UploadedImage(filename=filename, content_type=content_type, data=data)


async def read_image_uploads(
    files: Optional[Sequence[UploadFile]],
    *,
    max_files: int,
    max_bytes: int,
) -> List[UploadedImage]:
    """Validate and read every uploaded image, enforcing count, type, and size limits."""
    uploads = [f for f in (files or []) if f is not None and (f.filename or f.size)]
    if not uploads:
        raise InvalidInput("No images uploaded")
    if len(uploads) > max_files:
        raise InvalidInput(f"Too many images: upload at most {max_files}.")

    thumbnailer = ThumbnailGenerator()
    images: List[UploadedImage] = []
    for index, upload in enumerate(uploads, start=1):
        filename = upload.filename or f"image_{index}"
        content_type = resolve_content_type(upload.filename, upload.content_type)
        data = await upload.read(max_bytes + 1)
        images.append(validate_image_bytes(filename, content_type, data, max_bytes, thumbnailer))
    return images
