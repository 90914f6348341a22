"""Helpers for saving uploaded originals and thumbnails under the upload directory.

Files are written as `<id>.<ext>` and `thumb_<id>.jpg` and exposed through the
`/uploads` static mount, so stored references are `/uploads/<filename>`.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import aiofiles

from models.uploaded_image import UploadedImage
from services.thumbnail_generator import ThumbnailGenerator

LOGGER = logging.getLogger(__name__)

KEEP_FILES = {".gitkeep"}


@dataclass
class StoredImages:
    """References to one submission's saved originals and thumbnails."""

    originals: List[str] = field(default_factory=list)
    thumbnails: List[str] = field(default_factory=list)


class ImageStore:
    """Persist submission images on local disk and hand out public references."""

    def __init__(
        self,
        upload_dir: Path | str,
        url_prefix: str = "/uploads",
        thumbnailer: Optional[ThumbnailGenerator] = None,
    ) -> None:
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.thumbnailer = thumbnailer or ThumbnailGenerator()

    def ensure_directory(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def public_url(self, path: Path | str) -> str:
        return f"{self.url_prefix}/{Path(path).name}"

    async def _write_bytes(self, path: Path, data: bytes) -> None:
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

    async def save_image(self, image: UploadedImage) -> tuple[str, str]:
        """Save one original and its thumbnail; return `(original_ref, thumbnail_ref)`.

        When thumbnailing fails the original reference doubles as the thumbnail.
        If a write fails, whatever this call already wrote is removed.
        """
        if not image.data:
            raise ValueError("Image bytes are required for saving.")
        self.ensure_directory()

        image_id = uuid.uuid4().hex
        original_path = self.upload_dir / f"{image_id}.{image.extension}"
        thumb_path = self.upload_dir / f"thumb_{image_id}.jpg"
        try:
            await self._write_bytes(original_path, image.data)
            original_ref = self.public_url(original_path)

            # thumbnail generation is blocking -> run in thread
            try:
                thumb_bytes = await asyncio.to_thread(self.thumbnailer.create_thumbnail, image.data)
            except ValueError as exc:
                LOGGER.warning("Thumbnail generation failed for %s: %s", image.filename, exc)
                return original_ref, original_ref

            await self._write_bytes(thumb_path, thumb_bytes)
        except Exception:
            await self.delete_refs([original_path, thumb_path])
            raise
        return original_ref, self.public_url(thumb_path)

    async def save_submission(self, images: Sequence[UploadedImage]) -> StoredImages:
        """Save every image of a submission; on failure nothing from it stays on disk."""
        stored = StoredImages()
        try:
            for image in images:
                original_ref, thumb_ref = await self.save_image(image)
                stored.originals.append(original_ref)
                stored.thumbnails.append(thumb_ref)
        except Exception:
            LOGGER.warning("Discarding %d saved image(s) after a failed submission", len(stored.originals))
            await self.delete_refs(stored.originals + stored.thumbnails)
            raise
        return stored

    async def delete_refs(self, refs: Iterable[Path | str]) -> int:
        """Delete the files behind public references (or paths) and return how many existed."""
        names = {Path(ref).name for ref in refs}

        def _delete() -> int:
            removed = 0
            for name in names:
                path = self.upload_dir / name
                if path.is_file():
                    path.unlink(missing_ok=True)
                    removed += 1
            return removed

        return await asyncio.to_thread(_delete)

    async def prune_older_than(
        self,
        max_age_seconds: float,
        now: Optional[float] = None,
        keep: Iterable[str] = (),
    ) -> int:
        """Delete stored files older than `max_age_seconds` and return how many were removed.

        Files named by a reference in `keep` are left alone whatever their age.
        """
        cutoff = (time.time() if now is None else now) - max_age_seconds
        keep_names = KEEP_FILES | {Path(ref).name for ref in keep}

        def _prune() -> int:
            if not self.upload_dir.is_dir():
                return 0
            removed = 0
            with os.scandir(self.upload_dir) as entries:
                for entry in entries:
                    if not entry.is_file() or entry.name in keep_names:
                        continue
                    if entry.stat().st_mtime < cutoff:
                        os.unlink(entry.path)
                        removed += 1
            return removed

        removed = await asyncio.to_thread(_prune)
        if removed:
            LOGGER.info("Cleaned up %d old upload file(s)", removed)
        return removed
