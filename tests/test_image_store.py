import io
import os
import time

import pytest
from PIL import Image

from conftest import make_image_bytes
from models.uploaded_image import UploadedImage
from services.image_store import ImageStore
from services.thumbnail_generator import ThumbnailGenerator


async def test_save_submission_writes_originals_and_thumbnails(tmp_path, png_bytes):
    store = ImageStore(tmp_path / "uploads")
    stored = await store.save_submission(
        [
            UploadedImage("front.png", "image/png", png_bytes),
            UploadedImage("tag.jpg", "image/jpeg", make_image_bytes("JPEG")),
        ]
    )

    assert len(stored.originals) == 2
    assert stored.originals[0].startswith("/uploads/") and stored.originals[0].endswith(".png")
    assert stored.originals[1].endswith(".jpg")
    assert all(ref.startswith("/uploads/thumb_") for ref in stored.thumbnails)

    thumb_path = tmp_path / "uploads" / stored.thumbnails[0].rsplit("/", 1)[1]
    with Image.open(thumb_path) as thumb:
        assert thumb.format == "JPEG"


async def test_thumbnail_failure_falls_back_to_original(tmp_path):
    store = ImageStore(tmp_path)
    original, thumb = await store.save_image(UploadedImage("odd.png", "image/png", b"not really an image"))
    assert original == thumb


async def test_prune_older_than(tmp_path, png_bytes):
    store = ImageStore(tmp_path)
    stored = await store.save_submission([UploadedImage("a.png", "image/png", png_bytes)])
    (tmp_path / ".gitkeep").write_text("")

    old = time.time() - 10_000
    for ref in stored.originals:
        os.utime(tmp_path / ref.rsplit("/", 1)[1], (old, old))

    assert await store.prune_older_than(3_600) == 1
    assert sorted(p.name for p in tmp_path.iterdir()) == [".gitkeep", stored.thumbnails[0].rsplit("/", 1)[1]]


async def test_prune_keeps_referenced_files(tmp_path, png_bytes):
    store = ImageStore(tmp_path)
    kept = await store.save_submission([UploadedImage("a.png", "image/png", png_bytes)])
    dropped = await store.save_submission([UploadedImage("b.png", "image/png", png_bytes)])

    old = time.time() - 10_000
    for path in tmp_path.iterdir():
        os.utime(path, (old, old))

    assert await store.prune_older_than(3_600, keep=kept.originals + kept.thumbnails) == 2
    remaining = sorted(p.name for p in tmp_path.iterdir())
    assert remaining == sorted(ref.rsplit("/", 1)[1] for ref in kept.originals + kept.thumbnails)
    assert dropped.originals[0].rsplit("/", 1)[1] not in remaining


async def test_failed_submission_leaves_no_files(tmp_path, png_bytes, monkeypatch):
    store = ImageStore(tmp_path)
    real_write = store._write_bytes
    writes = []

    async def flaky_write(path, data):
        writes.append(path)
        if len(writes) == 3:
            raise OSError("No space left on device")
        await real_write(path, data)

    monkeypatch.setattr(store, "_write_bytes", flaky_write)

    with pytest.raises(OSError):
        await store.save_submission(
            [
                UploadedImage("front.png", "image/png", png_bytes),
                UploadedImage("back.png", "image/png", png_bytes),
            ]
        )

    assert len(writes) == 3
    assert list(tmp_path.iterdir()) == []


async def test_failed_thumbnail_write_removes_its_original(tmp_path, png_bytes, monkeypatch):
    store = ImageStore(tmp_path)
    real_write = store._write_bytes

    async def fail_on_thumbnail(path, data):
        if path.name.startswith("thumb_"):
            raise OSError("Read-only file system")
        await real_write(path, data)

    monkeypatch.setattr(store, "_write_bytes", fail_on_thumbnail)

    with pytest.raises(OSError):
        await store.save_image(UploadedImage("front.png", "image/png", png_bytes))
    assert list(tmp_path.iterdir()) == []


def test_thumbnail_fits_bounds_and_never_enlarges():
    generator = ThumbnailGenerator(max_size=(400, 400))
    large = generator.create_thumbnail(make_image_bytes("PNG", size=(1200, 600)))
    small = generator.create_thumbnail(make_image_bytes("PNG", size=(50, 40)))

    assert Image.open(io.BytesIO(large)).size == (400, 200)
    assert Image.open(io.BytesIO(small)).size == (50, 40)
    assert not generator.is_decodable(b"garbage")
