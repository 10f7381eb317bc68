"""
Tests for caller-side compression and the upload fallback ladder

Images are generated with Pillow; the store is a scripted double.
"""

from io import BytesIO

import pytest
from PIL import Image

from tallyboard.models import AuditEventType, InlineImage, StoredImage
from tallyboard.services.image import (
    ImageCompressor,
    ImageProcessingError,
    ImageTooLargeError,
    InProcessImageStore,
    human_file_size,
)
from tallyboard.services.image.interface import (
    DeleteImageResult,
    ImageStoreInterface,
    SaveImageResult,
    ShowItemResult,
)


class ScriptedStore(ImageStoreInterface):
    """Fails the first `failures` saves, then succeeds."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls: list[tuple[str, bytes]] = []

    def save_image(self, name, payload):
        self.calls.append((name, payload))
        if len(self.calls) <= self.failures:
            return SaveImageResult(ok=False, error="http 413")
        return SaveImageResult(ok=True, url=f"/assets/uploads/img_{len(self.calls)}.jpg")

    def delete_image(self, reference):
        return DeleteImageResult(ok=True)

    def show_item(self, path):
        return ShowItemResult(ok=False)

    def show_relative(self, rel_path):
        return ShowItemResult(ok=False)


def _open(data: bytes) -> Image.Image:
    return Image.open(BytesIO(data))


class TestCompress:
    """Tests for ImageCompressor.compress."""

    def test_downscales_to_max_width(self, image_factory):
        compressor = ImageCompressor(max_width=800)
        data, mime = compressor.compress(image_factory("JPEG", (1600, 1200)), 0.8)

        img = _open(data)
        assert mime == "image/jpeg"
        assert img.size == (800, 600)

    def test_small_images_keep_their_size(self, image_factory):
        data, _ = ImageCompressor(max_width=800).compress(image_factory("JPEG", (100, 50)), 0.8)
        assert _open(data).size == (100, 50)

    def test_png_stays_png(self, image_factory):
        data, mime = ImageCompressor(max_width=10).compress(image_factory("PNG", (40, 20), "RGBA"), 0.4)
        img = _open(data)
        assert mime == "image/png"
        assert img.format == "PNG"
        assert img.size == (10, 5)

    def test_palette_images_become_rgb_jpeg(self, image_factory):
        source = image_factory("GIF", (8, 8))
        data, mime = ImageCompressor().compress(source, 0.8)
        assert mime == "image/jpeg"
        assert _open(data).mode == "RGB"

    def test_lower_quality_is_smaller(self, image_factory):
        noisy = Image.effect_noise((400, 400), 64).convert("RGB")
        out = BytesIO()
        noisy.save(out, format="JPEG", quality=95)
        compressor = ImageCompressor()

        high, _ = compressor.compress(out.getvalue(), 0.8)
        low, _ = compressor.compress(out.getvalue(), 0.2)
        assert len(low) < len(high)

    def test_unreadable_data(self):
        with pytest.raises(ImageProcessingError):
            ImageCompressor().compress(b"not an image", 0.8)

    def test_requires_qualities(self):
        with pytest.raises(ValueError):
            ImageCompressor(qualities=[])


class TestUploadLimits:
    """Tests for check_upload_limits."""

    def test_within_limits(self, image_factory):
        info = ImageCompressor(max_upload_bytes=2 * 1024 * 1024, max_dimension=4000).check_upload_limits(
            image_factory("PNG", (20, 10))
        )
        assert (info.width, info.height, info.mime_type) == (20, 10, "image/png")

    def test_too_many_bytes(self, image_factory):
        with pytest.raises(ImageTooLargeError):
            ImageCompressor(max_upload_bytes=10).check_upload_limits(image_factory())

    def test_too_many_pixels(self, image_factory):
        with pytest.raises(ImageTooLargeError):
            ImageCompressor(max_dimension=30).check_upload_limits(image_factory("PNG", (31, 5)))

    @pytest.mark.parametrize("size, expected", [
        (512, "512 B"),
        (2048, "2.0 KB"),
        (3 * 1024 * 1024, "3.00 MB"),
    ])
    def test_human_file_size(self, size, expected):
        assert human_file_size(size) == expected


class TestUploadWithFallback:
    """Tests for the raw-then-compressed upload ladder."""

    def test_raw_upload_first(self, image_factory):
        store = ScriptedStore(failures=0)
        source = image_factory("JPEG", (50, 50))

        image = ImageCompressor().upload_with_fallback(store, source, "a.jpg")

        assert image == StoredImage(reference="/assets/uploads/img_1.jpg")
        assert store.calls == [("a.jpg", source)]

    def test_walks_the_quality_ladder(self, image_factory):
        store = ScriptedStore(failures=3)
        source = image_factory("JPEG", (1000, 500))

        image = ImageCompressor(qualities=[0.8, 0.6, 0.4, 0.2]).upload_with_fallback(store, source, "a.jpg")

        assert isinstance(image, StoredImage)
        assert len(store.calls) == 4
        for name, payload in store.calls[1:]:
            assert name.endswith(".jpg")
            assert _open(payload).size == (800, 400)

    def test_falls_back_to_inline(self, image_factory, audit_logger):
        store = ScriptedStore(failures=99)
        source = image_factory("PNG", (20, 20))

        image = ImageCompressor(audit_logger=audit_logger).upload_with_fallback(store, source, "a.png")

        assert isinstance(image, InlineImage)
        assert image.mime_type == "image/png"
        assert image.to_bytes() == source
        assert len(store.calls) == 5
        assert audit_logger.events[-1].event_type == AuditEventType.IMAGE_UPLOAD_FAILED

    def test_unreadable_image_falls_back_after_raw_attempt(self):
        store = ScriptedStore(failures=1)

        image = ImageCompressor().upload_with_fallback(store, b"garbage", "a.jpg")

        assert isinstance(image, InlineImage)
        assert image.mime_type == "application/octet-stream"
        assert len(store.calls) == 1

    def test_with_real_store(self, in_process_store, image_factory):
        image = ImageCompressor().upload_with_fallback(in_process_store, image_factory(), "a.png")
        assert isinstance(image, StoredImage)
        assert image.reference.startswith("file://")
        assert isinstance(in_process_store, InProcessImageStore)
