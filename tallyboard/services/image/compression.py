"""
Caller-Side Image Compression

The image store saves whatever bytes it is given; shrinking images is the
caller's job. This module:
1. Checks an image against the size and dimension limits
2. Downscales to a maximum width and re-encodes (PNG stays PNG,
   everything else becomes JPEG on a white background)
3. Uploads with a fallback ladder: the original first, then
   progressively lower JPEG qualities

If every attempt fails the image is kept inline; the persistence layer
then drops it on save.
"""

import time
from io import BytesIO
from typing import Optional, Sequence

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from tallyboard.audit import AuditLogger, get_logger
from tallyboard.models.audit import AuditEventBuilder
from tallyboard.models.image import ImageRef, InlineImage, StoredImage
from tallyboard.services.image.interface import (
    ImageProcessingError,
    ImageStoreInterface,
    ImageTooLargeError,
    ImageUploadError,
)


logger = get_logger(__name__)

DEFAULT_MAX_WIDTH = 800
DEFAULT_QUALITIES = (0.8, 0.6, 0.4, 0.2)


class ImageInfo(BaseModel):
    """Basic facts about an image payload."""

    size_bytes: int
    width: int
    height: int
    mime_type: str


def human_file_size(size: int) -> str:
    """Format a byte count as B / KB / MB."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def _open(data: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError(f"Could not read image: {e}") from e
    return img


class ImageCompressor:
    """
    Resizes and re-encodes images before they are handed to an image store.
    """

    def __init__(
        self,
        max_width: int = DEFAULT_MAX_WIDTH,
        qualities: Sequence[float] = DEFAULT_QUALITIES,
        max_upload_bytes: Optional[int] = None,
        max_dimension: Optional[int] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        if not qualities:
            raise ValueError("At least one compression quality is required")
        self._max_width = max_width
        self._qualities = list(qualities)
        self._max_upload_bytes = max_upload_bytes
        self._max_dimension = max_dimension
        self._audit_logger = audit_logger

    @property
    def qualities(self) -> list[float]:
        return list(self._qualities)

    @property
    def max_upload_bytes(self) -> Optional[int]:
        return self._max_upload_bytes

    def inspect(self, data: bytes) -> ImageInfo:
        img = _open(data)
        mime_type = Image.MIME.get(img.format or "", "application/octet-stream")
        return ImageInfo(
            size_bytes=len(data),
            width=img.width,
            height=img.height,
            mime_type=mime_type,
        )

    def check_upload_limits(self, data: bytes) -> ImageInfo:
        """
        Enforce the configured size and pixel limits.

        Raises:
            ImageTooLargeError: If the file or its dimensions are too big
            ImageProcessingError: If the data is not a readable image
        """
        if self._max_upload_bytes is not None and len(data) > self._max_upload_bytes:
            raise ImageTooLargeError(
                f"Image is too large: {human_file_size(len(data))}, "
                f"maximum is {human_file_size(self._max_upload_bytes)}"
            )
        info = self.inspect(data)
        if self._max_dimension is not None and (
            info.width > self._max_dimension or info.height > self._max_dimension
        ):
            raise ImageTooLargeError(
                f"Image dimensions {info.width} x {info.height} exceed "
                f"{self._max_dimension} x {self._max_dimension}"
            )
        return info

    def compress(self, data: bytes, quality: float) -> tuple[bytes, str]:
        """
        Downscale to max_width and re-encode.

        Returns:
            (encoded_bytes, mime_type)
        """
        img = _open(data)
        is_png = img.format == "PNG"

        if img.width > self._max_width:
            height = round(img.height * self._max_width / img.width)
            img = img.resize((self._max_width, max(1, height)), Image.Resampling.LANCZOS)

        out = BytesIO()
        try:
            if is_png:
                img.save(out, format="PNG", optimize=True)
                return out.getvalue(), "image/png"

            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            background.save(out, format="JPEG", quality=int(round(quality * 100)))
        except OSError as e:
            raise ImageProcessingError(f"Could not encode image: {e}") from e
        return out.getvalue(), "image/jpeg"

    def upload_with_fallback(
        self,
        store: ImageStoreInterface,
        data: bytes,
        original_name: str = "upload.jpg",
    ) -> ImageRef:
        """
        Upload an image, falling back to smaller encodings on failure.

        Order: the original bytes, then each quality of the ladder.
        Returns a StoredImage on success, or an InlineImage of the original
        bytes when every attempt failed.
        """
        result = store.save_image(original_name, data)
        if result.ok and result.url:
            return StoredImage(reference=result.url)
        last_error = result.error or "upload failed"
        logger.info("image_upload_retrying_compressed", error=last_error)

        try:
            for attempt in Retrying(
                stop=stop_after_attempt(len(self._qualities)),
                retry=retry_if_exception_type(ImageUploadError),
                reraise=True,
            ):
                with attempt:
                    quality = self._qualities[attempt.retry_state.attempt_number - 1]
                    compressed, mime_type = self.compress(data, quality)
                    ext = ".png" if mime_type == "image/png" else ".jpg"
                    name = f"upload_{int(time.time() * 1000)}{ext}"
                    result = store.save_image(name, compressed)
                    if not (result.ok and result.url):
                        raise ImageUploadError(result.error or "upload failed")
                    return StoredImage(reference=result.url)
        except (ImageUploadError, ImageProcessingError) as e:
            last_error = str(e)

        logger.warning("image_kept_inline", name=original_name, error=last_error)
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.image_upload_failed(
                original_name, len(self._qualities) + 1, last_error,
            ))

        try:
            mime_type = self.inspect(data).mime_type
        except ImageProcessingError:
            mime_type = "application/octet-stream"
        return InlineImage.from_bytes(data, mime_type)
