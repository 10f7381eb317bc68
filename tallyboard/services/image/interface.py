"""
Abstract Image Store Interface

DESIGN DECISION: The domain layer talks to one interface; the transport
behind it (in-process or HTTP) is picked once, when the application
components are created.

Results are always returned as models with ``ok``/``error`` fields.
Exceptions raised inside a transport are converted before they cross
this boundary.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

from pydantic import BaseModel, Field


# Error strings shared by both transports
INVALID_FILENAME = "invalid filename"
NOT_FOUND = "not found"
DELETE_FAILED = "delete failed"
INVALID_PAYLOAD = "invalid payload"
WRITE_FAILED = "write failed"
UNSUPPORTED = "unsupported"

ImagePayload = Union[bytes, str]


class SaveImageResult(BaseModel):
    """Outcome of saving an image."""

    ok: bool
    url: Optional[str] = Field(
        default=None,
        description="Reference usable for display and later deletion"
    )
    filename: Optional[str] = None
    path: Optional[str] = Field(
        default=None,
        description="Absolute path on disk, when known"
    )
    error: Optional[str] = None


class DeleteImageResult(BaseModel):
    """Outcome of deleting an image."""

    ok: bool
    error: Optional[str] = None


class ShowItemResult(BaseModel):
    """Outcome of revealing a file in the OS file manager."""

    ok: bool
    path: Optional[str] = None
    error: Optional[str] = None


class ImageStoreInterface(ABC):
    """
    Abstract interface for image storage.

    Implementations must never raise for expected failures (bad names,
    missing files, network errors); they report them in the result.
    """

    @abstractmethod
    def save_image(self, name: str, payload: ImagePayload) -> SaveImageResult:
        """
        Persist image bytes.

        Args:
            name: Caller-supplied filename; only its extension is kept
            payload: Raw bytes or a ``data:<mime>;base64,<data>`` string

        Returns:
            SaveImageResult; the url is valid as soon as this returns
        """

    @abstractmethod
    def delete_image(self, reference: str) -> DeleteImageResult:
        """
        Delete a stored image by filename or URL.

        Only the basename of the reference is used.
        """

    @abstractmethod
    def show_item(self, path: str) -> ShowItemResult:
        """Reveal an absolute path or file:// URL in the file manager."""

    @abstractmethod
    def show_relative(self, rel_path: str) -> ShowItemResult:
        """Reveal a store-relative reference (e.g. /assets/uploads/x.png)."""


class ImageStoreError(Exception):
    """Base exception for image handling errors."""
    pass


class InvalidPayloadError(ImageStoreError):
    """The payload is neither bytes nor a base64 data URI."""
    pass


class ImageUploadError(ImageStoreError):
    """A transport reported a failed upload."""
    pass


class ImageProcessingError(ImageStoreError):
    """Pillow could not read or re-encode the image."""
    pass


class ImageTooLargeError(ImageStoreError):
    """The image exceeds the configured size or dimension limits."""
    pass
