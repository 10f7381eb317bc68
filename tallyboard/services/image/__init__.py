"""Image storage services package."""

from tallyboard.services.image.compression import ImageCompressor, ImageInfo, human_file_size
from tallyboard.services.image.http_client import HttpImageStore
from tallyboard.services.image.in_process import InProcessImageStore
from tallyboard.services.image.interface import (
    DELETE_FAILED,
    INVALID_FILENAME,
    INVALID_PAYLOAD,
    NOT_FOUND,
    DeleteImageResult,
    ImageProcessingError,
    ImageStoreError,
    ImageStoreInterface,
    ImageTooLargeError,
    ImageUploadError,
    InvalidPayloadError,
    SaveImageResult,
    ShowItemResult,
)
from tallyboard.services.image.local_store import LocalImageStore

__all__ = [
    # Interface and results
    "DeleteImageResult",
    "ImageStoreInterface",
    "SaveImageResult",
    "ShowItemResult",
    # Error strings
    "DELETE_FAILED",
    "INVALID_FILENAME",
    "INVALID_PAYLOAD",
    "NOT_FOUND",
    # Exceptions
    "ImageProcessingError",
    "ImageStoreError",
    "ImageTooLargeError",
    "ImageUploadError",
    "InvalidPayloadError",
    # Implementations
    "HttpImageStore",
    "InProcessImageStore",
    "LocalImageStore",
    # Compression
    "ImageCompressor",
    "ImageInfo",
    "human_file_size",
]
