"""Services package."""

from tallyboard.services.image import (
    HttpImageStore,
    ImageCompressor,
    ImageStoreInterface,
    InProcessImageStore,
    LocalImageStore,
)
from tallyboard.services.storage import (
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    QuotaExceededError,
    StorageError,
)

__all__ = [
    # Image services
    "HttpImageStore",
    "ImageCompressor",
    "ImageStoreInterface",
    "InProcessImageStore",
    "LocalImageStore",
    # Storage services
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "QuotaExceededError",
    "StorageError",
]
