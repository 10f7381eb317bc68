"""
In-Process Image Store Transport

Used when the application runs inside an embedding shell that owns the
filesystem (the desktop build). Saved images are referenced by their
file:// URI.

Besides the Python interface, this class exposes the camelCase bridge
the embedding shell calls with plain dicts:

    saveImage({name, base64})  -> {ok, url, filename}
    deleteImage({filename})    -> {ok, error?}
    showItem(path)             -> {ok, error?}
    showRelative(relPath)      -> {ok, path?, error?}
"""

from pathlib import Path
from typing import Any, Optional

from tallyboard.services.image.interface import (
    DeleteImageResult,
    ImagePayload,
    ImageStoreInterface,
    SaveImageResult,
    ShowItemResult,
)
from tallyboard.services.image.local_store import LocalImageStore


class InProcessImageStore(ImageStoreInterface):
    """Calls LocalImageStore directly, returning file:// references."""

    def __init__(self, store: LocalImageStore):
        self._store = store

    @property
    def local_store(self) -> LocalImageStore:
        return self._store

    def save_image(self, name: str, payload: ImagePayload) -> SaveImageResult:
        result = self._store.save_image(name, payload)
        if result.ok and result.path:
            result = result.model_copy(update={"url": Path(result.path).as_uri()})
        return result

    def delete_image(self, reference: str) -> DeleteImageResult:
        return self._store.delete_image(reference)

    def show_item(self, path: str) -> ShowItemResult:
        return self._store.show_in_file_manager(path)

    def show_relative(self, rel_path: str) -> ShowItemResult:
        return self._store.show_in_file_manager(rel_path)

    def reveal(self, reference: str) -> ShowItemResult:
        """Show a stored image reference, store-relative or file://, in its folder."""
        if reference.startswith(self._store.url_prefix):
            return self.show_relative(reference)
        return self.show_item(reference)

    # ------------------------------------------------------------------
    #  Bridge surface for the embedding shell
    # ------------------------------------------------------------------

    def saveImage(self, payload: Optional[dict[str, Any]]) -> dict[str, Any]:
        payload = payload or {}
        result = self.save_image(str(payload.get("name") or ""), payload.get("base64") or b"")
        return result.model_dump(exclude_none=True, exclude={"path"})

    def deleteImage(self, payload: Optional[dict[str, Any]]) -> dict[str, Any]:
        payload = payload or {}
        filename = payload.get("filename") or payload.get("url") or ""
        return self.delete_image(str(filename)).model_dump(exclude_none=True)

    def showItem(self, path: str) -> dict[str, Any]:
        return self.show_item(path).model_dump(exclude_none=True, exclude={"path"})

    def showRelative(self, rel_path: str) -> dict[str, Any]:
        return self.show_relative(rel_path).model_dump(exclude_none=True)
