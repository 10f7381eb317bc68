"""
Directory-Backed Image Store

Both transports (in-process and HTTP) delegate to LocalImageStore, so
saving, deleting and path checks behave identically no matter how the
caller reaches the store.

CRITICAL: Nothing is ever written or deleted outside the upload
directory. Every caller-supplied name is reduced to its basename and
the resolved path is checked before any filesystem call.
"""

import os
import random
import re
import subprocess
import sys
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

from tallyboard.audit import AuditLogger, get_logger
from tallyboard.models.audit import AuditEventBuilder
from tallyboard.models.image import decode_data_uri, reference_basename
from tallyboard.services.image.interface import (
    DELETE_FAILED,
    INVALID_FILENAME,
    INVALID_PAYLOAD,
    NOT_FOUND,
    WRITE_FAILED,
    DeleteImageResult,
    ImagePayload,
    InvalidPayloadError,
    SaveImageResult,
    ShowItemResult,
)


logger = get_logger(__name__)

_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


def reveal_in_file_manager(path: Path) -> None:
    """Open the OS file manager with the given file selected."""
    if sys.platform.startswith("win"):
        subprocess.Popen(["explorer", f"/select,{path}"])
    elif sys.platform == "darwin":
        subprocess.Popen(["open", "-R", str(path)])
    else:
        subprocess.Popen(["xdg-open", str(path.parent)])


class LocalImageStore:
    """
    Saves and deletes image files in a single upload directory.

    Filenames follow ``img_<unix-ms>_<6-digit random><ext>``.
    """

    def __init__(
        self,
        uploads_dir: Path,
        assets_dir: Optional[Path] = None,
        audit_logger: Optional[AuditLogger] = None,
        opener: Optional[Callable[[Path], None]] = None,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
    ):
        self._uploads_dir = Path(uploads_dir).resolve()
        self._assets_dir = Path(assets_dir).resolve() if assets_dir else self._uploads_dir.parent
        if not self._uploads_dir.is_relative_to(self._assets_dir):
            raise ValueError("uploads_dir must live inside assets_dir")
        self._uploads_dir.mkdir(parents=True, exist_ok=True)
        self._audit_logger = audit_logger
        self._opener = opener or reveal_in_file_manager
        self._clock = clock or time.time
        self._rng = rng or random.SystemRandom()

    @property
    def uploads_dir(self) -> Path:
        return self._uploads_dir

    @property
    def assets_dir(self) -> Path:
        return self._assets_dir

    @property
    def url_prefix(self) -> str:
        """Store-relative URL prefix, e.g. /assets/uploads/."""
        relative = self._uploads_dir.relative_to(self._assets_dir).as_posix()
        return f"/assets/{relative}/" if relative != "." else "/assets/"

    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}{filename}"

    # ------------------------------------------------------------------
    #  Naming and path safety
    # ------------------------------------------------------------------

    def generate_filename(self, original_name: str) -> str:
        """
        Build a collision-resistant filename.

        Only the extension of the caller's name survives; anything that is
        not a short alphanumeric extension is dropped.
        """
        ext = Path(reference_basename(original_name or "")).suffix
        if not _EXTENSION_RE.match(ext):
            ext = ""
        timestamp = int(self._clock() * 1000)
        suffix = self._rng.randrange(1_000_000)
        return f"img_{timestamp}_{suffix:06d}{ext.lower()}"

    def safe_path(self, reference: str) -> Optional[Path]:
        """
        Resolve a filename or URL to a path strictly inside the upload directory.

        Returns None when the reference cannot be made safe.
        """
        if not isinstance(reference, str):
            return None
        name = reference_basename(reference)
        if name in ("", ".", ".."):
            return None
        candidate = (self._uploads_dir / name).resolve()
        if candidate == self._uploads_dir or not candidate.is_relative_to(self._uploads_dir):
            return None
        return candidate

    def _reject(self, reference: str) -> None:
        logger.warning("image_path_rejected", requested=reference)
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.path_rejected(str(reference)))

    # ------------------------------------------------------------------
    #  Save / delete
    # ------------------------------------------------------------------

    @staticmethod
    def coerce_payload(payload: ImagePayload) -> bytes:
        """
        Accept raw bytes or a base64 data URI.

        Raises:
            InvalidPayloadError: For anything else, or an empty payload
        """
        if isinstance(payload, (bytes, bytearray, memoryview)):
            data = bytes(payload)
        elif isinstance(payload, str):
            try:
                data = decode_data_uri(payload)
            except ValueError as e:
                raise InvalidPayloadError(str(e)) from e
        else:
            raise InvalidPayloadError(f"Unsupported payload type: {type(payload).__name__}")
        if not data:
            raise InvalidPayloadError("Empty payload")
        return data

    def save_image(
        self,
        original_name: str,
        payload: ImagePayload,
        keep_name: bool = False,
    ) -> SaveImageResult:
        """
        Write an image into the upload directory.

        Args:
            original_name: Caller's filename (only the extension is used
                unless keep_name is set)
            payload: Raw bytes or a base64 data URI
            keep_name: Store under the basename of original_name instead
                of a generated name

        Returns:
            SaveImageResult with a store-relative url
        """
        try:
            data = self.coerce_payload(payload)
        except InvalidPayloadError as e:
            logger.warning("image_payload_invalid", name=original_name, error=str(e))
            return SaveImageResult(ok=False, error=INVALID_PAYLOAD)

        if keep_name:
            path = self.safe_path(original_name)
            if path is None:
                self._reject(original_name)
                return SaveImageResult(ok=False, error=INVALID_FILENAME)
        else:
            path = self._uploads_dir / self.generate_filename(original_name)

        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error("image_write_failed", path=str(path), error=str(e))
            return SaveImageResult(ok=False, error=WRITE_FAILED)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.image_saved(path.name, len(data)))

        return SaveImageResult(
            ok=True,
            url=self.url_for(path.name),
            filename=path.name,
            path=str(path),
        )

    def delete_image(self, reference: str) -> DeleteImageResult:
        """
        Delete a file from the upload directory.

        The reference may be a bare filename, a store-relative URL or a
        file:// URL; only its basename is used.
        """
        path = self.safe_path(reference)
        if path is None:
            self._reject(reference)
            return DeleteImageResult(ok=False, error=INVALID_FILENAME)

        if not path.is_file():
            return DeleteImageResult(ok=False, error=NOT_FOUND)

        try:
            path.unlink()
        except FileNotFoundError:
            return DeleteImageResult(ok=False, error=NOT_FOUND)
        except OSError as e:
            logger.error("image_delete_failed", path=str(path), error=str(e))
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.image_delete_failed(reference, str(e)))
            return DeleteImageResult(ok=False, error=DELETE_FAILED)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.image_deleted(path.name))
        return DeleteImageResult(ok=True)

    # ------------------------------------------------------------------
    #  Reveal in file manager
    # ------------------------------------------------------------------

    def resolve_reference(self, reference: str) -> Optional[Path]:
        """
        Turn a display reference into an absolute path.

        - file:// URLs and absolute paths outside /assets/ are used as-is
        - /assets/... and other relative references resolve under the
          assets directory and may not escape it
        """
        if not reference:
            return None

        if reference.startswith("file://"):
            return Path(url2pathname(urlparse(reference).path)).resolve()

        normalized = reference.replace("\\", "/")
        if normalized.startswith("/assets/") or not os.path.isabs(reference):
            relative = normalized.lstrip("/")
            if relative.startswith("assets/"):
                relative = relative[len("assets/"):]
            candidate = (self._assets_dir / relative).resolve()
            if not candidate.is_relative_to(self._assets_dir):
                return None
            return candidate

        return Path(reference).resolve()

    def show_in_file_manager(self, path_or_url: str) -> ShowItemResult:
        """Reveal a stored file; fails with 'not found' if it is absent."""
        path = self.resolve_reference(path_or_url)
        if path is None:
            self._reject(path_or_url)
            return ShowItemResult(ok=False, error=INVALID_FILENAME)
        if not path.exists():
            return ShowItemResult(ok=False, error=NOT_FOUND)
        try:
            self._opener(path)
        except OSError as e:
            logger.warning("reveal_failed", path=str(path), error=str(e))
            return ShowItemResult(ok=False, path=str(path), error=str(e))
        return ShowItemResult(ok=True, path=str(path))
