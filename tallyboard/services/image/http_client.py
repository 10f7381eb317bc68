"""
HTTP Image Store Transport

Client for the local upload server (see tallyboard.server). Used when the
UI runs outside the embedding shell and cannot touch the filesystem.

No timeouts and no retries: a request either completes or fails, and
the caller branches on the result.
"""

import mimetypes
from typing import Optional

import requests

from tallyboard.audit import get_logger
from tallyboard.models.image import reference_basename
from tallyboard.services.image.interface import (
    INVALID_PAYLOAD,
    UNSUPPORTED,
    DeleteImageResult,
    ImagePayload,
    ImageStoreInterface,
    InvalidPayloadError,
    SaveImageResult,
    ShowItemResult,
)
from tallyboard.services.image.local_store import LocalImageStore


logger = get_logger(__name__)


def _error_from_response(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"http {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"http {response.status_code}"


class HttpImageStore(ImageStoreInterface):
    """Talks to POST /upload and POST /delete on the upload server."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None):
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    def save_image(self, name: str, payload: ImagePayload) -> SaveImageResult:
        try:
            data = LocalImageStore.coerce_payload(payload)
        except InvalidPayloadError as e:
            logger.warning("image_payload_invalid", name=name, error=str(e))
            return SaveImageResult(ok=False, error=INVALID_PAYLOAD)

        filename = reference_basename(name) or "upload.jpg"
        mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

        try:
            response = self._session.post(
                f"{self._base_url}/upload",
                files={"file": (filename, data, mime_type)},
            )
        except requests.RequestException as e:
            logger.warning("image_upload_request_failed", error=str(e))
            return SaveImageResult(ok=False, error=str(e))

        if not response.ok:
            return SaveImageResult(ok=False, error=_error_from_response(response))

        try:
            url = response.json()["url"]
        except (ValueError, KeyError, TypeError):
            return SaveImageResult(ok=False, error="malformed response")

        return SaveImageResult(ok=True, url=url, filename=reference_basename(url))

    def delete_image(self, reference: str) -> DeleteImageResult:
        if "/" in reference or "\\" in reference:
            body = {"url": reference}
        else:
            body = {"filename": reference}

        try:
            response = self._session.post(f"{self._base_url}/delete", json=body)
        except requests.RequestException as e:
            logger.warning("image_delete_request_failed", error=str(e))
            return DeleteImageResult(ok=False, error=str(e))

        if not response.ok:
            return DeleteImageResult(ok=False, error=_error_from_response(response))
        return DeleteImageResult(ok=True)

    def show_item(self, path: str) -> ShowItemResult:
        return ShowItemResult(ok=False, error=UNSUPPORTED)

    def show_relative(self, rel_path: str) -> ShowItemResult:
        return ShowItemResult(ok=False, error=UNSUPPORTED)
