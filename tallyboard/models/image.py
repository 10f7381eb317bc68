"""
Image References

A counter or ledger item may point at an image in one of two ways:

- InlineImage: an embedded ``data:`` URI that only lives for the session.
- StoredImage: a reference to a file in the upload directory, either a
  store-relative URL (``/assets/uploads/<name>``) or a ``file://`` URL.

On the wire (persisted JSON, HTTP) both are plain strings; inside the
application they are always one of these two types.
"""

import base64
import binascii
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any, Literal, Optional, Union
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


DATA_URI_PREFIX = "data:"


class InlineImage(BaseModel):
    """An image embedded in the state as a data URI."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["inline"] = "inline"
    data_uri: str = Field(
        ...,
        description="Full data URI, e.g. data:image/png;base64,...."
    )

    @field_validator("data_uri")
    @classmethod
    def validate_data_uri(cls, v: str) -> str:
        if not v.startswith(DATA_URI_PREFIX):
            raise ValueError("Inline images must be data URIs")
        return v

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str = "image/jpeg") -> "InlineImage":
        encoded = base64.b64encode(data).decode("ascii")
        return cls(data_uri=f"{DATA_URI_PREFIX}{mime_type};base64,{encoded}")

    @property
    def mime_type(self) -> str:
        header = self.data_uri[len(DATA_URI_PREFIX):].split(",", 1)[0]
        return header.split(";", 1)[0] or "application/octet-stream"

    def to_bytes(self) -> bytes:
        """Decode the base64 payload."""
        return decode_data_uri(self.data_uri)

    def to_wire(self) -> str:
        return self.data_uri


class StoredImage(BaseModel):
    """An image persisted by the image store."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["stored"] = "stored"
    reference: str = Field(
        ...,
        min_length=1,
        description="Store-relative URL, file:// URL or absolute path"
    )

    @property
    def filename(self) -> str:
        """Basename of the referenced file."""
        return reference_basename(self.reference)

    def to_wire(self) -> str:
        return self.reference


ImageRef = Union[InlineImage, StoredImage]


def decode_data_uri(data_uri: str) -> bytes:
    """
    Decode the base64 part of ``data:<mime>;base64,<data>``.

    Raises:
        ValueError: If the string is not a base64 data URI
    """
    if not data_uri.startswith(DATA_URI_PREFIX) or "," not in data_uri:
        raise ValueError("Not a data URI")
    header, payload = data_uri.split(",", 1)
    if ";base64" not in header:
        raise ValueError("Only base64 data URIs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def reference_basename(reference: str) -> str:
    """
    Reduce a filename, path or URL to its final path component.

    Both ``/`` and ``\\`` count as separators so a Windows-style
    ``..\\..\\x`` is reduced the same way as ``../../x``.
    """
    path = reference
    if "://" in reference:
        path = unquote(urlparse(reference).path)
    return PureWindowsPath(PurePosixPath(path).name).name


def parse_image_ref(value: Any) -> Optional[ImageRef]:
    """Turn a wire value (string, dict or model) into an ImageRef."""
    if value is None or value == "":
        return None
    if isinstance(value, (InlineImage, StoredImage)):
        return value
    if isinstance(value, str):
        if value.startswith(DATA_URI_PREFIX):
            return InlineImage(data_uri=value)
        return StoredImage(reference=value)
    if isinstance(value, dict):
        if value.get("kind") == "inline":
            return InlineImage(**value)
        if value.get("kind") == "stored":
            return StoredImage(**value)
    raise ValueError(f"Unrecognised image reference: {value!r}")


def image_to_wire(image: Optional[ImageRef], strip_inline: bool = False) -> Optional[str]:
    """Serialize an ImageRef; inline images become None when strip_inline is set."""
    if image is None:
        return None
    if strip_inline and isinstance(image, InlineImage):
        return None
    return image.to_wire()
