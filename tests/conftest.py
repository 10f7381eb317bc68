"""Shared fixtures for the Tallyboard tests."""

from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from tallyboard.audit import AuditLogger
from tallyboard.services.image import InProcessImageStore, LocalImageStore
from tallyboard.services.storage import InMemoryStore


def make_image(fmt: str = "PNG", size: tuple[int, int] = (16, 16), mode: str = "RGB") -> bytes:
    """Encode a solid-colour test image."""
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    img = Image.new(mode, size, color)
    out = BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


class FakeClock:
    """Deterministic time.time() replacement, in seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> None:
        self.now += seconds


@pytest.fixture
def audit_logger():
    logger = AuditLogger()
    logger.keep_history()
    return logger


@pytest.fixture
def assets_dir(tmp_path) -> Path:
    return tmp_path / "assets"


@pytest.fixture
def revealed():
    """Paths passed to the file-manager opener."""
    return []


@pytest.fixture
def local_store(assets_dir, audit_logger, revealed) -> LocalImageStore:
    return LocalImageStore(
        assets_dir / "uploads",
        assets_dir=assets_dir,
        audit_logger=audit_logger,
        opener=revealed.append,
    )


@pytest.fixture
def in_process_store(local_store) -> InProcessImageStore:
    return InProcessImageStore(local_store)


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image("PNG")


@pytest.fixture
def image_factory():
    return make_image
