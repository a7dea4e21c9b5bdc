"""
Global fixtures for shot list service tests.

Sets the output directory BEFORE any import of shotlist_service.app so the
cached settings and the /pdfs static mount point at a throwaway directory.
"""

import os
import tempfile
from io import BytesIO

# IMPORTANT: Set environment variables BEFORE any imports from shotlist_service.app
os.environ["OUTPUT_DIR"] = tempfile.mkdtemp(prefix="shotlist-test-")
os.environ["PUBLIC_BASE_URL"] = "https://shots.example.com"
os.environ["ENVIRONMENT"] = "development"
os.environ.pop("HEADER_FONT_PATH", None)

import pytest
from PIL import Image

from shotlist_service.errors import ResourceFetchError


def make_jpeg(width: int = 40, height: int = 30, color: str = "red") -> bytes:
    """Small in-memory JPEG."""
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="JPEG")
    return buf.getvalue()


class FakeFetcher:
    """
    Stands in for ImageFetcher without network access.

    URLs containing "missing" fail like a 404; everything else returns a JPEG.
    """

    def __init__(self):
        self.requested = []
        self.closed = False

    def fetch(self, url: str) -> bytes:
        self.requested.append(url)
        if not url or "missing" in url:
            raise ResourceFetchError(url, "HTTP 404", 404)
        return make_jpeg()

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def jpeg_bytes():
    return make_jpeg()


@pytest.fixture
def output_dir():
    return os.environ["OUTPUT_DIR"]
