"""
Unit tests for shotlist_service/images.py

Uses httpx.MockTransport so no request leaves the process.
"""

import struct
import zlib
from io import BytesIO
from unittest.mock import MagicMock

import httpx
import pytest
from PIL import Image

from shotlist_service.errors import ResourceFetchError
from shotlist_service.images import ImageFetcher, normalize_image
from shotlist_service.renderer import CellRenderer
from shotlist_service.surface import PdfSurface
from shotlist_service.types import Rect, ShotRecord


def make_png(width: int, height: int, mode: str = "RGB") -> bytes:
    buf = BytesIO()
    color = (0, 128, 255, 0) if mode == "RGBA" else (0, 128, 255)
    Image.new(mode, (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))


def make_oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """Header-only PNG declaring dimensions far past Pillow's pixel limit."""
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + png_chunk(b"IHDR", header)
        + png_chunk(b"IDAT", zlib.compress(b"\x00"))
        + png_chunk(b"IEND", b"")
    )


def fetcher_for(handler, **kwargs) -> ImageFetcher:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ImageFetcher(client=client, **kwargs)


class TestNormalizeImage:
    """Tests for normalize_image function."""

    def test_downscales_wide_images(self):
        data = normalize_image(make_png(2000, 1000), max_width=1200)

        with Image.open(BytesIO(data)) as img:
            assert img.format == "JPEG"
            assert img.size == (1200, 600)

    def test_never_upscales(self):
        data = normalize_image(make_png(40, 30), max_width=1200)

        with Image.open(BytesIO(data)) as img:
            assert img.size == (40, 30)

    def test_transparency_flattened(self):
        data = normalize_image(make_png(20, 20, mode="RGBA"))

        with Image.open(BytesIO(data)) as img:
            assert img.mode == "RGB"

    def test_garbage_raises_fetch_error(self):
        with pytest.raises(ResourceFetchError) as exc_info:
            normalize_image(b"<html>not an image</html>", source="https://x/1.jpg")
        assert exc_info.value.url == "https://x/1.jpg"
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_pixel_limit_raises_fetch_error(self):
        with pytest.raises(ResourceFetchError) as exc_info:
            normalize_image(make_oversized_png(), source="https://x/huge.png")

        assert "too large" in exc_info.value.reason
        assert isinstance(exc_info.value.__cause__, Image.DecompressionBombError)


class TestImageFetcher:
    """Tests for ImageFetcher."""

    def test_fetch_returns_jpeg(self, jpeg_bytes):
        fetcher = fetcher_for(lambda request: httpx.Response(200, content=jpeg_bytes))

        data = fetcher.fetch("https://img.example.com/1.jpg")
        assert data[:2] == b"\xff\xd8"

    def test_http_error_status(self):
        fetcher = fetcher_for(lambda request: httpx.Response(404))

        with pytest.raises(ResourceFetchError) as exc_info:
            fetcher.fetch("https://img.example.com/gone.jpg")
        assert exc_info.value.status_code == 404

    def test_http_error_status_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(500)

        with pytest.raises(ResourceFetchError):
            fetcher_for(handler).download("https://img.example.com/1.jpg")
        assert len(calls) == 1

    def test_undecodable_body(self):
        fetcher = fetcher_for(lambda request: httpx.Response(200, content=b"garbage"))

        with pytest.raises(ResourceFetchError) as exc_info:
            fetcher.fetch("https://img.example.com/1.jpg")
        assert "undecodable" in exc_info.value.reason

    def test_transport_error_retried_once(self):
        calls = []

        def handler(request):
            calls.append(request.url)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ResourceFetchError):
            fetcher_for(handler).download("https://img.example.com/1.jpg")
        assert len(calls) == 2

    def test_transport_error_then_success(self, jpeg_bytes):
        calls = []

        def handler(request):
            calls.append(request.url)
            if len(calls) == 1:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(200, content=jpeg_bytes)

        assert fetcher_for(handler).download("https://img.example.com/1.jpg") == jpeg_bytes
        assert len(calls) == 2

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(ResourceFetchError) as exc_info:
            fetcher_for(handler).download("https://img.example.com/1.jpg")
        assert "timed out" in exc_info.value.reason

    def test_empty_url(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(ResourceFetchError):
            fetcher_for(handler).download("")

    def test_injected_client_not_closed(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        with ImageFetcher(client=client):
            pass
        assert not client.is_closed

    def test_from_settings(self, make_settings):
        fetcher = ImageFetcher.from_settings(
            make_settings(image_max_width=800, jpeg_quality=70, image_max_bytes=4096)
        )
        try:
            assert fetcher.max_width == 800
            assert fetcher.quality == 70
            assert fetcher.max_bytes == 4096
        finally:
            fetcher.close()

    def test_body_over_limit_rejected(self):
        fetcher = fetcher_for(lambda request: httpx.Response(200, content=b"\xff" * 4096), max_bytes=1024)

        with pytest.raises(ResourceFetchError) as exc_info:
            fetcher.download("https://img.example.com/big.jpg")
        assert "exceeds limit" in exc_info.value.reason

    def test_declared_length_over_limit_rejected(self):
        def handler(request):
            return httpx.Response(200, headers={"Content-Length": "999999"}, content=b"\xff")

        with pytest.raises(ResourceFetchError) as exc_info:
            fetcher_for(handler, max_bytes=1024).download("https://img.example.com/big.jpg")
        assert "999999" in exc_info.value.reason

    def test_oversized_image_leaves_cell_blank(self):
        """A pixel-bomb image is reported as missing, the caption still draws."""
        fetcher = fetcher_for(lambda request: httpx.Response(200, content=make_oversized_png()))
        surface = MagicMock(spec=PdfSurface)
        surface.draw_text.return_value = 9.6
        shot = ShotRecord(image="https://img.example.com/huge.png", size="WS", name="Shot 1")

        drawn = CellRenderer(surface, fetcher).render_cell(
            shot, Rect(40, 70, 257.6, 150), Rect(40, 220, 257.6, 30)
        )

        assert drawn is False
        surface.draw_image_fit.assert_not_called()
        assert surface.draw_text.call_count == 2
