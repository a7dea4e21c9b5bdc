"""
Image retrieval and normalization for shot cells.

Every image is downloaded with a bounded timeout, downscaled to a maximum
width (never enlarged) and re-encoded as JPEG before it reaches the PDF.
Any failure surfaces as ResourceFetchError so the renderer can leave the
cell's image area blank and carry on.
"""

import logging
from io import BytesIO
from typing import Optional

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from . import __version__
from .errors import ResourceFetchError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WIDTH = 1200
DEFAULT_QUALITY = 80
DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_BYTES = 20 * 1024 * 1024


def normalize_image(
    data: bytes,
    max_width: int = DEFAULT_MAX_WIDTH,
    quality: int = DEFAULT_QUALITY,
    source: str = "",
) -> bytes:
    """
    Downscale and re-encode raw image bytes as JPEG.

    Transparent images are flattened onto white.

    Raises:
        ResourceFetchError: bytes are not a decodable image, or exceed
            the decompression bomb pixel limit
    """
    try:
        with Image.open(BytesIO(data)) as opened:
            img = ImageOps.exif_transpose(opened)

            if img.mode in ("RGBA", "LA", "P"):
                rgba = img.convert("RGBA")
                background = Image.new("RGB", rgba.size, "white")
                background.paste(rgba, mask=rgba.split()[-1])
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")

            if img.width > max_width:
                new_height = max(1, round(img.height * max_width / img.width))
                img = img.resize((max_width, new_height), Image.LANCZOS)

            out = BytesIO()
            img.save(out, "JPEG", quality=quality)
            return out.getvalue()
    except Image.DecompressionBombError as e:
        raise ResourceFetchError(source, f"image too large: {e}") from e
    except (OSError, UnidentifiedImageError) as e:
        raise ResourceFetchError(source, f"undecodable image: {e}") from e


class ImageFetcher:
    """
    Downloads shot images over HTTP and normalizes them for embedding.

    Transport errors are retried once; HTTP error statuses are not.
    Bodies larger than ``max_bytes`` are rejected while streaming.
    Use as a context manager to close the underlying client.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_width: int = DEFAULT_MAX_WIDTH,
        quality: int = DEFAULT_QUALITY,
        max_bytes: int = DEFAULT_MAX_BYTES,
        client: Optional[httpx.Client] = None,
    ):
        self.max_width = max_width
        self.quality = quality
        self.max_bytes = max_bytes
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": f"shotlist-service/{__version__}"},
        )

    @classmethod
    def from_settings(cls, settings) -> "ImageFetcher":
        return cls(
            timeout=settings.image_fetch_timeout,
            max_width=settings.image_max_width,
            quality=settings.jpeg_quality,
            max_bytes=settings.image_max_bytes,
        )

    def __enter__(self) -> "ImageFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _too_large(self, url: str, size: int) -> ResourceFetchError:
        return ResourceFetchError(url, f"body of {size} bytes exceeds limit of {self.max_bytes} bytes")

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True
    )
    def _get(self, url: str) -> bytes:
        with self._client.stream("GET", url) as response:
            if not response.is_success:
                raise ResourceFetchError(url, f"HTTP {response.status_code}", response.status_code)

            declared = response.headers.get("Content-Length", "")
            if declared.isdigit() and int(declared) > self.max_bytes:
                raise self._too_large(url, int(declared))

            chunks = []
            received = 0
            for chunk in response.iter_bytes():
                received += len(chunk)
                if received > self.max_bytes:
                    raise self._too_large(url, received)
                chunks.append(chunk)
            return b"".join(chunks)

    def download(self, url: str) -> bytes:
        """
        Fetch raw bytes for ``url``.

        Raises:
            ResourceFetchError: empty URL, transport failure, timeout,
                non-2xx status or a body over ``max_bytes``
        """
        if not url:
            raise ResourceFetchError(url, "empty image URL")

        try:
            return self._get(url)
        except httpx.TimeoutException as e:
            raise ResourceFetchError(url, f"timed out: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ResourceFetchError(url, f"{type(e).__name__}: {e}") from e

    def fetch(self, url: str) -> bytes:
        """Download ``url`` and return normalized JPEG bytes."""
        raw = self.download(url)
        data = normalize_image(raw, self.max_width, self.quality, source=url)
        logger.debug(f"Fetched {url}: {len(raw)} bytes -> {len(data)} bytes JPEG")
        return data
