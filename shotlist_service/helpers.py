"""
Helper functions for naming generated documents.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Optional

FILENAME_PREFIX = "shotlist"
MAX_TITLE_LENGTH = 40


def sanitize_for_path(text: str) -> str:
    """
    Sanitize text for use in filesystem paths.

    Replaces special characters (except word chars, spaces, hyphens) and
    spaces with underscores, then collapses runs of underscores.

    Args:
        text: Raw text (document title)

    Returns:
        Sanitized string safe for filesystem paths

    Example:
        >>> sanitize_for_path("Night Exterior (Take 2)")
        "Night_Exterior_Take_2"
    """
    cleaned = re.sub(r'[^\w\s-]', '_', text, flags=re.ASCII)
    cleaned = cleaned.replace(" ", "_")
    return re.sub(r'_+', '_', cleaned).strip("_")


def build_filename(title: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """
    Collision-resistant filename for a generated PDF.

    Combines a UTC timestamp with microseconds and a random suffix so that
    concurrent requests never pick the same name.

    Example:
        shotlist-Night_Shoot-20250101T120000123456Z-1a2b3c4d.pdf
    """
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y%m%dT%H%M%S%fZ")
    suffix = uuid.uuid4().hex[:8]
    parts = [FILENAME_PREFIX]
    if title:
        slug = sanitize_for_path(title)[:MAX_TITLE_LENGTH].strip("_")
        if slug:
            parts.append(slug)
    parts.extend([stamp, suffix])
    return "-".join(parts) + ".pdf"
