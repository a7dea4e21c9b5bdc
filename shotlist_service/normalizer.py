"""
Input normalization for shot list requests.

Turns the raw per-shot fields of a request into an aligned sequence of
ShotRecord objects. Each field may be a native list, a single string packed
with the join separator, or absent.

Alignment policy: positions are preserved. Entries are trimmed but empty
entries stay in place as "" so that filtering one list can never shift the
shots of another list out of alignment.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .errors import ShotListValidationError
from .types import ShotRecord

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "|||"

# Fields that bound the usable shot count when supplied
COUNTED_FIELDS = ("images", "scenes", "sizes", "descriptions")
OPTIONAL_FIELDS = ("scenes", "sizes", "descriptions")


def split_field(value: Any, separator: str = DEFAULT_SEPARATOR) -> Optional[List[str]]:
    """
    Split a raw field into a list of trimmed strings.

    Args:
        value: None, a list of values, or a string packed with ``separator``
        separator: Multi-character join token

    Returns:
        None when the field is absent, otherwise the list of trimmed entries
        with empty entries preserved as "". A blank string yields [].

    Example:
        >>> split_field("a.jpg ||| ||| c.jpg")
        ['a.jpg', '', 'c.jpg']
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ["" if item is None else str(item).strip() for item in value]
    text = str(value)
    if not text.strip():
        return []
    return [part.strip() for part in text.split(separator)]


def default_shot_name(index: int) -> str:
    """Placeholder name for the shot at 0-based ``index``."""
    return f"Shot {index + 1}"


def normalize(
    raw_fields: Mapping[str, Any],
    separator: str = DEFAULT_SEPARATOR,
) -> List[ShotRecord]:
    """
    Build aligned ShotRecords from raw request fields.

    ``images`` is required. ``scenes``, ``sizes`` and ``descriptions`` bound
    the usable count only when supplied; absent (or blank) ones default every
    shot to "". ``names`` never bounds the count and blank names are
    backfilled with "Shot N".

    Args:
        raw_fields: Mapping with keys images, scenes, sizes, descriptions, names
        separator: Join token for packed string fields

    Returns:
        List of ShotRecord, length = min length of the supplied counted fields

    Raises:
        ShotListValidationError: no images, or zero usable shots
    """
    lists: Dict[str, Optional[List[str]]] = {
        key: split_field(raw_fields.get(key), separator)
        for key in COUNTED_FIELDS + ("names",)
    }
    field_lengths = {key: len(values or []) for key, values in lists.items()}

    images = lists["images"]
    if not images or not any(images):
        raise ShotListValidationError("no images provided", field_lengths)

    supplied = [lists[key] for key in COUNTED_FIELDS if lists[key]]
    usable_count = min(len(values) for values in supplied)
    if usable_count == 0:
        raise ShotListValidationError("no usable shots after aligning fields", field_lengths)

    dropped = max(len(values) for values in supplied) - usable_count
    if dropped:
        logger.info(
            f"Aligned shot fields to {usable_count} entries "
            f"(dropped {dropped} surplus, lengths={field_lengths})"
        )

    def column(key: str) -> Sequence[str]:
        values = lists[key]
        if not values:
            return [""] * usable_count
        return values[:usable_count]

    names = lists["names"] or []
    shots = []
    for index, (image, scene, size, description) in enumerate(
        zip(column("images"), column("scenes"), column("sizes"), column("descriptions"))
    ):
        name = names[index] if index < len(names) else ""
        shots.append(
            ShotRecord(
                image=image,
                scene=scene,
                size=size,
                description=description,
                name=name or default_shot_name(index),
            )
        )
    return shots


def shots_to_fields(shots: Sequence[ShotRecord]) -> Dict[str, List[str]]:
    """Inverse of normalize: parallel native lists for a shot sequence."""
    return {
        "images": [s.image for s in shots],
        "scenes": [s.scene for s in shots],
        "sizes": [s.size for s in shots],
        "descriptions": [s.description for s in shots],
        "names": [s.name for s in shots],
    }
