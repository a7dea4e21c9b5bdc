"""
Data types for the shot list layout pipeline.

- ShotRecord: one image with its scene, framing size, description and name
- SceneGroup: a contiguous run of shots sharing a scene label
- Rect: a rectangle in page points, top-left origin
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ShotRecord:
    """A single storyboard frame to place on the page."""

    image: str                 # Image URL
    scene: str = ""            # Scene label ("" = no scene)
    size: str = ""             # Framing label (e.g. "WS", "CU")
    description: str = ""
    name: str = ""             # Backfilled to "Shot N" by the normalizer


@dataclass(frozen=True)
class SceneGroup:
    """Contiguous shots sharing one scene label. Never empty."""

    scene: str
    shots: Tuple[ShotRecord, ...]

    def __post_init__(self):
        if not self.shots:
            raise ValueError("SceneGroup requires at least one shot")

    @property
    def has_header(self) -> bool:
        """Groups without a scene label get no header band."""
        return bool(self.scene)

    def __len__(self) -> int:
        return len(self.shots)


@dataclass(frozen=True)
class Rect:
    """Rectangle in PDF points. y grows downward from the top edge of the page."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def inset(self, amount: float) -> "Rect":
        return Rect(
            self.x + amount,
            self.y + amount,
            self.width - 2 * amount,
            self.height - 2 * amount,
        )

    def overlaps(self, other: "Rect", tolerance: float = 1e-6) -> bool:
        """True if the interiors intersect; shared edges do not count."""
        return (
            self.x < other.right - tolerance
            and other.x < self.right - tolerance
            and self.y < other.bottom - tolerance
            and other.y < self.bottom - tolerance
        )

    def contains(self, other: "Rect", tolerance: float = 1e-6) -> bool:
        return (
            other.x >= self.x - tolerance
            and other.y >= self.y - tolerance
            and other.right <= self.right + tolerance
            and other.bottom <= self.bottom + tolerance
        )
