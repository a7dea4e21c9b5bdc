"""
Fixtures for unit tests of the layout pipeline.
"""

import pytest

from shotlist_service.config import ShotListSettings
from shotlist_service.layout import PageGeometry
from shotlist_service.types import ShotRecord


@pytest.fixture
def a4():
    """A4 page with the default 40pt margin."""
    return PageGeometry.for_page_size("a4", 40)


@pytest.fixture
def make_settings(tmp_path):
    """Build settings with overrides, writing into a per-test directory."""

    def _make(**overrides):
        values = {
            "output_dir": str(tmp_path / "pdfs"),
            "public_base_url": "https://shots.example.com",
        }
        values.update(overrides)
        return ShotListSettings(**values)

    return _make


@pytest.fixture
def make_shots():
    """Shots for a list of scene labels, named after their position."""

    def _make(scenes):
        return [
            ShotRecord(
                image=f"https://img.example.com/{i + 1}.jpg",
                scene=scene,
                size="WS",
                description=f"Description {i + 1}",
                name=f"Shot {i + 1}",
            )
            for i, scene in enumerate(scenes)
        ]

    return _make
