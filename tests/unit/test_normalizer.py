"""
Unit tests for shotlist_service/normalizer.py

Tests field splitting, alignment to the shortest supplied list, name
backfilling and validation failures.
"""

import pytest

from shotlist_service.errors import ShotListValidationError
from shotlist_service.normalizer import (
    default_shot_name,
    normalize,
    shots_to_fields,
    split_field,
)


class TestSplitField:
    """Tests for split_field function."""

    def test_absent_field_is_none(self):
        assert split_field(None) is None

    def test_blank_string_is_empty_list(self):
        assert split_field("") == []
        assert split_field("   ") == []

    def test_splits_on_separator_and_trims(self):
        assert split_field(" a.jpg |||b.jpg||| c.jpg ") == ["a.jpg", "b.jpg", "c.jpg"]

    def test_preserves_empty_positions(self):
        """Empty entries stay in place so other lists keep their alignment."""
        assert split_field("a||| |||c") == ["a", "", "c"]

    def test_native_list_is_trimmed(self):
        assert split_field([" a ", None, "b"]) == ["a", "", "b"]

    def test_single_value_without_separator(self):
        assert split_field("https://x.com/a,b.jpg") == ["https://x.com/a,b.jpg"]

    def test_custom_separator(self):
        assert split_field("a;;b", separator=";;") == ["a", "b"]


class TestNormalize:
    """Tests for normalize function."""

    def test_single_image_without_other_fields(self):
        """One image and nothing else yields one unlabelled shot named Shot 1."""
        shots = normalize({"images": "https://img.example.com/1.jpg"})

        assert len(shots) == 1
        assert shots[0].image == "https://img.example.com/1.jpg"
        assert shots[0].scene == ""
        assert shots[0].size == ""
        assert shots[0].description == ""
        assert shots[0].name == "Shot 1"

    def test_usable_count_is_minimum_of_supplied_lists(self):
        shots = normalize({
            "images": ["a", "b", "c", "d"],
            "scenes": ["S1", "S1", "S2"],
            "sizes": ["WS", "CU", "MS", "ECU", "OTS"],
            "descriptions": ["one", "two", "three", "four"],
        })

        assert len(shots) == 3
        assert [s.image for s in shots] == ["a", "b", "c"]
        assert [s.size for s in shots] == ["WS", "CU", "MS"]

    def test_names_do_not_limit_count(self):
        shots = normalize({"images": ["a", "b", "c"], "names": ["Opening"]})

        assert len(shots) == 3
        assert [s.name for s in shots] == ["Opening", "Shot 2", "Shot 3"]

    def test_blank_names_are_backfilled(self):
        shots = normalize({"images": "a|||b", "names": "|||Reverse"})
        assert [s.name for s in shots] == ["Shot 1", "Reverse"]

    def test_absent_optional_fields_default_to_empty(self):
        shots = normalize({"images": ["a", "b"], "scenes": ["INT", "EXT"]})

        assert [s.scene for s in shots] == ["INT", "EXT"]
        assert all(s.size == "" and s.description == "" for s in shots)

    def test_blank_optional_field_counts_as_absent(self):
        shots = normalize({"images": "a|||b", "sizes": ""})
        assert len(shots) == 2

    def test_empty_positions_stay_aligned(self):
        shots = normalize({
            "images": "a|||b|||c",
            "scenes": "A||| |||B",
            "descriptions": "first||| |||third",
        })

        assert [s.scene for s in shots] == ["A", "", "B"]
        assert [s.description for s in shots] == ["first", "", "third"]

    def test_missing_images_raises_with_field_lengths(self):
        with pytest.raises(ShotListValidationError) as exc_info:
            normalize({"scenes": ["A", "B"], "sizes": ["WS"]})

        error = exc_info.value
        assert error.field_lengths["images"] == 0
        assert error.field_lengths["scenes"] == 2
        assert error.field_lengths["sizes"] == 1
        assert error.to_dict()["error"] == "no images provided"

    def test_empty_images_string_raises(self):
        with pytest.raises(ShotListValidationError):
            normalize({"images": ""})

    def test_only_blank_image_entries_raises(self):
        with pytest.raises(ShotListValidationError):
            normalize({"images": " ||| "})

    def test_surplus_entries_dropped(self):
        shots = normalize({
            "images": ["a", "b"],
            "descriptions": ["one", "two", "three", "four"],
        })
        assert [s.description for s in shots] == ["one", "two"]

    def test_normalization_is_idempotent(self):
        """Re-normalizing normalized shots gives back the same shots."""
        shots = normalize({
            "images": "a|||b|||c",
            "scenes": "A|||A|||B",
            "sizes": "WS|||CU|||MS",
            "descriptions": "x|||y|||z",
            "names": "Wide",
        })

        assert normalize(shots_to_fields(shots)) == shots

    def test_default_shot_name_is_one_based(self):
        assert default_shot_name(0) == "Shot 1"
        assert default_shot_name(9) == "Shot 10"
