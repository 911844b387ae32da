"""Tests for variant extraction and normalisation (engine/normalizer.py)."""

from __future__ import annotations

import pytest

from price_sync.engine.normalizer import extract_variant, normalize_variant


class TestExtractVariant:

    def test_bracketed_variant_is_returned(self) -> None:
        assert extract_variant("Aaron Judge [Gold Refractor] #99") == "Gold Refractor"

    def test_no_brackets_means_base_product(self) -> None:
        assert extract_variant("Aaron Judge #99") is None

    def test_first_bracketed_span_wins(self) -> None:
        assert extract_variant("Shohei Ohtani [Refractor] [Variation] #1") == "Refractor"

    def test_empty_and_none_names(self) -> None:
        assert extract_variant("") is None
        assert extract_variant(None) is None

    def test_empty_brackets_are_not_a_variant(self) -> None:
        """The pattern needs at least one character between the brackets."""
        assert extract_variant("Aaron Judge [] #99") is None


class TestNormalizeVariant:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Refractors", "refractor"),
            ("Gold Refractor", "gold refractor"),
            ("  Gold   Refractors  ", "gold refractor"),
            ("GOLD\tWAVE\nREFRACTORS", "gold wave refractor"),
        ],
    )
    def test_canonical_forms(self, raw: str, expected: str) -> None:
        assert normalize_variant(raw) == expected

    def test_only_one_trailing_s_is_stripped(self) -> None:
        assert normalize_variant("Glasss") == "glass"

    def test_none_and_empty_normalise_to_empty_string(self) -> None:
        assert normalize_variant(None) == ""
        assert normalize_variant("") == ""
        assert normalize_variant("   ") == ""

    def test_heuristic_strips_non_plural_s(self) -> None:
        """Known false positive: a word that naturally ends in 's' loses it."""
        assert normalize_variant("Bordered Glass") == "bordered glas"
