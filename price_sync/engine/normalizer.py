"""
Card Price Sync - Variant Normalizer

Remote product names embed the parallel/variant in brackets:
    "Aaron Judge [Gold Refractor] #99"  -> variant "Gold Refractor"
    "Aaron Judge #99"                   -> no variant (base product)

normalize_variant is a heuristic, not a dictionary lookup. Stripping a single
trailing "s" turns "Refractors" into "refractor" but also "Bordered Glass" into
"bordered glas"; both sides go through the same function so the comparison
stays consistent.
"""

from __future__ import annotations

import re

_BRACKETED = re.compile(r"\[([^\]]+)\]")
_WHITESPACE = re.compile(r"\s+")


def extract_variant(display_name: str | None) -> str | None:
    """
    Return the contents of the first [...] span, or None for a base product.

    Examples:
        >>> extract_variant("Aaron Judge [Gold Refractor] #99")
        'Gold Refractor'
        >>> extract_variant("Aaron Judge #99") is None
        True
    """
    if not display_name:
        return None
    match = _BRACKETED.search(display_name)
    return match.group(1) if match else None


def normalize_variant(text: str | None) -> str:
    """
    Canonical form for variant comparison.

    Lower-cases, collapses whitespace runs, trims, then strips one trailing
    pluralizing "s". None or empty input yields "".

    Examples:
        >>> normalize_variant("Gold  Refractors")
        'gold refractor'
    """
    if not text:
        return ""
    canonical = _WHITESPACE.sub(" ", text.lower()).strip()
    if canonical.endswith("s"):
        canonical = canonical[:-1]
    return canonical
