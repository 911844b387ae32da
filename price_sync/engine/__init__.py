from price_sync.engine.matcher import (
    LocalCard,
    MatchReason,
    MatchResult,
    ProductCandidate,
    build_search_query,
    match_card,
    variants_match,
)
from price_sync.engine.normalizer import extract_variant, normalize_variant

__all__ = [
    "LocalCard",
    "MatchReason",
    "MatchResult",
    "ProductCandidate",
    "build_search_query",
    "extract_variant",
    "match_card",
    "normalize_variant",
    "variants_match",
]
