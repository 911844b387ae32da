"""
Card Price Sync - Product Matcher

Decides whether any remote search result is the same physical card as a local
catalog entry.

Policy is greedy and order-sensitive: the first candidate (in API order) that
carries the "#<card number>" token AND satisfies the variant rule wins. There
is no scoring, so identical API ordering always yields the identical match.

Variant rule:
- Local series with no variant suffix (base card) only accepts candidates with
  no bracketed variant.
- Local parallel series never accepts a base candidate; normalised variants
  match on equality or substring containment in either direction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence

import structlog
from pydantic import BaseModel, ConfigDict, Field

from price_sync.engine.normalizer import extract_variant, normalize_variant

logger = structlog.get_logger(__name__)


class ProductCandidate(Protocol):
    """Anything the search API returns that carries an id and a display name."""

    id: str
    product_name: str


class LocalCard(BaseModel):
    """A catalogued card as seen by the reconciler. Immutable."""

    model_config = ConfigDict(frozen=True)

    card_id: int
    card_number: str
    series_name: str
    set_name: str
    set_year: int | None = None
    player_names: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def set_display_name(self) -> str:
        """'2025 Topps Chrome' style name used by the remote catalog."""
        if self.set_year:
            return f"{self.set_year} {self.set_name}"
        return self.set_name

    @property
    def card_number_token(self) -> str:
        return f"#{self.card_number}"


class MatchReason(str, Enum):
    MATCHED = "matched"
    NO_RESULTS = "no_results"
    NO_PARALLEL_MATCH = "no_parallel_match"
    ERROR = "error"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one card against a candidate list."""

    reason: MatchReason
    product: ProductCandidate | None = None
    candidates: int = 0

    @property
    def matched(self) -> bool:
        return self.product is not None


def build_search_query(card: LocalCard) -> str:
    """
    Search text for the remote API.

    Example:
        "2025 Topps Chrome Aaron Judge #99"
    """
    players = " / ".join(card.player_names)
    return f"{card.set_display_name} {players} {card.card_number_token}"


def local_variant_text(series_name: str, set_display_name: str) -> str:
    """Series name with the set display name prefix removed."""
    prefix = f"{set_display_name} "
    if series_name.startswith(prefix):
        return series_name[len(prefix):]
    return series_name


def variants_match(series_name: str, candidate_variant: str | None, set_display_name: str) -> bool:
    """
    Variant rule for one candidate.

    Args:
        series_name: Local series, e.g. "2025 Topps Chrome Gold Refractors".
        candidate_variant: extract_variant() of the candidate, None for base.
        set_display_name: e.g. "2025 Topps Chrome".
    """
    ours = local_variant_text(series_name, set_display_name)

    # Base card: nothing was stripped
    if ours == set_display_name or ours == series_name:
        return candidate_variant is None

    # A parallel never matches the base product
    if candidate_variant is None:
        return False

    our_norm = normalize_variant(ours)
    their_norm = normalize_variant(candidate_variant)
    if not our_norm or not their_norm:
        return False

    if our_norm == their_norm:
        return True

    # Known precision/recall tradeoff: "red" also matches "red refractor"
    return our_norm in their_norm or their_norm in our_norm


def match_card(
    card: LocalCard,
    candidates: Sequence[ProductCandidate],
    set_display_name: str | None = None,
) -> MatchResult:
    """
    Return the first candidate that is the same physical card.

    Args:
        card: Local catalog card.
        candidates: Search results in API order.
        set_display_name: Defaults to card.set_display_name.

    Returns:
        MatchResult with reason matched / no_results / no_parallel_match.
    """
    if not candidates:
        return MatchResult(reason=MatchReason.NO_RESULTS)

    set_name = set_display_name or card.set_display_name
    number_token = card.card_number_token

    for product in candidates:
        if number_token not in product.product_name:
            continue
        if variants_match(card.series_name, extract_variant(product.product_name), set_name):
            logger.debug(
                "matcher_candidate_accepted",
                card_id=card.card_id,
                remote_id=product.id,
                product_name=product.product_name,
            )
            return MatchResult(
                product=product, reason=MatchReason.MATCHED, candidates=len(candidates)
            )

    return MatchResult(reason=MatchReason.NO_PARALLEL_MATCH, candidates=len(candidates))
