"""
Tests for candidate selection (pipeline/candidates.py).

Covers:
- Unmatched vs mapped card partitioning per price source
- Series exclusion patterns and empty card numbers
- Collection ordering by distinct active owners
- Limit and set filters
- Player name ordering for multi-player cards
- Collection summary counts
"""

from __future__ import annotations

import pytest

from price_sync.config import TargetSelection
from price_sync.models import PriceSource
from price_sync.pipeline.candidates import CandidateSelector


@pytest.fixture
def selector(session_factory, price_refs) -> CandidateSelector:
    source_id, _ = price_refs
    return CandidateSelector(
        session_factory,
        source_id,
        excluded_series_patterns=["Autograph", "Printing Plate"],
    )


@pytest.fixture
async def base_series(catalog) -> tuple[int, int]:
    """(set_id, series_id) for "2025 Topps Chrome"."""
    set_id = await catalog.add_set()
    series_id = await catalog.add_series(set_id, "2025 Topps Chrome")
    return set_id, series_id


# ---------------------------------------------------------------------------
# Unmatched cards
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unmatched_cards_carry_set_and_players(selector, catalog, base_series) -> None:
    _, series_id = base_series
    card_id = await catalog.add_card(series_id, "99", players=[("Aaron", "Judge")])

    cards = await selector.unmatched_cards(TargetSelection.CATALOG)

    assert len(cards) == 1
    card = cards[0]
    assert card.card_id == card_id
    assert card.card_number == "99"
    assert card.series_name == "2025 Topps Chrome"
    assert card.set_display_name == "2025 Topps Chrome"
    assert card.player_names == ("Aaron Judge",)


@pytest.mark.asyncio
async def test_mapped_cards_are_not_unmatched(selector, catalog, base_series, price_refs) -> None:
    _, series_id = base_series
    source_id, _ = price_refs
    mapped = await catalog.add_card(series_id, "1", players=[("Juan", "Soto")])
    unmapped = await catalog.add_card(series_id, "2", players=[("Aaron", "Judge")])
    await catalog.map(mapped, source_id, "555")

    cards = await selector.unmatched_cards(TargetSelection.CATALOG)

    assert [c.card_id for c in cards] == [unmapped]


@pytest.mark.asyncio
async def test_mapping_for_other_source_does_not_count(
    session_factory, selector, catalog, base_series
) -> None:
    _, series_id = base_series
    card_id = await catalog.add_card(series_id, "1", players=[("Juan", "Soto")])

    async with session_factory() as session:
        other = PriceSource(code="othersource", name="Other")
        session.add(other)
        await session.commit()
        other_id = other.price_source_id
    await catalog.map(card_id, other_id, "X-1")

    cards = await selector.unmatched_cards(TargetSelection.CATALOG)

    assert [c.card_id for c in cards] == [card_id]


@pytest.mark.asyncio
async def test_excluded_series_are_skipped(selector, catalog) -> None:
    set_id = await catalog.add_set()
    keep = await catalog.add_series(set_id, "2025 Topps Chrome Refractors")
    autos = await catalog.add_series(set_id, "2025 Topps Chrome Rookie Autographs")
    plates = await catalog.add_series(set_id, "2025 Topps Chrome Printing Plates Cyan")
    lower = await catalog.add_series(set_id, "2025 Topps Chrome dual autograph relics")

    kept = await catalog.add_card(keep, "1", players=[("A", "One")])
    for series_id in (autos, plates, lower):
        await catalog.add_card(series_id, "1", players=[("A", "One")])

    cards = await selector.unmatched_cards(TargetSelection.CATALOG)

    assert [c.card_id for c in cards] == [kept]


@pytest.mark.asyncio
async def test_cards_without_number_are_skipped(selector, catalog, base_series) -> None:
    _, series_id = base_series
    await catalog.add_card(series_id, None, players=[("A", "One")])
    await catalog.add_card(series_id, "", players=[("B", "Two")])
    numbered = await catalog.add_card(series_id, "3", players=[("C", "Three")])

    cards = await selector.unmatched_cards(TargetSelection.CATALOG)

    assert [c.card_id for c in cards] == [numbered]


@pytest.mark.asyncio
async def test_cards_without_players_are_still_selected(selector, catalog, base_series) -> None:
    """The discovery strategy decides to skip them, not the selector."""
    _, series_id = base_series
    card_id = await catalog.add_card(series_id, "7")

    cards = await selector.unmatched_cards(TargetSelection.CATALOG)

    assert cards[0].card_id == card_id
    assert cards[0].player_names == ()


@pytest.mark.asyncio
async def test_players_follow_sort_order(selector, catalog, base_series) -> None:
    _, series_id = base_series
    await catalog.add_card(
        series_id, "DC-1", players=[("Aaron", "Judge"), ("Juan", "Soto"), ("Shohei", "Ohtani")]
    )

    cards = await selector.unmatched_cards(TargetSelection.CATALOG)

    assert cards[0].player_names == ("Aaron Judge", "Juan Soto", "Shohei Ohtani")


@pytest.mark.asyncio
async def test_player_lookup_is_chunked(session_factory, price_refs, catalog, base_series) -> None:
    _, series_id = base_series
    source_id, _ = price_refs
    for n in range(5):
        await catalog.add_card(series_id, str(n), players=[("Player", str(n))])

    selector = CandidateSelector(session_factory, source_id, chunk_size=2)
    cards = await selector.unmatched_cards(TargetSelection.CATALOG)

    assert [c.player_names for c in cards] == [(f"Player {n}",) for n in range(5)]


@pytest.mark.asyncio
async def test_catalog_order_limit_and_set_filter(selector, catalog) -> None:
    chrome = await catalog.add_set("Topps Chrome", 2025)
    update = await catalog.add_set("Topps Update", 2025)
    chrome_series = await catalog.add_series(chrome, "2025 Topps Chrome")
    update_series = await catalog.add_series(update, "2025 Topps Update")

    first = await catalog.add_card(chrome_series, "1", players=[("A", "One")])
    other_set = await catalog.add_card(update_series, "1", players=[("B", "Two")])
    second = await catalog.add_card(chrome_series, "2", players=[("C", "Three")])

    all_cards = await selector.unmatched_cards(TargetSelection.CATALOG)
    limited = await selector.unmatched_cards(TargetSelection.CATALOG, limit=2)
    one_set = await selector.unmatched_cards(TargetSelection.CATALOG, set_id=chrome)

    assert [c.card_id for c in all_cards] == [first, other_set, second]
    assert [c.card_id for c in limited] == [first, other_set]
    assert [c.card_id for c in one_set] == [first, second]


# ---------------------------------------------------------------------------
# Collection ordering
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_collection_orders_by_distinct_owners(selector, catalog, base_series) -> None:
    _, series_id = base_series
    low = await catalog.add_card(series_id, "1", players=[("A", "One")])
    high = await catalog.add_card(series_id, "2", players=[("B", "Two")])
    unowned = await catalog.add_card(series_id, "3", players=[("C", "Three")])

    await catalog.own(low, user_id=1)
    # Several copies held by one owner count once
    await catalog.own(low, user_id=1)
    await catalog.own(low, user_id=1)
    for user_id in (1, 2, 3):
        await catalog.own(high, user_id=user_id)

    cards = await selector.unmatched_cards(TargetSelection.COLLECTION)

    assert [c.card_id for c in cards] == [high, low]
    assert unowned not in [c.card_id for c in cards]


@pytest.mark.asyncio
async def test_collection_ties_break_on_card_id(selector, catalog, base_series) -> None:
    _, series_id = base_series
    first = await catalog.add_card(series_id, "1", players=[("A", "One")])
    second = await catalog.add_card(series_id, "2", players=[("B", "Two")])
    await catalog.own(second, user_id=1)
    await catalog.own(first, user_id=2)

    cards = await selector.unmatched_cards(TargetSelection.COLLECTION)

    assert [c.card_id for c in cards] == [first, second]


@pytest.mark.asyncio
async def test_sold_copies_do_not_count(selector, catalog, base_series) -> None:
    _, series_id = base_series
    sold = await catalog.add_card(series_id, "1", players=[("A", "One")])
    await catalog.own(sold, user_id=1, sold=True)

    assert await selector.unmatched_cards(TargetSelection.COLLECTION) == []


# ---------------------------------------------------------------------------
# Mapped cards
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_mapped_cards_catalog(selector, catalog, base_series, price_refs) -> None:
    _, series_id = base_series
    source_id, _ = price_refs
    a = await catalog.add_card(series_id, "1")
    b = await catalog.add_card(series_id, "2")
    await catalog.add_card(series_id, "3")
    await catalog.map(b, source_id, "B-2", "Player B #2")
    await catalog.map(a, source_id, "A-1")

    cards = await selector.mapped_cards(TargetSelection.CATALOG)

    assert [(c.card_id, c.external_id) for c in cards] == [(a, "A-1"), (b, "B-2")]
    assert cards[1].external_name == "Player B #2"


@pytest.mark.asyncio
async def test_mapped_cards_collection_and_set(selector, catalog, price_refs) -> None:
    source_id, _ = price_refs
    chrome = await catalog.add_set("Topps Chrome", 2025)
    update = await catalog.add_set("Topps Update", 2025)
    chrome_series = await catalog.add_series(chrome, "2025 Topps Chrome")
    update_series = await catalog.add_series(update, "2025 Topps Update")

    a = await catalog.add_card(chrome_series, "1")
    b = await catalog.add_card(update_series, "1")
    await catalog.map(a, source_id, "A")
    await catalog.map(b, source_id, "B")
    await catalog.own(b, user_id=1)

    owned = await selector.mapped_cards(TargetSelection.COLLECTION)
    in_set = await selector.mapped_cards(TargetSelection.CATALOG, set_id=chrome)

    assert [c.card_id for c in owned] == [b]
    assert [c.card_id for c in in_set] == [a]


# ---------------------------------------------------------------------------
# Collection summary
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_collection_summary(selector, catalog, base_series) -> None:
    _, series_id = base_series
    a = await catalog.add_card(series_id, "1")
    b = await catalog.add_card(series_id, "2")
    await catalog.own(a, user_id=1)
    await catalog.own(a, user_id=1)
    await catalog.own(a, user_id=2)
    await catalog.own(b, user_id=2)
    await catalog.own(b, user_id=3, sold=True)

    summary = await selector.collection_summary()

    assert summary.unique_cards == 2
    assert summary.total_collectors == 2
    assert summary.total_items == 4


@pytest.mark.asyncio
async def test_collection_summary_empty(selector) -> None:
    summary = await selector.collection_summary()

    assert (summary.unique_cards, summary.total_collectors, summary.total_items) == (0, 0, 0)
