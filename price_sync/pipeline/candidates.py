"""
Card Price Sync - Candidate Selection

Builds the ordered list of cards each strategy processes.

Catalog sweep:     every eligible card, ordered by card_id, optionally one set.
Collection sweep:  only cards in at least one active collection (sold_at IS
                   NULL), ordered by distinct owner count descending, then card_id.

All filters are bound parameters. Series exclusions are case-insensitive
NOT LIKE comparisons with the pattern passed as a parameter.
"""

from __future__ import annotations

from typing import Any, Sequence

import structlog
from pydantic import BaseModel, ConfigDict
from sqlalchemy import Select, and_, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from price_sync.config import TargetSelection, settings
from price_sync.engine.matcher import LocalCard
from price_sync.models.catalog import Card, CardPlayer, CardSet, Player, Series
from price_sync.models.collection import UserCard
from price_sync.models.pricing import CardExternalId

logger = structlog.get_logger(__name__)


class MappedCard(BaseModel):
    """A card with an existing mapping, input of the refresh strategy."""

    model_config = ConfigDict(frozen=True)

    card_id: int
    external_id: str
    external_name: str | None = None


class CollectionSummary(BaseModel):
    unique_cards: int = 0
    total_collectors: int = 0
    total_items: int = 0


class CandidateSelector:
    """Read-only queries over the catalog and collection tables."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        price_source_id: int,
        excluded_series_patterns: Sequence[str] | None = None,
        chunk_size: int | None = None,
    ):
        self.session_factory = session_factory
        self.price_source_id = price_source_id
        self.excluded_series_patterns = list(
            settings.EXCLUDED_SERIES_PATTERNS
            if excluded_series_patterns is None
            else excluded_series_patterns
        )
        self.chunk_size = chunk_size or settings.PLAYER_LOOKUP_CHUNK_SIZE

    @staticmethod
    def _owner_counts() -> Any:
        """Distinct active owners per card."""
        return (
            select(
                UserCard.card_id.label("card_id"),
                func.count(distinct(UserCard.user_id)).label("owner_count"),
            )
            .where(UserCard.sold_at.is_(None))
            .group_by(UserCard.card_id)
            .subquery("owners")
        )

    def _apply_target(
        self,
        stmt: Select,
        card_id_column: Any,
        target: TargetSelection,
        limit: int | None,
    ) -> Select:
        if target is TargetSelection.COLLECTION:
            owners = self._owner_counts()
            stmt = stmt.join(owners, owners.c.card_id == card_id_column).order_by(
                owners.c.owner_count.desc(), card_id_column
            )
        else:
            stmt = stmt.order_by(card_id_column)
        if limit is not None:
            stmt = stmt.limit(limit)
        return stmt

    async def unmatched_cards(
        self,
        target: TargetSelection,
        limit: int | None = None,
        set_id: int | None = None,
    ) -> list[LocalCard]:
        """
        Cards lacking a mapping for this price source.

        Excludes cards without a card number and series whose name matches an
        excluded pattern (autographs, printing plates).
        """
        stmt = (
            select(
                Card.card_id,
                Card.card_number,
                Series.name.label("series_name"),
                CardSet.name.label("set_name"),
                CardSet.year.label("set_year"),
            )
            .join(Series, Card.series_id == Series.series_id)
            .join(CardSet, Series.set_id == CardSet.set_id)
            .outerjoin(
                CardExternalId,
                and_(
                    CardExternalId.card_id == Card.card_id,
                    CardExternalId.price_source_id == self.price_source_id,
                ),
            )
            .where(
                CardExternalId.card_external_id_id.is_(None),
                Card.card_number.is_not(None),
                Card.card_number != "",
                *(Series.name.not_ilike(f"%{pattern}%") for pattern in self.excluded_series_patterns),
            )
        )
        if set_id is not None:
            stmt = stmt.where(CardSet.set_id == set_id)
        stmt = self._apply_target(stmt, Card.card_id, target, limit)

        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()
            players = await self._player_names(session, [row.card_id for row in rows])

        cards = [
            LocalCard(
                card_id=row.card_id,
                card_number=row.card_number,
                series_name=row.series_name,
                set_name=row.set_name,
                set_year=row.set_year,
                player_names=tuple(players.get(row.card_id, ())),
            )
            for row in rows
        ]
        logger.info(
            "candidates_unmatched_selected",
            target=target.value,
            set_id=set_id,
            limit=limit,
            count=len(cards),
        )
        return cards

    async def mapped_cards(
        self,
        target: TargetSelection,
        limit: int | None = None,
        set_id: int | None = None,
    ) -> list[MappedCard]:
        """Cards with an existing mapping for this price source."""
        stmt = select(
            CardExternalId.card_id,
            CardExternalId.external_id,
            CardExternalId.external_name,
        ).where(CardExternalId.price_source_id == self.price_source_id)
        if set_id is not None:
            stmt = (
                stmt.join(Card, Card.card_id == CardExternalId.card_id)
                .join(Series, Card.series_id == Series.series_id)
                .where(Series.set_id == set_id)
            )
        stmt = self._apply_target(stmt, CardExternalId.card_id, target, limit)

        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()

        cards = [
            MappedCard(
                card_id=row.card_id,
                external_id=row.external_id,
                external_name=row.external_name,
            )
            for row in rows
        ]
        logger.info(
            "candidates_mapped_selected",
            target=target.value,
            set_id=set_id,
            limit=limit,
            count=len(cards),
        )
        return cards

    async def _player_names(
        self, session: AsyncSession, card_ids: list[int]
    ) -> dict[int, list[str]]:
        """Ordered player full names per card, looked up in chunks."""
        names: dict[int, list[str]] = {}
        for start in range(0, len(card_ids), self.chunk_size):
            chunk = card_ids[start:start + self.chunk_size]
            stmt = (
                select(CardPlayer.card_id, Player)
                .join(Player, CardPlayer.player_id == Player.player_id)
                .where(CardPlayer.card_id.in_(chunk))
                .order_by(CardPlayer.card_id, CardPlayer.sort_order, Player.player_id)
            )
            for card_id, player in (await session.execute(stmt)).all():
                if player.full_name:
                    names.setdefault(card_id, []).append(player.full_name)
        return names

    async def collection_summary(self) -> CollectionSummary:
        """Unique owned cards, active collectors and total active items."""
        stmt = select(
            func.count(distinct(UserCard.card_id)),
            func.count(distinct(UserCard.user_id)),
            func.count(UserCard.user_card_id),
        ).where(UserCard.sold_at.is_(None))

        async with self.session_factory() as session:
            unique_cards, collectors, items = (await session.execute(stmt)).one()

        return CollectionSummary(
            unique_cards=unique_cards or 0,
            total_collectors=collectors or 0,
            total_items=items or 0,
        )
