"""
Card Price Sync - Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- In-memory SQLite store built from the ORM metadata (aiosqlite)
- Price source / price type reference rows
- A small catalog builder for cards, players and collection ownership
- SportsCardsPro payload helpers
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, AsyncGenerator

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from price_sync.config import settings
from price_sync.models import (
    Base,
    Card,
    CardExternalId,
    CardPlayer,
    CardSet,
    Player,
    PriceSource,
    PriceType,
    Series,
    UserCard,
)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)

API_BASE = settings.SPORTSCARDSPRO_BASE_URL


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for anyio tests."""
    return "asyncio"


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    In-memory SQLite engine with every table created.

    StaticPool keeps one connection so separate sessions share the database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def price_refs(session_factory: async_sessionmaker[AsyncSession]) -> tuple[int, int]:
    """Insert the configured price source and price type. Returns (source_id, type_id)."""
    async with session_factory() as session:
        source = PriceSource(code=settings.PRICE_SOURCE_CODE, name="SportsCardsPro")
        price_type = PriceType(code=settings.PRICE_TYPE_CODE, name="Ungraded")
        session.add_all([source, price_type])
        await session.commit()
        return source.price_source_id, price_type.price_type_id


# ---------------------------------------------------------------------------
# Catalog Builder
# ---------------------------------------------------------------------------


class CatalogBuilder:
    """Seeds catalog, player and ownership rows for a test."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _add(self, row: Any) -> Any:
        async with self.session_factory() as session:
            session.add(row)
            await session.commit()
            return row

    async def add_set(self, name: str = "Topps Chrome", year: int | None = 2025) -> int:
        return (await self._add(CardSet(name=name, year=year))).set_id

    async def add_series(self, set_id: int, name: str) -> int:
        return (await self._add(Series(set_id=set_id, name=name))).series_id

    async def add_card(
        self,
        series_id: int,
        card_number: str | None,
        players: list[tuple[str, str]] | None = None,
    ) -> int:
        card = await self._add(Card(series_id=series_id, card_number=card_number))
        for position, (first, last) in enumerate(players or []):
            player = await self._add(Player(first_name=first, last_name=last))
            await self._add(
                CardPlayer(card_id=card.card_id, player_id=player.player_id, sort_order=position)
            )
        return card.card_id

    async def own(self, card_id: int, user_id: int, sold: bool = False) -> None:
        sold_at = datetime(2026, 1, 1, tzinfo=timezone.utc) if sold else None
        await self._add(UserCard(user_id=user_id, card_id=card_id, sold_at=sold_at))

    async def map(
        self,
        card_id: int,
        price_source_id: int,
        external_id: str,
        external_name: str | None = None,
    ) -> None:
        await self._add(
            CardExternalId(
                card_id=card_id,
                price_source_id=price_source_id,
                external_id=external_id,
                external_name=external_name,
                match_method="auto",
            )
        )


@pytest.fixture
def catalog(session_factory: async_sessionmaker[AsyncSession]) -> CatalogBuilder:
    return CatalogBuilder(session_factory)


# ---------------------------------------------------------------------------
# Utility Helpers
# ---------------------------------------------------------------------------


async def count_rows(session_factory: async_sessionmaker[AsyncSession], model: Any) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model))


def product_payload(remote_id: int | str, name: str, **prices: Any) -> dict[str, Any]:
    """
    SportsCardsPro product JSON. Pass loose_price=... to include the price key.

    Example:
        product_payload(101, "Aaron Judge #99", loose_price=1250)
    """
    payload: dict[str, Any] = {"id": remote_id, "product-name": name}
    if "loose_price" in prices:
        payload["loose-price"] = prices["loose_price"]
    return payload
