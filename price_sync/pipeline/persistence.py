"""
Card Price Sync - Persistence Gateway

Idempotent upserts for the two tables this service owns:
    card_external_id  unique (card_id, price_source_id)
    card_price        unique (card_id, price_type_id, price_source_id)

All statements are parameterized INSERT ... ON CONFLICT DO UPDATE (supported by
PostgreSQL and SQLite), last write wins. A discovery match writes its mapping
and price in one transaction, so an interrupted run never leaves a mapping
without its price write. Failures are wrapped in PersistenceError and never
retried.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy import DECIMAL, TIMESTAMP, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from price_sync.errors import PersistenceError
from price_sync.pipeline.sportscardspro import RemoteProduct

logger = structlog.get_logger(__name__)

MATCH_METHOD_AUTO = "auto"

_CENTS = Decimal("0.01")

_UPSERT_MAPPING = text("""
    INSERT INTO card_external_id
        (card_id, price_source_id, external_id, external_name, match_method, created_at, updated_at)
    VALUES
        (:card_id, :price_source_id, :external_id, :external_name, :match_method, :now, :now)
    ON CONFLICT (card_id, price_source_id) DO UPDATE SET
        external_id = EXCLUDED.external_id,
        external_name = EXCLUDED.external_name,
        updated_at = EXCLUDED.updated_at
""").bindparams(bindparam("now", type_=TIMESTAMP(timezone=True)))

_UPSERT_PRICE = text("""
    INSERT INTO card_price (card_id, price_type_id, price_source_id, price, last_updated)
    VALUES (:card_id, :price_type_id, :price_source_id, :price, :now)
    ON CONFLICT (card_id, price_type_id, price_source_id) DO UPDATE SET
        price = EXCLUDED.price,
        last_updated = EXCLUDED.last_updated
""").bindparams(
    bindparam("price", type_=DECIMAL(10, 2)),
    bindparam("now", type_=TIMESTAMP(timezone=True)),
)


def cents_to_decimal(price_cents: int | None) -> Decimal | None:
    """
    Convert integer cents to a currency Decimal. None stays None.

    Examples:
        >>> cents_to_decimal(1250)
        Decimal('12.50')
    """
    if price_cents is None:
        return None
    return (Decimal(price_cents) / 100).quantize(_CENTS, rounding=ROUND_HALF_UP)


class PersistenceGateway:
    """
    Writes mappings and price observations for one price source / price type.

    The session factory is injected; each save_* call opens its own short
    session and commits once.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        price_source_id: int,
        price_type_id: int,
    ):
        self.session_factory = session_factory
        self.price_source_id = price_source_id
        self.price_type_id = price_type_id

    # -----------------------------------------------------------------------
    # Statement-level upserts (caller owns the transaction)
    # -----------------------------------------------------------------------

    async def upsert_mapping(
        self,
        session: AsyncSession,
        card_id: int,
        source_id: int,
        remote_id: str,
        remote_name: str | None,
    ) -> None:
        await session.execute(
            _UPSERT_MAPPING,
            {
                "card_id": card_id,
                "price_source_id": source_id,
                "external_id": remote_id,
                "external_name": remote_name,
                "match_method": MATCH_METHOD_AUTO,
                "now": datetime.now(timezone.utc),
            },
        )

    async def upsert_price(
        self,
        session: AsyncSession,
        card_id: int,
        price_type_id: int,
        source_id: int,
        price_cents: int | None,
    ) -> None:
        await session.execute(
            _UPSERT_PRICE,
            {
                "card_id": card_id,
                "price_type_id": price_type_id,
                "price_source_id": source_id,
                "price": cents_to_decimal(price_cents),
                "now": datetime.now(timezone.utc),
            },
        )

    # -----------------------------------------------------------------------
    # Per-card units of work
    # -----------------------------------------------------------------------

    async def save_match(self, card_id: int, product: RemoteProduct) -> bool:
        """
        Upsert the mapping and, when the product is priced, the price.

        Returns:
            True if a price row was written.

        Raises:
            PersistenceError: the transaction was rolled back.
        """
        price_written = product.loose_price is not None

        async with self.session_factory() as session:
            try:
                await self.upsert_mapping(
                    session, card_id, self.price_source_id, product.id, product.product_name
                )
                if price_written:
                    await self.upsert_price(
                        session,
                        card_id,
                        self.price_type_id,
                        self.price_source_id,
                        product.loose_price,
                    )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "persistence_save_match_failed",
                    card_id=card_id,
                    remote_id=product.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise PersistenceError(f"Failed to save match for card {card_id}") from e

        logger.debug(
            "persistence_match_saved",
            card_id=card_id,
            remote_id=product.id,
            price_written=price_written,
        )
        return price_written

    async def save_price(self, card_id: int, price_cents: int | None) -> None:
        """
        Overwrite the price observation for a card. None is stored as NULL.

        Raises:
            PersistenceError: the transaction was rolled back.
        """
        async with self.session_factory() as session:
            try:
                await self.upsert_price(
                    session, card_id, self.price_type_id, self.price_source_id, price_cents
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "persistence_save_price_failed",
                    card_id=card_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise PersistenceError(f"Failed to save price for card {card_id}") from e

        logger.debug("persistence_price_saved", card_id=card_id, price_cents=price_cents)
