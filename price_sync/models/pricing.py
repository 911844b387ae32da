"""
Card Price Sync - Pricing Models

PriceSource / PriceType are reference rows resolved by code at startup.
CardExternalId and CardPrice are the only tables this service writes; both are
keyed by composite unique constraints so every write is an upsert.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    INTEGER,
    TIMESTAMP,
    ForeignKey,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from price_sync.models.base import Base


class PriceSource(Base):
    """A named external pricing provider, e.g. code='sportscardspro'."""

    __tablename__ = "price_source"

    price_source_id: Mapped[int] = mapped_column(INTEGER, primary_key=True)
    code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)


class PriceType(Base):
    """A pricing condition tier, e.g. code='loose' (ungraded)."""

    __tablename__ = "price_type"

    price_type_id: Mapped[int] = mapped_column(INTEGER, primary_key=True)
    code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)


class CardExternalId(Base):
    """
    Link between a local card and its product at one price source.

    At most one row per (card_id, price_source_id). Rematches update the row
    in place; match_method records how the link was first created.
    """

    __tablename__ = "card_external_id"

    card_external_id_id: Mapped[int] = mapped_column(INTEGER, primary_key=True)
    card_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("card.card_id"), nullable=False
    )
    price_source_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("price_source.price_source_id"), nullable=False
    )
    external_id: Mapped[str] = mapped_column(
        String, nullable=False, comment="Remote product identifier"
    )
    external_name: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Remote display name, kept for audit"
    )
    match_method: Mapped[str] = mapped_column(
        String, nullable=False, default="auto", comment="'auto' or 'manual'"
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("card_id", "price_source_id", name="uq_card_external_id_card_source"),
    )

    def __repr__(self) -> str:
        return (
            f"<CardExternalId card_id={self.card_id} source={self.price_source_id} "
            f"external_id={self.external_id!r}>"
        )


class CardPrice(Base):
    """
    Latest observed price of a card from one source under one price type.

    price is NULL when the source reports no price; it is never written as 0
    for an unknown value.
    """

    __tablename__ = "card_price"

    card_price_id: Mapped[int] = mapped_column(INTEGER, primary_key=True)
    card_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("card.card_id"), nullable=False
    )
    price_type_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("price_type.price_type_id"), nullable=False
    )
    price_source_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("price_source.price_source_id"), nullable=False
    )
    price: Mapped[Decimal | None] = mapped_column(
        DECIMAL(10, 2), nullable=True, comment="Price in USD"
    )
    last_updated: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "card_id", "price_type_id", "price_source_id", name="uq_card_price_card_type_source"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<CardPrice card_id={self.card_id} type={self.price_type_id} "
            f"source={self.price_source_id} price={self.price}>"
        )
