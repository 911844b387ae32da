"""
Card Price Sync - Catalog Models

Read-only from this service's perspective: the catalog is owned by the
collection platform. Mapped here so candidate selection can be expressed as
parameterized SQLAlchemy queries.
"""

from __future__ import annotations

from sqlalchemy import INTEGER, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from price_sync.models.base import Base


class CardSet(Base):
    """A product release, e.g. "Topps Chrome" (2025)."""

    __tablename__ = "card_set"

    set_id: Mapped[int] = mapped_column(INTEGER, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, comment="Set name without year")
    year: Mapped[int | None] = mapped_column(INTEGER, nullable=True, comment="Release year")

    def __repr__(self) -> str:
        return f"<CardSet set_id={self.set_id} name={self.name!r} year={self.year}>"


class Series(Base):
    """
    A checklist within a set. Parallel series carry the variant as a suffix
    of the full set name, e.g. "2025 Topps Chrome Gold Refractors".
    """

    __tablename__ = "series"

    series_id: Mapped[int] = mapped_column(INTEGER, primary_key=True)
    set_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("card_set.set_id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False, comment="Full series name")

    def __repr__(self) -> str:
        return f"<Series series_id={self.series_id} name={self.name!r}>"


class Player(Base):
    __tablename__ = "player"

    player_id: Mapped[int] = mapped_column(INTEGER, primary_key=True)
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Card(Base):
    """A single catalogued card. Card numbers may be alphanumeric ("US50", "RC-12")."""

    __tablename__ = "card"

    card_id: Mapped[int] = mapped_column(INTEGER, primary_key=True)
    series_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("series.series_id"), nullable=False, index=True
    )
    card_number: Mapped[str | None] = mapped_column(String, nullable=True)

    def __repr__(self) -> str:
        return f"<Card card_id={self.card_id} number={self.card_number!r}>"


class CardPlayer(Base):
    """Ordered card-to-player link. Multi-player cards list names by sort_order."""

    __tablename__ = "card_player"

    card_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("card.card_id"), primary_key=True
    )
    player_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("player.player_id"), primary_key=True
    )
    sort_order: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)
