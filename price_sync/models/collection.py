"""
Card Price Sync - Collection Ownership Model

One row per physical copy a collector owns. A row with sold_at set is no
longer part of an active collection.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import INTEGER, TIMESTAMP, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from price_sync.models.base import Base


class UserCard(Base):
    __tablename__ = "user_card"

    user_card_id: Mapped[int] = mapped_column(INTEGER, primary_key=True)
    user_id: Mapped[int] = mapped_column(INTEGER, nullable=False, index=True)
    card_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("card.card_id"), nullable=False, index=True
    )
    sold_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, comment="Set when the copy leaves the collection"
    )

    def __repr__(self) -> str:
        return (
            f"<UserCard user_card_id={self.user_card_id} user_id={self.user_id} "
            f"card_id={self.card_id} sold={self.sold_at is not None}>"
        )
