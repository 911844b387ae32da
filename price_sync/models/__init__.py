"""
Models package: export all SQLAlchemy models.
"""

from price_sync.models.base import Base
from price_sync.models.catalog import Card, CardPlayer, CardSet, Player, Series
from price_sync.models.collection import UserCard
from price_sync.models.pricing import CardExternalId, CardPrice, PriceSource, PriceType

__all__ = [
    "Base",
    "Card",
    "CardExternalId",
    "CardPlayer",
    "CardPrice",
    "CardSet",
    "Player",
    "PriceSource",
    "PriceType",
    "Series",
    "UserCard",
]
