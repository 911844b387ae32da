"""
SQLAlchemy 2.0 async DeclarativeBase for Card Price Sync.

All models inherit from this Base.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all Card Price Sync database models."""
    pass
