"""Card Price Sync - links catalogued trading cards to SportsCardsPro products and prices."""

__version__ = "0.1.0"
