"""
Card Price Sync - Reference Data Registration Script

Creates the price_source and price_type rows a reconciliation run resolves at
startup. Safe to re-run: existing codes are left as they are.

Usage:
    python scripts/add_price_source.py
    python scripts/add_price_source.py --source-code sportscardspro --source-name "SportsCardsPro"
    python scripts/add_price_source.py --type-code loose --type-name "Ungraded"
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Resolve project root so this script can be run from any working directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from price_sync.config import settings
from price_sync.models.pricing import PriceSource, PriceType


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Register the price source and price type used by price-sync.",
    )
    parser.add_argument(
        "--source-code",
        type=str,
        default=settings.PRICE_SOURCE_CODE,
        help=f"Price source code (default: {settings.PRICE_SOURCE_CODE}).",
    )
    parser.add_argument(
        "--source-name",
        type=str,
        default="SportsCardsPro",
        help="Display name for the price source.",
    )
    parser.add_argument(
        "--type-code",
        type=str,
        default=settings.PRICE_TYPE_CODE,
        help=f"Price type code (default: {settings.PRICE_TYPE_CODE}).",
    )
    parser.add_argument(
        "--type-name",
        type=str,
        default="Ungraded",
        help="Display name for the price type.",
    )
    return parser.parse_args()


async def register_reference_rows(
    session_factory: async_sessionmaker[AsyncSession],
    source_code: str,
    source_name: str,
    type_code: str,
    type_name: str,
) -> tuple[int, int]:
    """
    Insert the price_source and price_type rows if missing.

    Returns:
        (price_source_id, price_type_id)
    """
    async with session_factory() as session:
        source = await session.scalar(select(PriceSource).where(PriceSource.code == source_code))
        if source is None:
            source = PriceSource(code=source_code, name=source_name)
            session.add(source)

        price_type = await session.scalar(select(PriceType).where(PriceType.code == type_code))
        if price_type is None:
            price_type = PriceType(code=type_code, name=type_name)
            session.add(price_type)

        await session.commit()
        return source.price_source_id, price_type.price_type_id


async def main() -> None:
    args = parse_args()

    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        source_id, type_id = await register_reference_rows(
            session_factory,
            source_code=args.source_code,
            source_name=args.source_name,
            type_code=args.type_code,
            type_name=args.type_name,
        )
        print("Reference rows ready.")
        print(f"  price_source.{args.source_code} = {source_id}")
        print(f"  price_type.{args.type_code}     = {type_id}")
    except Exception as e:
        print(f"Failed to register reference rows: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
