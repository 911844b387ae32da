"""
Card Price Sync - Command Line Entrypoint

Configures structlog, creates the async SQLAlchemy engine, verifies the store
is reachable, then runs one reconciliation and prints the summary.

Usage:
    python -m price_sync.main --collection                       # refresh + match, owned cards
    python -m price_sync.main --collection --mode=refresh        # only re-price mapped cards
    python -m price_sync.main --catalog --set-id 1821 --limit=100
    python -m price_sync.main --catalog --dry-run                # full run, nothing saved

Exit codes:
    0  run completed (per-card failures are reported, not fatal)
    1  fatal setup or store error
    2  invalid arguments
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Sequence

import structlog
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from price_sync.config import ReconcileMode, RunConfig, TargetSelection, settings
from price_sync.errors import SetupError
from price_sync.pipeline.orchestrator import Orchestrator
from price_sync.pipeline.sportscardspro import SportsCardsProClient
from price_sync.pipeline.stats import RunStats, render_report


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    level = getattr(logging, log_level.upper())

    # Configure stdlib logging first (for third-party libraries)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="price-sync",
        description="Link catalogued cards to SportsCardsPro products and refresh their prices.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  price-sync --collection
  price-sync --collection --mode=refresh --limit=500
  price-sync --catalog --set-id 1821 --dry-run
""",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--catalog",
        dest="target",
        action="store_const",
        const=TargetSelection.CATALOG.value,
        help="Sweep the full catalog in catalog order.",
    )
    target.add_argument(
        "--collection",
        dest="target",
        action="store_const",
        const=TargetSelection.COLLECTION.value,
        help="Sweep cards in active collections, most-owned first.",
    )
    parser.add_argument(
        "--mode",
        type=str,
        default=ReconcileMode.BOTH.value,
        choices=[mode.value for mode in ReconcileMode],
        help="refresh | match | both (default: both).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of cards per phase.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run matching and network calls but save nothing.",
    )
    parser.add_argument(
        "--set-id",
        type=int,
        default=None,
        help="Restrict a catalog sweep to one set.",
    )
    parser.add_argument(
        "--call-delay",
        type=float,
        default=None,
        help="Seconds to wait before every API call (default depends on target).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {settings.LOG_LEVEL}).",
    )
    return parser.parse_args(argv)


def build_run_config(args: argparse.Namespace) -> RunConfig:
    """Validate parsed arguments into a RunConfig. Raises pydantic.ValidationError."""
    return RunConfig(
        target=args.target,
        mode=args.mode,
        limit=args.limit,
        dry_run=args.dry_run,
        set_id=args.set_id,
        call_delay_seconds=args.call_delay,
    )


# ---------------------------------------------------------------------------
# Database Setup
# ---------------------------------------------------------------------------


async def create_db_engine(database_url: str | None = None) -> tuple[Any, async_sessionmaker[AsyncSession]]:
    """
    Create SQLAlchemy async engine and session factory.

    Returns:
        (engine, session_factory) tuple.
    """
    logger = structlog.get_logger(__name__)

    engine = create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=False,
        pool_pre_ping=True,  # Verify connections before use
    )
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info("database_engine_ready")
    return engine, session_factory


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


async def run(
    config: RunConfig,
    session_factory: async_sessionmaker[AsyncSession],
) -> RunStats:
    """Health-check the store, run the orchestrator, print the summary."""
    logger = structlog.get_logger(__name__)

    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        logger.info("database_health_check_passed")
    except SQLAlchemyError as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    if not settings.SPORTSCARDSPRO_API_TOKEN:
        logger.warning("config_sportscardspro_token_missing", note="using empty API token")

    stats = RunStats()
    async with SportsCardsProClient(call_delay=config.call_delay, stats=stats) as client:
        orchestrator = Orchestrator(session_factory, client, config, stats)
        await orchestrator.run()

    if orchestrator.collection_summary is not None:
        summary = orchestrator.collection_summary
        print("Collection Summary:")
        print(f"  Unique cards in collections: {summary.unique_cards:,}")
        print(f"  Active collectors: {summary.total_collectors:,}")
        print(f"  Total collection items: {summary.total_items:,}")

    print(render_report(stats, dry_run=config.dry_run))
    return stats


async def main(argv: Sequence[str] | None = None) -> int:
    """
    Application entrypoint.

    Execution order:
    1. Parse and validate arguments into a RunConfig
    2. Configure logging (structlog JSON)
    3. Create async database engine and session factory
    4. Run (health check, orchestrator, summary)
    """
    args = parse_args(argv)
    try:
        config = build_run_config(args)
    except ValidationError as e:
        print(f"Invalid arguments: {e}", file=sys.stderr)
        return 2

    _configure_logging(log_level=args.log_level)
    logger = structlog.get_logger(__name__)

    engine, session_factory = await create_db_engine()
    try:
        await run(config, session_factory)
    except (SetupError, SQLAlchemyError, OSError) as e:
        logger.error(
            "price_sync_fatal_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nFatal error: {e}", file=sys.stderr)
        return 1
    finally:
        await engine.dispose()

    return 0


def cli() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    cli()
