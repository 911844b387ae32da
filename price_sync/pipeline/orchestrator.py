"""
Card Price Sync - Run Orchestrator

Resolves the price source / price type, selects candidates for the configured
target, and drives the refresh and discovery phases in that order.

Setup failures (missing reference rows, unknown set) raise SetupError and abort
the run. Everything after setup is per-card and never aborts.
"""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from price_sync.config import RunConfig, TargetSelection, settings
from price_sync.errors import SetupError
from price_sync.models.catalog import CardSet
from price_sync.models.pricing import PriceSource, PriceType
from price_sync.pipeline.candidates import CandidateSelector, CollectionSummary
from price_sync.pipeline.persistence import PersistenceGateway
from price_sync.pipeline.reconciler import DiscoveryStrategy, RefreshStrategy
from price_sync.pipeline.sportscardspro import SportsCardsProClient
from price_sync.pipeline.stats import Phase, RunStats

logger = structlog.get_logger(__name__)


class Orchestrator:
    """
    Drives one reconciliation run.

    Usage:
        stats = RunStats()
        async with SportsCardsProClient(call_delay=config.call_delay, stats=stats) as client:
            await Orchestrator(session_factory, client, config, stats).run()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: SportsCardsProClient,
        config: RunConfig,
        stats: RunStats | None = None,
    ):
        self.session_factory = session_factory
        self.client = client
        self.config = config
        self.stats = stats or RunStats()
        self.collection_summary: CollectionSummary | None = None

    async def _resolve_identifiers(self) -> tuple[int, int]:
        """Look up price_source_id and price_type_id by code."""
        async with self.session_factory() as session:
            source_id = await session.scalar(
                select(PriceSource.price_source_id).where(
                    PriceSource.code == settings.PRICE_SOURCE_CODE
                )
            )
            type_id = await session.scalar(
                select(PriceType.price_type_id).where(PriceType.code == settings.PRICE_TYPE_CODE)
            )
            if self.config.set_id is not None:
                set_exists = await session.scalar(
                    select(CardSet.set_id).where(CardSet.set_id == self.config.set_id)
                )
                if set_exists is None:
                    raise SetupError(f"Set {self.config.set_id} not found")

        if source_id is None:
            raise SetupError(f"Price source '{settings.PRICE_SOURCE_CODE}' not found")
        if type_id is None:
            raise SetupError(f"Price type '{settings.PRICE_TYPE_CODE}' not found")
        return source_id, type_id

    async def run(self) -> RunStats:
        config = self.config
        logger.info(
            "reconcile_run_start",
            target=config.target.value,
            mode=config.mode.value,
            limit=config.limit,
            set_id=config.set_id,
            dry_run=config.dry_run,
            call_delay=config.call_delay,
        )

        source_id, type_id = await self._resolve_identifiers()
        selector = CandidateSelector(self.session_factory, source_id)
        gateway = PersistenceGateway(self.session_factory, source_id, type_id)

        if config.target is TargetSelection.COLLECTION:
            self.collection_summary = await selector.collection_summary()
            logger.info("collection_summary", **self.collection_summary.model_dump())

        if config.runs_refresh:
            phase_stats = self.stats.start_phase(Phase.REFRESH)
            mapped = await selector.mapped_cards(config.target, config.limit, config.set_id)
            await RefreshStrategy(self.client, gateway, phase_stats, config.dry_run).run(mapped)
            logger.info(
                "refresh_phase_complete",
                processed=phase_stats.processed,
                updated=phase_stats.price_written,
                no_price=phase_stats.no_price,
                errors=phase_stats.errors,
                duration_seconds=round(phase_stats.duration_seconds, 1),
            )

        if config.runs_discovery:
            phase_stats = self.stats.start_phase(Phase.DISCOVERY)
            unmatched = await selector.unmatched_cards(config.target, config.limit, config.set_id)
            await DiscoveryStrategy(self.client, gateway, phase_stats, config.dry_run).run(
                unmatched
            )
            logger.info(
                "discovery_phase_complete",
                processed=phase_stats.processed,
                matched=phase_stats.matched,
                price_written=phase_stats.price_written,
                no_match=phase_stats.no_match,
                skipped=phase_stats.skipped,
                errors=phase_stats.errors,
                duration_seconds=round(phase_stats.duration_seconds, 1),
            )

        self.stats.finish()
        logger.info(
            "reconcile_run_complete",
            processed=self.stats.total_processed,
            errors=self.stats.total_errors,
            retries=self.stats.retries,
            duration_seconds=round(self.stats.duration_seconds, 1),
            dry_run=config.dry_run,
        )
        return self.stats
