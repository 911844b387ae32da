"""
Card Price Sync - Reconciler Strategies

Discovery: cards without a mapping are searched by text, matched, and the
           mapping + price are persisted on success.
Refresh:   cards with a mapping are fetched directly by remote id and their
           price overwritten. No search, no matching, no mapping mutation.

Per-card state machine:
    pending -> queried -> matched -> persisted
    pending -> queried -> unmatched
    pending -> queried -> errored
    pending -> skipped

Cards are processed strictly sequentially. A single card's failure is logged,
counted and never aborts the loop.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

import structlog

from price_sync.config import settings
from price_sync.engine.matcher import LocalCard, MatchReason, build_search_query, match_card
from price_sync.errors import PersistenceError, PricingApiError
from price_sync.pipeline.candidates import MappedCard
from price_sync.pipeline.persistence import PersistenceGateway
from price_sync.pipeline.sportscardspro import ResponseKind, SportsCardsProClient
from price_sync.pipeline.stats import PhaseStats

logger = structlog.get_logger(__name__)


class CardOutcome(str, Enum):
    """Terminal state of one processed card."""
    PERSISTED = "persisted"
    MATCHED = "matched"      # dry run: matched, persistence suppressed
    UNMATCHED = "unmatched"
    ERRORED = "errored"
    SKIPPED = "skipped"


def _log_api_error(event: str, error: PricingApiError, **context: object) -> None:
    if error.kind is ResponseKind.RETRYABLE:
        logger.warning(event, error=str(error), error_kind="retries_exhausted", **context)
    else:
        logger.warning(
            event,
            error=str(error),
            error_kind="permanent",
            status_code=error.status_code,
            **context,
        )


class _Strategy:
    phase_label = ""

    def __init__(
        self,
        client: SportsCardsProClient,
        gateway: PersistenceGateway,
        stats: PhaseStats,
        dry_run: bool = False,
        progress_interval: int | None = None,
    ):
        self.client = client
        self.gateway = gateway
        self.stats = stats
        self.dry_run = dry_run
        self.progress_interval = progress_interval or settings.PROGRESS_LOG_INTERVAL

    def _log_progress(self) -> None:
        if self.stats.processed % self.progress_interval:
            return
        logger.info(
            f"{self.phase_label}_progress",
            processed=self.stats.processed,
            matched=self.stats.matched,
            price_written=self.stats.price_written,
            no_match=self.stats.no_match,
            errors=self.stats.errors,
            rate_per_second=round(self.stats.rate_per_second, 1),
        )


class DiscoveryStrategy(_Strategy):
    """Find remote products for unmapped cards."""

    phase_label = "discovery"

    async def run(self, cards: Iterable[LocalCard]) -> PhaseStats:
        for card in cards:
            await self.reconcile(card)
            self._log_progress()
        return self.stats

    async def reconcile(self, card: LocalCard) -> CardOutcome:
        self.stats.processed += 1

        # Without player names the query is under-specified
        if not card.player_names:
            self.stats.skipped += 1
            logger.debug("discovery_card_skipped", card_id=card.card_id, reason="no_players")
            return CardOutcome.SKIPPED

        query = build_search_query(card)
        try:
            products = await self.client.search_by_query(query)
        except PricingApiError as e:
            self.stats.errors += 1
            _log_api_error(
                "discovery_search_failed",
                e,
                card_id=card.card_id,
                query=query,
                reason=MatchReason.ERROR.value,
            )
            return CardOutcome.ERRORED

        result = match_card(card, products, card.set_display_name)
        if result.product is None:
            self.stats.no_match += 1
            self.stats.no_match_reasons[result.reason.value] += 1
            logger.debug(
                "discovery_no_match",
                card_id=card.card_id,
                query=query,
                reason=result.reason.value,
                candidates=result.candidates,
            )
            return CardOutcome.UNMATCHED

        product = result.product
        self.stats.matched += 1

        if self.dry_run:
            if product.loose_price is not None:
                self.stats.price_written += 1
            logger.debug(
                "discovery_match_dry_run",
                card_id=card.card_id,
                remote_id=product.id,
                product_name=product.product_name,
            )
            return CardOutcome.MATCHED

        try:
            price_written = await self.gateway.save_match(card.card_id, product)
        except PersistenceError as e:
            self.stats.errors += 1
            logger.warning("discovery_persist_failed", card_id=card.card_id, error=str(e))
            return CardOutcome.ERRORED

        if price_written:
            self.stats.price_written += 1
        return CardOutcome.PERSISTED


class RefreshStrategy(_Strategy):
    """Re-price cards that already have a mapping."""

    phase_label = "refresh"

    async def run(self, cards: Iterable[MappedCard]) -> PhaseStats:
        for card in cards:
            await self.reconcile(card)
            self._log_progress()
        return self.stats

    async def reconcile(self, card: MappedCard) -> CardOutcome:
        self.stats.processed += 1

        try:
            product = await self.client.fetch_by_id(card.external_id)
        except PricingApiError as e:
            # Existing mapping and price are left untouched
            self.stats.errors += 1
            _log_api_error(
                "refresh_fetch_failed",
                e,
                card_id=card.card_id,
                remote_id=card.external_id,
            )
            return CardOutcome.ERRORED

        self.stats.matched += 1

        if not product.has_loose_price_field:
            self.stats.no_price += 1
            logger.debug("refresh_no_price", card_id=card.card_id, remote_id=card.external_id)
            return CardOutcome.UNMATCHED

        if self.dry_run:
            self.stats.price_written += 1
            return CardOutcome.MATCHED

        try:
            await self.gateway.save_price(card.card_id, product.loose_price)
        except PersistenceError as e:
            self.stats.errors += 1
            logger.warning("refresh_persist_failed", card_id=card.card_id, error=str(e))
            return CardOutcome.ERRORED

        self.stats.price_written += 1
        return CardOutcome.PERSISTED
