"""
Card Price Sync - Error Taxonomy

Per-card errors (PricingApiError, PersistenceError) are caught at the strategy
loop and counted. SetupError aborts the whole run.

No-match and missing-player cases are outcomes, not exceptions
(see pipeline/reconciler.py CardOutcome).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from price_sync.pipeline.sportscardspro import ResponseKind


class PriceSyncError(Exception):
    """Base class for all Card Price Sync errors."""


class PricingApiError(PriceSyncError):
    """A call to the remote pricing API did not produce a usable response."""

    def __init__(
        self,
        message: str,
        kind: ResponseKind,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class TransientNetworkError(PricingApiError):
    """Retryable failure (429/5xx, timeout) that persisted through every attempt."""


class PermanentNetworkError(PricingApiError):
    """Non-retryable status or malformed response body."""


class PersistenceError(PriceSyncError):
    """An upsert failed. Never retried; surfaces as a per-card error."""


class SetupError(PriceSyncError):
    """Run prerequisites are missing (price source, price type, set). Fatal."""
