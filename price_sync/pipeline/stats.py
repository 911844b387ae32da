"""
Card Price Sync - Run Statistics

Process-lifetime counters for one reconciliation run. Never persisted.
Each phase (refresh, discovery) gets its own PhaseStats with its own timer;
the retry counter is shared with the API client.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

_RULE = "=" * 70


class Phase(str, Enum):
    REFRESH = "refresh"
    DISCOVERY = "discovery"


@dataclass
class PhaseStats:
    phase: Phase
    processed: int = 0
    matched: int = 0
    price_written: int = 0
    no_match: int = 0
    no_price: int = 0
    errors: int = 0
    skipped: int = 0
    retried: int = 0
    no_match_reasons: Counter[str] = field(default_factory=Counter)
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    @property
    def match_rate(self) -> float:
        """Matched share of processed cards, as a percentage."""
        if self.processed == 0:
            return 0.0
        return self.matched / self.processed * 100

    @property
    def rate_per_second(self) -> float:
        elapsed = self.duration_seconds
        return self.processed / elapsed if elapsed > 0 else 0.0


class RunStats:
    """Counters and timing for a whole run, surfaced as a final summary."""

    def __init__(self) -> None:
        self.phases: dict[Phase, PhaseStats] = {}
        self.current: PhaseStats | None = None
        self.retries = 0
        self.started_at = time.monotonic()
        self.finished_at: float | None = None

    def start_phase(self, phase: Phase) -> PhaseStats:
        """Begin a phase with fresh counters and a reset timer."""
        if self.current is not None and self.current.finished_at is None:
            self.current.finished_at = time.monotonic()
        stats = PhaseStats(phase=phase)
        self.phases[phase] = stats
        self.current = stats
        return stats

    def record_retry(self) -> None:
        self.retries += 1
        if self.current is not None:
            self.current.retried += 1

    def finish(self) -> None:
        now = time.monotonic()
        if self.current is not None and self.current.finished_at is None:
            self.current.finished_at = now
        self.finished_at = now

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    @property
    def total_processed(self) -> int:
        return sum(p.processed for p in self.phases.values())

    @property
    def total_errors(self) -> int:
        return sum(p.errors for p in self.phases.values())


def render_report(stats: RunStats, dry_run: bool = False) -> str:
    """Human-readable summary printed at the end of every run."""
    lines = ["", _RULE, "RECONCILIATION COMPLETE", _RULE]

    refresh = stats.phases.get(Phase.REFRESH)
    if refresh is not None:
        lines += [
            "",
            "Refresh Results:",
            f"  Processed:  {refresh.processed}",
            f"  Updated:    {refresh.price_written}",
            f"  No price:   {refresh.no_price}",
            f"  Errors:     {refresh.errors}",
            f"  Retries:    {refresh.retried}",
            f"  Duration:   {refresh.duration_seconds:.1f}s",
        ]

    discovery = stats.phases.get(Phase.DISCOVERY)
    if discovery is not None:
        lines += [
            "",
            "Match Results:",
            f"  Processed:  {discovery.processed}",
            f"  Matched:    {discovery.matched} ({discovery.match_rate:.1f}%)",
            f"  Prices:     {discovery.price_written}",
            f"  No match:   {discovery.no_match}",
        ]
        for reason, count in sorted(discovery.no_match_reasons.items()):
            lines.append(f"    {reason}: {count}")
        lines += [
            f"  Skipped:    {discovery.skipped}",
            f"  Errors:     {discovery.errors}",
            f"  Retries:    {discovery.retried}",
            f"  Duration:   {discovery.duration_seconds:.1f}s",
        ]

    lines += [
        "",
        f"Total retries: {stats.retries}",
        f"Total duration: {stats.duration_seconds:.1f}s",
    ]
    if dry_run:
        lines += ["", "[DRY RUN - No data was saved]"]
    return "\n".join(lines)
