"""Continuous enrichment listener.

A self-rearming asyncio loop: every interval it checks the backlog and, when
enough posts are waiting, runs one sequential enrichment pass. At most one
pass is in flight at a time; ticks that land while a pass is running are
dropped, not queued. Repeated pass failures add a cooldown.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol

from enrich_posts.config import EnrichConfig
from enrich_posts.models import (
    EnrichmentResult,
    ListenerSnapshot,
    ListenerStats,
    ListenerStatus,
    PassReport,
    PostRecord,
)
from enrich_posts.save_results import save_enrichment_results

logger = logging.getLogger(__name__)


class BacklogStore(Protocol):
    def count_backlog(self) -> int: ...

    def fetch_backlog(self, limit: int | None = None) -> list[PostRecord]: ...

    def update_enrichment(self, result: EnrichmentResult, enriched_at: datetime) -> None: ...

    def update_job(
        self,
        job_id: str,
        status: str,
        parameters: dict[str, Any] | None = None,
        result: Any = None,
        error: str | None = None,
    ) -> None: ...


class EnrichmentListener:
    """Owns the scheduler state; mutated only through start/stop/run_pass."""

    def __init__(
        self,
        store: BacklogStore,
        enricher: Callable[[PostRecord], EnrichmentResult],
        config: EnrichConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._store = store
        self._enricher = enricher
        self._config = config
        self._sleep = sleep
        self._running = False
        self._processing = False
        self._stats = ListenerStats()
        self._ticker: asyncio.Task | None = None
        self._passes: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self._config.listener.enabled

    @property
    def running(self) -> bool:
        return self._running

    @property
    def processing(self) -> bool:
        return self._processing

    @property
    def config(self) -> EnrichConfig:
        return self._config

    def snapshot(self) -> ListenerSnapshot:
        return ListenerSnapshot.capture(self.enabled, self._running, self._processing, self._stats)

    def start(self) -> bool:
        """Start the listener: one pass now, then one per interval.

        Returns:
            False if the listener was already running or is disabled
        """
        if self._running:
            logger.info("Listener already running")
            return False
        if not self.enabled:
            logger.info("Continuous listener disabled via ENABLE_LISTENER=false")
            return False

        settings = self._config.listener
        logger.info(
            "Starting enrichment listener (interval: %ss, min posts: %d)",
            settings.interval_seconds, settings.min_posts,
        )
        self._running = True
        self._stats.status = ListenerStatus.RUNNING

        self._spawn_pass()
        self._ticker = asyncio.get_running_loop().create_task(self._tick_loop())
        return True

    def stop(self) -> None:
        """Stop scheduling passes. A pass already in flight runs to completion."""
        logger.info("Stopping continuous enrichment listener")
        self._running = False
        self._stats.status = ListenerStatus.STOPPED
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def shutdown(self) -> None:
        """Stop and cancel everything; used when the process exits."""
        ticker = self._ticker
        self.stop()
        if ticker is not None:
            with suppress(asyncio.CancelledError):
                await ticker
        for task in list(self._passes):
            task.cancel()
        if self._passes:
            await asyncio.gather(*self._passes, return_exceptions=True)

    def _spawn_pass(self) -> None:
        task = asyncio.get_running_loop().create_task(self.run_pass())
        self._passes.add(task)
        task.add_done_callback(self._passes.discard)

    async def _tick_loop(self) -> None:
        interval = self._config.listener.interval_seconds
        try:
            while self._running:
                await asyncio.sleep(interval)
                if self._running:
                    self._spawn_pass()
        finally:
            logger.debug("Listener ticker stopped")

    async def run_pass(self, limit: int | None = None, gated: bool = True) -> PassReport | None:
        """Run one backlog-check-and-process cycle.

        Args:
            limit: Max posts to fetch (capped by listener.max_posts_per_run)
            gated: Skip processing when the backlog is under listener.min_posts

        Returns:
            PassReport, or None when another pass was already in flight
        """
        if self._processing:
            logger.info("Enrichment already in progress, skipping...")
            return None

        self._processing = True
        report = PassReport(started_at=datetime.now(timezone.utc))
        started = time.monotonic()
        try:
            await self._process_backlog(report, limit, gated)
            self._record_success(report)
        except Exception as exc:
            report.error = str(exc) or type(exc).__name__
            logger.exception("Enrichment pass failed")
            await self._record_failure(report)
        finally:
            report.duration_seconds = time.monotonic() - started
            self._processing = False
        return report

    async def _process_backlog(self, report: PassReport, limit: int | None, gated: bool) -> None:
        settings = self._config.listener

        report.backlog = await asyncio.to_thread(self._store.count_backlog)
        logger.info("Found %d posts needing enrichment", report.backlog)

        if gated and report.backlog < settings.min_posts:
            logger.info("Not enough posts to process (min: %d)", settings.min_posts)
            report.gated = True
            return

        max_posts = settings.max_posts_per_run if limit is None else min(limit, settings.max_posts_per_run)
        posts = await asyncio.to_thread(self._store.fetch_backlog, max_posts)
        report.fetched = len(posts)
        if not posts:
            logger.info("No posts found to enrich")
            return

        logger.info("Processing %d posts one at a time", len(posts))
        for post in posts:
            result = await asyncio.to_thread(self._enricher, post)
            summary = await asyncio.to_thread(save_enrichment_results, [result], self._store, self._config)
            report.processed += summary.saved
            report.skipped += summary.skipped
            report.failed += summary.failed
            report.fallback_embeddings += int(result.used_fallback_embedding)
            await self._sleep(settings.inter_post_delay_seconds)

    def _record_success(self, report: PassReport) -> None:
        self._stats.consecutive_errors = 0
        if self._running:
            self._stats.status = ListenerStatus.RUNNING
        if report.gated:
            return

        self._stats.total_processed += report.processed
        self._stats.last_run_time = datetime.now(timezone.utc)
        if report.fetched:
            logger.info(
                "Processed %d posts (%d skipped, %d failed, %d fallback embeddings)",
                report.processed, report.skipped, report.failed, report.fallback_embeddings,
            )
            logger.info("Total processed by listener: %d", self._stats.total_processed)

    async def _record_failure(self, report: PassReport) -> None:
        # Posts saved before the failure are already persisted.
        self._stats.total_processed += report.processed
        self._stats.consecutive_errors += 1
        self._stats.status = ListenerStatus.ERROR

        settings = self._config.listener
        if self._stats.consecutive_errors >= settings.error_threshold:
            logger.warning(
                "%d consecutive errors, pausing %ss before the next pass",
                self._stats.consecutive_errors, settings.cooldown_seconds,
            )
            await self._sleep(settings.cooldown_seconds)

    async def run_job(self, job_id: str, limit: int | None = None) -> PassReport | None:
        """Run an ungated pass on demand and record it in enrich_jobs."""
        await asyncio.to_thread(self._store.update_job, job_id, "running", {"limit": limit})

        report = await self.run_pass(limit=limit, gated=False)

        if report is None:
            await asyncio.to_thread(
                self._store.update_job, job_id, "failed", None, None, "Enrichment already in progress"
            )
        elif report.error:
            await asyncio.to_thread(self._store.update_job, job_id, "failed", None, report, report.error)
        else:
            await asyncio.to_thread(self._store.update_job, job_id, "completed", None, report)
        return report
