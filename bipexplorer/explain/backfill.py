"""
Background worker that fills in missing explanations.

Each cycle takes a small batch from the store's "needs explanation" view,
generates text off the event loop and patches the documents one at a time,
pausing between calls to stay under the model's rate limits.
"""

from __future__ import annotations

import asyncio

from bipexplorer.config import (
    BACKFILL_BATCH_SIZE,
    BACKFILL_DELAY_SECONDS,
    BACKFILL_INTERVAL_SECONDS,
)
from bipexplorer.explain.generator import ExplanationGenerator
from bipexplorer.observability.logging import get_logger
from bipexplorer.observability.telemetry import counter, log_event
from bipexplorer.storage.base import DocumentNotFound, StorageFailure
from bipexplorer.storage.cache_store import CacheStore

logger = get_logger(__name__)


class ExplanationBackfill:
    def __init__(
        self,
        store: CacheStore,
        generator: ExplanationGenerator,
        batch_size: int = BACKFILL_BATCH_SIZE,
        delay_seconds: float = BACKFILL_DELAY_SECONDS,
    ) -> None:
        self.store = store
        self.generator = generator
        self.batch_size = batch_size
        self.delay_seconds = delay_seconds

    async def run_once(self) -> int:
        """
        Explain up to ``batch_size`` documents.

        A storage failure ends the cycle early; the remaining documents are
        picked up next cycle.

        Returns:
            Number of documents patched
        """
        pending = self.store.missing_explanations(limit=self.batch_size)
        if not pending:
            return 0

        logger.info("Generating explanations for %d BIPs", len(pending))
        patched = 0
        for index, doc in enumerate(pending):
            text = await asyncio.to_thread(
                self.generator.generate, doc.title, doc.abstract, doc.content
            )
            # Re-read so a refresh that landed during generation is not undone
            current = self.store.get(doc.number)
            if current is None:
                logger.info("BIP %d disappeared during backfill, skipping", doc.number)
                continue

            try:
                self.store.patch(current.model_copy(update={"explanation": text}))
            except DocumentNotFound:
                logger.info("BIP %d disappeared during backfill, skipping", doc.number)
                continue
            except StorageFailure as e:
                logger.error("Stopping backfill cycle, storage write failed: %s", e)
                counter("backfill.storage_failed")
                break

            patched += 1
            counter("backfill.patched")
            if index < len(pending) - 1 and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

        log_event("backfill.cycle", patched=patched, remaining=len(self.store.missing_explanations()))
        return patched

    async def run_until_done(self, max_batches: int | None = None) -> int:
        """Run cycles back to back until nothing is left or max_batches is hit."""
        total = 0
        batches = 0
        while max_batches is None or batches < max_batches:
            patched = await self.run_once()
            batches += 1
            total += patched
            if patched == 0:
                break
        return total

    async def run_forever(self, interval_seconds: float = BACKFILL_INTERVAL_SECONDS) -> None:
        """Loop until cancelled."""
        logger.info("Explanation backfill started (every %ss)", interval_seconds)
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Explanation backfill cycle failed")
            await asyncio.sleep(interval_seconds)
