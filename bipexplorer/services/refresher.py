"""
Periodic cache refresher.

Wakes up shortly before the cache would expire so readers rarely hit a stale
cache and pay for the refetch themselves.
"""

from __future__ import annotations

import asyncio

from bipexplorer.config import (
    CACHE_REFRESH_MARGIN_MS,
    REFRESH_INITIAL_DELAY_SECONDS,
    REFRESH_INTERVAL_SECONDS,
)
from bipexplorer.github.client import UpstreamUnavailable
from bipexplorer.observability.logging import get_logger
from bipexplorer.observability.telemetry import counter
from bipexplorer.services.documents import DocumentService
from bipexplorer.storage.base import StorageFailure

logger = get_logger(__name__)


class CacheRefresher:
    def __init__(
        self,
        service: DocumentService,
        interval_seconds: float = REFRESH_INTERVAL_SECONDS,
        initial_delay_seconds: float = REFRESH_INITIAL_DELAY_SECONDS,
        margin_ms: int = CACHE_REFRESH_MARGIN_MS,
    ) -> None:
        self.service = service
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self.margin_ms = margin_ms

    async def run_once(self) -> bool:
        """
        Refresh if the cache is within ``margin_ms`` of expiring.

        Returns:
            True when a refresh ran and succeeded
        """
        if not self.service.store.is_stale(margin_ms=self.margin_ms):
            return False

        logger.info("[Cache Refresher] Refreshing cache...")
        try:
            documents = await self.service.refresh()
        except (UpstreamUnavailable, StorageFailure) as e:
            logger.error("[Cache Refresher] Failed to refresh cache: %s", e)
            counter("refresher.failed")
            return False

        logger.info("[Cache Refresher] Cache refresh complete (%d BIPs)", len(documents))
        return True

    async def run_forever(self) -> None:
        """Initial delay, then check every interval until cancelled."""
        logger.info(
            "[Cache Refresher] Started - first check in %ss, then every %ss",
            self.initial_delay_seconds,
            self.interval_seconds,
        )
        await asyncio.sleep(self.initial_delay_seconds)
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("[Cache Refresher] Refresh cycle failed")
                counter("refresher.crashed")
            await asyncio.sleep(self.interval_seconds)
