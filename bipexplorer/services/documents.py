"""
Document service: keeps the cache fresh and answers the API's queries.

Refresh pipeline: list upstream files -> download in batches -> parse ->
categorize -> carry over existing explanations -> replace the cache snapshot.

Concurrent readers that find the cache stale share a single in-flight refresh:
the first one takes the lock and refreshes, the rest wait on the lock and then
see a fresh cache on the re-check.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from bipexplorer.config import CATEGORIZER_STRATEGY
from bipexplorer.documents.aggregates import compute_stats, summarize_categories
from bipexplorer.documents.categories import categorize
from bipexplorer.documents.graph import DependencyGraph, build_dependency_graph
from bipexplorer.documents.keyword_rules import categorize_by_keywords
from bipexplorer.documents.models import Author, CategorySummary, Document, Stats
from bipexplorer.documents.parser import ParseFailure, parse_document
from bipexplorer.github.client import GitHubSourceClient
from bipexplorer.observability.logging import get_logger
from bipexplorer.observability.telemetry import counter, log_event, time_block
from bipexplorer.storage.cache_store import CacheStore

logger = get_logger(__name__)

Categorizer = Callable[[Document], list[str]]

CATEGORIZERS: dict[str, Categorizer] = {
    "map": categorize,
    "keywords": categorize_by_keywords,
}


def get_categorizer(strategy: str = CATEGORIZER_STRATEGY) -> Categorizer:
    """Categorizer for a strategy name; unknown names fall back to ``map``."""
    try:
        return CATEGORIZERS[strategy]
    except KeyError:
        logger.warning("Unknown categorizer strategy %r, using 'map'", strategy)
        return categorize


class DocumentService:
    """
    Facade between the API routes and the cache.

    Args:
        store: Process-wide cache store
        source: Upstream client (anything with list_documents/fetch_many)
        categorizer: Document -> tags
    """

    def __init__(
        self,
        store: CacheStore,
        source: GitHubSourceClient,
        categorizer: Categorizer | None = None,
    ) -> None:
        self.store = store
        self.source = source
        self.categorizer = categorizer or get_categorizer()
        self._refresh_lock = asyncio.Lock()

    # --- Freshness ---

    async def ensure_fresh(self) -> list[Document]:
        """
        Serve the cached set, refreshing first when it is stale.

        Raises:
            UpstreamUnavailable: If a needed refresh cannot reach GitHub
            StorageFailure: If a needed refresh cannot be persisted
        """
        if not self.store.is_stale():
            return self.store.get_all()

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            if self.store.is_stale():
                await self._refresh_locked()
            else:
                counter("refresh.coalesced")
        return self.store.get_all()

    async def refresh(self) -> list[Document]:
        """Refetch everything regardless of staleness."""
        async with self._refresh_lock:
            return await self._refresh_locked()

    async def _refresh_locked(self) -> list[Document]:
        logger.info("Fetching fresh BIP data from GitHub...")
        with time_block("refresh.latency"):
            remotes = await self.source.list_documents()
            fetched = await self.source.fetch_many(remotes)
            documents = self._build_documents(fetched)
            self.store.replace_all(documents, timestamp=self.store.clock())

        counter("refresh.completed")
        log_event("refresh.completed", listed=len(remotes), stored=len(documents))
        return self.store.get_all()

    def _build_documents(self, fetched) -> list[Document]:
        previous = {doc.number: doc for doc in self.store.get_all()}
        documents = []
        for remote, text in fetched:
            try:
                doc = parse_document(text, remote.filename)
            except ParseFailure as e:
                logger.warning("Skipping %s: %s", remote.filename, e)
                counter("parse.dropped")
                continue

            update: dict = {"categories": self.categorizer(doc)}
            old = previous.get(doc.number)
            if old is not None and old.has_explanation():
                update["explanation"] = old.explanation
            documents.append(doc.model_copy(update=update))
        return documents

    # --- Queries ---

    def get_document(self, number: int) -> Document | None:
        return self.store.get(number)

    def get_documents_by_author(self, name: str) -> list[Document]:
        return self.store.get_by_author(name)

    def get_authors(self) -> list[Author]:
        return self.store.get_authors()

    async def get_stats(self) -> Stats:
        return compute_stats(await self.ensure_fresh())

    async def get_categories(self) -> list[CategorySummary]:
        return summarize_categories(await self.ensure_fresh())

    async def get_dependency_graph(self) -> DependencyGraph:
        return build_dependency_graph(await self.ensure_fresh())
