"""
Client for the upstream bitcoin/bips repository on GitHub.

One attempt per call, no retry and no rate-limit backoff. Any transport error
or non-success status surfaces as UpstreamUnavailable.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx

from bipexplorer.config import (
    DOCUMENT_EXTENSIONS,
    DOCUMENT_PREFIX,
    FETCH_BATCH_DELAY_SECONDS,
    FETCH_BATCH_SIZE,
    GITHUB_API_BASE,
    GITHUB_TIMEOUT_SECONDS,
    GITHUB_TOKEN,
    GITHUB_USER_AGENT,
)
from bipexplorer.observability.logging import get_logger
from bipexplorer.observability.telemetry import counter, log_event

logger = get_logger(__name__)


class UpstreamUnavailable(Exception):
    """The upstream listing or a download could not be completed."""


@dataclass(frozen=True)
class RemoteDocument:
    filename: str
    raw_content_url: str


def is_document_filename(name: str) -> bool:
    return name.startswith(DOCUMENT_PREFIX) and name.endswith(DOCUMENT_EXTENSIONS)


class GitHubSourceClient:
    """
    Async access to the repository listing, raw files and commit history.

    A fresh httpx.AsyncClient is opened per operation; ``transport`` lets tests
    plug in an httpx.MockTransport.
    """

    def __init__(
        self,
        api_base: str = GITHUB_API_BASE,
        token: str | None = GITHUB_TOKEN,
        timeout: float = GITHUB_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": GITHUB_USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    async def _get(
        self, client: httpx.AsyncClient, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        try:
            response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            logger.warning("GitHub request timed out: %s", url)
            raise UpstreamUnavailable(f"Timed out requesting {url}") from e
        except httpx.RequestError as e:
            logger.error("GitHub request failed: %s (%s)", url, e)
            raise UpstreamUnavailable(f"Request to {url} failed: {e}") from e

        if not response.is_success:
            raise UpstreamUnavailable(f"GitHub API error: {response.status_code} for {url}")
        return response

    async def list_documents(self) -> list[RemoteDocument]:
        """
        List BIP source files at the repository root.

        Raises:
            UpstreamUnavailable: If the listing cannot be fetched or decoded
        """
        async with self._client() as client:
            response = await self._get(client, f"{self.api_base}/contents")

        try:
            entries = response.json()
        except ValueError as e:
            raise UpstreamUnavailable("GitHub listing was not valid JSON") from e
        if not isinstance(entries, list):
            raise UpstreamUnavailable("GitHub listing was not a list")

        documents = [
            RemoteDocument(filename=entry["name"], raw_content_url=entry["download_url"])
            for entry in entries
            if isinstance(entry, dict)
            and isinstance(entry.get("name"), str)
            and is_document_filename(entry["name"])
            and entry.get("download_url")
        ]
        logger.info("Listed %d document files upstream", len(documents))
        return documents

    async def fetch_content(self, url: str) -> str:
        """Download one raw file. Raises UpstreamUnavailable on failure."""
        async with self._client() as client:
            response = await self._get(client, url)
        return response.text

    async def fetch_many(
        self,
        remotes: list[RemoteDocument],
        batch_size: int = FETCH_BATCH_SIZE,
        delay_seconds: float = FETCH_BATCH_DELAY_SECONDS,
    ) -> list[tuple[RemoteDocument, str]]:
        """
        Download files in small concurrent batches with a pause between batches.

        A file that fails to download is logged and left out of the result.

        Side Effects:
            - Increments ``github.fetch_failed`` per dropped file
        """
        results: list[tuple[RemoteDocument, str]] = []

        async with self._client() as client:

            async def fetch_one(remote: RemoteDocument) -> tuple[RemoteDocument, str] | None:
                try:
                    response = await self._get(client, remote.raw_content_url)
                except UpstreamUnavailable as e:
                    logger.warning("Dropping %s: %s", remote.filename, e)
                    counter("github.fetch_failed")
                    return None
                return remote, response.text

            for start in range(0, len(remotes), batch_size):
                batch = remotes[start : start + batch_size]
                fetched = await asyncio.gather(*(fetch_one(r) for r in batch))
                results.extend(item for item in fetched if item is not None)

                if start + batch_size < len(remotes) and delay_seconds > 0:
                    await asyncio.sleep(delay_seconds)

        log_event("github.fetch_many", requested=len(remotes), fetched=len(results))
        return results

    async def fetch_commits(self, path: str, per_page: int = 100) -> list[dict[str, Any]]:
        """Commit list touching ``path``, newest first."""
        async with self._client() as client:
            response = await self._get(
                client, f"{self.api_base}/commits", params={"path": path, "per_page": per_page}
            )
        commits = response.json()
        return commits if isinstance(commits, list) else []

    async def fetch_commit(self, sha: str) -> dict[str, Any]:
        """Single commit including stats and touched files."""
        async with self._client() as client:
            response = await self._get(client, f"{self.api_base}/commits/{sha}")
        return response.json()
