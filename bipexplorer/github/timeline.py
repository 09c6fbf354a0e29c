"""
Commit timeline for a single BIP file.

The commit list for the file is turned into a small set of notable events:
creation, status changes (recognized from the commit message), major
revisions and renames. Results are memoized per BIP number in a TTLCache.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal

from cachetools import TTLCache

from bipexplorer.config import (
    FETCH_BATCH_DELAY_SECONDS,
    TIMELINE_CACHE_MAX_ENTRIES,
    TIMELINE_CACHE_TTL_SECONDS,
    TIMELINE_DETAILED_COMMITS,
    TIMELINE_MAJOR_REVISION_LINES,
)
from bipexplorer.documents.models import ApiModel
from bipexplorer.github.client import GitHubSourceClient, UpstreamUnavailable
from bipexplorer.observability.logging import get_logger
from bipexplorer.observability.telemetry import counter

logger = get_logger(__name__)

EventType = Literal["created", "status_change", "major_revision", "file_rename"]

STATUS_WORDS = (
    "final",
    "active",
    "draft",
    "rejected",
    "withdrawn",
    "obsolete",
    "replaced",
    "proposed",
    "accepted",
)


class TimelineEvent(ApiModel):
    date: str
    type: EventType
    title: str
    author: str
    commit_sha: str
    message: str | None = None
    additions: int | None = None
    deletions: int | None = None
    files_changed: int | None = None


class Timeline(ApiModel):
    bip_number: int
    filename: str | None = None
    events: list[TimelineEvent]
    first_commit: str
    last_updated: str
    total_commits: int


def candidate_filenames(number: int) -> list[str]:
    """Upstream filename variants, zero-padded first."""
    padded = f"{number:04d}"
    names = []
    for ext in (".mediawiki", ".md"):
        for stem in (padded, str(number)):
            name = f"bip-{stem}{ext}"
            if name not in names:
                names.append(name)
    return names


def is_status_change(message: str) -> bool:
    lowered = message.lower()
    return any(
        f"to {word}" in lowered
        or f"mark {word}" in lowered
        or f"status {word}" in lowered
        or f"{word} status" in lowered
        for word in STATUS_WORDS
    )


def status_from_message(message: str) -> str:
    lowered = message.lower()
    for word in STATUS_WORDS:
        if word in lowered:
            return word.capitalize()
    return "Updated"


def _commit_author(commit: dict[str, Any]) -> str:
    login = (commit.get("author") or {}).get("login")
    if login:
        return login
    return commit.get("commit", {}).get("author", {}).get("name", "unknown")


def _commit_date(commit: dict[str, Any]) -> str:
    return commit.get("commit", {}).get("author", {}).get("date", "")


def build_events(
    commits: list[dict[str, Any]],
    number: int,
    major_revision_lines: int = TIMELINE_MAJOR_REVISION_LINES,
) -> list[TimelineEvent]:
    """
    Classify commits (newest first, as GitHub returns them) into events.

    Each non-initial commit yields at most one event; status changes win over
    major revisions, which win over renames.

    Returns:
        Events sorted by date ascending
    """
    if not commits:
        return []

    first = commits[-1]
    events = [
        TimelineEvent(
            date=_commit_date(first),
            type="created",
            title=f"BIP-{number} Initial Draft",
            author=_commit_author(first),
            commit_sha=first.get("sha", ""),
            message=first.get("commit", {}).get("message"),
        )
    ]

    for commit in reversed(commits[:-1]):
        message = commit.get("commit", {}).get("message", "")
        stats = commit.get("stats") or {}
        files = commit.get("files") or []
        base = {
            "date": _commit_date(commit),
            "author": _commit_author(commit),
            "commit_sha": commit.get("sha", ""),
            "message": message,
        }

        if is_status_change(message):
            events.append(
                TimelineEvent(
                    type="status_change",
                    title=f"Status changed to {status_from_message(message)}",
                    additions=stats.get("additions"),
                    deletions=stats.get("deletions"),
                    **base,
                )
            )
            continue

        changed = stats.get("additions", 0) + stats.get("deletions", 0)
        if stats and changed > major_revision_lines:
            events.append(
                TimelineEvent(
                    type="major_revision",
                    title=f"Major revision ({changed} changes)",
                    additions=stats.get("additions"),
                    deletions=stats.get("deletions"),
                    files_changed=len(files) or 1,
                    **base,
                )
            )
        elif any(f.get("status") == "renamed" for f in files):
            events.append(TimelineEvent(type="file_rename", title="File renamed or moved", **base))

    events.sort(key=lambda e: e.date)
    return events


def empty_timeline(number: int) -> Timeline:
    return Timeline(
        bip_number=number, events=[], first_commit="", last_updated="", total_commits=0
    )


class TimelineService:
    """Builds and memoizes commit timelines per BIP number."""

    def __init__(
        self,
        client: GitHubSourceClient,
        ttl_seconds: float = TIMELINE_CACHE_TTL_SECONDS,
        max_entries: int = TIMELINE_CACHE_MAX_ENTRIES,
        detailed_commits: int = TIMELINE_DETAILED_COMMITS,
        detail_delay_seconds: float = FETCH_BATCH_DELAY_SECONDS,
    ) -> None:
        self.client = client
        self.detailed_commits = detailed_commits
        self.detail_delay_seconds = detail_delay_seconds
        self._cache: TTLCache[int, Timeline] = TTLCache(maxsize=max_entries, ttl=ttl_seconds)

    async def _find_commits(
        self, number: int, filename: str | None
    ) -> tuple[str | None, list[dict[str, Any]]]:
        names = candidate_filenames(number)
        if filename:
            names = [filename] + [n for n in names if n != filename]

        for name in names:
            try:
                commits = await self.client.fetch_commits(name)
            except UpstreamUnavailable as e:
                logger.debug("No commit list for %s: %s", name, e)
                continue
            if commits:
                return name, commits
        return None, []

    async def _detail(self, commits: list[dict[str, Any]]) -> list[dict[str, Any]]:
        detailed = []
        for index, commit in enumerate(commits):
            try:
                detailed.append(await self.client.fetch_commit(commit["sha"]))
            except (UpstreamUnavailable, KeyError) as e:
                logger.debug("Using basic commit info: %s", e)
                detailed.append(commit)
            if index < len(commits) - 1 and self.detail_delay_seconds > 0:
                await asyncio.sleep(self.detail_delay_seconds)
        return detailed

    async def get_timeline(self, number: int, filename: str | None = None) -> Timeline:
        """
        Timeline for one BIP, empty when the history cannot be fetched.

        Only the most recent ``detailed_commits`` commits are fetched with
        stats; the creation event always comes from the oldest commit.

        Side Effects:
            - Stores non-empty timelines in the TTL cache
        """
        cached = self._cache.get(number)
        if cached is not None:
            counter("timeline.cache_hit")
            return cached

        found, commits = await self._find_commits(number, filename)
        if not commits:
            logger.warning("No commit history found for BIP %d", number)
            return empty_timeline(number)

        detailed = await self._detail(commits[: self.detailed_commits])
        # Keep the oldest commit so the creation event is not lost
        if len(commits) > self.detailed_commits:
            detailed.append(commits[-1])

        timeline = Timeline(
            bip_number=number,
            filename=found,
            events=build_events(detailed, number),
            first_commit=commits[-1].get("sha", ""),
            last_updated=_commit_date(commits[0]),
            total_commits=len(commits),
        )
        self._cache[number] = timeline
        return timeline

    def clear_cache(self, number: int | None = None) -> None:
        if number is None:
            self._cache.clear()
        else:
            self._cache.pop(number, None)

    def cache_size(self) -> int:
        return len(self._cache)
