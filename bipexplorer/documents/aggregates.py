"""
Derived views over the document set: authors, stats and category summaries.

These are recomputed from the documents on demand and are never a source of
truth on their own.
"""

from __future__ import annotations

from collections.abc import Iterable

from bipexplorer.documents.models import (
    Author,
    BipStatus,
    BipType,
    CategorySummary,
    Document,
    Stats,
)


def build_authors(documents: Iterable[Document]) -> list[Author]:
    """
    Group documents by exact author name.

    Returns:
        Authors sorted by bip_count descending, then name; each author's
        numbers ascending
    """
    numbers_by_author: dict[str, set[int]] = {}
    for doc in documents:
        for name in doc.authors:
            numbers_by_author.setdefault(name, set()).add(doc.number)

    authors = [
        Author(name=name, bip_count=len(numbers), bips=sorted(numbers))
        for name, numbers in numbers_by_author.items()
    ]
    authors.sort(key=lambda a: (-a.bip_count, a.name))
    return authors


def compute_stats(documents: Iterable[Document]) -> Stats:
    docs = list(documents)
    contributors = {name for doc in docs for name in doc.authors}

    def count_status(*statuses: BipStatus) -> int:
        wanted = {s.value for s in statuses}
        return sum(1 for d in docs if d.status in wanted)

    def count_type(bip_type: BipType) -> int:
        return sum(1 for d in docs if d.type == bip_type.value)

    return Stats(
        total_bips=len(docs),
        final_bips=count_status(BipStatus.FINAL),
        # Drafts count as active work
        active_bips=count_status(BipStatus.ACTIVE, BipStatus.DRAFT),
        draft_bips=count_status(BipStatus.DRAFT),
        contributors=len(contributors),
        standards_track=count_type(BipType.STANDARDS_TRACK),
        informational=count_type(BipType.INFORMATIONAL),
        process=count_type(BipType.PROCESS),
    )


def summarize_categories(documents: Iterable[Document]) -> list[CategorySummary]:
    """Per-tag document counts, count descending then tag name."""
    numbers_by_tag: dict[str, set[int]] = {}
    for doc in documents:
        for tag in doc.categories:
            numbers_by_tag.setdefault(tag, set()).add(doc.number)

    summaries = [
        CategorySummary(name=tag, count=len(numbers), bips=sorted(numbers))
        for tag, numbers in numbers_by_tag.items()
    ]
    summaries.sort(key=lambda s: (-s.count, s.name))
    return summaries
