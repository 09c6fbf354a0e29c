"""
Reference graph between documents.

Two edge kinds:

- ``replaces``: from the ``replaces`` / ``replaced_by`` preamble fields, drawn
  from the document carrying the field. The target may be a number with no
  document behind it.
- ``references``: ``BIP-123`` / ``BIP 123`` mentions in the content, kept only
  when the target exists and is not the source itself.

Edges are de-duplicated by (source, target) within each kind.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Literal

from bipexplorer.documents.models import ApiModel, Document

_REFERENCE_RE = re.compile(r"\bBIP[-\s](\d{1,4})\b", re.IGNORECASE)

EdgeType = Literal["replaces", "references"]


def node_id(number: int) -> str:
    return f"bip-{number}"


class GraphNode(ApiModel):
    id: str
    bip_number: int
    title: str
    status: str
    type: str
    layer: str | None = None
    categories: list[str]
    authors: list[str]


class GraphEdge(ApiModel):
    id: str
    source: str
    target: str
    type: EdgeType
    label: str


class GraphStats(ApiModel):
    total_nodes: int
    total_edges: int
    replaces_relations: int
    references_relations: int
    connected_nodes: int


class DependencyGraph(ApiModel):
    nodes: list[GraphNode]
    edges: list[GraphEdge]
    stats: GraphStats


def find_references(content: str) -> list[int]:
    """Numbers mentioned as ``BIP-n`` or ``BIP n``, in order of first mention."""
    seen: dict[int, None] = {}
    for match in _REFERENCE_RE.finditer(content):
        seen.setdefault(int(match.group(1)), None)
    return list(seen)


def _replacement_targets(doc: Document) -> Iterable[tuple[int, str]]:
    # Both fields point away from the carrying document: BIP 141 with
    # replaced_by=[1000] yields "141-replaces-1000", labelled "replaced by".
    for target in doc.replaces or []:
        yield target, "replaces"
    for target in doc.replaced_by or []:
        yield target, "replaced by"


def build_dependency_graph(documents: Iterable[Document]) -> DependencyGraph:
    """
    Build nodes for every document and the two edge kinds between them.

    Args:
        documents: Current document set

    Returns:
        DependencyGraph with nodes ordered by number and edges in discovery order
    """
    docs = sorted(documents, key=lambda d: d.number)
    existing = {d.number for d in docs}

    nodes = [
        GraphNode(
            id=node_id(d.number),
            bip_number=d.number,
            title=d.title,
            status=d.status,
            type=d.type,
            layer=d.layer,
            categories=list(d.categories),
            authors=list(d.authors),
        )
        for d in docs
    ]

    edges: list[GraphEdge] = []
    seen: set[tuple[EdgeType, int, int]] = set()

    def add_edge(kind: EdgeType, source: int, target: int, label: str) -> None:
        key = (kind, source, target)
        if key in seen:
            return
        seen.add(key)
        edges.append(
            GraphEdge(
                id=f"{source}-{kind}-{target}",
                source=node_id(source),
                target=node_id(target),
                type=kind,
                label=label,
            )
        )

    for doc in docs:
        for target, label in _replacement_targets(doc):
            add_edge("replaces", doc.number, target, label)

    for doc in docs:
        for target in find_references(doc.content):
            if target != doc.number and target in existing:
                add_edge("references", doc.number, target, "references")

    connected = {e.source for e in edges} | {e.target for e in edges}
    connected &= {n.id for n in nodes}

    stats = GraphStats(
        total_nodes=len(nodes),
        total_edges=len(edges),
        replaces_relations=sum(1 for e in edges if e.type == "replaces"),
        references_relations=sum(1 for e in edges if e.type == "references"),
        connected_nodes=len(connected),
    )
    return DependencyGraph(nodes=nodes, edges=edges, stats=stats)
