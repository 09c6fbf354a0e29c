"""
Tests for the replaces/references graph.
"""

from __future__ import annotations

from conftest import make_document

from bipexplorer.documents.graph import build_dependency_graph, find_references


class TestFindReferences:
    def test_hyphen_and_space_forms(self):
        assert find_references("See BIP-16, BIP 141 and BIP-16 again.") == [16, 141]

    def test_requires_separator(self):
        assert find_references("BIP141 and BIPS 32") == []


class TestBuildDependencyGraph:
    def test_dangling_replaced_by_edge(self):
        """A replaced_by target with no document behind it still yields an edge"""
        graph = build_dependency_graph([make_document(141, replaced_by=[1000])])

        assert [e.id for e in graph.edges] == ["141-replaces-1000"]
        edge = graph.edges[0]
        assert edge.source == "bip-141"
        assert edge.target == "bip-1000"
        assert edge.type == "replaces"
        assert graph.stats.replaces_relations == 1

    def test_reference_edges_only_to_existing_documents(self):
        docs = [
            make_document(16),
            make_document(141, content="Builds on BIP 16 and BIP-143. This is BIP 141."),
        ]
        graph = build_dependency_graph(docs)

        refs = [e for e in graph.edges if e.type == "references"]
        assert [(e.source, e.target) for e in refs] == [("bip-141", "bip-16")]

    def test_duplicate_mentions_collapse(self):
        docs = [make_document(16), make_document(30, content="BIP 16, BIP-16, BIP 16")]
        graph = build_dependency_graph(docs)
        assert graph.stats.references_relations == 1

    def test_same_pair_kept_once_per_type(self):
        docs = [
            make_document(16),
            make_document(30, replaces=[16, 16], content="Replaces BIP 16"),
        ]
        graph = build_dependency_graph(docs)

        assert sorted(e.id for e in graph.edges) == ["30-references-16", "30-replaces-16"]
        assert graph.stats.total_edges == 2

    def test_stats_and_nodes(self):
        docs = [
            make_document(1),
            make_document(16),
            make_document(30, content="BIP 16"),
        ]
        graph = build_dependency_graph(docs)

        assert [n.id for n in graph.nodes] == ["bip-1", "bip-16", "bip-30"]
        assert graph.stats.total_nodes == 3
        assert graph.stats.connected_nodes == 2

    def test_json_shape(self):
        graph = build_dependency_graph([make_document(141, replaced_by=[1000])])
        payload = graph.to_json_dict()

        assert set(payload) == {"nodes", "edges", "stats"}
        assert payload["nodes"][0]["bipNumber"] == 141
        assert payload["stats"] == {
            "totalNodes": 1,
            "totalEdges": 1,
            "replacesRelations": 1,
            "referencesRelations": 0,
            "connectedNodes": 1,
        }

    def test_empty_set(self):
        graph = build_dependency_graph([])
        assert graph.nodes == []
        assert graph.edges == []
