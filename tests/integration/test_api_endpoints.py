"""
End-to-end tests of the HTTP API with fake upstream and a temp file cache.
"""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import make_document

from bipexplorer.api.app import create_app, warm_cache
from bipexplorer.config import CACHE_DURATION_MS
from bipexplorer.github.timeline import TimelineService
from bipexplorer.services.documents import DocumentService


class StubGenerator:
    def generate(self, title, abstract, content):
        return f"Explained: {title}"


class StubTimelineSource:
    async def fetch_commits(self, path, per_page=100):
        return [
            {
                "sha": "abc",
                "commit": {"author": {"name": "Dev", "date": "2015-12-21T00:00:00Z"}, "message": "Add BIP"},
                "author": {"login": "dev"},
            }
        ]

    async def fetch_commit(self, sha):
        return {
            "sha": sha,
            "commit": {"author": {"name": "Dev", "date": "2015-12-21T00:00:00Z"}, "message": "Add BIP"},
            "author": {"login": "dev"},
        }


@pytest.fixture
def app(service):
    timeline = TimelineService(StubTimelineSource(), detail_delay_seconds=0)
    return create_app(
        service=service, timeline=timeline, generator=StubGenerator(), background_tasks=False
    )


@pytest.fixture
def client(app):
    return TestClient(app)


class TestBips:
    def test_list_fetches_on_empty_cache(self, client, source):
        response = client.get("/api/bips")

        assert response.status_code == 200
        body = response.json()
        assert [b["number"] for b in body] == [16, 141, 340, 999]
        assert body[1]["sourceUrl"] == "https://github.com/bitcoin/bips/blob/master/bip-0141.mediawiki"
        assert body[1]["categories"] == ["capacity", "segwit", "consensus"]
        assert source.list_calls == 1

    def test_list_serves_fresh_cache_without_fetching(self, client, store, source, clock):
        store.replace_all([make_document(1)], timestamp=clock())

        response = client.get("/api/bips")

        assert [b["number"] for b in response.json()] == [1]
        assert source.list_calls == 0

    def test_list_refetches_stale_cache(self, client, store, source, clock):
        store.replace_all([make_document(1)], timestamp=clock())
        clock.advance(CACHE_DURATION_MS + 1)

        response = client.get("/api/bips")

        assert len(response.json()) == 4
        assert source.list_calls == 1

    def test_upstream_failure_is_500_with_message_and_error(self, client, source):
        source.fail_listing = True

        response = client.get("/api/bips")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Failed to fetch BIPs from GitHub API"
        assert "503" in body["error"]

    def test_get_one(self, client):
        client.post("/api/refresh")

        response = client.get("/api/bips/141")

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Segregated Witness (Consensus layer)"
        assert body["authors"] == ["Eric Lombrozo", "Johnson Lau", "Pieter Wuille"]
        assert body["status"] == "Final"
        assert body["type"] == "Standards Track"

    def test_get_unknown_is_404(self, client):
        client.post("/api/refresh")

        response = client.get("/api/bips/4242")

        assert response.status_code == 404
        assert response.json() == {"message": "BIP not found"}

    def test_non_numeric_is_400(self, client):
        response = client.get("/api/bips/abc")

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid BIP number"}

    def test_timeline(self, client):
        client.post("/api/refresh")

        response = client.get("/api/bips/141/timeline")

        assert response.status_code == 200
        body = response.json()
        assert body["bipNumber"] == 141
        assert body["events"][0]["type"] == "created"

    def test_timeline_unknown_bip_is_404(self, client):
        assert client.get("/api/bips/4242/timeline").status_code == 404


class TestRefresh:
    def test_refresh_response(self, client, source, store, clock):
        store.replace_all([make_document(1)], timestamp=clock())

        response = client.post("/api/refresh")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Data refreshed successfully"
        assert body["count"] == 4
        assert body["timestamp"].endswith("Z")
        assert source.list_calls == 1

    def test_refresh_does_not_wait_for_explanations(self, client):
        client.post("/api/refresh")
        body = client.get("/api/bips/141").json()
        assert body.get("explanation") is None

    def test_refresh_failure(self, client, source):
        source.fail_listing = True

        response = client.post("/api/refresh")

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to refresh data"


class TestAuthors:
    def test_authors_sorted_by_count(self, client):
        client.post("/api/refresh")

        authors = client.get("/api/authors").json()

        assert authors[0] == {"name": "Pieter Wuille", "bipCount": 2, "bips": [141, 340]}
        counts = [a["bipCount"] for a in authors]
        assert counts == sorted(counts, reverse=True)

    def test_author_bips_case_insensitive(self, client):
        client.post("/api/refresh")

        response = client.get("/api/authors/pieter%20wuille/bips")

        assert [b["number"] for b in response.json()] == [141, 340]

    def test_author_without_bips(self, client):
        client.post("/api/refresh")
        assert client.get("/api/authors/nobody/bips").json() == []


class TestStats:
    def test_stats(self, client):
        body = client.get("/api/stats").json()

        assert body == {
            "totalBips": 4,
            "finalBips": 3,
            "activeBips": 1,
            "draftBips": 1,
            "contributors": 8,
            "standardsTrack": 3,
            "informational": 1,
            "process": 0,
        }

    def test_stats_upstream_failure(self, client, source):
        source.fail_listing = True
        response = client.get("/api/stats")
        assert response.status_code == 500
        assert response.json()["message"] == "Failed to fetch statistics"


class TestCategories:
    def test_categories_sorted_by_count(self, client):
        body = client.get("/api/categories").json()

        counts = [c["count"] for c in body]
        assert counts == sorted(counts, reverse=True)
        general = next(c for c in body if c["name"] == "general")
        assert general == {"name": "general", "count": 1, "bips": [999]}

    def test_definitions(self, client):
        body = client.get("/api/categories/definitions").json()
        ids = {d["id"] for d in body}
        assert {"governance", "segwit", "general"} <= ids


class TestDependencies:
    def test_graph(self, client):
        body = client.get("/api/dependencies").json()

        assert body["stats"]["totalNodes"] == 4
        edge_ids = {e["id"] for e in body["edges"]}
        assert "141-references-16" in edge_ids
        assert "340-references-141" in edge_ids

    def test_dangling_edges_allowed(self, client, store, clock):
        store.replace_all(
            [make_document(141, replaced_by=[1000]), make_document(16)], timestamp=clock()
        )

        body = client.get("/api/dependencies").json()

        assert [e["id"] for e in body["edges"] if e["type"] == "replaces"] == ["141-replaces-1000"]


class TestHealthAndMisc:
    def test_health(self, client, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert "environment" in body
        assert body["cache"]["backend"] == "file"
        assert body["cache"]["documents"] == 0
        assert body["cache"]["ageMs"] is None
        assert body["llm"]["ready"] is False

    def test_health_reports_refresh_latency(self, client):
        client.post("/api/refresh")

        body = client.get("/health").json()

        assert body["latency"]["refresh"]["count"] == 1
        assert body["counters"]["refresh.completed"] == 1

    def test_health_does_not_refresh(self, client, source):
        client.get("/health")
        assert source.list_calls == 0

    def test_cors_allows_any_origin(self, client):
        response = client.get("/api/categories/definitions", headers={"Origin": "https://example.org"})
        assert response.headers["access-control-allow-origin"] == "*"

    def test_backfill_is_wired_to_store(self, client, app):
        client.post("/api/refresh")
        app.state.backfill.delay_seconds = 0

        patched = asyncio.run(app.state.backfill.run_once())

        assert patched == 4
        assert client.get("/api/bips/16").json()["explanation"] == "Explained: Pay to Script Hash"


class TestStartup:
    def test_warm_cache_loads_documents(self, service):
        asyncio.run(warm_cache(service))
        assert service.store.count() == 4

    def test_warm_cache_swallows_unexpected_errors(self, store):
        class BrokenSource:
            async def list_documents(self):
                raise RuntimeError("listing entry without a name")

        service = DocumentService(store=store, source=BrokenSource())

        asyncio.run(warm_cache(service))

        assert service.store.count() == 0
