"""
Tests for GitHubSourceClient using httpx.MockTransport.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from bipexplorer.github.client import (
    GitHubSourceClient,
    RemoteDocument,
    UpstreamUnavailable,
    is_document_filename,
)
from bipexplorer.observability.telemetry import get_counter

API = "https://api.example/repos/bitcoin/bips"

LISTING = [
    {"name": "bip-0001.mediawiki", "download_url": "https://raw.example/bip-0001.mediawiki"},
    {"name": "bip-0340.md", "download_url": "https://raw.example/bip-0340.md"},
    {"name": "README.mediawiki", "download_url": "https://raw.example/README.mediawiki"},
    {"name": "bip-0001", "download_url": None},
    {"name": "bip-0002.txt", "download_url": "https://raw.example/bip-0002.txt"},
]


def _client(handler, token=None):
    return GitHubSourceClient(api_base=API, token=token, transport=httpx.MockTransport(handler))


class TestFilenames:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("bip-0141.mediawiki", True),
            ("bip-0340.md", True),
            ("bip-0001.txt", False),
            ("README.md", False),
        ],
    )
    def test_is_document_filename(self, name, expected):
        assert is_document_filename(name) is expected


class TestListDocuments:
    def test_filters_listing(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            return httpx.Response(200, json=LISTING)

        docs = asyncio.run(_client(handler, token="secret").list_documents())

        assert docs == [
            RemoteDocument("bip-0001.mediawiki", "https://raw.example/bip-0001.mediawiki"),
            RemoteDocument("bip-0340.md", "https://raw.example/bip-0340.md"),
        ]
        assert seen["url"] == f"{API}/contents"
        assert seen["headers"]["Accept"] == "application/vnd.github.v3+json"
        assert seen["headers"]["User-Agent"] == "BIPExplorer/1.0"
        assert seen["headers"]["Authorization"] == "token secret"

    def test_no_authorization_without_token(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return httpx.Response(200, json=[])

        asyncio.run(_client(handler).list_documents())
        assert "Authorization" not in seen["headers"]

    def test_error_status_raises(self):
        def handler(request):
            return httpx.Response(403, json={"message": "rate limited"})

        with pytest.raises(UpstreamUnavailable, match="403"):
            asyncio.run(_client(handler).list_documents())

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamUnavailable):
            asyncio.run(_client(handler).list_documents())

    def test_entries_without_a_string_name_are_skipped(self):
        listing = [
            {"name": None, "download_url": "https://raw.example/x"},
            {"name": 141, "download_url": "https://raw.example/y"},
            {"download_url": "https://raw.example/z"},
            {"name": "bip-0016.mediawiki", "download_url": "https://raw.example/bip-0016.mediawiki"},
        ]

        def handler(request):
            return httpx.Response(200, json=listing)

        docs = asyncio.run(_client(handler).list_documents())

        assert [d.filename for d in docs] == ["bip-0016.mediawiki"]

    def test_non_list_payload_raises(self):
        def handler(request):
            return httpx.Response(200, json={"message": "Not Found"})

        with pytest.raises(UpstreamUnavailable):
            asyncio.run(_client(handler).list_documents())


class TestFetch:
    def test_fetch_content(self):
        def handler(request):
            return httpx.Response(200, text="raw text")

        assert asyncio.run(_client(handler).fetch_content("https://raw.example/x")) == "raw text"

    def test_fetch_content_error(self):
        def handler(request):
            return httpx.Response(404)

        with pytest.raises(UpstreamUnavailable):
            asyncio.run(_client(handler).fetch_content("https://raw.example/x"))

    def test_fetch_many_drops_failed_files(self):
        def handler(request):
            if request.url.path.endswith("bad.md"):
                return httpx.Response(500)
            return httpx.Response(200, text=f"body of {request.url.path}")

        remotes = [RemoteDocument(f"bip-{n}.md", f"https://raw.example/bip-{n}.md") for n in range(1, 8)]
        remotes.insert(3, RemoteDocument("bad.md", "https://raw.example/bad.md"))

        results = asyncio.run(_client(handler).fetch_many(remotes, batch_size=3, delay_seconds=0))

        assert [r.filename for r, _ in results] == [f"bip-{n}.md" for n in range(1, 8)]
        assert results[0][1] == "body of /bip-1.md"
        assert get_counter("github.fetch_failed") == 1


class TestCommits:
    def test_fetch_commits_passes_path(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{"sha": "abc"}])

        commits = asyncio.run(_client(handler).fetch_commits("bip-0141.mediawiki"))

        assert commits == [{"sha": "abc"}]
        assert seen["params"] == {"path": "bip-0141.mediawiki", "per_page": "100"}

    def test_fetch_commit(self):
        def handler(request):
            assert request.url.path.endswith("/commits/abc")
            return httpx.Response(200, json={"sha": "abc", "stats": {"additions": 1}})

        assert asyncio.run(_client(handler).fetch_commit("abc"))["sha"] == "abc"
