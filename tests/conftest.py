"""
Shared fixtures for BIP Explorer tests.

Upstream GitHub and the LLM are replaced by in-process fakes; storage uses the
real FileBackend in a pytest tmp_path.
"""

from __future__ import annotations

import pytest

from bipexplorer.documents.models import Document
from bipexplorer.github.client import RemoteDocument, UpstreamUnavailable
from bipexplorer.observability import telemetry
from bipexplorer.services.documents import DocumentService
from bipexplorer.storage.cache_store import CacheStore
from bipexplorer.storage.file_backend import FileBackend

MEDIAWIKI_141 = """<pre>
  BIP: 141
  Layer: Consensus (soft fork)
  Title: Segregated Witness (Consensus layer)
  Author: Eric Lombrozo <elombrozo@gmail.com>
          Johnson Lau <jl2012@xbt.hk>
          Pieter Wuille <pieter.wuille@gmail.com>
  Comments-Summary: No comments yet.
  Status: Final
  Type: Standards Track
  Created: 2015-12-21
  License: PD
</pre>

==Abstract==

This BIP defines a new structure called a "witness" that is committed to blocks separately from the transaction merkle tree.

==Motivation==

See BIP 16 and BIP-143 for background.
"""

MARKDOWN_340 = """```
  BIP: 340
  Title: Schnorr Signatures for secp256k1
  Authors: Pieter Wuille <pieter.wuille@gmail.com>
           Jonas Nick <jonasd.nick@gmail.com>
           Tim Ruffing <crypto@timruffing.de>
  Status: Final
  Type: Standards Track
  Created: 2020-01-19
```

## Abstract

This document proposes a standard for 64-byte Schnorr signatures over the elliptic curve secp256k1.

## Motivation

Builds on BIP 141.
"""

MEDIAWIKI_16 = """<pre>
  BIP: 16
  Title: Pay to Script Hash
  Author: Gavin Andresen <gavinandresen@gmail.com>
  Status: Final
  Type: Standards Track
  Created: 2012-01-03
</pre>

==Abstract==

This BIP describes a new "standard" transaction type for the Bitcoin scripting system.
"""

MEDIAWIKI_999 = """<pre>
  BIP: 999
  Title: Experimental Thing
  Author: Alice and Bob
  Status: Something Odd
  Type: Informational
</pre>

No abstract heading here.
"""


class FakeClock:
    """Epoch-ms clock the test moves by hand."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeSource:
    """Stands in for GitHubSourceClient: serves files from a dict."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files = dict(files or {})
        self.fail_listing = False
        self.list_calls = 0

    async def list_documents(self) -> list[RemoteDocument]:
        self.list_calls += 1
        if self.fail_listing:
            raise UpstreamUnavailable("GitHub API error: 503")
        return [RemoteDocument(name, f"https://raw.example/{name}") for name in sorted(self.files)]

    async def fetch_many(self, remotes: list[RemoteDocument]) -> list[tuple[RemoteDocument, str]]:
        return [(r, self.files[r.filename]) for r in remotes if r.filename in self.files]


def make_document(number: int, **overrides) -> Document:
    fields = {
        "number": number,
        "title": f"BIP {number} title",
        "authors": ["Satoshi"],
        "status": "Draft",
        "type": "Standards Track",
        "content": f"content of bip {number}",
        "source_filename": f"bip-{number:04d}.mediawiki",
        "source_url": f"https://github.com/bitcoin/bips/blob/master/bip-{number:04d}.mediawiki",
        "categories": ["general"],
    }
    fields.update(overrides)
    return Document(**fields)


@pytest.fixture(autouse=True)
def reset_telemetry():
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def file_backend(tmp_path) -> FileBackend:
    return FileBackend(tmp_path / "cache")


@pytest.fixture
def store(file_backend, clock) -> CacheStore:
    return CacheStore(file_backend, clock=clock)


@pytest.fixture
def sample_files() -> dict[str, str]:
    return {
        "bip-0016.mediawiki": MEDIAWIKI_16,
        "bip-0141.mediawiki": MEDIAWIKI_141,
        "bip-0340.md": MARKDOWN_340,
        "bip-0999.mediawiki": MEDIAWIKI_999,
    }


@pytest.fixture
def source(sample_files) -> FakeSource:
    return FakeSource(sample_files)


@pytest.fixture
def service(store, source) -> DocumentService:
    return DocumentService(store=store, source=source)
