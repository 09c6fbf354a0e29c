"""
Tests for the background explanation backfill worker.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import make_document

from bipexplorer.explain.backfill import ExplanationBackfill
from bipexplorer.storage.base import StorageFailure


class StubGenerator:
    def __init__(self):
        self.calls = []

    def generate(self, title, abstract, content):
        self.calls.append(title)
        return f"Explained: {title}"


@pytest.fixture
def generator():
    return StubGenerator()


class TestRunOnce:
    def test_patches_one_batch(self, store, generator):
        store.replace_all([make_document(n) for n in (1, 2, 3)])
        worker = ExplanationBackfill(store, generator, batch_size=2, delay_seconds=0)

        patched = asyncio.run(worker.run_once())

        assert patched == 2
        assert store.get(1).explanation == "Explained: BIP 1 title"
        assert store.get(2).explanation == "Explained: BIP 2 title"
        assert store.get(3).explanation is None

    def test_skips_documents_already_explained(self, store, generator):
        store.replace_all([make_document(1, explanation="done"), make_document(2)])
        worker = ExplanationBackfill(store, generator, batch_size=5, delay_seconds=0)

        asyncio.run(worker.run_once())

        assert generator.calls == ["BIP 2 title"]
        assert store.get(1).explanation == "done"

    def test_nothing_to_do(self, store, generator):
        store.replace_all([make_document(1, explanation="done")])
        worker = ExplanationBackfill(store, generator, delay_seconds=0)
        assert asyncio.run(worker.run_once()) == 0

    def test_storage_failure_ends_cycle(self, store, generator, monkeypatch):
        store.replace_all([make_document(1), make_document(2)])

        def failing_save(document):
            raise StorageFailure("disk full")

        monkeypatch.setattr(store.backend, "save_document", failing_save)
        worker = ExplanationBackfill(store, generator, batch_size=5, delay_seconds=0)

        assert asyncio.run(worker.run_once()) == 0
        assert generator.calls == ["BIP 1 title"]
        assert store.missing_explanations() != []

    def test_document_removed_during_generation_is_skipped(self, store):
        store.replace_all([make_document(1), make_document(2)])

        class RefreshingGenerator(StubGenerator):
            def generate(self, title, abstract, content):
                # A refresh lands mid-cycle and drops BIP 1
                if title == "BIP 1 title":
                    store.replace_all([make_document(2)])
                return super().generate(title, abstract, content)

        worker = ExplanationBackfill(store, RefreshingGenerator(), batch_size=5, delay_seconds=0)
        assert asyncio.run(worker.run_once()) == 1
        assert store.get(2).explanation == "Explained: BIP 2 title"

    def test_rerun_overwrites(self, store, generator):
        store.replace_all([make_document(1)])
        worker = ExplanationBackfill(store, generator, delay_seconds=0)
        asyncio.run(worker.run_once())

        store.patch(store.get(1).model_copy(update={"explanation": None}))
        asyncio.run(worker.run_once())

        assert generator.calls == ["BIP 1 title", "BIP 1 title"]


class TestRunUntilDone:
    def test_processes_everything(self, store, generator):
        store.replace_all([make_document(n) for n in range(1, 6)])
        worker = ExplanationBackfill(store, generator, batch_size=2, delay_seconds=0)

        assert asyncio.run(worker.run_until_done()) == 5
        assert store.missing_explanations() == []

    def test_respects_max_batches(self, store, generator):
        store.replace_all([make_document(n) for n in range(1, 6)])
        worker = ExplanationBackfill(store, generator, batch_size=2, delay_seconds=0)

        assert asyncio.run(worker.run_until_done(max_batches=1)) == 2


class TestRunForever:
    def test_stops_on_cancel(self, store, generator):
        store.replace_all([make_document(1)])
        worker = ExplanationBackfill(store, generator, delay_seconds=0)

        async def scenario():
            task = asyncio.create_task(worker.run_forever(interval_seconds=3600))
            for _ in range(50):
                await asyncio.sleep(0.01)
                if store.get(1).explanation:
                    break
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert store.get(1).explanation == "Explained: BIP 1 title"
