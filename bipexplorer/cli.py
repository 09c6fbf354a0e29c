"""
BIP Explorer command line.

Usage:
    bip-explorer serve [--host HOST] [--port PORT] [--reload]
    bip-explorer refresh
    bip-explorer backfill [--batch-size N] [--delay SECONDS] [--max-batches N]
    bip-explorer coverage [--strategy map|keywords]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from dotenv import load_dotenv

from bipexplorer.config import (
    API_HOST,
    API_PORT,
    BACKFILL_BATCH_SIZE,
    BACKFILL_DELAY_SECONDS,
    CATEGORIZER_STRATEGY,
    LOG_LEVEL,
)
from bipexplorer.documents.categories import categorization_coverage
from bipexplorer.explain.backfill import ExplanationBackfill
from bipexplorer.explain.generator import ExplanationGenerator
from bipexplorer.github.client import UpstreamUnavailable
from bipexplorer.services.documents import CATEGORIZERS, get_categorizer
from bipexplorer.storage.base import StorageFailure


def _build_service():
    from bipexplorer.api.app import build_service

    return build_service()


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "bipexplorer.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=LOG_LEVEL.lower(),
    )
    return 0


def cmd_refresh(args: argparse.Namespace) -> int:
    service = _build_service()
    try:
        documents = asyncio.run(service.refresh())
    except (UpstreamUnavailable, StorageFailure) as e:
        print(f"Refresh failed: {e}", file=sys.stderr)
        return 1
    print(f"Cached {len(documents)} BIPs")
    return 0


def cmd_backfill(args: argparse.Namespace) -> int:
    service = _build_service()
    worker = ExplanationBackfill(
        service.store,
        ExplanationGenerator(),
        batch_size=args.batch_size,
        delay_seconds=args.delay,
    )
    patched = asyncio.run(worker.run_until_done(max_batches=args.max_batches))
    remaining = len(service.store.missing_explanations())
    print(f"Generated {patched} explanations, {remaining} BIPs still missing one")
    return 0


def cmd_coverage(args: argparse.Namespace) -> int:
    service = _build_service()
    categorizer = get_categorizer(args.strategy)
    documents = [
        doc.model_copy(update={"categories": categorizer(doc)}) for doc in service.store.get_all()
    ]
    if not documents:
        print("Cache is empty; run `bip-explorer refresh` first", file=sys.stderr)
        return 1
    print(json.dumps(categorization_coverage(documents), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bip-explorer", description="BIP Explorer API tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=API_HOST)
    serve.add_argument("--port", type=int, default=API_PORT)
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    serve.set_defaults(func=cmd_serve)

    refresh = subparsers.add_parser("refresh", help="Refetch all BIPs from GitHub now")
    refresh.set_defaults(func=cmd_refresh)

    backfill = subparsers.add_parser("backfill", help="Generate missing explanations")
    backfill.add_argument("--batch-size", type=int, default=BACKFILL_BATCH_SIZE)
    backfill.add_argument("--delay", type=float, default=BACKFILL_DELAY_SECONDS)
    backfill.add_argument(
        "--max-batches", type=int, default=None, help="Stop after N batches (default: until done)"
    )
    backfill.set_defaults(func=cmd_backfill)

    coverage = subparsers.add_parser("coverage", help="Categorization coverage of the cache")
    coverage.add_argument("--strategy", choices=sorted(CATEGORIZERS), default=CATEGORIZER_STRATEGY)
    coverage.set_defaults(func=cmd_coverage)

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
