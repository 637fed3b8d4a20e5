"""Command line entry point: ``ordabok lookup <query>`` and friends."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import TYPE_CHECKING

from ordabok.app import open_app
from ordabok.config import Settings
from ordabok.errors import QueryError
from ordabok.logging_config import setup_logging
from ordabok.service import SearchService

if TYPE_CHECKING:
    from ordabok.models.entry import DictionaryEntry
    from ordabok.state import AppState


def _format_entry(entry: DictionaryEntry) -> str:
    ipa = " ".join(f"/{p}/" for p in (entry.ipa_uk, entry.ipa_us) if p)
    head = f"{entry.word}  {ipa}" if ipa else entry.word
    return f"{head}\n    {entry.definition}" if entry.definition else head


async def _lookup(state: AppState, args: argparse.Namespace) -> int:
    service = SearchService(state)
    try:
        results = await service.search(args.query)
    except QueryError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 1
    if not results:
        entry = await service.random_entry()
        if entry is None:
            return 1
        results = [entry]
    for entry in results[: args.limit]:
        print(_format_entry(entry))
    return 0


async def _random(state: AppState, args: argparse.Namespace) -> int:
    entry = await SearchService(state).random_entry()
    if entry is None:
        return 1
    print(_format_entry(entry))
    return 0


async def _update(state: AppState, args: argparse.Namespace) -> int:
    if state.freshness is None:
        print("error: dataset updates are not configured", file=sys.stderr)
        return 1
    outcome = await state.freshness.run(force=args.force)
    print(outcome.value)
    return 0


async def _info(state: AppState, args: argparse.Namespace) -> int:
    print(f"dataset: {state.store.db_path}")
    print(f"entries: {await state.store.count()}")
    if state.metadata is not None:
        record = await state.metadata.load_freshness()
        fetched = record.last_fetched_at_ms if record is not None else "unreadable"
        print(f"last_fetched_at_ms: {fetched}")
    return 0


async def _run(args: argparse.Namespace) -> int:
    settings = Settings()
    setup_logging(settings.logging)
    async with open_app(settings, check_freshness=False) as state:
        return await args.handler(state, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ordabok", description="Offline dictionary lookup")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lookup = subparsers.add_parser("lookup", help="search the dictionary")
    lookup.add_argument("query")
    lookup.add_argument("--limit", type=int, default=10)
    lookup.set_defaults(handler=_lookup)

    random = subparsers.add_parser("random", help="show a random word")
    random.set_defaults(handler=_random)

    update = subparsers.add_parser("update", help="check the dataset for updates now")
    update.add_argument("--force", action="store_true", help="ignore the dataset's age")
    update.set_defaults(handler=_update)

    info = subparsers.add_parser("info", help="show dataset details")
    info.set_defaults(handler=_info)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
