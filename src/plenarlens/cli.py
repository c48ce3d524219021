"""Command line front end for searching and analysing protocols."""
from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional

from .config import AppConfig, load_config, load_credentials, save_config, save_credentials
from .core.errors import PlenarlensError
from .core.types import ApiKeys, Document, RetrievalQuery, TurnRole
from .retrieval import SearchStatus
from .runtime import create_workspace
from .workspace import AnalysisWorkspace

LOGGER = logging.getLogger(__name__)

_EXIT_COMMANDS = {"", "exit", "quit", ":q"}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bundestagsprotokolle suchen und mit Gemini analysieren")
    parser.add_argument("--config", type=Path, help="Path to an explicit configuration file")
    parser.add_argument("--credentials", type=Path, help="Path to the credential store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="List plenary protocols")
    search.add_argument("--wahlperiode", type=int, default=21, help="Legislative period")
    search.add_argument("--start", help="Earliest session date (YYYY-MM-DD)")
    search.add_argument("--end", help="Latest session date (YYYY-MM-DD)")
    search.add_argument("--query", help="Filter on the protocol title")
    search.add_argument("--pages", type=int, default=1, help="Number of pages to load")

    show = subparsers.add_parser("show", help="Show metadata and the start of a protocol")
    show.add_argument("identifier")

    summary = subparsers.add_parser("summary", help="Fast executive summary")
    summary.add_argument("identifier")

    analyse = subparsers.add_parser("analyse", help="Deep discourse analysis")
    analyse.add_argument("identifier")
    analyse.add_argument("--thoughts", action="store_true", help="Print the reasoning trace as well")

    chat = subparsers.add_parser("chat", help="Interactive questions about one protocol")
    chat.add_argument("identifier")
    chat.add_argument("--thoughts", action="store_true", help="Print reasoning traces of the answers")

    subparsers.add_parser("verify", help="Check both API keys")

    keys = subparsers.add_parser("save-keys", help="Store API keys for later runs")
    keys.add_argument("--bundestag", help="DIP API key")
    keys.add_argument("--gemini", help="Gemini API key")

    store = subparsers.add_parser("save-config", help="Write the effective configuration as JSON")
    store.add_argument("--output", type=Path, help="Target file (defaults to --config or the usual location)")
    return parser


def _describe(document: Document) -> str:
    date_str = document.date.strftime("%d.%m.%Y") if document.date else "-"
    return f"{document.identifier:>8}  {document.document_number or '-':<8} {date_str}  {document.title or ''}"


async def _run_search(workspace: AnalysisWorkspace, args: argparse.Namespace) -> int:
    query = RetrievalQuery(
        legislative_period=args.wahlperiode,
        start_date=args.start,
        end_date=args.end,
        title_filter=args.query,
    )
    status = await workspace.search(query)
    pages = 1
    while status is SearchStatus.LOADED and pages < args.pages and workspace.retriever.can_load_more:
        status = await workspace.load_more()
        pages += 1
    retriever = workspace.retriever
    for document in retriever.documents:
        print(_describe(document))
    if retriever.message:
        print(retriever.message)
    if status is SearchStatus.ERROR:
        return 1
    more = " (weitere verfügbar)" if retriever.can_load_more else ""
    print(f"{len(retriever.documents)} von {retriever.total} Protokollen{more}")
    return 0


async def _run_chat(workspace: AnalysisWorkspace, show_thoughts: bool) -> int:
    print("Fragen zum Protokoll eingeben (leere Zeile beendet).")
    while True:
        try:
            message = await asyncio.to_thread(input, "> ")
        except EOFError:
            break
        if message.strip().lower() in _EXIT_COMMANDS:
            break
        turn = await workspace.chat(message)
        if turn is None or turn.role is not TurnRole.ASSISTANT:
            continue
        if show_thoughts and turn.thoughts:
            print(f"[Denkprozess]\n{turn.thoughts}\n")
        print(turn.text)
    return 0


async def _dispatch(config: AppConfig, args: argparse.Namespace) -> int:
    workspace = create_workspace(config, credentials_path=args.credentials)
    try:
        if args.command == "search":
            return await _run_search(workspace, args)
        if args.command == "verify":
            result = await workspace.verify()
            for label, ok in (("Bundestag API", result.bundestag), ("Flash", result.flash), ("Pro", result.pro)):
                print(f"{label:<14} {'ok' if ok else 'fehlgeschlagen'}")
            if result.message:
                print(result.message)
            return 0 if result.all_ok else 1

        document = await workspace.open_document(args.identifier)
        if args.command == "show":
            print(_describe(document))
            if document.source and document.source.pdf_url:
                print(f"PDF: {document.source.pdf_url}")
            print()
            print(document.text[:1500])
            return 0
        if args.command == "summary":
            print(await workspace.summarize())
            return 0
        if args.command == "analyse":
            analysis = await workspace.deep_analysis()
            if analysis is None:
                return 1
            if args.thoughts and analysis.thoughts:
                print(f"[Denkprozess]\n{analysis.thoughts}\n")
            print(analysis.text)
            return 0
        if args.command == "chat":
            return await _run_chat(workspace, args.thoughts)
    except PlenarlensError as exc:
        LOGGER.error("%s", exc)
        print(exc)
        return 1
    finally:
        await workspace.aclose()
    return 2


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    config = load_config(args.config)
    logging.basicConfig(
        level=config.logging.level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command == "save-keys":
        current = load_credentials(config, args.credentials)
        keys = ApiKeys(
            bundestag_key=args.bundestag if args.bundestag is not None else current.bundestag_key,
            gemini_key=args.gemini if args.gemini is not None else current.gemini_key,
        )
        target = save_credentials(keys, args.credentials)
        LOGGER.info("Stored API keys in %s", target)
        return 0
    if args.command == "save-config":
        target = save_config(config, args.output or args.config)
        LOGGER.info("Wrote configuration to %s", target)
        print(target)
        return 0
    return asyncio.run(_dispatch(config, args))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
