"""Command-line interface for the studyrag knowledge base.

Usage::

    python -m studyrag.cli ingest --owner alice --file notes/syllabus.pdf

    python -m studyrag.cli ask --owner alice "When is assignment 2 due?"

    python -m studyrag.cli documents --owner alice

    python -m studyrag.cli delete --owner alice --name syllabus.pdf --yes

    python -m studyrag.cli status

Results go to stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from studyrag.config.settings import Settings
from studyrag.main import StudyRagServices, build_services
from studyrag.models.filters import owner_source_scope
from studyrag.services.document_loader import load_document
from studyrag.utils.errors import StudyRagError
from studyrag.utils.logging import configure_logging


async def _handle_ingest(args: argparse.Namespace, services: StudyRagServices) -> int:
    """Read a local file and ingest its text for one owner."""
    source_name = args.name or Path(args.file).name
    print(f"Ingesting {source_name} for owner '{args.owner}'")

    text = await asyncio.to_thread(load_document, args.file)
    result = await services.ingestion.ingest_text(
        args.owner,
        text,
        source_name,
        replace_existing=args.replace,
    )

    print("\nIngestion complete:")
    print(f"  Document ID:    {result.document_id}")
    print(f"  Chunks created: {result.chunks_created}")
    return 0


async def _handle_ask(args: argparse.Namespace, services: StudyRagServices) -> int:
    """Answer a question from the owner's documents."""
    result = await services.query.answer(args.owner, args.question)
    print(result.to_chat_reply())
    if result.degraded:
        print("\n(generation unavailable; showing retrieved excerpts)", file=sys.stderr)
    return 0


async def _handle_documents(args: argparse.Namespace, services: StudyRagServices) -> int:
    """List the owner's documents, newest first."""
    handles = await services.ingestion.list_documents(args.owner)
    if not handles:
        print(f"No documents stored for owner '{args.owner}'.")
        return 0

    print(f"Documents for owner '{args.owner}':")
    for handle in handles:
        ingested = handle.ingested_at.isoformat(timespec="seconds") if handle.ingested_at else "unknown"
        print(f"  {handle.source_name:<40} {handle.chunk_count:>5} chunks  {ingested}  {handle.document_id}")
    return 0


async def _handle_delete(args: argparse.Namespace, services: StudyRagServices) -> int:
    """Delete every chunk of one named document for one owner.

    Destructive; asks for confirmation unless ``--yes`` is passed.
    """
    matches = await services.vector_store.get_by_filter(owner_source_scope(args.owner, args.name))
    if not matches:
        print(f"No chunks found for '{args.name}' (owner '{args.owner}'). Nothing to delete.")
        return 0

    print(f"Found {len(matches)} chunks for '{args.name}' (owner '{args.owner}')")
    if not args.yes:
        confirm = input(f"  Delete all {len(matches)} chunks? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0

    deleted = await services.deletion.delete(args.owner, args.name)
    print(f"\n  Deleted {deleted} chunks.")
    return 0


async def _handle_status(args: argparse.Namespace, services: StudyRagServices) -> int:
    """Report configured providers and whether they respond."""
    generation_ok = await services.generation_provider.validate_credentials()
    total_chunks = await services.vector_store.count()

    print("studyrag status:")
    print(f"  Embedding:    {services.embedding_provider.get_provider_name()} "
          f"({services.embedding_provider.get_dimension()} dims)")
    print(f"  Generation:   {services.generation_provider.get_provider_name()} "
          f"({'reachable' if generation_ok else 'NOT reachable'})")
    print(f"  Vector store: {services.vector_store.get_provider_name()} "
          f"({total_chunks} chunks stored)")
    return 0


_HANDLERS = {
    "ingest": _handle_ingest,
    "ask": _handle_ask,
    "documents": _handle_documents,
    "delete": _handle_delete,
    "status": _handle_status,
}


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the studyrag CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m studyrag.cli",
        description="Ingest course material and ask questions about it.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    ingest_parser = subparsers.add_parser("ingest", help="Ingest a .txt, .md or .pdf file")
    ingest_parser.add_argument("--owner", required=True, help="Owner (user) id")
    ingest_parser.add_argument("--file", required=True, help="Path to the document")
    ingest_parser.add_argument("--name", help="Source name to store (default: file name)")
    ingest_parser.add_argument(
        "--replace",
        action="store_true",
        help="Remove earlier copies stored under the same name after ingesting",
    )

    ask_parser = subparsers.add_parser("ask", help="Ask a question about your documents")
    ask_parser.add_argument("--owner", required=True, help="Owner (user) id")
    ask_parser.add_argument("question", help="Question text")

    docs_parser = subparsers.add_parser("documents", help="List stored documents")
    docs_parser.add_argument("--owner", required=True, help="Owner (user) id")

    delete_parser = subparsers.add_parser("delete", help="Delete a stored document by name")
    delete_parser.add_argument("--owner", required=True, help="Owner (user) id")
    delete_parser.add_argument("--name", required=True, help="Source name to delete")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    subparsers.add_parser("status", help="Show configured providers and store size")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    try:
        services = build_services(app_settings)
        return asyncio.run(_HANDLERS[args.command](args, services))
    except StudyRagError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
