"""Operator CLI for replaying transcripts and inspecting stored chunks."""

from __future__ import annotations

import asyncio
import logging
import sys
import uuid
from pathlib import Path

import click

from transcript_relay.core.config import get_settings
from transcript_relay.core.database import (
    close_database,
    get_session_factory,
    init_database,
    session_scope,
)
from transcript_relay.models.domain.session import SessionCreate
from transcript_relay.services.embedding_client import EmbeddingClient
from transcript_relay.services.ingestion_pipeline import IngestionPipeline
from transcript_relay.services.search_service import SearchService
from transcript_relay.services.session_service import SessionService


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )
    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def read_fragments(path: Path) -> list[str]:
    """One fragment per non-blank line of a transcript file."""
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip()]


async def _replay(path: Path, session_id: uuid.UUID, language: str) -> None:
    settings = get_settings()
    init_database(settings)
    embedder = EmbeddingClient(settings=settings)
    pipeline = IngestionPipeline(
        session_factory=get_session_factory(),
        embedding_client=embedder,
        settings=settings,
    )

    try:
        fragments = read_fragments(path)
        if not fragments:
            click.echo("No transcript lines found.")
            return

        for fragment in fragments:
            await pipeline.ingest(session_id, language, fragment)
        click.echo(f"Buffered {len(fragments)} fragment(s) for session {session_id}")

        result = await pipeline.flush_now(session_id)
        if result.flushed:
            click.echo(f"Embedded {result.content_length} chars as chunk {result.chunk_id}")
        else:
            click.echo("Nothing was flushed.")
    finally:
        await embedder.close()
        await close_database()


async def _search(query: str, limit: int, session_id: uuid.UUID | None) -> None:
    settings = get_settings()
    init_database(settings)
    embedder = EmbeddingClient(settings=settings)

    try:
        async with session_scope() as db:
            response = await SearchService(db, embedder, settings).search(
                query, limit=limit, session_id=session_id
            )

        if not response.results:
            click.echo("No matches.")
            return

        click.echo(f"--- {response.total_results} results ---")
        for hit in response.results:
            preview = hit.content[:80]
            click.echo(f"  [{hit.distance:.3f}] {hit.session_id} {preview}")
    finally:
        await embedder.close()
        await close_database()


async def _create_session(name: str) -> None:
    init_database(get_settings())
    try:
        async with session_scope() as db:
            session = await SessionService(db).create_session(SessionCreate(name=name))
        click.echo(f"{session.id}  {session.name}")
    finally:
        await close_database()


async def _recount(session_id: uuid.UUID) -> None:
    init_database(get_settings())
    try:
        async with session_scope() as db:
            result = await SessionService(db).recount(session_id)
        click.echo(f"Session {result.session_id}: {result.total_transcripts} transcripts")
    finally:
        await close_database()


@click.group()
def cli() -> None:
    """Operator tools for the transcript relay."""
    _setup_logging()


@cli.command("create-session")
@click.argument("name")
def create_session(name: str) -> None:
    """Create a session and print its id."""
    asyncio.run(_create_session(name))


@cli.command()
@click.argument("transcript_file", type=click.Path(exists=True, path_type=Path))
@click.argument("session_id", type=click.UUID)
@click.option("--language", default="en", show_default=True, help="Language tag")
def replay(transcript_file: Path, session_id: uuid.UUID, language: str) -> None:
    """Feed a transcript file through the pipeline, then flush it."""
    asyncio.run(_replay(transcript_file, session_id, language))


@cli.command()
@click.argument("query")
@click.option("--limit", default=5, show_default=True, help="Number of results")
@click.option("--session", "session_id", type=click.UUID, default=None)
def search(query: str, limit: int, session_id: uuid.UUID | None) -> None:
    """Run a semantic search against stored chunks."""
    asyncio.run(_search(query, limit, session_id))


@cli.command()
@click.argument("session_id", type=click.UUID)
def recount(session_id: uuid.UUID) -> None:
    """Recalculate a session's transcript count from its chunks."""
    asyncio.run(_recount(session_id))


if __name__ == "__main__":
    cli()
