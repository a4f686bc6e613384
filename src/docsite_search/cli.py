"""Command line entry points for the documentation search stack."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

load_dotenv()

from .config import settings  # noqa: E402
from .core.logging import configure_logging  # noqa: E402
from .search.engine import SearchEngineClient, SearchEngineError  # noqa: E402

app = typer.Typer(
    name="docsite-search",
    help="Build, refresh and serve the documentation search index",
    add_completion=False,
)
changelog_app = typer.Typer(help="Generate changelog artifacts for the site")
app.add_typer(changelog_app, name="changelog")

console = Console()
logger = logging.getLogger("docsearch.cli")


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, help="Logging level"),
) -> None:
    configure_logging(log_level)


@app.command()
def index(
    docs_path: Path = typer.Option(settings.docs_path, help="Content root to index"),
    rendered: bool = typer.Option(True, help="Also index rendered blog/changelog pages"),
) -> None:
    """Rebuild the search index once."""
    from .indexing.builder import build_index

    try:
        count = asyncio.run(build_index(docs_path, include_rendered=rendered))
    except SearchEngineError as exc:
        logger.error("Indexing failed: %s", exc)
        raise typer.Exit(1)

    console.print(f"[green]Indexed {count} documents[/]")


@app.command()
def schedule(
    interval: int = typer.Option(settings.reindex_interval, help="Seconds between rebuilds"),
    initial_delay: int = typer.Option(settings.initial_delay, help="Seconds before the first rebuild"),
) -> None:
    """Rebuild the index periodically until interrupted."""
    from .indexing.scheduler import AutoIndexer

    async def _run() -> None:
        await SearchEngineClient().ping()
        await AutoIndexer(interval=interval, initial_delay=initial_delay).serve_forever()

    try:
        asyncio.run(_run())
    except SearchEngineError as exc:
        logger.error("Failed to start auto-indexer: %s", exc)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down")


@app.command()
def serve(
    host: str = typer.Option(settings.host),
    port: int = typer.Option(settings.port),
) -> None:
    """Run the search gateway."""
    import uvicorn

    uvicorn.run("docsite_search.main:app", host=host, port=port, log_level=settings.log_level.lower())


@app.command()
def query(
    text: str = typer.Argument(..., help="Search text"),
    size: int = typer.Option(10, min=1, max=50),
) -> None:
    """Run the site's search query directly against the engine."""
    from .indexing.models import SearchResult, build_site_query

    try:
        raw = asyncio.run(SearchEngineClient().search(build_site_query(text, size)))
    except SearchEngineError as exc:
        console.print(f"[red]Search failed:[/] {exc}")
        raise typer.Exit(1)

    table = Table("Score")
    table.add_column("Title", no_wrap=True)
    table.add_column("URL", no_wrap=True)
    table.add_column("Section")
    table.add_column("Excerpt")
    for hit in raw.get("hits", {}).get("hits", []):
        result = SearchResult.from_hit(hit)
        snippet = (result.highlights.get("content") or [result.content])[0]
        table.add_row(
            f"{result.score or 0:.2f}",
            result.title,
            result.url,
            result.section or "",
            snippet,
        )
    console.print(table)


@changelog_app.command("data")
def changelog_data(
    source: Optional[Path] = typer.Option(None, help="Changelog sources directory"),
    output: Optional[Path] = typer.Option(None, help="Output JS module path"),
) -> None:
    """Write the structured changelog data module."""
    from .changelog import generate_changelog_data

    count = generate_changelog_data(source, output)
    console.print(f"Generated changelog data for {count} releases")


@changelog_app.command("rss")
def changelog_rss(
    source: Optional[Path] = typer.Option(None, help="Changelog sources directory"),
    output: Optional[Path] = typer.Option(None, help="Output RSS path"),
) -> None:
    """Write the changelog RSS feed."""
    from .changelog import ChangelogSourceMissingError, generate_changelog_rss

    try:
        count = generate_changelog_rss(source, output)
    except ChangelogSourceMissingError as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(1)
    console.print(f"Generated RSS feed for {count} releases")


if __name__ == "__main__":
    app()
