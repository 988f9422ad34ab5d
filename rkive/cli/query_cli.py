from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from rkive.api.query import (
    get_citation_tree,
    get_paper_detail,
    get_related_papers,
    search_papers_with_counts,
)
from rkive.cli.common import GRAPH_FILE_HELP, console, load_graph
from rkive.config.settings import settings
from rkive.errors import InvalidThresholdError, PaperNotFoundError
from rkive.graph.store import PaperStore

app = typer.Typer(
    help="Read/query utilities over a saved R-kive paper graph."
)


def _open_store(graph_file: Optional[Path]) -> PaperStore:
    return PaperStore(load_graph(graph_file))


def _fmt_year(year: Optional[int]) -> str:
    return str(year) if year else "—"


@app.command("search")
def search(
    query: str = typer.Argument(..., help="Title fragment to search for."),
    limit: int = typer.Option(
        settings.SEARCH_LIMIT,
        "--limit",
        "-n",
        min=1,
        help="Max number of hits to display.",
    ),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Search papers by title, with cited-by and reference counts.
    """
    store = _open_store(graph_file)
    hits = search_papers_with_counts(store, query, limit=limit)

    if not hits:
        console.print(f"[yellow]No matches for '{query}'.[/yellow]")
        return

    tbl = Table(show_header=True, header_style="bold")
    tbl.add_column("Id")
    tbl.add_column("Title")
    tbl.add_column("Year", justify="right")
    tbl.add_column("Cited by", justify="right")
    tbl.add_column("Cites", justify="right")

    for h in hits:
        tbl.add_row(h.id, h.title, _fmt_year(h.year_published), str(h.incoming), str(h.outgoing))

    console.print(tbl)


@app.command("paper")
def paper(
    paper_id: str = typer.Argument(..., help="Paper id."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Show one paper's metadata and citation count.
    """
    store = _open_store(graph_file)
    try:
        detail = get_paper_detail(store, paper_id)
    except PaperNotFoundError:
        console.print(f"[red]Paper '{paper_id}' not found in graph.[/red]")
        raise typer.Exit(code=1)

    console.print(f"[bold]Paper {detail.id}[/bold]: {detail.title or '(no title)'}")
    if detail.authors:
        console.print(f"Authors: {detail.authors}")
    console.print(f"Year: {_fmt_year(detail.year_published)}  Category: {detail.category or '—'}")
    console.print(f"Cited by: {detail.citation_count}")
    console.print(f"Extraction: {detail.extraction_status or 'pending'}")
    if detail.abstract:
        console.print(f"[dim]{detail.abstract}[/dim]")


@app.command("related")
def related(
    paper_id: str = typer.Argument(..., help="Reference paper id."),
    threshold: float = typer.Option(
        settings.SIMILARITY_THRESHOLD,
        "--threshold",
        "-t",
        help="Minimum similarity in [0, 1].",
    ),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Rank papers by keyword-overlap similarity to the reference paper.
    """
    store = _open_store(graph_file)
    try:
        result = get_related_papers(store, paper_id, threshold=threshold)
    except PaperNotFoundError:
        console.print(f"[red]Paper '{paper_id}' not found in graph.[/red]")
        raise typer.Exit(code=1)
    except InvalidThresholdError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)

    console.print(
        f"[bold]Related to {result.paper.id}[/bold]: {result.paper.title} "
        f"(threshold {result.threshold:.2f})"
    )
    if not result.related:
        console.print("  (none) Try lowering the similarity threshold")
        return

    tbl = Table(show_header=True, header_style="bold")
    tbl.add_column("Id")
    tbl.add_column("Title")
    tbl.add_column("Similarity", justify="right")
    for r in result.related:
        tbl.add_row(r.id, r.title, f"{r.similarity * 100:.0f}%")
    console.print(tbl)


@app.command("tree")
def tree(
    paper_id: str = typer.Argument(..., help="Focal paper id."),
    threshold: float = typer.Option(
        settings.SIMILARITY_THRESHOLD,
        "--threshold",
        "-t",
        help="Minimum similarity for related papers.",
    ),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Print the citation tree of a paper: what it cites and what resembles it.
    """
    store = _open_store(graph_file)
    try:
        view = get_citation_tree(store, paper_id, threshold=threshold)
    except PaperNotFoundError:
        console.print(f"[red]Paper '{paper_id}' not found in graph.[/red]")
        raise typer.Exit(code=1)
    except InvalidThresholdError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)

    console.print(
        f"[bold]{view.main.name}[/bold] ({_fmt_year(view.main.year)}) "
        f"cited by {view.main.citations}"
    )

    console.print("\n[bold]Cites:[/bold]")
    if not view.children:
        console.print("  (none)")
    for child in view.children:
        console.print(f"  • {child.id} — {child.name} (cited by {child.citations})")

    console.print("\n[bold]Semantically related:[/bold]")
    if not view.semantic_related:
        console.print("  (none)")
    for rel in view.semantic_related:
        console.print(f"  • {rel.id} — {rel.name} ({(rel.similarity or 0) * 100:.0f}% similar)")
