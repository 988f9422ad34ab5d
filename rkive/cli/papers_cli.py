# rkive/cli/papers_cli.py

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.progress import Progress
from rich.table import Table

from rkive.citations.detection import extract_citations, extract_citations_from_pdf
from rkive.cli.common import GRAPH_FILE_HELP, console, load_graph, write_graph
from rkive.errors import InvalidCitationError, PaperNotFoundError
from rkive.graph.store import PaperStore
from rkive.models.paper import Paper

app = typer.Typer(help="Add papers and citations to the R-kive paper graph.")


def _paper_from_record(record: Dict[str, Any]) -> Paper:
    data = dict(record)
    year = data.get("year_published")
    if isinstance(year, str):
        data["year_published"] = int(year) if year.strip().isdigit() else None
    return Paper.from_mapping(data)


@app.command("import")
def import_papers(
    records_file: Path = typer.Argument(
        ...,
        exists=True,
        readable=True,
        help="JSON file holding a list of paper records.",
    ),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Import paper records; records carrying `extracted_text` are also scanned
    for citations of the other stored papers.
    """
    with records_file.open("r", encoding="utf-8") as f:
        records = json.load(f)

    if not isinstance(records, list):
        console.print("[red]Expected a JSON list of paper records.[/red]")
        raise typer.Exit(code=1)

    store = PaperStore(load_graph(graph_file, create=True))

    texts: Dict[str, str] = {}
    papers: List[Paper] = []
    for record in records:
        try:
            paper = _paper_from_record(record)
        except (TypeError, ValueError) as e:
            console.print(f"[yellow]Skipping record: {e}[/yellow]")
            continue
        papers.append(paper)
        if record.get("extracted_text"):
            texts[paper.id] = record["extracted_text"]

    for paper in papers:
        store.add_paper(paper)

    total_citations = 0
    if texts:
        with Progress() as progress:
            task = progress.add_task("Detecting citations...", total=len(texts))
            for paper_id, text in texts.items():
                result = extract_citations(store, paper_id, text)
                total_citations += result.citation_count
                progress.advance(task)

    path = write_graph(store.graph, graph_file)
    console.print(
        f"[green]Imported {len(papers)} paper(s), {total_citations} citation(s). "
        f"Graph saved to: [bold]{path}[/bold][/green]"
    )


@app.command("cite")
def cite(
    citing_paper_id: str = typer.Argument(..., help="Paper that does the citing."),
    cited_paper_id: str = typer.Argument(..., help="Paper being cited."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Manually record that one paper cites another.
    """
    store = PaperStore(load_graph(graph_file))
    try:
        store.add_citation(citing_paper_id, cited_paper_id)
    except (InvalidCitationError, PaperNotFoundError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    write_graph(store.graph, graph_file)
    console.print(f"[green]Added citation {citing_paper_id} -> {cited_paper_id}[/green]")


@app.command("extract")
def extract(
    paper_id: str = typer.Argument(..., help="Paper whose full text to scan."),
    text_file: Optional[Path] = typer.Option(
        None, "--text-file", exists=True, readable=True, help="Plain-text full text."
    ),
    pdf: Optional[Path] = typer.Option(
        None, "--pdf", exists=True, readable=True, help="PDF to read the full text from."
    ),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Re-run citation extraction for one paper.
    """
    if (text_file is None) == (pdf is None):
        console.print("[red]Pass exactly one of --text-file or --pdf.[/red]")
        raise typer.Exit(code=2)

    store = PaperStore(load_graph(graph_file))
    try:
        if pdf is not None:
            result = extract_citations_from_pdf(store, paper_id, pdf)
        else:
            result = extract_citations(store, paper_id, text_file.read_text(encoding="utf-8"))
    except PaperNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    write_graph(store.graph, graph_file)
    style = "yellow" if result.warning else "green"
    console.print(f"[{style}]{result.message}[/{style}] ({result.status.value})")


@app.command("pending")
def pending(
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    List papers whose citations still need to be extracted.
    """
    store = PaperStore(load_graph(graph_file))
    papers = store.papers_pending_extraction()
    if not papers:
        console.print("[green]All papers have been processed.[/green]")
        return

    tbl = Table(show_header=True, header_style="bold")
    tbl.add_column("Id")
    tbl.add_column("Title")
    tbl.add_column("Status")
    for p in papers:
        tbl.add_row(p.id, p.title or "", p.extraction_status or "pending")
    console.print(tbl)
