# rkive/cli/common.py

from __future__ import annotations

from pathlib import Path
from typing import Optional

import networkx as nx
import typer
from rich.console import Console

from rkive.config.settings import settings
from rkive.graph.storage import load_graph_file, load_latest_graph, save_graph, save_graph_file

console = Console()

GRAPH_FILE_HELP = (
    "Path to a saved graph pickle. "
    "If omitted, the latest graph in settings.graph_dir is used."
)


def load_graph(graph_file: Optional[Path], create: bool = False) -> nx.MultiDiGraph:
    """
    Load a saved graph.

    If --graph-file is provided, that exact file is loaded. Otherwise we try
    the latest graph in settings.graph_dir. With `create=True` a missing
    graph yields a fresh empty one instead of exiting.
    """
    if graph_file is not None:
        path = Path(graph_file)
        if path.exists():
            return load_graph_file(path)
        if create:
            return nx.MultiDiGraph()
        console.print(f"[red]Graph file not found:[/red] {path}")
        raise typer.Exit(code=1)

    G = load_latest_graph(settings.graph_dir)
    if G is None:
        if create:
            return nx.MultiDiGraph()
        console.print(
            f"[red]No graph found in {settings.graph_dir}.[/red]\n"
            "Import some papers first, or pass --graph-file."
        )
        raise typer.Exit(code=1)

    return G


def write_graph(G: nx.MultiDiGraph, graph_file: Optional[Path]) -> Path:
    if graph_file is not None:
        return save_graph_file(G, graph_file)
    return save_graph(G, name=settings.GRAPH_DEFAULT_NAME, directory=settings.graph_dir)
