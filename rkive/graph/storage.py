"""
Snapshots of the in-memory paper graph.

- `save_graph(G, name=None, directory=None) -> Path`
    * Pickles the graph into the graph directory and returns the path.
    * Also refreshes a "graph-latest.pkl" copy next to it.

- `load_latest_graph(directory=None) -> Optional[nx.MultiDiGraph]`
    * Returns the most recently written snapshot, or None if there is none.

- `save_graph_file(G, path, overwrite=True)` / `load_graph_file(path)`
    * Explicit-path variants used by the CLI `--graph-file` option.
"""

from __future__ import annotations

import logging
import pickle
import shutil
import time
from pathlib import Path
from typing import Optional, Union

import networkx as nx

from rkive.config.settings import settings

logger = logging.getLogger("rkive.graph.storage")

GRAPH_DIR: Path = settings.graph_dir
LATEST_NAME = "graph-latest.pkl"

PathLike = Union[str, Path]


def _dump(G: nx.MultiDiGraph, path: Path) -> None:
    with path.open("wb") as f:
        pickle.dump(G, f, protocol=pickle.HIGHEST_PROTOCOL)


def _load(path: Path) -> nx.MultiDiGraph:
    with path.open("rb") as f:
        return pickle.load(f)


def _ensure_dir(directory: Optional[Path]) -> Path:
    """
    Ensure the target directory exists.

    If `directory` is None, fall back to the module-level GRAPH_DIR.
    """
    if directory is None:
        directory = GRAPH_DIR

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def save_graph(
    G: nx.MultiDiGraph,
    name: Optional[str] = None,
    directory: Optional[Path] = None,
) -> Path:
    """
    Persist the given graph to disk using Python's `pickle` module.

    - If `name` is None, use a timestamp-based filename.
    - A name without a suffix gets ".pkl".
    - Also update the "graph-latest.pkl" copy in the same directory.
    """
    directory = _ensure_dir(directory)

    if name is None:
        ts = time.strftime("%Y%m%d-%H%M%S")
        name = f"graph-{ts}.pkl"
    elif not Path(name).suffix:
        name = f"{name}.pkl"

    path = directory / name

    _dump(G, path)

    latest_path = directory / LATEST_NAME
    if path != latest_path:
        try:
            shutil.copy2(path, latest_path)
        except OSError:
            # The primary snapshot is already on disk.
            logger.warning("Could not refresh %s", latest_path)

    logger.info("Saved graph with %d nodes to %s", G.number_of_nodes(), path)
    return path


def load_latest_graph(directory: Optional[Path] = None) -> Optional[nx.MultiDiGraph]:
    """
    Load the most recently modified pickled graph file from the target directory.

    Returns None if no snapshot exists.
    """
    directory = _ensure_dir(directory)

    candidates = [p for p in directory.iterdir() if p.is_file() and p.suffix == ".pkl"]
    if not candidates:
        return None

    latest = max(candidates, key=lambda p: p.stat().st_mtime)

    logger.info("Loading graph snapshot %s", latest)
    return _load(latest)


def save_graph_file(G: nx.MultiDiGraph, path: PathLike, overwrite: bool = True) -> Path:
    """
    Pickle the graph to an exact path (".pkl" is appended when the path has
    no suffix). Raises FileExistsError if the file exists and `overwrite` is
    False.
    """
    path = Path(path)
    if not path.suffix:
        path = path.with_suffix(".pkl")
    if path.exists() and not overwrite:
        raise FileExistsError(f"Refusing to overwrite existing graph file {path}")

    path.parent.mkdir(parents=True, exist_ok=True)
    _dump(G, path)
    return path


def load_graph_file(path: PathLike) -> nx.MultiDiGraph:
    return _load(Path(path))
