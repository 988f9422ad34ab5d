# rkive/graph/builder.py

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import networkx as nx

from rkive.errors import InvalidCitationError, PaperNotFoundError
from rkive.graph.schema import CitationSource, EdgeType, NodeType, paper_node_id
from rkive.models.paper import Citation, Paper


def find_paper_node(G: nx.MultiDiGraph, paper_id: str) -> Optional[Any]:
    """
    Find the node for this paper id in different graph flavors:
      - node id == paper_node_id(paper_id) (e.g. 'paper:p1')
      - node id == paper_id
      - node with node['paper_id'] == paper_id
    """
    node = paper_node_id(paper_id)
    if node in G:
        return node

    if paper_id in G:
        return paper_id

    for n, attrs in G.nodes(data=True):
        if attrs.get("paper_id") == paper_id:
            return n

    return None


def require_paper_node(G: nx.MultiDiGraph, paper_id: str) -> Any:
    node = find_paper_node(G, paper_id)
    if node is None:
        raise PaperNotFoundError(paper_id)
    return node


def iter_paper_nodes(G: nx.MultiDiGraph) -> Iterator[Tuple[Any, Dict[str, Any]]]:
    """
    Yield (node_id, data) for nodes that are typed as papers.
    """
    for node_id, data in G.nodes(data=True):
        if data.get("type") == NodeType.PAPER.value:
            yield node_id, data


def paper_from_node(G: nx.MultiDiGraph, node: Any) -> Paper:
    attrs = G.nodes[node]
    return Paper.from_mapping(attrs, paper_id=attrs.get("paper_id", str(node)))


def add_paper_node(G: nx.MultiDiGraph, paper: Paper) -> str:
    """
    Ensure there's a node for this paper and return its node id.

    Existing nodes have their bibliographic attributes replaced; bookkeeping
    attributes such as bookmarks are left alone.
    """
    node_id = paper_node_id(paper.id)
    attrs = {"type": NodeType.PAPER.value, **paper.to_node_attrs()}

    if node_id in G:
        G.nodes[node_id].update(attrs)
    else:
        G.add_node(node_id, **attrs)

    return node_id


def _citation_edge_keys(G: nx.MultiDiGraph, src: Any, dst: Any) -> List[Any]:
    data = G.get_edge_data(src, dst, default=None) or {}
    return [
        key
        for key, attrs in data.items()
        if attrs.get("type") == EdgeType.PAPER_CITES_PAPER.value
    ]


def has_citation(G: nx.MultiDiGraph, citing_paper_id: str, cited_paper_id: str) -> bool:
    src = find_paper_node(G, citing_paper_id)
    dst = find_paper_node(G, cited_paper_id)
    if src is None or dst is None:
        return False
    return bool(_citation_edge_keys(G, src, dst))


def add_citation_edge(
    G: nx.MultiDiGraph,
    citing_paper_id: str,
    cited_paper_id: str,
    source: CitationSource = CitationSource.MANUAL,
) -> Citation:
    """
    Add a citing→cited edge between two existing papers.

    Raises InvalidCitationError for a self-citation or a duplicate edge and
    PaperNotFoundError if either paper is missing.
    """
    if citing_paper_id == cited_paper_id:
        raise InvalidCitationError("A paper cannot cite itself.")

    src = require_paper_node(G, citing_paper_id)
    dst = require_paper_node(G, cited_paper_id)

    if _citation_edge_keys(G, src, dst):
        raise InvalidCitationError(
            f"Citation {citing_paper_id} -> {cited_paper_id} already exists."
        )

    G.add_edge(src, dst, type=EdgeType.PAPER_CITES_PAPER.value, source=source.value)
    return Citation(citing_paper_id, cited_paper_id, source=source.value)


def remove_citation_edge(G: nx.MultiDiGraph, citing_paper_id: str, cited_paper_id: str) -> bool:
    """
    Remove the citation edge if present. Returns True if something was removed.
    """
    src = find_paper_node(G, citing_paper_id)
    dst = find_paper_node(G, cited_paper_id)
    if src is None or dst is None:
        return False

    keys = _citation_edge_keys(G, src, dst)
    for key in keys:
        G.remove_edge(src, dst, key=key)
    return bool(keys)


def iter_citation_edges(G: nx.MultiDiGraph) -> Iterable[Citation]:
    for u, v, data in G.edges(data=True):
        if data.get("type") != EdgeType.PAPER_CITES_PAPER.value:
            continue
        yield Citation(
            citing_paper_id=G.nodes[u].get("paper_id", str(u)),
            cited_paper_id=G.nodes[v].get("paper_id", str(v)),
            source=data.get("source", CitationSource.MANUAL.value),
        )


def cited_nodes(G: nx.MultiDiGraph, node: Any) -> List[Any]:
    """Papers this node cites, in edge insertion order, without repeats."""
    seen: Dict[Any, None] = {}
    for _, v, data in G.out_edges(node, data=True):
        if data.get("type") == EdgeType.PAPER_CITES_PAPER.value:
            seen.setdefault(v, None)
    return list(seen)


def incoming_citation_count(G: nx.MultiDiGraph, node: Any) -> int:
    return sum(
        1
        for _, _, data in G.in_edges(node, data=True)
        if data.get("type") == EdgeType.PAPER_CITES_PAPER.value
    )


def outgoing_citation_count(G: nx.MultiDiGraph, node: Any) -> int:
    return sum(
        1
        for _, _, data in G.out_edges(node, data=True)
        if data.get("type") == EdgeType.PAPER_CITES_PAPER.value
    )
