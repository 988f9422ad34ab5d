# rkive/graph/schema.py

from enum import Enum


class NodeType(str, Enum):
    PAPER = "paper"


class EdgeType(str, Enum):
    # Paper→paper citation edges (manual or extracted)
    PAPER_CITES_PAPER = "PAPER_CITES_PAPER"


class CitationSource(str, Enum):
    MANUAL = "manual"
    EXTRACTED = "extracted"


def paper_node_id(paper_id: str) -> str:
    return f"paper:{paper_id}"
