# rkive/graph/store.py

from __future__ import annotations

import logging
import threading
from typing import List, Optional

import networkx as nx

from rkive.events import BOOKMARKS_TABLE, CITATIONS_TABLE, PAPERS_TABLE, ChannelHub
from rkive.errors import PaperExistsError
from rkive.graph import builder
from rkive.graph.schema import CitationSource
from rkive.models.paper import Citation, ExtractionStatus, Paper

logger = logging.getLogger("rkive.graph.store")

_PENDING_STATUSES = {None, ExtractionStatus.PENDING.value}


class PaperStore:
    """
    Paper and citation records kept on a NetworkX MultiDiGraph.

    Every insert/delete is announced on the ChannelHub under the table name
    the record belongs to.
    """

    def __init__(self, graph: Optional[nx.MultiDiGraph] = None, hub: Optional[ChannelHub] = None):
        self.graph = graph if graph is not None else nx.MultiDiGraph()
        self.hub = hub if hub is not None else ChannelHub()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Papers
    # ------------------------------------------------------------------

    def add_paper(self, paper: Paper) -> Paper:
        with self._lock:
            existed = builder.find_paper_node(self.graph, paper.id) is not None
            builder.add_paper_node(self.graph, paper)
        self.hub.publish(PAPERS_TABLE, "update" if existed else "insert", {"id": paper.id})
        return paper

    def create_paper(self, paper: Paper) -> Paper:
        """
        Insert a new paper. Raises PaperExistsError if the id is taken; the
        check and the insert happen under one lock acquisition.
        """
        with self._lock:
            if builder.find_paper_node(self.graph, paper.id) is not None:
                raise PaperExistsError(paper.id)
            builder.add_paper_node(self.graph, paper)
        self.hub.publish(PAPERS_TABLE, "insert", {"id": paper.id})
        return paper

    def has_paper(self, paper_id: str) -> bool:
        with self._lock:
            return builder.find_paper_node(self.graph, paper_id) is not None

    def get_paper(self, paper_id: str) -> Paper:
        with self._lock:
            node = builder.require_paper_node(self.graph, paper_id)
            return builder.paper_from_node(self.graph, node)

    def iter_papers(self) -> List[Paper]:
        """
        Snapshot of every stored paper, taken under the store lock so it is
        safe to call while another thread is writing.
        """
        with self._lock:
            return [
                builder.paper_from_node(self.graph, node)
                for node, _ in builder.iter_paper_nodes(self.graph)
            ]

    def search_papers(self, query: str, limit: int = 10) -> List[Paper]:
        """
        Case-insensitive substring match on titles, first `limit` hits.
        """
        q = query.strip().lower()
        if not q:
            return []

        hits: List[Paper] = []
        for paper in self.iter_papers():
            if q in (paper.title or "").lower():
                hits.append(paper)
                if len(hits) >= limit:
                    break
        return hits

    def fetch_candidate_papers(self, exclude_id: str, limit: int) -> List[Paper]:
        """
        Up to `limit` papers other than `exclude_id`, in insertion order.
        """
        out: List[Paper] = []
        if limit <= 0:
            return out
        for paper in self.iter_papers():
            if paper.id == exclude_id:
                continue
            out.append(paper)
            if len(out) >= limit:
                break
        return out

    # ------------------------------------------------------------------
    # Citations
    # ------------------------------------------------------------------

    def add_citation(
        self,
        citing_paper_id: str,
        cited_paper_id: str,
        source: CitationSource = CitationSource.MANUAL,
    ) -> Citation:
        with self._lock:
            citation = builder.add_citation_edge(
                self.graph, citing_paper_id, cited_paper_id, source=source
            )
        logger.debug("Citation %s -> %s (%s)", citing_paper_id, cited_paper_id, citation.source)
        self.hub.publish(
            CITATIONS_TABLE,
            "insert",
            {
                "citing_paper_id": citing_paper_id,
                "cited_paper_id": cited_paper_id,
                "source": citation.source,
            },
        )
        return citation

    def has_citation(self, citing_paper_id: str, cited_paper_id: str) -> bool:
        with self._lock:
            return builder.has_citation(self.graph, citing_paper_id, cited_paper_id)

    def remove_citation(self, citing_paper_id: str, cited_paper_id: str) -> bool:
        with self._lock:
            removed = builder.remove_citation_edge(self.graph, citing_paper_id, cited_paper_id)
        if removed:
            self.hub.publish(
                CITATIONS_TABLE,
                "delete",
                {"citing_paper_id": citing_paper_id, "cited_paper_id": cited_paper_id},
            )
        return removed

    def list_citations(self) -> List[Citation]:
        with self._lock:
            return list(builder.iter_citation_edges(self.graph))

    def cited_papers(self, paper_id: str) -> List[Paper]:
        with self._lock:
            node = builder.require_paper_node(self.graph, paper_id)
            return [
                builder.paper_from_node(self.graph, n)
                for n in builder.cited_nodes(self.graph, node)
            ]

    def incoming_citation_count(self, paper_id: str) -> int:
        with self._lock:
            node = builder.require_paper_node(self.graph, paper_id)
            return builder.incoming_citation_count(self.graph, node)

    def outgoing_citation_count(self, paper_id: str) -> int:
        with self._lock:
            node = builder.require_paper_node(self.graph, paper_id)
            return builder.outgoing_citation_count(self.graph, node)

    # ------------------------------------------------------------------
    # Extraction bookkeeping
    # ------------------------------------------------------------------

    def set_extraction_status(
        self,
        paper_id: str,
        status: ExtractionStatus,
        citations_extracted: Optional[bool] = None,
    ) -> None:
        with self._lock:
            node = builder.require_paper_node(self.graph, paper_id)
            attrs = self.graph.nodes[node]
            attrs["extraction_status"] = status.value
            if citations_extracted is not None:
                attrs["citations_extracted"] = citations_extracted
        self.hub.publish(PAPERS_TABLE, "update", {"id": paper_id, "extraction_status": status.value})

    def papers_pending_extraction(self) -> List[Paper]:
        return [
            p
            for p in self.iter_papers()
            if not p.citations_extracted or p.extraction_status in _PENDING_STATUSES
        ]

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def add_bookmark(self, user_id: str, paper_id: str) -> bool:
        """
        Bookmark a paper for a user. Returns False if it was already bookmarked.
        """
        with self._lock:
            node = builder.require_paper_node(self.graph, paper_id)
            users = self.graph.nodes[node].setdefault("bookmarked_by", set())
            if user_id in users:
                return False
            users.add(user_id)
        self.hub.publish(BOOKMARKS_TABLE, "insert", {"user_id": user_id, "paper_id": paper_id})
        return True

    def remove_bookmark(self, user_id: str, paper_id: str) -> bool:
        with self._lock:
            node = builder.find_paper_node(self.graph, paper_id)
            if node is None:
                return False
            users = self.graph.nodes[node].get("bookmarked_by") or set()
            if user_id not in users:
                return False
            users.discard(user_id)
        self.hub.publish(BOOKMARKS_TABLE, "delete", {"user_id": user_id, "paper_id": paper_id})
        return True

    def bookmarks_for(self, user_id: str) -> List[Paper]:
        with self._lock:
            return [
                builder.paper_from_node(self.graph, node)
                for node, attrs in builder.iter_paper_nodes(self.graph)
                if user_id in (attrs.get("bookmarked_by") or ())
            ]

    def is_bookmarked(self, user_id: str, paper_id: str) -> bool:
        with self._lock:
            node = builder.find_paper_node(self.graph, paper_id)
            if node is None:
                return False
            return user_id in (self.graph.nodes[node].get("bookmarked_by") or ())

