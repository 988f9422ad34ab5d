from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from rkive.api.models import (
    CitationExport,
    CitationTree,
    PaperDetail,
    PaperSummary,
    RelatedPapersResult,
    RelatedPaperView,
    SearchHit,
    TreeNode,
)
from rkive.config.settings import settings
from rkive.graph.store import PaperStore
from rkive.models.paper import Paper
from rkive.similarity.ranking import CandidateFetcher, RelatedPaper, fetch_related_papers


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _tree_node(paper: Paper, citations: int = 0, similarity: Optional[float] = None) -> TreeNode:
    return TreeNode(
        id=paper.id,
        name=paper.title or "",
        author=paper.authors,
        year=paper.year_published,
        citations=citations,
        similarity=similarity,
    )


def _related_view(related: RelatedPaper) -> RelatedPaperView:
    return RelatedPaperView(
        **PaperSummary.from_paper(related.paper).model_dump(),
        similarity=related.similarity,
    )


# ---------------------------------------------------------------------------
# Public API functions used by the web app and CLI
# ---------------------------------------------------------------------------


def get_paper_detail(store: PaperStore, paper_id: str) -> PaperDetail:
    paper = store.get_paper(paper_id)
    return PaperDetail.from_paper_with_count(paper, store.incoming_citation_count(paper_id))


def search_papers_with_counts(
    store: PaperStore,
    query: str,
    limit: Optional[int] = None,
) -> List[SearchHit]:
    """
    Title search, each hit annotated with its incoming (cited-by) and
    outgoing (references) citation counts.
    """
    limit = settings.SEARCH_LIMIT if limit is None else limit
    hits: List[SearchHit] = []
    for paper in store.search_papers(query, limit=limit):
        hits.append(
            SearchHit(
                **PaperSummary.from_paper(paper).model_dump(),
                incoming=store.incoming_citation_count(paper.id),
                outgoing=store.outgoing_citation_count(paper.id),
            )
        )
    return hits


def get_related_papers(
    store: PaperStore,
    paper_id: str,
    threshold: Optional[float] = None,
    fetcher: Optional[CandidateFetcher] = None,
) -> RelatedPapersResult:
    """
    Rank up to CANDIDATE_LIMIT other papers against `paper_id`.

    `fetcher` defaults to the store's own candidate query. A failing fetch
    gives an empty `related` list.
    """
    paper = store.get_paper(paper_id)
    threshold = settings.SIMILARITY_THRESHOLD if threshold is None else threshold

    related = fetch_related_papers(
        paper,
        fetcher or store.fetch_candidate_papers,
        threshold=threshold,
        candidate_limit=settings.CANDIDATE_LIMIT,
        top_k=settings.RELATED_TOP_K,
    )

    return RelatedPapersResult(
        paper=PaperSummary.from_paper(paper),
        threshold=threshold,
        related=[_related_view(r) for r in related],
    )


def get_citation_tree(
    store: PaperStore,
    paper_id: str,
    threshold: Optional[float] = None,
    fetcher: Optional[CandidateFetcher] = None,
) -> CitationTree:
    """
    The focal paper, the papers it cites, and its closest related papers.

    Every node carries how many stored papers cite it. Related papers are
    limited to RELATED_DISPLAY_COUNT entries.
    """
    paper = store.get_paper(paper_id)
    threshold = settings.SIMILARITY_THRESHOLD if threshold is None else threshold

    children = [
        _tree_node(cited, citations=store.incoming_citation_count(cited.id))
        for cited in store.cited_papers(paper_id)
    ]

    related = fetch_related_papers(
        paper,
        fetcher or store.fetch_candidate_papers,
        threshold=threshold,
        candidate_limit=settings.CANDIDATE_LIMIT,
        top_k=settings.RELATED_TOP_K,
    )
    semantic_related = [
        _tree_node(r.paper, citations=0, similarity=r.similarity)
        for r in related[: settings.RELATED_DISPLAY_COUNT]
    ]

    return CitationTree(
        main=_tree_node(paper, citations=store.incoming_citation_count(paper_id)),
        children=children,
        semantic_related=semantic_related,
        similarity_threshold=threshold,
    )


def export_citation_data(tree: CitationTree, now: Optional[datetime] = None) -> CitationExport:
    return CitationExport(
        main_paper=tree.main,
        direct_citations=list(tree.children),
        semantic_related=list(tree.semantic_related),
        export_date=now or datetime.now(timezone.utc),
        similarity_threshold=tree.similarity_threshold,
    )
