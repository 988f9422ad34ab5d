# rkive/api/models.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from rkive.models.paper import Paper


class PaperSummary(BaseModel):
    """
    Basic metadata about a paper.
    """
    id: str = Field(..., description="Paper id.")
    title: str = Field("", description="Title of the paper.")
    authors: Optional[str] = Field(None, description="Author line as entered at upload.")
    year_published: Optional[int] = Field(None, description="Publication year.")
    category: Optional[str] = Field(None, description="Research category.")
    abstract: Optional[str] = Field(
        None,
        description="Abstract of the paper, if available.",
    )

    @classmethod
    def from_paper(cls, paper: Paper) -> "PaperSummary":
        return cls(
            id=paper.id,
            title=paper.title or "",
            authors=paper.authors,
            year_published=paper.year_published,
            category=paper.category,
            abstract=paper.abstract,
        )


class PaperDetail(PaperSummary):
    file_url: Optional[str] = None
    uploaded_by: Optional[str] = None
    views: int = 0
    citations_extracted: bool = False
    extraction_status: Optional[str] = None
    citation_count: int = Field(0, description="How many stored papers cite this one.")

    @classmethod
    def from_paper_with_count(cls, paper: Paper, citation_count: int) -> "PaperDetail":
        return cls(
            **PaperSummary.from_paper(paper).model_dump(),
            file_url=paper.file_url,
            uploaded_by=paper.uploaded_by,
            views=paper.views,
            citations_extracted=paper.citations_extracted,
            extraction_status=paper.extraction_status,
            citation_count=citation_count,
        )


class SearchHit(PaperSummary):
    incoming: int = Field(0, description="Papers citing this one.")
    outgoing: int = Field(0, description="Papers this one cites.")


class RelatedPaperView(PaperSummary):
    similarity: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Keyword-overlap similarity to the reference paper [0,1].",
    )


class RelatedPapersResult(BaseModel):
    paper: PaperSummary
    threshold: float
    related: List[RelatedPaperView] = Field(default_factory=list)


class TreeNode(BaseModel):
    """
    One node of a citation tree: the focal paper, a cited paper or a
    semantically related paper.
    """
    id: str
    name: str = ""
    author: Optional[str] = None
    year: Optional[int] = None
    citations: int = 0
    similarity: Optional[float] = None


class CitationTree(BaseModel):
    main: TreeNode
    children: List[TreeNode] = Field(
        default_factory=list,
        description="Papers the main paper cites.",
    )
    semantic_related: List[TreeNode] = Field(
        default_factory=list,
        description="Most similar uncited papers, best first.",
    )
    similarity_threshold: float


class CitationExport(BaseModel):
    main_paper: TreeNode
    direct_citations: List[TreeNode] = Field(default_factory=list)
    semantic_related: List[TreeNode] = Field(default_factory=list)
    export_date: datetime
    similarity_threshold: float


class CitationView(BaseModel):
    citing_paper_id: str
    cited_paper_id: str
    source: str = "manual"


class ExtractionResultView(BaseModel):
    paper_id: str
    citation_count: int
    extraction_status: str
    cited_paper_ids: List[str] = Field(default_factory=list)
    message: str
    warning: Optional[str] = None
