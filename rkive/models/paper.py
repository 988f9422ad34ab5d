# rkive/models/paper.py

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ExtractionStatus(str, Enum):
    """Lifecycle of automatic citation extraction for an uploaded paper."""

    PENDING = "pending"
    PROCESSING = "processing"
    FAILED_NO_TEXT = "failed_no_text"
    COMPLETED_WITH_CITATIONS = "completed_with_citations"
    COMPLETED_NO_CITATIONS = "completed_no_citations"


@dataclass
class Paper:
    """
    Bibliographic record for one archived research document.

    Only `id`, `title`, `abstract`, `category` and `year_published` feed the
    similarity scorer; the remaining fields are carried for display and for
    the extraction workflow.
    """

    id: str
    title: Optional[str] = None
    abstract: Optional[str] = None
    category: Optional[str] = None
    year_published: Optional[int] = None

    authors: Optional[str] = None
    file_url: Optional[str] = None
    uploaded_by: Optional[str] = None
    views: int = 0

    citations_extracted: bool = False
    extraction_status: Optional[str] = ExtractionStatus.PENDING.value

    def to_node_attrs(self) -> Dict[str, Any]:
        attrs = asdict(self)
        attrs["paper_id"] = attrs.pop("id")
        return attrs

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], paper_id: Optional[str] = None) -> "Paper":
        """
        Build a Paper from a node attribute dict or a JSON record.

        Unknown keys are ignored so graph nodes can carry extra bookkeeping
        (node type, bookmark sets) without breaking the round trip.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}

        pid = paper_id if paper_id is not None else data.get("id", data.get("paper_id"))
        if pid is None:
            raise ValueError("Paper record has no id")
        values["id"] = str(pid)

        return cls(**values)


@dataclass(frozen=True)
class Citation:
    """Directed edge: `citing_paper_id` references `cited_paper_id`."""

    citing_paper_id: str
    cited_paper_id: str
    source: str = "manual"
