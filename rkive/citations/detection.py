# rkive/citations/detection.py

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from rkive.config.settings import settings
from rkive.errors import InvalidCitationError, PdfTextError
from rkive.graph.schema import CitationSource
from rkive.graph.store import PaperStore
from rkive.models.paper import ExtractionStatus, Paper
from rkive.parsing.pdf_text import PdfSource, download_pdf, extract_pdf_text

logger = logging.getLogger("rkive.citations")

REFERENCE_HEADERS = (
    "references",
    "bibliography",
    "works cited",
    "literature cited",
)

_STRIP_RE = re.compile(r"[\s\-_]+")


@dataclass
class ExtractionResult:
    paper_id: str
    status: ExtractionStatus
    citation_count: int = 0
    cited_paper_ids: List[str] = field(default_factory=list)
    warning: Optional[str] = None

    @property
    def message(self) -> str:
        if self.warning:
            return self.warning
        if self.citation_count > 0:
            return f"Paper uploaded with {self.citation_count} citation(s) found."
        return "Paper uploaded. No citations found in references."


def normalize_for_match(text: str) -> str:
    """
    Lower-case and drop all whitespace, hyphens and underscores so that
    titles broken across lines in a PDF still match.
    """
    return _STRIP_RE.sub("", (text or "").lower())


def is_cited_in_text(text: str, paper: Any) -> bool:
    """
    True if the paper's normalized title occurs anywhere in the normalized text.
    """
    title = paper.get("title") if isinstance(paper, dict) else getattr(paper, "title", None)
    needle = normalize_for_match(title or "")
    if not needle:
        return False
    return needle in normalize_for_match(text)


def extract_reference_section(text: str, window: int = 2000) -> str:
    """
    Slice of `text` starting at the first bibliography-style header.

    Headers are tried in order; the first one found wins. Returns "" if the
    text has none of them.
    """
    lowered = text.lower()
    for header in REFERENCE_HEADERS:
        idx = lowered.find(header)
        if idx != -1:
            return text[idx: idx + window]
    return ""


def extract_citations(
    store: PaperStore,
    paper_id: str,
    text: Optional[str],
    min_chars: Optional[int] = None,
) -> ExtractionResult:
    """
    Detect which stored papers are cited by `paper_id`'s full text and record
    an extracted citation edge for each one.

    Text shorter than `min_chars` marks the paper `failed_no_text`. Existing
    citation edges are left as they are and not counted again.
    """
    min_chars = settings.MIN_EXTRACTED_TEXT_CHARS if min_chars is None else min_chars

    store.get_paper(paper_id)
    store.set_extraction_status(paper_id, ExtractionStatus.PROCESSING, citations_extracted=False)

    text = text or ""
    if len(text) < min_chars:
        logger.warning(
            "Extracted text for %s is too short (%d chars); skipping citation detection",
            paper_id,
            len(text),
        )
        store.set_extraction_status(paper_id, ExtractionStatus.FAILED_NO_TEXT, citations_extracted=False)
        return ExtractionResult(
            paper_id=paper_id,
            status=ExtractionStatus.FAILED_NO_TEXT,
            warning="Paper uploaded but PDF text extraction failed. Citations cannot be detected.",
        )

    others = [p for p in store.iter_papers() if p.id != paper_id]
    logger.info("Checking %s against %d other papers", paper_id, len(others))

    found: List[str] = []
    for other in others:
        if not is_cited_in_text(text, other):
            continue
        if store.has_citation(paper_id, other.id):
            continue
        try:
            store.add_citation(paper_id, other.id, source=CitationSource.EXTRACTED)
        except InvalidCitationError:
            logger.exception("Failed to record citation %s -> %s", paper_id, other.id)
            continue
        found.append(other.id)
        logger.info("Citation found: %s cites %r", paper_id, other.title)

    status = (
        ExtractionStatus.COMPLETED_WITH_CITATIONS
        if found
        else ExtractionStatus.COMPLETED_NO_CITATIONS
    )
    store.set_extraction_status(paper_id, status, citations_extracted=True)

    return ExtractionResult(
        paper_id=paper_id,
        status=status,
        citation_count=len(found),
        cited_paper_ids=found,
    )


def resolve_paper_text(paper: Paper, extracted_text: Optional[str], min_chars: Optional[int] = None) -> str:
    """
    Prefer client-supplied text; otherwise download and read the paper's PDF.

    Download or parse failures are logged and produce "".
    """
    min_chars = settings.MIN_EXTRACTED_TEXT_CHARS if min_chars is None else min_chars

    if extracted_text and len(extracted_text) >= min_chars:
        return extracted_text

    if not paper.file_url:
        return extracted_text or ""

    logger.info("Client text missing or too short for %s; reading %s", paper.id, paper.file_url)
    try:
        return extract_pdf_text(download_pdf(paper.file_url))
    except PdfTextError:
        logger.exception("PDF text extraction failed for %s", paper.id)
        return ""


def extract_citations_from_pdf(store: PaperStore, paper_id: str, source: PdfSource) -> ExtractionResult:
    try:
        text = extract_pdf_text(source)
    except PdfTextError:
        logger.exception("PDF text extraction failed for %s", paper_id)
        text = ""
    return extract_citations(store, paper_id, text)
