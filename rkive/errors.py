# rkive/errors.py

"""
Domain errors raised by the graph store, the ranking code and the citation
extractor. The web layer maps them to HTTP status codes.
"""

from __future__ import annotations


class RkiveError(Exception):
    """Base exception for R-kive errors."""

    pass


class PaperNotFoundError(RkiveError, KeyError):
    """Raised when a paper id is not present in the graph."""

    def __init__(self, paper_id: str):
        super().__init__(f"Paper {paper_id} not found")
        self.paper_id = paper_id

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return f"Paper {self.paper_id} not found"


class PaperExistsError(RkiveError):
    """Raised when creating a paper whose id is already stored."""

    def __init__(self, paper_id: str):
        super().__init__(f"Paper {paper_id} already exists")
        self.paper_id = paper_id


class InvalidCitationError(RkiveError, ValueError):
    """Raised for self-citations and duplicate citation edges."""

    pass


class InvalidThresholdError(RkiveError, ValueError):
    """Raised when a similarity threshold falls outside [0, 1]."""

    def __init__(self, threshold: float):
        super().__init__(f"Similarity threshold must be within [0, 1], got {threshold!r}")
        self.threshold = threshold


class PdfTextError(RkiveError):
    """
    Anything that goes wrong while downloading or reading a PDF.
    """

    pass
