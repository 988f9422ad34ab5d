# rkive/similarity/__init__.py

"""
Keyword-overlap similarity between papers and the related-papers ranking
built on top of it.
"""

from .ranking import RelatedPaper, fetch_related_papers, rank_related_papers, validate_threshold
from .scorer import SimilarityBreakdown, paper_similarity, similarity_breakdown

__all__ = [
    "RelatedPaper",
    "SimilarityBreakdown",
    "fetch_related_papers",
    "paper_similarity",
    "rank_related_papers",
    "similarity_breakdown",
    "validate_threshold",
]
