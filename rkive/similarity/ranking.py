# rkive/similarity/ranking.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List

from rkive.errors import InvalidThresholdError
from rkive.models.paper import Paper
from rkive.similarity.scorer import paper_similarity

logger = logging.getLogger("rkive.similarity")

CandidateFetcher = Callable[[str, int], Iterable[Paper]]

DEFAULT_THRESHOLD = 0.6
DEFAULT_CANDIDATE_LIMIT = 50
DEFAULT_TOP_K = 10


@dataclass(frozen=True)
class RelatedPaper:
    paper: Paper
    similarity: float


def validate_threshold(threshold: float) -> float:
    """
    Return the threshold as a float, rejecting anything outside [0, 1].
    """
    try:
        value = float(threshold)
    except (TypeError, ValueError):
        raise InvalidThresholdError(threshold) from None

    # NaN fails both comparisons
    if not (0.0 <= value <= 1.0):
        raise InvalidThresholdError(threshold)
    return value


def rank_related_papers(
    reference: Paper,
    candidates: Iterable[Paper],
    threshold: float = DEFAULT_THRESHOLD,
    top_k: int = DEFAULT_TOP_K,
) -> List[RelatedPaper]:
    """
    Score every candidate against `reference` and keep the best matches.

    Candidates scoring at least `threshold` are sorted by descending score
    (ties keep their input order) and cut to `top_k`. The reference itself
    is skipped if it shows up among the candidates.
    """
    threshold = validate_threshold(threshold)

    related: List[RelatedPaper] = []
    for paper in candidates:
        if paper.id == reference.id:
            continue
        score = paper_similarity(reference, paper)
        if score >= threshold:
            related.append(RelatedPaper(paper=paper, similarity=score))

    related.sort(key=lambda r: r.similarity, reverse=True)
    return related[: max(top_k, 0)]


def fetch_related_papers(
    reference: Paper,
    fetch_candidate_papers: CandidateFetcher,
    threshold: float = DEFAULT_THRESHOLD,
    candidate_limit: int = DEFAULT_CANDIDATE_LIMIT,
    top_k: int = DEFAULT_TOP_K,
) -> List[RelatedPaper]:
    """
    Fetch up to `candidate_limit` other papers and rank them against `reference`.

    A failing fetch is logged and yields an empty list; it is not retried.
    An invalid threshold still raises InvalidThresholdError.
    """
    threshold = validate_threshold(threshold)

    try:
        candidates = list(fetch_candidate_papers(reference.id, candidate_limit))
    except Exception:
        logger.exception("Error fetching candidate papers for %s", reference.id)
        return []

    return rank_related_papers(
        reference,
        candidates,
        threshold=threshold,
        top_k=top_k,
    )
