# rkive/similarity/scorer.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, FrozenSet, Optional

CATEGORY_BONUS = 0.2
YEAR_WINDOW = 10
YEAR_BONUS_STEP = 0.01
MIN_TOKEN_LENGTH = 4


@dataclass(frozen=True)
class SimilarityBreakdown:
    """
    The individual terms behind one pairwise similarity score.
    """
    jaccard: float
    category_bonus: float
    year_bonus: float
    shared_tokens: int
    union_tokens: int

    @property
    def score(self) -> float:
        return min(1.0, self.jaccard + self.category_bonus + self.year_bonus)


def _field(paper: Any, name: str) -> Any:
    if isinstance(paper, dict):
        return paper.get(name)
    return getattr(paper, name, None)


def _year_value(paper: Any) -> int:
    """
    Publication year as an int; missing or unparsable years count as 0.
    """
    raw = _field(paper, "year_published")
    if raw is None or raw == "":
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def paper_text(paper: Any) -> str:
    """
    Lower-cased "title abstract category" blob for a paper record.
    """
    parts = [_field(paper, name) or "" for name in ("title", "abstract", "category")]
    return " ".join(str(p) for p in parts).lower()


def tokenize(text: str) -> FrozenSet[str]:
    """
    Unique whitespace tokens of at least MIN_TOKEN_LENGTH characters.
    """
    return frozenset(tok for tok in text.split() if len(tok) >= MIN_TOKEN_LENGTH)


def jaccard_similarity(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    union_size = len(a | b)
    return (len(a & b) / union_size) if union_size > 0 else 0.0


def category_bonus(a: Any, b: Any) -> float:
    # Two papers without a category compare equal here.
    return CATEGORY_BONUS if _field(a, "category") == _field(b, "category") else 0.0


def year_bonus(a: Any, b: Any) -> float:
    gap = abs(_year_value(a) - _year_value(b))
    return max(0.0, (YEAR_WINDOW - gap) * YEAR_BONUS_STEP)


def similarity_breakdown(a: Any, b: Any) -> SimilarityBreakdown:
    tokens_a = tokenize(paper_text(a))
    tokens_b = tokenize(paper_text(b))

    return SimilarityBreakdown(
        jaccard=jaccard_similarity(tokens_a, tokens_b),
        category_bonus=category_bonus(a, b),
        year_bonus=year_bonus(a, b),
        shared_tokens=len(tokens_a & tokens_b),
        union_tokens=len(tokens_a | tokens_b),
    )


def paper_similarity(a: Optional[Any], b: Optional[Any]) -> float:
    """
    Keyword-overlap similarity between two papers, in [0, 1].

    Jaccard over the papers' long-word token sets, plus 0.2 for an identical
    category and up to 0.1 for close publication years, capped at 1.
    Accepts Paper objects or plain dicts. A missing paper scores 0.
    """
    if a is None or b is None:
        return 0.0
    return similarity_breakdown(a, b).score
