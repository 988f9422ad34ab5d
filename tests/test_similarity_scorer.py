# tests/test_similarity_scorer.py

import itertools

import pytest

from rkive.models.paper import Paper
from rkive.similarity.scorer import (
    jaccard_similarity,
    paper_similarity,
    paper_text,
    similarity_breakdown,
    tokenize,
    year_bonus,
)


def _papers():
    return [
        Paper(id="a", title="Machine Learning for Crop Yield", abstract="", category="software/hardware", year_published=2020),
        Paper(id="b", title="Mobile Banking App", category="mobile app", year_published=2021),
        Paper(id="c", title="Database Expert System", category="Database expert", year_published=2021),
        Paper(id="d", title="Crop disease detection with machine vision", abstract="Images of crop leaves", category="software/hardware", year_published=2015),
        Paper(id="e", title=None, abstract=None, category=None, year_published=None),
        Paper(id="f", title="IoT Irrigation", abstract="Soil moisture sensors for irrigation scheduling", category="iot", year_published=2035),
    ]


def test_paper_text_and_tokenize():
    p = Paper(id="x", title="Mobile Banking App", abstract=None, category="Mobile App")
    assert paper_text(p) == "mobile banking app  mobile app"
    assert tokenize(paper_text(p)) == frozenset({"mobile", "banking"})


def test_tokenize_drops_short_tokens_and_duplicates():
    assert tokenize("the cat sat on data data mats") == frozenset({"data", "mats"})


def test_jaccard_empty_union_is_zero():
    assert jaccard_similarity(frozenset(), frozenset()) == 0.0


def test_dict_records_are_accepted():
    a = {"title": "Smart Library System", "category": "web", "year_published": 2022}
    b = {"title": "Smart Library Kiosk", "category": "web", "year_published": 2022}
    # tokens: {smart, library, system} vs {smart, library, kiosk} -> 2/4
    assert paper_similarity(a, b) == pytest.approx(0.5 + 0.2 + 0.1)


def test_symmetry_and_bounds():
    for a, b in itertools.product(_papers(), repeat=2):
        s_ab = paper_similarity(a, b)
        assert s_ab == paper_similarity(b, a)
        assert 0.0 <= s_ab <= 1.0


def test_self_similarity_is_one():
    for p in _papers():
        if tokenize(paper_text(p)):
            assert paper_similarity(p, p) == 1.0


def test_empty_papers_do_not_produce_nan():
    empty = Paper(id="e1")
    other = Paper(id="e2")
    score = paper_similarity(empty, other)
    # No tokens, same (missing) category, same (missing) year
    assert score == pytest.approx(0.3)


def test_missing_paper_scores_zero():
    assert paper_similarity(None, Paper(id="x", title="Anything here")) == 0.0


def test_category_bonus_monotonic():
    a = Paper(id="a", title="Attendance monitoring using face recognition", category="ai", year_published=2019)
    same = Paper(id="b", title="Attendance monitoring using barcodes", category="ai", year_published=2019)
    diff = Paper(id="c", title="Attendance monitoring using barcodes", category="web", year_published=2019)

    assert paper_similarity(a, same) >= paper_similarity(a, diff)
    assert similarity_breakdown(a, same).category_bonus == pytest.approx(0.2)
    assert similarity_breakdown(a, diff).category_bonus == 0.0


def test_year_decay():
    base = Paper(id="a", title="Alpha beta gamma", category="x", year_published=2000)
    other_text = "Alpha delta epsilon"

    previous = None
    for gap in range(0, 15):
        b = Paper(id="b", title=other_text, category="y", year_published=2000 + gap)
        bonus = year_bonus(base, b)
        score = paper_similarity(base, b)
        if previous is not None:
            assert score <= previous
        previous = score
        if gap >= 10:
            assert bonus == 0.0
        else:
            assert bonus == pytest.approx((10 - gap) * 0.01)


def test_string_years_are_coerced():
    a = {"title": "Alpha", "year_published": "2020"}
    b = {"title": "Beta", "year_published": 2018}
    assert year_bonus(a, b) == pytest.approx(0.08)


def test_scenario_identical_papers():
    a = Paper(id="a", title="Machine Learning for Crop Yield", abstract="", category="software/hardware", year_published=2020)
    b = Paper(id="b", title="Machine Learning for Crop Yield", abstract="", category="software/hardware", year_published=2020)
    assert paper_similarity(a, b) == 1.0


def test_scenario_ten_year_gap_is_clamped():
    a = Paper(id="a", title="Machine Learning for Crop Yield", abstract="", category="software/hardware", year_published=2020)
    b = Paper(id="b", title="Machine Learning for Crop Yield", abstract="", category="software/hardware", year_published=2030)

    breakdown = similarity_breakdown(a, b)
    assert breakdown.year_bonus == 0.0
    assert breakdown.category_bonus == pytest.approx(0.2)
    assert breakdown.jaccard == 1.0
    assert paper_similarity(a, b) == 1.0


def test_scenario_unrelated_same_year():
    a = Paper(id="a", title="Mobile Banking App", category="mobile app", year_published=2021)
    b = Paper(id="b", title="Database Expert System", category="Database expert", year_published=2021)

    breakdown = similarity_breakdown(a, b)
    assert breakdown.shared_tokens == 0
    assert breakdown.jaccard == 0.0
    assert breakdown.category_bonus == 0.0
    assert paper_similarity(a, b) == pytest.approx(0.1)
