# tests/test_api_query.py

from datetime import datetime, timezone

import pytest

from rkive.api.query import (
    export_citation_data,
    get_citation_tree,
    get_paper_detail,
    get_related_papers,
    search_papers_with_counts,
)
from rkive.config.settings import settings
from rkive.errors import InvalidThresholdError, PaperNotFoundError
from rkive.graph.store import PaperStore
from rkive.models.paper import Paper


def build_store() -> PaperStore:
    store = PaperStore()
    store.add_paper(Paper(id="main", title="Crop yield prediction using satellite imagery", authors="Cruz", category="ai", year_published=2022))
    store.add_paper(Paper(id="ref1", title="Rice paddy mapping", authors="Reyes", category="gis", year_published=2018))
    store.add_paper(Paper(id="ref2", title="Soil moisture sensing", authors="Santos", category="iot", year_published=2019))
    store.add_paper(Paper(id="sim1", title="Crop yield prediction using drone imagery", authors="Lim", category="ai", year_published=2022))
    store.add_paper(Paper(id="sim2", title="Crop yield prediction using weather data", authors="Tan", category="ai", year_published=2021))
    store.add_paper(Paper(id="far", title="Online enrollment portal", authors="Go", category="web", year_published=2010))

    store.add_citation("main", "ref1")
    store.add_citation("main", "ref2")
    store.add_citation("sim1", "ref1")
    store.add_citation("far", "main")
    return store


def test_paper_detail_has_incoming_count():
    detail = get_paper_detail(build_store(), "main")
    assert detail.id == "main"
    assert detail.citation_count == 1
    assert detail.authors == "Cruz"


def test_search_with_counts():
    hits = search_papers_with_counts(build_store(), "crop")
    by_id = {h.id: h for h in hits}
    assert set(by_id) == {"main", "sim1", "sim2"}
    assert (by_id["main"].incoming, by_id["main"].outgoing) == (1, 2)
    assert (by_id["sim1"].incoming, by_id["sim1"].outgoing) == (0, 1)


def test_related_papers_default_threshold():
    result = get_related_papers(build_store(), "main")

    assert result.threshold == settings.SIMILARITY_THRESHOLD
    ids = [r.id for r in result.related]
    assert ids[0] == "sim1"
    assert "sim2" in ids
    assert "far" not in ids
    assert all(r.similarity >= result.threshold for r in result.related)
    sims = [r.similarity for r in result.related]
    assert sims == sorted(sims, reverse=True)


def test_related_papers_fetch_failure_is_empty():
    def failing(exclude_id, limit):
        raise RuntimeError("db down")

    result = get_related_papers(build_store(), "main", threshold=0.3, fetcher=failing)
    assert result.related == []


def test_related_papers_unknown_and_bad_threshold():
    store = build_store()
    with pytest.raises(PaperNotFoundError):
        get_related_papers(store, "ghost")
    with pytest.raises(InvalidThresholdError):
        get_related_papers(store, "main", threshold=1.5)


def test_citation_tree_shape():
    tree = get_citation_tree(build_store(), "main", threshold=0.6)

    assert tree.main.id == "main"
    assert tree.main.citations == 1
    assert tree.main.author == "Cruz"

    children = {c.id: c for c in tree.children}
    assert set(children) == {"ref1", "ref2"}
    assert children["ref1"].citations == 2
    assert children["ref2"].citations == 1

    assert [r.id for r in tree.semantic_related][0] == "sim1"
    assert all(r.similarity is not None for r in tree.semantic_related)
    assert tree.similarity_threshold == 0.6


def test_citation_tree_limits_related(monkeypatch):
    store = build_store()
    for i in range(8):
        store.add_paper(
            Paper(id=f"x{i}", title="Crop yield prediction using satellite imagery", category="ai", year_published=2022)
        )
    monkeypatch.setattr(settings, "RELATED_DISPLAY_COUNT", 5)

    tree = get_citation_tree(store, "main", threshold=0.6)
    assert len(tree.semantic_related) == 5


def test_export_citation_data():
    tree = get_citation_tree(build_store(), "main", threshold=0.6)
    stamp = datetime(2024, 5, 1, tzinfo=timezone.utc)

    export = export_citation_data(tree, now=stamp)

    assert export.main_paper == tree.main
    assert [c.id for c in export.direct_citations] == [c.id for c in tree.children]
    assert export.semantic_related == tree.semantic_related
    assert export.export_date == stamp
    assert export.similarity_threshold == 0.6

    payload = export.model_dump(mode="json")
    assert payload["export_date"].startswith("2024-05-01")
