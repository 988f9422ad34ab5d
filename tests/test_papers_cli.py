# tests/test_papers_cli.py

import json
from pathlib import Path

from typer.testing import CliRunner

from rkive.cli.main import app as cli_app
from rkive.graph.storage import load_graph_file as load_graph
from rkive.graph.storage import save_graph_file
from rkive.graph.store import PaperStore
from rkive.models.paper import Paper

runner = CliRunner()

RECORDS = [
    {"id": "a", "title": "Flood Alert System", "authors": "Cruz", "year_published": "2019", "category": "iot"},
    {"id": "b", "title": "Tide Gauge Network", "authors": "Reyes", "year_published": 2020, "category": "iot"},
    {
        "id": "c",
        "title": "Coastal Early Warning",
        "authors": "Lim",
        "year_published": 2023,
        "category": "iot",
        "extracted_text": "References\n1. Flood Alert System (2019)\n2. Tide Gauge\nNetwork, 2020",
    },
]


def _write_records(tmp_path: Path, records=RECORDS) -> Path:
    path = tmp_path / "records.json"
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


def test_import_detects_citations(tmp_path):
    records = _write_records(tmp_path)
    graph_path = tmp_path / "graph.pkl"

    result = runner.invoke(
        cli_app, ["papers", "import", str(records), "--graph-file", str(graph_path)]
    )

    assert result.exit_code == 0
    assert "Imported 3 paper(s), 2 citation(s)" in result.stdout

    store = PaperStore(load_graph(graph_path))
    assert store.get_paper("a").year_published == 2019
    assert store.has_citation("c", "a")
    assert store.has_citation("c", "b")
    assert store.get_paper("c").citations_extracted is True


def test_import_rejects_non_list(tmp_path):
    records = tmp_path / "records.json"
    records.write_text(json.dumps({"id": "a"}), encoding="utf-8")

    result = runner.invoke(
        cli_app, ["papers", "import", str(records), "--graph-file", str(tmp_path / "g.pkl")]
    )
    assert result.exit_code == 1


def _seed_graph(tmp_path: Path) -> Path:
    store = PaperStore()
    store.add_paper(Paper(id="a", title="Flood Alert System", year_published=2019))
    store.add_paper(Paper(id="b", title="Tide Gauge Network", year_published=2020))
    return save_graph_file(store.graph, tmp_path / "graph.pkl")


def test_cite_and_duplicate(tmp_path):
    graph_path = _seed_graph(tmp_path)

    result = runner.invoke(cli_app, ["papers", "cite", "a", "b", "--graph-file", str(graph_path)])
    assert result.exit_code == 0
    assert PaperStore(load_graph(graph_path)).has_citation("a", "b")

    result = runner.invoke(cli_app, ["papers", "cite", "a", "b", "--graph-file", str(graph_path)])
    assert result.exit_code == 1

    result = runner.invoke(cli_app, ["papers", "cite", "a", "a", "--graph-file", str(graph_path)])
    assert result.exit_code == 1


def test_extract_from_text_file(tmp_path):
    graph_path = _seed_graph(tmp_path)
    text_file = tmp_path / "a.txt"
    text_file.write_text("Bibliography: Tide Gauge Network (2020).", encoding="utf-8")

    result = runner.invoke(
        cli_app,
        ["papers", "extract", "a", "--text-file", str(text_file), "--graph-file", str(graph_path)],
    )

    assert result.exit_code == 0
    assert "1 citation(s) found" in result.stdout
    assert PaperStore(load_graph(graph_path)).has_citation("a", "b")


def test_extract_requires_one_source(tmp_path):
    graph_path = _seed_graph(tmp_path)
    result = runner.invoke(cli_app, ["papers", "extract", "a", "--graph-file", str(graph_path)])
    assert result.exit_code == 2


def test_pending_lists_unprocessed(tmp_path):
    graph_path = _seed_graph(tmp_path)

    result = runner.invoke(cli_app, ["papers", "pending", "--graph-file", str(graph_path)])

    assert result.exit_code == 0
    assert "Flood Alert System" in result.stdout
    assert "Tide Gauge Network" in result.stdout
