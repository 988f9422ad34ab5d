# tests/test_citation_detection.py

import pytest

import rkive.citations.detection as detection
from rkive.citations.detection import (
    extract_citations,
    extract_citations_from_pdf,
    extract_reference_section,
    is_cited_in_text,
    normalize_for_match,
    resolve_paper_text,
)
from rkive.errors import PaperNotFoundError, PdfTextError
from rkive.graph.store import PaperStore
from rkive.models.paper import ExtractionStatus, Paper


FULL_TEXT = """
Abstract. We extend earlier work on farm analytics.

References
[1] J. Cruz. Machine Learn-
ing for Crop    Yield. 2020.
[2] A. Reyes. Smart_Library Kiosk. 2019.
"""


def make_store() -> PaperStore:
    store = PaperStore()
    store.add_paper(Paper(id="new", title="Farm Analytics Dashboard", year_published=2024))
    store.add_paper(Paper(id="crop", title="Machine Learning for Crop Yield", year_published=2020))
    store.add_paper(Paper(id="lib", title="Smart Library Kiosk", year_published=2019))
    store.add_paper(Paper(id="bank", title="Mobile Banking App", year_published=2021))
    return store


def test_normalize_for_match():
    assert normalize_for_match("Machine  Learn-\ning_For") == "machinelearningfor"
    assert normalize_for_match(None) == ""


def test_is_cited_in_text_handles_line_breaks_and_hyphens():
    assert is_cited_in_text(FULL_TEXT, Paper(id="x", title="Machine Learning for Crop Yield"))
    assert is_cited_in_text(FULL_TEXT, {"title": "Smart Library Kiosk"})
    assert not is_cited_in_text(FULL_TEXT, Paper(id="y", title="Mobile Banking App"))


def test_empty_title_never_matches():
    assert not is_cited_in_text(FULL_TEXT, Paper(id="z", title=""))
    assert not is_cited_in_text(FULL_TEXT, Paper(id="z", title=None))


def test_extract_reference_section():
    section = extract_reference_section(FULL_TEXT)
    assert section.startswith("References")
    assert "Crop" in section

    assert extract_reference_section("Works Cited\nfoo bar", window=5) == "Works"
    assert extract_reference_section("plain text without a header") == ""


def test_extract_citations_records_edges_and_status():
    store = make_store()

    result = extract_citations(store, "new", FULL_TEXT)

    assert result.status == ExtractionStatus.COMPLETED_WITH_CITATIONS
    assert result.citation_count == 2
    assert sorted(result.cited_paper_ids) == ["crop", "lib"]
    assert result.message == "Paper uploaded with 2 citation(s) found."

    paper = store.get_paper("new")
    assert paper.citations_extracted is True
    assert paper.extraction_status == ExtractionStatus.COMPLETED_WITH_CITATIONS.value
    assert {c.source for c in store.list_citations()} == {"extracted"}


def test_extract_citations_is_idempotent():
    store = make_store()
    store.add_citation("new", "crop")

    result = extract_citations(store, "new", FULL_TEXT)

    assert result.cited_paper_ids == ["lib"]
    assert store.outgoing_citation_count("new") == 2


def test_extract_citations_without_hits():
    store = make_store()
    result = extract_citations(store, "bank", "A long enough body that cites nothing in the store.")

    assert result.status == ExtractionStatus.COMPLETED_NO_CITATIONS
    assert result.citation_count == 0
    assert result.message == "Paper uploaded. No citations found in references."
    assert store.get_paper("bank").citations_extracted is True


def test_extract_citations_short_text_fails():
    store = make_store()
    result = extract_citations(store, "new", "tiny")

    assert result.status == ExtractionStatus.FAILED_NO_TEXT
    assert result.warning is not None
    assert "Citations cannot be detected" in result.message
    paper = store.get_paper("new")
    assert paper.citations_extracted is False
    assert paper.extraction_status == ExtractionStatus.FAILED_NO_TEXT.value
    assert store.list_citations() == []


def test_extract_citations_unknown_paper():
    with pytest.raises(PaperNotFoundError):
        extract_citations(make_store(), "ghost", FULL_TEXT)


def test_resolve_paper_text_prefers_client_text(monkeypatch):
    def boom(url, timeout=None):
        raise AssertionError("should not download")

    monkeypatch.setattr(detection, "download_pdf", boom)
    paper = Paper(id="p", title="T", file_url="https://example.org/p.pdf")
    assert resolve_paper_text(paper, "client supplied full text") == "client supplied full text"


def test_resolve_paper_text_downloads_when_text_missing(monkeypatch):
    calls = {}

    def fake_download(url, timeout=None):
        calls["url"] = url
        return b"%PDF-fake"

    monkeypatch.setattr(detection, "download_pdf", fake_download)
    monkeypatch.setattr(detection, "extract_pdf_text", lambda source: "text from the pdf body")

    paper = Paper(id="p", title="T", file_url="https://example.org/p.pdf")
    assert resolve_paper_text(paper, None) == "text from the pdf body"
    assert calls["url"] == "https://example.org/p.pdf"


def test_resolve_paper_text_download_failure_is_empty(monkeypatch):
    def failing_download(url, timeout=None):
        raise PdfTextError("404")

    monkeypatch.setattr(detection, "download_pdf", failing_download)
    paper = Paper(id="p", title="T", file_url="https://example.org/p.pdf")
    assert resolve_paper_text(paper, "") == ""


def test_resolve_paper_text_without_file_url():
    assert resolve_paper_text(Paper(id="p"), "short") == "short"


def test_extract_citations_from_pdf(monkeypatch, tmp_path):
    store = make_store()
    pdf_path = tmp_path / "new.pdf"
    pdf_path.write_bytes(b"%PDF-fake")

    monkeypatch.setattr(detection, "extract_pdf_text", lambda source: FULL_TEXT)
    result = extract_citations_from_pdf(store, "new", pdf_path)
    assert result.citation_count == 2


def test_extract_citations_from_unreadable_pdf(monkeypatch, tmp_path):
    store = make_store()

    def unreadable(source):
        raise PdfTextError("broken")

    monkeypatch.setattr(detection, "extract_pdf_text", unreadable)
    result = extract_citations_from_pdf(store, "new", tmp_path / "x.pdf")
    assert result.status == ExtractionStatus.FAILED_NO_TEXT
