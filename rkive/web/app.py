from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import networkx as nx
from fastapi import (
    Depends,
    FastAPI,
    File,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from rkive.api.models import (
    CitationExport,
    CitationTree,
    CitationView,
    ExtractionResultView,
    PaperDetail,
    PaperSummary,
    RelatedPapersResult,
    SearchHit,
)
from rkive.api.query import (
    export_citation_data,
    get_citation_tree,
    get_paper_detail,
    get_related_papers,
    search_papers_with_counts,
)
from rkive.citations.detection import (
    ExtractionResult,
    extract_citations,
    extract_citations_from_pdf,
    resolve_paper_text,
)
from rkive.config.settings import settings
from rkive.errors import (
    InvalidCitationError,
    InvalidThresholdError,
    PaperExistsError,
    PaperNotFoundError,
)
from rkive.events import BOOKMARKS_TABLE, CITATIONS_TABLE, PAPERS_TABLE, ChangeEvent, Subscription
from rkive.graph.storage import load_latest_graph, save_graph
from rkive.graph.store import PaperStore
from rkive.models.paper import ExtractionStatus, Paper
from rkive.models.session import Session
from rkive.web.security import api_key_auth, get_session, rate_limiter, require_admin, require_user

logger = logging.getLogger("rkive.web")
logging.basicConfig(level=logging.INFO)

EVENT_TABLES = (PAPERS_TABLE, CITATIONS_TABLE, BOOKMARKS_TABLE)


# -------------------------------------------------------------------
# Lifespan: load graph once at startup
# -------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup/shutdown handler:
    - Load the latest persisted graph (if any)
    - Otherwise start with an empty MultiDiGraph
    """
    try:
        G = load_latest_graph()
    except Exception:
        logger.exception("Failed to load persisted graph; starting with a fresh graph")
        G = None

    if G is None:
        logger.info("No existing graph found; starting with fresh in-memory graph")
        G = nx.MultiDiGraph()

    app.state.store = PaperStore(G)
    app.state.graph_lock = asyncio.Lock()

    yield


app = FastAPI(
    title="R-kive Research Repository API",
    description="Browse capstone papers, their citations and related work.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------------------------
# Middleware / error mapping
# -------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log method, path, and response status.
    """
    logger.info(f"Incoming request: {request.method} {request.url.path}")
    start = time.time()

    response = await call_next(request)

    duration_ms = (time.time() - start) * 1000
    logger.info(
        f"Completed {request.method} {request.url.path} "
        f"with status {response.status_code} in {duration_ms:.2f}ms"
    )

    return response


@app.exception_handler(PaperNotFoundError)
async def paper_not_found_handler(request: Request, exc: PaperNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(PaperExistsError)
async def paper_exists_handler(request: Request, exc: PaperExistsError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(InvalidCitationError)
@app.exception_handler(InvalidThresholdError)
async def bad_request_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


# -------------------------------------------------------------------
# Request models
# -------------------------------------------------------------------


class PaperCreateRequest(BaseModel):
    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    authors: str = Field(..., min_length=1)
    year_published: int
    abstract: str = Field(..., min_length=1)
    category: Optional[str] = None
    file_url: Optional[str] = None
    uploaded_by: Optional[str] = None
    extracted_text: Optional[str] = None


class PaperCreateResponse(BaseModel):
    paper: PaperDetail
    extraction: ExtractionResultView


class ExtractionRequest(BaseModel):
    extracted_text: Optional[str] = None


class CitationCreateRequest(BaseModel):
    citing_paper_id: str
    cited_paper_id: str


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------


def _get_store(app_obj: FastAPI) -> PaperStore:
    """
    Fetch the PaperStore from app.state, initializing if needed.
    """
    store = getattr(app_obj.state, "store", None)
    if store is None:
        store = PaperStore()
        app_obj.state.store = store
    return store


def _persist(store: PaperStore) -> None:
    save_graph(store.graph, name=settings.GRAPH_DEFAULT_NAME)


async def _locked(app_obj: FastAPI, fn, *args, **kwargs):
    """
    Run a blocking store mutation in the threadpool, serialized by the
    app's graph lock when one is configured, then persist the graph.
    """
    lock: Optional[asyncio.Lock] = getattr(app_obj.state, "graph_lock", None)
    store = _get_store(app_obj)

    async def _run():
        result = await run_in_threadpool(fn, *args, **kwargs)
        _persist(store)
        return result

    if lock is not None:
        async with lock:
            return await _run()
    return await _run()


def _save_upload(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _extraction_view(result: ExtractionResult) -> ExtractionResultView:
    return ExtractionResultView(
        paper_id=result.paper_id,
        citation_count=result.citation_count,
        extraction_status=result.status.value,
        cited_paper_ids=result.cited_paper_ids,
        message=result.message,
        warning=result.warning,
    )


def _threshold_query() -> Any:
    return Query(
        None,
        ge=settings.SIMILARITY_MIN,
        le=settings.SIMILARITY_MAX,
        description="Minimum similarity for a related paper.",
    )


def _sse(event: ChangeEvent) -> str:
    payload = json.dumps({"table": event.table, "action": event.action, "record": event.record})
    return f"event: {event.action}\ndata: {payload}\n\n"


async def _event_stream(
    sub: Subscription,
    request: Request,
    max_events: Optional[int] = None,
    poll_seconds: float = 1.0,
) -> AsyncIterator[str]:
    sent = 0
    try:
        while max_events is None or sent < max_events:
            if await request.is_disconnected():
                break
            event = await run_in_threadpool(sub.get, poll_seconds)
            if event is None:
                continue
            yield _sse(event)
            sent += 1
    finally:
        sub.close()


# -------------------------------------------------------------------
# Routes: read
# -------------------------------------------------------------------


@app.get("/health", summary="Health check")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/papers", response_model=List[PaperSummary], summary="List all papers")
async def list_papers(request: Request) -> List[PaperSummary]:
    store = _get_store(request.app)
    return [PaperSummary.from_paper(p) for p in store.iter_papers()]


@app.get(
    "/papers/search",
    response_model=List[SearchHit],
    summary="Search papers by title",
)
async def search_papers(
    request: Request,
    q: str = Query(..., min_length=1, description="Case-insensitive title fragment."),
    limit: int = Query(settings.SEARCH_LIMIT, ge=1, le=100),
) -> List[SearchHit]:
    return search_papers_with_counts(_get_store(request.app), q, limit=limit)


@app.get(
    "/papers/pending-extraction",
    response_model=List[PaperDetail],
    summary="Papers whose citations have not been extracted yet",
)
async def pending_extraction(request: Request) -> List[PaperDetail]:
    store = _get_store(request.app)
    return [get_paper_detail(store, p.id) for p in store.papers_pending_extraction()]


@app.get("/papers/{paper_id}", response_model=PaperDetail, summary="Get a single paper")
async def get_paper(paper_id: str, request: Request) -> PaperDetail:
    return get_paper_detail(_get_store(request.app), paper_id)


@app.get(
    "/papers/{paper_id}/related",
    response_model=RelatedPapersResult,
    summary="Papers similar to this one by keyword overlap",
)
async def related_papers(
    paper_id: str,
    request: Request,
    threshold: Optional[float] = _threshold_query(),
) -> RelatedPapersResult:
    return get_related_papers(_get_store(request.app), paper_id, threshold=threshold)


@app.get(
    "/papers/{paper_id}/citation-tree",
    response_model=CitationTree,
    summary="Citation tree with semantically related papers",
)
async def citation_tree(
    paper_id: str,
    request: Request,
    threshold: Optional[float] = _threshold_query(),
) -> CitationTree:
    return get_citation_tree(_get_store(request.app), paper_id, threshold=threshold)


@app.get(
    "/papers/{paper_id}/citation-tree/export",
    response_model=CitationExport,
    summary="Downloadable citation tree payload",
)
async def citation_tree_export(
    paper_id: str,
    request: Request,
    threshold: Optional[float] = _threshold_query(),
) -> CitationExport:
    tree = get_citation_tree(_get_store(request.app), paper_id, threshold=threshold)
    return export_citation_data(tree)


@app.get("/citations", response_model=List[CitationView], summary="List citation edges")
async def list_citations(request: Request) -> List[CitationView]:
    store = _get_store(request.app)
    return [
        CitationView(
            citing_paper_id=c.citing_paper_id,
            cited_paper_id=c.cited_paper_id,
            source=c.source,
        )
        for c in store.list_citations()
    ]


@app.get("/bookmarks", response_model=List[PaperSummary], summary="Caller's bookmarks")
async def list_bookmarks(
    request: Request,
    session: Session = Depends(get_session),
) -> List[PaperSummary]:
    user_id = require_user(session)
    store = _get_store(request.app)
    return [PaperSummary.from_paper(p) for p in store.bookmarks_for(user_id)]


@app.get("/events/{table}", summary="Server-sent change events for one table")
async def stream_events(
    table: str,
    request: Request,
    max_events: Optional[int] = Query(None, ge=1),
) -> StreamingResponse:
    if table not in EVENT_TABLES:
        raise HTTPException(status_code=404, detail=f"Unknown table {table!r}")

    sub = _get_store(request.app).hub.subscribe(table)
    return StreamingResponse(
        _event_stream(sub, request, max_events=max_events),
        media_type="text/event-stream",
    )


# -------------------------------------------------------------------
# Routes: write
# -------------------------------------------------------------------


@app.post(
    "/papers",
    response_model=PaperCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a paper and detect which stored papers it cites",
    dependencies=[Depends(api_key_auth), Depends(rate_limiter)],
)
async def create_paper(
    payload: PaperCreateRequest,
    request: Request,
    session: Session = Depends(get_session),
) -> PaperCreateResponse:
    """
    Store the paper, then run citation detection over `extracted_text`
    (or, failing that, the PDF behind `file_url`).

    A failed extraction does not fail the upload; it is reported in
    `extraction.warning`.
    """
    require_admin(session)
    store = _get_store(request.app)

    paper = Paper(
        id=payload.id or uuid.uuid4().hex,
        title=payload.title,
        abstract=payload.abstract,
        category=payload.category,
        year_published=payload.year_published,
        authors=payload.authors,
        file_url=payload.file_url,
        uploaded_by=payload.uploaded_by or session.user_id,
        extraction_status=ExtractionStatus.PROCESSING.value,
    )
    def _create_and_extract() -> ExtractionResult:
        store.create_paper(paper)
        text = resolve_paper_text(paper, payload.extracted_text)
        return extract_citations(store, paper.id, text)

    result = await _locked(request.app, _create_and_extract)

    return PaperCreateResponse(
        paper=get_paper_detail(store, paper.id),
        extraction=_extraction_view(result),
    )


@app.post(
    "/papers/{paper_id}/extract-citations",
    response_model=ExtractionResultView,
    summary="Retry citation extraction for a stored paper",
    dependencies=[Depends(api_key_auth), Depends(rate_limiter)],
)
async def retry_extraction(
    paper_id: str,
    payload: ExtractionRequest,
    request: Request,
    session: Session = Depends(get_session),
) -> ExtractionResultView:
    require_admin(session)
    store = _get_store(request.app)
    paper = store.get_paper(paper_id)

    def _extract() -> ExtractionResult:
        text = resolve_paper_text(paper, payload.extracted_text)
        return extract_citations(store, paper_id, text)

    result = await _locked(request.app, _extract)
    return _extraction_view(result)


@app.post(
    "/papers/{paper_id}/pdf",
    response_model=ExtractionResultView,
    summary="Upload a paper's PDF and detect citations in it",
    dependencies=[Depends(api_key_auth), Depends(rate_limiter)],
)
async def upload_pdf(
    paper_id: str,
    request: Request,
    file: UploadFile = File(..., description="PDF file for this paper"),
    session: Session = Depends(get_session),
) -> ExtractionResultView:
    require_admin(session)
    store = _get_store(request.app)
    store.get_paper(paper_id)

    pdf_path = settings.uploads_dir / f"{paper_id}.pdf"
    content = await file.read()

    def _save_and_extract() -> ExtractionResult:
        _save_upload(pdf_path, content)
        return extract_citations_from_pdf(store, paper_id, pdf_path)

    result = await _locked(request.app, _save_and_extract)
    return _extraction_view(result)


@app.post(
    "/citations",
    response_model=CitationView,
    status_code=status.HTTP_201_CREATED,
    summary="Manually add a citation edge",
    dependencies=[Depends(api_key_auth), Depends(rate_limiter)],
)
async def create_citation(
    payload: CitationCreateRequest,
    request: Request,
    session: Session = Depends(get_session),
) -> CitationView:
    require_admin(session)
    citation = await _locked(
        request.app,
        _get_store(request.app).add_citation,
        payload.citing_paper_id,
        payload.cited_paper_id,
    )
    return CitationView(
        citing_paper_id=citation.citing_paper_id,
        cited_paper_id=citation.cited_paper_id,
        source=citation.source,
    )


@app.delete(
    "/citations",
    summary="Remove a citation edge",
    dependencies=[Depends(api_key_auth), Depends(rate_limiter)],
)
async def delete_citation(
    request: Request,
    citing_paper_id: str = Query(...),
    cited_paper_id: str = Query(...),
    session: Session = Depends(get_session),
) -> Dict[str, bool]:
    require_admin(session)
    removed = await _locked(
        request.app,
        _get_store(request.app).remove_citation,
        citing_paper_id,
        cited_paper_id,
    )
    if not removed:
        raise HTTPException(status_code=404, detail="Citation not found")
    return {"deleted": True}


@app.post(
    "/bookmarks/{paper_id}",
    summary="Bookmark a paper",
    dependencies=[Depends(rate_limiter)],
)
async def add_bookmark(
    paper_id: str,
    request: Request,
    session: Session = Depends(get_session),
) -> Dict[str, bool]:
    user_id = require_user(session)
    created = await _locked(request.app, _get_store(request.app).add_bookmark, user_id, paper_id)
    return {"bookmarked": True, "created": created}


@app.delete(
    "/bookmarks/{paper_id}",
    summary="Remove a bookmark",
    dependencies=[Depends(rate_limiter)],
)
async def remove_bookmark(
    paper_id: str,
    request: Request,
    session: Session = Depends(get_session),
) -> Dict[str, bool]:
    user_id = require_user(session)
    removed = await _locked(request.app, _get_store(request.app).remove_bookmark, user_id, paper_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return {"bookmarked": False}
