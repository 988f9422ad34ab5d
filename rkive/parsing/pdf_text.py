# rkive/parsing/pdf_text.py

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional, Union

import requests
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from rkive.config.settings import settings
from rkive.errors import PdfTextError

logger = logging.getLogger("rkive.parsing.pdf_text")

PdfSource = Union[str, Path, bytes]


def download_pdf(url: str, timeout: Optional[float] = None) -> bytes:
    """
    Fetch a PDF from `url` and return its raw bytes.

    All request-related failures are wrapped into PdfTextError so callers can
    record a failed extraction instead of crashing.
    """
    timeout = settings.PDF_DOWNLOAD_TIMEOUT if timeout is None else timeout
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise PdfTextError(f"Error downloading PDF from {url}: {e}") from e

    return resp.content


def extract_pdf_text(source: PdfSource) -> str:
    """
    Concatenate the text of every page in a PDF.

    `source` may be a filesystem path or the PDF bytes themselves. Pages
    without a text layer contribute nothing.
    """
    try:
        if isinstance(source, bytes):
            reader = PdfReader(io.BytesIO(source))
        else:
            reader = PdfReader(str(source))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, OSError, ValueError) as e:
        raise PdfTextError(f"Could not read PDF text: {e}") from e

    text = "\n".join(p.strip() for p in pages if p.strip())
    logger.info("Extracted %d characters from %d page(s)", len(text), len(pages))
    return text
