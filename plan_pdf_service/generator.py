"""
Document generation for one session plan request.

Runs synchronously in a worker thread:
1. Open a measurement surface owned by this request
2. Lay out blocks and the trailing note
3. Render pages one at a time, checking the abort signal between pages
4. Export the rendered document to an A4 PDF

Generation is atomic: it either returns a complete PDF or raises, and no
partial artifact leaves this module.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from plan_layout.budget import PageGeometry
from plan_layout.common.config import get_settings
from plan_layout.common.error_handling import GenerationAborted, PdfExportError, log_on_exception
from plan_layout.common.logger import get_logger
from plan_layout.layout import layout_document
from plan_layout.models import ContentBlock, DocumentLayout, TrailingNote

from .measurement_surface import PlaywrightMeasurementSurface
from .pdf_helpers import build_document_html, render_page_html, sanitize_for_path

logger = logging.getLogger(__name__)


class AbortSignal:
    """
    Cancellation flag shared between the request handler and the worker thread.

    Checked between page-render steps only; a pagination pass is short and is
    never interrupted mid-measurement.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def abort(self, reason: str = "aborted") -> None:
        self.reason = reason
        self._event.set()

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def raise_if_aborted(self, step: str) -> None:
        if self._event.is_set():
            raise GenerationAborted(f"Generation {self.reason or 'aborted'} before {step}")


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable snapshot of one document's input."""
    blocks: Tuple[ContentBlock, ...]
    note: Optional[TrailingNote]
    geometry: PageGeometry
    title: str = "Session Plan"
    header_text: str = ""
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def filename(self) -> str:
        return f"{sanitize_for_path(self.title) or 'Session_Plan'}.pdf"


@dataclass(frozen=True)
class GeneratedDocument:
    pdf_bytes: bytes
    layout: DocumentLayout
    filename: str


def default_surface_factory(geometry: PageGeometry) -> PlaywrightMeasurementSurface:
    settings = get_settings()
    return PlaywrightMeasurementSurface(
        geometry,
        headless=settings.playwright_headless,
        timeout_ms=settings.playwright_timeout,
    )


def compute_layout(
    request: GenerationRequest,
    surface_factory: Callable = None,
) -> DocumentLayout:
    """
    Lay out one document with its own measurement surface.

    Raises:
        MeasurementUnavailable: The surface failed to start or to measure
    """
    factory = surface_factory or default_surface_factory
    with factory(request.geometry) as surface:
        return layout_document(
            request.blocks,
            request.note,
            surface,
            request.geometry,
            request_id=request.request_id,
        )


def render_document_html(
    layout: DocumentLayout,
    request: GenerationRequest,
    abort: AbortSignal,
) -> str:
    """Render every page; stops with GenerationAborted if the signal is set."""
    pages_html = []
    for page in layout.pages:
        abort.raise_if_aborted(f"rendering page {page.index}")
        pages_html.append(render_page_html(
            page,
            request.geometry,
            note=request.note,
            header_text=request.header_text,
            page_count=layout.page_count,
        ))
    return build_document_html(pages_html, request.geometry, title=request.title)


def export_pdf(document_html: str, headless: bool = None, timeout_ms: int = None) -> bytes:
    """
    Print the rendered document to A4 PDF with Chromium.

    Raises:
        PdfExportError: Chromium failed or returned an empty document
    """
    from playwright.sync_api import sync_playwright

    settings = get_settings()
    headless = settings.playwright_headless if headless is None else headless
    timeout_ms = timeout_ms or settings.playwright_timeout

    try:
        with log_on_exception(logger, "PDF export", level=logging.ERROR):
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=headless)
                try:
                    page = browser.new_page()
                    page.set_default_timeout(timeout_ms)
                    page.set_content(document_html, wait_until="networkidle")
                    page.emulate_media(media="print")
                    pdf_bytes = page.pdf(
                        format="A4",
                        print_background=True,
                        prefer_css_page_size=True,
                        margin={"top": "0in", "right": "0in", "bottom": "0in", "left": "0in"},
                    )
                finally:
                    browser.close()
    except Exception as e:
        raise PdfExportError(f"PDF export failed: {e}") from e

    if not pdf_bytes:
        raise PdfExportError("PDF export returned an empty document")
    return pdf_bytes


def generate_document(
    request: GenerationRequest,
    abort: AbortSignal = None,
    surface_factory: Callable = None,
    exporter: Callable[[str], bytes] = None,
) -> GeneratedDocument:
    """
    Produce the complete PDF for one request.

    Args:
        request: Document input snapshot
        abort: Cancellation signal set by the caller on timeout
        surface_factory: Builds the measurement surface (geometry -> context manager)
        exporter: Turns document HTML into PDF bytes

    Returns:
        GeneratedDocument with PDF bytes and the layout used

    Raises:
        MeasurementUnavailable, GenerationAborted, PdfExportError
    """
    abort = abort or AbortSignal()
    log = get_logger(__name__, request_id=request.request_id, stage="generate")
    log.info(f"Generating '{request.title}' ({len(request.blocks)} blocks)")

    layout = compute_layout(request, surface_factory)
    document_html = render_document_html(layout, request, abort)

    abort.raise_if_aborted("PDF export")
    pdf_bytes = (exporter or export_pdf)(document_html)

    log.info(f"Generated {request.filename}: {layout.page_count} pages, {len(pdf_bytes)} bytes")
    return GeneratedDocument(pdf_bytes=pdf_bytes, layout=layout, filename=request.filename)
