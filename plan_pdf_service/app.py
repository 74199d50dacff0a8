"""
Session Plan PDF Service - FastAPI application.

Paginates session plan action points onto A4 pages, renders them and
exports the document to PDF using Playwright/Chromium. Each request owns
its own measurement surface and runs in a worker thread.
"""

import asyncio
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from plan_layout.budget import PageGeometry
from plan_layout.common.config import get_settings
from plan_layout.common.error_handling import (
    DeliveryError,
    GenerationAborted,
    MeasurementUnavailable,
    PdfExportError,
)
from plan_layout.common.logger import get_logger, setup_logging
from plan_layout.models import PageRole, TrailingNote, blocks_from_raw

from .delivery import WebhookDelivery
from .generator import AbortSignal, GenerationRequest, compute_layout, generate_document

settings = get_settings()

setup_logging(settings.log_level, settings.log_format)
logger = get_logger(__name__)

app = FastAPI(
    title="Session Plan PDF Service",
    version="0.1.0",
    description="Paginates session plans and renders them to PDF using Playwright/Chromium"
)

MAX_CONCURRENT_PDFS = settings.max_concurrent_pdfs
GENERATION_TIMEOUT_SECONDS = settings.generation_timeout_seconds

# Semaphore for rate limiting
_pdf_semaphore = asyncio.Semaphore(MAX_CONCURRENT_PDFS)

# Playwright readiness state
_playwright_ready = False
_playwright_error: Optional[str] = None


# ============================================================================
# Startup Event - Validate Playwright
# ============================================================================

@app.on_event("startup")
async def validate_playwright_on_startup():
    """
    Validate Playwright/Chromium is properly installed on startup.

    The service won't report as healthy if Chromium can't measure or print.
    """
    global _playwright_ready, _playwright_error

    logger.info("Session plan PDF service starting - validating Playwright installation...")

    try:
        from playwright.async_api import async_playwright

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=settings.playwright_headless)
            page = await browser.new_page()
            await page.set_content("<html><body><h1>Test</h1></body></html>")
            test_pdf = await page.pdf(format='A4')
            await browser.close()

            if len(test_pdf) > 0:
                _playwright_ready = True
                logger.info(f"Playwright validation successful - generated {len(test_pdf)} byte test PDF")
            else:
                _playwright_error = "Test PDF generation returned empty result"
                logger.error(f"Playwright validation failed: {_playwright_error}")

    except Exception as e:
        _playwright_error = str(e)
        logger.error(f"Playwright validation failed: {_playwright_error}")
        logger.error("Measurement and PDF generation will not work until this is resolved.")


# ============================================================================
# Request/Response Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    timestamp: datetime
    active_renders: int
    max_concurrent: int
    playwright_ready: bool = True
    playwright_error: Optional[str] = None


class ContentBlockModel(BaseModel):
    """One action point."""
    header: str = Field(..., description="Block header (rich text HTML)")
    body: str = Field("", description="Block body (rich text HTML)")


class GeometryOverrides(BaseModel):
    """Per-request page geometry; unset fields fall back to configuration (CSS px)."""
    page_width: Optional[float] = None
    page_height: Optional[float] = None
    header_height: Optional[float] = None
    footer_height_middle: Optional[float] = None
    footer_height_final: Optional[float] = None
    footer_height_note: Optional[float] = None
    inter_block_spacing: Optional[float] = None
    first_block_top_margin: Optional[float] = None
    note_safety_margin: Optional[float] = None

    def apply(self, base: PageGeometry) -> PageGeometry:
        """Raises ValueError if the resulting geometry is invalid."""
        footer_heights = dict(base.footer_heights)
        for role, value in (
            (PageRole.MIDDLE, self.footer_height_middle),
            (PageRole.FINAL, self.footer_height_final),
            (PageRole.NOTE, self.footer_height_note),
        ):
            if value is not None:
                footer_heights[role] = value

        def pick(value, default):
            return default if value is None else value

        return PageGeometry(
            page_width=pick(self.page_width, base.page_width),
            page_height=pick(self.page_height, base.page_height),
            header_height=pick(self.header_height, base.header_height),
            footer_heights=footer_heights,
            inter_block_spacing=pick(self.inter_block_spacing, base.inter_block_spacing),
            first_block_top_margin=pick(self.first_block_top_margin, base.first_block_top_margin),
            note_safety_margin=pick(self.note_safety_margin, base.note_safety_margin),
        )


class LayoutRequest(BaseModel):
    """Blocks and trailing note of one session plan."""
    blocks: List[ContentBlockModel] = Field(default_factory=list, description="Ordered action points")
    note: Optional[str] = Field(None, description="Trailing reminder note (rich text HTML)")
    geometry: Optional[GeometryOverrides] = Field(None, description="Page geometry overrides")


class BatchLayoutRequest(BaseModel):
    """Several independent documents laid out concurrently."""
    documents: List[LayoutRequest] = Field(..., min_length=1, max_length=50)


class SessionPlanPDFRequest(LayoutRequest):
    """Session plan to PDF request."""
    title: str = Field("Session Plan", description="Document title, also used for the filename")
    header_text: str = Field("", description="Plain text shown in every page header")
    deliver: bool = Field(False, description="Send the finished PDF to the delivery webhook")
    delivery_metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Recipient and identifiers forwarded with the PDF"
    )


# ============================================================================
# Helpers
# ============================================================================

def _to_generation_request(request: LayoutRequest) -> GenerationRequest:
    """Snapshot the request into immutable layout input; 400 on bad geometry."""
    base = PageGeometry.from_settings(settings)
    try:
        geometry = request.geometry.apply(base) if request.geometry else base
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid page geometry: {e}")

    extra = {}
    if isinstance(request, SessionPlanPDFRequest):
        extra = {"title": request.title, "header_text": request.header_text}

    return GenerationRequest(
        blocks=blocks_from_raw(block.model_dump() for block in request.blocks),
        note=TrailingNote.from_raw(request.note),
        geometry=geometry,
        **extra,
    )


def _check_capacity() -> None:
    if _pdf_semaphore._value <= 0:
        logger.warning("PDF service overloaded, rejecting request")
        raise HTTPException(
            status_code=503,
            detail="Service overloaded. Too many concurrent PDF operations."
        )


async def _start_worker(func, *args) -> asyncio.Task:
    """
    Run func in a worker thread that holds one semaphore slot.

    A thread cannot be cancelled, so the slot is released only once the
    thread returns, not when the caller stops waiting for it. Callers await
    the task through asyncio.shield().
    """
    semaphore = _pdf_semaphore
    await semaphore.acquire()
    task = asyncio.ensure_future(asyncio.to_thread(func, *args))

    def _release(done: asyncio.Task) -> None:
        semaphore.release()
        # collect the result of workers nobody waits for any more
        if not done.cancelled() and done.exception() is not None:
            logger.debug(f"Worker finished with {type(done.exception()).__name__}: {done.exception()}")

    task.add_done_callback(_release)
    return task


async def _run_layout(generation_request: GenerationRequest):
    task = await _start_worker(compute_layout, generation_request)
    return await asyncio.shield(task)


async def _run_layout_batch(generation_requests: List[GenerationRequest]):
    """
    Lay out documents concurrently; raise the first failure once every
    started worker has returned. Documents not yet started when a failure
    is seen are skipped.
    """
    tasks = []
    for generation_request in generation_requests:
        if any(t.done() and not t.cancelled() and t.exception() is not None for t in tasks):
            break
        tasks.append(await _start_worker(compute_layout, generation_request))

    results = await asyncio.gather(*(asyncio.shield(t) for t in tasks), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint for container orchestration.

    Returns HTTP 503 if Playwright validation failed on startup.
    """
    if not _playwright_ready:
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "timestamp": datetime.utcnow().isoformat(),
                "active_renders": MAX_CONCURRENT_PDFS - _pdf_semaphore._value,
                "max_concurrent": MAX_CONCURRENT_PDFS,
                "playwright_ready": False,
                "playwright_error": _playwright_error,
                "message": "PDF service is unhealthy - Playwright/Chromium not available"
            }
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        active_renders=MAX_CONCURRENT_PDFS - _pdf_semaphore._value,
        max_concurrent=MAX_CONCURRENT_PDFS,
        playwright_ready=True,
        playwright_error=None
    )


# ============================================================================
# Layout Endpoints
# ============================================================================

@app.post("/session-plan/layout")
async def session_plan_layout(request: LayoutRequest) -> Dict[str, Any]:
    """
    Compute the page layout of a session plan without rendering it.

    Returns:
        Page descriptors and non-fatal layout issues

    Raises:
        HTTPException: 400 for invalid geometry, 503 for overload or an
            unavailable measurement surface, 504 on timeout
    """
    generation_request = _to_generation_request(request)
    _check_capacity()

    try:
        layout = await asyncio.wait_for(_run_layout(generation_request), timeout=GENERATION_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.error("Layout timed out")
        raise HTTPException(status_code=504, detail=f"Layout timed out after {GENERATION_TIMEOUT_SECONDS}s")
    except MeasurementUnavailable as e:
        logger.error(f"Measurement surface unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Measurement surface unavailable: {e}")

    return layout.to_dict()


@app.post("/session-plan/layout/batch")
async def session_plan_layout_batch(request: BatchLayoutRequest) -> Dict[str, Any]:
    """
    Lay out several independent documents concurrently.

    Each document gets its own measurement surface; concurrency is bounded
    by the service semaphore. If one document fails the request fails with
    it, after the documents already being measured have finished.
    """
    generation_requests = [_to_generation_request(document) for document in request.documents]
    _check_capacity()

    logger.info(f"Starting batch layout of {len(generation_requests)} documents")
    try:
        layouts = await asyncio.wait_for(
            _run_layout_batch(generation_requests),
            timeout=GENERATION_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.error("Batch layout timed out")
        raise HTTPException(status_code=504, detail=f"Batch layout timed out after {GENERATION_TIMEOUT_SECONDS}s")
    except MeasurementUnavailable as e:
        logger.error(f"Measurement surface unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Measurement surface unavailable: {e}")

    return {"documents": [layout.to_dict() for layout in layouts]}


# ============================================================================
# PDF Generation Endpoint
# ============================================================================

@app.post("/session-plan/pdf")
async def session_plan_pdf(request: SessionPlanPDFRequest):
    """
    Paginate, render and export a session plan to PDF.

    Generation is atomic: the PDF is returned (and optionally delivered)
    only once the whole document rendered successfully.

    Returns:
        StreamingResponse with PDF binary data

    Raises:
        HTTPException: 400 invalid input, 502 delivery failure,
            503 overload or measurement unavailable, 504 timeout, 500 export failure
    """
    generation_request = _to_generation_request(request)

    delivery = WebhookDelivery()
    if request.deliver and not delivery.enabled:
        raise HTTPException(status_code=400, detail="Delivery requested but no delivery webhook is configured")

    _check_capacity()

    abort = AbortSignal()
    log = get_logger(__name__, request_id=generation_request.request_id, stage="api")
    task = await _start_worker(generate_document, generation_request, abort)
    try:
        document = await asyncio.wait_for(asyncio.shield(task), timeout=GENERATION_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        # the worker stops at its next page-render step and frees its slot then
        abort.abort("timed out")
        log.error(f"Generation timed out after {GENERATION_TIMEOUT_SECONDS}s")
        raise HTTPException(
            status_code=504,
            detail=f"Generation timed out after {GENERATION_TIMEOUT_SECONDS}s"
        )
    except GenerationAborted as e:
        log.error(str(e))
        raise HTTPException(status_code=504, detail=str(e))
    except MeasurementUnavailable as e:
        log.error(f"Measurement surface unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Measurement surface unavailable: {e}")
    except PdfExportError as e:
        log.error(str(e))
        raise HTTPException(status_code=500, detail=f"PDF generation failed: {e}")

    if request.deliver:
        try:
            await asyncio.to_thread(
                delivery.send,
                document.pdf_bytes,
                {**request.delivery_metadata, "page_count": document.layout.page_count},
                document.filename,
            )
        except DeliveryError as e:
            log.error(str(e))
            raise HTTPException(status_code=502, detail=f"Delivery failed: {e}")

    log.info(f"Session plan PDF completed: {document.filename}")

    return StreamingResponse(
        BytesIO(document.pdf_bytes),
        media_type='application/pdf',
        headers={
            'Content-Disposition': f'attachment; filename="{document.filename}"',
            'X-Page-Count': str(document.layout.page_count),
        }
    )
