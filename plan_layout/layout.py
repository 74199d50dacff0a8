"""
Layout entry point: paginate the blocks, then place the trailing note.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .budget import PageBudgetTable, PageGeometry
from .common.error_handling import EMPTY_INPUT, IssueCollector, LayoutIssue
from .common.logger import get_logger
from .measurement import MeasurementPort
from .models import ContentBlock, DocumentLayout, TrailingNote
from .note_placement import NotePlacementResolver
from .paginator import GreedyPaginator


def layout_document(
    blocks: Iterable[ContentBlock],
    note: Optional[TrailingNote],
    port: MeasurementPort,
    geometry: PageGeometry,
    request_id: Optional[str] = None,
) -> DocumentLayout:
    """
    Compute the page layout of one document.

    Args:
        blocks: Ordered content blocks (snapshotted here)
        note: Optional trailing note
        port: Measurement surface owned by this request
        geometry: Page geometry of the document template
        request_id: Optional identifier used in log messages

    Returns:
        DocumentLayout with the final page list and non-fatal issues

    Raises:
        MeasurementUnavailable: The measurement port failed; no layout is produced
    """
    logger = get_logger(__name__, request_id=request_id, stage="layout")
    blocks = tuple(blocks)
    budgets = PageBudgetTable.from_geometry(geometry)
    collector = IssueCollector()

    if not blocks:
        issue = LayoutIssue(kind=EMPTY_INPUT, message="No content blocks to paginate")
        collector.add(issue)
        logger.info(issue.message)

    paginator = GreedyPaginator(port, budgets, collector=collector, request_id=request_id)
    pages = paginator.paginate(blocks)

    resolver = NotePlacementResolver(
        port,
        budgets,
        safety_margin=geometry.note_safety_margin,
        collector=collector,
        request_id=request_id,
    )
    pages = resolver.place_note(pages, note)

    layout = DocumentLayout(pages=pages, issues=tuple(collector.issues))
    logger.info(
        f"Layout complete: {len(blocks)} blocks, {layout.page_count} pages, "
        f"note={'none' if note is None else ('own page' if layout.has_note_page else 'inline')}, "
        f"issues={collector.summary()}"
    )
    if collector.has_oversized_content():
        logger.warning("Layout has content taller than its page; it will be clipped in the PDF")
    return layout
