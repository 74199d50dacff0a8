"""
Trailing note placement.

The reminder note should stay on the last content page when it fits there
(plus a small safety margin against font metric rounding), and otherwise
gets a page of its own. It must never overlap the footer.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence, Tuple

from .budget import PageBudgetTable
from .common.error_handling import OVERSIZED_NOTE, IssueCollector, LayoutIssue
from .common.logger import get_logger
from .measurement import MeasurementPort, measure_checked
from .models import CandidatePage, FooterVariant, PageDescriptor, PageRole, TrailingNote


class NotePlacementResolver:
    """Decides inline vs. dedicated page for the trailing note."""

    def __init__(
        self,
        port: MeasurementPort,
        budgets: PageBudgetTable,
        safety_margin: float = 0.0,
        collector: IssueCollector = None,
        request_id: str = None,
    ):
        self.port = port
        self.budgets = budgets
        self.safety_margin = safety_margin
        self.collector = collector if collector is not None else IssueCollector()
        self.logger = get_logger(__name__, request_id=request_id, stage="note")

    def place_note(
        self,
        pages: Sequence[PageDescriptor],
        note: Optional[TrailingNote],
    ) -> Tuple[PageDescriptor, ...]:
        """
        Place the note after the paginated pages.

        Args:
            pages: Paginator output; the last page is the final content page
            note: Trailing note, or None when the document has none

        Returns:
            The pages with the last one marked includes_note_inline, or the
            unchanged pages plus one note page.

        Raises:
            MeasurementUnavailable: The measurement port failed
        """
        pages = tuple(pages)
        if note is None:
            return pages

        if not pages:
            self.logger.info("No content pages; note gets its own page")
            return (self._note_page(0, note),)

        last = pages[-1]
        final_budget = self.budgets.budget_for(PageRole.FINAL)
        height = measure_checked(self.port, CandidatePage(blocks=last.blocks, note=note), PageRole.FINAL)

        if height + self.safety_margin <= final_budget:
            self.logger.info(
                f"Note fits inline on page {last.index} "
                f"({height:.1f}+{self.safety_margin:.1f}/{final_budget:.1f})"
            )
            return pages[:-1] + (replace(last, includes_note_inline=True, measured_height=height),)

        self.logger.info(
            f"Note does not fit on page {last.index} "
            f"({height:.1f}+{self.safety_margin:.1f}/{final_budget:.1f}); adding a note page"
        )
        return pages + (self._note_page(len(pages), note),)

    def _note_page(self, index: int, note: TrailingNote) -> PageDescriptor:
        note_budget = self.budgets.budget_for(PageRole.NOTE)
        height = measure_checked(self.port, CandidatePage(note=note), PageRole.NOTE)

        if height > note_budget:
            issue = LayoutIssue(
                kind=OVERSIZED_NOTE,
                message=(
                    f"Note needs {height:.1f}px, note page budget is {note_budget:.1f}px; "
                    f"placed alone and allowed to overflow"
                ),
                page_index=index,
                measured_height=height,
                budget=note_budget,
            )
            self.collector.add(issue)
            self.logger.warning(issue.message)

        return PageDescriptor(
            index=index,
            blocks=(),
            footer_variant=FooterVariant.FINAL,
            role=PageRole.NOTE,
            measured_height=height,
        )
