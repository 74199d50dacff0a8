"""
Module: plan_layout.paginator

Purpose:
    Place an ordered list of content blocks onto fixed-size pages without
    ever splitting a block.

Algorithm:
    Single forward pass, written as a reducer over an immutable state:
    1. Append the next block to the current page and measure the result as a
       middle page (more content may follow).
    2. If it fits the middle budget, keep going.
    3. Otherwise close the current page as a middle page and start a new
       page with the block. A block that overflows an empty page stays
       there alone.
    4. At the end the open page becomes the final page. It is re-measured
       under the final role; blocks are never pulled back from pages that
       are already closed.

    The final page has a shorter footer in the default template, so the
    page budget depends on whether a page turns out to be the last one.
    Measuring every candidate as a middle page keeps earlier decisions valid
    when a later block pushes the open page into the middle of the document.

Used By:
    - plan_layout.layout: layout_document()
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from functools import reduce
from typing import Iterable, List, Tuple

from .budget import PageBudgetTable
from .common.error_handling import OVERSIZED_BLOCK, IssueCollector, LayoutIssue
from .common.logger import get_logger
from .measurement import MeasurementPort, measure_checked
from .models import CandidatePage, ContentBlock, FooterVariant, PageDescriptor, PageRole

Page = Tuple[ContentBlock, ...]


@dataclass(frozen=True)
class ClosedPage:
    blocks: Page
    height: float


@dataclass(frozen=True)
class PaginationState:
    """
    Accumulator of the greedy fill.

    Attributes:
        closed: Finished middle pages, in order
        current: Blocks of the open page
        current_height: Height of the open page measured as a middle page
        consumed: Number of blocks seen so far
        issues: Non-fatal conditions met so far
    """
    closed: Tuple[ClosedPage, ...] = ()
    current: Page = ()
    current_height: float = 0.0
    consumed: int = 0
    issues: Tuple[LayoutIssue, ...] = ()


class GreedyPaginator:
    """
    Greedy forward-only paginator.

    Example:
        >>> paginator = GreedyPaginator(surface, PageBudgetTable.from_geometry(geometry))
        >>> pages = paginator.paginate(blocks)
    """

    def __init__(
        self,
        port: MeasurementPort,
        budgets: PageBudgetTable,
        collector: IssueCollector = None,
        request_id: str = None,
    ):
        self.port = port
        self.budgets = budgets
        self.collector = collector if collector is not None else IssueCollector()
        self.logger = get_logger(__name__, request_id=request_id, stage="paginate")

    def paginate(self, blocks: Iterable[ContentBlock]) -> Tuple[PageDescriptor, ...]:
        """
        Split blocks into pages.

        Args:
            blocks: Ordered content blocks

        Returns:
            Page descriptors; every page is a middle page except the last,
            which is the final page. Empty input gives no pages.

        Raises:
            MeasurementUnavailable: The measurement port failed
        """
        state = reduce(self.step, blocks, PaginationState())
        pages, issues = self.finish(state)

        self.collector.extend(issues)
        for issue in issues:
            self.logger.warning(issue.message)
        self.logger.info(f"Paginated {state.consumed} blocks onto {len(pages)} pages")
        return pages

    def step(self, state: PaginationState, block: ContentBlock) -> PaginationState:
        """Place one block. Only ever closes the open page; never reopens one."""
        middle_budget = self.budgets.budget_for(PageRole.MIDDLE)
        candidate = state.current + (block,)
        height = self._measure(candidate, PageRole.MIDDLE)
        consumed = state.consumed + 1

        if height <= middle_budget or not state.current:
            # fits, or the block overflows an empty page and stays there alone
            return replace(state, current=candidate, current_height=height, consumed=consumed)

        issues = state.issues
        if len(state.current) == 1 and state.current_height > middle_budget:
            issues += (self._oversized(len(state.closed), state.consumed - 1,
                                       state.current_height, middle_budget),)

        self.logger.debug(
            f"Closed page {len(state.closed)} with {len(state.current)} blocks "
            f"({state.current_height:.1f}/{middle_budget:.1f})"
        )
        closed = state.closed + (ClosedPage(state.current, state.current_height),)
        return PaginationState(
            closed=closed,
            current=(block,),
            current_height=self._measure((block,), PageRole.MIDDLE),
            consumed=consumed,
            issues=issues,
        )

    def finish(self, state: PaginationState) -> Tuple[Tuple[PageDescriptor, ...], Tuple[LayoutIssue, ...]]:
        """Close the open page as the final page and build descriptors."""
        if not state.current:
            return (), state.issues

        final_budget = self.budgets.budget_for(PageRole.FINAL)
        closed: List[ClosedPage] = list(state.closed)
        final_page = state.current
        height = self._measure(final_page, PageRole.FINAL)
        issues = state.issues

        if height > final_budget and len(final_page) > 1:
            # Only reachable when the final budget is below the middle one:
            # everything but the last block already fits a middle page.
            closed.append(ClosedPage(final_page[:-1], self._measure(final_page[:-1], PageRole.MIDDLE)))
            final_page = final_page[-1:]
            height = self._measure(final_page, PageRole.FINAL)

        if height > final_budget:
            issues += (self._oversized(len(closed), state.consumed - 1, height, final_budget),)

        pages = [
            PageDescriptor(
                index=index,
                blocks=page.blocks,
                footer_variant=FooterVariant.MIDDLE,
                role=PageRole.MIDDLE,
                measured_height=page.height,
            )
            for index, page in enumerate(closed)
        ]
        pages.append(PageDescriptor(
            index=len(closed),
            blocks=final_page,
            footer_variant=FooterVariant.FINAL,
            role=PageRole.FINAL,
            measured_height=height,
        ))
        return tuple(pages), issues

    def _measure(self, blocks: Page, role: PageRole) -> float:
        return measure_checked(self.port, CandidatePage(blocks=blocks), role)

    @staticmethod
    def _oversized(page_index: int, block_index: int, height: float, budget: float) -> LayoutIssue:
        return LayoutIssue(
            kind=OVERSIZED_BLOCK,
            message=(
                f"Block {block_index} alone needs {height:.1f}px on page {page_index}, "
                f"budget is {budget:.1f}px; placed alone and allowed to overflow"
            ),
            page_index=page_index,
            block_index=block_index,
            measured_height=height,
            budget=budget,
        )
