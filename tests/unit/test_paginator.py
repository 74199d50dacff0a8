"""
Unit tests for the greedy paginator.

Covers the page-filling scenarios, the no-split/order/budget invariants,
footer variants, the oversized-block policy and measurement failures.
"""

import pytest

from plan_layout.budget import PageBudgetTable
from plan_layout.common.error_handling import OVERSIZED_BLOCK, IssueCollector, MeasurementUnavailable
from plan_layout.models import CandidatePage, FooterVariant, PageRole
from plan_layout.paginator import GreedyPaginator, PaginationState


def _headers(page):
    return [block.header for block in page.blocks]


class TestPaginationScenarios:
    """Concrete scenarios on a page with middle budget 780 and final budget 860."""

    def test_three_blocks_of_300_need_two_pages(self, budgets, make_blocks, make_port):
        """300, 620, 940: the third block overflows the middle budget."""
        blocks, heights = make_blocks(300, 300, 300)
        pages = GreedyPaginator(make_port(heights), budgets).paginate(blocks)

        assert len(pages) == 2
        assert _headers(pages[0]) == ["b0", "b1"]
        assert _headers(pages[1]) == ["b2"]
        assert pages[0].measured_height == 620
        assert pages[1].measured_height == 300

    def test_single_huge_block_is_placed_alone(self, budgets, make_blocks, make_port):
        """A block taller than even the final budget is neither dropped nor split."""
        blocks, heights = make_blocks(2000)
        collector = IssueCollector()
        pages = GreedyPaginator(make_port(heights), budgets, collector=collector).paginate(blocks)

        assert len(pages) == 1
        assert _headers(pages[0]) == ["b0"]
        assert pages[0].footer_variant is FooterVariant.FINAL
        assert [issue.kind for issue in collector.issues] == [OVERSIZED_BLOCK]
        assert collector.issues[0].block_index == 0
        assert collector.issues[0].budget == 860

    def test_empty_input_gives_no_pages(self, budgets, make_port):
        pages = GreedyPaginator(make_port(), budgets).paginate([])
        assert pages == ()

    def test_final_page_keeps_only_what_fit_a_middle_page(self, budgets, make_blocks, make_port):
        """
        500 + 20 + 320 = 840 fits the final budget but not the middle one.
        Forward-only greedy still moves the second block to a new page.
        """
        blocks, heights = make_blocks(500, 320)
        pages = GreedyPaginator(make_port(heights), budgets).paginate(blocks)

        assert [_headers(p) for p in pages] == [["b0"], ["b1"]]

    def test_exact_fit_stays_on_page(self, budgets, make_blocks, make_port):
        """380 + 20 + 380 = 780 equals the middle budget."""
        blocks, heights = make_blocks(380, 380)
        pages = GreedyPaginator(make_port(heights), budgets).paginate(blocks)

        assert len(pages) == 1
        assert _headers(pages[0]) == ["b0", "b1"]

    def test_oversized_block_in_the_middle(self, budgets, make_blocks, make_port):
        """An oversized block gets its own middle page and is reported once."""
        blocks, heights = make_blocks(200, 900, 200)
        collector = IssueCollector()
        pages = GreedyPaginator(make_port(heights), budgets, collector=collector).paginate(blocks)

        assert [_headers(p) for p in pages] == [["b0"], ["b1"], ["b2"]]
        assert pages[1].footer_variant is FooterVariant.MIDDLE
        assert len(collector.issues) == 1
        issue = collector.issues[0]
        assert issue.kind == OVERSIZED_BLOCK
        assert issue.block_index == 1
        assert issue.page_index == 1
        assert issue.budget == 780


class TestPaginationInvariants:
    """Properties that hold for any input."""

    INPUTS = [
        (100,),
        (300, 300, 300),
        (780, 1, 779, 20, 400, 400, 50),
        (10,) * 40,
        (900, 900, 100, 2000, 5),
        (250, 500, 120, 640, 30, 30, 30, 700, 760),
    ]

    @pytest.mark.parametrize("sizes", INPUTS)
    def test_every_block_once_and_in_order(self, sizes, budgets, make_blocks, make_port):
        blocks, heights = make_blocks(*sizes)
        pages = GreedyPaginator(make_port(heights), budgets).paginate(blocks)

        flattened = [block for page in pages for block in page.blocks]
        assert flattened == list(blocks)

    @pytest.mark.parametrize("sizes", INPUTS)
    def test_pages_respect_their_budget(self, sizes, budgets, make_blocks, make_port):
        blocks, heights = make_blocks(*sizes)
        port = make_port(heights)
        pages = GreedyPaginator(port, budgets).paginate(blocks)

        for page in pages:
            measured = port.measure(CandidatePage(blocks=page.blocks), page.role)
            assert measured == page.measured_height
            if len(page.blocks) > 1:
                assert measured <= budgets.budget_for(page.role)

    @pytest.mark.parametrize("sizes", INPUTS)
    def test_footer_variants(self, sizes, budgets, make_blocks, make_port):
        blocks, heights = make_blocks(*sizes)
        pages = GreedyPaginator(make_port(heights), budgets).paginate(blocks)

        assert [p.index for p in pages] == list(range(len(pages)))
        assert all(p.footer_variant is FooterVariant.MIDDLE for p in pages[:-1])
        assert all(p.role is PageRole.MIDDLE for p in pages[:-1])
        assert pages[-1].footer_variant is FooterVariant.FINAL
        assert pages[-1].role is PageRole.FINAL
        assert not any(p.includes_note_inline for p in pages)

    @pytest.mark.parametrize("sizes", INPUTS)
    def test_deterministic(self, sizes, budgets, make_blocks, make_port):
        blocks, heights = make_blocks(*sizes)

        first = GreedyPaginator(make_port(heights), budgets).paginate(blocks)
        second = GreedyPaginator(make_port(heights), budgets).paginate(blocks)

        assert first == second

    def test_measurement_calls_are_linear(self, budgets, make_blocks, make_port):
        blocks, heights = make_blocks(*([300] * 30))
        port = make_port(heights)
        GreedyPaginator(port, budgets).paginate(blocks)

        assert len(port.calls) <= 2 * len(blocks) + 2

    def test_candidates_measured_as_middle_pages(self, budgets, make_blocks, make_port):
        blocks, heights = make_blocks(300, 300, 300)
        port = make_port(heights)
        GreedyPaginator(port, budgets).paginate(blocks)

        roles = [role for _, _, role in port.calls]
        assert roles[-1] is PageRole.FINAL
        assert set(roles[:-1]) == {PageRole.MIDDLE}


class TestPaginationReducer:
    """The step function is a pure (state, block) -> state transition."""

    def test_step_does_not_mutate_state(self, budgets, make_blocks, make_port):
        blocks, heights = make_blocks(300, 300)
        paginator = GreedyPaginator(make_port(heights), budgets)

        initial = PaginationState()
        after_one = paginator.step(initial, blocks[0])
        after_two = paginator.step(after_one, blocks[1])

        assert initial == PaginationState()
        assert after_one.current == (blocks[0],)
        assert after_two.current == (blocks[0], blocks[1])
        assert after_two.consumed == 2
        assert after_two.closed == ()

    def test_step_closes_page_on_overflow(self, budgets, make_blocks, make_port):
        blocks, heights = make_blocks(500, 500)
        paginator = GreedyPaginator(make_port(heights), budgets)

        state = paginator.step(paginator.step(PaginationState(), blocks[0]), blocks[1])

        assert len(state.closed) == 1
        assert state.closed[0].blocks == (blocks[0],)
        assert state.current == (blocks[1],)
        assert state.current_height == 500

    def test_finish_on_empty_state(self, budgets, make_port):
        pages, issues = GreedyPaginator(make_port(), budgets).finish(PaginationState())
        assert pages == ()
        assert issues == ()


class TestConfigurableBudgets:
    """The algorithm stays valid when the final page has the smaller budget."""

    def test_final_budget_smaller_than_middle(self, make_blocks, make_port):
        budgets = PageBudgetTable({PageRole.MIDDLE: 800, PageRole.FINAL: 500, PageRole.NOTE: 500})
        blocks, heights = make_blocks(300, 300)
        port = make_port(heights)

        pages = GreedyPaginator(port, budgets).paginate(blocks)

        assert [_headers(p) for p in pages] == [["b0"], ["b1"]]
        assert pages[0].footer_variant is FooterVariant.MIDDLE
        assert pages[1].footer_variant is FooterVariant.FINAL
        for page in pages:
            assert page.measured_height <= budgets.budget_for(page.role)

    def test_equal_budgets(self, make_blocks, make_port):
        budgets = PageBudgetTable({PageRole.MIDDLE: 600, PageRole.FINAL: 600, PageRole.NOTE: 600})
        blocks, heights = make_blocks(290, 290, 290)

        pages = GreedyPaginator(make_port(heights), budgets).paginate(blocks)

        assert [_headers(p) for p in pages] == [["b0", "b1"], ["b2"]]


class TestMeasurementFailures:
    """Only the measurement port's failure propagates."""

    def test_port_exception_becomes_measurement_unavailable(self, budgets, make_blocks, make_port):
        blocks, heights = make_blocks(100, 100, 100)
        port = make_port(heights, fail_on_call=2)

        with pytest.raises(MeasurementUnavailable) as exc_info:
            GreedyPaginator(port, budgets).paginate(blocks)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_invalid_height_is_a_measurement_failure(self, budgets, make_blocks):
        class NanPort:
            def measure(self, content, role):
                return float("nan")

        blocks, _ = make_blocks(100)
        with pytest.raises(MeasurementUnavailable, match="invalid height"):
            GreedyPaginator(NanPort(), budgets).paginate(blocks)

    def test_non_numeric_height_is_a_measurement_failure(self, budgets, make_blocks):
        class BrokenPort:
            def measure(self, content, role):
                return "tall"

        blocks, _ = make_blocks(100)
        with pytest.raises(MeasurementUnavailable, match="non-numeric"):
            GreedyPaginator(BrokenPort(), budgets).paginate(blocks)
