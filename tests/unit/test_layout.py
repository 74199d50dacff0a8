"""
Unit tests for layout_document, the paginate-then-place-note entry point.
"""

import logging

import pytest

from plan_layout import layout_document
from plan_layout.common.error_handling import EMPTY_INPUT, OVERSIZED_BLOCK, MeasurementUnavailable
from plan_layout.models import DocumentLayout, FooterVariant, PageRole


class TestLayoutDocument:

    def test_blocks_and_inline_note(self, geometry, make_blocks, make_port, note):
        blocks, heights = make_blocks(50)
        layout = layout_document(blocks, note, make_port(heights), geometry)

        assert isinstance(layout, DocumentLayout)
        assert layout.page_count == 1
        assert layout.pages[0].includes_note_inline
        assert not layout.has_note_page
        assert layout.issues == ()

    def test_note_page_appended(self, geometry, make_blocks, make_port, note):
        blocks, heights = make_blocks(850)
        layout = layout_document(blocks, note, make_port(heights), geometry)

        assert layout.page_count == 2
        assert layout.has_note_page
        assert layout.pages[0].footer_variant is FooterVariant.FINAL
        assert layout.pages[1].role is PageRole.NOTE

    def test_empty_document_with_note(self, geometry, make_port, note):
        layout = layout_document([], note, make_port(), geometry)

        assert layout.page_count == 1
        assert layout.pages[0].is_note_page
        assert [issue.kind for issue in layout.issues] == [EMPTY_INPUT]

    def test_empty_document_without_note(self, geometry, make_port):
        layout = layout_document([], None, make_port(), geometry)

        assert layout.page_count == 0
        assert [issue.kind for issue in layout.issues] == [EMPTY_INPUT]

    def test_accepts_any_iterable(self, geometry, make_blocks, make_port):
        blocks, heights = make_blocks(300, 300, 300)
        layout = layout_document(iter(blocks), None, make_port(heights), geometry)

        assert layout.page_count == 2

    def test_oversized_block_is_an_issue_not_an_error(self, geometry, make_blocks, make_port):
        blocks, heights = make_blocks(2000)
        layout = layout_document(blocks, None, make_port(heights), geometry)

        assert layout.page_count == 1
        assert [issue.kind for issue in layout.issues] == [OVERSIZED_BLOCK]

    def test_oversized_content_warning(self, geometry, make_blocks, make_port, caplog):
        blocks, heights = make_blocks(2000)

        with caplog.at_level(logging.WARNING, logger="plan_layout.layout"):
            layout_document(blocks, None, make_port(heights), geometry, request_id="abcdef123456")

        assert "[req:abcdef12] [layout] Layout has content taller than its page" in caplog.text

    def test_no_oversized_warning_when_everything_fits(self, geometry, make_blocks, make_port, caplog):
        blocks, heights = make_blocks(100, 100)

        with caplog.at_level(logging.WARNING, logger="plan_layout.layout"):
            layout_document(blocks, None, make_port(heights), geometry)

        assert "taller than its page" not in caplog.text

    def test_safety_margin_comes_from_geometry(self, make_blocks, make_port, note):
        from plan_layout.budget import PageGeometry

        tight = PageGeometry(
            page_width=800,
            page_height=1000,
            header_height=100,
            footer_heights={PageRole.MIDDLE: 120, PageRole.FINAL: 40, PageRole.NOTE: 40},
            note_safety_margin=100,
        )
        blocks, heights = make_blocks(700)
        # 700 + 20 + 100 = 820; +100 margin exceeds 860
        layout = layout_document(blocks, note, make_port(heights), tight)

        assert layout.has_note_page

    def test_measurement_failure_produces_no_layout(self, geometry, make_blocks, make_port, note):
        blocks, heights = make_blocks(100, 100)

        with pytest.raises(MeasurementUnavailable):
            layout_document(blocks, note, make_port(heights, fail_on_call=1), geometry)

    def test_to_dict(self, geometry, make_blocks, make_port, note):
        blocks, heights = make_blocks(300, 300, 300)
        data = layout_document(blocks, note, make_port(heights), geometry).to_dict()

        assert data["page_count"] == 2
        assert data["pages"][0]["role"] == "middle"
        assert data["pages"][1]["footer_variant"] == "final"
        assert data["pages"][1]["includes_note_inline"] is True
        assert data["pages"][1]["blocks"] == [{"header": "b2", "body": "<p>body 2</p>"}]
        assert data["issues"] == []
