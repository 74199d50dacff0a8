"""
Shared fixtures for layout and PDF service tests.

Provides a deterministic measurement port so pagination can be tested
without a browser: each block's height is looked up by its header, the
note has a fixed height, and consecutive items are separated by a fixed
spacing.

Geometry used throughout mirrors a 1000-unit page:
- middle budget 780 (header 100 + middle footer 120)
- final budget 860 (final footer 40)
- note budget 860
"""

import os

import pytest

from plan_layout.budget import PageBudgetTable, PageGeometry
from plan_layout.models import ContentBlock, PageRole, TrailingNote

# Keep configuration deterministic before any settings are loaded
os.environ.setdefault("DELIVERY_WEBHOOK_URL", "")
os.environ.setdefault("LOG_LEVEL", "INFO")


class FakeMeasurementPort:
    """
    Deterministic measurement port.

    Height of a candidate = sum of item heights + spacing between items.
    """

    def __init__(self, heights=None, note_height=100.0, spacing=20.0, fail_on_call=None):
        self.heights = dict(heights or {})
        self.note_height = note_height
        self.spacing = spacing
        self.fail_on_call = fail_on_call
        self.calls = []

    def measure(self, content, role):
        self.calls.append((tuple(b.header for b in content.blocks), content.note is not None, role))
        if self.fail_on_call is not None and len(self.calls) >= self.fail_on_call:
            raise RuntimeError("render surface crashed")

        items = [self.heights[block.header] for block in content.blocks]
        if content.note is not None:
            items.append(self.note_height)
        if not items:
            return 0.0
        return float(sum(items) + self.spacing * (len(items) - 1))

    # Lets the fake stand in for a surface factory's context manager
    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False


@pytest.fixture
def geometry():
    """1000-unit page: middle budget 780, final 860, note 860."""
    return PageGeometry(
        page_width=800,
        page_height=1000,
        header_height=100,
        footer_heights={PageRole.MIDDLE: 120, PageRole.FINAL: 40, PageRole.NOTE: 40},
        inter_block_spacing=20,
        first_block_top_margin=0,
        note_safety_margin=20,
    )


@pytest.fixture
def budgets(geometry):
    return PageBudgetTable.from_geometry(geometry)


@pytest.fixture
def make_blocks():
    """Build blocks named b0, b1, ... and a matching height table."""

    def _make(*heights):
        blocks = tuple(ContentBlock(header=f"b{i}", body=f"<p>body {i}</p>") for i in range(len(heights)))
        table = {f"b{i}": float(h) for i, h in enumerate(heights)}
        return blocks, table

    return _make


@pytest.fixture
def make_port():
    def _make(heights=None, note_height=100.0, spacing=20.0, fail_on_call=None):
        return FakeMeasurementPort(heights, note_height=note_height, spacing=spacing, fail_on_call=fail_on_call)

    return _make


@pytest.fixture
def note():
    return TrailingNote(body="<p>Reminder: keep sessions short.</p>")
