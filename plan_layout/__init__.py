"""
Session plan layout engine.

Paginates action point blocks onto fixed-size pages with a middle/final
footer distinction and places the trailing reminder note.
"""

from .budget import PageBudgetTable, PageGeometry
from .common.error_handling import LayoutIssue, MeasurementUnavailable
from .layout import layout_document
from .measurement import MeasurementPort
from .models import (
    CandidatePage,
    ContentBlock,
    DocumentLayout,
    FooterVariant,
    PageDescriptor,
    PageRole,
    TrailingNote,
)
from .note_placement import NotePlacementResolver
from .paginator import GreedyPaginator

__version__ = "0.1.0"

__all__ = [
    "CandidatePage",
    "ContentBlock",
    "DocumentLayout",
    "FooterVariant",
    "GreedyPaginator",
    "LayoutIssue",
    "MeasurementPort",
    "MeasurementUnavailable",
    "NotePlacementResolver",
    "PageBudgetTable",
    "PageDescriptor",
    "PageGeometry",
    "PageRole",
    "TrailingNote",
    "layout_document",
]
