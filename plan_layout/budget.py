"""
Page geometry and the page budget table.

The budget of a page is the content height left once the header and the
role's footer are reserved:

    usable_content_height(role) = page_height - header_height - footer_heights[role]

In the session plan template the final-page footer is shorter than the
middle one, so the final page has the larger budget. Nothing below relies on
that ordering; it is only a property of the default configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .common.config import LayoutSettings, get_settings
from .models import PageRole


@dataclass(frozen=True)
class PageGeometry:
    """Pure constants of the target page template, in CSS pixels."""

    page_width: float
    page_height: float
    header_height: float
    footer_heights: Mapping[PageRole, float]
    inter_block_spacing: float = 0.0
    first_block_top_margin: float = 0.0
    note_safety_margin: float = 0.0

    def __post_init__(self):
        missing = [role.value for role in PageRole if role not in self.footer_heights]
        if missing:
            raise ValueError(f"Missing footer height for roles: {', '.join(missing)}")

        lengths = {
            "page_width": self.page_width,
            "page_height": self.page_height,
            "header_height": self.header_height,
            "inter_block_spacing": self.inter_block_spacing,
            "first_block_top_margin": self.first_block_top_margin,
            "note_safety_margin": self.note_safety_margin,
        }
        lengths.update({f"footer_heights[{role.value}]": h for role, h in self.footer_heights.items()})
        negative = [name for name, value in lengths.items() if value < 0]
        if negative:
            raise ValueError(f"Geometry lengths must be non-negative: {', '.join(negative)}")

        for role in PageRole:
            if self.usable_content_height(role) <= 0:
                raise ValueError(f"Page has no room for content on {role.value} pages")

        # freeze the caller's mapping
        object.__setattr__(self, "footer_heights", MappingProxyType(dict(self.footer_heights)))

    def usable_content_height(self, role: PageRole) -> float:
        return self.page_height - self.header_height - self.footer_heights[role]

    def footer_height(self, role: PageRole) -> float:
        return self.footer_heights[role]

    @classmethod
    def from_settings(cls, settings: Optional[LayoutSettings] = None) -> "PageGeometry":
        """Build geometry from environment configuration."""
        settings = settings or get_settings()
        return cls(
            page_width=settings.page_width_px,
            page_height=settings.page_height_px,
            header_height=settings.header_height_px,
            footer_heights={
                PageRole.MIDDLE: settings.footer_height_middle_px,
                PageRole.FINAL: settings.footer_height_final_px,
                PageRole.NOTE: settings.footer_height_note_px,
            },
            inter_block_spacing=settings.inter_block_spacing_px,
            first_block_top_margin=settings.first_block_top_margin_px,
            note_safety_margin=settings.note_safety_margin_px,
        )


@dataclass(frozen=True)
class PageBudgetTable:
    """Role -> usable content height. Pure lookup."""

    budgets: Mapping[PageRole, float] = field(default_factory=dict)

    def __post_init__(self):
        missing = [role.value for role in PageRole if role not in self.budgets]
        if missing:
            raise ValueError(f"Missing budget for roles: {', '.join(missing)}")
        object.__setattr__(self, "budgets", MappingProxyType(dict(self.budgets)))

    def budget_for(self, role: PageRole) -> float:
        return self.budgets[role]

    @classmethod
    def from_geometry(cls, geometry: PageGeometry) -> "PageBudgetTable":
        return cls({role: geometry.usable_content_height(role) for role in PageRole})
