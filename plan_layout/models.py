"""
Block model and page descriptors for session plan pagination.

Immutable dataclasses: the block list is snapshotted once per generation
request and every page descriptor is frozen after the paginator creates it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .common.error_handling import LayoutIssue
from .rich_text import is_blank, sanitize_rich_text

# Sanitized HTML restricted to the rich text vocabulary (see rich_text.py)
RichText = str


class PageRole(str, Enum):
    """Role of a page; decides its footer height and therefore its budget."""
    MIDDLE = "middle"
    FINAL = "final"
    NOTE = "note"


class FooterVariant(str, Enum):
    """Footer graphic drawn by the renderer."""
    MIDDLE = "middle"
    FINAL = "final"


@dataclass(frozen=True)
class ContentBlock:
    """
    One action point: an emphasized header over a rich text body.

    Blocks are atomic and are identified only by their position in the
    input sequence.
    """
    header: RichText
    body: RichText

    @classmethod
    def from_raw(cls, header: Optional[str], body: Optional[str]) -> "ContentBlock":
        """Build a block from unsanitized editor HTML."""
        return cls(header=sanitize_rich_text(header or ""), body=sanitize_rich_text(body or ""))

    def to_dict(self) -> Dict[str, str]:
        return {"header": self.header, "body": self.body}


@dataclass(frozen=True)
class TrailingNote:
    """The reminder printed once after all blocks."""
    body: RichText

    @classmethod
    def from_raw(cls, body: Optional[str]) -> Optional["TrailingNote"]:
        """Build a note from editor HTML; blank input means no note."""
        clean = sanitize_rich_text(body or "")
        if is_blank(clean):
            return None
        return cls(body=clean)


@dataclass(frozen=True)
class CandidatePage:
    """Content handed to the measurement port: some blocks and maybe the note."""
    blocks: Tuple[ContentBlock, ...] = ()
    note: Optional[TrailingNote] = None


@dataclass(frozen=True)
class PageDescriptor:
    """
    Layout decision for one output page.

    Note pages carry no blocks and have role NOTE; the note itself is
    supplied to the renderer alongside the page list.
    """
    index: int
    blocks: Tuple[ContentBlock, ...]
    footer_variant: FooterVariant
    includes_note_inline: bool = False
    role: PageRole = PageRole.MIDDLE
    measured_height: float = 0.0

    @property
    def is_note_page(self) -> bool:
        return self.role is PageRole.NOTE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "role": self.role.value,
            "footer_variant": self.footer_variant.value,
            "includes_note_inline": self.includes_note_inline,
            "measured_height": self.measured_height,
            "blocks": [block.to_dict() for block in self.blocks],
        }


@dataclass(frozen=True)
class DocumentLayout:
    """Final page list for a document plus the non-fatal issues met on the way."""
    pages: Tuple[PageDescriptor, ...]
    issues: Tuple[LayoutIssue, ...] = field(default_factory=tuple)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def has_note_page(self) -> bool:
        return any(page.is_note_page for page in self.pages)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_count": self.page_count,
            "pages": [page.to_dict() for page in self.pages],
            "issues": [issue.to_dict() for issue in self.issues],
        }


def blocks_from_raw(items: Iterable[Mapping[str, Any]]) -> Tuple[ContentBlock, ...]:
    """Snapshot raw {header, body} mappings into sanitized blocks."""
    return tuple(ContentBlock.from_raw(item.get("header"), item.get("body")) for item in items)
