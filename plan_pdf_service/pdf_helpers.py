"""
Helper functions for rendering session plan pages to HTML.

The same markup is used twice: the measurement surface lays out candidate
page content with it, and the page renderer builds the final document from
it. Keeping one source for both is what makes measured heights match the
printed pages.
"""

import html
import re
from typing import Iterable, Optional

from plan_layout.budget import PageGeometry
from plan_layout.models import CandidatePage, ContentBlock, PageDescriptor, PageRole, TrailingNote

BRAND_COLOR = "#4f6749"
PAGE_BACKGROUND = "#ecebdd"
FOOTER_TAGLINE = "A happier life with your dog"
FOOTER_WEBSITE = "www.raisingmyrescue.co.uk"


def sanitize_for_path(text: str) -> str:
    """
    Sanitize text for use in filesystem paths and download filenames.

    Removes special characters (except word chars, spaces, hyphens)
    and replaces spaces with underscores.

    Example:
        >>> sanitize_for_path("Session 2 - Biscuit (Follow up)")
        "Session_2_-_Biscuit__Follow_up_"
    """
    cleaned = re.sub(r'[^\w\s-]', '_', text)
    return cleaned.replace(" ", "_")


def build_page_stylesheet(geometry: PageGeometry, font_family: str = "Helvetica") -> str:
    """
    CSS shared by the measurement shell and the rendered document.

    Args:
        geometry: Page geometry (CSS px)
        font_family: Body font family

    Returns:
        CSS string
    """
    return f"""
        @page {{
            size: A4;
            margin: 0;  /* full bleed */
        }}

        * {{
            margin: 0;
            padding: 0;
            box-sizing: border-box;
        }}

        body {{
            font-family: "{font_family}", sans-serif;
            font-size: 11pt;
            line-height: 1.5;
            color: #222;
            background: {PAGE_BACKGROUND};
        }}

        .pdf-page {{
            width: {geometry.page_width}px;
            height: {geometry.page_height}px;
            overflow: hidden;
            display: flex;
            flex-direction: column;
            background: {PAGE_BACKGROUND};
            page-break-after: always;
            break-after: page;
        }}

        .pdf-page:last-child {{
            page-break-after: auto;
            break-after: auto;
        }}

        .page-header {{
            height: {geometry.header_height}px;
            flex: none;
            background-color: {BRAND_COLOR};
            color: #fff;
            display: flex;
            align-items: center;
            justify-content: space-between;
            padding: 0 40px;
            font-size: 18pt;
            letter-spacing: 0.02em;
        }}

        /* Content region; the measuring container uses the same box */
        .page-content,
        .measure-root {{
            width: {geometry.page_width}px;
            padding: {geometry.first_block_top_margin}px 40px 0 40px;
            display: flex;
            flex-direction: column;
        }}

        .page-content {{
            flex: 1;
            overflow: hidden;
        }}

        .action-point-box {{
            break-inside: avoid;
            page-break-inside: avoid;
            border: 3px solid {BRAND_COLOR};
            border-radius: 6px;
            padding: 16px;
        }}

        .action-point-box + .action-point-box,
        .action-point-box + .reminder-note {{
            margin-top: {geometry.inter_block_spacing}px;
        }}

        .action-point-header {{
            font-style: italic;
            font-size: 20pt;
            font-weight: 600;
            margin-bottom: 8px;
        }}

        .reminder-note {{
            font-size: 10pt;
            font-style: italic;
            border-top: 2px solid {BRAND_COLOR};
            padding-top: 12px;
        }}

        /* Inline note sits at the bottom of the content region, above the footer */
        .page-content .reminder-note.inline {{
            margin-top: auto;
        }}

        .page-footer {{
            flex: none;
            border-top: 2px solid {BRAND_COLOR};
            display: flex;
            justify-content: space-between;
            align-items: center;
            padding: 0 40px;
            font-family: Georgia, serif;
        }}

        .page-footer.footer-final {{
            font-size: 10pt;
        }}

        p {{ margin: 0.4em 0; }}
        p:first-child {{ margin-top: 0; }}
        p:last-child {{ margin-bottom: 0; }}
        ul, ol {{ padding-left: 1.5em; margin: 0.4em 0; }}
        li {{ margin: 0.2em 0; }}
        a {{ color: {BRAND_COLOR}; text-decoration: none; }}
        strong {{ font-weight: 700; }}
        em {{ font-style: italic; }}
        u {{ text-decoration: underline; }}
    """


def render_block_html(block: ContentBlock) -> str:
    """One action point box. Block markup is already sanitized."""
    return (
        '<div class="action-point-box">'
        f'<div class="action-point-header">{block.header}</div>'
        f'<div class="action-point-body">{block.body}</div>'
        '</div>'
    )


def render_note_html(note: TrailingNote, inline: bool = False) -> str:
    css_class = "reminder-note inline" if inline else "reminder-note"
    return f'<div class="{css_class}">{note.body}</div>'


def render_content_html(
    blocks: Iterable[ContentBlock],
    note: Optional[TrailingNote] = None,
    inline_note: bool = False,
) -> str:
    """Inner markup of a page's content region."""
    parts = [render_block_html(block) for block in blocks]
    if note is not None:
        parts.append(render_note_html(note, inline=inline_note))
    return "".join(parts)


def render_candidate_html(candidate: CandidatePage) -> str:
    """Markup measured by the measurement surface for a candidate page."""
    return render_content_html(candidate.blocks, candidate.note, inline_note=bool(candidate.blocks))


def build_measurement_shell(geometry: PageGeometry) -> str:
    """Off-screen page with an unconstrained-height content container."""
    return f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <style>{build_page_stylesheet(geometry)}</style>
</head>
<body>
    <div class="measure-root" id="measure-root"></div>
</body>
</html>
    """


def _render_footer(page: PageDescriptor, geometry: PageGeometry) -> str:
    height = geometry.footer_height(page.role)
    variant = page.footer_variant.value
    if page.role is PageRole.MIDDLE:
        inner = (
            f'<p class="tagline">{FOOTER_TAGLINE}</p>'
            f'<a href="https://{FOOTER_WEBSITE}">{FOOTER_WEBSITE}</a>'
        )
    else:
        inner = f'<a href="https://{FOOTER_WEBSITE}">{FOOTER_WEBSITE}</a>'
    return f'<div class="page-footer footer-{variant}" style="height: {height}px;">{inner}</div>'


def render_page_html(
    page: PageDescriptor,
    geometry: PageGeometry,
    note: Optional[TrailingNote] = None,
    header_text: str = "",
    page_count: Optional[int] = None,
) -> str:
    """
    Render one page descriptor.

    Args:
        page: Layout decision for the page
        geometry: Page geometry
        note: Trailing note; drawn on note pages and on the page marked
            includes_note_inline
        header_text: Plain text shown in the header band
        page_count: Total pages, for the "n / total" marker

    Returns:
        HTML for a single .pdf-page section
    """
    if page.is_note_page:
        content = render_note_html(note) if note is not None else ""
    else:
        inline_note = note if page.includes_note_inline else None
        content = render_content_html(page.blocks, inline_note, inline_note=True)

    marker = f"{page.index + 1}" if page_count is None else f"{page.index + 1} / {page_count}"
    return (
        f'<section class="pdf-page" data-role="{page.role.value}" data-index="{page.index}">'
        f'<div class="page-header"><span>{html.escape(header_text)}</span>'
        f'<span class="page-marker">{marker}</span></div>'
        f'<div class="page-content">{content}</div>'
        f'{_render_footer(page, geometry)}'
        '</section>'
    )


def build_document_html(pages_html: Iterable[str], geometry: PageGeometry, title: str = "Session Plan") -> str:
    """Wrap rendered pages into a complete HTML document."""
    return f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{html.escape(title)}</title>
    <style>{build_page_stylesheet(geometry)}</style>
</head>
<body>
    {''.join(pages_html)}
</body>
</html>
    """
