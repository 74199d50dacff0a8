"""
Rich text sanitizer for session plan content.

Block headers, block bodies and the trailing note arrive as HTML from the
rich text editor. Only a small tag vocabulary is allowed through so that the
measurement surface and the page renderer see exactly the same markup:

- Kept: p, br, strong, b, em, i, u, h1-h6, ul, ol, li, a
- Removed with their content: script, style (and other non-content elements)
- Everything else is unwrapped (text kept, tag dropped)
- Attributes are dropped, except href on links with an http/https/mailto scheme

Usage:
    from plan_layout.rich_text import sanitize_rich_text

    clean = sanitize_rich_text('<p onclick="x()">Walk <script>bad()</script>daily</p>')
    # Returns: '<p>Walk daily</p>'
"""

from bs4 import BeautifulSoup, Comment

ALLOWED_TAGS = frozenset({
    "p", "br", "strong", "b", "em", "i", "u",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "a",
})

# Dropped together with everything inside them
STRIPPED_TAGS = frozenset({
    "script", "style", "iframe", "object", "embed", "noscript", "template", "head", "title",
})

ALLOWED_LINK_SCHEMES = ("http://", "https://", "mailto:")


def _safe_href(href) -> str:
    if not href:
        return ""
    href = str(href).strip()
    if href.lower().startswith(ALLOWED_LINK_SCHEMES):
        return href
    return ""


def sanitize_rich_text(html: str) -> str:
    """
    Restrict HTML to the allowed rich text vocabulary.

    Args:
        html: Raw HTML from the editor (may be None or empty)

    Returns:
        Sanitized HTML string ("" for empty input)
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for tag in soup.find_all(list(STRIPPED_TAGS)):
        # nested stripped tags go with their parent
        if not tag.decomposed:
            tag.decompose()

    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue

        href = _safe_href(tag.get("href")) if tag.name == "a" else ""
        tag.attrs = {}
        if href:
            tag.attrs["href"] = href

    return str(soup).strip()


def is_blank(html: str) -> bool:
    """True if the markup carries no visible text."""
    if not html:
        return True
    return not BeautifulSoup(html, "html.parser").get_text().strip()
