"""Rich-text sanitization for ticket descriptions and comments."""

import html

import nh3

ALLOWED_TAGS = {"p", "br", "strong", "em", "u", "s", "ul", "ol", "li", "a", "blockquote", "h1", "h2", "h3", "code", "pre"}
ALLOWED_ATTRIBUTES = {"a": {"href", "target"}}


def sanitize_html(markup: str) -> str:
    """Sanitize editor HTML to prevent XSS."""
    return nh3.clean(markup, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES)


def html_to_text(markup: str) -> str:
    """Visible text of editor HTML, used when feeding tickets to the model."""
    return html.unescape(nh3.clean(markup, tags=set())).strip()


def is_blank_html(markup: str) -> bool:
    """True when markup carries no visible text (e.g. an empty editor's `<p></p>`)."""
    return not html_to_text(markup)
