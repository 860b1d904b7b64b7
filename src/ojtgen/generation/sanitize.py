"""Allow-list HTML sanitizing for section content produced by the model."""

from __future__ import annotations

from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from ojtgen.ingestion.normalization import normalize_whitespace

ALLOWED_TAGS = frozenset(
    {
        "p", "br", "strong", "em", "u", "ul", "ol", "li",
        "h1", "h2", "h3", "h4", "blockquote", "pre", "code",
        "img", "a", "div",
    }
)
ALLOWED_ATTRIBUTES = {
    "a": frozenset({"href", "class"}),
    "img": frozenset({"src", "alt", "class"}),
}
DEFAULT_ALLOWED_ATTRIBUTES = frozenset({"class"})

# dropped together with everything inside them
_DROP_WITH_CONTENT = frozenset(
    {"script", "style", "iframe", "object", "embed", "noscript", "template", "svg", "math", "form", "head", "title"}
)
_URL_ATTRIBUTES = frozenset({"href", "src"})
_SAFE_URL_SCHEMES = frozenset({"", "http", "https", "mailto"})


def _parse_fragment(html: str) -> BeautifulSoup:
    # html.parser keeps fragments as-is; lxml would wrap them in html/body/p.
    return BeautifulSoup(html, "html.parser")


def _is_safe_url(value: str) -> bool:
    cleaned = "".join(value.split()).lower()
    try:
        scheme = urlsplit(cleaned).scheme
    except ValueError:
        return False
    return scheme in _SAFE_URL_SCHEMES


def sanitize_html(html: str) -> str:
    """Keep only allow-listed tags and attributes; unknown tags are unwrapped."""

    if not html:
        return ""

    soup = _parse_fragment(html)
    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        if tag.name in _DROP_WITH_CONTENT:
            tag.decompose()
            continue
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue

        allowed = ALLOWED_ATTRIBUTES.get(tag.name, DEFAULT_ALLOWED_ATTRIBUTES)
        for attribute in list(tag.attrs):
            value = tag.attrs[attribute]
            if attribute not in allowed:
                del tag.attrs[attribute]
            elif attribute in _URL_ATTRIBUTES and not _is_safe_url(str(value)):
                del tag.attrs[attribute]

    return str(soup).strip()


def sanitize_text(text: str) -> str:
    """Strip every tag and collapse whitespace; used for titles and team names."""

    if not text:
        return ""
    soup = _parse_fragment(text)
    for tag in soup.find_all(list(_DROP_WITH_CONTENT)):
        tag.decompose()
    return normalize_whitespace(soup.get_text(" "))
