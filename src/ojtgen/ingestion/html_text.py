"""Plain-text and metadata extraction from fetched HTML pages."""

from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import Tag

from ojtgen.ingestion.models import ExtractionMethod, ExtractionResult, SourceMetadata, build_extraction_result
from ojtgen.ingestion.normalization import normalize_whitespace

DEFAULT_MAX_CHARS = 15000

_NON_CONTENT_TAGS = ("script", "style", "noscript", "template")
_BOILERPLATE_SELECTORS = (
    "nav",
    "footer",
    "header",
    "aside",
    "iframe",
    '[role="navigation"]',
    '[role="banner"]',
)
_CONTENT_ROOT_SELECTORS = ("article", "main", '[role="main"]', "body")

_TITLE_SELECTORS = ('meta[property="og:title"]', 'meta[name="twitter:title"]', "title")
_DESCRIPTION_SELECTORS = (
    'meta[property="og:description"]',
    'meta[name="twitter:description"]',
    'meta[name="description"]',
)
_IMAGE_SELECTORS = ('meta[property="og:image"]', 'meta[name="twitter:image"]')
_SITE_NAME_SELECTORS = ('meta[property="og:site_name"]',)
_FAVICON_SELECTORS = ('link[rel~="icon"]', 'link[rel="shortcut icon"]')


def _parse(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def _first_value(soup: BeautifulSoup, selectors: tuple[str, ...]) -> str | None:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        raw = element.get("content") if element.name == "meta" else element.get_text(" ")
        if isinstance(raw, list):
            raw = " ".join(raw)
        value = normalize_whitespace(raw or "")
        if value:
            return value
    return None


def _favicon(soup: BeautifulSoup) -> str | None:
    for selector in _FAVICON_SELECTORS:
        element = soup.select_one(selector)
        if element is not None and element.get("href"):
            return str(element["href"]).strip() or None
    return None


def extract_metadata(html: str) -> SourceMetadata:
    """Read title, description, image and site name, preferring Open Graph tags."""

    soup = _parse(html)
    return SourceMetadata(
        title=_first_value(soup, _TITLE_SELECTORS),
        description=_first_value(soup, _DESCRIPTION_SELECTORS),
        image=_first_value(soup, _IMAGE_SELECTORS),
        site_name=_first_value(soup, _SITE_NAME_SELECTORS),
        favicon=_favicon(soup),
    )


def _content_root(soup: BeautifulSoup) -> Tag | BeautifulSoup:
    for selector in _CONTENT_ROOT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None and normalize_whitespace(element.get_text(" ")):
            return element
    return soup


def html_to_text(html: str) -> str:
    """Strip markup from *html* and return whitespace-collapsed text.

    Script, style and noscript blocks are removed before any text is read,
    followed by navigation chrome.  Entities are decoded by the parser.
    """

    soup = _parse(html)
    for element in soup.find_all(list(_NON_CONTENT_TAGS)):
        element.decompose()
    for selector in _BOILERPLATE_SELECTORS:
        for element in soup.select(selector):
            element.decompose()

    return normalize_whitespace(_content_root(soup).get_text(" "))


class UrlTextExtractor:
    """Turn fetched HTML into an ``ExtractionResult`` clipped to a character budget."""

    def __init__(self, *, max_chars: int = DEFAULT_MAX_CHARS) -> None:
        if max_chars < 1:
            raise ValueError("max_chars must be >= 1")
        self._max_chars = max_chars

    @property
    def max_chars(self) -> int:
        return self._max_chars

    def extract(self, html: str, *, max_chars: int | None = None) -> ExtractionResult:
        budget = self._max_chars if max_chars is None else max_chars
        return build_extraction_result(
            html_to_text(html),
            max_chars=budget,
            method=ExtractionMethod.HTML,
            metadata=extract_metadata(html),
        )
