"""Raw-content document used whenever AI generation does not succeed."""

from __future__ import annotations

from html import escape
import re

from ojtgen.generation.models import GeneratedDocument, Section
from ojtgen.generation.sanitize import sanitize_html, sanitize_text

DEFAULT_TITLE = "Untitled"
DEFAULT_TEAM = "Unassigned"
FALLBACK_SECTION_TITLE = "Original content"

_HTML_TAG_RE = re.compile(r"<[a-z][\s\S]*>", re.IGNORECASE)


def _paragraph_html(text: str) -> str:
    paragraphs = [paragraph.strip() for paragraph in text.split("\n\n")]
    body = "".join(
        "<p>{}</p>".format(escape(paragraph).replace("\n", "<br>")) for paragraph in paragraphs if paragraph
    )
    return f'<div class="raw-content">{body}</div>'


def format_raw_content(text: str) -> str:
    """Render source text for display: sanitized markup, or escaped paragraphs for plain text."""

    normalized = (text or "").replace("\r\n", "\n")
    if _HTML_TAG_RE.search(normalized):
        sanitized = sanitize_html(normalized)
        if sanitize_text(sanitized):
            return sanitized
    return _paragraph_html(normalized)


def build_fallback_document(
    text: str,
    title: str | None,
    error: str,
    *,
    user_initiated: bool = False,
    step: int = 1,
    total_steps: int = 1,
    ai_engine: str | None = None,
    ai_model: str | None = None,
) -> GeneratedDocument:
    return GeneratedDocument(
        title=sanitize_text(title or "") or DEFAULT_TITLE,
        team=DEFAULT_TEAM,
        sections=[Section(title=FALLBACK_SECTION_TITLE, content=format_raw_content(text))],
        quiz=[],
        step=step,
        total_steps=total_steps,
        ai_processed=False,
        ai_engine=ai_engine,
        ai_model=ai_model,
        ai_error=error,
        user_initiated=user_initiated,
    )
