"""Text normalization helpers used by every extraction strategy."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")
_INLINE_WHITESPACE_RE = re.compile(r"[^\S\n]+")
_BLANK_LINE_RUN_RE = re.compile(r"\n\s*\n(?:\s*\n)+")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_text(text: str) -> str:
    """Produce stable text for comparisons such as duplicate detection."""

    normalized = unicodedata.normalize("NFKC", text)
    return normalize_whitespace(normalized).casefold()


def collapse_blank_lines(text: str) -> str:
    """Squeeze runs of three or more line breaks down to one blank line."""

    return _BLANK_LINE_RUN_RE.sub("\n\n", text)


def normalize_paragraphs(text: str) -> str:
    """Keep blank-line paragraph breaks while tidying whitespace inside lines."""

    unified = text.replace("\r\n", "\n").replace("\r", "\n")
    paragraphs = []
    for block in _PARAGRAPH_SPLIT_RE.split(unified):
        lines = [_INLINE_WHITESPACE_RE.sub(" ", line).strip() for line in block.split("\n")]
        cleaned = "\n".join(line for line in lines if line)
        if cleaned:
            paragraphs.append(cleaned)
    return "\n\n".join(paragraphs)
