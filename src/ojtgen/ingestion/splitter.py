"""Reading-time based splitting of source text into study steps."""

from __future__ import annotations

import math
import re

from ojtgen.config import DEFAULT_CHARS_PER_MINUTE, DEFAULT_MINUTES_PER_STEP

_PARAGRAPH_BREAK_RE = re.compile(r"\n\n+")
PARAGRAPH_SEPARATOR = "\n\n"


def split_paragraphs(text: str) -> list[str]:
    """Return the non-blank blank-line-delimited paragraphs of *text*, untrimmed."""

    return [paragraph for paragraph in _PARAGRAPH_BREAK_RE.split(text) if paragraph.strip()]


def split_content_for_steps(text: str, num_steps: int) -> list[str]:
    """Divide *text* into *num_steps* contiguous, paragraph-aligned segments.

    With fewer paragraphs than steps the result is padded with empty strings
    so callers always get *num_steps* entries.  Otherwise every chunk takes
    ``ceil(paragraphs / num_steps)`` paragraphs, any remainder is merged into
    the last chunk, and blank chunks are dropped (so the result can be shorter
    than *num_steps*).  Paragraph order is never changed.
    """

    if num_steps <= 1:
        return [text]

    paragraphs = split_paragraphs(text)
    if len(paragraphs) <= num_steps:
        return paragraphs + [""] * (num_steps - len(paragraphs))

    chunk_size = math.ceil(len(paragraphs) / num_steps)
    segments = [
        PARAGRAPH_SEPARATOR.join(paragraphs[index * chunk_size:(index + 1) * chunk_size])
        for index in range(num_steps)
    ]

    leftover = paragraphs[num_steps * chunk_size:]
    if leftover:
        tail = PARAGRAPH_SEPARATOR.join(leftover)
        segments[-1] = f"{segments[-1]}{PARAGRAPH_SEPARATOR}{tail}" if segments[-1] else tail

    return [segment for segment in segments if segment.strip()]


def estimate_reading_time(text: str, *, chars_per_minute: int = DEFAULT_CHARS_PER_MINUTE) -> int:
    """Minutes needed to read *text*, rounded up; 0 for empty input."""

    if chars_per_minute < 1:
        raise ValueError("chars_per_minute must be >= 1")
    stripped = text.strip() if text else ""
    if not stripped:
        return 0
    return math.ceil(len(stripped) / chars_per_minute)


def calculate_required_steps(
    text: str,
    *,
    chars_per_minute: int = DEFAULT_CHARS_PER_MINUTE,
    minutes_per_step: int = DEFAULT_MINUTES_PER_STEP,
) -> int:
    if minutes_per_step < 1:
        raise ValueError("minutes_per_step must be >= 1")
    minutes = estimate_reading_time(text, chars_per_minute=chars_per_minute)
    return max(1, math.ceil(minutes / minutes_per_step))
