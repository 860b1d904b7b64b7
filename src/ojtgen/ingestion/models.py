"""Canonical data structures shared by the extraction strategies."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


class SourceKind(str, Enum):
    TEXT = "text"
    URL = "url"
    PDF = "pdf"


class ExtractionMethod(str, Enum):
    PLAIN = "plain"             # caller supplied text directly
    HTML = "html"               # markup stripped from a fetched page
    TEXT_LAYER = "text-layer"   # embedded PDF text
    OCR = "ocr"                 # recognized from rendered PDF pages


@dataclass(frozen=True, slots=True)
class RawSource:
    """One ingestion request input, consumed once by the orchestrator."""

    kind: SourceKind
    payload: str | bytes
    title: str | None = None
    filename: str | None = None
    mime_type: str | None = None

    @classmethod
    def from_text(cls, text: str, *, title: str | None = None) -> "RawSource":
        return cls(kind=SourceKind.TEXT, payload=text, title=title)

    @classmethod
    def from_url(cls, url: str, *, title: str | None = None) -> "RawSource":
        return cls(kind=SourceKind.URL, payload=url, title=title)

    @classmethod
    def from_pdf(
        cls,
        data: bytes,
        *,
        filename: str | None = None,
        mime_type: str | None = "application/pdf",
        title: str | None = None,
    ) -> "RawSource":
        return cls(kind=SourceKind.PDF, payload=data, title=title, filename=filename, mime_type=mime_type)


@dataclass(slots=True)
class SourceMetadata:
    """Normalized metadata recovered while extracting a source."""

    title: str | None = None
    description: str | None = None
    image: str | None = None
    site_name: str | None = None
    favicon: str | None = None
    author: str | None = None
    pages: int | None = None
    total_pages: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(slots=True)
class ExtractionResult:
    """Plain text produced by one extraction strategy plus truncation bookkeeping."""

    text: str
    original_length: int
    extracted_length: int
    was_truncated: bool
    method: ExtractionMethod
    metadata: SourceMetadata | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "text": self.text,
            "original_length": self.original_length,
            "extracted_length": self.extracted_length,
            "was_truncated": self.was_truncated,
            "method": self.method.value,
            "metadata": self.metadata.to_dict() if self.metadata is not None else None,
            "warnings": list(self.warnings),
        }


def build_extraction_result(
    text: str,
    *,
    max_chars: int,
    method: ExtractionMethod,
    metadata: SourceMetadata | None = None,
) -> ExtractionResult:
    """Clip *text* to *max_chars* and record whether anything was dropped."""

    if max_chars < 1:
        raise ValueError("max_chars must be >= 1")

    original_length = len(text)
    clipped = text[:max_chars]
    return ExtractionResult(
        text=clipped,
        original_length=original_length,
        extracted_length=len(clipped),
        was_truncated=original_length > max_chars,
        method=method,
        metadata=metadata,
    )
