"""PDF text extraction: embedded text layer first, OCR as the fallback strategy."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from pathlib import PurePath
import re

import pymupdf

from ojtgen.cancellation import CancellationToken
from ojtgen.config import PipelineSettings
from ojtgen.errors import ExtractionFailure, InputValidationError
from ojtgen.ingestion.models import ExtractionMethod, ExtractionResult, SourceMetadata, build_extraction_result
from ojtgen.ingestion.normalization import normalize_whitespace
from ojtgen.ingestion.ocr import (
    DEFAULT_MIN_ALNUM_RATIO,
    DEFAULT_MIN_TEXT_CHARS,
    DEFAULT_RENDER_SCALE,
    OcrEngine,
    OcrUnavailableError,
    is_valid_ocr_text,
    ocr_document,
)
from ojtgen.ingestion.strategies import StrategyOutcome, run_in_order
from ojtgen.progress import ProgressCallback, notify

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
DEFAULT_MAX_FILE_BYTES = 50 * 1024 * 1024
DEFAULT_MAX_PAGES = 100
DEFAULT_MIN_TEXT_LAYER_CHARS = 100
DEFAULT_OCR_MAX_PAGES = 10
DEFAULT_MAX_CHARS = 15000

UNUSABLE_PDF_MESSAGE = "Could not extract text from the PDF: low quality or unsupported format"
OCR_WARNING = "Text was recognized with OCR and may contain errors"

_TITLE_SPLIT_RE = re.compile(r"[._\-]+")


@dataclass(slots=True)
class _PageText:
    text: str
    method: ExtractionMethod
    pages: int


def _normalize_title_from_filename(filename: str) -> str:
    stem = _TITLE_SPLIT_RE.sub(" ", PurePath(filename).stem)
    return normalize_whitespace(stem).title()


def _first_non_empty(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = normalize_whitespace(value)
    return cleaned or None


def extract_text_layer(doc: pymupdf.Document, *, max_pages: int = DEFAULT_MAX_PAGES) -> tuple[str, int]:
    """Join the embedded words of each page; pages are separated by a blank line."""

    pages_to_process = min(doc.page_count, max_pages)
    if doc.page_count > max_pages:
        logger.warning("PDF has %d pages; only the first %d are read", doc.page_count, max_pages)

    page_texts: list[str] = []
    for page_index in range(pages_to_process):
        words = doc[page_index].get_text("words", sort=True)
        page_text = normalize_whitespace(" ".join(word[4] for word in words if word[4]))
        if page_text:
            page_texts.append(page_text)

    return "\n\n".join(page_texts).strip(), pages_to_process


class TextLayerStrategy:
    name = "text-layer"

    def __init__(self, *, max_pages: int, min_chars: int) -> None:
        self._max_pages = max_pages
        self._min_chars = min_chars

    async def attempt(self, payload: pymupdf.Document) -> StrategyOutcome[_PageText]:
        text, pages = await asyncio.to_thread(extract_text_layer, payload, max_pages=self._max_pages)
        if not text:
            return StrategyOutcome.failure(self.name, "no embedded text layer")
        if len(text) < self._min_chars:
            return StrategyOutcome.failure(
                self.name,
                f"text layer too short ({len(text)} < {self._min_chars} characters)",
            )
        return StrategyOutcome.success(self.name, _PageText(text=text, method=ExtractionMethod.TEXT_LAYER, pages=pages))


class OcrStrategy:
    name = "ocr"

    def __init__(
        self,
        engine: OcrEngine,
        *,
        max_pages: int,
        render_scale: float,
        min_chars: int,
        min_ratio: float,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self._engine = engine
        self._max_pages = max_pages
        self._render_scale = render_scale
        self._min_chars = min_chars
        self._min_ratio = min_ratio
        self._on_progress = on_progress
        self._cancel_token = cancel_token

    async def attempt(self, payload: pymupdf.Document) -> StrategyOutcome[_PageText]:
        try:
            result = await ocr_document(
                payload,
                self._engine,
                max_pages=self._max_pages,
                render_scale=self._render_scale,
                on_progress=self._on_progress,
                cancel_token=self._cancel_token,
            )
        except OcrUnavailableError as exc:
            return StrategyOutcome.failure(self.name, f"OCR engine unavailable: {exc}")

        if not is_valid_ocr_text(result.text, min_chars=self._min_chars, min_ratio=self._min_ratio):
            return StrategyOutcome.failure(
                self.name,
                f"OCR output rejected by noise filter ({len(result.text)} characters)",
            )
        return StrategyOutcome.success(self.name, _PageText(text=result.text, method=ExtractionMethod.OCR, pages=result.pages))


class PdfTextExtractor:
    """Validate a PDF upload and extract its text with OCR fallback."""

    def __init__(
        self,
        *,
        ocr_engine: OcrEngine | None = None,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        max_pages: int = DEFAULT_MAX_PAGES,
        min_text_chars: int = DEFAULT_MIN_TEXT_LAYER_CHARS,
        ocr_max_pages: int = DEFAULT_OCR_MAX_PAGES,
        ocr_render_scale: float = DEFAULT_RENDER_SCALE,
        ocr_min_text_chars: int = DEFAULT_MIN_TEXT_CHARS,
        ocr_min_alnum_ratio: float = DEFAULT_MIN_ALNUM_RATIO,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> None:
        if max_file_bytes < 1:
            raise ValueError("max_file_bytes must be >= 1")
        if max_pages < 1 or ocr_max_pages < 1:
            raise ValueError("page limits must be >= 1")

        self._ocr_engine = ocr_engine
        self._max_file_bytes = max_file_bytes
        self._max_pages = max_pages
        self._min_text_chars = min_text_chars
        self._ocr_max_pages = ocr_max_pages
        self._ocr_render_scale = ocr_render_scale
        self._ocr_min_text_chars = ocr_min_text_chars
        self._ocr_min_alnum_ratio = ocr_min_alnum_ratio
        self._max_chars = max_chars

    @classmethod
    def from_settings(cls, settings: PipelineSettings, *, ocr_engine: OcrEngine | None = None) -> "PdfTextExtractor":
        return cls(
            ocr_engine=ocr_engine,
            max_file_bytes=settings.pdf_max_file_bytes,
            max_pages=settings.pdf_max_pages,
            min_text_chars=settings.pdf_min_text_chars,
            ocr_max_pages=settings.ocr_max_pages,
            ocr_render_scale=settings.ocr_render_scale,
            ocr_min_text_chars=settings.ocr_min_text_chars,
            ocr_min_alnum_ratio=settings.ocr_min_alnum_ratio,
            max_chars=settings.max_url_extract_chars,
        )

    def validate(self, data: bytes, *, filename: str | None = None, mime_type: str | None = PDF_MIME_TYPE) -> None:
        """Raise ``InputValidationError`` for non-PDF, empty or oversized uploads."""

        is_pdf_mime = (mime_type or "").split(";", 1)[0].strip().lower() == PDF_MIME_TYPE
        is_pdf_name = bool(filename) and filename.lower().endswith(".pdf")
        if not (is_pdf_mime or is_pdf_name):
            raise InputValidationError("file", "Only PDF files can be uploaded")
        if not data:
            raise InputValidationError("file", "PDF file is empty")
        if len(data) > self._max_file_bytes:
            limit_mb = self._max_file_bytes / (1024 * 1024)
            raise InputValidationError("file", f"File size exceeds {limit_mb:g}MB")

    def _strategies(
        self,
        on_progress: ProgressCallback | None,
        cancel_token: CancellationToken | None,
    ) -> list[TextLayerStrategy | OcrStrategy]:
        strategies: list[TextLayerStrategy | OcrStrategy] = [
            TextLayerStrategy(max_pages=self._max_pages, min_chars=self._min_text_chars)
        ]
        if self._ocr_engine is not None:
            strategies.append(
                OcrStrategy(
                    self._ocr_engine,
                    max_pages=self._ocr_max_pages,
                    render_scale=self._ocr_render_scale,
                    min_chars=self._ocr_min_text_chars,
                    min_ratio=self._ocr_min_alnum_ratio,
                    on_progress=on_progress,
                    cancel_token=cancel_token,
                )
            )
        return strategies

    async def extract(
        self,
        data: bytes,
        *,
        filename: str | None = None,
        mime_type: str | None = PDF_MIME_TYPE,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ExtractionResult:
        self.validate(data, filename=filename, mime_type=mime_type)
        source = filename or "uploaded.pdf"
        if self._ocr_engine is None:
            logger.warning("OCR fallback disabled for %s: no OCR engine configured", source)

        notify(on_progress, "Reading PDF...")
        doc = _open_document(data, source=source)
        try:
            metadata = _read_metadata(doc, filename)
            extracted, _ = await run_in_order(
                self._strategies(on_progress, cancel_token),
                doc,
                source=source,
                failure_message=UNUSABLE_PDF_MESSAGE,
                cancel_token=cancel_token,
            )
            metadata.total_pages = doc.page_count
        finally:
            doc.close()

        metadata.pages = extracted.pages
        result = build_extraction_result(
            extracted.text,
            max_chars=self._max_chars,
            method=extracted.method,
            metadata=metadata,
        )
        if extracted.method is ExtractionMethod.OCR:
            result.warnings.append(OCR_WARNING)
        logger.info(
            "Extracted %d characters from %s via %s (truncated=%s)",
            result.extracted_length,
            source,
            result.method.value,
            result.was_truncated,
        )
        return result


def _open_document(data: bytes, *, source: str) -> pymupdf.Document:
    try:
        doc = pymupdf.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise ExtractionFailure(source, "Invalid PDF file", attempts=[str(exc)]) from exc

    if doc.needs_pass:
        doc.close()
        raise ExtractionFailure(source, "Password-protected PDFs cannot be read")
    return doc


def _read_metadata(doc: pymupdf.Document, filename: str | None) -> SourceMetadata:
    doc_metadata = doc.metadata or {}
    title = _first_non_empty(doc_metadata.get("title"))
    if title is None and filename:
        title = _normalize_title_from_filename(filename) or None
    return SourceMetadata(title=title, author=_first_non_empty(doc_metadata.get("author")))
