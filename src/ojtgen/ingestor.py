"""Orchestrator: extract a source, split it into steps and generate documents."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from urllib.parse import urlsplit

import httpx

from ojtgen.config import PipelineSettings
from ojtgen.cancellation import CancellationToken
from ojtgen.errors import ExtractionFailure, InputValidationError
from ojtgen.generation.fallback import DEFAULT_TITLE
from ojtgen.generation.generator import AiContentGenerator
from ojtgen.generation.models import GeneratedDocument, SourceType
from ojtgen.ingestion.html_text import UrlTextExtractor
from ojtgen.ingestion.models import (
    ExtractionMethod,
    ExtractionResult,
    RawSource,
    SourceKind,
    SourceMetadata,
    build_extraction_result,
)
from ojtgen.ingestion.normalization import normalize_paragraphs
from ojtgen.ingestion.ocr import OcrEngine, TesseractOcrEngine
from ojtgen.ingestion.pdf_extractor import PdfTextExtractor
from ojtgen.ingestion.proxy_chain import ProxyChain
from ojtgen.ingestion.splitter import calculate_required_steps, estimate_reading_time, split_content_for_steps
from ojtgen.ingestion.url_guard import validate_public_url
from ojtgen.progress import ProgressCallback, notify, prefixed
from ojtgen.quiz.models import DocumentValidationReport, QuizValidationReport
from ojtgen.quiz.regenerator import QuizRegenerator
from ojtgen.quiz.validator import validate_document, validate_quiz

logger = logging.getLogger(__name__)

_SOURCE_TYPES = {
    SourceKind.TEXT: SourceType.MANUAL,
    SourceKind.URL: SourceType.URL,
    SourceKind.PDF: SourceType.PDF,
}


@dataclass(slots=True)
class IngestionResult:
    """Documents (one per step), the extraction they came from and their validation reports."""

    documents: list[GeneratedDocument]
    extraction: ExtractionResult
    reports: list[QuizValidationReport] = field(default_factory=list)
    document_reports: list[DocumentValidationReport] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "extraction": {key: value for key, value in self.extraction.to_dict().items() if key != "text"},
            "documents": [
                {
                    **document.to_dict(),
                    "validation": report.to_dict(),
                    "document_validation": document_report.to_dict(),
                }
                for document, report, document_report in zip(self.documents, self.reports, self.document_reports)
            ],
        }


class SourceIngestor:
    """Dispatch by source kind and compose extraction, splitting and generation.

    Without an explicit PDF extractor or OCR engine a Tesseract engine is
    created so scanned PDFs still get the OCR fallback.  The ingestor owns the
    OCR engine handle; ``aclose()`` releases it.
    """

    def __init__(
        self,
        generator: AiContentGenerator,
        *,
        settings: PipelineSettings | None = None,
        proxy_chain: ProxyChain | None = None,
        url_extractor: UrlTextExtractor | None = None,
        pdf_extractor: PdfTextExtractor | None = None,
        ocr_engine: OcrEngine | None = None,
        regenerator: QuizRegenerator | None = None,
    ) -> None:
        self._settings = settings or PipelineSettings()
        self._generator = generator
        self._proxy_chain = proxy_chain or ProxyChain.from_settings(self._settings)
        self._url_extractor = url_extractor or UrlTextExtractor(max_chars=self._settings.max_url_extract_chars)
        if ocr_engine is None and pdf_extractor is None:
            ocr_engine = TesseractOcrEngine(languages=self._settings.ocr_languages)
        self._ocr_engine = ocr_engine
        self._pdf_extractor = pdf_extractor or PdfTextExtractor.from_settings(self._settings, ocr_engine=ocr_engine)
        self._regenerator = regenerator or QuizRegenerator(generator)

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        generator: AiContentGenerator,
        *,
        http_client: httpx.AsyncClient | None = None,
        ocr_engine: OcrEngine | None = None,
    ) -> "SourceIngestor":
        return cls(
            generator,
            settings=settings,
            proxy_chain=ProxyChain.from_settings(settings, client=http_client),
            ocr_engine=ocr_engine,
        )

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    async def aclose(self) -> None:
        if self._ocr_engine is not None:
            await self._ocr_engine.release()

    async def __aenter__(self) -> "SourceIngestor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def extract(
        self,
        source: RawSource,
        *,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ExtractionResult:
        """Return the plain text of *source*.

        Raises ``InputValidationError`` for bad input and ``ExtractionFailure``
        when no usable text exists; nothing is generated in either case.  A
        cancelled *cancel_token* raises ``GenerationCancelled`` between relay
        attempts and OCR pages.
        """

        if source.kind is SourceKind.TEXT:
            return self._extract_text(source)
        if source.kind is SourceKind.URL:
            return await self._extract_url(source, on_progress=on_progress, cancel_token=cancel_token)
        if source.kind is SourceKind.PDF:
            if not isinstance(source.payload, (bytes, bytearray)):
                raise InputValidationError("file", "PDF payload must be bytes")
            return await self._pdf_extractor.extract(
                bytes(source.payload),
                filename=source.filename,
                mime_type=source.mime_type,
                on_progress=on_progress,
                cancel_token=cancel_token,
            )
        raise InputValidationError("kind", f"Unsupported source kind: {source.kind}")

    def _extract_text(self, source: RawSource) -> ExtractionResult:
        if not isinstance(source.payload, str):
            raise InputValidationError("text", "Text payload must be a string")
        text = normalize_paragraphs(source.payload)
        if not text:
            raise InputValidationError("text", "Text content is empty")
        return build_extraction_result(
            text,
            max_chars=len(text),
            method=ExtractionMethod.PLAIN,
            metadata=SourceMetadata(title=source.title),
        )

    async def _extract_url(
        self,
        source: RawSource,
        *,
        on_progress: ProgressCallback | None,
        cancel_token: CancellationToken | None,
    ) -> ExtractionResult:
        if not isinstance(source.payload, str):
            raise InputValidationError("url", "URL payload must be a string")
        url = validate_public_url(source.payload)

        notify(on_progress, "Fetching URL...")
        html = await self._proxy_chain.fetch(url, cancel_token=cancel_token)

        notify(on_progress, "Extracting page text...")
        result = self._url_extractor.extract(html)
        if not result.text.strip():
            raise ExtractionFailure(url, "No readable text found at the URL")
        return result

    def _resolve_title(self, source: RawSource, extraction: ExtractionResult) -> str:
        if source.title and source.title.strip():
            return source.title.strip()
        if extraction.metadata is not None and extraction.metadata.title:
            return extraction.metadata.title
        if source.kind is SourceKind.URL and isinstance(source.payload, str):
            hostname = urlsplit(validate_public_url(source.payload)).hostname
            if hostname:
                return hostname
        return DEFAULT_TITLE

    def _step_count(self, source: RawSource, text: str, num_steps: int | None) -> int:
        if source.kind is SourceKind.URL:
            return 1
        if num_steps is not None:
            if num_steps < 1:
                raise InputValidationError("num_steps", "num_steps must be >= 1")
            return num_steps
        return calculate_required_steps(
            text,
            chars_per_minute=self._settings.chars_per_minute,
            minutes_per_step=self._settings.minutes_per_step,
        )

    async def ingest(
        self,
        source: RawSource,
        *,
        team: str | None = None,
        num_steps: int | None = None,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> IngestionResult:
        notify(on_progress, "Extracting content...")
        extraction = await self.extract(source, on_progress=on_progress, cancel_token=cancel_token)
        title = self._resolve_title(source, extraction)

        step_count = self._step_count(source, extraction.text, num_steps)
        segments = [segment for segment in split_content_for_steps(extraction.text, step_count) if segment.strip()]
        if not segments:
            segments = [extraction.text]
        total_steps = len(segments)
        logger.info("Ingesting '%s' (%s) as %d step(s)", title, source.kind.value, total_steps)

        semaphore = asyncio.Semaphore(self._settings.max_parallel_steps)

        async def _run_step(index: int, segment: str) -> tuple[GeneratedDocument, QuizValidationReport]:
            step = index + 1
            step_progress = prefixed(on_progress, f"Step {step}/{total_steps}: ") if total_steps > 1 else on_progress
            step_title = f"{title} ({step}/{total_steps})" if total_steps > 1 else title
            async with semaphore:
                document = await self._generator.generate(
                    segment,
                    step_title,
                    step=step,
                    total_steps=total_steps,
                    cancel_token=cancel_token,
                    on_progress=step_progress,
                )
                report = validate_quiz(document.quiz)
                if self._settings.auto_regenerate and document.ai_processed and report.flagged_indices:
                    document.quiz = await self._regenerator.regenerate(
                        segment,
                        report.flagged_indices,
                        document.quiz,
                        title=step_title,
                        cancel_token=cancel_token,
                        on_progress=step_progress,
                    )
                    report = validate_quiz(document.quiz)

            self._decorate(document, source, segment, team=team)
            return document, report

        results = await asyncio.gather(*(_run_step(index, segment) for index, segment in enumerate(segments)))

        fallbacks = sum(1 for document, _ in results if not document.ai_processed)
        if fallbacks:
            logger.warning("%d of %d step(s) of '%s' used the raw-content fallback", fallbacks, total_steps, title)
        notify(on_progress, "Done")

        return IngestionResult(
            documents=[document for document, _ in results],
            extraction=extraction,
            reports=[report for _, report in results],
            document_reports=[validate_document(document) for document, _ in results],
        )

    def _decorate(self, document: GeneratedDocument, source: RawSource, segment: str, *, team: str | None) -> None:
        if team and team.strip():
            document.team = team.strip()
        document.estimated_minutes = estimate_reading_time(segment, chars_per_minute=self._settings.chars_per_minute)
        document.source_type = _SOURCE_TYPES[source.kind]
        if source.kind is SourceKind.URL and isinstance(source.payload, str):
            document.source_url = validate_public_url(source.payload)
        if source.kind is SourceKind.PDF:
            document.source_file = source.filename
