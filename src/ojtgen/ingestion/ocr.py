"""Tesseract OCR for PDFs whose pages carry no usable text layer.

The engine is an explicit resource handle: ``acquire()`` checks the Tesseract
binary once, ``release()`` forgets it, and ``recognize()`` runs at most one
recognition at a time per instance.  pytesseract and Pillow are imported
lazily so that text-layer extraction never needs them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import io
import logging
import re
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import pymupdf

from ojtgen.cancellation import CancellationToken
from ojtgen.ingestion.normalization import normalize_whitespace
from ojtgen.progress import ProgressCallback, notify

if TYPE_CHECKING:
    from PIL.Image import Image


logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES = "kor+eng"
DEFAULT_TESSERACT_CONFIG = "--oem 3 --psm 6"
DEFAULT_RENDER_SCALE = 2.0
DEFAULT_MAX_PAGES = 10
DEFAULT_MIN_TEXT_CHARS = 50
DEFAULT_MIN_ALNUM_RATIO = 0.3

_MEANINGFUL_CHAR_RE = re.compile(r"[A-Za-z0-9가-힣]")


class OcrStatus(Enum):
    OCR_SUCCESS = "ocr_success"
    OCR_FAILED = "ocr_failed"   # recognition raised for this page
    OCR_EMPTY = "ocr_empty"     # recognition ran but returned no text


@dataclass(slots=True)
class PageOcrResult:
    page_index: int
    status: OcrStatus
    text: str
    reason: str | None = None


@dataclass(slots=True)
class OcrDocumentResult:
    text: str
    pages: int
    total_pages: int
    page_results: list[PageOcrResult] = field(default_factory=list)


@dataclass(slots=True)
class OcrUnavailableError(RuntimeError):
    """The OCR backend cannot run in this process (binary or package missing)."""

    message: str

    def __str__(self) -> str:
        return self.message


@runtime_checkable
class OcrEngine(Protocol):
    """Contract for OCR backends used by the PDF extractor."""

    async def acquire(self) -> None:
        """Initialize the backend; repeated calls are cheap."""

    async def recognize(self, image: "Image") -> str:
        """Return raw text recognized in *image*."""

    async def release(self) -> None:
        """Free backend resources; a later ``recognize`` re-acquires."""


def _is_tesseract_not_found(exc: BaseException) -> bool:
    """Return True when *exc* indicates that the Tesseract binary is missing."""
    if "TesseractNotFoundError" in type(exc).__name__:
        return True
    msg = str(exc).lower()
    return "tesseract is not installed" in msg or "tesseract is not in your path" in msg


class TesseractOcrEngine:
    """Process-wide Tesseract handle with lazy initialization and serialized recognition."""

    def __init__(
        self,
        *,
        languages: str = DEFAULT_LANGUAGES,
        config: str = DEFAULT_TESSERACT_CONFIG,
    ) -> None:
        self._languages = languages
        self._config = config
        self._version: str | None = None
        self._lock = asyncio.Lock()

    @property
    def is_acquired(self) -> bool:
        return self._version is not None

    @property
    def languages(self) -> str:
        return self._languages

    async def acquire(self) -> None:
        if self._version is not None:
            return

        try:
            import pytesseract
        except ImportError as exc:
            raise OcrUnavailableError(f"pytesseract is not installed: {exc}") from exc

        try:
            version = await asyncio.to_thread(pytesseract.get_tesseract_version)
        except Exception as exc:
            if _is_tesseract_not_found(exc):
                raise OcrUnavailableError("Tesseract is not installed or not in PATH") from exc
            raise

        self._version = str(version)
        logger.info("Tesseract %s ready (languages=%s)", self._version, self._languages)

    async def recognize(self, image: "Image") -> str:
        await self.acquire()

        import pytesseract

        async with self._lock:
            text = await asyncio.to_thread(
                pytesseract.image_to_string,
                image,
                lang=self._languages,
                config=self._config,
            )
        return text.strip()

    async def release(self) -> None:
        if self._version is not None:
            logger.debug("Releasing Tesseract handle")
        self._version = None


def render_page_image(page: pymupdf.Page, *, scale: float = DEFAULT_RENDER_SCALE) -> "Image":
    """Rasterize *page* at *scale* times its 72 DPI base resolution."""

    from PIL import Image

    matrix = pymupdf.Matrix(scale, scale)
    pix = page.get_pixmap(matrix=matrix, colorspace=pymupdf.csRGB)
    return Image.open(io.BytesIO(pix.tobytes("png")))


def meaningful_char_ratio(text: str) -> float:
    """Share of Latin letters, digits and Hangul syllables in *text*."""

    if not text:
        return 0.0
    return len(_MEANINGFUL_CHAR_RE.findall(text)) / len(text)


def is_valid_ocr_text(
    text: str,
    *,
    min_chars: int = DEFAULT_MIN_TEXT_CHARS,
    min_ratio: float = DEFAULT_MIN_ALNUM_RATIO,
) -> bool:
    """Reject OCR output that is too short or mostly symbols and noise."""

    if not text or len(text) < min_chars:
        return False
    return meaningful_char_ratio(text) > min_ratio


async def ocr_document(
    doc: pymupdf.Document,
    engine: OcrEngine,
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
    render_scale: float = DEFAULT_RENDER_SCALE,
    on_progress: ProgressCallback | None = None,
    cancel_token: CancellationToken | None = None,
) -> OcrDocumentResult:
    """Render and recognize up to *max_pages* pages of *doc*.

    A failing page is recorded and skipped.  ``OcrUnavailableError`` is not
    caught because no later page could succeed either.  A cancelled
    *cancel_token* raises ``GenerationCancelled`` before the next page renders.
    """

    total_pages = doc.page_count
    pages_to_process = min(total_pages, max_pages)
    if total_pages > max_pages:
        logger.warning("PDF has %d pages; OCR limited to the first %d", total_pages, max_pages)

    notify(on_progress, "Preparing OCR engine...")
    await engine.acquire()

    page_results: list[PageOcrResult] = []
    page_texts: list[str] = []

    for page_index in range(pages_to_process):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        page_number = page_index + 1
        notify(on_progress, f"Rendering page {page_number}/{pages_to_process}...")
        image = await asyncio.to_thread(render_page_image, doc[page_index], scale=render_scale)

        notify(on_progress, f"Recognizing page {page_number}/{pages_to_process}...")
        try:
            raw_text = await engine.recognize(image)
        except OcrUnavailableError:
            raise
        except Exception as exc:
            logger.warning("OCR failed for page %d: %s", page_number, exc)
            page_results.append(
                PageOcrResult(page_index=page_number, status=OcrStatus.OCR_FAILED, text="", reason=str(exc))
            )
            continue
        finally:
            image.close()

        cleaned = normalize_whitespace(raw_text)
        if not cleaned:
            page_results.append(
                PageOcrResult(
                    page_index=page_number,
                    status=OcrStatus.OCR_EMPTY,
                    text="",
                    reason="OCR returned empty output",
                )
            )
            continue

        page_texts.append(cleaned)
        page_results.append(PageOcrResult(page_index=page_number, status=OcrStatus.OCR_SUCCESS, text=cleaned))

    return OcrDocumentResult(
        text="\n\n".join(page_texts).strip(),
        pages=pages_to_process,
        total_pages=total_pages,
        page_results=page_results,
    )
