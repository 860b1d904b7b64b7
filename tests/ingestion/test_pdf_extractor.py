from __future__ import annotations

import sys

import pymupdf
import pytest

from ojtgen.cancellation import CancellationToken
from ojtgen.errors import ExtractionFailure, GenerationCancelled, InputValidationError
from ojtgen.ingestion.models import ExtractionMethod
from ojtgen.ingestion.ocr import TesseractOcrEngine
from ojtgen.ingestion.pdf_extractor import OCR_WARNING, PdfTextExtractor, extract_text_layer

_KOREAN_ENGLISH_LINE = "신입사원 안전 교육 자료입니다 Safety onboarding checklist for new staff 2024 "


class _FakeOcrEngine:
    def __init__(self, page_text: str) -> None:
        self._page_text = page_text
        self.recognized = 0

    async def acquire(self) -> None:
        return None

    async def recognize(self, image) -> str:
        self.recognized += 1
        return self._page_text

    async def release(self) -> None:
        return None


def _pdf_bytes(lines_per_page: list[list[str]], *, metadata: dict[str, str] | None = None) -> bytes:
    doc = pymupdf.open()
    for lines in lines_per_page:
        page = doc.new_page()
        for offset, line in enumerate(lines):
            page.insert_text((72, 72 + offset * 18), line)
    if metadata:
        doc.set_metadata(metadata)
    data = doc.tobytes()
    doc.close()
    return data


def _long_lines(count: int) -> list[str]:
    return [f"Line {index}: follow the workplace safety procedure carefully." for index in range(count)]


@pytest.mark.asyncio
async def test_text_layer_is_used_when_long_enough() -> None:
    data = _pdf_bytes([_long_lines(3), _long_lines(2)], metadata={"title": "Safety Manual", "author": "HR Team"})
    engine = _FakeOcrEngine("should not be used")

    result = await PdfTextExtractor(ocr_engine=engine).extract(data, filename="manual.pdf")

    assert result.method is ExtractionMethod.TEXT_LAYER
    assert engine.recognized == 0
    assert "\n\n" in result.text
    assert result.text.startswith("Line 0: follow the workplace safety procedure carefully.")
    assert result.metadata is not None
    assert result.metadata.title == "Safety Manual"
    assert result.metadata.author == "HR Team"
    assert result.metadata.pages == 2
    assert result.metadata.total_pages == 2
    assert result.warnings == []


@pytest.mark.asyncio
async def test_image_only_pdf_falls_back_to_ocr() -> None:
    data = _pdf_bytes([[], []])
    page_text = (_KOREAN_ENGLISH_LINE * 8)[:250]
    engine = _FakeOcrEngine(page_text)

    result = await PdfTextExtractor(ocr_engine=engine).extract(data, filename="scanned_orientation-guide.pdf")

    assert result.method is ExtractionMethod.OCR
    assert len(result.text) >= 100
    assert engine.recognized == 2
    assert result.warnings == [OCR_WARNING]
    assert result.metadata is not None
    assert result.metadata.title == "Scanned Orientation Guide"


@pytest.mark.asyncio
async def test_noisy_ocr_output_raises_extraction_failure() -> None:
    data = _pdf_bytes([[]])
    engine = _FakeOcrEngine("~~ || ## ;; " * 20)

    with pytest.raises(ExtractionFailure) as exc_info:
        await PdfTextExtractor(ocr_engine=engine).extract(data, filename="noise.pdf")

    failure = exc_info.value
    assert "low quality or unsupported format" in str(failure)
    assert failure.attempts[0].startswith("text-layer: no embedded text layer")
    assert failure.attempts[1].startswith("ocr: OCR output rejected")


@pytest.mark.asyncio
async def test_missing_tesseract_is_reported_as_extraction_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "pytesseract", None)
    data = _pdf_bytes([["tiny"]])

    with pytest.raises(ExtractionFailure) as exc_info:
        await PdfTextExtractor(ocr_engine=TesseractOcrEngine()).extract(data, filename="tiny.pdf")

    assert exc_info.value.attempts[0].startswith("text-layer: text layer too short")
    assert "OCR engine unavailable" in exc_info.value.attempts[1]


@pytest.mark.asyncio
async def test_short_text_without_ocr_engine_fails_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    data = _pdf_bytes([["tiny"]])

    with caplog.at_level("WARNING"):
        with pytest.raises(ExtractionFailure) as exc_info:
            await PdfTextExtractor().extract(data, filename="tiny.pdf")

    assert len(exc_info.value.attempts) == 1
    assert "OCR fallback disabled for tiny.pdf" in caplog.text


@pytest.mark.asyncio
async def test_output_is_truncated_to_budget() -> None:
    data = _pdf_bytes([_long_lines(20)])

    result = await PdfTextExtractor(max_chars=200).extract(data, filename="long.pdf")

    assert result.was_truncated
    assert result.extracted_length == 200
    assert result.original_length > 200


@pytest.mark.asyncio
async def test_encrypted_pdf_is_rejected() -> None:
    doc = pymupdf.open()
    doc.new_page().insert_text((72, 72), "secret")
    data = doc.tobytes(encryption=pymupdf.PDF_ENCRYPT_AES_256, owner_pw="owner", user_pw="user")
    doc.close()

    with pytest.raises(ExtractionFailure, match="Password-protected"):
        await PdfTextExtractor().extract(data, filename="locked.pdf")


@pytest.mark.asyncio
async def test_garbage_bytes_are_rejected() -> None:
    with pytest.raises(ExtractionFailure, match="Invalid PDF file"):
        await PdfTextExtractor().extract(b"this is not a pdf document", filename="fake.pdf")


def test_validate_rejects_wrong_type_empty_and_oversized_files() -> None:
    extractor = PdfTextExtractor(max_file_bytes=10)

    with pytest.raises(InputValidationError, match="Only PDF files"):
        extractor.validate(b"data", filename="notes.docx", mime_type="application/msword")
    with pytest.raises(InputValidationError, match="empty"):
        extractor.validate(b"", filename="empty.pdf")
    with pytest.raises(InputValidationError, match="exceeds"):
        extractor.validate(b"x" * 11, filename="big.pdf", mime_type=None)

    extractor.validate(b"%PDF-1.7", filename="REPORT.PDF", mime_type=None)
    extractor.validate(b"%PDF-1.7", filename=None, mime_type="application/pdf; charset=binary")


def test_extract_text_layer_caps_pages(caplog: pytest.LogCaptureFixture) -> None:
    doc = pymupdf.open(stream=_pdf_bytes([["one"], ["two"], ["three"]]), filetype="pdf")

    with caplog.at_level("WARNING"):
        text, pages = extract_text_layer(doc, max_pages=2)
    doc.close()

    assert text == "one\n\ntwo"
    assert pages == 2
    assert "only the first 2 are read" in caplog.text


@pytest.mark.asyncio
async def test_cancelled_token_stops_pdf_extraction_before_any_strategy() -> None:
    data = _pdf_bytes([["tiny"]])
    engine = _FakeOcrEngine(_KOREAN_ENGLISH_LINE * 3)
    token = CancellationToken()
    token.cancel("Upload dialog closed", user_initiated=False)

    with pytest.raises(GenerationCancelled, match="Upload dialog closed"):
        await PdfTextExtractor(ocr_engine=engine).extract(data, filename="tiny.pdf", cancel_token=token)

    assert engine.recognized == 0
