"""Source extraction: URL relays, HTML text, PDF text layer and OCR, step splitting."""

from .html_text import UrlTextExtractor
from .models import ExtractionMethod, ExtractionResult, RawSource, SourceKind, SourceMetadata
from .ocr import OcrEngine, TesseractOcrEngine
from .pdf_extractor import PdfTextExtractor
from .proxy_chain import ProxyChain, Relay
from .splitter import calculate_required_steps, estimate_reading_time, split_content_for_steps

__all__ = [
    "ExtractionMethod",
    "ExtractionResult",
    "OcrEngine",
    "PdfTextExtractor",
    "ProxyChain",
    "RawSource",
    "Relay",
    "SourceKind",
    "SourceMetadata",
    "TesseractOcrEngine",
    "UrlTextExtractor",
    "calculate_required_steps",
    "estimate_reading_time",
    "split_content_for_steps",
]
