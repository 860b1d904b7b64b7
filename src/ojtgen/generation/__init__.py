"""AI generation of OJT documents with raw-content fallback."""

from ojtgen.cancellation import CancellationToken
from .engines import GenerationEngine, OpenAIChatEngine, select_engine
from .fallback import build_fallback_document
from .generator import AiContentGenerator, GenerationOutcome, GenerationState
from .models import GeneratedDocument, Section, SourceType

__all__ = [
    "AiContentGenerator",
    "CancellationToken",
    "GeneratedDocument",
    "GenerationEngine",
    "GenerationOutcome",
    "GenerationState",
    "OpenAIChatEngine",
    "Section",
    "SourceType",
    "build_fallback_document",
    "select_engine",
]
