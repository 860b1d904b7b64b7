"""Quiz normalization, placeholder padding and quality validation."""

from .models import (
    DocumentValidationReport,
    QuizItem,
    QuizStats,
    QuizValidationReport,
    SectionValidationReport,
)
from .normalizer import fill_placeholders, normalize_quiz_item, normalize_quiz_pool
from .validator import validate_document, validate_quiz, validate_sections

__all__ = [
    "DocumentValidationReport",
    "QuizItem",
    "QuizStats",
    "QuizValidationReport",
    "SectionValidationReport",
    "fill_placeholders",
    "normalize_quiz_item",
    "normalize_quiz_pool",
    "validate_document",
    "validate_quiz",
    "validate_sections",
]
