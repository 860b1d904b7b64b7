"""Quiz and document quality checks."""

from __future__ import annotations

from typing import Protocol, Sequence

from ojtgen.ingestion.normalization import normalize_text
from ojtgen.quiz.models import (
    DocumentValidationReport,
    QuizItem,
    QuizStats,
    QuizValidationReport,
    SectionValidationReport,
)
from ojtgen.quiz.normalizer import PLACEHOLDER_MARKER

MIN_QUESTION_CHARS = 10
MIN_SECTION_CONTENT_CHARS = 50


class _SectionLike(Protocol):
    title: str
    content: str


class _DocumentLike(Protocol):
    title: str
    team: str
    sections: Sequence[_SectionLike]
    quiz: Sequence[QuizItem]


def is_placeholder_item(item: QuizItem) -> bool:
    return item.is_placeholder or PLACEHOLDER_MARKER in item.question


def validate_quiz(pool: Sequence[QuizItem], *, min_question_chars: int = MIN_QUESTION_CHARS) -> QuizValidationReport:
    """Scan *pool* for placeholders, short or repeated questions and broken options.

    Pure: the same pool always produces an equal report.  The first
    occurrence of a repeated question is not counted as a duplicate.
    """

    issues: list[str] = []
    flagged: list[int] = []
    placeholders = 0
    short_questions = 0
    duplicates = 0
    seen_questions: set[str] = set()

    for index, item in enumerate(pool):
        number = index + 1
        item_flagged = False

        if is_placeholder_item(item):
            placeholders += 1
            item_flagged = True
            issues.append(f"Question {number}: auto-generated placeholder")

        if item.question and len(item.question) < min_question_chars:
            short_questions += 1
            item_flagged = True
            issues.append(f"Question {number}: question is too short ({len(item.question)} chars)")

        question_key = normalize_text(item.question)
        if question_key in seen_questions:
            duplicates += 1
            item_flagged = True
            issues.append(f"Question {number}: duplicate question")
        seen_questions.add(question_key)

        if not 0 <= item.correct_index < len(item.options):
            item_flagged = True
            issues.append(f"Question {number}: correct answer index {item.correct_index} is out of range")

        option_keys = {normalize_text(option) for option in item.options}
        if len(option_keys) < len(item.options):
            item_flagged = True
            issues.append(f"Question {number}: duplicate options")

        if item_flagged:
            flagged.append(index)

    stats = QuizStats(
        total=len(pool),
        placeholders=placeholders,
        short_questions=short_questions,
        duplicates=duplicates,
        valid_count=len(pool) - placeholders - duplicates,
    )
    return QuizValidationReport(
        valid=not issues,
        issues=tuple(issues),
        stats=stats,
        flagged_indices=tuple(flagged),
    )


def validate_sections(
    sections: Sequence[_SectionLike],
    *,
    min_content_chars: int = MIN_SECTION_CONTENT_CHARS,
) -> SectionValidationReport:
    """Flag sections without a title or with missing or very short content.

    Content length is measured on the stored HTML.
    """

    if not sections:
        return SectionValidationReport(valid=False, issues=("No sections",), section_count=0)

    issues: list[str] = []
    for index, section in enumerate(sections):
        number = index + 1
        if not (section.title or "").strip():
            issues.append(f"Section {number}: missing title")
        content = (section.content or "").strip()
        if not content:
            issues.append(f"Section {number}: missing content")
        elif len(content) < min_content_chars:
            issues.append(f"Section {number}: content is too short ({len(content)} chars)")

    return SectionValidationReport(valid=not issues, issues=tuple(issues), section_count=len(sections))


def validate_document(document: _DocumentLike) -> DocumentValidationReport:
    """Validate the sections and quiz pool of *document* together."""

    quiz_report = validate_quiz(document.quiz)
    section_report = validate_sections(document.sections)
    return DocumentValidationReport(
        valid=quiz_report.valid and section_report.valid,
        quiz=quiz_report,
        sections=section_report,
        has_title=bool((document.title or "").strip()),
        has_team=bool((document.team or "").strip()),
    )
