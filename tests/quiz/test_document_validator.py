from __future__ import annotations

from ojtgen.generation.models import GeneratedDocument, Section
from ojtgen.quiz.models import QuizItem
from ojtgen.quiz.validator import MIN_SECTION_CONTENT_CHARS, validate_document, validate_sections

_OPTIONS = ("Gloves", "Goggles", "Boots", "Helmet")
_BODY = "<p>Wear gloves and goggles before touching the cutting station.</p>"


def _document(sections: list[Section], **kwargs) -> GeneratedDocument:
    return GeneratedDocument(
        title=kwargs.pop("title", "Cutting station"),
        team=kwargs.pop("team", "Plant"),
        sections=sections,
        quiz=kwargs.pop("quiz", [QuizItem(question="Which gear protects your hands?", options=_OPTIONS)]),
        **kwargs,
    )


def test_complete_sections_are_valid() -> None:
    report = validate_sections([Section("Overview", _BODY), Section("Procedure", _BODY)])

    assert report.valid
    assert report.issues == ()
    assert report.section_count == 2


def test_empty_section_list_is_invalid() -> None:
    report = validate_sections([])

    assert report.valid is False
    assert report.issues == ("No sections",)
    assert report.section_count == 0


def test_missing_title_missing_and_short_content_are_reported() -> None:
    sections = [
        Section("", _BODY),
        Section("Procedure", "   "),
        Section("Summary", "<p>Short.</p>"),
    ]

    report = validate_sections(sections)

    assert report.valid is False
    assert report.issues == (
        "Section 1: missing title",
        "Section 2: missing content",
        "Section 3: content is too short (13 chars)",
    )


def test_short_content_threshold_is_inclusive_at_minimum() -> None:
    content = "x" * MIN_SECTION_CONTENT_CHARS

    assert validate_sections([Section("Exact", content)]).valid
    assert not validate_sections([Section("Short", content[:-1])]).valid


def test_document_report_combines_sections_and_quiz() -> None:
    report = validate_document(_document([Section("Overview", _BODY)]))

    assert report.valid
    assert report.quiz.stats.total == 1
    assert report.sections.section_count == 1
    assert (report.has_title, report.has_team) == (True, True)
    assert report.to_dict()["sections"] == {"valid": True, "issues": [], "section_count": 1}


def test_document_with_bad_quiz_is_invalid_even_with_good_sections() -> None:
    quiz = [QuizItem(question="Define X?", options=_OPTIONS)]

    report = validate_document(_document([Section("Overview", _BODY)], quiz=quiz, team=""))

    assert report.valid is False
    assert report.sections.valid
    assert report.quiz.issues == ("Question 1: question is too short (9 chars)",)
    assert report.has_team is False
