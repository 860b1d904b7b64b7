"""Quiz item and validation report structures."""

from __future__ import annotations

from dataclasses import dataclass, field

OPTION_COUNT = 4


@dataclass(frozen=True, slots=True)
class QuizItem:
    """One multiple-choice question.

    Items built by the normalizer always have four distinct options and an
    in-range ``correct_index``; hand-built items are not checked here so the
    validator can report on them.
    """

    question: str
    options: tuple[str, ...]
    correct_index: int = 0
    is_placeholder: bool = False
    explanation: str | None = None

    @property
    def answer(self) -> str:
        if 0 <= self.correct_index < len(self.options):
            return self.options[self.correct_index]
        return ""

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "question": self.question,
            "options": list(self.options),
            "correct_index": self.correct_index,
            "answer": self.answer,
            "is_placeholder": self.is_placeholder,
        }
        if self.explanation:
            payload["explanation"] = self.explanation
        return payload


@dataclass(frozen=True, slots=True)
class QuizStats:
    total: int = 0
    placeholders: int = 0
    short_questions: int = 0
    duplicates: int = 0
    valid_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "placeholders": self.placeholders,
            "short_questions": self.short_questions,
            "duplicates": self.duplicates,
            "valid_count": self.valid_count,
        }


@dataclass(frozen=True, slots=True)
class QuizValidationReport:
    """Quality findings for a quiz pool; derived, never stored as truth."""

    valid: bool
    issues: tuple[str, ...] = ()
    stats: QuizStats = field(default_factory=QuizStats)
    flagged_indices: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "issues": list(self.issues),
            "stats": self.stats.to_dict(),
            "flagged_indices": list(self.flagged_indices),
        }


@dataclass(frozen=True, slots=True)
class SectionValidationReport:
    valid: bool
    issues: tuple[str, ...] = ()
    section_count: int = 0

    def to_dict(self) -> dict[str, object]:
        return {"valid": self.valid, "issues": list(self.issues), "section_count": self.section_count}


@dataclass(frozen=True, slots=True)
class DocumentValidationReport:
    """Combined section and quiz findings for one generated document."""

    valid: bool
    quiz: QuizValidationReport
    sections: SectionValidationReport
    has_title: bool
    has_team: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "quiz": self.quiz.to_dict(),
            "sections": self.sections.to_dict(),
            "has_title": self.has_title,
            "has_team": self.has_team,
        }
