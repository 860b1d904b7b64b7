"""Generated OJT document structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ojtgen.quiz.models import QuizItem


class SourceType(str, Enum):
    MANUAL = "manual"
    URL = "url"
    PDF = "pdf"


@dataclass(frozen=True, slots=True)
class Section:
    title: str
    content: str   # allow-listed HTML

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "content": self.content}


@dataclass(slots=True)
class GeneratedDocument:
    """One study step: sections plus a quiz pool.

    ``ai_processed`` is False exactly when the document is the raw-content
    fallback (one "Original content" section and an empty quiz).
    """

    title: str
    team: str
    sections: list[Section]
    quiz: list[QuizItem] = field(default_factory=list)
    step: int = 1
    total_steps: int = 1
    ai_processed: bool = False
    ai_engine: str | None = None
    ai_model: str | None = None
    ai_error: str | None = None
    user_initiated: bool = False
    summary: str | None = None
    estimated_minutes: int | None = None
    source_type: SourceType = SourceType.MANUAL
    source_url: str | None = None
    source_file: str | None = None

    @property
    def is_fallback(self) -> bool:
        return not self.ai_processed

    def to_dict(self) -> dict[str, object]:
        return {
            "title": self.title,
            "team": self.team,
            "sections": [section.to_dict() for section in self.sections],
            "quiz": [item.to_dict() for item in self.quiz],
            "step": self.step,
            "total_steps": self.total_steps,
            "ai_processed": self.ai_processed,
            "ai_engine": self.ai_engine,
            "ai_model": self.ai_model,
            "ai_error": self.ai_error,
            "user_initiated": self.user_initiated,
            "summary": self.summary,
            "estimated_minutes": self.estimated_minutes,
            "source_type": self.source_type.value,
            "source_url": self.source_url,
            "source_file": self.source_file,
        }
