"""Prompt templates for OJT content generation."""

from __future__ import annotations

from typing import Sequence

MAX_SOURCE_CHARS = 8000
MAX_AVOID_QUESTIONS = 40


def _step_label(step: int, total_steps: int) -> str:
    return f" (step {step} of {total_steps})" if total_steps > 1 else ""


def build_content_prompt(
    title: str,
    text: str,
    *,
    step: int = 1,
    total_steps: int = 1,
    quiz_count: int = 20,
    avoid_questions: Sequence[str] = (),
) -> str:
    """Ask for sections, a quiz pool and a summary as one JSON object.

    The source text is clipped to ``MAX_SOURCE_CHARS``.  *avoid_questions*
    lists existing questions the model should not repeat.
    """

    source = text[:MAX_SOURCE_CHARS]
    lines = [
        "Analyze the text below and turn it into on-the-job training material for new employees.",
        f'Document title: "{title}{_step_label(step, total_steps)}"',
        "Write in the same language as the input text.",
        "",
        "## Output format (JSON only, no markdown fences)",
        "{",
        '  "title": "document title",',
        '  "team": "team or field name",',
        '  "sections": [{"title": "section title", "content": "HTML using p, ul, li, strong tags"}],',
        '  "quiz": [{"question": "question text", "options": ["option 1", "option 2", "option 3", "option 4"], '
        '"correct_index": 0, "explanation": "why the answer is right"}],',
        '  "summary": "2-3 sentence summary"',
        "}",
        "",
        "## Sections (3-5)",
        "Learning goals, key content, practical examples, cautions, recap.",
        "",
        f"## Quiz ({quiz_count} questions)",
        "- 40% recall: key terms and definitions",
        "- 35% understanding: relations between concepts, comparisons",
        "- 25% application: judging realistic work situations",
        "- every question has 4 clearly different options",
        "- correct_index is the 0-based index of the right option",
    ]

    if avoid_questions:
        lines.extend(["", "## Existing questions (do not repeat)"])
        lines.extend(f"- {question}" for question in list(avoid_questions)[:MAX_AVOID_QUESTIONS])

    lines.extend(["", "## Input text", source])
    return "\n".join(lines)
