"""Shape raw model quiz output into ``QuizItem`` values and pad short pools."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from ojtgen.config import DEFAULT_QUIZ_POOL_SIZE
from ojtgen.ingestion.normalization import normalize_text, normalize_whitespace
from ojtgen.quiz.models import OPTION_COUNT, QuizItem

PLACEHOLDER_MARKER = "[auto]"
STUB_OPTIONS = ("Correct answer", "Wrong answer 1", "Wrong answer 2", "Wrong answer 3")
DEFAULT_QUESTION_SUBJECT = "Training"

_CORRECT_INDEX_KEYS = ("correct_index", "correctIndex", "correct", "answer_index", "answer")
_PLACEHOLDER_KEYS = ("is_placeholder", "isPlaceholder")


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    if isinstance(raw, QuizItem):
        return {
            "question": raw.question,
            "options": list(raw.options),
            "correct_index": raw.correct_index,
            "is_placeholder": raw.is_placeholder,
            "explanation": raw.explanation,
        }
    if isinstance(raw, Mapping):
        return raw
    return {}


def _clean_options(raw_options: Any) -> list[str]:
    if not isinstance(raw_options, (list, tuple)):
        return []
    cleaned: list[str] = []
    for option in raw_options:
        if option is None or isinstance(option, (dict, list)):
            continue
        text = normalize_whitespace(str(option))
        if text:
            cleaned.append(text)
    return cleaned


def _raw_correct_index(raw: Mapping[str, Any], options: list[str]) -> int | None:
    for key in _CORRECT_INDEX_KEYS:
        value = raw.get(key)
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.lstrip("-").isdigit():
                return int(stripped)
            wanted = normalize_text(stripped)
            for index, option in enumerate(options):
                if normalize_text(option) == wanted:
                    return index
    return None


def _dedupe_options(options: list[str], correct_index: int | None) -> tuple[list[str], int | None]:
    correct_text = options[correct_index] if correct_index is not None and 0 <= correct_index < len(options) else None

    seen: set[str] = set()
    unique: list[str] = []
    for option in options:
        key = normalize_text(option)
        if key in seen:
            continue
        seen.add(key)
        unique.append(option)

    if correct_text is None:
        return unique, None
    correct_key = normalize_text(correct_text)
    for index, option in enumerate(unique):
        if normalize_text(option) == correct_key:
            return unique, index
    return unique, None


def _fit_to_option_count(options: list[str], correct_index: int) -> tuple[list[str], int]:
    if len(options) > OPTION_COUNT:
        if correct_index >= OPTION_COUNT:
            kept = options[: OPTION_COUNT - 1] + [options[correct_index]]
            return kept, OPTION_COUNT - 1
        return options[:OPTION_COUNT], correct_index

    taken = {normalize_text(option) for option in options}
    filler_number = 1
    padded = list(options)
    while len(padded) < OPTION_COUNT:
        filler = f"Wrong answer {filler_number}"
        filler_number += 1
        if normalize_text(filler) in taken:
            continue
        taken.add(normalize_text(filler))
        padded.append(filler)
    return padded, correct_index


def normalize_quiz_item(raw: Any, index: int, title: str = "") -> QuizItem:
    """Return a well-formed ``QuizItem`` built from one raw quiz entry.

    *raw* is never mutated.  Fewer than two usable options yield the stub
    option set with the first option correct; an out-of-range or missing
    answer index falls back to 0; a blank question gets a numbered template.
    """

    data = _as_mapping(raw)
    options = _clean_options(data.get("options"))
    correct_index = _raw_correct_index(data, options)
    options, correct_index = _dedupe_options(options, correct_index)

    if len(options) < 2:
        options = list(STUB_OPTIONS)
        correct_index = 0
    elif correct_index is None or not 0 <= correct_index < len(options):
        correct_index = 0

    options, correct_index = _fit_to_option_count(options, correct_index)

    question = normalize_whitespace(str(data.get("question") or ""))
    if not question:
        question = f"{title or DEFAULT_QUESTION_SUBJECT} — question {index + 1}"

    explanation = data.get("explanation")
    explanation_text = normalize_whitespace(str(explanation)) if explanation else None

    is_placeholder = any(data.get(key) is True for key in _PLACEHOLDER_KEYS)

    return QuizItem(
        question=question,
        options=tuple(options),
        correct_index=correct_index,
        is_placeholder=is_placeholder,
        explanation=explanation_text or None,
    )


def create_placeholder_item(title: str, number: int) -> QuizItem:
    subject = title or DEFAULT_QUESTION_SUBJECT
    return QuizItem(
        question=f"{PLACEHOLDER_MARKER} {subject} question {number}",
        options=STUB_OPTIONS,
        correct_index=0,
        is_placeholder=True,
    )


def fill_placeholders(
    pool: Sequence[QuizItem],
    title: str,
    target_size: int = DEFAULT_QUIZ_POOL_SIZE,
) -> list[QuizItem]:
    """Append placeholder items until *pool* reaches *target_size*; never trims."""

    filled = list(pool)
    while len(filled) < target_size:
        filled.append(create_placeholder_item(title, len(filled) + 1))
    return filled


def normalize_quiz_pool(
    raw_quiz: Any,
    title: str,
    target_size: int = DEFAULT_QUIZ_POOL_SIZE,
) -> list[QuizItem]:
    entries = raw_quiz if isinstance(raw_quiz, (list, tuple)) else []
    normalized = [normalize_quiz_item(entry, index, title) for index, entry in enumerate(entries)]
    return fill_placeholders(normalized, title, target_size)
