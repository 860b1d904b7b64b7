from __future__ import annotations

import copy

import pytest

from ojtgen.quiz.models import QuizItem
from ojtgen.quiz.normalizer import (
    DEFAULT_QUESTION_SUBJECT,
    PLACEHOLDER_MARKER,
    STUB_OPTIONS,
    fill_placeholders,
    normalize_quiz_item,
    normalize_quiz_pool,
)


def test_well_formed_item_is_kept() -> None:
    item = normalize_quiz_item(
        {"question": "  What is PPE? ", "options": ["Gear", "Food", "Tools", "Cars"], "correct_index": 0},
        0,
    )

    assert item == QuizItem(question="What is PPE?", options=("Gear", "Food", "Tools", "Cars"), correct_index=0)
    assert item.answer == "Gear"


def test_fewer_than_two_options_becomes_stub() -> None:
    item = normalize_quiz_item({"question": "Q?", "options": ["only"], "correct_index": 3}, 0)

    assert item.options == STUB_OPTIONS
    assert item.correct_index == 0


def test_out_of_range_index_is_clamped_to_zero() -> None:
    item = normalize_quiz_item({"question": "Q?", "options": ["a", "b", "c", "d"], "correct_index": 9}, 0)

    assert item.correct_index == 0


@pytest.mark.parametrize(
    "raw_answer, expected",
    [("2", 2), (1.0, 1), ("C", 2), ("  b ", 1)],
)
def test_answer_index_accepts_digits_floats_and_option_text(raw_answer: object, expected: int) -> None:
    item = normalize_quiz_item({"question": "Pick", "options": ["A", "B", "C", "D"], "answer": raw_answer}, 0)

    assert item.correct_index == expected


def test_camel_case_correct_index_is_read() -> None:
    item = normalize_quiz_item({"question": "Pick", "options": ["A", "B", "C", "D"], "correctIndex": 3}, 0)

    assert item.correct_index == 3


def test_short_option_list_is_padded_with_distinct_fillers() -> None:
    item = normalize_quiz_item({"question": "Pick", "options": ["Yes", "Wrong answer 1"], "correct_index": 0}, 0)

    assert item.options == ("Yes", "Wrong answer 1", "Wrong answer 2", "Wrong answer 3")
    assert len(set(item.options)) == 4


def test_long_option_list_keeps_correct_answer() -> None:
    item = normalize_quiz_item(
        {"question": "Pick", "options": ["a", "b", "c", "d", "e", "f"], "correct_index": 5},
        0,
    )

    assert item.options == ("a", "b", "c", "f")
    assert item.correct_index == 3
    assert item.answer == "f"


def test_duplicate_options_are_removed_tracking_the_answer() -> None:
    item = normalize_quiz_item(
        {"question": "Pick", "options": ["Left", "left", "Right", "Up", "Down"], "correct_index": 2},
        0,
    )

    assert item.options == ("Left", "Right", "Up", "Down")
    assert item.answer == "Right"


def test_blank_question_gets_numbered_template() -> None:
    item = normalize_quiz_item({"question": "  ", "options": ["a", "b"]}, 4, "Forklift safety")

    assert item.question == "Forklift safety — question 5"


def test_blank_question_without_title_uses_default_subject() -> None:
    item = normalize_quiz_item({"options": ["a", "b"]}, 0)

    assert item.question == f"{DEFAULT_QUESTION_SUBJECT} — question 1"


def test_non_mapping_entry_becomes_stub_item() -> None:
    item = normalize_quiz_item("garbage", 0, "Safety")

    assert item.options == STUB_OPTIONS
    assert item.question.endswith("question 1")


def test_input_is_not_mutated() -> None:
    raw = {"question": "Pick", "options": ["a", "a", "b", "c", "d", "e"], "correct_index": 7}
    snapshot = copy.deepcopy(raw)

    normalize_quiz_item(raw, 0)

    assert raw == snapshot


@pytest.mark.parametrize("pool_size", [0, 1, 5, 19, 20, 25])
def test_fill_placeholders_reaches_target_without_trimming(pool_size: int) -> None:
    pool = [QuizItem(question=f"Real question {index}?", options=STUB_OPTIONS) for index in range(pool_size)]

    filled = fill_placeholders(pool, "Safety", 20)

    assert len(filled) == max(20, pool_size)
    assert filled[:pool_size] == pool
    for number, item in enumerate(filled[pool_size:], start=pool_size + 1):
        assert item.is_placeholder
        assert item.question == f"{PLACEHOLDER_MARKER} Safety question {number}"


def test_normalize_quiz_pool_handles_non_list_input() -> None:
    pool = normalize_quiz_pool({"not": "a list"}, "Safety", 3)

    assert len(pool) == 3
    assert all(item.is_placeholder for item in pool)
