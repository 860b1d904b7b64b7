from __future__ import annotations

import pytest

from ojtgen.ingestion.splitter import (
    calculate_required_steps,
    estimate_reading_time,
    split_content_for_steps,
    split_paragraphs,
)


def test_two_paragraphs_into_two_steps() -> None:
    assert split_content_for_steps("Intro.\n\nDetails.", 2) == ["Intro.", "Details."]


def test_single_step_returns_text_unchanged() -> None:
    text = "Short text\n\n\nwith odd   spacing"

    assert split_content_for_steps(text, 1) == [text]
    assert split_content_for_steps(text, 0) == [text]


def test_fewer_paragraphs_than_steps_pads_with_empty_segments() -> None:
    assert split_content_for_steps("Only one paragraph.", 3) == ["Only one paragraph.", "", ""]


def test_chunks_are_contiguous_and_ordered() -> None:
    text = "\n\n".join(f"P{index}" for index in range(1, 8))

    segments = split_content_for_steps(text, 3)

    assert segments == ["P1\n\nP2\n\nP3", "P4\n\nP5\n\nP6", "P7"]


def test_blank_trailing_chunk_is_dropped() -> None:
    # ceil(5 / 4) == 2 fills three chunks and leaves the fourth empty
    text = "\n\n".join(f"P{index}" for index in range(1, 6))

    segments = split_content_for_steps(text, 4)

    assert segments == ["P1\n\nP2", "P3\n\nP4", "P5"]


@pytest.mark.parametrize("num_steps", [1, 2, 3, 4, 5, 7, 12])
@pytest.mark.parametrize("paragraph_count", [1, 2, 5, 9, 13])
def test_every_paragraph_survives_exactly_once(num_steps: int, paragraph_count: int) -> None:
    paragraphs = [f"Paragraph {index} body." for index in range(paragraph_count)]
    text = "\n\n\n".join(paragraphs)

    segments = split_content_for_steps(text, num_steps)
    rejoined = [paragraph for segment in segments for paragraph in split_paragraphs(segment)]

    assert rejoined == paragraphs


def test_estimate_reading_time_rounds_up() -> None:
    assert estimate_reading_time("") == 0
    assert estimate_reading_time("a" * 500) == 1
    assert estimate_reading_time("a" * 501) == 2
    assert estimate_reading_time("a" * 100, chars_per_minute=10) == 10


def test_calculate_required_steps_uses_minutes_per_step() -> None:
    assert calculate_required_steps("") == 1
    assert calculate_required_steps("a" * 500 * 40) == 1
    assert calculate_required_steps("a" * (500 * 40 + 1)) == 2
    assert calculate_required_steps("a" * 1000, chars_per_minute=10, minutes_per_step=30) == 4
