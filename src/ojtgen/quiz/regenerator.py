"""Replace selected quiz items with freshly generated ones."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from ojtgen.cancellation import CancellationToken
from ojtgen.generation.generator import AiContentGenerator
from ojtgen.ingestion.normalization import normalize_text
from ojtgen.progress import ProgressCallback, notify
from ojtgen.quiz.models import QuizItem
from ojtgen.quiz.validator import is_placeholder_item

logger = logging.getLogger(__name__)


def _target_indices(indices: Iterable[int], pool_size: int) -> list[int]:
    targets: list[int] = []
    for index in indices:
        if 0 <= index < pool_size and index not in targets:
            targets.append(index)
    return targets


class QuizRegenerator:
    """Splice new questions into a pool at the given positions.

    The input pool is never mutated; callers replace their stored pool with
    the returned list.  When generation falls back, the pool comes back
    unchanged.
    """

    def __init__(self, generator: AiContentGenerator) -> None:
        self._generator = generator

    async def regenerate(
        self,
        source_text: str,
        indices: Iterable[int],
        pool: Sequence[QuizItem],
        *,
        title: str | None = None,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[QuizItem]:
        updated = list(pool)
        targets = _target_indices(indices, len(updated))
        if not targets:
            return updated

        target_set = set(targets)
        kept_questions = [
            item.question
            for index, item in enumerate(updated)
            if index not in target_set and not is_placeholder_item(item)
        ]

        notify(on_progress, f"Regenerating {len(targets)} quiz question(s)...")
        outcome = await self._generator.generate_with_outcome(
            source_text,
            title,
            cancel_token=cancel_token,
            avoid_questions=kept_questions,
        )
        if not outcome.succeeded:
            logger.warning("Quiz regeneration skipped, keeping existing pool: %s", outcome.error)
            return updated

        known = {normalize_text(question) for question in kept_questions}
        fresh: list[QuizItem] = []
        for item in outcome.document.quiz:
            key = normalize_text(item.question)
            if is_placeholder_item(item) or key in known:
                continue
            known.add(key)
            fresh.append(item)

        for target, item in zip(targets, fresh):
            updated[target] = item

        replaced = min(len(targets), len(fresh))
        if replaced < len(targets):
            logger.info("Regeneration produced %d usable item(s) for %d target(s)", replaced, len(targets))
        return updated
