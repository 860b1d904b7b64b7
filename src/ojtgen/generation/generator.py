"""AI content generation with a guaranteed fallback document.

``AiContentGenerator`` never lets a generation failure escape: engine errors,
unparseable replies, timeouts and cancellation all end in the raw-content
fallback document.  Only ``asyncio.CancelledError`` of the calling task
propagates, because that is the caller tearing down, not a generation result.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Awaitable, Mapping, Sequence, TypeVar

from ojtgen.config import (
    DEFAULT_GENERATION_MAX_TOKENS,
    DEFAULT_GENERATION_TEMPERATURE,
    DEFAULT_GENERATION_TIMEOUT_SECONDS,
    DEFAULT_QUIZ_POOL_SIZE,
    PipelineSettings,
)
from ojtgen.cancellation import CancellationToken
from ojtgen.errors import GenerationCancelled, GenerationRequestError
from ojtgen.generation.engines import GenerationEngine
from ojtgen.generation.fallback import DEFAULT_TEAM, DEFAULT_TITLE, build_fallback_document
from ojtgen.generation.models import GeneratedDocument, Section
from ojtgen.generation.parser import parse_json_response
from ojtgen.generation.prompts import build_content_prompt
from ojtgen.generation.sanitize import sanitize_html, sanitize_text
from ojtgen.ingestion.normalization import normalize_whitespace
from ojtgen.progress import ProgressCallback, notify
from ojtgen.quiz.normalizer import normalize_quiz_pool

logger = logging.getLogger(__name__)

DEFAULT_SECTION_TITLE = "Learning goals"
DEFAULT_SECTION_CONTENT = "<p>Please review the content.</p>"

T = TypeVar("T")


class GenerationState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    SUCCEEDED = "succeeded"
    FALLBACK_SUCCEEDED = "fallback_succeeded"


@dataclass(slots=True)
class GenerationOutcome:
    document: GeneratedDocument
    state: GenerationState
    transitions: list[GenerationState] = field(default_factory=list)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is GenerationState.SUCCEEDED


def _drain(task: asyncio.Future[Any]) -> None:
    if not task.cancelled():
        task.exception()


def _abandon(task: asyncio.Future[Any]) -> None:
    """Cancel *task* without waiting for it and swallow its eventual result."""

    task.cancel()
    task.add_done_callback(_drain)


def _build_sections(raw_sections: Any) -> list[Section]:
    sections: list[Section] = []
    if isinstance(raw_sections, list):
        for raw in raw_sections:
            if not isinstance(raw, Mapping):
                continue
            title = sanitize_text(str(raw.get("title") or ""))
            content = sanitize_html(str(raw.get("content") or ""))
            if title or content:
                sections.append(Section(title=title or DEFAULT_SECTION_TITLE, content=content))
    if not sections:
        sections = [Section(title=DEFAULT_SECTION_TITLE, content=DEFAULT_SECTION_CONTENT)]
    return sections


class AiContentGenerator:
    """Turn one text segment into a ``GeneratedDocument`` via a pluggable engine."""

    def __init__(
        self,
        engine: GenerationEngine,
        *,
        quiz_pool_size: int = DEFAULT_QUIZ_POOL_SIZE,
        timeout_seconds: float = DEFAULT_GENERATION_TIMEOUT_SECONDS,
        temperature: float = DEFAULT_GENERATION_TEMPERATURE,
        max_tokens: int = DEFAULT_GENERATION_MAX_TOKENS,
    ) -> None:
        if quiz_pool_size < 1:
            raise ValueError("quiz_pool_size must be >= 1")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self._engine = engine
        self._quiz_pool_size = quiz_pool_size
        self._timeout_seconds = timeout_seconds
        self._temperature = temperature
        self._max_tokens = max_tokens

    @classmethod
    def from_settings(cls, engine: GenerationEngine, settings: PipelineSettings) -> "AiContentGenerator":
        return cls(
            engine,
            quiz_pool_size=settings.quiz_pool_size,
            timeout_seconds=settings.generation_timeout_seconds,
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
        )

    @property
    def engine(self) -> GenerationEngine:
        return self._engine

    @property
    def quiz_pool_size(self) -> int:
        return self._quiz_pool_size

    async def generate(
        self,
        text: str,
        title: str | None = None,
        *,
        step: int = 1,
        total_steps: int = 1,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
        avoid_questions: Sequence[str] = (),
    ) -> GeneratedDocument:
        outcome = await self.generate_with_outcome(
            text,
            title,
            step=step,
            total_steps=total_steps,
            cancel_token=cancel_token,
            on_progress=on_progress,
            avoid_questions=avoid_questions,
        )
        return outcome.document

    async def generate_with_outcome(
        self,
        text: str,
        title: str | None = None,
        *,
        step: int = 1,
        total_steps: int = 1,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
        avoid_questions: Sequence[str] = (),
    ) -> GenerationOutcome:
        transitions = [GenerationState.IDLE]
        display_title = sanitize_text(title or "") or DEFAULT_TITLE
        user_initiated = False

        transitions.append(GenerationState.GENERATING)
        notify(on_progress, f"AI analyzing ({self._engine.name})...")
        try:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            prompt = build_content_prompt(
                display_title,
                text,
                step=step,
                total_steps=total_steps,
                quiz_count=self._quiz_pool_size,
                avoid_questions=avoid_questions,
            )
            reply = await self._await_with_deadline(
                self._engine.complete(prompt, temperature=self._temperature, max_tokens=self._max_tokens),
                cancel_token,
            )
            notify(on_progress, "Parsing AI response...")
            payload = parse_json_response(reply)
            document = self._build_document(
                payload,
                display_title if title else None,
                step=step,
                total_steps=total_steps,
            )
        except GenerationCancelled as exc:
            error = str(exc)
            user_initiated = exc.user_initiated
        except TimeoutError:
            error = f"AI generation timed out after {self._timeout_seconds:g}s"
        except Exception as exc:
            error = str(exc) or type(exc).__name__
        else:
            transitions.append(GenerationState.SUCCEEDED)
            notify(on_progress, "AI generation complete")
            logger.info(
                "Generated step %d/%d of '%s' with %s (%d sections, %d quiz items)",
                step,
                total_steps,
                display_title,
                self._engine.model,
                len(document.sections),
                len(document.quiz),
            )
            return GenerationOutcome(document=document, state=GenerationState.SUCCEEDED, transitions=transitions)

        logger.warning("AI generation for '%s' fell back to raw content: %s", display_title, error)
        notify(on_progress, "AI generation failed; using original content")
        document = build_fallback_document(
            text,
            display_title,
            error,
            user_initiated=user_initiated,
            step=step,
            total_steps=total_steps,
            ai_engine=self._engine.name,
            ai_model=self._engine.model,
        )
        transitions.append(GenerationState.FALLBACK_SUCCEEDED)
        return GenerationOutcome(
            document=document,
            state=GenerationState.FALLBACK_SUCCEEDED,
            transitions=transitions,
            error=error,
        )

    async def _await_with_deadline(self, call: Awaitable[T], cancel_token: CancellationToken | None) -> T:
        """Await *call* until it finishes, the timeout passes or the token fires.

        On timeout or cancellation the call is abandoned rather than awaited,
        so the fallback is produced without waiting on the network.
        """

        task = asyncio.ensure_future(call)
        waiters: set[asyncio.Future[Any]] = {task}
        cancel_waiter: asyncio.Future[Any] | None = None
        if cancel_token is not None:
            cancel_waiter = asyncio.ensure_future(cancel_token.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(waiters, timeout=self._timeout_seconds, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            _abandon(task)
            raise
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if task in done:
            if task.cancelled():
                # cancelled inside the engine call rather than through the token
                raise GenerationRequestError(
                    engine=self._engine.name,
                    model=self._engine.model,
                    message="Generation request was cancelled",
                )
            return task.result()

        _abandon(task)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        raise TimeoutError(f"generation exceeded {self._timeout_seconds:g}s")

    def _build_document(
        self,
        payload: Mapping[str, Any],
        title: str | None,
        *,
        step: int,
        total_steps: int,
    ) -> GeneratedDocument:
        title = title or sanitize_text(str(payload.get("title") or "")) or DEFAULT_TITLE
        team = sanitize_text(str(payload.get("team") or "")) or DEFAULT_TEAM
        summary_raw = payload.get("summary")
        summary = normalize_whitespace(sanitize_text(str(summary_raw))) if summary_raw else None

        return GeneratedDocument(
            title=title,
            team=team,
            sections=_build_sections(payload.get("sections")),
            quiz=normalize_quiz_pool(payload.get("quiz"), title, self._quiz_pool_size),
            step=step,
            total_steps=total_steps,
            ai_processed=True,
            ai_engine=self._engine.name,
            ai_model=self._engine.model,
            summary=summary or None,
        )
