"""Ordered fallback strategies with a uniform attempt contract.

Relay fetching and PDF text extraction are both "try these in order until
one works" problems.  Each step is a strategy whose ``attempt()`` returns a
``StrategyOutcome`` instead of raising, and ``run_in_order`` walks the list.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Generic, Protocol, Sequence, TypeVar, runtime_checkable

from ojtgen.cancellation import CancellationToken
from ojtgen.errors import ExtractionFailure, GenerationCancelled

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", contravariant=True)
OutputT = TypeVar("OutputT")


@dataclass(slots=True)
class StrategyOutcome(Generic[OutputT]):
    """Result of one strategy attempt: either a value or an error message."""

    name: str
    value: OutputT | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def success(cls, name: str, value: OutputT) -> "StrategyOutcome[OutputT]":
        return cls(name=name, value=value)

    @classmethod
    def failure(cls, name: str, error: str) -> "StrategyOutcome[OutputT]":
        return cls(name=name, error=error)


@runtime_checkable
class Strategy(Protocol[InputT, OutputT]):
    """Protocol every fallback step implements."""

    name: str

    async def attempt(self, payload: InputT) -> StrategyOutcome[OutputT]:
        """Try once and report the outcome without raising."""


async def run_in_order(
    strategies: Sequence[Strategy[InputT, OutputT]],
    payload: InputT,
    *,
    source: str,
    failure_message: str,
    cancel_token: CancellationToken | None = None,
) -> tuple[OutputT, list[StrategyOutcome[OutputT]]]:
    """Return the first successful value and the outcomes seen on the way.

    Strategies are attempted sequentially in list order, once each.  When all
    of them fail, ``ExtractionFailure`` is raised carrying every error message
    in attempt order.  A cancelled *cancel_token* stops the walk before the
    next strategy starts and raises ``GenerationCancelled``.
    """

    if not strategies:
        raise ExtractionFailure(source, failure_message, attempts=["no strategies configured"])

    outcomes: list[StrategyOutcome[OutputT]] = []
    last_exception: Exception | None = None

    for strategy in strategies:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            outcome = await strategy.attempt(payload)
        except GenerationCancelled:
            raise
        except Exception as exc:
            last_exception = exc
            outcome = StrategyOutcome.failure(strategy.name, f"{type(exc).__name__}: {exc}")

        outcomes.append(outcome)
        if outcome.ok:
            if len(outcomes) > 1:
                logger.info("Strategy '%s' succeeded after %d failed attempt(s)", outcome.name, len(outcomes) - 1)
            return outcome.value, outcomes  # type: ignore[return-value]

        logger.warning("Strategy '%s' failed for %s: %s", outcome.name, source, outcome.error)

    attempts = [f"{outcome.name}: {outcome.error}" for outcome in outcomes]
    raise ExtractionFailure(source, failure_message, attempts=attempts) from last_exception
