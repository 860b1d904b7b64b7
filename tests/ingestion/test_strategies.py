from __future__ import annotations

import pytest

from ojtgen.cancellation import CancellationToken
from ojtgen.errors import ExtractionFailure, GenerationCancelled
from ojtgen.ingestion.strategies import StrategyOutcome, run_in_order


class _Fixed:
    def __init__(self, name: str, *, value: str | None = None, error: str | None = None) -> None:
        self.name = name
        self._value = value
        self._error = error
        self.calls = 0

    async def attempt(self, payload: str) -> StrategyOutcome[str]:
        self.calls += 1
        if self._error is not None:
            return StrategyOutcome.failure(self.name, self._error)
        return StrategyOutcome.success(self.name, f"{self._value}:{payload}")


class _Raising:
    name = "raising"

    async def attempt(self, payload: str) -> StrategyOutcome[str]:
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_run_in_order_stops_at_first_success() -> None:
    first = _Fixed("first", error="nope")
    second = _Fixed("second", value="ok")
    third = _Fixed("third", value="unused")

    value, outcomes = await run_in_order([first, second, third], "in", source="src", failure_message="failed")

    assert value == "ok:in"
    assert [outcome.name for outcome in outcomes] == ["first", "second"]
    assert third.calls == 0


@pytest.mark.asyncio
async def test_run_in_order_converts_exceptions_and_chains_last_one() -> None:
    with pytest.raises(ExtractionFailure) as exc_info:
        await run_in_order([_Fixed("a", error="bad"), _Raising()], "in", source="src", failure_message="all failed")

    failure = exc_info.value
    assert failure.attempts == ["a: bad", "raising: RuntimeError: boom"]
    assert isinstance(failure.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_run_in_order_without_strategies_fails() -> None:
    with pytest.raises(ExtractionFailure, match="no strategies configured"):
        await run_in_order([], "in", source="src", failure_message="nothing to try")


@pytest.mark.asyncio
async def test_run_in_order_stops_when_token_fires_between_strategies() -> None:
    token = CancellationToken()

    class _CancellingFailure(_Fixed):
        async def attempt(self, payload: str) -> StrategyOutcome[str]:
            token.cancel("Stopped by operator")
            return await super().attempt(payload)

    first = _CancellingFailure("first", error="slow relay")
    second = _Fixed("second", value="ok")

    with pytest.raises(GenerationCancelled, match="Stopped by operator"):
        await run_in_order([first, second], "in", source="src", failure_message="failed", cancel_token=token)

    assert (first.calls, second.calls) == (1, 0)


@pytest.mark.asyncio
async def test_cancellation_raised_inside_a_strategy_is_not_recorded_as_failure() -> None:
    class _Cancelled:
        name = "cancelled"

        async def attempt(self, payload: str) -> StrategyOutcome[str]:
            raise GenerationCancelled("Upload aborted")

    fallback = _Fixed("fallback", value="ok")

    with pytest.raises(GenerationCancelled):
        await run_in_order([_Cancelled(), fallback], "in", source="src", failure_message="failed")

    assert fallback.calls == 0
