"""Cooperative cancellation signal passed into extraction and generation calls."""

from __future__ import annotations

import asyncio

from ojtgen.errors import GenerationCancelled

DEFAULT_CANCEL_REASON = "Generation cancelled by user"


class CancellationToken:
    """One-shot signal; the first ``cancel()`` wins and later calls are ignored."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._user_initiated = False

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def user_initiated(self) -> bool:
        return self._user_initiated

    def cancel(self, reason: str = DEFAULT_CANCEL_REASON, *, user_initiated: bool = True) -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._user_initiated = user_initiated
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelled(self._reason or DEFAULT_CANCEL_REASON, user_initiated=self._user_initiated)
