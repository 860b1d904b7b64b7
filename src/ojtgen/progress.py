"""Optional human-readable progress reporting."""

from __future__ import annotations

from typing import Callable

ProgressCallback = Callable[[str], None]


def notify(on_progress: ProgressCallback | None, message: str) -> None:
    """Forward *message* to the observer when one was supplied."""

    if on_progress is not None:
        on_progress(message)


def prefixed(on_progress: ProgressCallback | None, prefix: str) -> ProgressCallback | None:
    """Wrap an observer so every message starts with *prefix* (e.g. ``"Step 2: "``)."""

    if on_progress is None:
        return None

    def _forward(message: str) -> None:
        on_progress(f"{prefix}{message}")

    return _forward
