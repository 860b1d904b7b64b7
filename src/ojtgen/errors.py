"""Error taxonomy shared by the ingestion and generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class InputValidationError(ValueError):
    """Raised synchronously for disallowed URLs, wrong file types and oversized files."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (field={self.field})"


@dataclass(slots=True)
class ExtractionFailure(RuntimeError):
    """No usable text could be obtained from a source.

    ``attempts`` keeps one entry per strategy that was tried, in order, so the
    last element is the error that ended the chain.
    """

    source: str
    message: str
    attempts: list[str] = field(default_factory=list)

    @property
    def last_error(self) -> str | None:
        return self.attempts[-1] if self.attempts else None

    def __str__(self) -> str:
        if self.attempts:
            return f"{self.message} (source={self.source}, last_error={self.attempts[-1]})"
        return f"{self.message} (source={self.source})"


@dataclass(slots=True)
class GenerationRequestError(RuntimeError):
    """Domain error raised by generation engines for failed or empty completions."""

    engine: str
    model: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (engine={self.engine}, model={self.model})"


@dataclass(slots=True)
class GenerationCancelled(Exception):
    """Raised when a cancellation token fires during extraction or generation."""

    reason: str
    user_initiated: bool = False

    def __str__(self) -> str:
        return self.reason
