"""Chat-completion engines used by the content generator.

Both the cloud engine (OpenRouter) and the local engine (an OpenAI-compatible
server such as vLLM or MLC) speak the same chat-completions protocol, so one
class covers both and only the settings differ.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from ojtgen.config import EngineSettings
from ojtgen.errors import GenerationRequestError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a corporate training designer. "
    "Reply with a single JSON object and nothing else."
)
LOCAL_API_KEY_PLACEHOLDER = "EMPTY"

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@runtime_checkable
class GenerationEngine(Protocol):
    """Text completion backend; must be safe to abandon mid-call."""

    name: str
    model: str

    async def complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        """Return the raw model reply for *prompt*."""

    async def is_available(self) -> bool:
        """Cheap reachability check; never raises."""

    async def aclose(self) -> None:
        """Release network resources."""


def _build_default_client(*, name: str, model: str, api_key: str, base_url: str, timeout_seconds: float) -> Any:
    try:
        from openai import AsyncOpenAI
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise GenerationRequestError(
            engine=name,
            model=model,
            message=f"OpenAI SDK unavailable for {name} engine: {exc}",
        ) from exc

    return AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_seconds, max_retries=0)


def _is_retryable(exc: Exception) -> bool:
    status_code = getattr(exc, "status_code", None)
    if status_code in _RETRYABLE_STATUS_CODES:
        return True

    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True

    return type(exc).__name__ in {
        "RateLimitError",
        "APITimeoutError",
        "APIConnectionError",
        "InternalServerError",
    }


def _extract_text(response: Any, *, engine: str, model: str) -> str:
    choices = getattr(response, "choices", None)
    if not isinstance(choices, list) or not choices:
        raise GenerationRequestError(engine=engine, model=model, message="Generation response missing choices")

    first = choices[0]
    message = getattr(first, "message", None)
    content = getattr(message, "content", None) if message is not None else None
    if content is None and isinstance(first, dict):
        message_dict = first.get("message", {})
        if isinstance(message_dict, dict):
            content = message_dict.get("content")

    if isinstance(content, list):
        content = "".join(str(part.get("text", "")) for part in content if isinstance(part, dict))

    text = str(content or "").strip()
    if not text:
        raise GenerationRequestError(engine=engine, model=model, message="Generation response returned empty text")
    return text


class OpenAIChatEngine:
    """Chat-completions wrapper with response validation and retry semantics."""

    def __init__(
        self,
        *,
        name: str,
        model: str,
        base_url: str,
        api_key: str | None = None,
        client: Any | None = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        retry_base_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if retry_base_seconds < 0:
            raise ValueError("retry_base_seconds cannot be negative")
        if not model.strip():
            raise ValueError("model cannot be empty")

        self.name = name
        self.model = model.strip()
        self.base_url = base_url
        self._owns_client = client is None
        self._client = client or _build_default_client(
            name=name,
            model=self.model,
            api_key=api_key or LOCAL_API_KEY_PLACEHOLDER,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
        )
        self._max_retries = max_retries
        self._retry_base_seconds = retry_base_seconds
        self._sleep = sleep
        self._system_prompt = system_prompt

    @classmethod
    def cloud(cls, settings: EngineSettings, **kwargs: Any) -> "OpenAIChatEngine":
        if not settings.cloud_api_key:
            raise ValueError("OPENROUTER_API_KEY is required for the cloud engine")
        return cls(
            name="cloud",
            model=settings.cloud_model,
            base_url=settings.cloud_base_url,
            api_key=settings.cloud_api_key,
            **kwargs,
        )

    @classmethod
    def local(cls, settings: EngineSettings, **kwargs: Any) -> "OpenAIChatEngine":
        if not settings.local_base_url:
            raise ValueError("OJT_LOCAL_AI_URL is required for the local engine")
        return cls(
            name="local",
            model=settings.local_model,
            base_url=settings.local_base_url,
            **kwargs,
        )

    async def complete(self, prompt: str, *, temperature: float = 0.3, max_tokens: int = 4096) -> str:
        prompt_text = prompt.strip()
        if not prompt_text:
            raise ValueError("prompt cannot be empty")
        if max_tokens < 1:
            raise ValueError("max_tokens must be >= 1")

        response = await self._request_completion(prompt_text, temperature=temperature, max_tokens=max_tokens)
        return _extract_text(response, engine=self.name, model=self.model)

    async def _request_completion(self, prompt: str, *, temperature: float, max_tokens: int) -> Any:
        attempts = self._max_retries + 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                return await self._client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": self._system_prompt},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
            except Exception as exc:
                last_error = exc
                should_retry = attempt < self._max_retries and _is_retryable(exc)
                if not should_retry:
                    break
                delay = self._retry_base_seconds * (2**attempt)
                logger.warning(
                    "%s engine request failed (%s); retrying in %.2fs (%d/%d)",
                    self.name,
                    exc,
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                await self._sleep(delay)

        detail = str(last_error) if last_error is not None else "unknown engine error"
        raise GenerationRequestError(
            engine=self.name,
            model=self.model,
            message=f"Generation request failed after {attempts} attempt(s): {detail}",
        ) from last_error

    async def is_available(self) -> bool:
        try:
            await self._client.models.list()
        except Exception as exc:
            logger.debug("%s engine at %s is unreachable: %s", self.name, self.base_url, exc)
            return False
        return True

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.close()


async def select_engine(settings: EngineSettings, **kwargs: Any) -> OpenAIChatEngine:
    """Build the engine for ``settings.mode``.

    ``auto`` prefers a reachable local server and otherwise uses the cloud
    engine; with no API key it keeps the local engine even when the
    reachability check fails.
    """

    if settings.mode == "cloud":
        return OpenAIChatEngine.cloud(settings, **kwargs)
    if settings.mode == "local":
        return OpenAIChatEngine.local(settings, **kwargs)

    if settings.local_base_url:
        local = OpenAIChatEngine.local(settings, **kwargs)
        if not settings.cloud_api_key or await local.is_available():
            logger.info("Auto engine selection: using local model %s", local.model)
            return local
        await local.aclose()
        logger.info("Local engine unreachable; falling back to cloud model %s", settings.cloud_model)

    return OpenAIChatEngine.cloud(settings, **kwargs)
