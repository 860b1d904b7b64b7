"""Runtime configuration for extraction, splitting and AI generation."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping


DEFAULT_MAX_URL_EXTRACT_CHARS = 15000
DEFAULT_RELAY_TIMEOUT_SECONDS = 10.0
DEFAULT_FALLBACK_RELAYS = (
    "https://api.allorigins.win/raw?url={url}",
    "https://corsproxy.io/?{url}",
)
DEFAULT_PDF_MAX_FILE_BYTES = 50 * 1024 * 1024
DEFAULT_PDF_MAX_PAGES = 100
DEFAULT_PDF_MIN_TEXT_CHARS = 100
DEFAULT_OCR_MAX_PAGES = 10
DEFAULT_OCR_RENDER_SCALE = 2.0
DEFAULT_OCR_LANGUAGES = "kor+eng"
DEFAULT_OCR_MIN_TEXT_CHARS = 50
DEFAULT_OCR_MIN_ALNUM_RATIO = 0.3
DEFAULT_QUIZ_POOL_SIZE = 20
DEFAULT_CHARS_PER_MINUTE = 500
DEFAULT_MINUTES_PER_STEP = 40
DEFAULT_MAX_PARALLEL_STEPS = 4
DEFAULT_GENERATION_TIMEOUT_SECONDS = 60.0
DEFAULT_GENERATION_TEMPERATURE = 0.3
DEFAULT_GENERATION_MAX_TOKENS = 4096

DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_CLOUD_MODEL = "google/gemini-2.0-flash-001"
DEFAULT_LOCAL_MODEL = "Qwen/Qwen3-4B"
ENGINE_MODES = frozenset({"cloud", "local", "auto"})

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    value = int(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_positive_float(*, name: str, raw_value: str, minimum: float = 0.001) -> float:
    value = float(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_ratio(*, name: str, raw_value: str) -> float:
    value = float(raw_value)
    if not 0.0 <= value < 1.0:
        raise ValueError(f"{name} must be in [0, 1)")
    return value


def _parse_bool(*, name: str, raw_value: str) -> bool:
    lowered = raw_value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag")


def _validate_base_url(*, name: str, value: str) -> str:
    if not value:
        raise ValueError(f"{name} cannot be empty")
    if not (value.startswith("http://") or value.startswith("https://")):
        raise ValueError(f"{name} must start with http:// or https://")
    return value.rstrip("/")


@dataclass(frozen=True, slots=True)
class PipelineSettings:
    """Validated knobs for extraction, splitting, quiz sizing and generation limits."""

    max_url_extract_chars: int = DEFAULT_MAX_URL_EXTRACT_CHARS
    relay_timeout_seconds: float = DEFAULT_RELAY_TIMEOUT_SECONDS
    proxy_worker_url: str | None = None
    fallback_relays: tuple[str, ...] = DEFAULT_FALLBACK_RELAYS
    pdf_max_file_bytes: int = DEFAULT_PDF_MAX_FILE_BYTES
    pdf_max_pages: int = DEFAULT_PDF_MAX_PAGES
    pdf_min_text_chars: int = DEFAULT_PDF_MIN_TEXT_CHARS
    ocr_max_pages: int = DEFAULT_OCR_MAX_PAGES
    ocr_render_scale: float = DEFAULT_OCR_RENDER_SCALE
    ocr_languages: str = DEFAULT_OCR_LANGUAGES
    ocr_min_text_chars: int = DEFAULT_OCR_MIN_TEXT_CHARS
    ocr_min_alnum_ratio: float = DEFAULT_OCR_MIN_ALNUM_RATIO
    quiz_pool_size: int = DEFAULT_QUIZ_POOL_SIZE
    chars_per_minute: int = DEFAULT_CHARS_PER_MINUTE
    minutes_per_step: int = DEFAULT_MINUTES_PER_STEP
    max_parallel_steps: int = DEFAULT_MAX_PARALLEL_STEPS
    generation_timeout_seconds: float = DEFAULT_GENERATION_TIMEOUT_SECONDS
    generation_temperature: float = DEFAULT_GENERATION_TEMPERATURE
    generation_max_tokens: int = DEFAULT_GENERATION_MAX_TOKENS
    auto_regenerate: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PipelineSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        def _raw(name: str, default: object) -> str:
            value = source.get(name, str(default)).strip()
            if not value:
                raise ValueError(f"{name} cannot be empty")
            return value

        worker_raw = source.get("OJT_PROXY_WORKER_URL", "").strip()
        proxy_worker_url = _validate_base_url(name="OJT_PROXY_WORKER_URL", value=worker_raw) if worker_raw else None

        relays_raw = source.get("OJT_FALLBACK_RELAYS")
        if relays_raw is None:
            fallback_relays = DEFAULT_FALLBACK_RELAYS
        else:
            fallback_relays = tuple(item.strip() for item in relays_raw.split(",") if item.strip())
            for template in fallback_relays:
                if "{url}" not in template and "{raw_url}" not in template:
                    raise ValueError("OJT_FALLBACK_RELAYS entries must contain {url} or {raw_url}")

        temperature = float(_raw("OJT_GENERATION_TEMPERATURE", DEFAULT_GENERATION_TEMPERATURE))
        if not 0.0 <= temperature <= 2.0:
            raise ValueError("OJT_GENERATION_TEMPERATURE must be in [0, 2]")

        return cls(
            max_url_extract_chars=_parse_positive_int(
                name="OJT_MAX_URL_EXTRACT_CHARS",
                raw_value=_raw("OJT_MAX_URL_EXTRACT_CHARS", DEFAULT_MAX_URL_EXTRACT_CHARS),
                minimum=100,
            ),
            relay_timeout_seconds=_parse_positive_float(
                name="OJT_RELAY_TIMEOUT_SECONDS",
                raw_value=_raw("OJT_RELAY_TIMEOUT_SECONDS", DEFAULT_RELAY_TIMEOUT_SECONDS),
                minimum=0.1,
            ),
            proxy_worker_url=proxy_worker_url,
            fallback_relays=fallback_relays,
            pdf_max_file_bytes=_parse_positive_int(
                name="OJT_PDF_MAX_FILE_BYTES",
                raw_value=_raw("OJT_PDF_MAX_FILE_BYTES", DEFAULT_PDF_MAX_FILE_BYTES),
            ),
            pdf_max_pages=_parse_positive_int(
                name="OJT_PDF_MAX_PAGES",
                raw_value=_raw("OJT_PDF_MAX_PAGES", DEFAULT_PDF_MAX_PAGES),
            ),
            pdf_min_text_chars=_parse_positive_int(
                name="OJT_PDF_MIN_TEXT_CHARS",
                raw_value=_raw("OJT_PDF_MIN_TEXT_CHARS", DEFAULT_PDF_MIN_TEXT_CHARS),
                minimum=0,
            ),
            ocr_max_pages=_parse_positive_int(
                name="OJT_OCR_MAX_PAGES",
                raw_value=_raw("OJT_OCR_MAX_PAGES", DEFAULT_OCR_MAX_PAGES),
            ),
            ocr_render_scale=_parse_positive_float(
                name="OJT_OCR_RENDER_SCALE",
                raw_value=_raw("OJT_OCR_RENDER_SCALE", DEFAULT_OCR_RENDER_SCALE),
                minimum=0.5,
            ),
            ocr_languages=_raw("OJT_OCR_LANGUAGES", DEFAULT_OCR_LANGUAGES),
            ocr_min_text_chars=_parse_positive_int(
                name="OJT_OCR_MIN_TEXT_CHARS",
                raw_value=_raw("OJT_OCR_MIN_TEXT_CHARS", DEFAULT_OCR_MIN_TEXT_CHARS),
                minimum=0,
            ),
            ocr_min_alnum_ratio=_parse_ratio(
                name="OJT_OCR_MIN_ALNUM_RATIO",
                raw_value=_raw("OJT_OCR_MIN_ALNUM_RATIO", DEFAULT_OCR_MIN_ALNUM_RATIO),
            ),
            quiz_pool_size=_parse_positive_int(
                name="OJT_QUIZ_POOL_SIZE",
                raw_value=_raw("OJT_QUIZ_POOL_SIZE", DEFAULT_QUIZ_POOL_SIZE),
            ),
            chars_per_minute=_parse_positive_int(
                name="OJT_CHARS_PER_MINUTE",
                raw_value=_raw("OJT_CHARS_PER_MINUTE", DEFAULT_CHARS_PER_MINUTE),
            ),
            minutes_per_step=_parse_positive_int(
                name="OJT_MINUTES_PER_STEP",
                raw_value=_raw("OJT_MINUTES_PER_STEP", DEFAULT_MINUTES_PER_STEP),
            ),
            max_parallel_steps=_parse_positive_int(
                name="OJT_MAX_PARALLEL_STEPS",
                raw_value=_raw("OJT_MAX_PARALLEL_STEPS", DEFAULT_MAX_PARALLEL_STEPS),
            ),
            generation_timeout_seconds=_parse_positive_float(
                name="OJT_GENERATION_TIMEOUT_SECONDS",
                raw_value=_raw("OJT_GENERATION_TIMEOUT_SECONDS", DEFAULT_GENERATION_TIMEOUT_SECONDS),
                minimum=0.1,
            ),
            generation_temperature=temperature,
            generation_max_tokens=_parse_positive_int(
                name="OJT_GENERATION_MAX_TOKENS",
                raw_value=_raw("OJT_GENERATION_MAX_TOKENS", DEFAULT_GENERATION_MAX_TOKENS),
                minimum=64,
            ),
            auto_regenerate=_parse_bool(
                name="OJT_AUTO_REGENERATE",
                raw_value=source.get("OJT_AUTO_REGENERATE", "false"),
            ),
        )


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Validated settings for the cloud (OpenRouter) and local (OpenAI-compatible) engines."""

    mode: str = "cloud"
    cloud_api_key: str | None = None
    cloud_base_url: str = DEFAULT_OPENROUTER_BASE_URL
    cloud_model: str = DEFAULT_CLOUD_MODEL
    local_base_url: str | None = None
    local_model: str = DEFAULT_LOCAL_MODEL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        mode = source.get("OJT_AI_ENGINE", "cloud").strip().lower()
        if mode not in ENGINE_MODES:
            allowed = ", ".join(sorted(ENGINE_MODES))
            raise ValueError(f"OJT_AI_ENGINE must be one of: {allowed}")

        api_key = source.get("OPENROUTER_API_KEY", "").strip() or None
        cloud_base_url = _validate_base_url(
            name="OPENROUTER_BASE_URL",
            value=source.get("OPENROUTER_BASE_URL", DEFAULT_OPENROUTER_BASE_URL).strip(),
        )
        cloud_model = source.get("OJT_CLOUD_MODEL", DEFAULT_CLOUD_MODEL).strip()
        local_model = source.get("OJT_LOCAL_MODEL", DEFAULT_LOCAL_MODEL).strip()
        local_raw = source.get("OJT_LOCAL_AI_URL", "").strip()
        local_base_url = _validate_base_url(name="OJT_LOCAL_AI_URL", value=local_raw) if local_raw else None

        missing: list[str] = []
        if mode == "cloud" and not api_key:
            missing.append("OPENROUTER_API_KEY")
        if mode == "local" and not local_base_url:
            missing.append("OJT_LOCAL_AI_URL")
        if mode == "auto" and not api_key and not local_base_url:
            missing.append("OPENROUTER_API_KEY or OJT_LOCAL_AI_URL")
        if missing:
            missing_text = ", ".join(missing)
            raise ValueError(f"Missing required engine environment variables: {missing_text}")

        if not cloud_model:
            raise ValueError("OJT_CLOUD_MODEL cannot be empty")
        if not local_model:
            raise ValueError("OJT_LOCAL_MODEL cannot be empty")

        return cls(
            mode=mode,
            cloud_api_key=api_key,
            cloud_base_url=cloud_base_url,
            cloud_model=cloud_model,
            local_base_url=local_base_url,
            local_model=local_model,
        )
