from __future__ import annotations

import pytest

from ojtgen.config import (
    DEFAULT_FALLBACK_RELAYS,
    DEFAULT_OPENROUTER_BASE_URL,
    EngineSettings,
    PipelineSettings,
)


def test_pipeline_settings_defaults_from_empty_env() -> None:
    settings = PipelineSettings.from_env({})

    assert settings == PipelineSettings()
    assert settings.quiz_pool_size == 20
    assert settings.pdf_min_text_chars == 100
    assert settings.ocr_min_alnum_ratio == 0.3
    assert settings.fallback_relays == DEFAULT_FALLBACK_RELAYS
    assert settings.proxy_worker_url is None
    assert settings.auto_regenerate is False


def test_pipeline_settings_read_overrides() -> None:
    settings = PipelineSettings.from_env(
        {
            "OJT_PROXY_WORKER_URL": "https://proxy.example.workers.dev/",
            "OJT_FALLBACK_RELAYS": "https://relay.example/?u={url}, {raw_url}",
            "OJT_OCR_LANGUAGES": "eng",
            "OJT_QUIZ_POOL_SIZE": "12",
            "OJT_AUTO_REGENERATE": "yes",
            "OJT_GENERATION_TIMEOUT_SECONDS": "2.5",
        }
    )

    assert settings.proxy_worker_url == "https://proxy.example.workers.dev"
    assert settings.fallback_relays == ("https://relay.example/?u={url}", "{raw_url}")
    assert settings.ocr_languages == "eng"
    assert settings.quiz_pool_size == 12
    assert settings.auto_regenerate is True
    assert settings.generation_timeout_seconds == 2.5


@pytest.mark.parametrize(
    "env, match",
    [
        ({"OJT_QUIZ_POOL_SIZE": "0"}, "OJT_QUIZ_POOL_SIZE"),
        ({"OJT_OCR_MIN_ALNUM_RATIO": "1.5"}, "OJT_OCR_MIN_ALNUM_RATIO"),
        ({"OJT_FALLBACK_RELAYS": "https://relay.example/"}, "OJT_FALLBACK_RELAYS"),
        ({"OJT_PROXY_WORKER_URL": "proxy.example"}, "OJT_PROXY_WORKER_URL"),
        ({"OJT_AUTO_REGENERATE": "maybe"}, "OJT_AUTO_REGENERATE"),
        ({"OJT_GENERATION_TEMPERATURE": "3"}, "OJT_GENERATION_TEMPERATURE"),
        ({"OJT_OCR_LANGUAGES": "  "}, "OJT_OCR_LANGUAGES"),
    ],
)
def test_pipeline_settings_reject_invalid_values(env: dict[str, str], match: str) -> None:
    with pytest.raises(ValueError, match=match):
        PipelineSettings.from_env(env)


def test_engine_settings_cloud_mode_requires_api_key() -> None:
    with pytest.raises(ValueError, match="OPENROUTER_API_KEY"):
        EngineSettings.from_env({})

    settings = EngineSettings.from_env({"OPENROUTER_API_KEY": "sk-or-v1-test"})

    assert settings.mode == "cloud"
    assert settings.cloud_base_url == DEFAULT_OPENROUTER_BASE_URL


def test_engine_settings_local_and_auto_modes() -> None:
    local = EngineSettings.from_env({"OJT_AI_ENGINE": "LOCAL", "OJT_LOCAL_AI_URL": "http://127.0.0.1:8000/v1/"})
    assert local.mode == "local"
    assert local.local_base_url == "http://127.0.0.1:8000/v1"

    with pytest.raises(ValueError, match="OJT_LOCAL_AI_URL"):
        EngineSettings.from_env({"OJT_AI_ENGINE": "local", "OPENROUTER_API_KEY": "sk"})
    with pytest.raises(ValueError, match="OPENROUTER_API_KEY or OJT_LOCAL_AI_URL"):
        EngineSettings.from_env({"OJT_AI_ENGINE": "auto"})
    with pytest.raises(ValueError, match="OJT_AI_ENGINE"):
        EngineSettings.from_env({"OJT_AI_ENGINE": "gpu"})
