from __future__ import annotations

import json

import ojtgen.cli.generate_document as generate_cli
from ojtgen.cli.generate_document import main as generate_main

_ENV_KEYS = ("OPENROUTER_API_KEY", "OJT_AI_ENGINE", "OJT_LOCAL_AI_URL", "OJT_QUIZ_POOL_SIZE")


class _StubEngine:
    name = "stub"
    model = "stub-model"

    def __init__(self) -> None:
        self.closed = False

    async def complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        return json.dumps(
            {
                "title": "Stub",
                "team": "Ops",
                "sections": [{"title": "Overview", "content": "<p>Body</p>"}],
                "quiz": [],
            }
        )

    async def is_available(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


def _clear_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_generate_cli_prints_documents_as_json(monkeypatch, capsys) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-v1-test")
    monkeypatch.setenv("OJT_QUIZ_POOL_SIZE", "5")
    engine = _StubEngine()

    async def _fake_select(settings, **kwargs):
        return engine

    monkeypatch.setattr(generate_cli, "select_engine", _fake_select)

    exit_code = generate_main(["--text", "Wear gloves.\n\nCheck the exits.", "--title", "Safety", "--team", "Plant"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert engine.closed
    assert payload["extraction"]["method"] == "plain"
    document = payload["documents"][0]
    assert document["title"] == "Safety"
    assert document["team"] == "Plant"
    assert document["ai_processed"] is True
    assert len(document["quiz"]) == 5
    assert document["validation"]["stats"]["placeholders"] == 5


def test_generate_cli_reports_config_errors(monkeypatch, capsys) -> None:
    _clear_env(monkeypatch)

    exit_code = generate_main(["--text", "anything"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 2
    assert payload["stage"] == "config"
    assert "OPENROUTER_API_KEY" in payload["error"]


def test_generate_cli_reports_blocked_url(monkeypatch, capsys) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-v1-test")
    engine = _StubEngine()

    async def _fake_select(settings, **kwargs):
        return engine

    monkeypatch.setattr(generate_cli, "select_engine", _fake_select)

    exit_code = generate_main(["--url", "http://localhost:8080/admin"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload["stage"] == "extraction"
    assert "not allowed" in payload["error"]
    assert engine.closed


def test_generate_cli_reports_missing_file(monkeypatch, capsys, tmp_path) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-v1-test")

    exit_code = generate_main(["--pdf", str(tmp_path / "missing.pdf")])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload["stage"] == "input"
