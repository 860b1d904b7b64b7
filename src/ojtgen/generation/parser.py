"""Best-effort JSON extraction from model replies."""

from __future__ import annotations

from dataclasses import dataclass
import json
import re
from typing import Any

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BROKEN_STRING_JOIN_RE = re.compile(r'"\s*\n\s*"')


@dataclass(slots=True)
class ResponseParseError(ValueError):
    message: str
    excerpt: str = ""

    def __str__(self) -> str:
        if self.excerpt:
            return f"{self.message} (excerpt={self.excerpt!r})"
        return self.message


def repair_json_text(candidate: str) -> str:
    """Fix the usual model mistakes: raw newlines inside strings, control characters, trailing commas."""

    repaired = _BROKEN_STRING_JOIN_RE.sub('" "', candidate)
    repaired = _CONTROL_CHARS_RE.sub(" ", repaired)
    return _TRAILING_COMMA_RE.sub(r"\1", repaired)


def parse_json_response(response_text: str) -> dict[str, Any]:
    """Return the largest ``{...}`` block of *response_text* as a dict.

    The block is parsed as-is first and only repaired when that fails.
    """

    match = _JSON_OBJECT_RE.search(response_text or "")
    if match is None:
        raise ResponseParseError("No JSON object found in model response", excerpt=(response_text or "")[:80])

    candidate = match.group(0)
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        try:
            parsed = json.loads(repair_json_text(candidate))
        except json.JSONDecodeError as exc:
            raise ResponseParseError(f"Model response is not valid JSON: {exc.msg}", excerpt=candidate[:80]) from exc

    if not isinstance(parsed, dict):
        raise ResponseParseError("Model response JSON is not an object", excerpt=candidate[:80])
    return parsed
