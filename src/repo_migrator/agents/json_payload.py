"""Lenient JSON extraction from model output."""

import json
import re
from typing import Any

from repo_migrator.agents.exceptions import ResponseParseError

_FENCE = re.compile(r"^\s*```[\w-]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a single surrounding markdown code fence, if present."""
    match = _FENCE.match(text)
    return match.group(1) if match else text


def parse_json_payload(text: str | None) -> Any:
    """Parse JSON from a model response.

    Accepts a bare payload, a fenced payload, or a payload embedded in
    surrounding prose (first ``{`` or ``[`` to the matching last bracket).

    Raises:
        ResponseParseError: If no JSON value can be decoded.
    """
    if not text or not text.strip():
        raise ResponseParseError("Empty response")

    candidate = strip_code_fence(text).strip()
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    for opener, closer in (("{", "}"), ("[", "]")):
        start = candidate.find(opener)
        end = candidate.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(candidate[start:end + 1])
            except json.JSONDecodeError:
                continue

    raise ResponseParseError(f"Response is not valid JSON: {candidate[:120]!r}")
