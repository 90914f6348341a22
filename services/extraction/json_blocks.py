"""Locate and parse the JSON object a model was asked to emit.

Models often wrap JSON in code fences, add prose around it, use curly quotes,
or leave trailing commas. Parsing is two-stage: a strict `json.loads` and, on
failure, one retry after a fixed normalization.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
TRAILING_COMMA = re.compile(r",\s*([}\]])")

_QUOTE_TABLE = str.maketrans(
    {
        "‘": "'",
        "’": "'",
        "“": '"',
        "”": '"',
    }
)


@dataclass(frozen=True)
class JsonParseResult:
    """Outcome of `parse_json_block`: either `value` or `error` is set."""

    value: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    repaired: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def locate_json_text(text: str) -> Optional[str]:
    """Return the candidate JSON substring, preferring a fenced block."""
    if not text:
        return None
    fenced = FENCED_BLOCK.search(text)
    if fenced:
        return fenced.group(1)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def normalize_json_text(text: str) -> str:
    """Straighten curly quotes and drop trailing commas before closing brackets."""
    return TRAILING_COMMA.sub(r"\1", text.translate(_QUOTE_TABLE))


def _loads_object(text: str) -> Dict[str, Any]:
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


def parse_json_block(text: str) -> JsonParseResult:
    """Extract and parse one JSON object from raw model text."""
    candidate = locate_json_text(text)
    if candidate is None:
        return JsonParseResult(error="No JSON object found in model response")

    try:
        return JsonParseResult(value=_loads_object(candidate))
    except ValueError:
        pass

    try:
        return JsonParseResult(value=_loads_object(normalize_json_text(candidate)), repaired=True)
    except ValueError as exc:
        return JsonParseResult(error=f"Model response is not valid JSON: {exc}")
