"""Helpers for decoding JSON text returned by remote tools."""

from __future__ import annotations

import json
import re
from typing import Any

from .exceptions import ProviderError

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", flags=re.DOTALL)


def parse_json_response(raw: str) -> Any:
    """Parse a JSON document, tolerating surrounding code fences."""
    text = raw.strip()
    match = _FENCE_PATTERN.match(text)
    if match:
        text = match.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProviderError("Response is not valid JSON") from exc
