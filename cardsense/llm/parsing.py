"""Model output parsing and failure classification.

Models wrap JSON in code fences or prose; quota failures arrive as free
text with an optional retry hint. Everything user-facing derived from an
error goes through `safe_fallback_reason` so raw provider messages never
reach a response.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

DEFAULT_RETRY_SECONDS = 45

_QUOTA_PATTERN = re.compile(
    r'resource_exhausted|quota exceeded|status"\s*:\s*"resource_exhausted"|code"\s*:\s*429|too many requests',
    re.IGNORECASE,
)
_RETRY_IN_PATTERN = re.compile(r"retry in\s+([\d.]+)s", re.IGNORECASE)
_RETRY_DELAY_PATTERN = re.compile(r'"retryDelay"\s*:\s*"(\d+)s"', re.IGNORECASE)
_CONFIG_PATTERN = re.compile(r"api key|unauthorized|permission", re.IGNORECASE)
_FENCE_PATTERN = re.compile(r"```json|```")
_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


class ModelOutputError(ValueError):
    """The model replied, but not with a usable JSON object."""


def parse_model_json(raw: str) -> Any:
    """Parse a JSON reply, tolerating code fences and surrounding prose."""
    if not raw.strip():
        raise ModelOutputError("Model returned empty response")

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    unfenced = _FENCE_PATTERN.sub("", raw).strip()
    try:
        return json.loads(unfenced)
    except json.JSONDecodeError:
        pass

    match = _OBJECT_PATTERN.search(unfenced)
    if not match:
        raise ModelOutputError("Model response did not contain a JSON object")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ModelOutputError(f"Model response JSON is malformed: {exc.msg}") from exc


def is_quota_error(message: str) -> bool:
    return bool(_QUOTA_PATTERN.search(message))


def parse_retry_seconds(message: str, default: int = DEFAULT_RETRY_SECONDS) -> int:
    """Retry delay hinted by a quota error, in whole seconds."""
    match = _RETRY_IN_PATTERN.search(message)
    if match:
        try:
            seconds = float(match.group(1))
        except ValueError:
            seconds = 0.0
        if math.isfinite(seconds) and seconds > 0:
            return math.ceil(seconds)

    match = _RETRY_DELAY_PATTERN.search(message)
    if match and int(match.group(1)) > 0:
        return int(match.group(1))

    return default


def safe_fallback_reason(error: BaseException | None) -> str:
    """User-facing explanation of why the rule-based path was used."""
    message = str(error) if error else "AI generation unavailable"
    if is_quota_error(message):
        seconds = max(1, parse_retry_seconds(message))
        return (
            "AI quota is temporarily exhausted. Using rule-based recommendations now; "
            f"retry after about {seconds}s."
        )
    if _CONFIG_PATTERN.search(message):
        return "AI configuration issue detected. Using rule-based recommendations."
    return "AI response could not be used. Using rule-based recommendations."
