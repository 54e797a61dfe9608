"""Ollama LLM client for JSON generation with model fallback.

Uses Ollama's native /api/chat endpoint (not OpenAI-compat) so we can
disable Qwen3's thinking mode via think=false and request format=json.
Quota and rate-limit failures start a process-wide cooldown during which
every call fails fast and the callers use the rule-based engine.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from cardsense.config import settings
from cardsense.events import emit
from cardsense.llm.parsing import is_quota_error, parse_model_json, parse_retry_seconds
from cardsense.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_MESSAGE_LIMIT = 220


class LLMError(RuntimeError):
    """Every candidate model failed, or the quota cooldown is active."""


def _compact(message: str) -> str:
    return message if len(message) <= ERROR_MESSAGE_LIMIT else f"{message[:ERROR_MESSAGE_LIMIT]}..."


def _error_text(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"{exc} {exc.response.text}"
    return str(exc) or type(exc).__name__


class OllamaClient:
    """Async client for Ollama's native /api/chat endpoint."""

    def __init__(self) -> None:
        self._base_url = settings.llm.ollama_base_url
        self._cooldown_until = 0.0
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(float(settings.llm.llm_timeout), connect=10.0),
        )

    # ── Quota cooldown ────────────────────────────────────────────────

    def cooldown_remaining(self) -> int:
        """Seconds left on the quota cooldown (0 when inactive)."""
        remaining = self._cooldown_until - time.monotonic()
        return max(0, math.ceil(remaining))

    def start_cooldown(self, seconds: int) -> None:
        self._cooldown_until = max(self._cooldown_until, time.monotonic() + seconds)
        logger.warning("LLM quota cooldown started for %ds", seconds)

    def reset_cooldown(self) -> None:
        self._cooldown_until = 0.0

    @staticmethod
    def model_candidates() -> list[str]:
        """Primary model, then the fallback model, without duplicates."""
        candidates: list[str] = []
        for model in (settings.llm.recommendation_model, settings.llm.recommendation_fallback_model):
            model = model.strip()
            if model and model not in candidates:
                candidates.append(model)
        return candidates

    # ── Requests ──────────────────────────────────────────────────────

    async def chat(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int | None = None,
        json_mode: bool = True,
    ) -> str:
        """Send a chat request to Ollama's native API (non-streaming, no thinking).

        Args:
            system_prompt: System-level instructions for the LLM.
            messages: List of {"role": "user"|"assistant", "content": "..."}.
            model: Model name override. Defaults to the recommendation model.
            temperature: Sampling temperature.
            max_tokens: Max response tokens. Defaults to config value.
            json_mode: Ask Ollama to constrain the reply to JSON.

        Returns:
            The LLM's text response.
        """
        model = model or settings.llm.recommendation_model
        if max_tokens is None:
            max_tokens = settings.llm.llm_max_tokens

        api_messages: list[dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            *messages,
        ]
        body: dict[str, Any] = {
            "model": model,
            "messages": api_messages,
            "stream": False,
            "think": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }
        if json_mode:
            body["format"] = "json"

        prompt_hash = hashlib.md5(system_prompt.encode()).hexdigest()[:8]

        await emit(SystemEvent(
            event_type=EventType.LLM_REQUEST,
            data={
                "model": model,
                "prompt_hash": prompt_hash,
                "message_count": len(messages),
            },
            source_module="llm.client",
        ))

        start = time.monotonic()
        try:
            response = await self._client.post("/api/chat", json=body)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
            elapsed_ms = int((time.monotonic() - start) * 1000)

            content: str = data["message"]["content"]
            prompt_tokens = data.get("prompt_eval_count", 0)
            completion_tokens = data.get("eval_count", 0)

            await emit(SystemEvent(
                event_type=EventType.LLM_RESPONSE,
                data={
                    "model": model,
                    "latency_ms": elapsed_ms,
                    "prompt_tokens": prompt_tokens,
                    "completion_tokens": completion_tokens,
                },
                source_module="llm.client",
            ))

            logger.info(
                "LLM response: model=%s latency=%dms tokens=%d",
                model,
                elapsed_ms,
                completion_tokens,
            )
            return content

        except httpx.TimeoutException:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            await emit(SystemEvent(
                event_type=EventType.LLM_ERROR,
                data={"model": model, "error": "timeout", "latency_ms": elapsed_ms},
                source_module="llm.client",
            ))
            logger.error("LLM timeout after %dms for model %s", elapsed_ms, model)
            raise

        except httpx.HTTPError as exc:
            await emit(SystemEvent(
                event_type=EventType.LLM_ERROR,
                data={"model": model, "error": _compact(str(exc))},
                source_module="llm.client",
            ))
            logger.warning("LLM HTTP error for model %s: %s", model, exc)
            raise

    async def generate_json(
        self,
        system_prompt: str,
        prompt: str,
        validate: Callable[[Any], T],
    ) -> tuple[T, str]:
        """Ask each candidate model in turn for a JSON reply that `validate` accepts.

        A quota failure starts the cooldown and ends the search; other
        failures move on to the next candidate.

        `validate` receives the parsed JSON and raises ValueError (pydantic's
        ValidationError included) to reject it.

        Returns:
            The validated value and the model that produced it.

        Raises:
            LLMError: cooldown active, or every candidate failed.
        """
        remaining = self.cooldown_remaining()
        if remaining > 0:
            raise LLMError(f"AI quota cooldown active (resource_exhausted). Retry in {remaining}s")

        errors: list[str] = []
        for model in self.model_candidates():
            try:
                raw = await self.chat(system_prompt, [{"role": "user", "content": prompt}], model=model)
                return validate(parse_model_json(raw)), model
            except (httpx.HTTPError, KeyError, ValueError) as exc:
                message = _error_text(exc)
                if is_quota_error(message):
                    retry = parse_retry_seconds(message, default=settings.llm.quota_retry_seconds)
                    self.start_cooldown(retry)
                    errors.append(f"{model}: resource_exhausted, retry in {retry}s")
                    break
                errors.append(f"{model}: {_compact(message)}")

        raise LLMError(f"Model generation failed. {' | '.join(errors) or 'no model configured'}")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


# Module-level singleton
llm_client = OllamaClient()
