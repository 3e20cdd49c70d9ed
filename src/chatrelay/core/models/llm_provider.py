from __future__ import annotations

import logging
import re
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from chatrelay.core.settings import env_float, env_int, env_list, env_str, first_env

from .gemini import (
    TOOL_GOOGLE_SEARCH,
    TOOL_GOOGLE_SEARCH_RETRIEVAL,
    GeminiClient,
    extract_grounding,
    response_text,
    status_of,
)
from .prompts import system_prompt, user_prompt, web_context_block

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_FALLBACK_MODELS = ["gemini-2.0-flash", "gemini-1.5-flash"]

_AUTH_STATUSES = {401, 403}
_OVERLOADED_RE = re.compile(r"unavailable|overloaded|resource has been exhausted", re.IGNORECASE)
_SEARCH_TOOL_RE = re.compile(r"google[_ ]?search", re.IGNORECASE)


class LLMError(RuntimeError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class LLMUnavailable(LLMError):
    pass


class LLMAuthError(LLMError):
    pass


class LLMOverloadedError(LLMError):
    pass


@dataclass
class LLMConfig:
    api_key: str
    model: str
    fallback_models: list[str]
    domain: str
    attempts_per_model: int
    backoff_ms: int
    dynamic_threshold: float
    timeout_s: float = 30.0

    @property
    def model_chain(self) -> list[str]:
        chain: list[str] = []
        for model in [self.model, *self.fallback_models]:
            if model and model not in chain:
                chain.append(model)
        return chain


@dataclass
class GenResult:
    text: str
    grounded: bool = False
    sources: list[str] = field(default_factory=list)
    model: str = ""


def is_overloaded(exc: BaseException) -> bool:
    return status_of(exc) == 503 or bool(_OVERLOADED_RE.search(str(exc)))


def is_search_tool_mismatch(exc: BaseException) -> bool:
    return bool(_SEARCH_TOOL_RE.search(str(exc))) and status_of(exc) not in _AUTH_STATUSES


class ChatLLM:
    """Gemini access with model fallback, overload retries and search-tool fallback."""

    def __init__(self, config: LLMConfig | None = None, gemini: GeminiClient | None = None) -> None:
        self.config = config or LLMConfig(
            api_key=first_env("LLM_API_KEY", "GOOGLE_API_KEY"),
            model=env_str("LLM_MODEL", DEFAULT_MODEL) or DEFAULT_MODEL,
            fallback_models=env_list("CHATRELAY_LLM_FALLBACK_MODELS", DEFAULT_FALLBACK_MODELS),
            domain=env_str("LLM_DOMAIN"),
            attempts_per_model=max(1, env_int("CHATRELAY_LLM_ATTEMPTS", 2)),
            backoff_ms=max(0, env_int("CHATRELAY_LLM_BACKOFF_MS", 600)),
            dynamic_threshold=env_float("CHATRELAY_LLM_DYNAMIC_THRESHOLD", 0.5),
            timeout_s=env_float("CHATRELAY_LLM_TIMEOUT_S", 30.0),
        )
        self._gemini = gemini
        self.logger = logging.getLogger("chatrelay.llm")

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    def _client(self) -> GeminiClient:
        if not self.configured:
            raise LLMUnavailable("Missing LLM_API_KEY (or GOOGLE_API_KEY) in environment.")
        if self._gemini is None:
            self._gemini = GeminiClient(
                api_key=self.config.api_key,
                dynamic_threshold=self.config.dynamic_threshold,
                timeout_s=self.config.timeout_s,
            )
        return self._gemini

    def build_prompt(self, message: str, context: Sequence[Any] | None = None) -> str:
        return user_prompt(system_prompt(self.config.domain), message, web_context_block(context or []))

    def answer(self, message: str, allow_web: bool, context: Sequence[Any] | None = None) -> GenResult:
        start = time.perf_counter()
        try:
            self._client()
        except LLMUnavailable:
            self._log_call(self.config.model, start, ok=False, reason="no_api_key")
            raise
        prompt = self.build_prompt(message, context)

        last_error: Exception | None = None
        for model in self.config.model_chain:
            for attempt in range(1, self.config.attempts_per_model + 1):
                try:
                    result = self.generate_with_model(model, prompt, allow_web)
                except Exception as exc:
                    last_error = exc
                    status = status_of(exc)
                    if status in _AUTH_STATUSES:
                        self._log_call(model, start, ok=False, status=status)
                        raise LLMAuthError("Gemini authentication failed. Check your API key.", status=status) from exc

                    overloaded = is_overloaded(exc)
                    self.logger.warning(
                        "llm_attempt_failed",
                        extra={
                            "extra_fields": {
                                "model": model,
                                "attempt": attempt,
                                "status": status,
                                "overloaded": overloaded,
                                "error": str(exc),
                            }
                        },
                    )
                    if not overloaded:
                        break
                    if attempt < self.config.attempts_per_model:
                        time.sleep(attempt * self.config.backoff_ms / 1000.0)
                    continue

                self._log_call(model, start, ok=True, grounded=result.grounded)
                return result

        status = status_of(last_error) if last_error is not None else None
        self._log_call(self.config.model_chain[-1] if self.config.model_chain else "", start, ok=False, status=status)
        if status == 503:
            raise LLMOverloadedError("Model is overloaded right now. Please try again shortly.", status=status) from last_error
        message_text = str(last_error) if last_error is not None and str(last_error) else "Gemini call failed."
        raise LLMError(message_text, status=status) from last_error

    def generate_with_model(self, model: str, prompt: str, allow_web: bool) -> GenResult:
        client = self._client()
        try:
            response = client.generate(model, prompt, tool=TOOL_GOOGLE_SEARCH if allow_web else None)
        except Exception as exc:
            if not (allow_web and is_search_tool_mismatch(exc)):
                raise
            self.logger.info("llm_legacy_search_tool", extra={"extra_fields": {"model": model}})
            response = client.generate(model, prompt, tool=TOOL_GOOGLE_SEARCH_RETRIEVAL)

        grounded, sources = extract_grounding(response)
        return GenResult(text=response_text(response), grounded=grounded, sources=sources, model=model)

    def _log_call(self, model: str, start: float, ok: bool, grounded: bool = False, **fields: object) -> None:
        self.logger.info(
            "llm_call",
            extra={
                "extra_fields": {
                    "model": model,
                    "ok": ok,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                    "grounded": grounded,
                    **fields,
                }
            },
        )
