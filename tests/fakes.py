from __future__ import annotations

from types import SimpleNamespace

from chatrelay.core.models.llm_provider import ChatLLM, LLMConfig


class ProviderError(Exception):
    def __init__(self, code: int | None, message: str) -> None:
        super().__init__(f"{code} {message}" if code is not None else message)
        self.code = code


def fake_response(text: str = "hello there", uris: list[str] | None = None) -> SimpleNamespace:
    chunks = [SimpleNamespace(web=SimpleNamespace(uri=uri), retrieved_context=None) for uri in (uris or [])]
    candidate = SimpleNamespace(
        content=SimpleNamespace(parts=[SimpleNamespace(text=text)]),
        grounding_metadata=SimpleNamespace(grounding_chunks=chunks) if chunks else None,
    )
    return SimpleNamespace(text=text, candidates=[candidate])


class FakeGemini:
    """Replays a script of responses/exceptions and records (model, tool) per call."""

    def __init__(self, script: list[object]) -> None:
        self.script = list(script)
        self.calls: list[tuple[str, str | None]] = []
        self.prompts: list[str] = []

    def generate(self, model: str, prompt: str, tool: str | None = None):
        self.calls.append((model, tool))
        self.prompts.append(prompt)
        outcome = self.script.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_llm(script: list[object], **overrides) -> tuple[ChatLLM, FakeGemini]:
    values = {
        "api_key": "test-key",
        "model": "gemini-2.5-flash",
        "fallback_models": ["gemini-2.0-flash", "gemini-1.5-flash"],
        "domain": "",
        "attempts_per_model": 2,
        "backoff_ms": 600,
        "dynamic_threshold": 0.5,
    }
    values.update(overrides)
    gemini = FakeGemini(script)
    return ChatLLM(config=LLMConfig(**values), gemini=gemini), gemini
