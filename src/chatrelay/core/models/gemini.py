from __future__ import annotations

from typing import Any

from google import genai
from google.genai import types

TOOL_GOOGLE_SEARCH = "google_search"
TOOL_GOOGLE_SEARCH_RETRIEVAL = "google_search_retrieval"

_DEFAULT_DYNAMIC_THRESHOLD = 0.5
_DEFAULT_TIMEOUT_S = 30.0


def status_of(exc: BaseException) -> int | None:
    """HTTP status carried by a provider error, if any."""
    for attr in ("code", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def build_config(tool: str | None, dynamic_threshold: float = _DEFAULT_DYNAMIC_THRESHOLD) -> types.GenerateContentConfig | None:
    if tool is None:
        return None
    if tool == TOOL_GOOGLE_SEARCH:
        return types.GenerateContentConfig(tools=[types.Tool(google_search=types.GoogleSearch())])
    if tool == TOOL_GOOGLE_SEARCH_RETRIEVAL:
        retrieval = types.GoogleSearchRetrieval(
            dynamic_retrieval_config=types.DynamicRetrievalConfig(
                mode=types.DynamicRetrievalConfigMode.MODE_DYNAMIC,
                dynamic_threshold=dynamic_threshold,
            )
        )
        return types.GenerateContentConfig(tools=[types.Tool(google_search_retrieval=retrieval)])
    raise ValueError(f"unknown tool: {tool}")


def response_text(response: Any) -> str:
    text = getattr(response, "text", None)
    if not text:
        candidates = getattr(response, "candidates", None) or []
        content = getattr(candidates[0], "content", None) if candidates else None
        parts = getattr(content, "parts", None) or []
        text = getattr(parts[0], "text", None) if parts else None
    return str(text or "").strip()


def extract_grounding(response: Any) -> tuple[bool, list[str]]:
    candidates = getattr(response, "candidates", None) or []
    metadata = getattr(candidates[0], "grounding_metadata", None) if candidates else None
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources: list[str] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        retrieved = getattr(chunk, "retrieved_context", None)
        uri = getattr(web, "uri", None) or getattr(retrieved, "uri", None)
        if uri and uri not in sources:
            sources.append(uri)
    return bool(sources), sources


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        client: Any | None = None,
        dynamic_threshold: float = _DEFAULT_DYNAMIC_THRESHOLD,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
    ) -> None:
        self.api_key = api_key
        self.dynamic_threshold = dynamic_threshold
        self.timeout_s = timeout_s
        self._client = client

    def _ensure(self) -> Any:
        if self._client is None:
            # HttpOptions.timeout is in milliseconds.
            options = types.HttpOptions(timeout=int(max(0.1, self.timeout_s) * 1000))
            self._client = genai.Client(api_key=self.api_key, http_options=options)
        return self._client

    def generate(self, model: str, prompt: str, tool: str | None = None) -> Any:
        contents = [types.Content(role="user", parts=[types.Part(text=prompt)])]
        return self._ensure().models.generate_content(
            model=model,
            contents=contents,
            config=build_config(tool, self.dynamic_threshold),
        )
