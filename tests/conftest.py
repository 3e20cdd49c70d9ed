from __future__ import annotations

import pytest

from chatrelay.apps.api import deps

_PROVIDER_ENV = (
    "LLM_API_KEY",
    "GOOGLE_API_KEY",
    "LLM_MODEL",
    "LLM_DOMAIN",
    "BRAVE_API_KEY",
    "SERPAPI_KEY",
    "CHATRELAY_LLM_FALLBACK_MODELS",
    "CHATRELAY_RATE_LIMIT_MAX",
    "CHATRELAY_RATE_LIMIT_WINDOW_S",
    "CHATRELAY_TRUST_PROXY",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _PROVIDER_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CHATRELAY_LOG_TO_FILE", "off")
    deps.clear_caches()
    yield
    deps.clear_caches()
