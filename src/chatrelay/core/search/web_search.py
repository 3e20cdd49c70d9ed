from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from chatrelay.core.cache.ttl import TTLCache
from chatrelay.core.http.client import request_with_retry
from chatrelay.core.http.errors import UpstreamError
from chatrelay.core.settings import env_float, env_str

logger = logging.getLogger(__name__)

BRAVE_URL = "https://api.search.brave.com/res/v1/web/search"
SERPAPI_URL = "https://serpapi.com/search.json"


class SearchHit(BaseModel):
    title: str = ""
    snippet: str = ""
    url: str = ""


class UnexpectedPayload(ValueError):
    """A provider answered 200 with a body that is not the documented JSON shape."""


def _results(payload: Any, *path: str) -> list[dict[str, Any]]:
    node = payload
    for key in path:
        if not isinstance(node, dict):
            raise UnexpectedPayload(f"expected an object at {key!r}, got {type(node).__name__}")
        node = node.get(key) or {}
    if node == {}:
        return []
    if not isinstance(node, list):
        raise UnexpectedPayload(f"expected a list of results, got {type(node).__name__}")
    return [item for item in node if isinstance(item, dict)]


def _brave_hits(payload: Any, limit: int) -> list[SearchHit]:
    return [
        SearchHit(
            title=str(item.get("title") or ""),
            snippet=str(item.get("description") or ""),
            url=str(item.get("url") or ""),
        )
        for item in _results(payload, "web", "results")[:limit]
    ]


def _serpapi_hits(payload: Any, limit: int) -> list[SearchHit]:
    hits = []
    for item in _results(payload, "organic_results")[:limit]:
        words = item.get("snippet_highlighted_words")
        highlighted = " ".join(str(word) for word in words) if isinstance(words, list) else ""
        hits.append(
            SearchHit(
                title=str(item.get("title") or ""),
                snippet=str(item.get("snippet") or highlighted),
                url=str(item.get("link") or ""),
            )
        )
    return hits


class WebSearchService:
    """Brave Search first, SerpAPI second, nothing otherwise. Provider failures never raise.

    SerpAPI is only consulted when Brave has no key or its request failed; a
    successful Brave answer with zero results is final.
    """

    def __init__(
        self,
        brave_key: str | None = None,
        serpapi_key: str | None = None,
        cache: TTLCache | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self.brave_key = env_str("BRAVE_API_KEY") if brave_key is None else brave_key
        self.serpapi_key = env_str("SERPAPI_KEY") if serpapi_key is None else serpapi_key
        self.cache = cache or TTLCache(default_ttl_s=env_float("CHATRELAY_SEARCH_CACHE_TTL_S", 60.0))
        self.timeout_s = env_float("CHATRELAY_SEARCH_TIMEOUT_S", 8.0) if timeout_s is None else timeout_s

    @property
    def enabled(self) -> bool:
        return bool(self.brave_key or self.serpapi_key)

    def providers(self) -> list[str]:
        names = []
        if self.brave_key:
            names.append("brave")
        if self.serpapi_key:
            names.append("serpapi")
        return names

    def search(self, query: str, limit: int = 3) -> list[SearchHit]:
        query = query.strip()
        if not query or limit < 1:
            return []

        cache_key = (query, limit)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return list(cached)

        hits: list[SearchHit] | None = None
        if self.brave_key:
            hits = self._fetch(
                "brave",
                BRAVE_URL,
                _brave_hits,
                limit,
                params={"q": query, "count": str(limit)},
                headers={"Accept": "application/json", "X-Subscription-Token": self.brave_key},
            )
        if hits is None and self.serpapi_key:
            hits = self._fetch(
                "serpapi",
                SERPAPI_URL,
                _serpapi_hits,
                limit,
                params={"engine": "google", "q": query, "api_key": self.serpapi_key},
                redact_url=True,
            )

        if hits:
            self.cache.set(cache_key, hits)
        return hits or []

    def _fetch(self, service: str, url: str, parse, limit: int, **request: Any) -> list[SearchHit] | None:
        """Hits from one provider, or ``None`` when the provider failed."""
        try:
            response = request_with_retry("GET", url, timeout_override=self.timeout_s, service=service, **request)
            return parse(response.json(), limit)
        except UpstreamError as exc:
            logger.warning(
                "search_provider_failed",
                extra={"extra_fields": {"service": exc.service, "status": exc.status_code, "error": str(exc)}},
            )
        except ValueError as exc:
            logger.warning(
                "search_provider_bad_payload",
                extra={"extra_fields": {"service": service, "error": str(exc)}},
            )
        return None
