from __future__ import annotations

from functools import lru_cache

from chatrelay.core.chat.service import ChatService
from chatrelay.core.models.llm_provider import ChatLLM
from chatrelay.core.search.web_search import WebSearchService

from .rate_limit import RateLimiter


@lru_cache(maxsize=1)
def get_llm() -> ChatLLM:
    return ChatLLM()


@lru_cache(maxsize=1)
def get_web_search() -> WebSearchService:
    return WebSearchService()


@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    return ChatService(llm=get_llm(), search=get_web_search())


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    return RateLimiter.from_env()


def clear_caches() -> None:
    get_llm.cache_clear()
    get_web_search.cache_clear()
    get_chat_service.cache_clear()
    get_rate_limiter.cache_clear()
