from __future__ import annotations

import logging
from dataclasses import dataclass, field

from chatrelay.core.models.llm_provider import ChatLLM, LLMError
from chatrelay.core.search.web_search import SearchHit, WebSearchService
from chatrelay.core.settings import env_int

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatFlags:
    use_llm: bool = True
    allow_web: bool = False


@dataclass
class ChatReply:
    text: str
    grounded: bool = False
    sources: list[str] = field(default_factory=list)
    fallback: bool = False
    model: str | None = None


def canned_reply(message: str) -> str:
    return f"Bot: {message}"


class ChatService:
    def __init__(self, llm: ChatLLM | None = None, search: WebSearchService | None = None, search_limit: int | None = None) -> None:
        self.llm = llm or ChatLLM()
        self.search = search or WebSearchService()
        self.search_limit = max(1, env_int("CHATRELAY_SEARCH_LIMIT", 3) if search_limit is None else search_limit)

    def generate_reply(self, message: str, flags: ChatFlags | None = None) -> ChatReply:
        flags = flags or ChatFlags()
        if not flags.use_llm or not self.llm.configured:
            return self._fallback(message, reason="llm_disabled" if not flags.use_llm else "llm_not_configured")

        hits: list[SearchHit] = []
        if flags.allow_web and self.search.enabled:
            hits = self.search.search(message, limit=self.search_limit)

        try:
            result = self.llm.answer(message, allow_web=flags.allow_web, context=hits)
        except LLMError as exc:
            logger.warning("LLM reply failed, using canned reply: %s", exc)
            return self._fallback(message, reason=exc.__class__.__name__)

        if not result.text:
            return self._fallback(message, reason="empty_reply")

        sources = list(result.sources)
        grounded = result.grounded
        if not sources and hits:
            sources = [hit.url for hit in hits if hit.url]
            grounded = bool(sources)
        return ChatReply(text=result.text, grounded=grounded, sources=sources, model=result.model)

    def _fallback(self, message: str, reason: str) -> ChatReply:
        logger.info("canned_reply", extra={"extra_fields": {"reason": reason}})
        return ChatReply(text=canned_reply(message), fallback=True)


def generate_reply(message: str, flags: ChatFlags | None = None, service: ChatService | None = None) -> tuple[str, bool, list[str]]:
    reply = (service or ChatService()).generate_reply(message, flags)
    return reply.text, reply.grounded, reply.sources
