from __future__ import annotations

from chatrelay.core.chat.service import ChatFlags, ChatService, canned_reply, generate_reply
from chatrelay.core.models.llm_provider import GenResult, LLMAuthError, LLMOverloadedError
from chatrelay.core.search.web_search import SearchHit


class StubLLM:
    def __init__(self, result: GenResult | Exception | None = None, configured: bool = True) -> None:
        self.result = result
        self.configured = configured
        self.calls: list[dict] = []

    def answer(self, message, allow_web, context=None):
        self.calls.append({"message": message, "allow_web": allow_web, "context": list(context or [])})
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class StubSearch:
    def __init__(self, hits: list[SearchHit], enabled: bool = True) -> None:
        self.hits = hits
        self.enabled = enabled
        self.queries: list[tuple[str, int]] = []

    def search(self, query: str, limit: int = 3) -> list[SearchHit]:
        self.queries.append((query, limit))
        return self.hits


def test_canned_reply_is_deterministic() -> None:
    assert canned_reply("hello") == "Bot: hello"


def test_unconfigured_llm_uses_canned_reply() -> None:
    llm = StubLLM(configured=False)
    service = ChatService(llm=llm, search=StubSearch([]))

    reply = service.generate_reply("hello")

    assert reply.text == "Bot: hello"
    assert reply.fallback is True
    assert reply.grounded is False
    assert llm.calls == []


def test_llm_disabled_by_flag_uses_canned_reply() -> None:
    llm = StubLLM(GenResult(text="never"))
    service = ChatService(llm=llm, search=StubSearch([]))

    reply = service.generate_reply("hello", ChatFlags(use_llm=False))

    assert reply.text == "Bot: hello"
    assert llm.calls == []


def test_llm_reply_is_returned() -> None:
    llm = StubLLM(GenResult(text="Hi!", grounded=True, sources=["https://a.example"], model="gemini-2.5-flash"))
    service = ChatService(llm=llm, search=StubSearch([]))

    reply = service.generate_reply("hello", ChatFlags(allow_web=True))

    assert reply.text == "Hi!"
    assert reply.grounded is True
    assert reply.sources == ["https://a.example"]
    assert reply.fallback is False
    assert reply.model == "gemini-2.5-flash"
    assert llm.calls[0]["allow_web"] is True


def test_llm_errors_fall_back_to_canned_reply() -> None:
    for error in (LLMAuthError("bad key", status=401), LLMOverloadedError("busy", status=503)):
        service = ChatService(llm=StubLLM(error), search=StubSearch([]))

        reply = service.generate_reply("hello")

        assert reply.text == "Bot: hello"
        assert reply.fallback is True


def test_empty_llm_text_falls_back() -> None:
    service = ChatService(llm=StubLLM(GenResult(text="")), search=StubSearch([]))

    assert service.generate_reply("hello").fallback is True


def test_web_hits_are_passed_as_context_and_become_sources() -> None:
    hits = [SearchHit(title="T", snippet="S", url="https://hit.example"), SearchHit(title="No url")]
    llm = StubLLM(GenResult(text="answer"))
    search = StubSearch(hits)
    service = ChatService(llm=llm, search=search, search_limit=2)

    reply = service.generate_reply("what's new", ChatFlags(allow_web=True))

    assert search.queries == [("what's new", 2)]
    assert llm.calls[0]["context"] == hits
    assert reply.grounded is True
    assert reply.sources == ["https://hit.example"]


def test_search_is_skipped_without_web_flag_or_providers() -> None:
    search = StubSearch([SearchHit(url="https://x.example")])
    service = ChatService(llm=StubLLM(GenResult(text="a")), search=search)
    service.generate_reply("q", ChatFlags(allow_web=False))

    disabled = StubSearch([SearchHit(url="https://x.example")], enabled=False)
    ChatService(llm=StubLLM(GenResult(text="a")), search=disabled).generate_reply("q", ChatFlags(allow_web=True))

    assert search.queries == []
    assert disabled.queries == []


def test_generate_reply_function_boundary() -> None:
    service = ChatService(llm=StubLLM(configured=False), search=StubSearch([]))

    assert generate_reply("ping", ChatFlags(), service=service) == ("Bot: ping", False, [])
