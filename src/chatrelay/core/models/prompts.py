from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class _Hit(Protocol):
    title: str
    snippet: str
    url: str


def system_prompt(domain: str = "") -> str:
    if domain:
        return (
            f"You are an expert on {domain}.\n"
            f"Only answer questions strongly related to {domain}.\n"
            "If off-topic, politely refuse and suggest a related query.\n"
            "Be concise and helpful."
        )
    return (
        "You are a helpful assistant.\n"
        "Be concise and helpful. If you used web search, cite sources when appropriate."
    )


def web_context_block(hits: Sequence[_Hit]) -> str:
    if not hits:
        return ""
    lines = ["Web results:"]
    for index, hit in enumerate(hits, start=1):
        lines.append(f"[{index}] {hit.title} - {hit.snippet} ({hit.url})")
    return "\n".join(lines)


def user_prompt(system: str, message: str, context: str = "") -> str:
    parts = [system]
    if context:
        parts.append(context)
    parts.append(f'User: "{message}"')
    return "\n".join(parts)
