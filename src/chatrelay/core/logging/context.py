from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Per-request fields stamped on every JSON log line; set by the API middleware.
_FIELDS = ("correlation_id", "client_ip")

_request_fields: ContextVar[dict[str, str]] = ContextVar("chatrelay_request_fields", default={})


@contextmanager
def log_context(**fields: str | None) -> Iterator[None]:
    unknown = set(fields) - set(_FIELDS)
    if unknown:
        raise TypeError(f"unknown log context field(s): {', '.join(sorted(unknown))}")

    merged = {**_request_fields.get(), **{key: value for key, value in fields.items() if value is not None}}
    token = _request_fields.set(merged)
    try:
        yield
    finally:
        _request_fields.reset(token)


def get_log_context() -> dict[str, str]:
    return dict(_request_fields.get())
