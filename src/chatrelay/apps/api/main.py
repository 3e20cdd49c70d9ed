from __future__ import annotations

import logging
import sys
from pathlib import Path
from uuid import uuid4

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from chatrelay.core.http.client import close_http_client
from chatrelay.core.logging import configure_logging
from chatrelay.core.logging.context import log_context
from chatrelay.core.settings import env_int, env_list, env_str

from .deps import get_llm, get_rate_limiter, get_web_search
from .rate_limit import client_key, is_exempt_path
from .routes_chat import router as chat_router

load_dotenv()

_DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:8080"]

logger = logging.getLogger("chatrelay.api")
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

app = FastAPI(
    title="Chat API",
    description="Minimal chat API with validation and rate-limit",
    version="1.0.0",
)
configure_logging()

app.include_router(chat_router, prefix="/chat", tags=["chat"])


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    if request.method == "OPTIONS" or is_exempt_path(request.url.path):
        return await call_next(request)

    decision = get_rate_limiter().hit(client_key(request))
    if not decision.allowed:
        logger.warning("rate_limited", extra={"extra_fields": {"path": request.url.path, "retry_after_s": decision.retry_after_s}})
        return JSONResponse(
            status_code=429,
            content={"detail": f"Rate limit exceeded. Try again in ~{decision.retry_after_s}s"},
            headers={"Retry-After": str(decision.retry_after_s)},
        )
    return await call_next(request)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid4())
    with log_context(correlation_id=correlation_id, client_ip=client_key(request)):
        response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


# Outermost middleware: 429 responses must carry CORS headers too.
app.add_middleware(
    CORSMiddleware,
    allow_origins=env_list("CHATRELAY_CORS_ORIGINS", _DEFAULT_CORS_ORIGINS),
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.on_event("shutdown")
def shutdown() -> None:
    close_http_client()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(request: Request):
    return templates.TemplateResponse(request, "index.html", {"title": app.title})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


@app.get("/healthz/full")
def healthz_full() -> dict[str, object]:
    llm = get_llm()
    search = get_web_search()
    limiter = get_rate_limiter()
    return {
        "ok": True,
        "python": {"version": sys.version.split()[0]},
        "llm": {
            "configured": llm.configured,
            "models": llm.config.model_chain,
            "domain": llm.config.domain or None,
        },
        "search": {"enabled": search.enabled, "providers": search.providers()},
        "rate_limit": {"max_requests": limiter.max_requests, "window_s": limiter.window_s},
    }


def run() -> None:
    uvicorn.run(
        "chatrelay.apps.api.main:app",
        host=env_str("HOST", "0.0.0.0") or "0.0.0.0",
        port=env_int("PORT", 3000),
    )
