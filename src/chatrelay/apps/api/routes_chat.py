from fastapi import APIRouter, Depends

from .deps import get_chat_service
from chatrelay.core.chat.schemas import ChatRequest, ChatResponse
from chatrelay.core.chat.service import ChatFlags, ChatService

router = APIRouter()


@router.post(
    "",
    response_model=ChatResponse,
    summary="Send a message and get a reply",
    responses={
        400: {"description": 'Invalid body (missing/empty "message")'},
        429: {"description": "Rate limit exceeded"},
    },
)
def chat(request: ChatRequest, service: ChatService = Depends(get_chat_service)) -> ChatResponse:
    reply = service.generate_reply(request.message, ChatFlags(use_llm=request.use_llm, allow_web=request.allow_web))
    return ChatResponse(reply=reply.text, grounded=reply.grounded, sources=reply.sources, fallback=reply.fallback)
