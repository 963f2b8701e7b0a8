import json
from typing import Any, List

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from syllabot.models.schemas import (
    ChatPage, ChatSessionIn, ChatSessionOut, ChatTurn, MessageIn, MessageOut,
)
from syllabot.services import chat_service
from syllabot.services.chat_service import ChatSessionStore
from syllabot.services.model_service import SyllabusModel, get_model

router = APIRouter(prefix="/api/chat", tags=["Chat"])
page_router = APIRouter(tags=["Chat"])


def _sse(event: str, data: Any) -> bytes:
    """Pack a Server-Sent Event {event, data} as bytes."""
    payload = json.dumps(data, ensure_ascii=False)
    return f"event: {event}\ndata: {payload}\n\n".encode("utf-8")


def get_store(request: Request) -> ChatSessionStore:
    return request.app.state.chats


@page_router.get("/chat", response_model=ChatPage)
def chat_page(school_id: str = Query(..., alias="schoolID"), course_id: str = Query(..., alias="courseID")):
    course = chat_service.load_course(school_id, course_id)
    return chat_service.page_bindings(school_id, course_id, course)


@router.post("/sessions", response_model=ChatSessionOut)
async def create_session(payload: ChatSessionIn, store: ChatSessionStore = Depends(get_store)):
    ctx = await chat_service.open_session(payload.schoolID, payload.courseID, store)
    return ChatSessionOut(
        session_id=ctx.id,
        page=chat_service.page_bindings(ctx.school_id, ctx.course_id, ctx.course),
        messages=ctx.rendered(),
    )


@router.get("/sessions/{sid}/history", response_model=List[ChatTurn])
def get_history(sid: str, store: ChatSessionStore = Depends(get_store)):
    return store.get(sid).history


@router.post("/sessions/{sid}/messages", response_model=MessageOut)
async def send_message(
    sid: str,
    payload: MessageIn,
    store: ChatSessionStore = Depends(get_store),
    model: SyllabusModel = Depends(get_model),
):
    ctx = store.get(sid)
    result = await chat_service.send_message(ctx, payload.text, model)
    return MessageOut(html=result.html, text=result.text)


@router.post("/sessions/{sid}/stream")
async def stream_message(
    sid: str,
    payload: MessageIn,
    store: ChatSessionStore = Depends(get_store),
    model: SyllabusModel = Depends(get_model),
):
    ctx = store.get(sid)

    async def gen():
        async for event, data in chat_service.stream_reply(ctx, payload.text, model):
            yield _sse(event, data)

    return StreamingResponse(gen(), media_type="text/event-stream")


@router.delete("/sessions/{sid}")
def close_session(sid: str, store: ChatSessionStore = Depends(get_store)):
    return {"closed": store.discard(sid)}
