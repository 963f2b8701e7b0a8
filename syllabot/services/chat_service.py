"""Per-page-load chat contexts and the send/stream flows."""
from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, AsyncIterator, List, Optional, Tuple
from uuid import uuid4

from fastapi import HTTPException

from syllabot.core.config import settings
from syllabot.models.schemas import ChatPage, ChatTurn, CourseRecord, RenderedTurn, TextPart, course_fields
from syllabot.repositories import schools_repo
from syllabot.services import rendering
from syllabot.services.model_service import SyllabusModel, build_contents
from syllabot.services.storage_service import SyllabusFile, fetch_syllabus

logger = logging.getLogger("syllabot.chat")
logger.setLevel(logging.INFO)

GREETING_PROMPT = "Hello Syllabot!"
GREETING_REPLY = "Hi! I'm Syllabot. Ask me anything about this course's syllabus."

STREAM_ERROR = "Syllabot couldn't answer right now. Please try again."


def turn(role: str, text: str) -> ChatTurn:
    return ChatTurn(role=role, parts=[TextPart(text=text)])


def seed_history() -> List[ChatTurn]:
    return [turn("user", GREETING_PROMPT), turn("model", GREETING_REPLY)]


def week_of(today: date) -> date:
    """Monday of the week containing ``today``."""
    return today - timedelta(days=today.weekday())


def system_instruction(course_name: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    long_date = f"{today.strftime('%B')} {today.day}, {today.year}"
    monday = week_of(today)
    return (
        f"You are SyllabusBot, a chatbot designed to help students answer questions about the "
        f"{course_name} syllabus. You have been provided with the syllabus for this course. "
        f"For each prompt, find the relevant information in the syllabus and provide the answer. "
        f"The current date is {long_date}. It is the week of {monday.month}/{monday.day}/{monday.year}. "
        f"Respond in and format responses as markdown, using this format for bold, italics, and lists."
    )


def page_bindings(school_id: str, course_id: str, course: CourseRecord) -> ChatPage:
    name = course.name or course_id
    return ChatPage(
        school_id=school_id,
        course_id=course_id,
        courseTitle=name,
        title=f"{name} Syllabot",
        placeholder=f"Ask me anything about {name}...",
        suggestions=list(settings.SUGGESTIONS),
    )


@dataclass
class ChatContext:
    """Everything one chat page needs. History is append-only."""
    school_id: str
    course_id: str
    course: CourseRecord
    syllabus: SyllabusFile
    instruction: str
    max_output_tokens: int = 512
    id: str = field(default_factory=lambda: uuid4().hex)
    history: List[ChatTurn] = field(default_factory=seed_history)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def record(self, user_text: str, model_text: str) -> None:
        self.history.append(turn("user", user_text))
        self.history.append(turn("model", model_text))

    def rendered(self) -> List[RenderedTurn]:
        out = []
        for t in self.history:
            html = rendering.render_full(t.text)
            out.append(RenderedTurn(role=t.role, html=html, text=t.text))
        return out


class ChatSessionStore:
    """In-memory registry of open chat contexts. Oldest is evicted past ``max_size``."""

    def __init__(self, max_size: int = 500):
        self.max_size = max_size
        self._items: "OrderedDict[str, ChatContext]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._items)

    def add(self, ctx: ChatContext) -> ChatContext:
        self._items[ctx.id] = ctx
        while len(self._items) > self.max_size:
            evicted, _ = self._items.popitem(last=False)
            logger.info("evicted chat session %s", evicted)
        return ctx

    def get(self, session_id: str) -> ChatContext:
        ctx = self._items.get(session_id)
        if ctx is None:
            raise HTTPException(status_code=404, detail="Chat session not found")
        self._items.move_to_end(session_id)
        return ctx

    def discard(self, session_id: str) -> bool:
        return self._items.pop(session_id, None) is not None


def load_course(school_id: str, course_id: str) -> CourseRecord:
    data = schools_repo.get_class(school_id, course_id)
    if data is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return CourseRecord(**course_fields(data))


async def open_session(school_id: str, course_id: str, store: ChatSessionStore) -> ChatContext:
    course = load_course(school_id, course_id)
    syllabus = await fetch_syllabus(course.syllabus_uri)
    ctx = ChatContext(
        school_id=school_id,
        course_id=course_id,
        course=course,
        syllabus=syllabus,
        instruction=system_instruction(course.name or course_id),
        max_output_tokens=settings.MAX_OUTPUT_TOKENS,
    )
    logger.info("opened chat session %s for %s/%s", ctx.id, school_id, course_id)
    return store.add(ctx)


async def send_message(ctx: ChatContext, text: str, model: SyllabusModel) -> rendering.RenderedText:
    async with ctx.lock:
        contents = build_contents(ctx.history, ctx.syllabus, text)
        try:
            reply = await model.generate(contents, model.config(ctx.instruction, ctx.max_output_tokens))
        except Exception as e:
            logger.warning("model call failed for session %s: %s", ctx.id, e)
            raise HTTPException(status_code=502, detail=STREAM_ERROR)
        html = rendering.render_full(reply)
        plain = rendering.extract_text(html)
        ctx.record(text, plain)
        return rendering.RenderedText(html, plain)


async def stream_reply(ctx: ChatContext, text: str, model: SyllabusModel) -> AsyncIterator[Tuple[str, Any]]:
    """Yield ("chunk", {html}) per fragment, then ("done", {html, text}) or ("error", {message})."""
    async with ctx.lock:
        contents = build_contents(ctx.history, ctx.syllabus, text)
        handle = rendering.begin_stream()
        try:
            async for chunk in model.stream(contents, model.config(ctx.instruction, ctx.max_output_tokens)):
                piece = rendering.append_chunk(handle, chunk)
                if piece:
                    yield "chunk", {"html": piece}
        except Exception as e:
            logger.exception("model stream failed for session %s: %s", ctx.id, e)
            yield "error", {"message": STREAM_ERROR}
            return
        final = rendering.end_stream(handle)
        ctx.record(text, final.text)
        yield "done", {"html": final.html, "text": final.text}
