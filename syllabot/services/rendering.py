"""Markdown -> safe HTML for chat output.

Model replies arrive either as one string (``render_full``) or as a sequence
of chunks (``begin_stream`` / ``append_chunk`` / ``end_stream``). Every path
ends in ``sanitize`` so nothing reaches the page or the history unfiltered.
"""
from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from typing import List, NamedTuple
from uuid import uuid4

import nh3
from markdown_it import MarkdownIt

logger = logging.getLogger("syllabot.rendering")
logger.setLevel(logging.INFO)

ALLOWED_TAGS = {
    "p", "br", "hr", "b", "strong", "i", "em", "u", "s", "del", "code", "pre",
    "blockquote", "ul", "ol", "li", "a", "img", "span",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "table", "thead", "tbody", "tr", "th", "td",
}
ALLOWED_ATTRIBUTES = {
    "a": {"href", "target", "rel", "title"},
    "img": {"src", "alt", "title"},
    "*": {"title"},
}
URL_SCHEMES = {"http", "https", "mailto"}

_BLOCK_END = re.compile(r"(</(?:p|h[1-6]|pre|blockquote|ul|ol|table)>|<hr\s*/?>)", re.I)
_LINE_END = re.compile(r"(</(?:li|tr)>|<br\s*/?>)", re.I)
_TAG_NEWLINE = re.compile(r"(</?(?:p|h[1-6]|pre|blockquote|ul|ol|li|table|thead|tbody|tr|th|td|hr|br)\b[^>]*>)\n", re.I)
_CELL_END = re.compile(r"</t[hd]>", re.I)
_BLANK_RUN = re.compile(r"\n{3,}")

_md = MarkdownIt("commonmark", {"html": False}).enable(["table", "strikethrough"])


class StreamClosedError(RuntimeError):
    pass


class RenderedText(NamedTuple):
    html: str
    text: str


@dataclass
class StreamHandle:
    """One model turn's incremental output. Closed handles are never reused."""
    id: str = field(default_factory=lambda: uuid4().hex)
    state: str = "idle"  # idle -> streaming -> closed
    raw: List[str] = field(default_factory=list)
    fragments: List[str] = field(default_factory=list)

    @property
    def html(self) -> str:
        return "".join(self.fragments)

    @property
    def closed(self) -> bool:
        return self.state == "closed"


def sanitize(fragment: str) -> str:
    return nh3.clean(
        fragment,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes=URL_SCHEMES,
        link_rel=None,
    )


def _escaped(text: str) -> str:
    return html.escape(text).replace("\n", "<br>")


def extract_text(fragment: str) -> str:
    """Drop all markup.

    List items, table rows and ``<br>`` end a line; paragraphs and other
    blocks are separated by one blank line.
    """
    if not fragment:
        return ""
    # Newlines the renderer puts after block tags carry no text
    marked = _TAG_NEWLINE.sub(r"\1", fragment)
    marked = _CELL_END.sub(lambda m: m.group(0) + " ", marked)
    marked = _LINE_END.sub(lambda m: m.group(0) + "\n", marked)
    marked = _BLOCK_END.sub(lambda m: m.group(0) + "\n\n", marked)
    bare = html.unescape(nh3.clean(marked, tags=set()))
    joined = "\n".join(ln.strip() for ln in bare.splitlines())
    return _BLANK_RUN.sub("\n\n", joined).strip("\n")


def render_full(markdown_text: str) -> str:
    text = markdown_text or ""
    try:
        return sanitize(_md.render(text))
    except Exception as e:
        logger.warning("Markdown render failed (%s); sanitizing raw text", e)
    try:
        return sanitize(text)
    except Exception as e:
        logger.warning("Sanitize failed (%s); escaping", e)
        return _escaped(text)


def begin_stream() -> StreamHandle:
    return StreamHandle()


def append_chunk(handle: StreamHandle, chunk_text: str) -> str:
    """Render one chunk inline and append it. Returns the sanitized fragment.

    Inline parsing keeps lists and paragraphs open across chunk boundaries.
    A markdown token split between chunks renders as literal text here and is
    resolved when the stream ends.
    """
    if handle.closed:
        raise StreamClosedError(f"stream {handle.id} is closed")
    if not chunk_text:
        return ""
    handle.state = "streaming"
    handle.raw.append(chunk_text)
    try:
        piece = sanitize(_md.renderInline(chunk_text))
    except Exception as e:
        logger.warning("Inline render failed for stream %s (%s); appending literal text", handle.id, e)
        piece = _escaped(chunk_text)
    handle.fragments.append(piece)
    return piece


def end_stream(handle: StreamHandle) -> RenderedText:
    if handle.closed:
        raise StreamClosedError(f"stream {handle.id} is already closed")
    handle.state = "closed"
    if not handle.raw:
        return RenderedText("", "")
    raw = "".join(handle.raw)
    try:
        final = sanitize(_md.render(raw))
    except Exception as e:
        logger.warning("Final render failed for stream %s (%s); re-sanitizing fragments", handle.id, e)
        try:
            final = sanitize(handle.html)
        except Exception as e:
            logger.warning("Sanitize failed for stream %s (%s); escaping", handle.id, e)
            final = _escaped(raw)
    return RenderedText(final, extract_text(final))
