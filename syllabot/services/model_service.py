import base64
from functools import lru_cache
from typing import AsyncIterator, List

from google import genai
from google.genai import types

from syllabot.core.config import settings
from syllabot.models.schemas import ChatTurn
from syllabot.services.storage_service import SyllabusFile


def build_contents(history: List[ChatTurn], syllabus: SyllabusFile, text: str) -> List[types.Content]:
    """History as text turns, then the new user turn: syllabus part + prompt part."""
    contents = [
        types.Content(role=turn.role, parts=[types.Part(text=p.text) for p in turn.parts])
        for turn in history
    ]
    contents.append(
        types.Content(
            role="user",
            parts=[
                types.Part.from_bytes(data=base64.b64decode(syllabus.data), mime_type=syllabus.mime_type),
                types.Part(text=text),
            ],
        )
    )
    return contents


class SyllabusModel:
    """Thin wrapper over the Gemini async API."""

    def __init__(self, client: genai.Client, model_name: str):
        self.client = client
        self.model_name = model_name

    @staticmethod
    def config(system_instruction: str, max_output_tokens: int) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=system_instruction,
            max_output_tokens=max_output_tokens,
        )

    async def generate(self, contents: List[types.Content], config: types.GenerateContentConfig) -> str:
        resp = await self.client.aio.models.generate_content(
            model=self.model_name, contents=contents, config=config
        )
        return resp.text or ""

    async def stream(self, contents: List[types.Content], config: types.GenerateContentConfig) -> AsyncIterator[str]:
        async for chunk in await self.client.aio.models.generate_content_stream(
            model=self.model_name, contents=contents, config=config
        ):
            if chunk.text:
                yield chunk.text


@lru_cache(maxsize=1)
def get_model() -> SyllabusModel:
    return SyllabusModel(genai.Client(api_key=settings.GOOGLE_API_KEY), settings.GEMINI_MODEL)
