"""
Reasoning-service collaborator: chat completion in, text out.

Components receive a ReasoningService in their constructor; tests pass
a fake with the same `complete` coroutine.
"""

import logging
from typing import Optional, Protocol

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class ReasoningService(Protocol):
    async def complete(self, system: str, user: str, temperature: float, max_tokens: int) -> str:
        ...


class OpenAIReasoningService:
    """Chat completions against the OpenAI API."""

    def __init__(self, model: str = "gpt-4o", client: Optional[AsyncOpenAI] = None):
        self.model = model
        # API key comes from OPENAI_API_KEY
        self.client = client or AsyncOpenAI()

    async def complete(self, system: str, user: str, temperature: float, max_tokens: int) -> str:
        logger.debug(f"Reasoning request: model={self.model} max_tokens={max_tokens}")
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        content = response.choices[0].message.content or ""
        logger.debug(f"Reasoning response: {len(content)} chars")
        return content.strip()

    async def close(self) -> None:
        await self.client.close()
