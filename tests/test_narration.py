"""
Narration and reasoning-service tests
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from mk_common import NarrationError
from mk_models import InteractionStep
from mk_narration import NARRATOR_SYSTEM_PROMPT, Narrator, build_narration_prompt
from mk_reasoning import OpenAIReasoningService

STEP = InteractionStep("click", "a.reports", "Open the reports page", reasoning="Core feature")


class TestNarrator:

    @pytest.mark.asyncio
    async def test_narration_call(self):
        reasoning = AsyncMock()
        reasoning.complete.return_value = "  Here we open the reports page.  "

        text = await Narrator(reasoning).narrate(STEP)

        assert text == "Here we open the reports page."
        kwargs = reasoning.complete.await_args.kwargs
        assert kwargs["system"] == NARRATOR_SYSTEM_PROMPT
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 150
        assert "Description: Open the reports page" in kwargs["user"]

    @pytest.mark.asyncio
    async def test_empty_narration_is_an_error(self):
        reasoning = AsyncMock()
        reasoning.complete.return_value = "   "
        with pytest.raises(NarrationError):
            await Narrator(reasoning).narrate(STEP)

    @pytest.mark.asyncio
    async def test_service_failure_is_wrapped(self):
        reasoning = AsyncMock()
        reasoning.complete.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(NarrationError) as exc_info:
            await Narrator(reasoning).narrate(STEP)
        assert "quota exceeded" in str(exc_info.value)

    def test_prompt_default_reasoning(self):
        prompt = build_narration_prompt(InteractionStep("hover", "#help", "Hover help"))
        assert "Reasoning: User interaction" in prompt
        assert "Action: hover" in prompt


class TestOpenAIReasoningService:

    @pytest.mark.asyncio
    async def test_chat_completion_request(self):
        message = SimpleNamespace(content="  [] \n")
        client = Mock()
        client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(choices=[SimpleNamespace(message=message)]))
        client.close = AsyncMock()
        service = OpenAIReasoningService(model="gpt-4o-mini", client=client)

        content = await service.complete(system="sys", user="usr", temperature=0.3, max_tokens=2000)
        await service.close()

        assert content == "[]"
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "usr"},
        ]
        client.close.assert_awaited_once()
