"""Narration text for executed steps."""

import logging
from typing import Optional

from mk_common import NarrationError
from mk_config import PlannerConfig
from mk_models import InteractionStep
from mk_reasoning import ReasoningService

logger = logging.getLogger(__name__)

NARRATOR_SYSTEM_PROMPT = (
    "You are a professional narrator creating voiceover for a web demo video. "
    "Generate natural, engaging narration that explains what is happening on screen."
)


def build_narration_prompt(step: InteractionStep) -> str:
    return f"""Create natural narration for this web demo interaction:

Action: {step.kind}
Target: {step.selector}
Description: {step.description}
Reasoning: {step.reasoning or 'User interaction'}

Generate a brief, professional narration (1-2 sentences) that explains what's happening in a natural, engaging way. Use present tense and speak as if you're demonstrating the website live.
"""


class Narrator:
    """One reasoning call per step; failures surface immediately."""

    def __init__(self, reasoning: ReasoningService, config: Optional[PlannerConfig] = None):
        self.reasoning = reasoning
        self.config = config or PlannerConfig()

    async def narrate(self, step: InteractionStep) -> str:
        logger.debug(f"Generating narration for {step.kind}: {step.description}")
        try:
            text = await self.reasoning.complete(
                system=NARRATOR_SYSTEM_PROMPT,
                user=build_narration_prompt(step),
                temperature=self.config.narration_temperature,
                max_tokens=self.config.narration_max_tokens,
            )
        except Exception as e:
            raise NarrationError(f"Failed to generate narration: {e}") from e

        text = (text or "").strip()
        if not text:
            raise NarrationError("Failed to generate narration: empty response")
        logger.debug(f"Narration generated: {len(text)} chars")
        return text
