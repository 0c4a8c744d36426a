"""
Runs one planned interaction against the live page.
"""

import asyncio
import logging
from typing import Any, Optional

from mk_common import ElementNotFoundError, StepExecutionError
from mk_models import InteractionStep, SUPPORTED_INTERACTIONS
from mk_resolver import ElementResolver

logger = logging.getLogger(__name__)

DEFAULT_WAIT_MS = 1000
POST_ACTION_DELAY_S = 1.0


class PlanExecutor:
    def __init__(self, page: Any, resolver: Optional[ElementResolver] = None,
                 post_action_delay_s: float = POST_ACTION_DELAY_S):
        self.page = page
        self.resolver = resolver or ElementResolver(page)
        self.post_action_delay_s = post_action_delay_s

    async def _move_mouse_to(self, element) -> None:
        # Cursor movement shows up in the recording; failures are cosmetic
        try:
            bb = await element.bounding_box()
            if bb:
                await self.page.mouse.move(bb["x"] + bb["width"] / 2, bb["y"] + bb["height"] / 2)
        except Exception as e:
            logger.debug(f"Mouse move skipped: {e}")

    async def execute(self, step: InteractionStep) -> None:
        """
        Execute one step.

        Raises:
            ElementNotFoundError: every resolution strategy missed
            StepExecutionError: the action itself failed
        """
        logger.info(f"Executing interaction: {step.kind} {step.selector} ({step.description})")

        if step.kind not in SUPPORTED_INTERACTIONS:
            raise StepExecutionError(f"Unsupported interaction type: {step.kind}")

        if step.kind == "wait":
            await asyncio.sleep((step.duration_hint_ms or DEFAULT_WAIT_MS) / 1000)
            return

        if step.kind == "type" and not step.text:
            raise StepExecutionError("Text is required for type interaction")

        element = await self.resolver.resolve(step.selector, step.description)
        if not element:
            raise ElementNotFoundError(step.selector, step.description)

        try:
            await element.scroll_into_view_if_needed()
            await self._move_mouse_to(element)

            if step.kind == "click":
                await element.click()
            elif step.kind == "type":
                await element.click(click_count=3)
                await element.type(step.text)
            elif step.kind == "hover":
                await element.hover()
            elif step.kind == "scroll":
                await element.evaluate("el => el.scrollIntoView({behavior: 'smooth', block: 'center'})")
        except Exception as e:
            logger.error(f"Interaction execution failed: {step.kind} {step.selector}: {e}")
            raise StepExecutionError(f"{step.kind} on {step.selector} failed: {e}") from e

        await asyncio.sleep(self.post_action_delay_s)
        logger.debug(f"Interaction executed successfully: {step.kind} {step.selector}")
