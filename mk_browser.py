"""
Playwright browser session for mkdemo.

Owns the single browser/page pair for a run and turns the live page
into PageSnapshot values for the planner.
"""

import logging
from typing import Any, Dict, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from mk_common import MKError
from mk_config import BrowserConfig
from mk_models import PageSnapshot

logger = logging.getLogger(__name__)


# Collected in-page: visible interactive elements with a positional selector.
SNAPSHOT_SCRIPT = r"""
(maxElements) => {
  const pageInfo = {
    url: window.location.href,
    title: document.title,
    timestamp: new Date().toISOString(),
  };

  const interactiveElements = [];
  const selectors = [
    'button',
    'a[href]',
    'input[type="button"]',
    'input[type="submit"]',
    'input[type="text"]',
    'input[type="email"]',
    'input[type="password"]',
    'textarea',
    'select',
    '[role="button"]',
    '[onclick]',
    '.btn',
    '.button',
  ];

  selectors.forEach(selector => {
    const elements = document.querySelectorAll(selector);
    elements.forEach((el, index) => {
      if (el.offsetParent === null) return;
      const rect = el.getBoundingClientRect();
      const info = {
        tag: el.tagName.toLowerCase(),
        type: el.type || null,
        text: (el.textContent || '').trim() || el.value || el.placeholder || '',
        selector: `${selector}:nth-of-type(${index + 1})`,
        position: { x: rect.left + rect.width / 2, y: rect.top + rect.height / 2 },
        size: { width: rect.width, height: rect.height },
        visible: rect.width > 0 && rect.height > 0,
      };
      if (info.visible && (info.text || info.type)) {
        interactiveElements.push(info);
      }
    });
  });

  return { ...pageInfo, interactiveElements: interactiveElements.slice(0, maxElements) };
}
"""


class BrowserSession:
    """One Chromium browser, one context, one page."""

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def start(self) -> Page:
        logger.info(f"Initializing browser (headless={self.config.headless}, "
                    f"viewport={self.config.width}x{self.config.height})")
        self.playwright = await async_playwright().start()
        try:
            self.browser = await self.playwright.chromium.launch(
                headless=self.config.headless,
                args=list(self.config.launch_args),
            )
            viewport = {"width": self.config.width, "height": self.config.height}
            self.context = await self.browser.new_context(
                viewport=viewport,
                screen=viewport,
                user_agent=self.config.user_agent,
            )
            self.page = await self.context.new_page()
            self.page.set_default_timeout(self.config.timeout_ms)
        except Exception:
            await self.close()
            raise
        logger.info("Browser initialized")
        return self.page

    def _require_page(self) -> Page:
        if not self.page:
            raise MKError("Browser not initialized. Call start() first.")
        return self.page

    async def navigate(self, url: str) -> None:
        """Navigate and wait for the page to settle."""
        page = self._require_page()
        logger.info(f"Navigating to: {url}")
        response = await page.goto(url, timeout=self.config.timeout_ms)
        if response is not None and not response.ok:
            raise MKError(f"Navigation failed with status: {response.status}")

        try:
            await page.wait_for_load_state("networkidle", timeout=self.config.timeout_ms)
        except Exception:
            logger.warning("Network idle state not reached, waiting for DOM content loaded")
            await page.wait_for_load_state("domcontentloaded", timeout=self.config.timeout_ms)

        logger.info(f"Navigation finished: {page.url}")

    async def capture_snapshot(self, max_elements: int = 30) -> PageSnapshot:
        page = self._require_page()
        raw: Dict[str, Any] = await page.evaluate(SNAPSHOT_SCRIPT, max_elements)
        snapshot = PageSnapshot.from_dict(raw, max_elements=max_elements)
        logger.debug(f"Page state captured: {snapshot.url} ({len(snapshot.elements)} elements)")
        return snapshot

    async def screenshot(self) -> bytes:
        page = self._require_page()
        return await page.screenshot(type="png", full_page=False)

    async def close(self) -> None:
        """Close page, context, browser and driver; safe to call twice."""
        if self.browser or self.playwright:
            logger.info("Closing browser")

        for name in ("page", "context", "browser"):
            resource = getattr(self, name)
            if resource is not None:
                try:
                    await resource.close()
                except Exception as e:
                    logger.warning(f"Error closing {name}: {e}")
                setattr(self, name, None)

        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            self.playwright = None
