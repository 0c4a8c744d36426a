"""
Shared fakes: a page that answers selector queries from a dict, and
elements whose actions are AsyncMocks.
"""
import asyncio
import os
import sys
from unittest.mock import AsyncMock

import pytest

# Project root on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class FakeElement:
    def __init__(self, name="el", text="", visible=True, box=None):
        self.name = name
        self.click = AsyncMock()
        self.type = AsyncMock()
        self.hover = AsyncMock()
        self.evaluate = AsyncMock()
        self.scroll_into_view_if_needed = AsyncMock()
        self.is_visible = AsyncMock(return_value=visible)
        self.text_content = AsyncMock(return_value=text)
        self.bounding_box = AsyncMock(return_value=box or {"x": 10, "y": 20, "width": 100, "height": 40})

    def __repr__(self):
        return f"FakeElement({self.name})"


class FakePage:
    """Answers query_selector from `elements`; selectors in `invalid` raise."""

    def __init__(self, elements=None, url="https://x.test/login", invalid=()):
        self.elements = dict(elements or {})
        self.invalid = set(invalid)
        self.url = url
        self.queries = []
        self.mouse = AsyncMock()
        self.set_viewport_size = AsyncMock()
        self.screenshots = 0

    async def query_selector(self, selector):
        self.queries.append(selector)
        if selector in self.invalid:
            raise Exception(f"Unexpected token in selector {selector}")
        matches = self.elements.get(selector) or []
        return matches[0] if matches else None

    async def query_selector_all(self, selector):
        self.queries.append(selector)
        if selector in self.invalid:
            raise Exception(f"Unexpected token in selector {selector}")
        return list(self.elements.get(selector) or [])

    async def wait_for_url(self, predicate, timeout=30000):
        deadline = timeout / 1000
        waited = 0.0
        while not predicate(self.url):
            if waited >= deadline:
                raise TimeoutError(f"Timeout {timeout}ms exceeded")
            await asyncio.sleep(0.005)
            waited += 0.005

    async def screenshot(self, type="png", full_page=False):
        self.screenshots += 1
        return f"frame-{self.screenshots}".encode()


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def advance_ms(self, ms):
        self.now += ms / 1000

    def __call__(self):
        return self.now


@pytest.fixture
def fake_clock():
    return FakeClock()
