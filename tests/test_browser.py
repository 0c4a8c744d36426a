"""
Browser session tests against a mocked Playwright page
"""
from unittest.mock import AsyncMock, Mock

import pytest

from mk_browser import SNAPSHOT_SCRIPT, BrowserSession
from mk_common import MKError


def session_with_page():
    session = BrowserSession()
    page = Mock()
    page.url = "https://x.test/dashboard"
    page.goto = AsyncMock(return_value=Mock(ok=True, status=200))
    page.wait_for_load_state = AsyncMock()
    page.evaluate = AsyncMock()
    page.close = AsyncMock()
    session.page = page
    return session, page


class TestNavigate:

    @pytest.mark.asyncio
    async def test_waits_for_network_idle(self):
        session, page = session_with_page()
        await session.navigate("https://x.test")

        page.goto.assert_awaited_once_with("https://x.test", timeout=30000)
        page.wait_for_load_state.assert_awaited_once_with("networkidle", timeout=30000)

    @pytest.mark.asyncio
    async def test_falls_back_to_dom_content_loaded(self):
        session, page = session_with_page()
        page.wait_for_load_state.side_effect = [TimeoutError("idle"), None]

        await session.navigate("https://x.test")

        assert page.wait_for_load_state.await_args_list[1].args[0] == "domcontentloaded"

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self):
        session, page = session_with_page()
        page.goto.return_value = Mock(ok=False, status=503)

        with pytest.raises(MKError) as exc_info:
            await session.navigate("https://x.test")
        assert "503" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_requires_start(self):
        with pytest.raises(MKError):
            await BrowserSession().navigate("https://x.test")


class TestSnapshot:

    @pytest.mark.asyncio
    async def test_snapshot_is_built_from_page_script(self):
        session, page = session_with_page()
        page.evaluate.return_value = {
            "url": "https://x.test/dashboard",
            "title": "Dashboard",
            "timestamp": "2026-01-01T00:00:00Z",
            "interactiveElements": [
                {"tag": "BUTTON", "type": "submit", "text": " Save ", "selector": "button:nth-of-type(1)",
                 "position": {"x": 50, "y": 60}, "size": {"width": 80, "height": 30}, "visible": True},
                {"tag": "a", "type": None, "text": "Reports", "selector": "a[href]:nth-of-type(2)"},
            ],
        }

        snapshot = await session.capture_snapshot(max_elements=1)

        page.evaluate.assert_awaited_once_with(SNAPSHOT_SCRIPT, 1)
        assert snapshot.title == "Dashboard"
        assert len(snapshot.elements) == 1
        button = snapshot.elements[0]
        assert (button.tag, button.visible_text, button.input_type) == ("button", "Save", "submit")
        assert button.center == (50.0, 60.0)


class TestClose:

    @pytest.mark.asyncio
    async def test_close_is_idempotent_and_tolerates_errors(self):
        session, page = session_with_page()
        page.close.side_effect = RuntimeError("already closed")
        browser = Mock(close=AsyncMock())
        playwright = Mock(stop=AsyncMock())
        session.browser = browser
        session.playwright = playwright

        await session.close()
        await session.close()

        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()
        assert session.page is None and session.browser is None
