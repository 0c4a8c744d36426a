"""
Session negotiator tests
"""
import pytest

from conftest import FakeElement, FakePage
from mk_auth import FORM_SUBMIT_FALLBACK, UNCLEAR_RESULT, SessionNegotiator
from mk_common import ValidationError
from mk_models import Credentials


def login_page(url="https://x.test/login", with_submit=True, extra=None):
    elements = {
        'input[type="email"]': [FakeElement("email")],
        'input[type="password"]': [FakeElement("password")],
    }
    if with_submit:
        elements['button[type="submit"]'] = [FakeElement("submit")]
    elements.update(extra or {})
    return FakePage(elements, url=url)


def negotiator(page):
    return SessionNegotiator(page, navigation_timeout_ms=200, fallback_wait_s=0.02, submit_delay_s=0)


class TestDetectForm:

    @pytest.mark.asyncio
    async def test_full_form_found(self):
        form = await negotiator(login_page()).detect_form()
        assert form.found
        assert form.submit_control.name == "submit"

    @pytest.mark.asyncio
    async def test_missing_secret_field_means_not_found(self):
        page = FakePage({
            'input[type="email"]': [FakeElement("email")],
            'button[type="submit"]': [FakeElement("submit")],
        })
        form = await negotiator(page).detect_form()
        assert not form.found

    @pytest.mark.asyncio
    async def test_missing_identifier_field_means_not_found(self):
        page = FakePage({
            'input[type="password"]': [FakeElement("password")],
            'button[type="submit"]': [FakeElement("submit")],
        })
        form = await negotiator(page).detect_form()
        assert not form.found

    @pytest.mark.asyncio
    async def test_submit_falls_back_to_form_button(self):
        page = login_page(with_submit=False, extra={FORM_SUBMIT_FALLBACK: [FakeElement("form-button")]})
        form = await negotiator(page).detect_form()
        assert form.found
        assert form.submit_control.name == "form-button"

    @pytest.mark.asyncio
    async def test_identifier_probe_order(self):
        page = FakePage({
            'input[name*="email"]': [FakeElement("by-name")],
            'input[id*="user"]': [FakeElement("by-id")],
            'input[type="password"]': [FakeElement("password")],
        })
        form = await negotiator(page).detect_form()
        assert form.identifier_field.name == "by-name"


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_incomplete_credentials_raise_before_page_access(self):
        page = login_page()
        with pytest.raises(ValidationError) as exc_info:
            await negotiator(page).authenticate(Credentials("", "p"))

        assert "credentials" in str(exc_info.value)
        assert page.queries == []

    @pytest.mark.asyncio
    async def test_url_change_is_success(self):
        page = login_page()

        async def submit():
            page.url = "https://x.test/dashboard"

        page.elements['button[type="submit"]'][0].click.side_effect = submit
        result = await negotiator(page).negotiate(Credentials("me@x.test", "secret"))

        assert result.succeeded
        assert result.landing_url == "https://x.test/dashboard"

    @pytest.mark.asyncio
    async def test_fields_are_overwritten_before_submit(self):
        page = login_page()
        email = page.elements['input[type="email"]'][0]
        password = page.elements['input[type="password"]'][0]

        await negotiator(page).authenticate(Credentials("me@x.test", "secret"))

        email.click.assert_awaited_once_with(click_count=3)
        email.type.assert_awaited_once_with("me@x.test")
        password.type.assert_awaited_once_with("secret")
        page.elements['button[type="submit"]'][0].click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unchanged_url_without_errors_is_failure(self):
        page = login_page()
        result = await negotiator(page).negotiate(Credentials("me@x.test", "secret"))

        assert not result.succeeded
        assert result.failure_reason == UNCLEAR_RESULT

    @pytest.mark.asyncio
    async def test_visible_error_text_is_reported(self):
        page = login_page(extra={
            ".error": [FakeElement("hidden", text="stale", visible=False)],
            ".alert-danger": [FakeElement("alert", text="  Invalid password  ")],
        })
        result = await negotiator(page).negotiate(Credentials("me@x.test", "wrong"))

        assert not result.succeeded
        assert result.failure_reason == "Invalid password"

    @pytest.mark.asyncio
    async def test_no_form_returns_false(self):
        page = FakePage({}, url="https://x.test/")
        assert await negotiator(page).authenticate(Credentials("me@x.test", "secret")) is False

    @pytest.mark.asyncio
    async def test_exception_during_fill_returns_false(self):
        page = login_page()
        page.elements['input[type="email"]'][0].type.side_effect = RuntimeError("detached")

        assert await negotiator(page).authenticate(Credentials("me@x.test", "secret")) is False
