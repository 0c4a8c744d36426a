"""
Login negotiation: find the form, fill it, judge the outcome.

NoForm -> FormDetected -> Submitted -> Success | Failure

An unclear outcome counts as failure. Only missing credentials raise;
every other problem comes back as a failed AuthResult / False.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from mk_common import ValidationError
from mk_models import AuthResult, Credentials
from mk_resolver import ElementResolver

logger = logging.getLogger(__name__)

IDENTIFIER_SELECTORS = (
    'input[type="email"]',
    'input[name*="email"]',
    'input[name*="username"]',
    'input[name*="user"]',
    'input[id*="email"]',
    'input[id*="username"]',
    'input[id*="user"]',
    'input[placeholder*="email" i]',
    'input[placeholder*="username" i]',
)

SECRET_SELECTORS = (
    'input[type="password"]',
    'input[name*="password"]',
    'input[id*="password"]',
    'input[placeholder*="password" i]',
)

SUBMIT_SELECTORS = (
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Login")',
    'button:has-text("Sign in")',
    'button:has-text("Log in")',
    '[role="button"]:has-text("Login")',
    '[role="button"]:has-text("Sign in")',
)

FORM_SUBMIT_FALLBACK = 'form button, form input[type="submit"]'

ERROR_SELECTORS = (
    '.error',
    '.alert-danger',
    '.alert-error',
    '[class*="error"]',
    '[class*="invalid"]',
    '[role="alert"]',
)

UNCLEAR_RESULT = "Authentication result unclear - no URL change or error message detected"


@dataclass
class LoginForm:
    identifier_field: Any = None
    secret_field: Any = None
    submit_control: Any = None

    @property
    def found(self) -> bool:
        return bool(self.identifier_field and self.secret_field and self.submit_control)


class SessionNegotiator:
    """Performs one login attempt on the current page."""

    def __init__(
        self,
        page: Any,
        resolver: Optional[ElementResolver] = None,
        navigation_timeout_ms: int = 30000,
        fallback_wait_s: float = 5.0,
        submit_delay_s: float = 0.5,
    ):
        self.page = page
        self.resolver = resolver or ElementResolver(page)
        self.navigation_timeout_ms = navigation_timeout_ms
        self.fallback_wait_s = fallback_wait_s
        self.submit_delay_s = submit_delay_s

    async def _first_match(self, selectors: Sequence[str]):
        for selector in selectors:
            element = await self.resolver.query(selector)
            if element:
                logger.debug(f"Login form probe matched: {selector}")
                return element
        return None

    async def detect_form(self) -> LoginForm:
        logger.debug("Detecting login form elements")
        form = LoginForm(
            identifier_field=await self._first_match(IDENTIFIER_SELECTORS),
            secret_field=await self._first_match(SECRET_SELECTORS),
            submit_control=await self._first_match(SUBMIT_SELECTORS),
        )
        if not form.submit_control and form.identifier_field and form.secret_field:
            form.submit_control = await self.resolver.query(FORM_SUBMIT_FALLBACK)

        logger.debug(
            f"Login form probe: identifier={bool(form.identifier_field)} "
            f"secret={bool(form.secret_field)} submit={bool(form.submit_control)}"
        )
        return form

    async def fill(self, form: LoginForm, credentials: Credentials) -> None:
        """Overwrite both fields, then activate the submit control."""
        if not credentials.complete:
            raise ValidationError("Missing required credentials: identifier and secret")

        await form.identifier_field.click(click_count=3)
        await form.identifier_field.type(credentials.identifier)

        await form.secret_field.click(click_count=3)
        await form.secret_field.type(credentials.secret)

        await asyncio.sleep(self.submit_delay_s)
        await form.submit_control.click()
        logger.debug("Login form submitted")

    async def _wait_for_navigation(self, original_url: str) -> None:
        await self.page.wait_for_url(
            lambda url: url != original_url,
            timeout=self.navigation_timeout_ms,
        )

    async def _settle(self, original_url: str) -> None:
        """Navigation or the fallback wait, whichever comes first."""
        navigation = asyncio.ensure_future(self._wait_for_navigation(original_url))
        fallback = asyncio.ensure_future(asyncio.sleep(self.fallback_wait_s))
        done, pending = await asyncio.wait({navigation, fallback}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if navigation in done and navigation.exception() is not None:
            logger.debug(f"Navigation wait ended without a redirect: {navigation.exception()}")

    async def _error_text(self) -> Optional[str]:
        for selector in ERROR_SELECTORS:
            element = await self.resolver.query(selector)
            if not element:
                continue
            try:
                if not await element.is_visible():
                    continue
                text = (await element.text_content() or "").strip()
            except Exception as e:
                logger.debug(f"Could not read error indicator {selector}: {e}")
                continue
            if text:
                return text
        return None

    async def await_outcome(self, original_url: str) -> AuthResult:
        logger.debug("Waiting for authentication result")
        await self._settle(original_url)

        current_url = self.page.url
        if current_url != original_url:
            return AuthResult.success(current_url)

        error_text = await self._error_text()
        if error_text:
            return AuthResult.failure(error_text)
        return AuthResult.failure(UNCLEAR_RESULT)

    async def negotiate(self, credentials: Credentials) -> AuthResult:
        """Run the whole state machine and return its terminal value."""
        if not credentials or not credentials.complete:
            raise ValidationError("Missing required credentials: identifier and secret")

        logger.info(f"Starting authentication process for {credentials.identifier}")
        try:
            form = await self.detect_form()
            if not form.found:
                logger.warning("No login form detected on page")
                return AuthResult.failure("No login form detected")

            original_url = self.page.url
            await self.fill(form, credentials)
            result = await self.await_outcome(original_url)
        except Exception as e:
            logger.error(f"Authentication error: {e}")
            return AuthResult.failure(str(e))

        if result.succeeded:
            logger.info(f"Authentication successful: {result.landing_url}")
        else:
            logger.warning(f"Authentication failed: {result.failure_reason}")
        return result

    async def authenticate(self, credentials: Credentials) -> bool:
        result = await self.negotiate(credentials)
        return result.succeeded
