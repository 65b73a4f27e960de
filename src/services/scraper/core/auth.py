"""
Login-once-and-reuse flow on top of the session cookie store.
"""

import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.config import Settings
from src.services.exceptions import LoginRequiredError
from src.services.scraper.core.browser import BrowserSession
from src.services.scraper.core.session_store import SessionStore

logger = logging.getLogger(__name__)

FEED_URL = "https://www.linkedin.com/feed/"
USERNAME_SELECTOR = "#username"
PASSWORD_SELECTOR = "#password"
SUBMIT_SELECTOR = "button[type=submit]"


class Authenticator:
    """Restores a stored session, or logs in interactively and stores the new one."""

    def __init__(
        self,
        store: SessionStore,
        email: Optional[str] = None,
        password: Optional[str] = None,
        key: str = "li:cookies",
        feed_url: str = FEED_URL,
    ) -> None:
        self.store = store
        self.email = email
        self.password = password
        self.key = key
        self.feed_url = feed_url

    @classmethod
    def from_settings(cls, store: SessionStore, settings: Settings) -> "Authenticator":
        return cls(
            store=store,
            email=settings.linkedin_email,
            password=settings.linkedin_password,
            key=settings.cookies_key,
        )

    async def _on_login_wall(self, session: BrowserSession) -> bool:
        return "/login" in session.url or await session.has_element(USERNAME_SELECTOR)

    async def ensure_login(self, session: BrowserSession) -> bool:
        """
        Make sure the browser context is logged in.

        Returns:
            True when a fresh login was performed, False when stored cookies sufficed

        Raises:
            LoginRequiredError: No usable cookies and no credentials configured
        """
        cookies = await self.store.load(self.key)
        if cookies:
            try:
                await session.add_cookies(cookies)
            except PlaywrightError as e:
                logger.warning(f"Stored cookies rejected by the browser: {str(e)}")

        await session.goto(self.feed_url)
        await session.settle(0.8)

        if not await self._on_login_wall(session):
            logger.info("Stored session is still valid, skipping login")
            return False

        if not self.email or not self.password:
            raise LoginRequiredError("Missing LINKEDIN_EMAIL / LINKEDIN_PASSWORD and no valid cookies")

        logger.info("Session expired or missing, logging in")
        await session.type(USERNAME_SELECTOR, self.email, delay_ms=40)
        await session.type(PASSWORD_SELECTOR, self.password, delay_ms=40)
        try:
            await session.submit(SUBMIT_SELECTOR)
        except PlaywrightTimeoutError:
            logger.warning("No navigation after login submit, continuing with current page")
        await session.settle(1.0)

        await self.store.save(self.key, await session.cookies())
        return True
