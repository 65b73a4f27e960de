"""
Browser manager for Playwright-based scraping.

Every scrape task owns a whole browser for its duration: ``BrowserManager.session()``
launches Chromium, yields a ``BrowserSession`` and always tears everything down.
"""

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from src.config import Settings

# Configure basic logger for console output
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

NAVIGATION_TIMEOUT_MS = 60000

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--window-size=1920,1080",
]

# Scrolls 500px every 300ms until roughly eight viewports have been covered
AUTO_SCROLL_JS = """
() => new Promise((resolve) => {
    let total = 0;
    const distance = 500;
    const timer = setInterval(() => {
        window.scrollBy(0, distance);
        total += distance;
        if (total > window.innerHeight * 8) {
            clearInterval(timer);
            resolve();
        }
    }, 300);
})
"""

_CAPTCHA_RE = re.compile(r"captcha", re.IGNORECASE)


def looks_like_challenge(url: Optional[str], html: Optional[str]) -> bool:
    """True when the page is an anti-bot interstitial rather than the requested content."""
    if url and "checkpoint/challenge" in url:
        return True
    return bool(html and _CAPTCHA_RE.search(html))


class BrowserSession:
    """Thin wrapper around one Playwright page and its context."""

    def __init__(self, page: Page, context: BrowserContext) -> None:
        self.page = page
        self.context = context

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(self, url: str, timeout: int = NAVIGATION_TIMEOUT_MS) -> None:
        await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout)
        logger.info(f"Page navigation successful: {url}")

    async def settle(self, seconds: float) -> None:
        """Fixed pause so client-side rendering can finish before inspecting the DOM."""
        await asyncio.sleep(seconds)

    async def content(self) -> str:
        return await self.page.content()

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self.page.evaluate(script)
        return await self.page.evaluate(script, arg)

    async def has_element(self, selector: str) -> bool:
        return await self.page.query_selector(selector) is not None

    async def detect_challenge(self) -> Optional[Dict[str, str]]:
        """
        Check the current page for a captcha or checkpoint.

        Returns:
            The captcha sentinel record, or None when the page looks normal
        """
        current_url = self.page.url
        html = await self.content()
        if looks_like_challenge(current_url, html):
            logger.warning(f"Anti-bot challenge detected at {current_url}")
            return {"error": "captcha_or_challenge", "url": current_url}
        return None

    async def auto_scroll(self) -> None:
        """Scroll down in steps to trigger lazy-loaded sections."""
        await self.page.evaluate(AUTO_SCROLL_JS)

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        await self.context.add_cookies(cookies)

    async def cookies(self) -> List[Dict[str, Any]]:
        return await self.context.cookies()

    async def type(self, selector: str, text: str, delay_ms: int = 40) -> None:
        await self.page.type(selector, text, delay=delay_ms)

    async def submit(self, selector: str, timeout: int = NAVIGATION_TIMEOUT_MS) -> None:
        """Click a submit button and wait for the resulting navigation to settle."""
        async with self.page.expect_navigation(wait_until="networkidle", timeout=timeout):
            await self.page.click(selector)


class BrowserManager:
    """Launches one configured Chromium instance per scrape task."""

    def __init__(self, settings: Settings) -> None:
        """
        Initialize the browser manager.

        Args:
            settings: Service settings (headless mode, user agent, proxy)
        """
        self.settings = settings

    def _proxy(self) -> Optional[Dict[str, str]]:
        if not self.settings.proxy_url:
            return None
        proxy = {"server": self.settings.proxy_url}
        if self.settings.proxy_username and self.settings.proxy_password:
            proxy["username"] = self.settings.proxy_username
            proxy["password"] = self.settings.proxy_password
        return proxy

    def _context_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "viewport": {"width": 1200, "height": 900},
            "extra_http_headers": {"accept-language": "en-US,en;q=0.9"},
        }
        if self.settings.user_agent:
            options["user_agent"] = self.settings.user_agent
        return options

    @asynccontextmanager
    async def session(self) -> AsyncIterator[BrowserSession]:
        """
        Launch a browser and yield a session on a fresh page.

        The browser is closed on every exit path, including failures raised
        inside the ``async with`` body.

        Example:
            async with browser_manager.session() as session:
                await session.goto("https://www.linkedin.com/company/acme/")
        """
        playwright: Optional[Playwright] = None
        browser: Optional[Browser] = None
        context: Optional[BrowserContext] = None
        try:
            playwright = await async_playwright().start()
            launch_options: Dict[str, Any] = {"headless": self.settings.headless, "args": CHROMIUM_ARGS}
            proxy = self._proxy()
            if proxy:
                launch_options["proxy"] = proxy
            browser = await playwright.chromium.launch(**launch_options)
            context = await browser.new_context(**self._context_options())
            page = await context.new_page()
            yield BrowserSession(page, context)
        finally:
            await self._close(playwright, browser, context)

    async def _close(
        self,
        playwright: Optional[Playwright],
        browser: Optional[Browser],
        context: Optional[BrowserContext],
    ) -> None:
        try:
            if context:
                await context.close()
            if browser:
                await browser.close()
        except Exception as e:
            logger.warning(f"Error while closing browser: {str(e)}")
        finally:
            if playwright:
                await playwright.stop()
