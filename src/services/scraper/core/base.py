"""
Base extractor abstract class for page-level scraping operations.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict

from src.schemas.scrape import ScrapeTask
from src.services.scraper.core.browser import BrowserSession

# Configure basic logger for console output
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def scraped_at() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def with_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


class BaseExtractor(ABC):
    """Abstract base class for one kind of scrape task."""

    #: Fixed pause after navigation before the DOM is inspected
    settle_seconds: float = 1.2
    #: Whether to look for a captcha/checkpoint page before extracting
    check_challenge: bool = False

    def target_url(self, url: str) -> str:
        """
        Page to navigate to for the given task URL.

        Args:
            url: URL supplied by the caller

        Returns:
            URL actually loaded in the browser
        """
        return url

    @abstractmethod
    async def extract(self, session: BrowserSession, task: ScrapeTask) -> Any:
        """
        Pull structured data out of the loaded page.

        Args:
            session: Browser session positioned on ``target_url``
            task: Task being executed

        Returns:
            Kind-specific data (dict for pages, list for feeds)
        """
        pass

    def build_record(self, task: ScrapeTask, target: str, extracted: Any) -> Dict[str, Any]:
        """Wrap extracted data into the record returned to the caller."""
        return {"url": target, "scrapedAt": scraped_at(), "data": extracted}

    async def run(self, session: BrowserSession, task: ScrapeTask) -> Dict[str, Any]:
        """
        Execute the full page workflow.

        This method:
        1. Navigates to the target URL and waits for it to settle
        2. Returns the captcha sentinel if the page is a challenge
        3. Scrolls to load lazy sections
        4. Extracts data and wraps it into the record

        Returns:
            Record dict, or the captcha sentinel
        """
        target = self.target_url(task.url)
        await session.goto(target)
        await session.settle(self.settle_seconds)

        if self.check_challenge:
            challenge = await session.detect_challenge()
            if challenge is not None:
                return challenge

        await session.auto_scroll()
        extracted = await self.extract(session, task)
        logger.info(f"Extraction completed: {type(self).__name__} ({target})")
        return self.build_record(task, target, extracted)
