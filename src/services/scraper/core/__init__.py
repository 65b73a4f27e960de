"""Core scraper components."""

from src.services.scraper.core.auth import Authenticator
from src.services.scraper.core.base import BaseExtractor
from src.services.scraper.core.browser import BrowserManager, BrowserSession
from src.services.scraper.core.engine import TaskRunner, build_task_runner
from src.services.scraper.core.throttle import Throttle

__all__ = [
    "Authenticator",
    "BaseExtractor",
    "BrowserManager",
    "BrowserSession",
    "TaskRunner",
    "Throttle",
    "build_task_runner",
]
