"""
Task runner: executes scrape tasks one at a time behind the throttle.
"""

import asyncio
from typing import AsyncContextManager, AsyncIterator, Callable, Iterable, List, Mapping, Optional

import structlog

from src.config import Settings
from src.schemas.scrape import ResultEnvelope, ScrapeTask, TaskType
from src.services.exceptions import InvalidTaskError, LoginRequiredError, UnknownTaskTypeError
from src.services.scraper.core.auth import Authenticator
from src.services.scraper.core.base import BaseExtractor
from src.services.scraper.core.browser import BrowserManager, BrowserSession
from src.services.scraper.core.session_store import build_session_store
from src.services.scraper.core.throttle import Throttle

logger = structlog.get_logger()

SessionFactory = Callable[[], AsyncContextManager[BrowserSession]]


class TaskRunner:
    """
    Runs scrape tasks sequentially.

    Each task waits for the throttle, then owns one browser session for its
    whole duration. Tasks never run in parallel within one call.
    """

    def __init__(
        self,
        extractors: Mapping[TaskType, BaseExtractor],
        session_factory: SessionFactory,
        throttle: Throttle,
        authenticator: Optional[Authenticator] = None,
    ) -> None:
        """
        Initialize the task runner.

        Args:
            extractors: Extractor per task type
            session_factory: Callable returning an async context manager that
                yields a browser session and releases it on exit
            throttle: Gate spacing out task starts
            authenticator: Login flow for tasks with ``use_session``
        """
        self.extractors = extractors
        self.session_factory = session_factory
        self.throttle = throttle
        self.authenticator = authenticator

    def _resolve(self, task: ScrapeTask) -> BaseExtractor:
        if task.rejection:
            raise InvalidTaskError(task.rejection)
        extractor = self.extractors.get(TaskType.parse(task.kind))
        if extractor is None:
            raise UnknownTaskTypeError()
        if not task.url:
            raise InvalidTaskError("Missing url")
        return extractor

    async def _run_extractor(self, extractor: BaseExtractor, task: ScrapeTask) -> dict:
        async with self.session_factory() as session:
            if task.use_session:
                if self.authenticator is None:
                    raise LoginRequiredError("Task requires a session but no authenticator is configured")
                await self.authenticator.ensure_login(session)
            return await extractor.run(session, task)

    async def execute(self, task: ScrapeTask) -> dict:
        """
        Run one task and return its record.

        Raises:
            InvalidTaskError: Rejected entry, unknown type or missing URL (before any waiting)
            Exception: Any failure from login, navigation or extraction
        """
        extractor = self._resolve(task)
        await self.throttle.wait_turn()
        logger.info("task_started", type=task.kind, url=task.url, use_session=task.use_session)
        result = await self._run_extractor(extractor, task)
        logger.info("task_completed", type=task.kind, url=task.url)
        return result

    async def run_one(self, task: ScrapeTask) -> ResultEnvelope:
        """Run one task and wrap the outcome in an envelope. Never raises."""
        try:
            extractor = self._resolve(task)
        except InvalidTaskError as e:
            logger.warning("task_rejected", type=task.kind, url=task.url, error=str(e))
            return ResultEnvelope.failure(task, str(e))

        await self.throttle.wait_turn()
        logger.info("task_started", type=task.kind, url=task.url, use_session=task.use_session)
        try:
            result = await self._run_extractor(extractor, task)
        except Exception as e:
            logger.error(
                "task_failed",
                type=task.kind,
                url=task.url,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return ResultEnvelope.failure(task, str(e))

        logger.info("task_completed", type=task.kind, url=task.url)
        return ResultEnvelope.success(task, result)

    async def stream_many(self, tasks: Iterable[ScrapeTask]) -> AsyncIterator[ResultEnvelope]:
        """
        Yield one envelope per task, in order, as soon as each task finishes.

        A task that has started is shielded from cancellation: if the consumer
        goes away mid-stream the current task still runs to completion, and
        only the tasks not yet started are dropped.
        """
        for task in tasks:
            yield await asyncio.shield(self.run_one(task))

    async def run_many(self, tasks: Iterable[ScrapeTask]) -> List[ResultEnvelope]:
        """Run all tasks and return their envelopes once the last one is done."""
        return [envelope async for envelope in self.stream_many(tasks)]


def build_task_runner(settings: Settings) -> TaskRunner:
    """Wire the production runner: Playwright sessions, LinkedIn extractors, cookie store."""
    # Imported here: providers depend on core, which re-exports this module
    from src.services.scraper.providers.linkedin import default_extractors

    browser_manager = BrowserManager(settings)
    authenticator = Authenticator.from_settings(build_session_store(settings), settings)
    return TaskRunner(
        extractors=default_extractors(),
        session_factory=browser_manager.session,
        throttle=Throttle(settings.rate_min_ms, settings.rate_max_ms),
        authenticator=authenticator,
    )
