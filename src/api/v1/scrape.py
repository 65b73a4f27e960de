"""
Scrape API endpoints.
Single-task endpoints return the record directly; /queue runs a list of tasks
and either streams NDJSON envelopes or returns them all at the end.
"""

import logging
from typing import AsyncIterator, List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from src.config import Settings, get_settings
from src.schemas.scrape import DEFAULT_LOOKBACK_DAYS, QUEUE_REQUEST_EXAMPLE, ScrapeTask, TaskType, parse_queue_tasks
from src.services.scraper.core.engine import TaskRunner, build_task_runner

# Configure structlog for structured JSON logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(get_settings().log_level)
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

NDJSON_MEDIA_TYPE = "application/x-ndjson"
MISSING_URL = "Missing ?url"
MISSING_COMPANY_URL = "Missing ?url (company page)"
MISSING_TASKS = "Provide tasks: [{type,url,days?,login?}, ...]"

# Create router
router = APIRouter(tags=["scrape"])

_task_runner: Optional[TaskRunner] = None


def get_app_settings() -> Settings:
    return get_settings()


def get_task_runner() -> TaskRunner:
    """Process-wide runner, so every request shares one throttle."""
    global _task_runner
    if _task_runner is None:
        _task_runner = build_task_runner(get_settings())
    return _task_runner


async def _scrape(
    runner: TaskRunner,
    settings: Settings,
    kind: TaskType,
    url: Optional[str],
    login: Optional[str],
    days: int = DEFAULT_LOOKBACK_DAYS,
    missing_message: str = MISSING_URL,
):
    if not url:
        return JSONResponse(status_code=400, content={"error": missing_message})

    task = ScrapeTask(
        kind=kind.value,
        url=url,
        days=days,
        use_session=login == "1" or settings.has_credentials,
    )
    try:
        return await runner.execute(task)
    except Exception as e:
        logger.error("scrape_failed", type=task.kind, url=url, error=str(e), exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.get("/profile")
async def profile(
    url: Optional[str] = Query(None, description="Profile URL"),
    login: Optional[str] = Query(None, description="1 to use a logged-in session"),
    runner: TaskRunner = Depends(get_task_runner),
    settings: Settings = Depends(get_app_settings),
):
    """Scrape a person profile."""
    return await _scrape(runner, settings, TaskType.PROFILE, url, login)


@router.get("/profile_posts")
async def profile_posts(
    url: Optional[str] = Query(None, description="Profile URL"),
    days: int = Query(DEFAULT_LOOKBACK_DAYS, description="Look-back window in days"),
    login: Optional[str] = Query(None, description="1 to use a logged-in session"),
    runner: TaskRunner = Depends(get_task_runner),
    settings: Settings = Depends(get_app_settings),
):
    """Scrape a person's posts (last N days, best-effort)."""
    return await _scrape(runner, settings, TaskType.PROFILE_POSTS, url, login, days=days)


@router.get("/company")
async def company(
    url: Optional[str] = Query(None, description="Company page URL"),
    login: Optional[str] = Query(None, description="1 to use a logged-in session"),
    runner: TaskRunner = Depends(get_task_runner),
    settings: Settings = Depends(get_app_settings),
):
    """Scrape a company page."""
    return await _scrape(runner, settings, TaskType.COMPANY, url, login)


@router.get("/company_posts")
async def company_posts(
    url: Optional[str] = Query(None, description="Company page URL"),
    days: int = Query(DEFAULT_LOOKBACK_DAYS, description="Look-back window in days"),
    login: Optional[str] = Query(None, description="1 to use a logged-in session"),
    runner: TaskRunner = Depends(get_task_runner),
    settings: Settings = Depends(get_app_settings),
):
    """Scrape company posts (last N days, best-effort)."""
    return await _scrape(runner, settings, TaskType.COMPANY_POSTS, url, login, days=days)


@router.get("/jobs_company")
async def jobs_company(
    url: Optional[str] = Query(None, description="Company page URL"),
    login: Optional[str] = Query(None, description="1 to use a logged-in session"),
    runner: TaskRunner = Depends(get_task_runner),
    settings: Settings = Depends(get_app_settings),
):
    """Scrape a company's jobs tab (at most 50 listings)."""
    return await _scrape(
        runner, settings, TaskType.JOBS_COMPANY, url, login, missing_message=MISSING_COMPANY_URL
    )


async def _ndjson_lines(runner: TaskRunner, tasks: List[ScrapeTask]) -> AsyncIterator[str]:
    async for envelope in runner.stream_many(tasks):
        yield envelope.to_json_line()


@router.post(
    "/queue",
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": {"type": "object"}, "example": QUEUE_REQUEST_EXAMPLE}},
        }
    },
)
async def queue(
    request: Request,
    runner: TaskRunner = Depends(get_task_runner),
    settings: Settings = Depends(get_app_settings),
):
    """
    Run a list of scrape tasks in order.

    With ``stream=true`` (default) each envelope is written as one NDJSON line
    as soon as its task finishes. With ``stream=false`` the response is
    ``{"ok": true, "results": [...]}`` once every task is done.

    Body: ``{"stream": bool, "tasks": [{type, url, days?, login?}, ...]}``. A body
    that is not JSON, or whose ``tasks`` is not a non-empty array, is rejected
    with 400. An entry that fails validation gets its own failed envelope and
    does not stop the rest of the batch.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None

    raw_tasks = body.get("tasks") if isinstance(body, dict) else None
    if not isinstance(raw_tasks, list) or not raw_tasks:
        return JSONResponse(status_code=400, content={"error": MISSING_TASKS})

    stream = bool(body.get("stream", True))
    tasks = parse_queue_tasks(raw_tasks, settings.has_credentials)
    logger.info("queue_received", task_count=len(tasks), stream=stream)

    if stream:
        return StreamingResponse(_ndjson_lines(runner, tasks), media_type=NDJSON_MEDIA_TYPE)

    envelopes = await runner.run_many(tasks)
    return {"ok": True, "results": [envelope.to_dict() for envelope in envelopes]}
