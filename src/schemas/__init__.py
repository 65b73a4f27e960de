"""Schemas package for the scraper service."""
from .scrape import (
    DEFAULT_LOOKBACK_DAYS,
    QUEUE_REQUEST_EXAMPLE,
    QueueTaskIn,
    ResultEnvelope,
    ScrapeTask,
    TaskType,
    parse_queue_tasks,
)

__all__ = [
    "DEFAULT_LOOKBACK_DAYS",
    "QUEUE_REQUEST_EXAMPLE",
    "QueueTaskIn",
    "ResultEnvelope",
    "ScrapeTask",
    "TaskType",
    "parse_queue_tasks",
]
