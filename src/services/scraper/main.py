"""
Main script for running a batch of scrape tasks from a JSON file.

The file holds either a list of tasks or an object shaped like the
POST /queue body. Envelopes are printed to stdout as NDJSON.
"""

from dotenv import load_dotenv
load_dotenv()

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, TextIO, Union

import structlog

from src.config import get_settings
from src.schemas.scrape import ScrapeTask, parse_queue_tasks
from src.services.exceptions import InvalidTaskError
from src.services.scraper.core.engine import TaskRunner, build_task_runner

# Configure basic logger for console output
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def configure_logging(log_level: str = "INFO") -> None:
    """Send structured task logs to stderr so stdout carries only NDJSON envelopes."""
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def load_tasks(path: Union[Path, str], credentials_configured: bool = False) -> List[ScrapeTask]:
    """
    Load task descriptors from a JSON file.

    Args:
        path: Path to the JSON file
        credentials_configured: Whether login credentials are set (implies sessions)

    Returns:
        Task descriptors in file order
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("tasks")
    if not isinstance(raw, list):
        raise InvalidTaskError(f"{path}: expected a task list or an object with a \"tasks\" list")
    return parse_queue_tasks(raw, credentials_configured)


async def run_tasks(runner: TaskRunner, tasks: List[ScrapeTask], out: TextIO = sys.stdout) -> int:
    """
    Run tasks and write one NDJSON line per envelope.

    Returns:
        Number of failed tasks
    """
    failed = 0
    async for envelope in runner.stream_many(tasks):
        out.write(envelope.to_json_line())
        out.flush()
        if not envelope.ok:
            failed += 1
    return failed


async def main(path: str) -> int:
    """Main async function to run the tasks in a file."""
    settings = get_settings()
    configure_logging(settings.log_level)
    tasks = load_tasks(path, settings.has_credentials)
    logger.info(f"Loaded {len(tasks)} tasks from {path}")

    failed = await run_tasks(build_task_runner(settings), tasks)
    logger.info(f"Completed {len(tasks)} tasks: {len(tasks) - failed} ok, {failed} failed")
    return failed


def cli() -> None:
    """Command line entry point; exits non-zero when any task failed."""
    parser = argparse.ArgumentParser(description="Run scrape tasks from a JSON file and print NDJSON results")
    parser.add_argument("tasks_file", help="JSON file with a task list or a queue request body")

    args = parser.parse_args()
    sys.exit(1 if asyncio.run(main(args.tasks_file)) else 0)


if __name__ == "__main__":
    cli()
