"""
Scrape task and result envelope schemas using Pydantic V2.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

DEFAULT_LOOKBACK_DAYS = 30


class TaskType(str, Enum):
    """Kinds of scrape tasks the service knows how to run."""

    PROFILE = "profile"
    PROFILE_POSTS = "profile_posts"
    COMPANY = "company"
    COMPANY_POSTS = "company_posts"
    JOBS_COMPANY = "jobs_company"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["TaskType"]:
        """Return the matching TaskType, or None for unknown values."""
        for member in cls:
            if value == member.value:
                return member
        return None


class ScrapeTask(BaseModel):
    """
    Immutable description of one scrape job.

    ``kind`` is kept as a plain string so that queue submissions with an
    unknown type can still be described and reported back to the caller.
    """

    kind: str = Field(..., description="Task type, one of TaskType values")
    url: Optional[str] = Field(None, description="Target page URL")
    days: int = Field(DEFAULT_LOOKBACK_DAYS, description="Look-back window for *_posts tasks")
    use_session: bool = Field(False, description="Whether to restore or create a logged-in session")
    rejection: Optional[str] = Field(None, description="Why the submitted entry could not be turned into a task")

    class Config:
        """Pydantic configuration."""

        frozen = True


class QueueTaskIn(BaseModel):
    """One entry of a POST /queue request body."""

    type: Optional[str] = Field(None, description="Task type")
    url: Optional[str] = Field(None, description="Target page URL")
    days: Optional[int] = Field(None, description="Look-back window in days (default 30)")
    login: Optional[Union[bool, int, str]] = Field(None, description="1 to force a logged-in session")

    def wants_login(self) -> bool:
        return self.login is True or self.login == 1 or self.login == "1"

    def to_task(self, credentials_configured: bool = False) -> ScrapeTask:
        """Build the task descriptor; configured credentials always imply a session."""
        return ScrapeTask(
            kind=self.type or "",
            url=self.url,
            days=self.days or DEFAULT_LOOKBACK_DAYS,
            use_session=self.wants_login() or credentials_configured,
        )


QUEUE_REQUEST_EXAMPLE = {
    "stream": True,
    "tasks": [
        {"type": "company", "url": "https://www.linkedin.com/company/acme"},
        {"type": "company_posts", "url": "https://www.linkedin.com/company/acme", "days": 14},
    ],
}


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "Invalid task: " + "; ".join(parts)


def _text_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def parse_queue_tasks(items: List[Any], credentials_configured: bool = False) -> List[ScrapeTask]:
    """
    Turn raw queue entries into task descriptors, one per entry and in order.

    An entry that fails validation is not dropped: it becomes a rejected
    descriptor, so the runner reports it in its own failed envelope and the
    rest of the batch still runs.

    Args:
        items: Raw ``tasks`` array from a queue body
        credentials_configured: Whether login credentials are set (implies sessions)

    Returns:
        Task descriptors in submission order
    """
    tasks = []
    for item in items:
        try:
            entry = QueueTaskIn.model_validate(item)
        except ValidationError as e:
            raw = item if isinstance(item, dict) else {}
            tasks.append(
                ScrapeTask(
                    kind=_text_or_none(raw.get("type")) or "",
                    url=_text_or_none(raw.get("url")),
                    rejection=_describe_validation_error(e),
                )
            )
            continue
        tasks.append(entry.to_task(credentials_configured))
    return tasks


class ResultEnvelope(BaseModel):
    """Uniform success/failure wrapper around the outcome of one task."""

    ok: bool
    type: Optional[str] = None
    url: Optional[str] = None
    result: Optional[Any] = None
    error: Optional[str] = None

    class Config:
        """Pydantic configuration."""

        frozen = True

    @classmethod
    def success(cls, task: ScrapeTask, result: Any) -> "ResultEnvelope":
        return cls(ok=True, type=task.kind, url=task.url, result=result)

    @classmethod
    def failure(cls, task: ScrapeTask, error: str) -> "ResultEnvelope":
        return cls(ok=False, type=task.kind, url=task.url, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """
        Wire representation: ``result`` on success, ``error`` on failure.

        Built by hand rather than with ``exclude_none`` so that null values
        inside scraped records survive serialization.
        """
        payload: Dict[str, Any] = {"ok": self.ok, "type": self.type, "url": self.url}
        if self.ok:
            payload["result"] = self.result
        else:
            payload["error"] = self.error
        return payload

    def to_json_line(self) -> str:
        """Compact JSON followed by a newline, for NDJSON streaming."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False) + "\n"
