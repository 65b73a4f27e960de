import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# LinkedIn relative ages: "5h", "3d", "2w", "1mo", "2yr", optionally followed by " • Edited"
_RELATIVE_LABEL_RE = re.compile(r"^\s*\d+\s*(?:s|m|h|d|w|mo|y|yr|yrs)\b", re.IGNORECASE)


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """
    Parse a post timestamp scraped from the page into an aware datetime.

    LinkedIn mixes ISO ``datetime`` attributes with relative labels such as
    "2w" or "3d". Relative labels and anything dateutil cannot read yield None.
    Naive values are interpreted in local time.
    """
    if not raw or not isinstance(raw, str):
        return None
    if _RELATIVE_LABEL_RE.match(raw):
        return None
    try:
        parsed = date_parser.parse(raw)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def filter_recent(items: List[Dict[str, Any]], days: int, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Keep the posts published within the last ``days`` days.

    Items without a parseable ``timeRaw`` are kept: the feed is best-effort
    and an unknown date is not evidence that a post is old.

    Args:
        items: Post dicts with an optional ``timeRaw`` key
        days: Look-back window in days
        now: Reference time (defaults to the current UTC time)

    Returns:
        Items in their original order
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)

    kept = []
    for item in items:
        published = parse_timestamp(item.get("timeRaw"))
        if published is None or published > cutoff:
            kept.append(item)
        else:
            logger.debug(f"Filter [Date]: Skipped post from {item.get('timeRaw')} (cutoff {cutoff.isoformat()})")
    return kept
