"""One bot review per pull request per rolling 24 hours.

The window is derived from the PR's event listing on every call; nothing is
stored between invocations.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Iterable

from precheck_core.errors import ReviewThrottledError

if TYPE_CHECKING:
    from precheck_core.gh.client import TimelineEvent

logger = logging.getLogger(__name__)

REVIEW_WINDOW = timedelta(hours=24)


def find_last_bot_review(events: Iterable[TimelineEvent]) -> TimelineEvent | None:
    last = None
    for e in events:
        if e.event == "reviewed" and e.actor_type == "Bot":
            last = e
    return last


def check_review_window(events: Iterable[TimelineEvent], now: datetime | None = None) -> bool:
    """Return True if a review may run; raise ReviewThrottledError otherwise."""
    last_review = find_last_bot_review(events)
    if last_review is None:
        logger.info("No bot reviews found")
        return True

    now = now or datetime.now(timezone.utc)
    elapsed = now - last_review.created_at
    if elapsed < REVIEW_WINDOW:
        logger.error("Only one review per day is allowed (last bot review at %s)", last_review.created_at.isoformat())
        raise ReviewThrottledError(
            "Only one review per day is allowed",
            details={"last_review_at": last_review.created_at.isoformat(), "elapsed_seconds": elapsed.total_seconds()},
        )

    logger.info("One review per day check passed")
    return True
