"""Access gate: decides whether a viewer may watch videos right now."""

from datetime import datetime
from typing import Optional

from access.models import (
    AccessDecision, LockReason, ParentalControls, User, UNLOCKED,
)
from utils import clock_minutes, format_time_12h

LOCK_MESSAGES = {
    LockReason.TIME_LIMIT: {
        "title": "Time's Up for Today!",
        "description": (
            "You've had a great time watching videos. It's time for a break now. "
            "You can come back tomorrow to watch more!"
        ),
    },
    LockReason.SCHEDULE: {
        "title": "It's Rest Time!",
        "description": (
            "The video library is closed for now. It's time for other activities, "
            "like playing outside or reading a book. Come back later!"
        ),
    },
}


def evaluate_access(
    user: Optional[User],
    controls: ParentalControls,
    daily_watch_time_seconds: int,
    now: datetime,
) -> AccessDecision:
    """Return the lock decision for `user` at wall-clock time `now`.

    Only child viewers with controls enabled can be locked. The daily quota is
    checked before the schedule, so a child over quota outside the schedule
    sees the time-limit reason. The schedule is a literal same-day range: a
    window whose start is after its end locks every minute of the day.
    """
    if user is None or not user.is_child or not controls.is_enabled:
        return UNLOCKED

    if daily_watch_time_seconds >= controls.limit_seconds:
        return AccessDecision(locked=True, reason=LockReason.TIME_LIMIT)

    now_minutes = now.hour * 60 + now.minute
    start_minutes = clock_minutes(controls.schedule_start)
    end_minutes = clock_minutes(controls.schedule_end)
    if now_minutes < start_minutes or now_minutes > end_minutes:
        return AccessDecision(locked=True, reason=LockReason.SCHEDULE)

    return UNLOCKED


def describe(decision: AccessDecision, controls: Optional[ParentalControls] = None) -> dict:
    """Lock-screen payload for a decision: title, description and opening hours."""
    if not decision.locked or decision.reason is None:
        return {}
    message = dict(LOCK_MESSAGES[decision.reason])
    if decision.reason is LockReason.SCHEDULE and controls is not None:
        message["hours"] = (
            f"{format_time_12h(controls.schedule_start)} - "
            f"{format_time_12h(controls.schedule_end)}"
        )
    return message
