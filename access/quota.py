"""Daily watch quota: reset on calendar-day change, credit seconds, evaluate."""

import logging
from datetime import datetime
from typing import Optional

from access.gate import evaluate_access
from access.models import AccessDecision, ParentalControls, User, WatchQuota

logger = logging.getLogger(__name__)


def ensure_daily_reset(quota: WatchQuota, today: str) -> bool:
    """Zero the counter when `today` differs from the last reset date.

    Returns True if a reset happened. Runs at most once per day transition
    because the date is recorded together with the reset.
    """
    if quota.last_reset_date == today:
        return False
    logger.info("Daily watch reset: %s -> %s (was %ds)",
                quota.last_reset_date or "never", today, quota.daily_watch_time_seconds)
    quota.daily_watch_time_seconds = 0
    quota.last_reset_date = today
    return True


def credit(quota: WatchQuota, seconds: int) -> int:
    """Add credited seconds to the quota and return the new total."""
    if seconds > 0:
        quota.daily_watch_time_seconds += int(seconds)
    return quota.daily_watch_time_seconds


def evaluate_now(
    user: Optional[User],
    controls: ParentalControls,
    quota: WatchQuota,
    now: datetime,
) -> AccessDecision:
    """Apply the daily reset for `now`'s date, then evaluate the gate."""
    ensure_daily_reset(quota, now.strftime("%Y-%m-%d"))
    return evaluate_access(user, controls, quota.daily_watch_time_seconds, now)


def remaining_seconds(controls: ParentalControls, quota: WatchQuota) -> int:
    """Seconds left today, or -1 when controls are off."""
    if not controls.is_enabled:
        return -1
    return max(0, controls.limit_seconds - quota.daily_watch_time_seconds)
