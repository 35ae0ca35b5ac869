"""
Typed view over VideoStore settings for parental controls and the watch quota.
"""

import logging
from typing import Optional

from access.models import ParentalControls, WatchQuota
from access.quota import credit, ensure_daily_reset

logger = logging.getLogger(__name__)

_ENABLED = "controls_enabled"
_LIMIT = "daily_limit_minutes"
_START = "schedule_start"
_END = "schedule_end"
_WATCHED = "daily_watch_seconds"
_RESET = "last_reset_date"


class ControlsStore:
    """Wraps VideoStore settings as ParentalControls / WatchQuota objects.

    Unsaved settings fall back to `defaults` (from WatchLimitsConfig).
    """

    def __init__(self, store, defaults: Optional[ParentalControls] = None):
        self._store = store
        self.defaults = defaults or ParentalControls()

    # --- Parental controls ---

    def get_controls(self) -> ParentalControls:
        d = self.defaults
        enabled = self._store.get_setting(_ENABLED, "")
        limit = self._store.get_setting(_LIMIT, "")
        try:
            return ParentalControls(
                is_enabled=(enabled.lower() == "true") if enabled else d.is_enabled,
                daily_time_limit_minutes=int(limit) if limit else d.daily_time_limit_minutes,
                schedule_start=self._store.get_setting(_START, "") or d.schedule_start,
                schedule_end=self._store.get_setting(_END, "") or d.schedule_end,
            )
        except ValueError as e:
            logger.error("Stored parental controls are invalid (%s), using defaults", e)
            return d

    def save_controls(self, controls: ParentalControls) -> None:
        self._store.set_setting(_ENABLED, "true" if controls.is_enabled else "false")
        self._store.set_setting(_LIMIT, str(controls.daily_time_limit_minutes))
        self._store.set_setting(_START, controls.schedule_start)
        self._store.set_setting(_END, controls.schedule_end)
        logger.info("Saved parental controls: %s", controls.to_dict())

    # --- Watch quota ---

    def get_quota(self) -> WatchQuota:
        raw = self._store.get_setting(_WATCHED, "0")
        try:
            seconds = int(raw)
        except ValueError:
            seconds = 0
        return WatchQuota(
            daily_watch_time_seconds=seconds,
            last_reset_date=self._store.get_setting(_RESET, ""),
        )

    def save_quota(self, quota: WatchQuota) -> None:
        self._store.set_setting(_WATCHED, str(quota.daily_watch_time_seconds))
        self._store.set_setting(_RESET, quota.last_reset_date)

    def current_quota(self, today: str) -> WatchQuota:
        """Quota for `today`, persisting the daily reset if the day changed."""
        quota = self.get_quota()
        if ensure_daily_reset(quota, today):
            self.save_quota(quota)
        return quota

    def add_watch_seconds(self, seconds: int, today: str) -> WatchQuota:
        """Credit watched seconds against today's quota and persist it."""
        quota = self.get_quota()
        ensure_daily_reset(quota, today)
        credit(quota, seconds)
        self.save_quota(quota)
        return quota
