"""Tests for access/quota.py — daily reset and crediting."""

from datetime import datetime

from access.models import LockReason, ParentalControls, WatchQuota
from access.quota import credit, ensure_daily_reset, evaluate_now, remaining_seconds


class TestDailyReset:
    def test_new_day_zeroes_counter(self):
        quota = WatchQuota(daily_watch_time_seconds=4000, last_reset_date="2025-01-14")
        assert ensure_daily_reset(quota, "2025-01-15") is True
        assert quota == WatchQuota(0, "2025-01-15")

    def test_same_day_keeps_counter(self):
        quota = WatchQuota(daily_watch_time_seconds=4000, last_reset_date="2025-01-15")
        assert ensure_daily_reset(quota, "2025-01-15") is False
        assert quota.daily_watch_time_seconds == 4000

    def test_runs_once_per_transition(self):
        quota = WatchQuota(10, "")
        assert ensure_daily_reset(quota, "2025-01-15") is True
        credit(quota, 5)
        assert ensure_daily_reset(quota, "2025-01-15") is False
        assert quota.daily_watch_time_seconds == 5


class TestCredit:
    def test_adds_seconds(self):
        quota = WatchQuota()
        assert credit(quota, 1) == 1
        assert credit(quota, 2) == 3

    def test_ignores_non_positive(self):
        quota = WatchQuota(7)
        assert credit(quota, 0) == 7
        assert credit(quota, -5) == 7


class TestEvaluateNow:
    def test_reset_applied_before_limit_check(self, child, controls):
        quota = WatchQuota(daily_watch_time_seconds=3600, last_reset_date="2025-01-14")
        decision = evaluate_now(child, controls, quota, datetime(2025, 1, 15, 12, 0))
        assert not decision.locked
        assert quota.daily_watch_time_seconds == 0
        assert quota.last_reset_date == "2025-01-15"

    def test_same_day_over_limit_locks(self, child, controls):
        quota = WatchQuota(daily_watch_time_seconds=3600, last_reset_date="2025-01-15")
        decision = evaluate_now(child, controls, quota, datetime(2025, 1, 15, 12, 0))
        assert decision.reason is LockReason.TIME_LIMIT


class TestRemaining:
    def test_disabled(self):
        assert remaining_seconds(ParentalControls(is_enabled=False), WatchQuota(10)) == -1

    def test_counts_down_and_floors_at_zero(self, controls):
        assert remaining_seconds(controls, WatchQuota(600)) == 3000
        assert remaining_seconds(controls, WatchQuota(9999)) == 0
