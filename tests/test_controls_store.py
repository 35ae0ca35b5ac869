"""Tests for data/controls_store.py — controls and quota persisted as settings."""

from access.models import ParentalControls, WatchQuota
from data.controls_store import ControlsStore


class TestControls:
    def test_defaults_until_saved(self, video_store):
        defaults = ParentalControls(is_enabled=True, daily_time_limit_minutes=30)
        cs = ControlsStore(video_store, defaults)
        assert cs.get_controls() == defaults

    def test_save_and_reload(self, controls_store, controls):
        controls_store.save_controls(controls)
        assert controls_store.get_controls() == controls

    def test_disable_persists(self, controls_store, controls):
        controls_store.save_controls(controls)
        controls_store.save_controls(ParentalControls(is_enabled=False))
        assert controls_store.get_controls().is_enabled is False

    def test_corrupt_setting_falls_back_to_defaults(self, video_store):
        video_store.set_setting("schedule_start", "not-a-time")
        cs = ControlsStore(video_store)
        assert cs.get_controls() == ParentalControls()


class TestQuota:
    def test_empty_quota(self, controls_store):
        assert controls_store.get_quota() == WatchQuota(0, "")

    def test_add_watch_seconds_accumulates(self, controls_store):
        controls_store.add_watch_seconds(1, "2025-01-15")
        quota = controls_store.add_watch_seconds(1, "2025-01-15")
        assert quota == WatchQuota(2, "2025-01-15")
        assert controls_store.get_quota() == WatchQuota(2, "2025-01-15")

    def test_add_on_new_day_resets_first(self, controls_store):
        controls_store.save_quota(WatchQuota(500, "2025-01-14"))
        quota = controls_store.add_watch_seconds(1, "2025-01-15")
        assert quota == WatchQuota(1, "2025-01-15")

    def test_current_quota_persists_reset(self, controls_store):
        controls_store.save_quota(WatchQuota(500, "2025-01-14"))
        assert controls_store.current_quota("2025-01-15") == WatchQuota(0, "2025-01-15")
        assert controls_store.get_quota() == WatchQuota(0, "2025-01-15")

    def test_current_quota_same_day_untouched(self, controls_store):
        controls_store.save_quota(WatchQuota(500, "2025-01-15"))
        assert controls_store.current_quota("2025-01-15").daily_watch_time_seconds == 500
