"""Shared pytest fixtures for FamilyReel tests."""

from datetime import datetime

import pytest

from access.models import ParentalControls, User
from config import Config, WebConfig, TelegramConfig, PlaybackConfig, DatabaseConfig, WatchLimitsConfig
from data.controls_store import ControlsStore
from data.video_store import VideoStore
from player.state import Platform, VideoRecord


@pytest.fixture
def video_store(tmp_path):
    """VideoStore backed by a temp-dir SQLite file (not :memory: due to Path.mkdir in __init__)."""
    db = tmp_path / "test.db"
    store = VideoStore(db_path=str(db))
    yield store
    store.close()


@pytest.fixture
def controls_store(video_store):
    """ControlsStore over the test VideoStore with built-in defaults."""
    return ControlsStore(video_store)


@pytest.fixture
def child():
    return User(id="kid", name="Kid", role="child")


@pytest.fixture
def parent():
    return User(id="mom", name="Mom", role="parent")


@pytest.fixture
def controls():
    """Enabled controls: 60 minutes between 09:00 and 18:00."""
    return ParentalControls(is_enabled=True, daily_time_limit_minutes=60,
                            schedule_start="09:00", schedule_end="18:00")


@pytest.fixture
def noon():
    return datetime(2025, 1, 15, 12, 0)


@pytest.fixture
def yt_video():
    return VideoRecord(id="abc12345678", url="https://youtu.be/abc12345678",
                       platform=Platform.YOUTUBE, total_duration_seconds=100)


@pytest.fixture
def sample_config(tmp_path):
    """Minimal Config with safe defaults for testing."""
    return Config(
        web=WebConfig(host="127.0.0.1", port=9999, pin="1234"),
        telegram=TelegramConfig(bot_token="fake:token", admin_chat_id="12345"),
        playback=PlaybackConfig(tier_a_instances=["https://a.example"],
                                tier_b_instances=["https://b.example"]),
        database=DatabaseConfig(path=str(tmp_path / "test.db")),
        watch_limits=WatchLimitsConfig(
            daily_limit_minutes=60,
            timezone="America/New_York",
        ),
    )


@pytest.fixture
def config_yaml(tmp_path):
    """Write a minimal config.yaml and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text("""\
web:
  host: 0.0.0.0
  port: 8080
  pin: "4321"
telegram:
  bot_token: "fake:token123"
  admin_chat_id: "99999"
playback:
  tier_a_instances:
    - "https://pipedapi.example/"
  tier_b_instances:
    - "https://invidious.example"
  provider_timeout: 3
  ydl_timeout: 15
database:
  path: "{db_path}"
watch_limits:
  enabled: true
  daily_limit_minutes: 120
  timezone: "America/New_York"
""".format(db_path=str(tmp_path / "cfg_test.db")))
    return cfg
