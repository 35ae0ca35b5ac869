"""Parental-control data the access gate reads: viewer, controls, quota, decision."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional

from utils import clock_minutes

ROLE_PARENT = "parent"
ROLE_CHILD = "child"


class LockReason(str, Enum):
    TIME_LIMIT = "timeLimit"
    SCHEDULE = "schedule"


@dataclass(frozen=True)
class User:
    """A family member as seen by the gate. Only `role` affects decisions."""
    id: str
    name: str = ""
    role: str = ROLE_CHILD

    @property
    def is_child(self) -> bool:
        return self.role == ROLE_CHILD

    @classmethod
    def from_profile(cls, profile: dict) -> "User":
        return cls(
            id=profile["id"],
            name=profile.get("display_name", ""),
            role=profile.get("role", ROLE_CHILD),
        )


@dataclass
class ParentalControls:
    """Parent-owned settings. Schedule bounds are same-day "HH:MM" clock times."""
    is_enabled: bool = False
    daily_time_limit_minutes: int = 60
    schedule_start: str = "09:00"
    schedule_end: str = "18:00"

    def __post_init__(self):
        if self.daily_time_limit_minutes < 0:
            raise ValueError("daily_time_limit_minutes must be >= 0")
        # Validate eagerly so a bad save never reaches the gate
        clock_minutes(self.schedule_start)
        clock_minutes(self.schedule_end)

    @property
    def limit_seconds(self) -> int:
        return self.daily_time_limit_minutes * 60

    def to_dict(self) -> dict:
        return {
            "isEnabled": self.is_enabled,
            "dailyTimeLimit": self.daily_time_limit_minutes,
            "schedule": {"start": self.schedule_start, "end": self.schedule_end},
        }


@dataclass
class WatchQuota:
    """Seconds watched since the last daily reset.

    Mutated only by credited watch-timer seconds and the daily reset check.
    """
    daily_watch_time_seconds: int = 0
    last_reset_date: str = ""


@dataclass(frozen=True)
class AccessDecision:
    """Derived lock state; recomputed on every relevant change, never stored."""
    locked: bool
    reason: Optional[LockReason] = field(default=None)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["reason"] = self.reason.value if self.reason else None
        return data


UNLOCKED = AccessDecision(locked=False)
