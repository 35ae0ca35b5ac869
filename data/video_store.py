"""
SQLite-backed storage for FamilyReel.
Holds the family roster, the curated video library, and key/value settings
(parental controls, the daily watch counter, the session secret).
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_VIDEO_COLUMNS = ("url", "title", "platform", "total_duration", "watch_duration", "status")


class VideoStore:
    """SQLite database for the family video library and parental settings."""

    def __init__(self, db_path: str = "db/familyreel.db"):
        """Initialize database connection and create schema."""
        db_file = Path(db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self.conn = sqlite3.connect(db_file, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()

    def _create_tables(self) -> None:
        """Create all tables if they don't exist."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS profiles (
                id TEXT PRIMARY KEY,
                display_name TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'child',
                pin TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS videos (
                id TEXT PRIMARY KEY,
                url TEXT NOT NULL DEFAULT '',
                title TEXT NOT NULL DEFAULT '',
                platform TEXT NOT NULL DEFAULT 'youtube',
                total_duration INTEGER NOT NULL DEFAULT 0,
                watch_duration INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'unseen',
                added_by TEXT,
                added_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        self.conn.commit()

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    # --- Profiles ---

    def get_profiles(self) -> list[dict]:
        """All family members, parents first."""
        with self._lock:
            cursor = self.conn.execute(
                "SELECT * FROM profiles ORDER BY role = 'child', created_at"
            )
            return [dict(row) for row in cursor.fetchall()]

    def get_profile(self, profile_id: str) -> Optional[dict]:
        with self._lock:
            cursor = self.conn.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def create_profile(self, profile_id: str, display_name: str,
                       role: str = "child", pin: str = "") -> bool:
        """Create a profile. Returns False if the id is taken."""
        if role not in ("parent", "child"):
            raise ValueError(f"Unknown role: {role}")
        with self._lock:
            try:
                self.conn.execute(
                    "INSERT INTO profiles (id, display_name, role, pin) VALUES (?, ?, ?, ?)",
                    (profile_id, display_name, role, pin),
                )
                self.conn.commit()
                return True
            except sqlite3.IntegrityError:
                return False

    def delete_profile(self, profile_id: str) -> bool:
        with self._lock:
            cursor = self.conn.execute("DELETE FROM profiles WHERE id = ?", (profile_id,))
            self.conn.commit()
            return cursor.rowcount > 0

    # --- Videos ---

    def add_video(self, video_id: str, url: str, title: str, platform: str = "youtube",
                  total_duration: int = 0, added_by: Optional[str] = None) -> dict:
        """Add a video to the library. Existing ids are kept as-is."""
        with self._lock:
            self.conn.execute(
                """INSERT OR IGNORE INTO videos (id, url, title, platform, total_duration, added_by)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (video_id, url, title, platform, int(total_duration or 0), added_by),
            )
            self.conn.commit()
            return self._get_video_unlocked(video_id)

    def _get_video_unlocked(self, video_id: str) -> Optional[dict]:
        cursor = self.conn.execute("SELECT * FROM videos WHERE id = ?", (video_id,))
        row = cursor.fetchone()
        return dict(row) if row else None

    def get_video(self, video_id: str) -> Optional[dict]:
        with self._lock:
            return self._get_video_unlocked(video_id)

    def get_videos(self) -> list[dict]:
        """Library, newest first."""
        with self._lock:
            cursor = self.conn.execute("SELECT * FROM videos ORDER BY added_at DESC, rowid DESC")
            return [dict(row) for row in cursor.fetchall()]

    def update_video(self, video_id: str, **fields) -> bool:
        """Update library columns (watch progress, seen status, ...)."""
        unknown = set(fields) - set(_VIDEO_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown video fields: {sorted(unknown)}")
        if not fields:
            return False
        assignments = ", ".join(f"{k} = ?" for k in fields)
        with self._lock:
            cursor = self.conn.execute(
                f"UPDATE videos SET {assignments} WHERE id = ?",
                (*fields.values(), video_id),
            )
            self.conn.commit()
            return cursor.rowcount > 0

    def delete_video(self, video_id: str) -> bool:
        with self._lock:
            cursor = self.conn.execute("DELETE FROM videos WHERE id = ?", (video_id,))
            self.conn.commit()
            return cursor.rowcount > 0

    # --- Settings ---

    def get_setting(self, key: str, default: str = "") -> str:
        with self._lock:
            cursor = self.conn.execute("SELECT value FROM settings WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row["value"] if row else default

    def set_setting(self, key: str, value: str) -> None:
        with self._lock:
            self.conn.execute(
                """INSERT INTO settings (key, value, updated_at) VALUES (?, ?, datetime('now'))
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                   updated_at = excluded.updated_at""",
                (key, str(value)),
            )
            self.conn.commit()

    def get_stats(self) -> dict:
        with self._lock:
            videos = self.conn.execute("SELECT COUNT(*) FROM videos").fetchone()[0]
            unseen = self.conn.execute(
                "SELECT COUNT(*) FROM videos WHERE status = 'unseen'"
            ).fetchone()[0]
            profiles = self.conn.execute("SELECT COUNT(*) FROM profiles").fetchone()[0]
        return {"videos": videos, "unseen": unseen, "profiles": profiles}
