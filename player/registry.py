"""Active playback sessions, one per viewer slot."""

import logging
from typing import Optional

from player.engine import PlaybackSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Tracks open sessions. A slot (the viewer) holds at most one session,
    so two timers can never credit the same viewer concurrently."""

    def __init__(self):
        self._by_id: dict[str, PlaybackSession] = {}
        self._slot_of: dict[str, str] = {}
        self._by_slot: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._by_id)

    def open(self, slot: str, session: PlaybackSession) -> PlaybackSession:
        """Close whatever occupies `slot`, then open `session` into it."""
        self.close_slot(slot)
        self._by_id[session.session_id] = session
        self._slot_of[session.session_id] = slot
        self._by_slot[slot] = session.session_id
        session.open()
        return session

    def get(self, session_id: str) -> Optional[PlaybackSession]:
        return self._by_id.get(session_id)

    def for_slot(self, slot: str) -> Optional[PlaybackSession]:
        sid = self._by_slot.get(slot)
        return self._by_id.get(sid) if sid else None

    def slot_of(self, session_id: str) -> Optional[str]:
        return self._slot_of.get(session_id)

    def active(self) -> list[PlaybackSession]:
        return list(self._by_id.values())

    def close(self, session_id: str) -> bool:
        session = self._by_id.pop(session_id, None)
        if session is None:
            return False
        slot = self._slot_of.pop(session_id, None)
        if slot is not None and self._by_slot.get(slot) == session_id:
            del self._by_slot[slot]
        session.close()
        return True

    def close_slot(self, slot: str) -> bool:
        sid = self._by_slot.get(slot)
        return self.close(sid) if sid else False

    def close_for_video(self, video_id: str) -> int:
        """Close every session playing `video_id` (e.g. the video was deleted)."""
        ids = [sid for sid, s in self._by_id.items() if s.video.id == video_id]
        for sid in ids:
            self.close(sid)
        if ids:
            logger.info("Closed %d session(s) for removed video %s", len(ids), video_id)
        return len(ids)

    def close_all(self, slots: Optional[set[str]] = None) -> int:
        """Close all sessions, or only those in `slots`."""
        ids = [sid for sid, slot in self._slot_of.items() if slots is None or slot in slots]
        for sid in ids:
            self.close(sid)
        return len(ids)
