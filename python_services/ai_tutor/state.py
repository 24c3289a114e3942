from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Any, Optional
import asyncio
import logging

from shared.config import get_settings

logger = logging.getLogger(__name__)


class SessionState:
    """In-memory session registry.

    Holds the latest lesson and environment code produced for each session so
    a client that lost its own copy can recover it. Turns of one session are
    serialized through a per-session lock. At most ``max_sessions`` sessions
    are kept; the least recently used idle session is evicted first.
    """

    def __init__(self, max_sessions: Optional[int] = None) -> None:
        self.max_sessions = max_sessions or get_settings().max_sessions
        self._sessions: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._locks: Dict[str, asyncio.Lock] = {}

    def ensure(self, session_id: str) -> Dict[str, Any]:
        if session_id not in self._sessions:
            self._sessions[session_id] = {
                "topic": None,
                "lesson": None,
                "environment_code": None,
                "turns": 0,
            }
            self._locks[session_id] = asyncio.Lock()
            self._evict(keep=session_id)
        else:
            self._sessions.move_to_end(session_id)
        return self._sessions[session_id]

    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        st = self._sessions.get(session_id)
        if st is not None:
            self._sessions.move_to_end(session_id)
        return st

    def record_lesson(self, session_id: str, html: str, topic: Optional[str] = None) -> None:
        st = self.ensure(session_id)
        st["lesson"] = html
        if topic:
            st["topic"] = topic

    def record_environment(self, session_id: str, code: str) -> None:
        self.ensure(session_id)["environment_code"] = code

    def lock(self, session_id: str) -> asyncio.Lock:
        self.ensure(session_id)
        return self._locks[session_id]

    def clear(self) -> None:
        self._sessions.clear()
        self._locks.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def _evict(self, keep: str) -> None:
        # Sessions with a turn in progress are never evicted
        for session_id in list(self._sessions):
            if len(self._sessions) <= self.max_sessions:
                return
            if session_id == keep or self._locks[session_id].locked():
                continue
            del self._sessions[session_id]
            del self._locks[session_id]
            logger.info(f"🧹 Evicted idle session {session_id}")


session_state = SessionState()
