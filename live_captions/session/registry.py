"""Thread-safe map of user id to UserSession.

WHY: HTTP handlers, the SSE stream and inactivity timers all need to find
a user's session. An explicit registry object (instead of a class-level
global) keeps that lookup testable and lets the server own its lifetime.

HOW: A dict keyed by user id, guarded by threading.Lock. Session
construction and disposal run outside the lock.

RULES:
- create() replaces (and disposes) any existing session for the same user.
- get() returns None for unknown users.
- remove() disposes the session and returns True if one existed.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from live_captions.session.user_session import UserSession

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 1000


class SessionRegistry:
    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
        self._sessions: Dict[str, UserSession] = {}
        self._lock = threading.Lock()
        self.max_sessions = max_sessions

    def create(
        self,
        user_id: str,
        device_model: Optional[str] = None,
        **session_options: Any,
    ) -> UserSession:
        """Create, initialize and register a session for user_id.

        Raises:
            ValueError: If user_id is empty or the registry is full.
        """
        if not user_id or not user_id.strip():
            raise ValueError("user_id must be a non-empty string")

        with self._lock:
            if user_id not in self._sessions and len(self._sessions) >= self.max_sessions:
                raise ValueError(
                    "Maximum number of concurrent sessions ({}) reached".format(
                        self.max_sessions
                    )
                )

        session = UserSession(user_id, **session_options)
        session.initialize(device_model)

        with self._lock:
            previous = self._sessions.get(user_id)
            self._sessions[user_id] = session

        if previous is not None:
            logger.info("Replacing existing session for %s", user_id)
            previous.dispose()
        logger.info("Created session for %s", user_id)
        return session

    def get(self, user_id: str) -> Optional[UserSession]:
        with self._lock:
            return self._sessions.get(user_id)

    def remove(self, user_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        session.dispose()
        logger.info("Removed session for %s", user_id)
        return True

    def list_user_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._sessions)

    def clear(self) -> None:
        """Dispose and remove every session."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.dispose()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._sessions
