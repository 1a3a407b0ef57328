"""
Session Management for Stylist State

Keeps one StylistController per browser session so each visitor gets their
own images and conversation.
"""

import os
import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from .stylist_controller import StylistController


class StylistSession:
    """A browser session and the controller it owns"""

    def __init__(self, session_id: str, controller: StylistController):
        self.session_id = session_id
        self.controller = controller
        self.created_at = datetime.now()
        self.last_updated = self.created_at

    def touch(self) -> None:
        self.last_updated = datetime.now()


class SessionManager:
    """Manages stylist sessions with idle expiry"""

    def __init__(self, session_timeout_minutes: int = 60,
                 controller_factory: Optional[Callable[[str], StylistController]] = None):
        """
        Initialize session manager.

        Args:
            session_timeout_minutes: Minutes of inactivity before a session expires
            controller_factory: Builds a controller for a new session id
        """
        self.sessions: Dict[str, StylistSession] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)
        self.controller_factory = controller_factory or (lambda session_id: StylistController())
        self._lock = threading.Lock()

    def create_session(self) -> str:
        """
        Create a new session.

        Returns:
            session_id: Unique identifier for the session
        """
        session_id = str(uuid.uuid4())
        session = StylistSession(session_id, self.controller_factory(session_id))
        with self._lock:
            self.sessions[session_id] = session
        return session_id

    def get_session(self, session_id: str) -> Optional[StylistSession]:
        """
        Get an existing session.

        Returns:
            StylistSession if found and not expired, None otherwise
        """
        with self._lock:
            session = self.sessions.get(session_id)
            if session is None:
                return None

            if datetime.now() - session.last_updated > self.session_timeout:
                del self.sessions[session_id]
                return None

        session.touch()
        return session

    def get_or_create_session(self, session_id: Optional[str] = None) -> tuple[StylistSession, bool]:
        """
        Get existing session or create new one.

        Returns:
            Tuple of (StylistSession, is_new)
        """
        if session_id:
            session = self.get_session(session_id)
            if session:
                return session, False

        new_id = self.create_session()
        return self.sessions[new_id], True

    def cleanup_expired_sessions(self) -> int:
        """
        Remove all expired sessions.

        Returns:
            Number of sessions cleaned up
        """
        now = datetime.now()
        with self._lock:
            expired_ids = [
                sid for sid, session in self.sessions.items()
                if now - session.last_updated > self.session_timeout
            ]
            for sid in expired_ids:
                del self.sessions[sid]

        return len(expired_ids)

    def get_session_count(self) -> int:
        """Get number of active sessions"""
        return len(self.sessions)


_session_manager = SessionManager(
    session_timeout_minutes=int(os.getenv("SESSION_TIMEOUT_MINUTES", "60"))
)


def get_session_manager() -> SessionManager:
    """Get the global session manager instance"""
    return _session_manager
