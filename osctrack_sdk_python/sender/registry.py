"""
ReceiverRegistry - Keyed collection of live receiver sessions.

Keys are discovered service names, or MANUAL_KEY for the user-entered
destination. Discovery callbacks write from their own thread while the
dispatch path reads every frame, so all access goes through one lock and
readers iterate over snapshot() copies only.

Senders take their copy through lease(). A session that is replaced or
removed while a lease is out keeps its socket until the last lease ends,
so a frame already in flight is delivered in full.
"""

import contextlib
import logging
import threading
from typing import Callable, List, Optional

from .session import ReceiverSession


logger = logging.getLogger(__name__)

MANUAL_KEY = "MANUAL"


class ReceiverRegistry:
    """
    Thread-safe mapping of key -> ReceiverSession.

    Example usage:
        registry = ReceiverRegistry()
        registry.upsert("VRChat-Client-1A2B3C", ReceiverSession(...))

        with registry.lease() as sessions:
            for session in sessions:
                session.send(...)
    """

    def __init__(self):
        self.lock = threading.Lock()
        self._sessions = {}
        self._leases = 0
        self._retired: List[ReceiverSession] = []

    def upsert(
        self,
        key: str,
        session: ReceiverSession,
        guard: Optional[Callable[[], bool]] = None,
    ) -> bool:
        """
        Insert or replace the session stored under key.

        Args:
            key: Registry key
            session: Session to store
            guard: Checked under the registry lock; if it returns False the
                session is closed and nothing is stored

        Returns:
            False if the guard refused, or key already holds a session for the
            same (address, port) (the new session is closed and nothing
            changes). True otherwise.
        """
        with self.lock:
            current = self._sessions.get(key)
            if guard is not None and not guard():
                stored = False
            elif current is not None and current == session:
                stored = False
            else:
                stored = True
                self._sessions[key] = session
                replaced = self._retire([current] if current is not None else [])
        if not stored:
            if session is not current:
                session.close()
            return False
        for old in replaced:
            old.close()
        logger.info("Receiver %s -> %s:%d", key, session.address, session.port)
        return True

    def remove(self, key: str) -> Optional[ReceiverSession]:
        """
        Remove and close the session stored under key.

        Returns:
            The removed session, or None if key was not present.
        """
        with self.lock:
            session = self._sessions.pop(key, None)
            to_close = self._retire([session] if session is not None else [])
        for old in to_close:
            old.close()
        if session is not None:
            logger.info("Receiver %s removed", key)
        return session

    def get(self, key: str) -> Optional[ReceiverSession]:
        with self.lock:
            return self._sessions.get(key)

    def keys(self) -> List[str]:
        with self.lock:
            return list(self._sessions.keys())

    def snapshot(self) -> List[ReceiverSession]:
        """
        Copy of the current sessions, safe to iterate while discovery mutates.

        The manual session comes first. Sessions that share a destination
        appear once, so no receiver gets the same message twice.
        """
        with self.lock:
            items = list(self._sessions.items())
        return self._ordered(items)

    @contextlib.contextmanager
    def lease(self):
        """
        Yield a snapshot whose sessions stay open until the block exits.

        Sessions retired while any lease is out are closed by the last
        lease to end.
        """
        with self.lock:
            items = list(self._sessions.items())
            self._leases += 1
        try:
            yield self._ordered(items)
        finally:
            with self.lock:
                self._leases -= 1
                if self._leases == 0:
                    retired, self._retired = self._retired, []
                else:
                    retired = []
            for session in retired:
                session.close()

    def is_empty(self) -> bool:
        with self.lock:
            return not self._sessions

    def clear(self, keep_manual: bool = False):
        """Remove and close every session (optionally sparing MANUAL_KEY)."""
        with self.lock:
            removed = [
                (key, session) for key, session in self._sessions.items()
                if not (keep_manual and key == MANUAL_KEY)
            ]
            for key, _session in removed:
                del self._sessions[key]
            to_close = self._retire([session for _key, session in removed])
        for session in to_close:
            session.close()
        if removed:
            logger.info("Cleared %d receiver(s)", len(removed))

    def _retire(self, sessions):
        # Caller holds self.lock. Returns the sessions that can be closed now.
        if self._leases:
            self._retired.extend(sessions)
            return []
        return sessions

    @staticmethod
    def _ordered(items):
        items.sort(key=lambda item: item[0] != MANUAL_KEY)
        seen = set()
        sessions = []
        for _key, session in items:
            if session.endpoint in seen:
                continue
            seen.add(session.endpoint)
            sessions.append(session)
        return sessions

    def __len__(self):
        with self.lock:
            return len(self._sessions)

    def __contains__(self, key):
        with self.lock:
            return key in self._sessions
