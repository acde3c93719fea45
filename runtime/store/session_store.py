"""In-memory session storage for ATV-AI.

Sessions are keyed by ``<server_id>:<channel_id>:<user_id>`` and expire a
configurable number of minutes after their last update.

The design is intentionally simple:
- There is no persistence; a process restart forgets every session.
- Expiry is evaluated lazily when a session is read, there is no sweeper.
- All mutation goes through ``upsert`` and ``clear``. Callers only ever
  receive copies, so holding on to a returned Session cannot change the
  stored one.
"""

import threading
import time
from typing import Callable, Dict, Optional

from configs.settings import settings

from ..models.session_models import Session, SessionPatch


def make_session_key(server_id: str, channel_id: str, user_id: str) -> str:
    """Build the composite session key for one user in one channel."""
    return f"{server_id}:{channel_id}:{user_id}"


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """TTL-bounded, in-memory session store.

    Parameters
    ----------
    ttl_minutes:
        Lifetime of a session after its last ``upsert``. Defaults to
        ``settings.session_ttl_minutes``.
    clock:
        Callable returning the current time in epoch milliseconds.
        Injected by tests; defaults to the wall clock.
    """

    def __init__(
        self,
        ttl_minutes: Optional[int] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        if ttl_minutes is None:
            ttl_minutes = settings.session_ttl_minutes
        self._ttl_ms = int(ttl_minutes) * 60_000
        self._clock = clock or _now_ms

        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Session]:
        """Return the live session for ``key`` or None.

        An expired entry is evicted as a side effect of the read.
        """
        with self._lock:
            session = self._get_live(key)
            return session.model_copy(deep=True) if session is not None else None

    def upsert(self, key: str, patch: Optional[SessionPatch] = None) -> Session:
        """Merge ``patch`` into the session for ``key`` and refresh its expiry.

        A default session (chat mode, nothing awaited, no draft) is created
        when none is live. The expiry is refreshed even for an empty patch.
        """
        patch = patch or SessionPatch()
        with self._lock:
            current = self._get_live(key)
            base = current or Session(key=key)

            expires_at_ms = self._clock() + self._ttl_ms
            if current is not None and expires_at_ms <= current.expires_at_ms:
                # Same-millisecond refresh still has to move the deadline.
                expires_at_ms = current.expires_at_ms + 1

            updated = Session(
                key=key,
                mode=patch.mode.apply(base.mode),
                awaiting=patch.awaiting.apply(base.awaiting),
                event_draft=patch.event_draft.apply(base.event_draft),
                expires_at_ms=expires_at_ms,
            )
            self._sessions[key] = updated.model_copy(deep=True)
            return updated

    def clear(self, key: str) -> None:
        """Remove the session for ``key``; a missing key is not an error."""
        with self._lock:
            self._sessions.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _get_live(self, key: str) -> Optional[Session]:
        # Caller holds the lock.
        session = self._sessions.get(key)
        if session is None:
            return None
        if self._clock() > session.expires_at_ms:
            del self._sessions[key]
            return None
        return session
