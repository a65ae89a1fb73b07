"""In-memory, TTL-bounded session store.

Expiry is checked lazily on read; an optional background sweep bounds
memory for sessions nobody reads again.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from swapconnect.wallet.session import ProtocolState, Session

logger = logging.getLogger(__name__)


class SessionStore:
    """Keyed store of in-flight sessions. Last writer wins per key."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._sessions: dict[str, Session] = {}
        self._clock = clock
        self._sweeper: Optional[asyncio.Task] = None

    def now(self) -> float:
        return self._clock()

    def save(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    def get(self, session_id: str) -> Optional[Session]:
        """Get a live session, evicting it if it has expired."""
        session = self._sessions.get(session_id)
        if session is None:
            return None

        if session.is_expired(self.now()):
            logger.info(f"Session {session_id} expired")
            self._evict(session)
            return None

        return session

    def peek(self, session_id: str) -> Optional[Session]:
        """Get a stored session without checking expiry."""
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> None:
        """Remove a session and destroy its secrets."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        self._release(session)

    def sweep_expired(self) -> int:
        """Evict every expired session.

        Returns:
            Number of sessions evicted
        """
        now = self.now()
        expired = [s for s in self._sessions.values() if s.is_expired(now)]
        for session in expired:
            self._evict(session)
        if expired:
            logger.info(f"Swept {len(expired)} expired session(s)")
        return len(expired)

    def _evict(self, session: Session) -> None:
        self._sessions.pop(session.session_id, None)
        if not session.protocol_state.is_terminal:
            session.transition(ProtocolState.EXPIRED)
        self._release(session)

    @staticmethod
    def _release(session: Session) -> None:
        session.destroy_secrets()
        approval = session.approval
        if approval is not None and hasattr(approval, "cancel") and not approval.done():
            approval.cancel()
        session.approval = None

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep_expired()
            except Exception as e:
                logger.error(f"Session sweep failed: {e}")

    def start_sweeper(self, interval: float) -> None:
        """Start the background sweep (interval <= 0 disables it)."""
        if interval <= 0 or self._sweeper is not None:
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(interval))
        logger.info(f"Session sweeper started (every {interval}s)")

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions
