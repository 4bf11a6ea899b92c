"""Process-wide registry of live browser sessions."""

import asyncio
import logging
from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fandango_explorer.browser.session import BrowserSession, new_session_id
from fandango_explorer.config import settings

logger = logging.getLogger(__name__)

SessionFactory = Callable[..., BrowserSession]


class SessionLimitError(RuntimeError):
    """Raised when the registry is full and no idle session can be evicted."""


class SessionRegistry:
    """
    Maps session ids to live ``BrowserSession`` objects.

    Created once at application start-up and handed to request handlers;
    ``shutdown()`` closes every remaining browser. Membership changes are
    serialised by a single lock, while each session's own ``lock``
    serialises work on its page.
    """

    def __init__(
        self,
        max_sessions: int | None = None,
        idle_ttl: float | None = None,
        session_factory: SessionFactory = BrowserSession,
    ) -> None:
        self.max_sessions = max_sessions if max_sessions is not None else settings.max_sessions
        self.idle_ttl = idle_ttl if idle_ttl is not None else settings.session_idle_ttl
        self._factory = session_factory
        self._sessions: dict[str, BrowserSession] = {}
        # Sessions checked out to a request (or still launching) are never evicted
        self._leases: Counter[str] = Counter()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str | None) -> BrowserSession | None:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def is_busy(self, session: BrowserSession) -> bool:
        return self._leases[session.session_id] > 0 or session.lock.locked()

    @asynccontextmanager
    async def lease(self, session_id: str | None = None) -> AsyncIterator[tuple[BrowserSession, bool]]:
        """
        Check out a session for exclusive use by one request.

        The session is reserved from the moment it is looked up (or
        launched) until the block exits, and its ``lock`` is held for the
        body of the block, so neither eviction nor the idle sweep can
        close it underneath the caller.

        Yields:
            Tuple of (session, created)
        """
        session, created = await self._checkout(session_id)
        try:
            async with session.lock:
                session.touch()
                yield session, created
        finally:
            self._release(session.session_id)

    async def get_or_create(self, session_id: str | None = None) -> tuple[BrowserSession, bool]:
        """
        Return an existing session or launch a new one.

        Request handlers should use ``lease()`` instead, which keeps the
        session reserved while it is being used.

        Args:
            session_id: Id of a session created by an earlier request

        Returns:
            Tuple of (session, created). An existing session is returned
            unchanged; it is never re-initialised.

        Raises:
            SessionLimitError: If the ceiling is reached and nothing is idle
            BrowserLaunchError: If a new browser could not be started
        """
        session, created = await self._checkout(session_id)
        self._release(session.session_id)
        return session, created

    async def _checkout(self, session_id: str | None) -> tuple[BrowserSession, bool]:
        async with self._lock:
            existing = self.get(session_id)
            if existing is not None:
                self._leases[existing.session_id] += 1
                existing.touch()
                logger.info(f"Reusing session {session_id}")
                return existing, False

            if session_id:
                logger.info(f"Session {session_id} not found, creating a new one")

            if len(self._sessions) >= self.max_sessions:
                await self._evict_oldest_idle()

            session = self._factory(new_session_id(), on_close=self._forget)
            # Reserve the slot before the slow launch so the ceiling holds
            self._sessions[session.session_id] = session
            self._leases[session.session_id] += 1

        try:
            await session.initialise()
        except Exception:
            self._release(session.session_id)
            self._forget(session.session_id)
            raise

        logger.info(f"Created session {session.session_id} ({len(self)} active)")
        return session, True

    def _release(self, session_id: str) -> None:
        self._leases[session_id] -= 1
        if self._leases[session_id] <= 0:
            del self._leases[session_id]

    async def _evict_oldest_idle(self) -> None:
        idle = [s for s in self._sessions.values() if not self.is_busy(s)]
        if not idle:
            raise SessionLimitError(
                f"All {self.max_sessions} browser sessions are busy, try again shortly"
            )
        oldest = min(idle, key=lambda s: s.last_used)
        logger.warning(f"Session limit reached, evicting idle session {oldest.session_id}")
        self._forget(oldest.session_id)
        await oldest.close()

    def _forget(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def remove(self, session_id: str) -> BrowserSession | None:
        """Evict without closing. The caller owns the returned session's browser."""
        async with self._lock:
            return self._sessions.pop(session_id, None)

    async def close(self, session_id: str) -> bool:
        """Close a session's browser and evict it. Returns False if unknown."""
        session = await self.remove(session_id)
        if session is None:
            return False
        await session.close()
        return True

    async def sweep_idle(self) -> int:
        """Close sessions idle for longer than ``idle_ttl`` that are not in use."""
        async with self._lock:
            stale = [
                s
                for s in self._sessions.values()
                if s.idle_seconds > self.idle_ttl and not self.is_busy(s)
            ]
            for session in stale:
                self._sessions.pop(session.session_id, None)

        for session in stale:
            logger.info(f"Closing idle session {session.session_id}")
            await session.close()
        return len(stale)

    async def shutdown(self) -> None:
        """Close every session. Called from the application's lifespan hook."""
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            await session.close()
        logger.info(f"Registry shut down, closed {len(sessions)} sessions")
