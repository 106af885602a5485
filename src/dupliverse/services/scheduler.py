"""Sync scheduler: decides when the store re-fetches the profile."""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Protocol

from dupliverse.domain.exceptions import ProfileSyncError
from dupliverse.domain.models import AuthEvent, Session
from dupliverse.services.store import ProfileSyncStore

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthEvent, Session | None], None]

DEFAULT_STALE_AFTER = timedelta(minutes=2)
DEFAULT_SYNC_INTERVAL = timedelta(minutes=5)


class SessionProvider(Protocol):
    """Source of sign-in/sign-out events and the current session."""

    async def get_session(self) -> Session | None:
        """Return the current session, if any."""

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register an auth listener and return its unsubscribe callable."""


class SessionPhase(Enum):
    """Session lifecycle as seen by the scheduler."""

    ANONYMOUS = "anonymous"
    HYDRATING = "hydrating"
    AUTHENTICATED = "authenticated"


class SyncScheduler:
    """Runs `fetch_profile` on auth changes, visibility regain and a timer."""

    def __init__(
        self,
        store: ProfileSyncStore,
        session_provider: SessionProvider,
        *,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        sync_interval: timedelta = DEFAULT_SYNC_INTERVAL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.session_provider = session_provider
        self.stale_after = stale_after
        self.sync_interval = sync_interval
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self.phase = SessionPhase.ANONYMOUS
        self.visible = True
        self._unsubscribe: Callable[[], None] | None = None
        self._ticker: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_ticking(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    async def init(self) -> None:
        """Subscribe to auth changes and run the startup session check."""
        self._loop = asyncio.get_running_loop()
        if self._unsubscribe is None:
            self._unsubscribe = self.session_provider.subscribe(self._on_auth_event)
        if self.store.state.is_hydrated:
            self._settle_phase()
            return

        self.phase = SessionPhase.HYDRATING
        try:
            session = await self.session_provider.get_session()
            if session is not None:
                self.store.set_session(session)
                await self._sync("startup")
        except Exception:
            logger.exception("Error checking session")
        finally:
            self.store.set_hydrated(True)
        self._settle_phase()

    async def teardown(self) -> None:
        """Unsubscribe and cancel all scheduled work."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._stop_ticker()
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()

    async def handle_auth_event(
        self, event: AuthEvent, session: Session | None
    ) -> None:
        """React to an auth state change."""
        if event is AuthEvent.SIGNED_OUT:
            await self._stop_ticker()
            self.store.clear_user_data()
            self.phase = SessionPhase.ANONYMOUS
            logger.info("Signed out, cleared user data")
            return
        if session is None:
            return

        if self.phase is not SessionPhase.AUTHENTICATED:
            self.phase = SessionPhase.HYDRATING
        self.store.set_session(session)
        await self._sync(event.value.lower())
        self.store.set_hydrated(True)
        self._settle_phase()

    async def handle_visibility_change(self, visible: bool) -> None:
        """Re-sync on visibility regain when the profile is stale."""
        self.visible = visible
        if not visible or self.store.session is None:
            return
        if self.is_stale():
            await self._sync("visibility")

    def is_stale(self) -> bool:
        """Return True when the last sync is older than the staleness threshold."""
        last_sync_at = self.store.state.last_sync_at
        if last_sync_at is None:
            return True
        return self._clock() - last_sync_at > self.stale_after

    async def wait_idle(self) -> None:
        """Wait for auth-triggered work scheduled from provider callbacks."""
        await asyncio.sleep(0)
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_auth_event(self, event: AuthEvent, session: Session | None) -> None:
        if self._loop is None:
            logger.warning("Auth event %s received before init", event.value)
            return
        self._loop.call_soon_threadsafe(self._spawn, event, session)

    def _spawn(self, event: AuthEvent, session: Session | None) -> None:
        task = asyncio.ensure_future(self.handle_auth_event(event, session))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _settle_phase(self) -> None:
        if self.store.session is None:
            self.phase = SessionPhase.ANONYMOUS
            return
        self.phase = SessionPhase.AUTHENTICATED
        if not self.is_ticking:
            self._ticker = asyncio.ensure_future(self._tick())

    async def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is None or ticker.done():
            return
        if ticker is asyncio.current_task():
            return
        ticker.cancel()
        await asyncio.gather(ticker, return_exceptions=True)

    async def _tick(self) -> None:
        interval = self.sync_interval.total_seconds()
        while self.store.session is not None:
            await asyncio.sleep(interval)
            if self.store.session is None:
                break
            if self.visible:
                await self._sync("interval")

    async def _sync(self, trigger: str) -> None:
        try:
            await self.store.fetch_profile()
        except ProfileSyncError as exc:
            logger.warning("Profile sync (%s) failed: %s", trigger, exc)
        except Exception:
            logger.exception("Unexpected error during profile sync (%s)", trigger)
