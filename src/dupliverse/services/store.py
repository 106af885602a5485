"""Profile sync store: session + profile with optimistic updates."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol

from dupliverse.domain.exceptions import (
    CreateOnFirstLoginError,
    PreconditionError,
    RemoteFetchError,
    RemoteUpdateError,
)
from dupliverse.domain.models import (
    Profile,
    Session,
    StoreState,
    SyncStatus,
    default_profile_row,
    merge_profile,
)
from dupliverse.services.persistence import (
    STATE_KEY,
    StateStorage,
    deserialize_state,
    serialize_state,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[StoreState], None]


class ProfileRepository(Protocol):
    """Remote profile service."""

    async def get_profile(self, profile_id: str) -> Profile | None:
        """Return the profile for an id, or None when it does not exist."""

    async def create_profile(self, row: dict[str, object]) -> Profile:
        """Insert a profile row and return the created record."""

    async def update_profile(
        self, profile_id: str, fields: dict[str, object]
    ) -> Profile:
        """Update profile fields and return the stored record.

        A `preferences` mapping is merged into the stored preferences.
        """


class ProfileSyncStore:
    """Single source of truth for the current session and profile.

    Every mutation publishes a new immutable `StoreState` to subscribers.
    Calls that suspend on the network close over the session id and the
    profile snapshot taken before they published anything, so overlapping
    calls never roll back to each other's optimistic values.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        storage: StateStorage,
        *,
        fetch_retry_attempts: int = 1,
        fetch_retry_delay_seconds: float = 1.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.storage = storage
        self.fetch_retry_attempts = max(1, fetch_retry_attempts)
        self.fetch_retry_delay_seconds = fetch_retry_delay_seconds
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._state = StoreState()
        self._listeners: list[StateListener] = []
        self._in_flight = 0
        self._confirmed_revision = 0

    @property
    def state(self) -> StoreState:
        """Return the current state snapshot."""
        return self._state

    @property
    def session(self) -> Session | None:
        return self._state.session

    @property
    def profile(self) -> Profile | None:
        return self._state.profile

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for state changes and return its unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def restore(self) -> bool:
        """Warm-start from persisted state. Returns True when anything loaded."""
        payload = self.storage.load(STATE_KEY)
        if not payload:
            return False
        try:
            session, profile = deserialize_state(payload)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable persisted state: %s", exc)
            self.storage.delete(STATE_KEY)
            return False
        if session is None:
            return False
        self._set(session=session, profile=profile)
        logger.info("Restored persisted session %s", session.id)
        return True

    def set_session(self, session: Session | None) -> None:
        """Replace the session reference without fetching."""
        current = self._state.profile
        profile = current if session and current and current.id == session.id else None
        self._set(session=session, profile=profile)
        self._persist()

    def set_hydrated(self, is_hydrated: bool) -> None:
        self._set(is_hydrated=is_hydrated)

    def clear_error(self) -> None:
        """Drop the recorded error; an error status falls back to idle."""
        status = self._state.sync_status
        self._set(
            error=None,
            sync_status=SyncStatus.IDLE if status is SyncStatus.ERROR else status,
        )

    def clear_user_data(self) -> None:
        """Reset session, profile and flags, and erase persisted state."""
        self._state = StoreState()
        self.storage.delete(STATE_KEY)
        self._notify()

    async def fetch_profile(self) -> None:
        """Load the session's profile, creating it on first login."""
        session = self._state.session
        if session is None:
            return

        self._begin(sync_status=SyncStatus.SYNCING)
        try:
            try:
                profile = await self._fetch_with_retry(session)
            except RemoteFetchError as exc:
                if self._is_current(session):
                    self._set(error=str(exc), sync_status=SyncStatus.ERROR)
                raise
            if not self._is_current(session):
                logger.info("Discarding profile for stale session %s", session.id)
                return
            self._confirmed_revision += 1
            self._set(
                profile=profile,
                error=None,
                sync_status=SyncStatus.SUCCESS,
                last_sync_at=self._clock(),
            )
            self._persist()
        finally:
            self._end()

    async def update_profile(self, updates: dict[str, object]) -> Profile:
        """Apply `updates` optimistically, then write them through.

        On rejection the profile captured before this call is restored,
        unless a newer server-confirmed profile landed in the meantime.
        """
        session = self._state.session
        if session is None:
            raise PreconditionError("not authenticated")
        snapshot = self._state.profile
        if snapshot is None:
            raise PreconditionError("no profile")

        optimistic = merge_profile(snapshot, updates)
        remote_fields = {
            key: value
            for key, value in updates.items()
            if key not in {"id", "created_at"}
        }
        revision = self._confirmed_revision

        self._begin(profile=optimistic)
        try:
            try:
                confirmed = await self.repository.update_profile(
                    session.id, remote_fields
                )
            except Exception as exc:
                logger.warning("Profile update for %s failed: %s", session.id, exc)
                if self._is_current(session):
                    if self._confirmed_revision == revision:
                        self._set(profile=snapshot, error=str(exc))
                    else:
                        self._set(error=str(exc))
                    self._persist()
                raise RemoteUpdateError(f"Error updating profile: {exc}") from exc
            if self._is_current(session):
                self._confirmed_revision += 1
                self._set(profile=confirmed, error=None, last_sync_at=self._clock())
                self._persist()
            return confirmed
        finally:
            self._end()

    async def _fetch_with_retry(self, session: Session) -> Profile:
        attempt = 1
        while True:
            try:
                return await self._fetch_or_create(session)
            except CreateOnFirstLoginError:
                raise
            except RemoteFetchError:
                if attempt >= self.fetch_retry_attempts:
                    raise
                logger.warning(
                    "Profile fetch attempt %s/%s failed, retrying",
                    attempt,
                    self.fetch_retry_attempts,
                )
                await asyncio.sleep(self.fetch_retry_delay_seconds)
                attempt += 1

    async def _fetch_or_create(self, session: Session) -> Profile:
        try:
            existing = await self.repository.get_profile(session.id)
        except Exception as exc:
            raise RemoteFetchError(f"Error fetching profile: {exc}") from exc
        if existing is not None:
            return existing
        logger.info("No profile for %s, creating one", session.id)
        try:
            return await self.repository.create_profile(default_profile_row(session))
        except Exception as exc:
            raise CreateOnFirstLoginError(f"Error creating profile: {exc}") from exc

    def _is_current(self, session: Session) -> bool:
        current = self._state.session
        return current is not None and current.id == session.id

    def _begin(self, **changes: object) -> None:
        self._in_flight += 1
        self._set(is_loading=True, **changes)

    def _end(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)
        if self._state.is_loading and self._in_flight == 0:
            self._set(is_loading=False)

    def _set(self, **changes: object) -> None:
        self._state = replace(self._state, **changes)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Store listener failed")

    def _persist(self) -> None:
        self.storage.save(
            STATE_KEY, serialize_state(self._state.session, self._state.profile)
        )
