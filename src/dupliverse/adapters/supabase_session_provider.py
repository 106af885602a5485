"""Supabase auth adapter for the sync scheduler."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from supabase import Client

from dupliverse.domain.models import AuthEvent, Session
from dupliverse.services.scheduler import AuthListener, SessionProvider

logger = logging.getLogger(__name__)

_EVENTS = {event.value: event for event in AuthEvent}


@dataclass
class SupabaseSessionProvider(SessionProvider):
    """Translates supabase-py auth state into domain sessions and events."""

    client: Client

    async def get_session(self) -> Session | None:
        """Return the current signed-in session, if any."""
        auth_session = await asyncio.to_thread(self.client.auth.get_session)
        return to_session(auth_session)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Forward known auth events to `listener`."""

        def on_change(event: str, auth_session: object | None) -> None:
            auth_event = _EVENTS.get(str(event))
            if auth_event is None:
                logger.debug("Ignoring auth event %s", event)
                return
            listener(auth_event, to_session(auth_session))

        subscription = self.client.auth.on_auth_state_change(on_change)
        return subscription.unsubscribe


def to_session(auth_session: object | None) -> Session | None:
    """Build a domain session from a gotrue session object."""
    user = getattr(auth_session, "user", None)
    user_id = getattr(user, "id", None)
    if not user_id:
        return None
    return Session(id=str(user_id), email=getattr(user, "email", None))
