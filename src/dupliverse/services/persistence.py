"""Durable state abstractions for the profile store."""

from dataclasses import dataclass
from typing import Protocol

from dupliverse.domain.models import Profile, Session

STATE_KEY = "dupliverse-user-store"


class StateStorage(Protocol):
    """Key-value interface for persisted store state."""

    def load(self, key: str) -> dict[str, object] | None:
        """Return the stored payload for a key, if present."""

    def save(self, key: str, payload: dict[str, object]) -> None:
        """Store a payload under a key."""

    def delete(self, key: str) -> None:
        """Remove the payload stored under a key."""


@dataclass
class InMemoryStateStorage(StateStorage):
    """Process-local storage, used when no durable path is configured."""

    _entries: dict[str, dict[str, object]]

    def __init__(self) -> None:
        self._entries = {}

    def load(self, key: str) -> dict[str, object] | None:
        """Return a copy of the stored payload."""
        entry = self._entries.get(key)
        return dict(entry) if entry is not None else None

    def save(self, key: str, payload: dict[str, object]) -> None:
        """Store a copy of the payload."""
        self._entries[key] = dict(payload)

    def delete(self, key: str) -> None:
        """Drop the payload if present."""
        self._entries.pop(key, None)


def serialize_state(
    session: Session | None, profile: Profile | None
) -> dict[str, object]:
    """Serialize only the durable fields of the store."""
    return {
        "session": (
            {"id": session.id, "email": session.email} if session is not None else None
        ),
        "profile": profile.to_row() if profile is not None else None,
    }


def deserialize_state(
    payload: dict[str, object],
) -> tuple[Session | None, Profile | None]:
    """Rebuild session and profile from a persisted payload."""
    raw_session = payload.get("session")
    raw_profile = payload.get("profile")
    session = None
    if isinstance(raw_session, dict) and raw_session.get("id"):
        session = Session(id=str(raw_session["id"]), email=raw_session.get("email"))
    profile = None
    if session is not None and isinstance(raw_profile, dict):
        candidate = Profile.from_row(raw_profile)
        if candidate.id == session.id:
            profile = candidate
    return session, profile
