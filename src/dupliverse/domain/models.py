"""Domain models for sessions and profiles."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

PROFILE_FIELDS = ("id", "username", "wallet_balance", "preferences", "created_at")
_IMMUTABLE_FIELDS = {"id", "created_at"}


class AuthEvent(Enum):
    """Auth state changes emitted by the session provider."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


class SyncStatus(Enum):
    """Display status of the most recent profile sync."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Session:
    """Provider-issued identity of the signed-in user."""

    id: str
    email: str | None = None


@dataclass(frozen=True)
class Profile:
    """Application-owned record describing a user, keyed by session id."""

    id: str
    username: str | None = None
    wallet_balance: float = 0
    preferences: dict[str, object] = field(default_factory=dict)
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, object]) -> "Profile":
        """Build a profile from a `profiles` table row."""
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        preferences = row.get("preferences") or {}
        return cls(
            id=str(row["id"]),
            username=row.get("username"),
            wallet_balance=float(row.get("wallet_balance") or 0),
            preferences=dict(preferences) if isinstance(preferences, dict) else {},
            created_at=created_at if isinstance(created_at, datetime) else None,
        )

    def to_row(self) -> dict[str, object]:
        """Return the profile as a JSON-serializable row."""
        return {
            "id": self.id,
            "username": self.username,
            "wallet_balance": self.wallet_balance,
            "preferences": dict(self.preferences),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class StoreState:
    """Immutable snapshot of the profile sync store."""

    session: Session | None = None
    profile: Profile | None = None
    is_loading: bool = False
    is_hydrated: bool = False
    last_sync_at: datetime | None = None
    error: str | None = None
    sync_status: SyncStatus = SyncStatus.IDLE


def merge_profile(profile: Profile, updates: dict[str, object]) -> Profile:
    """Return `profile` with `updates` applied as a shallow merge.

    Preferences are merged key by key so sibling keys survive. Immutable
    fields in `updates` are ignored.
    """
    unknown = set(updates) - set(PROFILE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
    merged = profile.to_row()
    for key, value in updates.items():
        if key in _IMMUTABLE_FIELDS:
            continue
        if key == "preferences":
            merged["preferences"] = {**profile.preferences, **dict(value or {})}
        else:
            merged[key] = value
    merged["created_at"] = profile.created_at
    return Profile.from_row(merged)


def default_profile_row(session: Session) -> dict[str, object]:
    """Return the insert payload for a user's first profile."""
    username = None
    if session.email:
        username = session.email.split("@", 1)[0] or None
    return {
        "id": session.id,
        "username": username,
        "wallet_balance": 0,
        "preferences": {},
    }
