"""Pydantic models for the profile API."""

from pydantic import BaseModel, Field

from dupliverse.domain.models import AuthEvent, Profile, Session, StoreState


class ApiResponse(BaseModel):
    """Envelope returned by every profile endpoint."""

    success: bool
    data: dict[str, object] | None = None
    message: str | None = None


class SessionPayload(BaseModel):
    """Session as sent by a UI shell."""

    id: str
    email: str | None = None

    def to_session(self) -> Session:
        return Session(id=self.id, email=self.email)


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; only fields that were sent are applied."""

    username: str | None = None
    wallet_balance: float | None = Field(default=None, ge=0)
    preferences: dict[str, object] | None = None


class VisibilityRequest(BaseModel):
    """Page visibility change."""

    visible: bool


class AuthEventRequest(BaseModel):
    """Auth state change forwarded from a UI shell."""

    event: AuthEvent
    session: SessionPayload | None = None


class WalletAmountRequest(BaseModel):
    """Wallet amount payload."""

    amount: float = Field(ge=0)


def profile_payload(profile: Profile | None) -> dict[str, object] | None:
    """Return a profile as a JSON-friendly dict."""
    return profile.to_row() if profile is not None else None


def state_payload(state: StoreState) -> dict[str, object]:
    """Return the public view of the store state."""
    session = state.session
    return {
        "session": (
            {"id": session.id, "email": session.email} if session is not None else None
        ),
        "profile": profile_payload(state.profile),
        "is_loading": state.is_loading,
        "is_hydrated": state.is_hydrated,
        "last_sync_at": state.last_sync_at.isoformat() if state.last_sync_at else None,
        "error": state.error,
        "sync_status": state.sync_status.value,
    }
