"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status

from dupliverse.api.models import (
    ApiResponse,
    AuthEventRequest,
    ProfileUpdateRequest,
    VisibilityRequest,
    WalletAmountRequest,
    profile_payload,
    state_payload,
)
from dupliverse.app_logging import configure_logging
from dupliverse.containers import AppContainer
from dupliverse.domain.exceptions import (
    PreconditionError,
    ProfileSyncError,
)
from dupliverse.domain.models import Profile

_NULLABLE_FIELDS = {"username"}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        try:
            await state_container.scheduler.init()
        except Exception:
            logger.exception("Failed to start profile sync")
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/user/profile")
    async def get_profile(request: Request) -> ApiResponse:
        """Return the current session, profile and sync flags."""
        state_container: AppContainer = request.app.state.container
        return ApiResponse(
            success=True, data=state_payload(state_container.store.state)
        )

    @app.patch("/api/user/profile")
    async def update_profile(
        body: ProfileUpdateRequest, request: Request
    ) -> ApiResponse:
        """Apply a partial profile update."""
        state_container: AppContainer = request.app.state.container
        updates = {
            key: value
            for key, value in body.model_dump(exclude_unset=True).items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        if not updates:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No profile fields to update",
            )
        try:
            profile = await state_container.store.update_profile(updates)
        except ProfileSyncError as exc:
            raise _http_error(exc) from exc
        return _profile_response(profile, "Profile updated")

    @app.post("/api/user/profile/sync")
    async def sync_profile(request: Request) -> ApiResponse:
        """Fetch the profile from the remote store now."""
        state_container: AppContainer = request.app.state.container
        store = state_container.store
        if store.session is None:
            raise _http_error(PreconditionError("not authenticated"))
        try:
            await store.fetch_profile()
        except ProfileSyncError as exc:
            raise _http_error(exc) from exc
        return ApiResponse(success=True, data=state_payload(store.state))

    @app.post("/api/user/visibility")
    async def visibility(body: VisibilityRequest, request: Request) -> ApiResponse:
        """Report a page visibility change."""
        state_container: AppContainer = request.app.state.container
        await state_container.scheduler.handle_visibility_change(body.visible)
        return ApiResponse(
            success=True, data=state_payload(state_container.store.state)
        )

    @app.post("/api/user/auth-events")
    async def auth_event(body: AuthEventRequest, request: Request) -> ApiResponse:
        """Forward an auth state change from the UI shell."""
        state_container: AppContainer = request.app.state.container
        session = body.session.to_session() if body.session else None
        await state_container.scheduler.handle_auth_event(body.event, session)
        return ApiResponse(
            success=True, data=state_payload(state_container.store.state)
        )

    @app.post("/api/user/wallet/{action}")
    async def wallet(
        action: str, body: WalletAmountRequest, request: Request
    ) -> ApiResponse:
        """Add to, subtract from, or set the wallet balance."""
        state_container: AppContainer = request.app.state.container
        wallet_service = state_container.wallet_service
        operations = {
            "add": wallet_service.add,
            "subtract": wallet_service.subtract,
            "set": wallet_service.set_balance,
        }
        operation = operations.get(action)
        if operation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        try:
            profile = await operation(body.amount)
        except ProfileSyncError as exc:
            raise _http_error(exc) from exc
        return _profile_response(profile, "Wallet updated")

    @app.post("/api/user/error/clear")
    async def clear_error(request: Request) -> ApiResponse:
        """Dismiss the last recorded sync error."""
        state_container: AppContainer = request.app.state.container
        state_container.store.clear_error()
        return ApiResponse(
            success=True, data=state_payload(state_container.store.state)
        )

    return app


def _profile_response(profile: Profile, message: str) -> ApiResponse:
    return ApiResponse(success=True, data=profile_payload(profile), message=message)


def _http_error(exc: ProfileSyncError) -> HTTPException:
    """Map a store error to an HTTP error."""
    if isinstance(exc, PreconditionError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
