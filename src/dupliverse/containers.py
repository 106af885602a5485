"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from dupliverse.adapters.json_state_storage import JsonFileStateStorage
from dupliverse.adapters.supabase_profile_repository import SupabaseProfileRepository
from dupliverse.adapters.supabase_session_provider import SupabaseSessionProvider
from dupliverse.config import Settings, resolve_state_path
from dupliverse.services.persistence import InMemoryStateStorage, StateStorage
from dupliverse.services.scheduler import SyncScheduler
from dupliverse.services.store import ProfileSyncStore
from dupliverse.services.wallet import WalletService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: ProfileSyncStore
    scheduler: SyncScheduler
    wallet_service: WalletService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_anon_key
    )
    repository = SupabaseProfileRepository(
        supabase_client, table=resolved_settings.profiles_table
    )
    session_provider = SupabaseSessionProvider(supabase_client)
    state_path = resolve_state_path(resolved_settings.state_path)
    storage: StateStorage = (
        JsonFileStateStorage(state_path) if state_path else InMemoryStateStorage()
    )
    store = ProfileSyncStore(
        repository,
        storage,
        fetch_retry_attempts=resolved_settings.fetch_retry_attempts,
        fetch_retry_delay_seconds=resolved_settings.fetch_retry_delay_seconds,
    )
    store.restore()
    scheduler = SyncScheduler(
        store,
        session_provider,
        stale_after=resolved_settings.stale_after,
        sync_interval=resolved_settings.sync_interval,
    )

    async def close_resources() -> None:
        await scheduler.teardown()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        scheduler=scheduler,
        wallet_service=WalletService(store),
        close_resources=close_resources,
    )
