"""Supabase-backed profile repository."""

import asyncio
from dataclasses import dataclass, field

from supabase import Client

from dupliverse.domain.models import Profile
from dupliverse.services.store import ProfileRepository

_COLUMNS = "id, username, wallet_balance, preferences, created_at"


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation of the remote profile service.

    supabase-py's `Client` is synchronous; calls run in a worker thread so
    the event loop keeps serving other triggers while a request is in flight.
    """

    client: Client
    table: str = "profiles"
    _write_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def get_profile(self, profile_id: str) -> Profile | None:
        """Return the profile row for a user id, if present."""
        return await asyncio.to_thread(self._select, profile_id)

    async def create_profile(self, row: dict[str, object]) -> Profile:
        """Insert a profile row and return it."""
        return await asyncio.to_thread(self._insert, row)

    async def update_profile(
        self, profile_id: str, fields: dict[str, object]
    ) -> Profile:
        """Update profile columns, merging `preferences` into the stored value."""
        async with self._write_lock:
            return await asyncio.to_thread(self._update, profile_id, dict(fields))

    def _select(self, profile_id: str) -> Profile | None:
        response = (
            self.client.table(self.table)
            .select(_COLUMNS)
            .eq("id", profile_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return Profile.from_row(response.data[0])

    def _insert(self, row: dict[str, object]) -> Profile:
        response = self.client.table(self.table).insert(row).execute()
        if not response.data:
            raise RuntimeError("Failed to create profile in Supabase")
        return Profile.from_row(response.data[0])

    def _update(self, profile_id: str, fields: dict[str, object]) -> Profile:
        if "preferences" in fields:
            current = self._select(profile_id)
            if current is None:
                raise RuntimeError(f"Profile {profile_id} does not exist")
            fields["preferences"] = {
                **current.preferences,
                **dict(fields["preferences"] or {}),
            }
        response = (
            self.client.table(self.table)
            .update(fields)
            .eq("id", profile_id)
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to update profile {profile_id}")
        return Profile.from_row(response.data[0])
