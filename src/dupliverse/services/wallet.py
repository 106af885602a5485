"""Wallet balance operations on top of the profile store."""

from dataclasses import dataclass

from dupliverse.domain.exceptions import PreconditionError
from dupliverse.domain.models import Profile
from dupliverse.services.store import ProfileSyncStore


@dataclass
class WalletService:
    """Adjusts the resident profile's wallet balance."""

    store: ProfileSyncStore

    @property
    def balance(self) -> float:
        """Return the current balance, or 0 when no profile is loaded."""
        profile = self.store.profile
        return profile.wallet_balance if profile else 0

    async def set_balance(self, amount: float) -> Profile:
        """Write an absolute balance."""
        if amount < 0:
            raise ValueError("Wallet balance cannot be negative")
        return await self.store.update_profile({"wallet_balance": amount})

    async def add(self, amount: float) -> Profile:
        """Credit the wallet."""
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        profile = self._require_profile()
        return await self.set_balance(profile.wallet_balance + amount)

    async def subtract(self, amount: float) -> Profile:
        """Debit the wallet, never going below zero."""
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        profile = self._require_profile()
        return await self.set_balance(max(0, profile.wallet_balance - amount))

    def _require_profile(self) -> Profile:
        profile = self.store.profile
        if profile is None:
            raise PreconditionError("no profile")
        return profile
