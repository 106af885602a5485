"""Tests for wallet operations."""

import asyncio

import pytest

from dupliverse.domain.exceptions import PreconditionError
from dupliverse.services.wallet import WalletService


@pytest.fixture
def wallet(store, repository, session, existing_profile) -> WalletService:
    repository.rows["u1"] = existing_profile
    store.set_session(session)
    asyncio.run(store.fetch_profile())
    return WalletService(store)


def test_balance_defaults_to_zero_without_profile(store) -> None:
    assert WalletService(store).balance == 0


def test_add_credits_balance(wallet) -> None:
    asyncio.run(wallet.add(2.5))

    assert wallet.balance == 7.5


def test_subtract_clamps_at_zero(wallet, repository) -> None:
    asyncio.run(wallet.subtract(50))

    assert wallet.balance == 0
    assert repository.update_calls[-1] == ("u1", {"wallet_balance": 0})


def test_set_balance_rejects_negative(wallet) -> None:
    with pytest.raises(ValueError):
        asyncio.run(wallet.set_balance(-1))


def test_add_requires_profile(store) -> None:
    with pytest.raises(PreconditionError):
        asyncio.run(WalletService(store).add(1))
