"""
Shared fixtures.

RSA key generation is slow, so random wallets are built once per session.
"""

from pathlib import Path

import pytest

from arload.core.crypto import Wallet

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session")
def wallet() -> Wallet:
    return Wallet.generate(key_size=2048)


@pytest.fixture(scope="session")
def other_wallet() -> Wallet:
    return Wallet.generate(key_size=2048)


@pytest.fixture
def anchor() -> bytes:
    # base64url "LCwsLCwsLA"
    return b"," * 7


@pytest.fixture(scope="session")
def fixed_wallet() -> Wallet:
    """2048-bit wallet with a pinned key, for known-answer vectors."""
    return Wallet.from_keyfile(FIXTURES / "wallet.json")
