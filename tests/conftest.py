"""
Pytest configuration for shielded_core tests.

Building a Poseidon width takes a moment, so the whole session shares one
hasher and each width is built at most once.
"""

import pytest

from shielded_core.field import field_to_bytes
from shielded_core.keys import SpendingKeypair
from shielded_core.note import Identifier
from shielded_core.poseidon import PoseidonHasher, init_hasher


@pytest.fixture(scope="session")
def hasher() -> PoseidonHasher:
    return init_hasher()


@pytest.fixture(scope="session")
def recipient(hasher: PoseidonHasher) -> SpendingKeypair:
    return SpendingKeypair(hasher, field_to_bytes(0x1234567890ABCDEF))


@pytest.fixture(scope="session")
def outsider(hasher: PoseidonHasher) -> SpendingKeypair:
    return SpendingKeypair(hasher, field_to_bytes(0xFEDCBA0987654321))


@pytest.fixture
def token() -> Identifier:
    return Identifier.token(bytes(range(1, 33)))


@pytest.fixture
def market() -> Identifier:
    return Identifier.market(bytes([0x22] * 32))


@pytest.fixture
def pool() -> Identifier:
    return Identifier.pool(bytes([0x33] * 32))
