"""
Nullifier derivation.

Spending nullifiers bind the leaf index, so a note can only be nullified at
the position it was stored at, and two notes with equal commitments at
different positions get different nullifiers. Action nullifiers mark one-time
non-spend actions (one vote per proposal) without consuming the note.
"""

from .errors import InvalidKeyLength
from .field import FIELD_ELEMENT_SIZE, field_to_bytes
from .poseidon import (
    DOMAIN_ACTION_NULLIFIER,
    DOMAIN_NULLIFIER_KEY,
    DOMAIN_SPENDING_NULLIFIER,
    PoseidonHasher,
)

_ZERO = bytes(FIELD_ELEMENT_SIZE)


def derive_nullifier_key(hasher: PoseidonHasher, spending_key: bytes) -> bytes:
    """nk = H(DOMAIN_NULLIFIER_KEY, sk, 0)."""
    if len(spending_key) != FIELD_ELEMENT_SIZE:
        raise InvalidKeyLength(len(spending_key))
    return hasher.hash_domain(DOMAIN_NULLIFIER_KEY, spending_key, _ZERO)


def derive_spending_nullifier(hasher: PoseidonHasher, nullifier_key: bytes,
                              commitment: bytes, leaf_index: int) -> bytes:
    """nf = H(DOMAIN_SPENDING_NULLIFIER, nk, commitment, leaf_index)."""
    if leaf_index < 0:
        raise ValueError(f"leaf_index must be non-negative, got {leaf_index}")
    return hasher.hash_domain(
        DOMAIN_SPENDING_NULLIFIER, nullifier_key, commitment, field_to_bytes(leaf_index)
    )


def derive_action_nullifier(hasher: PoseidonHasher, nullifier_key: bytes,
                            commitment: bytes, action_tag: bytes) -> bytes:
    """nf = H(DOMAIN_ACTION_NULLIFIER, nk, commitment, action_tag)."""
    return hasher.hash_domain(DOMAIN_ACTION_NULLIFIER, nullifier_key, commitment, action_tag)


__all__ = [
    'derive_nullifier_key',
    'derive_spending_nullifier',
    'derive_action_nullifier',
]
