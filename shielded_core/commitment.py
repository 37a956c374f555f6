"""
Note commitments.

    standard: H(DOMAIN_COMMITMENT, stealthPubX, token, amount, randomness)
    position: inner = H(DOMAIN_POSITION_COMMITMENT, stealthPubX, marketId, isLong, margin)
              H(inner, size, leverage, entryPrice, randomness)
    lp:       H(DOMAIN_LP_COMMITMENT, stealthPubX, poolId, lpAmount, randomness)

The two-stage position hash mirrors the proof circuit and must not be
folded into a single call.
"""

from .field import bytes_to_field, field_to_bytes
from .note import AnyNote, LpNote, Note, PositionNote
from .poseidon import (
    DOMAIN_COMMITMENT,
    DOMAIN_LP_COMMITMENT,
    DOMAIN_POSITION_COMMITMENT,
    PoseidonHasher,
)


def compute_standard_commitment(hasher: PoseidonHasher, note: Note) -> bytes:
    return hasher.hash_domain(
        DOMAIN_COMMITMENT,
        note.stealth_pub_x,
        note.token.value,
        field_to_bytes(note.amount),
        note.randomness,
    )


def compute_position_commitment(hasher: PoseidonHasher, note: PositionNote) -> bytes:
    inner = hasher.hash_domain(
        DOMAIN_POSITION_COMMITMENT,
        note.stealth_pub_x,
        note.market_id.value,
        field_to_bytes(1 if note.is_long else 0),
        field_to_bytes(note.margin),
    )
    return hasher.hash([
        inner,
        field_to_bytes(note.size),
        field_to_bytes(note.leverage),
        field_to_bytes(note.entry_price),
        note.randomness,
    ])


def compute_lp_commitment(hasher: PoseidonHasher, note: LpNote) -> bytes:
    return hasher.hash_domain(
        DOMAIN_LP_COMMITMENT,
        note.stealth_pub_x,
        note.pool_id.value,
        field_to_bytes(note.lp_amount),
        note.randomness,
    )


def compute_commitment(hasher: PoseidonHasher, note: AnyNote) -> bytes:
    """Commitment for any note shape."""
    if isinstance(note, Note):
        return compute_standard_commitment(hasher, note)
    if isinstance(note, PositionNote):
        return compute_position_commitment(hasher, note)
    if isinstance(note, LpNote):
        return compute_lp_commitment(hasher, note)
    raise TypeError(f"Unsupported note type: {type(note).__name__}")


def verify_commitment(hasher: PoseidonHasher, commitment: bytes, note: AnyNote) -> bool:
    """
    Recompute and compare as reduced field elements, so a non-canonical
    encoding of the same value still matches.
    """
    return bytes_to_field(compute_commitment(hasher, note)) == bytes_to_field(commitment)


__all__ = [
    'compute_standard_commitment',
    'compute_position_commitment',
    'compute_lp_commitment',
    'compute_commitment',
    'verify_commitment',
]
