"""
Stealth addresses via ECDH on BabyJubJub.

Sender, for recipient public key Y:
    e random, E = e*G, S = e*Y
    f = H(DOMAIN_STEALTH, S.x) mod order
    stealth = Y + f*G

Recipient, holding y:
    S = y*E (same point), f as above
    stealth_sk = (y + f) mod order

The factor is taken over the full x-coordinate of S.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .curve import (
    GENERATOR,
    SUBGROUP_ORDER,
    Point,
    derive_public_key,
    point_add,
    scalar_mul,
    validate_point,
)
from .errors import ScalarOutOfRange
from .field import bytes_to_field, random_scalar
from .poseidon import DOMAIN_STEALTH, PoseidonHasher


@dataclass(frozen=True)
class StealthAddress:
    stealth_pubkey: Point
    ephemeral_pubkey: Point


def derive_stealth_factor(hasher: PoseidonHasher, shared_secret: Point) -> int:
    digest = hasher.hash_domain(DOMAIN_STEALTH, shared_secret.x_bytes)
    return bytes_to_field(digest) % SUBGROUP_ORDER


def generate_stealth_address(hasher: PoseidonHasher, recipient_pubkey: Point,
                             ephemeral_private: Optional[int] = None
                             ) -> Tuple[StealthAddress, int]:
    """
    Derive a one-time address for `recipient_pubkey`.

    Returns:
        (address, ephemeral_private). The ephemeral scalar stays with the
        sender and must never be published or reused.
    """
    validate_point(recipient_pubkey)
    if ephemeral_private is None:
        ephemeral_private = random_scalar(SUBGROUP_ORDER)
    elif not 0 < ephemeral_private < SUBGROUP_ORDER:
        raise ScalarOutOfRange("ephemeral scalar must be in [1, order)")

    ephemeral_pubkey = derive_public_key(ephemeral_private)
    shared_secret = scalar_mul(recipient_pubkey, ephemeral_private)
    factor = derive_stealth_factor(hasher, shared_secret)
    stealth_pubkey = point_add(recipient_pubkey, scalar_mul(GENERATOR, factor))

    return StealthAddress(stealth_pubkey, ephemeral_pubkey), ephemeral_private


def derive_stealth_private_key(hasher: PoseidonHasher, recipient_private_key: int,
                               ephemeral_pubkey: Point) -> int:
    """Recipient-side recovery of the one-time private key."""
    validate_point(ephemeral_pubkey)
    shared_secret = scalar_mul(ephemeral_pubkey, recipient_private_key)
    factor = derive_stealth_factor(hasher, shared_secret)
    return (recipient_private_key + factor) % SUBGROUP_ORDER


def check_stealth_ownership(hasher: PoseidonHasher, address: StealthAddress,
                            recipient_private_key: int) -> bool:
    """True if `address` was generated for the holder of `recipient_private_key`."""
    stealth_sk = derive_stealth_private_key(hasher, recipient_private_key, address.ephemeral_pubkey)
    return derive_public_key(stealth_sk) == address.stealth_pubkey


__all__ = [
    'StealthAddress',
    'derive_stealth_factor',
    'generate_stealth_address',
    'derive_stealth_private_key',
    'check_stealth_ownership',
]
