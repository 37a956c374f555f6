"""
Spending keypairs.

A keypair is rooted in a 32-byte spending key seed, which is a scalar below
the BabyJubJub subgroup order. Everything else is derived from it:

    nk  = H(DOMAIN_NULLIFIER_KEY, sk, 0)     nullifier key
    ivk = H(DOMAIN_VIEWING_KEY, sk)          incoming viewing key
    pk  = sk * G                             long-term public key
"""

import hashlib
import secrets
from dataclasses import dataclass
from functools import cached_property

from .curve import SUBGROUP_ORDER, Point, derive_public_key
from .errors import InvalidKeyLength, ScalarOutOfRange
from .field import FIELD_ELEMENT_SIZE, bytes_to_field, field_to_bytes
from .nullifier import derive_nullifier_key
from .poseidon import DOMAIN_VIEWING_KEY, DOMAIN_WALLET, PoseidonHasher

SEED_PHRASE_ITERATIONS = 100_000
DEFAULT_DERIVATION_PATH = "m/44'/501'/0'/0'"


@dataclass(frozen=True)
class ViewingKey:
    """Read-only key material: nullifier key and incoming viewing key."""
    nk: bytes
    ivk: bytes


class SpendingKeypair:
    """
    Spending key with lazily derived, cached companions.

    Attributes:
        spending_key: 32-byte big-endian scalar, secret
    """

    def __init__(self, hasher: PoseidonHasher, spending_key: bytes):
        if len(spending_key) != FIELD_ELEMENT_SIZE:
            raise InvalidKeyLength(len(spending_key))
        if not 0 < int.from_bytes(spending_key, 'big') < SUBGROUP_ORDER:
            raise ScalarOutOfRange("spending key must be in [1, subgroup order)")
        self._hasher = hasher
        self.spending_key = bytes(spending_key)

    def __repr__(self) -> str:
        return f"SpendingKeypair(public_key={self.public_key!r})"

    @classmethod
    def generate(cls, hasher: PoseidonHasher) -> "SpendingKeypair":
        """Fresh keypair from CSPRNG entropy."""
        sk = secrets.randbelow(SUBGROUP_ORDER - 1) + 1
        return cls(hasher, field_to_bytes(sk))

    @classmethod
    def from_signature(cls, hasher: PoseidonHasher, signature: bytes) -> "SpendingKeypair":
        """
        Deterministic keypair from a wallet signature over a fixed message.

        The first 64 signature bytes are hashed as two field elements.
        """
        if len(signature) < 64:
            raise ValueError(f"signature must be at least 64 bytes, got {len(signature)}")
        digest = hasher.hash_domain(DOMAIN_WALLET, signature[:32], signature[32:64])
        sk = bytes_to_field(digest) % SUBGROUP_ORDER
        return cls(hasher, field_to_bytes(sk))

    @classmethod
    def from_seed_phrase(cls, hasher: PoseidonHasher, seed_phrase: str,
                         path: str = DEFAULT_DERIVATION_PATH) -> "SpendingKeypair":
        """PBKDF2-HMAC-SHA256 over the phrase, salted with the derivation path."""
        derived = hashlib.pbkdf2_hmac(
            'sha256',
            seed_phrase.encode('utf-8'),
            ('cloakcraft' + path).encode('utf-8'),
            SEED_PHRASE_ITERATIONS,
            dklen=32,
        )
        sk = bytes_to_field(derived) % SUBGROUP_ORDER
        return cls(hasher, field_to_bytes(sk))

    @property
    def scalar(self) -> int:
        return int.from_bytes(self.spending_key, 'big')

    @cached_property
    def nullifier_key(self) -> bytes:
        return derive_nullifier_key(self._hasher, self.spending_key)

    @cached_property
    def incoming_viewing_key(self) -> bytes:
        return self._hasher.hash_domain(DOMAIN_VIEWING_KEY, self.spending_key)

    @property
    def viewing_key(self) -> ViewingKey:
        return ViewingKey(self.nullifier_key, self.incoming_viewing_key)

    @cached_property
    def public_key(self) -> Point:
        return derive_public_key(self.scalar)


__all__ = [
    'ViewingKey',
    'SpendingKeypair',
    'SEED_PHRASE_ITERATIONS',
    'DEFAULT_DERIVATION_PATH',
]
