"""
Exponential ElGamal over BabyJubJub, used for private ballot tallying.

    Enc(m, P; r) = (r*G, m*G + r*P)

Ciphertexts add component-wise, so the sum of many ballots encrypts the sum
of their votes. Only small totals can be recovered, since decryption ends in
a discrete-log search over m*G.

Threshold decryption: the election secret is Shamir-shared among a
committee. Each member publishes D_i = sk_i * c1 with a DLEQ proof that
log_G(P_i) == log_c1(D_i). Any t shares combine with Lagrange coefficients
at zero:

    m*G = c2 - sum(lambda_i * D_i)

All scalar arithmetic (shares, Lagrange coefficients, DLEQ responses) is
done modulo the curve subgroup order.
"""

import math
import secrets
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from structlog import get_logger

from .curve import (
    GENERATOR,
    IDENTITY,
    SUBGROUP_ORDER,
    Point,
    derive_public_key,
    is_in_subgroup,
    is_on_curve,
    point_add,
    point_sub,
    scalar_mul,
    validate_point,
)
from .errors import InvalidPoint, ScalarOutOfRange
from .field import bytes_to_field, field_to_bytes, mod_inverse, random_scalar
from .poseidon import PoseidonHasher

logger = get_logger()


@dataclass(frozen=True)
class ElGamalCiphertext:
    c1: Point
    c2: Point

    def __add__(self, other: "ElGamalCiphertext") -> "ElGamalCiphertext":
        return add_ciphertexts(self, other)


ZERO_CIPHERTEXT = ElGamalCiphertext(IDENTITY, IDENTITY)


def elgamal_encrypt(message: int, public_key: Point, randomness: int) -> ElGamalCiphertext:
    """
    Encrypt a small non-negative integer.

    Args:
        message: Value to encrypt, e.g. voting power
        public_key: Election public key
        randomness: Scalar in [1, order), never reused

    Returns:
        (r*G, m*G + r*P)
    """
    if message < 0:
        raise ValueError(f"message must be non-negative, got {message}")
    if not 0 < randomness < SUBGROUP_ORDER:
        raise ScalarOutOfRange("encryption randomness must be in [1, order)")
    validate_point(public_key)

    c1 = scalar_mul(GENERATOR, randomness)
    c2 = point_add(scalar_mul(GENERATOR, message), scalar_mul(public_key, randomness))
    return ElGamalCiphertext(c1, c2)


def add_ciphertexts(a: ElGamalCiphertext, b: ElGamalCiphertext) -> ElGamalCiphertext:
    return ElGamalCiphertext(point_add(a.c1, b.c1), point_add(a.c2, b.c2))


def sum_ciphertexts(ciphertexts: Iterable[ElGamalCiphertext]) -> ElGamalCiphertext:
    total = ZERO_CIPHERTEXT
    for ct in ciphertexts:
        total = add_ciphertexts(total, ct)
    return total


def serialize_ciphertext(ct: ElGamalCiphertext) -> bytes:
    """Compact on-chain form: c1.x || c2.x (64 bytes)."""
    return ct.c1.x_bytes + ct.c2.x_bytes


def serialize_ciphertext_full(ct: ElGamalCiphertext) -> bytes:
    """Both points in full: c1 || c2 (128 bytes)."""
    return ct.c1.to_bytes() + ct.c2.to_bytes()


def deserialize_ciphertext_full(data: bytes) -> ElGamalCiphertext:
    if len(data) != 128:
        raise ValueError(f"full ciphertext must be 128 bytes, got {len(data)}")
    c1 = Point.from_bytes(data[:64])
    c2 = Point.from_bytes(data[64:])
    for point in (c1, c2):
        if not is_on_curve(point):
            raise ValueError("ciphertext component is not on the curve")
    return ElGamalCiphertext(c1, c2)


# --- Ballots ---

class VoteOption(IntEnum):
    YES = 0
    NO = 1
    ABSTAIN = 2


def generate_vote_randomness(num_options: int = len(VoteOption)) -> List[int]:
    """Distinct encryption scalars, one per option."""
    values: List[int] = []
    while len(values) < num_options:
        r = random_scalar(SUBGROUP_ORDER)
        if r not in values:
            values.append(r)
    return values


def encrypt_vote(voting_power: int, choice: int, public_key: Point,
                 randomness: Sequence[int],
                 num_options: int = len(VoteOption)) -> List[ElGamalCiphertext]:
    """
    Encrypt a ballot as one ciphertext per option.

    The chosen option encrypts `voting_power`, every other option encrypts
    zero, so ballots can be tallied without revealing the choice.
    """
    if not 0 <= choice < num_options:
        raise ValueError(f"choice {choice} out of range for {num_options} options")
    if len(randomness) != num_options:
        raise ValueError(f"expected {num_options} randomness values, got {len(randomness)}")
    if len(set(randomness)) != len(randomness):
        raise ValueError("ballot randomness must not repeat")

    return [
        elgamal_encrypt(voting_power if option == choice else 0, public_key, randomness[option])
        for option in range(num_options)
    ]


def tally_ballots(ballots: Iterable[Sequence[ElGamalCiphertext]],
                  num_options: int = len(VoteOption)) -> List[ElGamalCiphertext]:
    """Homomorphic per-option totals."""
    totals = [ZERO_CIPHERTEXT] * num_options
    for ballot in ballots:
        if len(ballot) != num_options:
            raise ValueError(f"ballot has {len(ballot)} options, expected {num_options}")
        totals = [add_ciphertexts(total, ct) for total, ct in zip(totals, ballot)]
    return totals


# --- Decryption ---

def decrypt_with_key(ct: ElGamalCiphertext, secret_key: int) -> Point:
    """m*G = c2 - sk*c1, for a holder of the full election key."""
    return point_sub(ct.c2, scalar_mul(ct.c1, secret_key))


def recover_small_value(point: Point, max_value: int) -> Optional[int]:
    """
    Baby-step giant-step search for m in [0, max_value] with m*G == point.

    Returns:
        m, or None if the point is not in range
    """
    if max_value < 0:
        raise ValueError("max_value must be non-negative")
    step = math.isqrt(max_value) + 1

    baby: Dict[Point, int] = {}
    current = IDENTITY
    for j in range(step):
        baby.setdefault(current, j)
        current = point_add(current, GENERATOR)

    giant = scalar_mul(GENERATOR, step)
    current = point
    for i in range(step + 1):
        j = baby.get(current)
        if j is not None:
            m = i * step + j
            return m if m <= max_value else None
        current = point_sub(current, giant)
    return None


# --- Threshold ---

def split_secret(secret: int, threshold: int, num_shares: int,
                 coefficients: Optional[Sequence[int]] = None) -> List[Tuple[int, int]]:
    """
    Shamir-share `secret` over the subgroup order.

    Args:
        secret: Election secret key
        threshold: Number of shares needed to decrypt
        num_shares: Committee size
        coefficients: Fixed higher-order coefficients, tests only

    Returns:
        [(member index, key share)] with 1-based indices
    """
    if not 1 <= threshold <= num_shares:
        raise ValueError(f"need 1 <= threshold <= num_shares, got {threshold} of {num_shares}")
    if coefficients is None:
        coefficients = [secrets.randbelow(SUBGROUP_ORDER) for _ in range(threshold - 1)]
    elif len(coefficients) != threshold - 1:
        raise ValueError(f"expected {threshold - 1} coefficients, got {len(coefficients)}")

    poly = [secret % SUBGROUP_ORDER] + [c % SUBGROUP_ORDER for c in coefficients]
    shares = []
    for index in range(1, num_shares + 1):
        # Horner
        value = 0
        for coeff in reversed(poly):
            value = (value * index + coeff) % SUBGROUP_ORDER
        shares.append((index, value))
    return shares


def compute_decryption_share(ct: ElGamalCiphertext, secret_key_share: int) -> Point:
    """D_i = sk_i * c1."""
    return scalar_mul(ct.c1, secret_key_share)


def lagrange_coefficient(indices: Sequence[int], index: int,
                         order: int = SUBGROUP_ORDER) -> int:
    """
    Lagrange basis polynomial for `index` evaluated at zero.

        lambda_i = prod_{j != i} j / (j - i)   mod order
    """
    if index not in indices:
        raise ValueError(f"index {index} is not among the participants")
    if len(set(indices)) != len(indices):
        raise ValueError("participant indices must be distinct")

    numerator = 1
    denominator = 1
    for j in indices:
        if j == index:
            continue
        numerator = numerator * j % order
        denominator = denominator * (j - index) % order
    return numerator * mod_inverse(denominator, order) % order


def combine_shares(ct: ElGamalCiphertext, shares: Sequence[Point],
                   indices: Sequence[int], order: int = SUBGROUP_ORDER) -> Point:
    """
    Recover m*G from t decryption shares.

    Args:
        ct: Aggregated ciphertext
        shares: D_i for each participating member
        indices: 1-based member indices, aligned with `shares`

    Raises:
        InvalidPoint: A share is off the curve or outside the prime-order
            subgroup
    """
    if len(shares) != len(indices):
        raise ValueError("shares and indices must have the same length")
    for share, index in zip(shares, indices):
        if not is_on_curve(share) or not is_in_subgroup(share):
            raise InvalidPoint(f"decryption share of member {index} is not a subgroup point")

    combined = IDENTITY
    for share, index in zip(shares, indices):
        weight = lagrange_coefficient(indices, index, order)
        combined = point_add(combined, scalar_mul(share, weight))

    logger.debug('decryption shares combined', participants=list(indices))
    return point_sub(ct.c2, combined)


# --- DLEQ ---

@dataclass(frozen=True)
class DleqProof:
    """Chaum-Pedersen proof, both fields 32-byte big-endian."""
    c: bytes
    s: bytes


def _dleq_challenge(hasher: PoseidonHasher, public_key: Point, c1: Point,
                    share: Point, a: Point, b: Point) -> bytes:
    points = (GENERATOR, public_key, c1, share, a, b)
    return hasher.hash([coord for p in points for coord in (p.x_bytes, p.y_bytes)])


def generate_dleq_proof(hasher: PoseidonHasher, secret_key: int, public_key: Point,
                        c1: Point, share: Point,
                        nonce: Optional[int] = None) -> DleqProof:
    """
    Prove log_G(public_key) == log_c1(share) == secret_key.

        A = k*G, B = k*c1
        c = H(G, P, c1, D, A, B)
        s = k - c*sk   mod order
    """
    k = nonce if nonce is not None else random_scalar(SUBGROUP_ORDER)
    a = scalar_mul(GENERATOR, k)
    b = scalar_mul(c1, k)

    challenge = _dleq_challenge(hasher, public_key, c1, share, a, b)
    c = bytes_to_field(challenge)
    s = (k - c * secret_key) % SUBGROUP_ORDER
    return DleqProof(c=challenge, s=field_to_bytes(s))


def verify_dleq_proof(hasher: PoseidonHasher, proof: DleqProof, public_key: Point,
                      c1: Point, share: Point) -> bool:
    """
    Recompute A' = s*G + c*P, B' = s*c1 + c*D and compare challenges.

    Returns False unless every point lies in the prime-order subgroup.
    """
    if not all(is_on_curve(p) and is_in_subgroup(p) for p in (public_key, c1, share)):
        return False
    c = bytes_to_field(proof.c)
    s = bytes_to_field(proof.s)

    a = point_add(scalar_mul(GENERATOR, s), scalar_mul(public_key, c))
    b = point_add(scalar_mul(c1, s), scalar_mul(share, c))

    expected = _dleq_challenge(hasher, public_key, c1, share, a, b)
    return bytes_to_field(expected) == c


@dataclass(frozen=True)
class DecryptionShare:
    """A committee member's published share for one ciphertext."""
    member_index: int
    share: Point
    proof: DleqProof

    @classmethod
    def create(cls, hasher: PoseidonHasher, member_index: int, secret_key_share: int,
               ct: ElGamalCiphertext) -> "DecryptionShare":
        share = compute_decryption_share(ct, secret_key_share)
        proof = generate_dleq_proof(
            hasher, secret_key_share, derive_public_key(secret_key_share), ct.c1, share
        )
        return cls(member_index, share, proof)

    def verify(self, hasher: PoseidonHasher, public_key_share: Point,
               ct: ElGamalCiphertext) -> bool:
        return verify_dleq_proof(hasher, self.proof, public_key_share, ct.c1, self.share)


__all__ = [
    'ElGamalCiphertext',
    'ZERO_CIPHERTEXT',
    'elgamal_encrypt',
    'add_ciphertexts',
    'sum_ciphertexts',
    'serialize_ciphertext',
    'serialize_ciphertext_full',
    'deserialize_ciphertext_full',
    'VoteOption',
    'generate_vote_randomness',
    'encrypt_vote',
    'tally_ballots',
    'decrypt_with_key',
    'recover_small_value',
    'split_secret',
    'compute_decryption_share',
    'lagrange_coefficient',
    'combine_shares',
    'DleqProof',
    'generate_dleq_proof',
    'verify_dleq_proof',
    'DecryptionShare',
]
