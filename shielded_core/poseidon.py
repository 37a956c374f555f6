"""
Poseidon hash over the BN254 scalar field, with domain separation.

This module implements the Poseidon permutation with the circom parameter
set (x^5 S-box, 8 full rounds, width-dependent partial rounds). Round
constants and the MDS matrix are derived with the Grain LFSR procedure from
the Poseidon reference implementation, which reproduces circomlib's
`poseidon` outputs (pinned in tests/test_poseidon.py). That derivation is
slow, so every sponge width is built once, on first use, and kept by the
hasher.

The hasher is an explicit context object. `init_hasher()` builds the shared
instance exactly once, even with concurrent first callers, and
`get_hasher()` refuses to hand out anything before that.
"""

import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from structlog import get_logger

from .errors import HashNotInitialized
from .field import BN254_SCALAR_MODULUS, Fr, bytes_to_field, field_to_bytes

logger = get_logger()

# --- Domain separators ---
# One byte each. Every purpose gets its own value; see _check_domains().

DOMAIN_COMMITMENT = 0x01
DOMAIN_SPENDING_NULLIFIER = 0x02
DOMAIN_ACTION_NULLIFIER = 0x03
DOMAIN_NULLIFIER_KEY = 0x04
DOMAIN_STEALTH = 0x05
DOMAIN_MERKLE = 0x06
DOMAIN_EMPTY_LEAF = 0x07
DOMAIN_POSITION_COMMITMENT = 0x08
DOMAIN_LP_COMMITMENT = 0x09
DOMAIN_VIEWING_KEY = 0x10
DOMAIN_WALLET = 0x11

ALL_DOMAINS = {
    "commitment": DOMAIN_COMMITMENT,
    "spending_nullifier": DOMAIN_SPENDING_NULLIFIER,
    "action_nullifier": DOMAIN_ACTION_NULLIFIER,
    "nullifier_key": DOMAIN_NULLIFIER_KEY,
    "stealth": DOMAIN_STEALTH,
    "merkle": DOMAIN_MERKLE,
    "empty_leaf": DOMAIN_EMPTY_LEAF,
    "position_commitment": DOMAIN_POSITION_COMMITMENT,
    "lp_commitment": DOMAIN_LP_COMMITMENT,
    "viewing_key": DOMAIN_VIEWING_KEY,
    "wallet": DOMAIN_WALLET,
}


def _check_domains() -> None:
    values = list(ALL_DOMAINS.values())
    if len(set(values)) != len(values):
        raise AssertionError("domain separators must be pairwise distinct")
    if any(not 0 < v < 0x100 for v in values):
        raise AssertionError("domain separators must fit in one byte")


_check_domains()


# --- Parameters ---

ROUNDS_F = 8

# Partial rounds for sponge widths t = 2..17 (1..16 inputs).
ROUNDS_P: Tuple[int, ...] = (
    56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68,
)


@dataclass(frozen=True)
class HashConfig:
    """
    Poseidon parameter set.

    Attributes:
        full_rounds: Number of full rounds (split evenly around the partials)
        partial_rounds: Partial round count per width, starting at t = 2
        alpha: S-box exponent
        field_bits: Bit size of the field, fed into the Grain LFSR seed
        modulus: Prime modulus of the field
    """
    full_rounds: int = ROUNDS_F
    partial_rounds: Tuple[int, ...] = ROUNDS_P
    alpha: int = 5
    field_bits: int = 254
    modulus: int = BN254_SCALAR_MODULUS

    @property
    def max_inputs(self) -> int:
        return len(self.partial_rounds)

    def rounds_for(self, width: int) -> Tuple[int, int]:
        """Return (full, partial) round counts for a sponge width."""
        if width < 2 or width - 2 >= len(self.partial_rounds):
            raise ValueError(
                f"width must be in [2, {len(self.partial_rounds) + 1}], got {width}"
            )
        return self.full_rounds, self.partial_rounds[width - 2]


# --- Grain LFSR ---

_LFSR_BITS = 80
_LFSR_MASK = (1 << _LFSR_BITS) - 1


class GrainLFSR:
    """
    Self-shrinking Grain LFSR used to derive Poseidon constants.

    The 80-bit state is kept in an int whose most significant bit is the
    oldest bit of the sequence. Taps sit at sequence positions 0, 13, 23,
    38, 51 and 62.
    """

    def __init__(self, field_bits: int, width: int, full_rounds: int, partial_rounds: int):
        seed = (
            "01"                            # prime field
            + "0000"                        # x^alpha S-box
            + format(field_bits, "012b")
            + format(width, "012b")
            + format(full_rounds, "010b")
            + format(partial_rounds, "010b")
            + "1" * 30
        )
        self._state = int(seed, 2)
        for _ in range(160):
            self._step()

    def _step(self) -> int:
        s = self._state
        bit = ((s >> 17) ^ (s >> 28) ^ (s >> 41) ^ (s >> 56) ^ (s >> 66) ^ (s >> 79)) & 1
        self._state = ((s << 1) & _LFSR_MASK) | bit
        return bit

    def next_bit(self) -> int:
        # Bits come in pairs; the second is kept only when the first is 1.
        while True:
            keep = self._step()
            bit = self._step()
            if keep:
                return bit

    def random_bits(self, n: int) -> int:
        value = 0
        for _ in range(n):
            value = (value << 1) | self.next_bit()
        return value

    def field_element(self, n: int, modulus: int) -> int:
        """Rejection-sample an n-bit value below `modulus`."""
        value = self.random_bits(n)
        while value >= modulus:
            value = self.random_bits(n)
        return value


def generate_round_constants(lfsr: GrainLFSR, count: int, config: HashConfig) -> List[int]:
    return [lfsr.field_element(config.field_bits, config.modulus) for _ in range(count)]


def generate_mds(lfsr: GrainLFSR, width: int, config: HashConfig) -> List[List[int]]:
    """
    Cauchy MDS matrix M[i][j] = 1 / (x_i + y_j) from 2t distinct LFSR values.
    """
    while True:
        values = [lfsr.random_bits(config.field_bits) % config.modulus for _ in range(2 * width)]
        while len(set(values)) != len(values):
            values = [lfsr.random_bits(config.field_bits) % config.modulus for _ in range(2 * width)]

        xs = Fr(values[:width])
        ys = Fr(values[width:])
        sums = xs[:, np.newaxis] + ys[np.newaxis, :]
        if np.any(sums == 0):
            continue
        mds = sums ** -1
        return [[int(v) for v in row] for row in mds]


# --- Permutation ---

class PoseidonPermutation:
    """
    Poseidon permutation for a single sponge width.

    Attributes:
        width: Sponge width t (number of inputs + 1)
        round_constants: (R_F + R_P) * t constants, row-major by round
        mds: t x t MDS matrix
    """

    def __init__(self, width: int, config: HashConfig):
        self.width = width
        self.config = config
        self.full_rounds, self.partial_rounds = config.rounds_for(width)

        lfsr = GrainLFSR(config.field_bits, width, self.full_rounds, self.partial_rounds)
        n_rounds = self.full_rounds + self.partial_rounds
        self.round_constants = generate_round_constants(lfsr, n_rounds * width, config)
        self.mds = generate_mds(lfsr, width, config)

    def permute(self, state: Sequence[int]) -> List[int]:
        """
        Apply the full permutation to `width` field elements.
        """
        p = self.config.modulus
        alpha = self.config.alpha
        t = self.width
        if len(state) != t:
            raise ValueError(f"state must have {t} elements, got {len(state)}")

        half_full = self.full_rounds // 2
        n_rounds = self.full_rounds + self.partial_rounds
        state = [s % p for s in state]

        for r in range(n_rounds):
            rc = self.round_constants[r * t:(r + 1) * t]
            state = [(s + c) % p for s, c in zip(state, rc)]
            if r < half_full or r >= half_full + self.partial_rounds:
                state = [pow(s, alpha, p) for s in state]
            else:
                state[0] = pow(state[0], alpha, p)
            state = [sum(m * s for m, s in zip(row, state)) % p for row in self.mds]

        return state

    def __call__(self, inputs: Sequence[int]) -> int:
        # Capacity element 0, inputs in the rate, digest is state[0].
        return self.permute([0] + list(inputs))[0]


# --- Hasher context ---

class PoseidonHasher:
    """
    Domain-separated Poseidon hash over 32-byte field elements.

    Permutations are built per width on first use, under a lock, so
    parallel callers never build the same width twice.
    """

    def __init__(self, config: Optional[HashConfig] = None):
        self.config = config or HashConfig()
        self._permutations: Dict[int, PoseidonPermutation] = {}
        self._lock = threading.Lock()
        self.log = logger.new(hasher=id(self))

    def permutation(self, width: int) -> PoseidonPermutation:
        perm = self._permutations.get(width)
        if perm is not None:
            return perm
        with self._lock:
            perm = self._permutations.get(width)
            if perm is None:
                t0 = time.perf_counter()
                perm = PoseidonPermutation(width, self.config)
                self._permutations[width] = perm
                self.log.info('poseidon width built', width=width,
                              elapsed=round(time.perf_counter() - t0, 3))
        return perm

    def hash_fields(self, values: Sequence[int]) -> int:
        """Hash already-reduced field integers, returning an int."""
        if not values:
            raise ValueError("Poseidon needs at least one input")
        if len(values) > self.config.max_inputs:
            raise ValueError(
                f"Poseidon supports at most {self.config.max_inputs} inputs, got {len(values)}"
            )
        return self.permutation(len(values) + 1)(values)

    def hash(self, inputs: Sequence[bytes], domain: Optional[int] = None) -> bytes:
        """
        Hash 32-byte big-endian field elements.

        Args:
            inputs: Field elements as bytes; each is reduced mod r first
            domain: Optional domain separator, absorbed as the first input

        Returns:
            32-byte big-endian digest
        """
        values = [] if domain is None else [domain]
        values.extend(bytes_to_field(x) for x in inputs)
        return field_to_bytes(self.hash_fields(values))

    def hash_domain(self, domain: int, *inputs: bytes) -> bytes:
        return self.hash(inputs, domain)

    def hash2(self, left: bytes, right: bytes) -> bytes:
        """Merkle internal node."""
        return self.hash([left, right], DOMAIN_MERKLE)

    def empty_leaf(self) -> bytes:
        """Value of an unoccupied Merkle leaf."""
        return field_to_bytes(self.hash_fields([DOMAIN_EMPTY_LEAF]))

    def warm(self, widths: Sequence[int]) -> None:
        """Build the given widths ahead of time."""
        for width in widths:
            self.permutation(width)


_hasher: Optional[PoseidonHasher] = None
_init_lock = threading.Lock()


def init_hasher(config: Optional[HashConfig] = None) -> PoseidonHasher:
    """
    Build the shared hasher once and return it.

    Concurrent first callers block on the same lock and all receive the
    instance built by whichever of them got there first. A later call with
    a different config still returns the existing hasher.
    """
    global _hasher
    if _hasher is not None:
        return _hasher
    with _init_lock:
        if _hasher is None:
            _hasher = PoseidonHasher(config)
            logger.info('poseidon hasher initialized')
    return _hasher


def get_hasher() -> PoseidonHasher:
    """Return the shared hasher, failing loudly if it was never built."""
    if _hasher is None:
        raise HashNotInitialized("Poseidon not initialized. Call init_hasher() first.")
    return _hasher


def reset_hasher() -> None:
    """Drop the shared hasher. Intended for test isolation."""
    global _hasher
    with _init_lock:
        _hasher = None


__all__ = [
    'DOMAIN_COMMITMENT',
    'DOMAIN_SPENDING_NULLIFIER',
    'DOMAIN_ACTION_NULLIFIER',
    'DOMAIN_NULLIFIER_KEY',
    'DOMAIN_STEALTH',
    'DOMAIN_MERKLE',
    'DOMAIN_EMPTY_LEAF',
    'DOMAIN_POSITION_COMMITMENT',
    'DOMAIN_LP_COMMITMENT',
    'DOMAIN_VIEWING_KEY',
    'DOMAIN_WALLET',
    'ALL_DOMAINS',
    'HashConfig',
    'GrainLFSR',
    'PoseidonPermutation',
    'PoseidonHasher',
    'init_hasher',
    'get_hasher',
    'reset_hasher',
]
