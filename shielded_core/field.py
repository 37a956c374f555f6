"""
BN254 scalar and base fields.

Two moduli are in play. The scalar field Fr is the native field of the
Groth16/circom circuits: every commitment, nullifier, stealth and hash value
lives there, and BabyJubJub is defined over it. The base field Fq holds the
coordinates of the BN254 pairing curve and is only used when encoding proofs
for the host verifier. Never mix the two.

galois provides the field classes. Hot paths (curve arithmetic, the Poseidon
permutation) work on plain Python ints reduced with the helpers below.
"""

import secrets

import galois

from .errors import ModularInverseUndefined

# r = 21888242871839275222246405745257275088548364400416034343698204186575808495617
BN254_SCALAR_MODULUS = 0x30644E72E131A029B85045B68181585D2833E84879B9709143E1F593F0000001

# q = 21888242871839275222246405745257275088696311157297823662689037894645226208583
BN254_BASE_MODULUS = 0x30644E72E131A029B85045B68181585D97816A916871CA8D3C208C16D87CFD47

FIELD_ELEMENT_SIZE = 32

# Multiplicative generators are passed in so galois does not factor p - 1.
Fr = galois.GF(BN254_SCALAR_MODULUS, primitive_element=5, verify=False)
"""Scalar field GF(r)."""

Fq = galois.GF(BN254_BASE_MODULUS, primitive_element=3, verify=False)
"""Base field GF(q) of the pairing curve."""


def bytes_to_field(data: bytes, modulus: int = BN254_SCALAR_MODULUS) -> int:
    """
    Interpret big-endian bytes as an integer reduced modulo `modulus`.

    Args:
        data: Big-endian bytes, normally 32 of them
        modulus: Field modulus (defaults to the scalar field)

    Returns:
        Canonical field value in [0, modulus)
    """
    return int.from_bytes(bytes(data), "big") % modulus


def field_to_bytes(value: int, modulus: int = BN254_SCALAR_MODULUS) -> bytes:
    """
    Serialize a field value as 32 big-endian bytes, zero-padded.

    The value is reduced first, so negative inputs map to their canonical
    representative.
    """
    return (value % modulus).to_bytes(FIELD_ELEMENT_SIZE, "big")


def mod_inverse(a: int, modulus: int) -> int:
    """
    Modular inverse using the extended Euclidean algorithm.

    Raises:
        ModularInverseUndefined: If gcd(a, modulus) != 1. Cannot happen for
            non-zero inputs and the fixed prime moduli used here.
    """
    old_r, r = a % modulus, modulus
    old_s, s = 1, 0
    while r != 0:
        q = old_r // r
        old_r, r = r, old_r - q * r
        old_s, s = s, old_s - q * s

    if old_r != 1:
        raise ModularInverseUndefined(f"{a} has no inverse modulo {modulus}")
    return old_s % modulus


def pow_mod(base: int, exp: int, modulus: int = BN254_SCALAR_MODULUS) -> int:
    """Modular exponentiation."""
    return pow(base % modulus, exp, modulus)


def random_field_bytes(modulus: int = BN254_SCALAR_MODULUS) -> bytes:
    """32 CSPRNG bytes reduced into the field."""
    return field_to_bytes(bytes_to_field(secrets.token_bytes(FIELD_ELEMENT_SIZE), modulus), modulus)


def random_scalar(order: int) -> int:
    """Uniform non-zero scalar in [1, order)."""
    return secrets.randbelow(order - 1) + 1
