"""
Groth16 proof byte encoding for the host chain's alt_bn128 verifier.

The verifier checks

    e(-A, B) * e(alpha, beta) * e(PI, gamma) * e(C, delta) == 1

so the proof is submitted with A already negated. G2 coordinates are written
imaginary part first. The 256-byte layout is:

    [  0: 32]  A.x
    [ 32: 64]  -A.y mod q
    [ 64: 96]  B.x_im
    [ 96:128]  B.x_re
    [128:160]  B.y_im
    [160:192]  B.y_re
    [192:224]  C.x
    [224:256]  C.y

All values are 32-byte big-endian elements of the base field Fq.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Tuple

from .errors import ProofLengthMismatch
from .field import BN254_BASE_MODULUS, Fq, bytes_to_field, field_to_bytes

PROOF_SIZE = 256

G1 = Tuple[int, int]
Fq2 = Tuple[int, int]


@dataclass(frozen=True)
class Groth16Proof:
    """
    Uncompressed proof points as integers.

    Attributes:
        a: G1 point (x, y)
        b: G2 point ((x_re, x_im), (y_re, y_im))
        c: G1 point (x, y)
    """
    a: G1
    b: Tuple[Fq2, Fq2]
    c: G1


@dataclass(frozen=True)
class ProofBytes:
    """Packed proof sections: a (64 bytes), b (128 bytes), c (64 bytes)."""
    a: bytes
    b: bytes
    c: bytes


def _fq(value: int) -> bytes:
    return field_to_bytes(value, BN254_BASE_MODULUS)


def negate_fq(value: int) -> int:
    """-y mod q, with 0 mapping to 0."""
    return int(-Fq(value % BN254_BASE_MODULUS))


def format_proof(proof: Groth16Proof) -> bytes:
    """Pack a proof into the 256-byte verifier layout."""
    (ax, ay) = proof.a
    ((bx_re, bx_im), (by_re, by_im)) = proof.b
    (cx, cy) = proof.c
    return b''.join([
        _fq(ax), _fq(negate_fq(ay)),
        _fq(bx_im), _fq(bx_re),
        _fq(by_im), _fq(by_re),
        _fq(cx), _fq(cy),
    ])


def proof_from_snarkjs(obj: Mapping[str, Any]) -> Groth16Proof:
    """
    Read snarkjs proof JSON (decimal strings).

    snarkjs stores pi_b as [[x_re, x_im], [y_re, y_im], ...] and appends a
    projective z coordinate to every point, which is ignored.
    """
    pi_a = obj['pi_a']
    pi_b = obj['pi_b']
    pi_c = obj['pi_c']
    return Groth16Proof(
        a=(int(pi_a[0]), int(pi_a[1])),
        b=((int(pi_b[0][0]), int(pi_b[0][1])), (int(pi_b[1][0]), int(pi_b[1][1]))),
        c=(int(pi_c[0]), int(pi_c[1])),
    )


def negate_proof_a(proof: bytes) -> bytes:
    """
    Negate A.y in an already-packed 256-byte proof whose B and C sections
    are in verifier order.
    """
    if len(proof) != PROOF_SIZE:
        raise ProofLengthMismatch(len(proof))
    ay = bytes_to_field(proof[32:64], BN254_BASE_MODULUS)
    return proof[:32] + _fq(negate_fq(ay)) + proof[64:]


def parse_proof(data: bytes) -> ProofBytes:
    if len(data) != PROOF_SIZE:
        raise ProofLengthMismatch(len(data))
    data = bytes(data)
    return ProofBytes(a=data[0:64], b=data[64:192], c=data[192:256])


def serialize_proof(proof: ProofBytes) -> bytes:
    data = proof.a + proof.b + proof.c
    if len(data) != PROOF_SIZE:
        raise ProofLengthMismatch(len(data))
    return data


__all__ = [
    'PROOF_SIZE',
    'Groth16Proof',
    'ProofBytes',
    'negate_fq',
    'format_proof',
    'proof_from_snarkjs',
    'negate_proof_a',
    'parse_proof',
    'serialize_proof',
]
