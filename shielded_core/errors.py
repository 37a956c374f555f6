"""
Exception types raised by the shielded core.

Input validation errors derive from ValueError so callers that already
guard against bad input keep working. Scanning code paths catch
ShieldedCoreError and ValueError and turn them into "no match".
"""


class ShieldedCoreError(Exception):
    """Base class for all shielded core errors."""


class InvalidKeyLength(ShieldedCoreError, ValueError):
    """A key or seed is not exactly 32 bytes."""

    def __init__(self, length: int, expected: int = 32):
        super().__init__(f"key must be {expected} bytes, got {length}")
        self.length = length
        self.expected = expected


class ScalarOutOfRange(ShieldedCoreError, ValueError):
    """A strict scalar is not below the subgroup order."""


class InvalidPoint(ShieldedCoreError, ValueError):
    """A point is off the curve or outside the prime-order subgroup."""


class HashNotInitialized(ShieldedCoreError, RuntimeError):
    """The Poseidon hasher was used before init_hasher() completed."""


class AuthenticationFailure(ShieldedCoreError):
    """An encrypted note tag did not match."""


class MalformedNote(ShieldedCoreError, ValueError):
    """A plaintext or wire-format note could not be decoded."""


class ProofLengthMismatch(ShieldedCoreError, ValueError):
    """A packed Groth16 proof is not exactly 256 bytes."""

    def __init__(self, length: int):
        super().__init__(f"Invalid proof length: {length}, expected 256")
        self.length = length


class ModularInverseUndefined(ShieldedCoreError, ArithmeticError):
    """gcd(a, m) != 1, so a has no inverse modulo m."""
