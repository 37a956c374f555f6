"""Unit tests for BN254 field helpers."""

import pytest

from shielded_core.errors import ModularInverseUndefined
from shielded_core.field import (
    BN254_BASE_MODULUS,
    BN254_SCALAR_MODULUS,
    Fq,
    Fr,
    bytes_to_field,
    field_to_bytes,
    mod_inverse,
    pow_mod,
    random_field_bytes,
    random_scalar,
)

R = BN254_SCALAR_MODULUS
Q = BN254_BASE_MODULUS


class TestModuli:
    """The two moduli are distinct and match galois."""

    def test_moduli_differ(self) -> None:
        """Scalar and base moduli are distinct."""
        assert R != Q
        assert R < Q

    def test_galois_orders(self) -> None:
        """The galois fields have the BN254 orders."""
        assert Fr.order == R
        assert Fq.order == Q

    def test_galois_arithmetic_matches_ints(self) -> None:
        """galois arithmetic agrees with integer arithmetic mod r."""
        a, b = R - 3, 123456789
        assert int(Fr(a) * Fr(b)) == a * b % R
        assert int(Fq(a) + Fq(Q - 1)) == (a + Q - 1) % Q


class TestConversions:
    """Big-endian bytes <-> reduced field values."""

    def test_round_trip(self) -> None:
        """bytes_to_field inverts field_to_bytes."""
        value = 0x0123456789ABCDEF
        assert bytes_to_field(field_to_bytes(value)) == value

    def test_bytes_are_reduced(self) -> None:
        """Oversized values reduce mod r."""
        raw = (R + 5).to_bytes(32, "big")
        assert bytes_to_field(raw) == 5

    def test_reduction_uses_given_modulus(self) -> None:
        """An explicit modulus overrides r."""
        raw = (R + 5).to_bytes(32, "big")
        assert bytes_to_field(raw, Q) == R + 5

    def test_field_to_bytes_is_32_bytes(self) -> None:
        """Output is left-padded to 32 bytes."""
        assert field_to_bytes(1) == bytes(31) + b"\x01"
        assert len(field_to_bytes(R - 1)) == 32

    def test_negative_maps_to_canonical(self) -> None:
        """Negative ints encode as their residue."""
        assert field_to_bytes(-1) == field_to_bytes(R - 1)


class TestInverse:
    """Extended Euclid inverse."""

    @pytest.mark.parametrize("a", [1, 2, 12345, R - 1])
    def test_inverse_scalar_field(self, a: int) -> None:
        """a * a^-1 == 1 mod r."""
        assert a * mod_inverse(a, R) % R == 1

    def test_inverse_base_field(self) -> None:
        """Inverses work mod q too."""
        assert 7 * mod_inverse(7, Q) % Q == 1

    def test_matches_galois(self) -> None:
        """Agrees with the galois inverse."""
        assert mod_inverse(987654321, R) == int(Fr(987654321) ** -1)

    def test_zero_has_no_inverse(self) -> None:
        """Zero has no inverse."""
        with pytest.raises(ModularInverseUndefined):
            mod_inverse(0, R)

    def test_non_coprime(self) -> None:
        """Non-coprime inputs raise ArithmeticError."""
        with pytest.raises(ArithmeticError):
            mod_inverse(6, 9)


class TestRandomness:
    """CSPRNG helpers stay in range."""

    def test_pow_mod(self) -> None:
        """Modular exponentiation."""
        assert pow_mod(3, 4) == 81
        assert pow_mod(2, R - 1) == 1

    def test_random_field_bytes_reduced(self) -> None:
        """Random field bytes are below r."""
        for _ in range(20):
            assert int.from_bytes(random_field_bytes(), "big") < R

    def test_random_scalar_nonzero(self) -> None:
        """Random scalars are never zero."""
        for _ in range(20):
            assert 1 <= random_scalar(7) < 7
