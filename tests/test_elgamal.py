"""Tests for ElGamal ballots, threshold decryption and DLEQ proofs."""

import pytest

from shielded_core.curve import (
    GENERATOR,
    IDENTITY,
    SUBGROUP_ORDER,
    Point,
    derive_public_key,
    is_in_subgroup,
    is_on_curve,
    point_add,
    scalar_mul,
)
from shielded_core.elgamal import (
    ZERO_CIPHERTEXT,
    DecryptionShare,
    DleqProof,
    VoteOption,
    add_ciphertexts,
    combine_shares,
    compute_decryption_share,
    decrypt_with_key,
    deserialize_ciphertext_full,
    elgamal_encrypt,
    encrypt_vote,
    generate_dleq_proof,
    generate_vote_randomness,
    lagrange_coefficient,
    recover_small_value,
    serialize_ciphertext,
    serialize_ciphertext_full,
    split_secret,
    sum_ciphertexts,
    tally_ballots,
    verify_dleq_proof,
)
from shielded_core.errors import InvalidPoint, ScalarOutOfRange
from shielded_core.field import field_to_bytes
from shielded_core.poseidon import PoseidonHasher

ELECTION_SECRET = 0x5EC12E7
ELECTION_PUBKEY = derive_public_key(ELECTION_SECRET)

# (x, 0) with A*x^2 = 1: on the curve, order 4, outside the prime-order subgroup
ORDER_FOUR = Point(
    18930368022820495955728484915491405972470733850014661777449844430438130630919, 0
)


def _decrypt(ct, max_value: int = 1000):
    return recover_small_value(decrypt_with_key(ct, ELECTION_SECRET), max_value)


class TestEncryption:
    """Exponential ElGamal and its homomorphism."""

    def test_round_trip(self) -> None:
        """Encrypt then decrypt with the full key."""
        ct = elgamal_encrypt(42, ELECTION_PUBKEY, 12345)
        assert ct.c1 == derive_public_key(12345)
        assert _decrypt(ct) == 42

    def test_zero(self) -> None:
        """An encrypted zero decrypts to the identity."""
        ct = elgamal_encrypt(0, ELECTION_PUBKEY, 777)
        assert decrypt_with_key(ct, ELECTION_SECRET) == IDENTITY

    def test_homomorphic_sum(self) -> None:
        """Adding ciphertexts adds plaintexts."""
        a = elgamal_encrypt(5, ELECTION_PUBKEY, 111)
        b = elgamal_encrypt(7, ELECTION_PUBKEY, 222)
        assert _decrypt(add_ciphertexts(a, b)) == 12
        assert a + b == add_ciphertexts(a, b)

    def test_sum_ciphertexts(self) -> None:
        """Summing many ciphertexts, and the empty sum."""
        cts = [elgamal_encrypt(m, ELECTION_PUBKEY, 1000 + m) for m in (1, 2, 3, 4)]
        assert _decrypt(sum_ciphertexts(cts)) == 10
        assert sum_ciphertexts([]) == ZERO_CIPHERTEXT

    def test_negative_message(self) -> None:
        """Negative messages are refused."""
        with pytest.raises(ValueError):
            elgamal_encrypt(-1, ELECTION_PUBKEY, 5)

    def test_randomness_range(self) -> None:
        """Randomness must be in [1, order)."""
        with pytest.raises(ScalarOutOfRange):
            elgamal_encrypt(1, ELECTION_PUBKEY, 0)
        with pytest.raises(ScalarOutOfRange):
            elgamal_encrypt(1, ELECTION_PUBKEY, SUBGROUP_ORDER)


class TestSerialization:

    def test_compact(self) -> None:
        """Compact form keeps only x coordinates."""
        ct = elgamal_encrypt(3, ELECTION_PUBKEY, 99)
        data = serialize_ciphertext(ct)
        assert data == ct.c1.x_bytes + ct.c2.x_bytes

    def test_full_round_trip(self) -> None:
        """Full form decodes back to the same ciphertext."""
        ct = elgamal_encrypt(3, ELECTION_PUBKEY, 99)
        data = serialize_ciphertext_full(ct)
        assert len(data) == 128
        assert deserialize_ciphertext_full(data) == ct

    def test_full_wrong_length(self) -> None:
        """Full form must be 128 bytes."""
        with pytest.raises(ValueError):
            deserialize_ciphertext_full(bytes(64))

    def test_full_off_curve(self) -> None:
        """Full form refuses points off the curve."""
        with pytest.raises(ValueError):
            deserialize_ciphertext_full(field_to_bytes(1) + field_to_bytes(2) + bytes(64))


class TestRecovery:
    """Baby-step giant-step over small totals."""

    @pytest.mark.parametrize("m", [0, 1, 10, 99, 100])
    def test_in_range(self, m: int) -> None:
        """Values up to the bound are found."""
        assert recover_small_value(derive_public_key(m), 100) == m

    def test_out_of_range(self) -> None:
        """Values past the bound give None."""
        assert recover_small_value(derive_public_key(500), 100) is None


class TestBallots:
    """One ciphertext per option, tallied homomorphically."""

    def test_vote_options(self) -> None:
        """Yes, no, abstain."""
        assert [int(o) for o in VoteOption] == [0, 1, 2]

    def test_single_ballot(self) -> None:
        """Only the chosen option carries the voting power."""
        ballot = encrypt_vote(50, VoteOption.NO, ELECTION_PUBKEY, generate_vote_randomness())
        assert len(ballot) == 3
        assert [_decrypt(ct) for ct in ballot] == [0, 50, 0]

    def test_randomness_distinct(self) -> None:
        """Per-option randomness is distinct and in range."""
        values = generate_vote_randomness(5)
        assert len(set(values)) == 5
        assert all(0 < r < SUBGROUP_ORDER for r in values)

    def test_repeated_randomness_rejected(self) -> None:
        """Reusing randomness across options is refused."""
        with pytest.raises(ValueError):
            encrypt_vote(1, VoteOption.YES, ELECTION_PUBKEY, [7, 7, 8])

    def test_choice_out_of_range(self) -> None:
        """A choice past the last option is refused."""
        with pytest.raises(ValueError):
            encrypt_vote(1, 3, ELECTION_PUBKEY, [1, 2, 3])

    def test_tally(self) -> None:
        """Tallying sums each option across ballots."""
        ballots = [
            encrypt_vote(10, VoteOption.YES, ELECTION_PUBKEY, generate_vote_randomness()),
            encrypt_vote(20, VoteOption.NO, ELECTION_PUBKEY, generate_vote_randomness()),
            encrypt_vote(30, VoteOption.YES, ELECTION_PUBKEY, generate_vote_randomness()),
            encrypt_vote(5, VoteOption.ABSTAIN, ELECTION_PUBKEY, generate_vote_randomness()),
        ]
        totals = tally_ballots(ballots)
        assert [_decrypt(ct) for ct in totals] == [40, 20, 5]

    def test_tally_custom_options(self) -> None:
        """Tallies work with more than three options."""
        ballots = [
            encrypt_vote(4, 3, ELECTION_PUBKEY, generate_vote_randomness(5), num_options=5),
            encrypt_vote(6, 3, ELECTION_PUBKEY, generate_vote_randomness(5), num_options=5),
        ]
        totals = tally_ballots(ballots, num_options=5)
        assert [_decrypt(ct) for ct in totals] == [0, 0, 0, 10, 0]

    def test_tally_rejects_mismatched_ballot(self) -> None:
        """A ballot with the wrong option count is refused."""
        ballot = encrypt_vote(1, VoteOption.YES, ELECTION_PUBKEY, generate_vote_randomness())
        with pytest.raises(ValueError):
            tally_ballots([ballot[:2]])


class TestThreshold:
    """t-of-n decryption matches decryption with the full key."""

    SHARES = split_secret(ELECTION_SECRET, 2, 3, coefficients=[0xABCDEF0123])

    def test_shares_indexed_from_one(self) -> None:
        """Member indices start at 1."""
        assert [i for i, _ in self.SHARES] == [1, 2, 3]

    def test_lagrange_recovers_secret(self) -> None:
        """Any qualifying subset interpolates the secret."""
        for subset in ([1, 2], [1, 3], [2, 3], [1, 2, 3]):
            secret = sum(
                lagrange_coefficient(subset, i) * s for i, s in self.SHARES if i in subset
            ) % SUBGROUP_ORDER
            assert secret == ELECTION_SECRET

    def test_lagrange_sum_is_one(self) -> None:
        """Coefficients at zero sum to one."""
        indices = [1, 2, 3]
        assert sum(lagrange_coefficient(indices, i) for i in indices) % SUBGROUP_ORDER == 1

    def test_lagrange_rejects_unknown_index(self) -> None:
        """The index must be in the subset."""
        with pytest.raises(ValueError):
            lagrange_coefficient([1, 2], 3)

    @pytest.mark.parametrize("subset", [[1, 2], [1, 3], [2, 3]])
    def test_combine_matches_direct(self, subset: list) -> None:
        """Combined shares equal decryption with the full key."""
        ct = add_ciphertexts(
            elgamal_encrypt(17, ELECTION_PUBKEY, 31337),
            elgamal_encrypt(25, ELECTION_PUBKEY, 4242),
        )
        shares = [compute_decryption_share(ct, s) for i, s in self.SHARES if i in subset]
        combined = combine_shares(ct, shares, subset)
        assert combined == decrypt_with_key(ct, ELECTION_SECRET)
        assert recover_small_value(combined, 100) == 42

    def test_single_share_insufficient(self) -> None:
        """Below threshold the result is wrong."""
        ct = elgamal_encrypt(9, ELECTION_PUBKEY, 2024)
        share = compute_decryption_share(ct, self.SHARES[0][1])
        assert combine_shares(ct, [share], [1]) != decrypt_with_key(ct, ELECTION_SECRET)

    def test_split_rejects_bad_threshold(self) -> None:
        """Threshold must be in [1, num_shares]."""
        with pytest.raises(ValueError):
            split_secret(1, 4, 3)
        with pytest.raises(ValueError):
            split_secret(1, 0, 3)

    def test_split_random_coefficients(self) -> None:
        """Random polynomials still interpolate the secret."""
        shares = split_secret(ELECTION_SECRET, 3, 5)
        subset = [2, 4, 5]
        secret = sum(
            lagrange_coefficient(subset, i) * s for i, s in shares if i in subset
        ) % SUBGROUP_ORDER
        assert secret == ELECTION_SECRET


class TestDleq:
    """Decryption shares carry a proof of correct computation."""

    KEY_SHARE = 0x1234ABCD

    @pytest.fixture(scope="class")
    def ct(self):
        return elgamal_encrypt(3, ELECTION_PUBKEY, 5150)

    def test_valid_proof(self, hasher: PoseidonHasher, ct) -> None:
        """An honest proof verifies."""
        pk = derive_public_key(self.KEY_SHARE)
        share = compute_decryption_share(ct, self.KEY_SHARE)
        proof = generate_dleq_proof(hasher, self.KEY_SHARE, pk, ct.c1, share)
        assert len(proof.c) == 32 and len(proof.s) == 32
        assert verify_dleq_proof(hasher, proof, pk, ct.c1, share)

    def test_wrong_share_rejected(self, hasher: PoseidonHasher, ct) -> None:
        """A different share fails."""
        pk = derive_public_key(self.KEY_SHARE)
        share = compute_decryption_share(ct, self.KEY_SHARE)
        proof = generate_dleq_proof(hasher, self.KEY_SHARE, pk, ct.c1, share)
        forged = point_add(share, GENERATOR)
        assert not verify_dleq_proof(hasher, proof, pk, ct.c1, forged)

    def test_wrong_public_key_rejected(self, hasher: PoseidonHasher, ct) -> None:
        """A different public key share fails."""
        pk = derive_public_key(self.KEY_SHARE)
        share = compute_decryption_share(ct, self.KEY_SHARE)
        proof = generate_dleq_proof(hasher, self.KEY_SHARE, pk, ct.c1, share)
        assert not verify_dleq_proof(hasher, proof, derive_public_key(1), ct.c1, share)

    def test_share_with_wrong_key_rejected(self, hasher: PoseidonHasher, ct) -> None:
        """A share computed with another key fails."""
        pk = derive_public_key(self.KEY_SHARE)
        share = compute_decryption_share(ct, self.KEY_SHARE + 1)
        proof = generate_dleq_proof(hasher, self.KEY_SHARE, pk, ct.c1, share)
        assert not verify_dleq_proof(hasher, proof, pk, ct.c1, share)

    def test_tampered_response_rejected(self, hasher: PoseidonHasher, ct) -> None:
        """Changing s breaks the proof."""
        pk = derive_public_key(self.KEY_SHARE)
        share = compute_decryption_share(ct, self.KEY_SHARE)
        proof = generate_dleq_proof(hasher, self.KEY_SHARE, pk, ct.c1, share)
        s = int.from_bytes(proof.s, "big")
        tampered = DleqProof(proof.c, field_to_bytes(s + 1))
        assert not verify_dleq_proof(hasher, tampered, pk, ct.c1, share)

    def test_decryption_share_bundle(self, hasher: PoseidonHasher, ct) -> None:
        """DecryptionShare creates and verifies its own proof."""
        published = DecryptionShare.create(hasher, 2, self.KEY_SHARE, ct)
        assert published.member_index == 2
        assert published.share == compute_decryption_share(ct, self.KEY_SHARE)
        assert published.verify(hasher, derive_public_key(self.KEY_SHARE), ct)
        assert not published.verify(hasher, derive_public_key(self.KEY_SHARE + 1), ct)


class TestSmallOrderShares:
    """Shares shifted by a low-order point never pass as valid."""

    SHARES = TestThreshold.SHARES

    @pytest.fixture(scope="class")
    def ct(self):
        return elgamal_encrypt(6, ELECTION_PUBKEY, 8080)

    def test_order_four_point(self) -> None:
        """The torsion point is on the curve but outside the subgroup."""
        assert is_on_curve(ORDER_FOUR)
        assert not is_in_subgroup(ORDER_FOUR)
        twice = point_add(ORDER_FOUR, ORDER_FOUR)
        assert twice != IDENTITY
        assert point_add(twice, twice) == IDENTITY

    @pytest.mark.parametrize("nonce", range(1, 9))
    def test_proof_over_shifted_share_rejected(self, hasher: PoseidonHasher, ct,
                                               nonce: int) -> None:
        """No nonce makes a proof over share + ORDER_FOUR verify."""
        key_share = self.SHARES[0][1]
        pk = derive_public_key(key_share)
        shifted = point_add(compute_decryption_share(ct, key_share), ORDER_FOUR)
        proof = generate_dleq_proof(hasher, key_share, pk, ct.c1, shifted, nonce=nonce)
        assert not verify_dleq_proof(hasher, proof, pk, ct.c1, shifted)

    def test_published_shifted_share_rejected(self, hasher: PoseidonHasher, ct) -> None:
        """A published share bundle carrying a shifted share fails verification."""
        key_share = self.SHARES[0][1]
        pk = derive_public_key(key_share)
        shifted = point_add(compute_decryption_share(ct, key_share), ORDER_FOUR)
        proof = generate_dleq_proof(hasher, key_share, pk, ct.c1, shifted)
        assert not DecryptionShare(1, shifted, proof).verify(hasher, pk, ct)

    def test_small_order_ciphertext_rejected(self, hasher: PoseidonHasher, ct) -> None:
        """c1 outside the subgroup fails verification even with an honest share."""
        key_share = self.SHARES[0][1]
        pk = derive_public_key(key_share)
        c1 = point_add(ct.c1, ORDER_FOUR)
        share = scalar_mul(c1, key_share)
        proof = generate_dleq_proof(hasher, key_share, pk, c1, share)
        assert not verify_dleq_proof(hasher, proof, pk, c1, share)

    def test_combine_rejects_shifted_share(self, ct) -> None:
        """Combining refuses a share outside the subgroup."""
        good = compute_decryption_share(ct, self.SHARES[1][1])
        bad = point_add(compute_decryption_share(ct, self.SHARES[0][1]), ORDER_FOUR)
        with pytest.raises(InvalidPoint, match="member 1"):
            combine_shares(ct, [bad, good], [1, 2])

    def test_combine_rejects_off_curve_share(self, ct) -> None:
        """Combining refuses a share that is not a curve point."""
        good = compute_decryption_share(ct, self.SHARES[1][1])
        with pytest.raises(InvalidPoint, match="member 1"):
            combine_shares(ct, [Point(1, 2), good], [1, 2])
