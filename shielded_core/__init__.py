"""
Shielded Core

Python implementation of the cryptographic core of a shielded-value
protocol over BN254 and BabyJubJub.

This package provides:
- BN254 scalar/base field arithmetic (via galois)
- Domain-separated Poseidon hashing
- BabyJubJub curve arithmetic
- Note commitments and nullifiers (standard, position and LP notes)
- Stealth addresses
- Hybrid note encryption and scanning
- ElGamal ballots with threshold decryption and DLEQ proofs
- Groth16 proof byte encoding

Usage:
    from shielded_core import init_hasher, SpendingKeypair, create_note

    hasher = init_hasher()
    keypair = SpendingKeypair.generate(hasher)
    address, _ = generate_stealth_address(hasher, keypair.public_key)
    note = create_note(address.stealth_pubkey.x_bytes, Identifier.token(mint), 1000)
    commitment = compute_commitment(hasher, note)
"""

# Errors
from .errors import (
    ShieldedCoreError,
    InvalidKeyLength,
    ScalarOutOfRange,
    InvalidPoint,
    HashNotInitialized,
    AuthenticationFailure,
    MalformedNote,
    ProofLengthMismatch,
    ModularInverseUndefined,
)

# Field arithmetic (via galois)
from .field import (
    Fr,
    Fq,
    BN254_SCALAR_MODULUS,
    BN254_BASE_MODULUS,
    bytes_to_field,
    field_to_bytes,
    mod_inverse,
    pow_mod,
)

# Hashing
from .poseidon import (
    HashConfig,
    PoseidonHasher,
    init_hasher,
    get_hasher,
    reset_hasher,
    DOMAIN_COMMITMENT,
    DOMAIN_SPENDING_NULLIFIER,
    DOMAIN_ACTION_NULLIFIER,
    DOMAIN_NULLIFIER_KEY,
    DOMAIN_STEALTH,
    DOMAIN_MERKLE,
    DOMAIN_EMPTY_LEAF,
    DOMAIN_POSITION_COMMITMENT,
    DOMAIN_LP_COMMITMENT,
)

# Curve
from .curve import (
    Point,
    GENERATOR,
    IDENTITY,
    SUBGROUP_ORDER,
    point_add,
    point_negate,
    scalar_mul,
    derive_public_key,
    is_on_curve,
    is_in_subgroup,
    validate_point,
)

# Keys
from .keys import SpendingKeypair, ViewingKey

# Notes, commitments, nullifiers
from .note import (
    NoteType,
    Identifier,
    Note,
    PositionNote,
    LpNote,
    create_note,
    create_position_note,
    create_lp_note,
    serialize_note,
    deserialize_note,
)
from .commitment import compute_commitment, verify_commitment
from .nullifier import (
    derive_nullifier_key,
    derive_spending_nullifier,
    derive_action_nullifier,
)

# Stealth addresses
from .stealth import (
    StealthAddress,
    generate_stealth_address,
    derive_stealth_private_key,
    check_stealth_ownership,
)

# Note encryption
from .encryption import (
    EncryptedNote,
    encrypt_note,
    decrypt_note,
    try_decrypt_note,
    try_decrypt_any_note,
    serialize_encrypted_note,
    deserialize_encrypted_note,
    scan_notes,
)

# ElGamal and threshold decryption
from .elgamal import (
    ElGamalCiphertext,
    VoteOption,
    elgamal_encrypt,
    add_ciphertexts,
    encrypt_vote,
    tally_ballots,
    combine_shares,
    lagrange_coefficient,
    DleqProof,
    DecryptionShare,
    generate_dleq_proof,
    verify_dleq_proof,
    recover_small_value,
)

# Proof encoding
from .groth16 import (
    Groth16Proof,
    ProofBytes,
    format_proof,
    proof_from_snarkjs,
    parse_proof,
    serialize_proof,
)

__version__ = "0.1.0"
__all__ = [
    # Errors
    "ShieldedCoreError",
    "InvalidKeyLength",
    "ScalarOutOfRange",
    "InvalidPoint",
    "HashNotInitialized",
    "AuthenticationFailure",
    "MalformedNote",
    "ProofLengthMismatch",
    "ModularInverseUndefined",
    # Field
    "Fr",
    "Fq",
    "BN254_SCALAR_MODULUS",
    "BN254_BASE_MODULUS",
    "bytes_to_field",
    "field_to_bytes",
    "mod_inverse",
    "pow_mod",
    # Hash
    "HashConfig",
    "PoseidonHasher",
    "init_hasher",
    "get_hasher",
    "reset_hasher",
    "DOMAIN_COMMITMENT",
    "DOMAIN_SPENDING_NULLIFIER",
    "DOMAIN_ACTION_NULLIFIER",
    "DOMAIN_NULLIFIER_KEY",
    "DOMAIN_STEALTH",
    "DOMAIN_MERKLE",
    "DOMAIN_EMPTY_LEAF",
    "DOMAIN_POSITION_COMMITMENT",
    "DOMAIN_LP_COMMITMENT",
    # Curve
    "Point",
    "GENERATOR",
    "IDENTITY",
    "SUBGROUP_ORDER",
    "point_add",
    "point_negate",
    "scalar_mul",
    "derive_public_key",
    "is_on_curve",
    "is_in_subgroup",
    "validate_point",
    # Keys
    "SpendingKeypair",
    "ViewingKey",
    # Notes
    "NoteType",
    "Identifier",
    "Note",
    "PositionNote",
    "LpNote",
    "create_note",
    "create_position_note",
    "create_lp_note",
    "serialize_note",
    "deserialize_note",
    "compute_commitment",
    "verify_commitment",
    "derive_nullifier_key",
    "derive_spending_nullifier",
    "derive_action_nullifier",
    # Stealth
    "StealthAddress",
    "generate_stealth_address",
    "derive_stealth_private_key",
    "check_stealth_ownership",
    # Encryption
    "EncryptedNote",
    "encrypt_note",
    "decrypt_note",
    "try_decrypt_note",
    "try_decrypt_any_note",
    "serialize_encrypted_note",
    "deserialize_encrypted_note",
    "scan_notes",
    # ElGamal
    "ElGamalCiphertext",
    "VoteOption",
    "elgamal_encrypt",
    "add_ciphertexts",
    "encrypt_vote",
    "tally_ballots",
    "combine_shares",
    "lagrange_coefficient",
    "DleqProof",
    "DecryptionShare",
    "generate_dleq_proof",
    "verify_dleq_proof",
    "recover_small_value",
    # Proofs
    "Groth16Proof",
    "ProofBytes",
    "format_proof",
    "proof_from_snarkjs",
    "parse_proof",
    "serialize_proof",
]
