"""
Hybrid note encryption.

ECDH on BabyJubJub agrees a shared point, SHA-256 turns its x-coordinate
into a symmetric key, and a SHA-256 keystream encrypts the fixed-width note
plaintext:

    key      = SHA256("cloakcraft-ecies-key" || S.x)
    block 0  = SHA256(key || nonce)
    block k  = SHA256(key || nonce || be16(32 * k))      k >= 1
    tag      = SHA256(key || nonce || encrypted)[0:16]

Wire format (recipients scan these):

    eph.x (32) | eph.y (32) | le32 len | nonce (12) || encrypted | tag (16)

where len counts the nonce and the encrypted bytes together.
"""

import hashlib
import hmac
import secrets
import struct
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from structlog import get_logger

from .curve import SUBGROUP_ORDER, Point, derive_public_key, scalar_mul, validate_point
from .errors import AuthenticationFailure, MalformedNote, ScalarOutOfRange, ShieldedCoreError
from .field import random_scalar
from .note import AnyNote, Note, deserialize_note, serialize_note

logger = get_logger()

KDF_LABEL = b"cloakcraft-ecies-key"
NONCE_SIZE = 12
TAG_SIZE = 16
BLOCK_SIZE = 32
HEADER_SIZE = 32 + 32 + 4
MIN_ENCRYPTED_NOTE_SIZE = HEADER_SIZE + TAG_SIZE


@dataclass(frozen=True)
class EncryptedNote:
    """
    Attributes:
        ephemeral_pubkey: Sender's one-time public key E
        ciphertext: nonce || encrypted plaintext
        tag: 16-byte truncated SHA-256 authenticator
    """
    ephemeral_pubkey: Point
    ciphertext: bytes
    tag: bytes

    @property
    def nonce(self) -> bytes:
        return self.ciphertext[:NONCE_SIZE]

    @property
    def encrypted(self) -> bytes:
        return self.ciphertext[NONCE_SIZE:]


def derive_encryption_key(shared_secret: Point) -> bytes:
    return hashlib.sha256(KDF_LABEL + shared_secret.x_bytes).digest()


def _keystream_xor(key: bytes, nonce: bytes, data: bytes) -> bytes:
    out = bytearray(len(data))
    for offset in range(0, len(data), BLOCK_SIZE):
        if offset == 0:
            block = hashlib.sha256(key + nonce).digest()
        else:
            block = hashlib.sha256(key + nonce + struct.pack('>H', offset)).digest()
        chunk = data[offset:offset + BLOCK_SIZE]
        out[offset:offset + len(chunk)] = bytes(a ^ b for a, b in zip(chunk, block))
    return bytes(out)


def _compute_tag(key: bytes, nonce: bytes, encrypted: bytes) -> bytes:
    return hashlib.sha256(key + nonce + encrypted).digest()[:TAG_SIZE]


def encrypt_note(note: AnyNote, recipient_pubkey: Point, *,
                 ephemeral_private: Optional[int] = None,
                 nonce: Optional[bytes] = None) -> EncryptedNote:
    """
    Encrypt any note shape to `recipient_pubkey`.

    Args:
        note: Standard, position or LP note
        recipient_pubkey: Recipient's viewing public key
        ephemeral_private: Fixed ephemeral scalar, known-answer tests only
        nonce: Fixed 12-byte nonce, known-answer tests only

    Returns:
        EncryptedNote ready for serialize_encrypted_note()
    """
    validate_point(recipient_pubkey)
    if ephemeral_private is None:
        ephemeral_private = random_scalar(SUBGROUP_ORDER)
    elif not 0 < ephemeral_private < SUBGROUP_ORDER:
        raise ScalarOutOfRange("ephemeral scalar must be in [1, order)")
    if nonce is None:
        nonce = secrets.token_bytes(NONCE_SIZE)
    elif len(nonce) != NONCE_SIZE:
        raise ValueError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")

    ephemeral_pubkey = derive_public_key(ephemeral_private)
    key = derive_encryption_key(scalar_mul(recipient_pubkey, ephemeral_private))

    encrypted = _keystream_xor(key, nonce, serialize_note(note))
    tag = _compute_tag(key, nonce, encrypted)
    return EncryptedNote(ephemeral_pubkey, nonce + encrypted, tag)


def decrypt_note(encrypted: EncryptedNote, recipient_private_key: int) -> AnyNote:
    """
    Open an encrypted note with the recipient's private key.

    Raises:
        InvalidPoint: Ephemeral key is not a valid subgroup point
        AuthenticationFailure: Tag mismatch, the record is for someone else
            or was tampered with
        MalformedNote: Tag matched but the plaintext does not decode
    """
    if len(encrypted.ciphertext) < NONCE_SIZE:
        raise MalformedNote("ciphertext shorter than its nonce")
    validate_point(encrypted.ephemeral_pubkey)

    key = derive_encryption_key(scalar_mul(encrypted.ephemeral_pubkey, recipient_private_key))
    expected = _compute_tag(key, encrypted.nonce, encrypted.encrypted)
    if not hmac.compare_digest(expected, encrypted.tag):
        raise AuthenticationFailure("note tag mismatch")

    return deserialize_note(_keystream_xor(key, encrypted.nonce, encrypted.encrypted))


def try_decrypt_any_note(encrypted: EncryptedNote, recipient_private_key: int) -> Optional[AnyNote]:
    """decrypt_note() that reports every data failure as None."""
    try:
        return decrypt_note(encrypted, recipient_private_key)
    except (ShieldedCoreError, ValueError) as e:
        logger.debug('note decryption miss', reason=type(e).__name__)
        return None


def try_decrypt_note(encrypted: EncryptedNote, recipient_private_key: int) -> Optional[Note]:
    """Like try_decrypt_any_note() but only matches standard notes."""
    note = try_decrypt_any_note(encrypted, recipient_private_key)
    if note is not None and not isinstance(note, Note):
        return None
    return note


def serialize_encrypted_note(encrypted: EncryptedNote) -> bytes:
    return (encrypted.ephemeral_pubkey.to_bytes()
            + struct.pack('<I', len(encrypted.ciphertext))
            + encrypted.ciphertext
            + encrypted.tag)


def deserialize_encrypted_note(data: bytes) -> Optional[EncryptedNote]:
    """
    Parse the wire format. Returns None for truncated input. Bytes past the
    tag are ignored, since on-chain records may be padded.
    """
    data = bytes(data)
    if len(data) < MIN_ENCRYPTED_NOTE_SIZE:
        return None
    (length,) = struct.unpack_from('<I', data, 64)
    end = HEADER_SIZE + length
    if len(data) < end + TAG_SIZE:
        return None
    return EncryptedNote(
        ephemeral_pubkey=Point.from_bytes(data[:64]),
        ciphertext=data[HEADER_SIZE:end],
        tag=data[end:end + TAG_SIZE],
    )


def scan_notes(records: Iterable[bytes], recipient_private_key: int
               ) -> Iterator[Tuple[int, AnyNote]]:
    """
    Try one key against many serialized records.

    Yields:
        (record index, note) for every record that opens
    """
    scanned = 0
    matched = 0
    for index, record in enumerate(records):
        scanned += 1
        encrypted = deserialize_encrypted_note(record)
        if encrypted is None:
            logger.debug('truncated note record', index=index)
            continue
        note = try_decrypt_any_note(encrypted, recipient_private_key)
        if note is not None:
            matched += 1
            yield index, note
    logger.debug('note scan finished', scanned=scanned, matched=matched)


__all__ = [
    'EncryptedNote',
    'KDF_LABEL',
    'NONCE_SIZE',
    'TAG_SIZE',
    'MIN_ENCRYPTED_NOTE_SIZE',
    'derive_encryption_key',
    'encrypt_note',
    'decrypt_note',
    'try_decrypt_note',
    'try_decrypt_any_note',
    'serialize_encrypted_note',
    'deserialize_encrypted_note',
    'scan_notes',
]
