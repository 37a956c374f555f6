"""
Note shapes and their fixed-width plaintext encodings.

Three shapes share one commitment scheme:

- standard: stealth pubkey x, token, amount, randomness (104 bytes, no tag)
- position: perps position, tagged 0x80 (123 bytes)
- lp: perps liquidity, tagged 0x81 (105 bytes)

A standard note carries no tag byte. Its first byte is the high byte of a
reduced field element and is therefore always below 0x31, so it can never
be confused with a position or LP tag.
"""

import struct
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union

from .errors import MalformedNote
from .field import BN254_SCALAR_MODULUS, FIELD_ELEMENT_SIZE, random_field_bytes

U64_MAX = (1 << 64) - 1


class NoteType(IntEnum):
    STANDARD = 0x00
    POSITION = 0x80
    LP = 0x81


class IdentifierKind(Enum):
    TOKEN = 'token'
    MARKET = 'market'
    POOL = 'pool'


@dataclass(frozen=True)
class Identifier:
    """
    32-byte token, market or pool id.

    Richer representations (account objects, base58 strings) are converted
    to this form before they reach the core.
    """
    kind: IdentifierKind
    value: bytes

    def __post_init__(self):
        if len(self.value) != FIELD_ELEMENT_SIZE:
            raise ValueError(f"{self.kind.value} id must be 32 bytes, got {len(self.value)}")
        object.__setattr__(self, 'value', bytes(self.value))

    @classmethod
    def token(cls, value: bytes) -> "Identifier":
        return cls(IdentifierKind.TOKEN, value)

    @classmethod
    def market(cls, value: bytes) -> "Identifier":
        return cls(IdentifierKind.MARKET, value)

    @classmethod
    def pool(cls, value: bytes) -> "Identifier":
        return cls(IdentifierKind.POOL, value)

    def __bytes__(self) -> bytes:
        return self.value


def _check_field(name: str, value: bytes) -> bytes:
    """32 bytes holding a canonical scalar field element."""
    if len(value) != FIELD_ELEMENT_SIZE:
        raise ValueError(f"{name} must be 32 bytes, got {len(value)}")
    if int.from_bytes(value, "big") >= BN254_SCALAR_MODULUS:
        raise MalformedNote(f"{name} is not a reduced field element")
    return bytes(value)


def _check_u64(name: str, value: int) -> int:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"{name} must fit in u64, got {value}")
    return value


@dataclass(frozen=True)
class Note:
    stealth_pub_x: bytes
    token: Identifier
    amount: int
    randomness: bytes

    note_type = NoteType.STANDARD
    SIZE = 104

    def __post_init__(self):
        object.__setattr__(self, 'stealth_pub_x', _check_field('stealth_pub_x', self.stealth_pub_x))
        object.__setattr__(self, 'randomness', _check_field('randomness', self.randomness))
        _check_u64('amount', self.amount)


@dataclass(frozen=True)
class PositionNote:
    stealth_pub_x: bytes
    market_id: Identifier
    is_long: bool
    margin: int
    size: int
    leverage: int
    entry_price: int
    randomness: bytes

    note_type = NoteType.POSITION
    SIZE = 123

    def __post_init__(self):
        object.__setattr__(self, 'stealth_pub_x', _check_field('stealth_pub_x', self.stealth_pub_x))
        object.__setattr__(self, 'randomness', _check_field('randomness', self.randomness))
        _check_u64('margin', self.margin)
        _check_u64('size', self.size)
        _check_u64('entry_price', self.entry_price)
        if not 0 <= self.leverage <= 0xFF:
            raise ValueError(f"leverage must fit in u8, got {self.leverage}")


@dataclass(frozen=True)
class LpNote:
    stealth_pub_x: bytes
    pool_id: Identifier
    lp_amount: int
    randomness: bytes

    note_type = NoteType.LP
    SIZE = 105

    def __post_init__(self):
        object.__setattr__(self, 'stealth_pub_x', _check_field('stealth_pub_x', self.stealth_pub_x))
        object.__setattr__(self, 'randomness', _check_field('randomness', self.randomness))
        _check_u64('lp_amount', self.lp_amount)


AnyNote = Union[Note, PositionNote, LpNote]


# --- Construction ---

def generate_randomness() -> bytes:
    """Fresh commitment randomness, reduced into the scalar field."""
    return random_field_bytes()


def create_note(stealth_pub_x: bytes, token: Identifier, amount: int,
                randomness: Optional[bytes] = None) -> Note:
    return Note(stealth_pub_x, token, amount, randomness or generate_randomness())


def create_position_note(stealth_pub_x: bytes, market_id: Identifier, is_long: bool,
                         margin: int, size: int, leverage: int, entry_price: int,
                         randomness: Optional[bytes] = None) -> PositionNote:
    return PositionNote(stealth_pub_x, market_id, is_long, margin, size, leverage,
                        entry_price, randomness or generate_randomness())


def create_lp_note(stealth_pub_x: bytes, pool_id: Identifier, lp_amount: int,
                   randomness: Optional[bytes] = None) -> LpNote:
    return LpNote(stealth_pub_x, pool_id, lp_amount, randomness or generate_randomness())


# --- Serialization ---

def detect_note_type(data: bytes) -> NoteType:
    """Read the leading discriminator; anything else is a standard note."""
    if data and data[0] == NoteType.POSITION:
        return NoteType.POSITION
    if data and data[0] == NoteType.LP:
        return NoteType.LP
    return NoteType.STANDARD


def serialize_note(note: AnyNote) -> bytes:
    """
    Fixed-width plaintext encoding. Integers are little-endian.
    """
    if isinstance(note, Note):
        return (note.stealth_pub_x + note.token.value
                + struct.pack('<Q', note.amount) + note.randomness)
    if isinstance(note, PositionNote):
        return (bytes([NoteType.POSITION]) + note.stealth_pub_x + note.market_id.value
                + struct.pack('<BQQBQ', int(note.is_long), note.margin, note.size,
                              note.leverage, note.entry_price)
                + note.randomness)
    if isinstance(note, LpNote):
        return (bytes([NoteType.LP]) + note.stealth_pub_x + note.pool_id.value
                + struct.pack('<Q', note.lp_amount) + note.randomness)
    raise TypeError(f"Unsupported note type: {type(note).__name__}")


def _expect_size(data: bytes, size: int, name: str) -> None:
    if len(data) != size:
        raise MalformedNote(f"{name} note must be {size} bytes, got {len(data)}")


def deserialize_note(data: bytes) -> AnyNote:
    """
    Decode a plaintext produced by serialize_note().

    Raises:
        MalformedNote: Wrong length for the detected shape, or a standard
            note whose first byte is not a valid field-element high byte
    """
    data = bytes(data)
    note_type = detect_note_type(data)

    if note_type == NoteType.POSITION:
        _expect_size(data, PositionNote.SIZE, 'position')
        is_long, margin, size, leverage, entry_price = struct.unpack_from('<BQQBQ', data, 65)
        return PositionNote(
            stealth_pub_x=data[1:33],
            market_id=Identifier.market(data[33:65]),
            is_long=is_long != 0,
            margin=margin,
            size=size,
            leverage=leverage,
            entry_price=entry_price,
            randomness=data[91:123],
        )

    if note_type == NoteType.LP:
        _expect_size(data, LpNote.SIZE, 'lp')
        (lp_amount,) = struct.unpack_from('<Q', data, 65)
        return LpNote(
            stealth_pub_x=data[1:33],
            pool_id=Identifier.pool(data[33:65]),
            lp_amount=lp_amount,
            randomness=data[73:105],
        )

    _expect_size(data, Note.SIZE, 'standard')
    if data[0] >= 0x31:
        raise MalformedNote(f"unexpected note discriminator 0x{data[0]:02x}")
    (amount,) = struct.unpack_from('<Q', data, 64)
    return Note(
        stealth_pub_x=data[0:32],
        token=Identifier.token(data[32:64]),
        amount=amount,
        randomness=data[72:104],
    )


__all__ = [
    'NoteType',
    'IdentifierKind',
    'Identifier',
    'Note',
    'PositionNote',
    'LpNote',
    'AnyNote',
    'generate_randomness',
    'create_note',
    'create_position_note',
    'create_lp_note',
    'detect_note_type',
    'serialize_note',
    'deserialize_note',
]
