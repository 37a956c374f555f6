"""
BabyJubJub twisted Edwards curve over the BN254 scalar field.

    a*x^2 + y^2 = 1 + d*x^2*y^2

All coordinates are kept as canonical ints in [0, r). Scalars are reduced
modulo the prime subgroup order before multiplication.
"""

from dataclasses import dataclass

from .errors import InvalidPoint
from .field import BN254_SCALAR_MODULUS, bytes_to_field, field_to_bytes, mod_inverse

P = BN254_SCALAR_MODULUS

A = 168700
D = 168696

SUBGROUP_ORDER = 2736030358979909402780800718157159386076813972158567259200215660948447373041
COFACTOR = 8


@dataclass(frozen=True)
class Point:
    """
    Affine curve point with reduced coordinates.
    """
    x: int
    y: int

    def __post_init__(self):
        object.__setattr__(self, 'x', self.x % P)
        object.__setattr__(self, 'y', self.y % P)

    @property
    def x_bytes(self) -> bytes:
        return field_to_bytes(self.x)

    @property
    def y_bytes(self) -> bytes:
        return field_to_bytes(self.y)

    def to_bytes(self) -> bytes:
        """x || y, 32 bytes each, big-endian."""
        return self.x_bytes + self.y_bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "Point":
        if len(data) != 64:
            raise InvalidPoint(f"point encoding must be 64 bytes, got {len(data)}")
        return cls(bytes_to_field(data[:32]), bytes_to_field(data[32:]))

    @classmethod
    def from_coordinates(cls, x: bytes, y: bytes) -> "Point":
        return cls(bytes_to_field(x), bytes_to_field(y))

    def __add__(self, other: "Point") -> "Point":
        return point_add(self, other)

    def __neg__(self) -> "Point":
        return point_negate(self)

    def __sub__(self, other: "Point") -> "Point":
        return point_add(self, point_negate(other))

    def __mul__(self, scalar: int) -> "Point":
        return scalar_mul(self, scalar)

    __rmul__ = __mul__


GENERATOR = Point(
    5299619240641551281634865583518297030282874472190772894086521144482721001553,
    16950150798460657717958625567821834550301663161624707787222815936182638968203,
)

IDENTITY = Point(0, 1)


def point_add(p1: Point, p2: Point) -> Point:
    """
    (x1, y1) + (x2, y2) = ((x1*y2 + y1*x2) / (1 + d*x1*x2*y1*y2),
                           (y1*y2 - a*x1*x2) / (1 - d*x1*x2*y1*y2))
    """
    x1, y1 = p1.x, p1.y
    x2, y2 = p2.x, p2.y

    x1x2 = x1 * x2 % P
    y1y2 = y1 * y2 % P
    dxy = D * x1x2 * y1y2 % P

    x_num = (x1 * y2 + y1 * x2) % P
    y_num = (y1y2 - A * x1x2) % P
    x_den = (1 + dxy) % P
    y_den = (1 - dxy) % P

    return Point(
        x_num * mod_inverse(x_den, P) % P,
        y_num * mod_inverse(y_den, P) % P,
    )


def point_negate(p: Point) -> Point:
    """-(x, y) = (-x, y)."""
    return Point(-p.x % P, p.y)


def point_sub(p1: Point, p2: Point) -> Point:
    return point_add(p1, point_negate(p2))


def _double_and_add(point: Point, k: int) -> Point:
    result = IDENTITY
    temp = point
    while k > 0:
        if k & 1:
            result = point_add(result, temp)
        temp = point_add(temp, temp)
        k >>= 1
    return result


def scalar_mul(point: Point, scalar: int) -> Point:
    """Binary double-and-add with the scalar reduced mod the subgroup order."""
    return _double_and_add(point, scalar % SUBGROUP_ORDER)


def derive_public_key(private_key: int) -> Point:
    return scalar_mul(GENERATOR, private_key)


def is_on_curve(point: Point) -> bool:
    x2 = point.x * point.x % P
    y2 = point.y * point.y % P
    lhs = (A * x2 + y2) % P
    rhs = (1 + D * x2 % P * y2) % P
    return lhs == rhs


def is_in_subgroup(point: Point) -> bool:
    """
    True when order * point == identity.

    The order is applied unreduced; reducing it first would turn every
    point into the identity.
    """
    return _double_and_add(point, SUBGROUP_ORDER) == IDENTITY


def validate_point(point: Point) -> Point:
    """
    Gate a point received from an untrusted source before using it in a
    Diffie-Hellman computation.

    Raises:
        InvalidPoint: Off the curve, in a small subgroup, or the identity
    """
    if not is_on_curve(point):
        raise InvalidPoint("point is not on the curve")
    if point == IDENTITY:
        raise InvalidPoint("identity is not a valid public key")
    if not is_in_subgroup(point):
        raise InvalidPoint("point is not in the prime-order subgroup")
    return point


__all__ = [
    'A',
    'D',
    'SUBGROUP_ORDER',
    'COFACTOR',
    'Point',
    'GENERATOR',
    'IDENTITY',
    'point_add',
    'point_negate',
    'point_sub',
    'scalar_mul',
    'derive_public_key',
    'is_on_curve',
    'is_in_subgroup',
    'validate_point',
]
