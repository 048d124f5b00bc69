"""
Jubjub: the twisted Edwards curve embedded in the BLS12-381 scalar field.

    -u^2 + v^2 = 1 + d u^2 v^2,    d = -(10240/10241)

Coordinates live in Fr, the field our circuits are written over, so curve
points can be witnessed and checked in-circuit at native cost. Keys,
addresses and spend authorization signatures all use the prime-order
subgroup of order `JUBJUB_ORDER` (the full group has cofactor 8).
"""

from typing import Optional

from py_ecc.optimized_bls12_381 import curve_order

# base field of jubjub == scalar field of BLS12-381
BLS_MODULUS: int = curve_order
# order of the prime-order subgroup
JUBJUB_ORDER: int = 6554484396890773809930967563523245729705921265872317281365359162392183254199
COFACTOR: int = 8

EDWARDS_A: int = BLS_MODULUS - 1
EDWARDS_D: int = (-10240 * pow(10241, -1, BLS_MODULUS)) % BLS_MODULUS
EDWARDS_2D: int = (2 * EDWARDS_D) % BLS_MODULUS

POINT_BYTES = 32
FIELD_BYTES = 32

# multiplicative generator of Fr, also the non-residue used by Tonelli-Shanks
PRIMITIVE_ROOT: int = 7
_TWO_ADICITY: int = 32
_TRACE: int = (BLS_MODULUS - 1) >> _TWO_ADICITY

assert (BLS_MODULUS - 1) % (1 << _TWO_ADICITY) == 0 and _TRACE % 2 == 1


def fr_inv(x: int) -> int:
    assert x % BLS_MODULUS != 0, "inverse of zero"
    return pow(x, BLS_MODULUS - 2, BLS_MODULUS)


def fr_sqrt(x: int) -> Optional[int]:
    """
    Square root in Fr via Tonelli-Shanks, or None for a non-residue.
    """
    x %= BLS_MODULUS
    if x == 0:
        return 0
    if pow(x, (BLS_MODULUS - 1) // 2, BLS_MODULUS) != 1:
        return None
    m = _TWO_ADICITY
    c = pow(PRIMITIVE_ROOT, _TRACE, BLS_MODULUS)
    t = pow(x, _TRACE, BLS_MODULUS)
    root = pow(x, (_TRACE + 1) // 2, BLS_MODULUS)
    while t != 1:
        i, t2 = 0, t
        while t2 != 1:
            t2 = t2 * t2 % BLS_MODULUS
            i += 1
        b = pow(c, 1 << (m - i - 1), BLS_MODULUS)
        m = i
        c = b * b % BLS_MODULUS
        t = t * c % BLS_MODULUS
        root = root * b % BLS_MODULUS
    return root


def fr_to_bytes(x: int) -> bytes:
    return (x % BLS_MODULUS).to_bytes(FIELD_BYTES, "big")


def fr_from_bytes(b: bytes) -> Optional[int]:
    """Canonical decoding; None if the value is not reduced."""
    if len(b) != FIELD_BYTES:
        return None
    x = int.from_bytes(b, "big")
    if x >= BLS_MODULUS:
        return None
    return x


def recover_u(v: int, sign: int) -> Optional[int]:
    """
    Solve the curve equation for u given v, choosing the root whose parity
    matches `sign`.
    """
    vv = v * v % BLS_MODULUS
    denominator = (1 + EDWARDS_D * vv) % BLS_MODULUS
    if denominator == 0:
        return None
    u = fr_sqrt((vv - 1) * fr_inv(denominator))
    if u is None:
        return None
    if u == 0 and sign:
        return None
    if u & 1 != sign:
        u = BLS_MODULUS - u
    return u


class Point:
    """
    Jubjub point in extended twisted Edwards coordinates (X : Y : Z : T),
    u = X/Z, v = Y/Z, T = XY/Z.

    The addition law used is complete (d is a non-square), so the same
    formula serves for doubling and for the identity.
    """

    __slots__ = ("X", "Y", "Z", "T")

    def __init__(self, X: int, Y: int, Z: int, T: int):
        self.X, self.Y, self.Z, self.T = X, Y, Z, T

    @classmethod
    def identity(cls) -> "Point":
        return cls(0, 1, 1, 0)

    @classmethod
    def from_affine(cls, u: int, v: int) -> "Point":
        assert is_on_curve(u, v), "point is not on jubjub"
        return cls(u % BLS_MODULUS, v % BLS_MODULUS, 1, u * v % BLS_MODULUS)

    def affine(self) -> tuple[int, int]:
        z_inv = fr_inv(self.Z)
        return self.X * z_inv % BLS_MODULUS, self.Y * z_inv % BLS_MODULUS

    @property
    def u(self) -> int:
        return self.affine()[0]

    @property
    def v(self) -> int:
        return self.affine()[1]

    def __add__(self, other: "Point") -> "Point":
        if not isinstance(other, Point):
            return NotImplemented
        p = BLS_MODULUS
        a = (self.Y - self.X) * (other.Y - other.X) % p
        b = (self.Y + self.X) * (other.Y + other.X) % p
        c = self.T * EDWARDS_2D % p * other.T % p
        d = 2 * self.Z * other.Z % p
        e, f, g, h = b - a, d - c, d + c, b + a
        return Point(e * f % p, g * h % p, f * g % p, e * h % p)

    def __neg__(self) -> "Point":
        return Point(-self.X % BLS_MODULUS, self.Y, self.Z, -self.T % BLS_MODULUS)

    def __sub__(self, other: "Point") -> "Point":
        return self + (-other)

    def double(self) -> "Point":
        return self + self

    def __mul__(self, scalar: int) -> "Point":
        if not isinstance(scalar, int):
            return NotImplemented
        if scalar < 0:
            return (-self) * (-scalar)
        result = Point.identity()
        addend = self
        while scalar:
            if scalar & 1:
                result = result + addend
            addend = addend.double()
            scalar >>= 1
        return result

    __rmul__ = __mul__

    def mul_by_cofactor(self) -> "Point":
        return self.double().double().double()

    def is_identity(self) -> bool:
        return self.X % BLS_MODULUS == 0 and (self.Y - self.Z) % BLS_MODULUS == 0

    def is_torsion_free(self) -> bool:
        return (self * JUBJUB_ORDER).is_identity()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return False
        return (
            (self.X * other.Z - other.X * self.Z) % BLS_MODULUS == 0
            and (self.Y * other.Z - other.Y * self.Z) % BLS_MODULUS == 0
        )

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"Point({self.to_bytes().hex()})"

    def to_bytes(self) -> bytes:
        u, v = self.affine()
        encoded = bytearray(v.to_bytes(POINT_BYTES, "big"))
        encoded[0] |= (u & 1) << 7
        return bytes(encoded)

    @classmethod
    def from_bytes(cls, data: bytes) -> Optional["Point"]:
        """
        Decode a canonical point encoding. Returns None if the bytes are not
        a valid encoding of a point in the prime-order subgroup.
        """
        if len(data) != POINT_BYTES:
            return None
        sign = data[0] >> 7
        v = int.from_bytes(bytes([data[0] & 0x7F]) + data[1:], "big")
        if v >= BLS_MODULUS:
            return None
        u = recover_u(v, sign)
        if u is None:
            return None
        point = cls.from_affine(u, v)
        if not point.is_torsion_free():
            return None
        return point


def is_on_curve(u: int, v: int) -> bool:
    p = BLS_MODULUS
    uu, vv = u * u % p, v * v % p
    return (EDWARDS_A * uu + vv - 1 - EDWARDS_D * uu % p * vv) % p == 0
