"""
secp256k1 Scalar and Point Arithmetic
Group-order scalars and an affine view over python-ecdsa's Jacobian points
"""

from typing import Optional, Tuple

from ecdsa import SECP256k1
from ecdsa.ellipticcurve import INFINITY, PointJacobi
from ecdsa.numbertheory import SquareRootError, inverse_mod, square_root_mod_prime

# ============================================================================
# CURVE PARAMETERS (SEC 2 v2, section 2.4.1)
# ============================================================================

CURVE = SECP256k1.curve

# Base field modulus
P = int(CURVE.p())
# Group order
N = int(SECP256k1.order)
A = int(CURVE.a())
B = int(CURVE.b())
GX = int(SECP256k1.generator.x())
GY = int(SECP256k1.generator.y())

SCALAR_BYTES = SECP256k1.baselen

# ============================================================================
# EXCEPTIONS
# ============================================================================


class ECError(Exception):
    """Base exception for curve arithmetic"""
    pass


class InvalidEncoding(ECError, ValueError):
    """Bytes or coordinates do not describe a point on the curve"""
    pass


class NotInvertible(ECError, ZeroDivisionError):
    """Scalar has no inverse modulo the group order"""
    pass


def mod_inverse(a: int, n: int = N) -> int:
    """Inverse of a modulo n, refusing degenerate values"""
    if a % n == 0:
        raise NotInvertible(f"{a:#x} is not invertible modulo {n:#x}")
    return inverse_mod(a % n, n)


# ============================================================================
# SCALARS (integers modulo the group order N)
# ============================================================================


class Scalar:
    """Element of Z_n. Points only accept Scalar multipliers, never raw ints."""

    __slots__ = ("_v",)

    def __init__(self, value: int):
        if isinstance(value, Scalar):
            value = value._v
        self._v = value % N

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Scalar':
        """Big-endian bytes reduced modulo N (digests, hash outputs)"""
        return cls(int.from_bytes(data, "big"))

    def to_bytes(self) -> bytes:
        return self._v.to_bytes(SCALAR_BYTES, "big")

    @property
    def value(self) -> int:
        return self._v

    def is_zero(self) -> bool:
        return self._v == 0

    def inverse(self) -> 'Scalar':
        return Scalar(mod_inverse(self._v, N))

    def __add__(self, other: 'Scalar') -> 'Scalar':
        if not isinstance(other, Scalar):
            return NotImplemented
        return Scalar(self._v + other._v)

    def __sub__(self, other: 'Scalar') -> 'Scalar':
        if not isinstance(other, Scalar):
            return NotImplemented
        return Scalar(self._v - other._v)

    def __mul__(self, other):
        if isinstance(other, Scalar):
            return Scalar(self._v * other._v)
        if isinstance(other, Point):
            return other.multiply(self)
        return NotImplemented

    def __neg__(self) -> 'Scalar':
        return Scalar(-self._v)

    def __int__(self) -> int:
        return self._v

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Scalar):
            return self._v == other._v
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Scalar", self._v))

    def __repr__(self) -> str:
        return f"Scalar({self._v:#x})"


# ============================================================================
# POINTS (affine coordinates over GF(P))
# ============================================================================


class Point:
    """Affine point on y^2 = x^3 + 7 over GF(P), or the identity.

    Group operations run on an ``ecdsa.ellipticcurve.PointJacobi``; the
    affine coordinates are kept alongside it for encoding and comparison.
    """

    __slots__ = ("_x", "_y", "_jacobi")

    def __init__(self, x: Optional[int], y: Optional[int], check: bool = True):
        if (x is None) != (y is None):
            raise InvalidEncoding("Both coordinates or neither must be given")
        self._jacobi = None
        if x is not None:
            if not (0 <= x < P and 0 <= y < P):
                raise InvalidEncoding("Coordinate outside the base field")
            if check and not CURVE.contains_point(x, y):
                raise InvalidEncoding(f"({x:#x}, {y:#x}) is not on secp256k1")
            self._jacobi = PointJacobi(CURVE, x, y, 1, N)
        self._x = x
        self._y = y

    @classmethod
    def identity(cls) -> 'Point':
        return cls(None, None)

    @classmethod
    def from_ecdsa(cls, point) -> 'Point':
        """Wrap a python-ecdsa point (Jacobian, affine or INFINITY)"""
        if point == INFINITY:
            return cls.identity()
        wrapped = cls(int(point.x()), int(point.y()), check=False)
        if isinstance(point, PointJacobi):
            # keeps precomputation tables, e.g. on the generator
            wrapped._jacobi = point
        return wrapped

    def to_ecdsa(self):
        return INFINITY if self._jacobi is None else self._jacobi

    @property
    def x(self) -> int:
        if self._x is None:
            raise ValueError("Point at infinity has no affine coordinates")
        return self._x

    @property
    def y(self) -> int:
        if self._y is None:
            raise ValueError("Point at infinity has no affine coordinates")
        return self._y

    def is_identity(self) -> bool:
        return self._x is None

    def coordinates(self) -> Tuple[int, int]:
        return self.x, self.y

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self._x == other._x and self._y == other._y

    def __hash__(self) -> int:
        return hash(("Point", self._x, self._y))

    def __neg__(self) -> 'Point':
        if self.is_identity():
            return self
        return Point(self._x, (-self._y) % P, check=False)

    def __add__(self, other: 'Point') -> 'Point':
        if not isinstance(other, Point):
            return NotImplemented
        if self.is_identity():
            return other
        if other.is_identity():
            return self
        return Point.from_ecdsa(self._jacobi + other._jacobi)

    def __sub__(self, other: 'Point') -> 'Point':
        return self + (-other)

    def double(self) -> 'Point':
        if self.is_identity():
            return self
        return Point.from_ecdsa(self._jacobi.double())

    def multiply(self, k: Scalar) -> 'Point':
        if not isinstance(k, Scalar):
            raise TypeError(
                f"Points multiply by Scalar (mod N), got {type(k).__name__}")
        if k.is_zero() or self.is_identity():
            return Point.identity()
        return Point.from_ecdsa(self._jacobi * k.value)

    def __rmul__(self, k: Scalar) -> 'Point':
        if not isinstance(k, Scalar):
            return NotImplemented
        return self.multiply(k)

    def __repr__(self) -> str:
        if self.is_identity():
            return "Point(infinity)"
        return f"Point({self._x:#x}, {self._y:#x})"


G = Point.from_ecdsa(SECP256k1.generator)

# ============================================================================
# MODULE-LEVEL OPERATIONS
# ============================================================================


def decompress_point(x: int, y_parity: int) -> Point:
    """Recover the point with the given x-coordinate and y parity"""
    if not 0 <= x < P:
        raise InvalidEncoding(f"x-coordinate {x:#x} outside the base field")

    y_squared = (pow(x, 3, P) + A * x + B) % P
    try:
        y = int(square_root_mod_prime(y_squared, P))
    except SquareRootError as e:
        raise InvalidEncoding(f"{x:#x} is not the x-coordinate of a curve point") from e

    if y % 2 != (y_parity & 1):
        y = P - y
    return Point(x, y, check=False)


def scalar_mul(k: Scalar, point: Point) -> Point:
    return point.multiply(k)


def point_add(a: Point, b: Point) -> Point:
    return a + b


def point_negate(point: Point) -> Point:
    return -point
