"""
Affine BN254 points.

Group arithmetic is delegated to `py_ecc.optimized_bn128`, which works in
projective coordinates. These models hold the affine form that is
serialized in reference strings and compared between nodes. The point at
infinity is encoded as `(0, 0)`, which is not on the curve and therefore
unambiguous.
"""

from __future__ import annotations

from typing import Self

from py_ecc import optimized_bn128 as bn128
from pydantic import Field, model_validator

from zkcert_registry.types import StrictBaseModel

FQ_MODULUS: int = bn128.field_modulus
"""The base field modulus q of BN254."""

CURVE_ORDER: int = bn128.curve_order
"""The order r of G1 and G2, equal to the scalar field modulus."""


class G1Point(StrictBaseModel):
    """A point of G1 in affine coordinates over F_q."""

    x: int = Field(ge=0, lt=FQ_MODULUS)
    y: int = Field(ge=0, lt=FQ_MODULUS)

    @model_validator(mode="after")
    def check_on_curve(self) -> Self:
        """Every non-infinity point must satisfy y^2 = x^3 + 3."""
        if self.is_infinity:
            return self
        if not bn128.is_on_curve(self.to_projective(), bn128.b):
            raise ValueError(f"Point ({self.x}, {self.y}) is not on G1")
        return self

    @property
    def is_infinity(self) -> bool:
        return self.x == 0 and self.y == 0

    @classmethod
    def infinity(cls) -> Self:
        """The identity of G1."""
        return cls(x=0, y=0)

    @classmethod
    def generator(cls) -> Self:
        """The standard generator (1, 2)."""
        return cls.from_projective(bn128.G1)

    def to_projective(self) -> tuple[bn128.FQ, bn128.FQ, bn128.FQ]:
        """Convert to the projective form used by py_ecc."""
        if self.is_infinity:
            return bn128.Z1
        return (bn128.FQ(self.x), bn128.FQ(self.y), bn128.FQ.one())

    @classmethod
    def from_projective(cls, point: tuple[bn128.FQ, bn128.FQ, bn128.FQ]) -> Self:
        """Normalize a py_ecc point to affine form."""
        if bn128.is_inf(point):
            return cls.infinity()
        x, y = bn128.normalize(point)
        return cls(x=int(x), y=int(y))

    def __add__(self, other: Self) -> Self:
        return self.from_projective(bn128.add(self.to_projective(), other.to_projective()))

    def __neg__(self) -> Self:
        return self.from_projective(bn128.neg(self.to_projective()))

    def __sub__(self, other: Self) -> Self:
        return self + (-other)

    def __mul__(self, scalar: int) -> Self:
        """Scalar multiplication by an integer, reduced mod the group order."""
        scalar %= CURVE_ORDER
        if scalar == 0 or self.is_infinity:
            return self.infinity()
        return self.from_projective(bn128.multiply(self.to_projective(), scalar))

    __rmul__ = __mul__


class G2Point(StrictBaseModel):
    """
    A point of G2 in affine coordinates over F_q^2.

    Each coordinate is the pair `(c0, c1)` for the element `c0 + c1 * u`.
    """

    x: tuple[int, int]
    y: tuple[int, int]

    @model_validator(mode="after")
    def check_on_curve(self) -> Self:
        """Every non-infinity point must lie on the sextic twist."""
        for c in (*self.x, *self.y):
            if not 0 <= c < FQ_MODULUS:
                raise ValueError(f"Coordinate {c} is outside the base field")
        if self.is_infinity:
            return self
        if not bn128.is_on_curve(self.to_projective(), bn128.b2):
            raise ValueError("Point is not on G2")
        return self

    @property
    def is_infinity(self) -> bool:
        return self.x == (0, 0) and self.y == (0, 0)

    @classmethod
    def infinity(cls) -> Self:
        """The identity of G2."""
        return cls(x=(0, 0), y=(0, 0))

    @classmethod
    def generator(cls) -> Self:
        """The standard G2 generator."""
        return cls.from_projective(bn128.G2)

    def to_projective(self) -> tuple[bn128.FQ2, bn128.FQ2, bn128.FQ2]:
        """Convert to the projective form used by py_ecc."""
        if self.is_infinity:
            return bn128.Z2
        return (bn128.FQ2(list(self.x)), bn128.FQ2(list(self.y)), bn128.FQ2.one())

    @classmethod
    def from_projective(cls, point: tuple[bn128.FQ2, bn128.FQ2, bn128.FQ2]) -> Self:
        """Normalize a py_ecc point to affine form."""
        if bn128.is_inf(point):
            return cls.infinity()
        x, y = bn128.normalize(point)
        return cls(
            x=(int(x.coeffs[0]), int(x.coeffs[1])),
            y=(int(y.coeffs[0]), int(y.coeffs[1])),
        )

    def __add__(self, other: Self) -> Self:
        return self.from_projective(bn128.add(self.to_projective(), other.to_projective()))

    def __neg__(self) -> Self:
        return self.from_projective(bn128.neg(self.to_projective()))

    def __sub__(self, other: Self) -> Self:
        return self + (-other)

    def __mul__(self, scalar: int) -> Self:
        """Scalar multiplication by an integer, reduced mod the group order."""
        scalar %= CURVE_ORDER
        if scalar == 0 or self.is_infinity:
            return self.infinity()
        return self.from_projective(bn128.multiply(self.to_projective(), scalar))

    __rmul__ = __mul__


def pairing_product_is_one(pairs: list[tuple[G1Point, G2Point]]) -> bool:
    """
    Check that the product of pairings `prod e(P_i, Q_i)` is the identity.

    Miller loops are multiplied together and a single final exponentiation
    is applied to the product.
    """
    acc = bn128.FQ12.one()
    for p, q in pairs:
        if p.is_infinity or q.is_infinity:
            continue
        acc = acc * bn128.pairing(q.to_projective(), p.to_projective(), final_exponentiate=False)
    return bn128.final_exponentiate(acc) == bn128.FQ12.one()
