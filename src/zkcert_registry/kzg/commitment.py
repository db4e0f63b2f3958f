"""
KZG polynomial commitments.

Polynomials are committed over the evaluation domain `0, 1, ..., n-1`:
a vector of values is first interpolated into coefficient form, then the
coefficients are combined with the G1 powers of the reference string.
"""

from __future__ import annotations

from collections.abc import Sequence

from zkcert_registry.field import Fr, Polynomial, divide, evaluate, subtract
from zkcert_registry.field import interpolate as interpolate_points
from zkcert_registry.types import SRSError

from .curve import G1Point, pairing_product_is_one
from .srs import StructuredReferenceString


def commit(coeffs: Sequence[Fr], srs: StructuredReferenceString) -> G1Point:
    """
    Commit to a polynomial: `sum(coeffs[i] * [tau^i]_1)`.

    Raises:
        SRSError: If the polynomial has more coefficients than the string has powers.
    """
    if len(coeffs) > srs.size:
        raise SRSError(
            f"Cannot commit to {len(coeffs)} coefficients with a reference string "
            f"of size {srs.size}"
        )

    result = G1Point.infinity()
    for coeff, power in zip(coeffs, srs.g1_powers, strict=False):
        if coeff.value == 0:
            continue
        result = result + power * coeff.value
    return result


def interpolate(values: Sequence[Fr]) -> Polynomial:
    """Coefficients of the polynomial through `(0, values[0]), (1, values[1]), ...`."""
    return interpolate_points([Fr(value=i) for i in range(len(values))], values)


def quotient(coeffs: Sequence[Fr], x: Fr) -> Polynomial:
    """`q(X) = (p(X) - p(x)) / (X - x)`. The division is exact."""
    y = evaluate(coeffs, x)
    q, _ = divide(subtract(coeffs, [y]), [-x, Fr.one()])
    return q


def opening_proof(coeffs: Sequence[Fr], x: Fr, srs: StructuredReferenceString) -> G1Point:
    """Prove the evaluation of the committed polynomial at `x`."""
    return commit(quotient(coeffs, x), srs)


def verify_opening(
    commitment: G1Point,
    x: Fr,
    y: Fr,
    proof: G1Point,
    srs: StructuredReferenceString,
) -> bool:
    """
    Check that the polynomial behind `commitment` evaluates to `y` at `x`.

    The pairing equation is

        e(C - [y]_1, [1]_2) == e(proof, [tau]_2 - [x]_2)

    rearranged as a product that must equal the identity.
    """
    g2, tau_g2 = srs.g2_powers
    lhs = commitment - G1Point.generator() * y.value
    shifted = tau_g2 - g2 * x.value
    return pairing_product_is_one([(lhs, g2), (-proof, shifted)])
