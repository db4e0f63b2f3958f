"""
Dense univariate polynomials over Fr.

A polynomial is a plain list of coefficients, lowest degree first:
`[a0, a1, a2]` represents `a0 + a1*X + a2*X^2`. Trailing zero coefficients
are allowed; functions that produce a result trim them down to at least one
coefficient.
"""

from __future__ import annotations

from collections.abc import Sequence

from .field import Fr

Polynomial = list[Fr]
"""Coefficient list, lowest degree first."""


def _trim(coeffs: Polynomial) -> Polynomial:
    """Drop trailing zero coefficients, keeping at least one."""
    end = len(coeffs)
    while end > 1 and coeffs[end - 1].value == 0:
        end -= 1
    return coeffs[:end] if end else [Fr.zero()]


def evaluate(coeffs: Sequence[Fr], x: Fr) -> Fr:
    """Evaluate a polynomial at `x` using Horner's rule."""
    acc = Fr.zero()
    for c in reversed(coeffs):
        acc = acc * x + c
    return acc


def add(a: Sequence[Fr], b: Sequence[Fr]) -> Polynomial:
    """Coefficient-wise sum."""
    n = max(len(a), len(b))
    zero = Fr.zero()
    return _trim(
        [(a[i] if i < len(a) else zero) + (b[i] if i < len(b) else zero) for i in range(n)]
    )


def subtract(a: Sequence[Fr], b: Sequence[Fr]) -> Polynomial:
    """Coefficient-wise difference `a - b`."""
    return add(a, [-c for c in b])


def multiply(a: Sequence[Fr], b: Sequence[Fr]) -> Polynomial:
    """Schoolbook product."""
    if not a or not b:
        return [Fr.zero()]
    out = [Fr.zero()] * (len(a) + len(b) - 1)
    for i, ai in enumerate(a):
        if ai.value == 0:
            continue
        for j, bj in enumerate(b):
            out[i + j] = out[i + j] + ai * bj
    return _trim(out)


def divide(numerator: Sequence[Fr], denominator: Sequence[Fr]) -> tuple[Polynomial, Polynomial]:
    """
    Polynomial long division.

    Args:
        numerator: The dividend.
        denominator: The divisor. Must not be the zero polynomial.

    Returns:
        The pair `(quotient, remainder)` with
        `numerator = quotient * denominator + remainder`.

    Raises:
        ZeroDivisionError: If the divisor is zero.
    """
    den = _trim(list(denominator))
    if len(den) == 1 and den[0].value == 0:
        raise ZeroDivisionError("Polynomial division by zero")

    rem = _trim(list(numerator))
    if len(rem) < len(den):
        return [Fr.zero()], rem

    lead_inv = den[-1].inverse()
    quotient = [Fr.zero()] * (len(rem) - len(den) + 1)

    # Eliminate the leading coefficient of the remainder one degree at a time.
    for shift in range(len(quotient) - 1, -1, -1):
        factor = rem[shift + len(den) - 1] * lead_inv
        quotient[shift] = factor
        if factor.value == 0:
            continue
        for k, d in enumerate(den):
            rem[shift + k] = rem[shift + k] - factor * d

    return _trim(quotient), _trim(rem[: len(den) - 1] or [Fr.zero()])


def interpolate(xs: Sequence[Fr], ys: Sequence[Fr]) -> Polynomial:
    """
    Lagrange interpolation.

    Returns the coefficients of the unique polynomial of degree below
    `len(xs)` passing through every `(xs[i], ys[i])`.

    Raises:
        ValueError: If the point lists differ in length, are empty, or repeat an x.
    """
    if len(xs) != len(ys):
        raise ValueError(f"Got {len(xs)} x values but {len(ys)} y values")
    if not xs:
        raise ValueError("Cannot interpolate an empty point set")
    if len({x.value for x in xs}) != len(xs):
        raise ValueError("Interpolation points must be distinct")

    result: Polynomial = [Fr.zero()]
    for i, (xi, yi) in enumerate(zip(xs, ys, strict=True)):
        if yi.value == 0:
            continue

        # Build the basis polynomial L_i(X) = prod_{j != i} (X - x_j) / (x_i - x_j).
        basis: Polynomial = [Fr.one()]
        denom = Fr.one()
        for j, xj in enumerate(xs):
            if j == i:
                continue
            basis = multiply(basis, [-xj, Fr.one()])
            denom = denom * (xi - xj)

        scale = yi / denom
        result = add(result, [c * scale for c in basis])

    return result
