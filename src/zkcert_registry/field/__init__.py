"""The BN254 scalar field and polynomials over it."""

from .field import P, P_BYTES, Fr
from .polynomial import Polynomial, add, divide, evaluate, interpolate, multiply, subtract

__all__ = [
    "P",
    "P_BYTES",
    "Fr",
    "Polynomial",
    "add",
    "divide",
    "evaluate",
    "interpolate",
    "multiply",
    "subtract",
]
