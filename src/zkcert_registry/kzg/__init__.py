"""KZG commitments over BN254."""

from .commitment import commit, interpolate, opening_proof, quotient, verify_opening
from .curve import CURVE_ORDER, G1Point, G2Point, pairing_product_is_one
from .srs import StructuredReferenceString, ceremony_g2_powers

__all__ = [
    "CURVE_ORDER",
    "G1Point",
    "G2Point",
    "StructuredReferenceString",
    "ceremony_g2_powers",
    "commit",
    "interpolate",
    "opening_proof",
    "pairing_product_is_one",
    "quotient",
    "verify_opening",
]
