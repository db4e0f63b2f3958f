"""Poseidon permutation and the 2-to-1 field hasher built on it."""

from .permutation import PARAMS_3, POSEIDON, PoseidonHasher, PoseidonParams, permute

__all__ = [
    "PARAMS_3",
    "POSEIDON",
    "PoseidonHasher",
    "PoseidonParams",
    "permute",
]
