"""
The Poseidon permutation over the BN254 scalar field.

The design follows "Poseidon: A New Hash Function for Zero-Knowledge Proof
Systems" (https://eprint.iacr.org/2019/458). The 2-to-1 compression used
by the trees runs a width-3 instance on the state `[0, left, right]` and
returns the first state element.
"""

from __future__ import annotations

from functools import cached_property

from pydantic import BaseModel, ConfigDict, Field, model_validator

from zkcert_registry.field import P, Fr

from .constants import generate_parameters

# =================================================================
# Poseidon Parameter Definitions
# =================================================================

S_BOX_DEGREE = 5
"""
The S-box exponent `alpha`.

gcd(5, p - 1) = 1 for the BN254 scalar field, so x -> x^5 is a permutation.
"""


class PoseidonParams(BaseModel):
    """
    Parameters for a specific Poseidon instance.

    Constants are kept as plain integers reduced mod P. The permutation is
    evaluated thousands of times while building a tree, and integer
    arithmetic avoids a model allocation per field operation.
    """

    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=1, description="The size of the state (t).")
    rounds_f: int = Field(gt=0, description="Total number of 'full' rounds.")
    rounds_p: int = Field(ge=0, description="Total number of 'partial' rounds.")
    alpha: int = Field(default=S_BOX_DEGREE, gt=1, description="The S-box exponent.")

    @model_validator(mode="after")
    def check_rounds(self) -> "PoseidonParams":
        """Full rounds are split evenly around the partial rounds."""
        if self.rounds_f % 2:
            raise ValueError("Number of full rounds must be even.")
        return self

    @cached_property
    def round_constants(self) -> tuple[int, ...]:
        """The `(R_F + R_P) * t` additive round constants."""
        return generate_parameters(self.width, self.rounds_f, self.rounds_p)[0]

    @cached_property
    def mds(self) -> tuple[tuple[int, ...], ...]:
        """The t x t MDS matrix, row-major."""
        return generate_parameters(self.width, self.rounds_f, self.rounds_p)[1]


PARAMS_3 = PoseidonParams(width=3, rounds_f=8, rounds_p=57)
"""The width-3 instance used for 2-to-1 hashing."""


def permute(state: list[int], params: PoseidonParams) -> list[int]:
    """
    Apply the Poseidon permutation to a state of integers.

    Each round adds constants, applies the S-box (to the whole state in
    full rounds, to the first element in partial rounds), then mixes with
    the MDS matrix. Full rounds are split in two halves around the
    partial rounds.

    Args:
        state: The input state; every element must be in [0, P).
        params: The instance parameters.

    Returns:
        The permuted state.
    """
    if len(state) != params.width:
        raise ValueError(f"Expected a state of width {params.width}, got {len(state)}")

    width = params.width
    constants = params.round_constants
    mds = params.mds
    half_full = params.rounds_f // 2
    total = params.rounds_f + params.rounds_p

    state = list(state)
    for r in range(total):
        offset = r * width
        state = [(s + constants[offset + i]) % P for i, s in enumerate(state)]

        if r < half_full or r >= half_full + params.rounds_p:
            state = [pow(s, params.alpha, P) for s in state]
        else:
            state[0] = pow(state[0], params.alpha, P)

        state = [sum(m * s for m, s in zip(row, state, strict=True)) % P for row in mds]

    return state


class PoseidonHasher:
    """2-to-1 field hash built on a width-3 Poseidon permutation."""

    __slots__ = ("params",)

    def __init__(self, params: PoseidonParams = PARAMS_3) -> None:
        if params.width != 3:
            raise ValueError("A 2-to-1 hasher needs a width-3 permutation.")
        self.params = params

    def hash(self, left: Fr, right: Fr) -> Fr:
        """Compress two field elements. The order of the inputs matters."""
        return Fr(value=permute([0, left.value, right.value], self.params)[0])

    def __repr__(self) -> str:
        return f"PoseidonHasher(width={self.params.width}, rounds_p={self.params.rounds_p})"


POSEIDON = PoseidonHasher()
"""Default hasher for the sparse Merkle tree."""
