"""
Round constants and MDS matrix for the Poseidon permutation.

The parameters are derived with the Grain LFSR procedure from the Poseidon
paper (https://eprint.iacr.org/2019/458, Appendix F). Generation is
deterministic in (field size, width, round counts), so the constants are
computed on first use and memoized rather than shipped as literal tables.
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache

from zkcert_registry.field import P

# =================================================================
# Grain LFSR
#
# An 80-bit self-shrinking shift register. The seed encodes the
# parameter set so that every instance gets independent constants.
# =================================================================

_FIELD_PRIME = 1
"""Field type tag: 1 for a prime field GF(p)."""

_SBOX_POWER = 0
"""S-box type tag: 0 for x -> x^alpha."""

_TAPS = (62, 51, 38, 23, 13, 0)
"""Feedback taps of the register."""

_WARMUP_BITS = 160
"""Number of initial outputs discarded before use."""


def _seed_bits(field_bits: int, width: int, rounds_f: int, rounds_p: int) -> list[int]:
    """Encode the parameter set as the initial 80-bit register state."""

    def bits(value: int, size: int) -> list[int]:
        return [(value >> (size - 1 - i)) & 1 for i in range(size)]

    state = (
        bits(_FIELD_PRIME, 2)
        + bits(_SBOX_POWER, 4)
        + bits(field_bits, 12)
        + bits(width, 12)
        + bits(rounds_f, 10)
        + bits(rounds_p, 10)
        + [1] * 30
    )
    assert len(state) == 80
    return state


def _grain_bits(field_bits: int, width: int, rounds_f: int, rounds_p: int) -> Iterator[int]:
    """
    Yield the output stream of the Grain LFSR.

    Raw register bits are consumed in pairs. A pair whose first bit is 1
    emits its second bit. A pair whose first bit is 0 is dropped.
    """
    state = _seed_bits(field_bits, width, rounds_f, rounds_p)

    def step() -> int:
        new_bit = 0
        for tap in _TAPS:
            new_bit ^= state[tap]
        state.pop(0)
        state.append(new_bit)
        return new_bit

    for _ in range(_WARMUP_BITS):
        step()

    while True:
        first = step()
        while first == 0:
            step()
            first = step()
        yield step()


def _take_int(stream: Iterator[int], size: int) -> int:
    """Read `size` bits from the stream as a big-endian integer."""
    value = 0
    for _ in range(size):
        value = (value << 1) | next(stream)
    return value


@lru_cache(maxsize=None)
def generate_parameters(
    width: int, rounds_f: int, rounds_p: int
) -> tuple[tuple[int, ...], tuple[tuple[int, ...], ...]]:
    """
    Derive round constants and the MDS matrix for one Poseidon instance.

    Algorithm
    ---------
    1. Seed the Grain LFSR with (prime field, x^alpha, 254, t, R_F, R_P).
    2. Draw `(R_F + R_P) * t` round constants, rejecting samples >= p.
    3. Draw 2t further elements x_0..x_{t-1}, y_0..y_{t-1}, all distinct.
    4. Form the Cauchy matrix M[i][j] = 1 / (x_i + y_j).

    Args:
        width: State width t.
        rounds_f: Number of full rounds.
        rounds_p: Number of partial rounds.

    Returns:
        The pair (round constants, MDS matrix rows).
    """
    field_bits = P.bit_length()
    stream = _grain_bits(field_bits, width, rounds_f, rounds_p)

    constants: list[int] = []
    while len(constants) < (rounds_f + rounds_p) * width:
        candidate = _take_int(stream, field_bits)
        if candidate < P:
            constants.append(candidate)

    # Re-draw the whole set until all 2t elements are distinct.
    while True:
        elements = [_take_int(stream, field_bits) % P for _ in range(2 * width)]
        if len(set(elements)) == len(elements):
            break
    xs, ys = elements[:width], elements[width:]

    mds = tuple(tuple(pow(x + y, P - 2, P) for y in ys) for x in xs)

    return tuple(constants), mds
