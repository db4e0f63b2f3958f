"""
Structured reference strings for KZG commitments.

A reference string holds `[tau^i]_1` for i in 0..n-1 and `[1]_2, [tau]_2`
for an unknown `tau`. Production strings come from the Perpetual Powers of
Tau ceremony (challenge file #46); the G1 powers are read from a JSON file
of `[x, y]` pairs and the G2 powers are fixed constants of that challenge.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Self

from pydantic import Field

from zkcert_registry.types import SRSError, StrictBaseModel

from .curve import CURVE_ORDER, G1Point, G2Point

logger = logging.getLogger(__name__)

CEREMONY_TAU_G2_X: tuple[int, int] = (
    0x04C5E74C85A87F008A2FEB4B5C8A1E7F9BA9D8EB40EB02E70139C89FB1C505A9,
    0x21A808DAD5C50720FB7294745CF4C87812CE0EA76BAA7DF4E922615D1388F25A,
)
"""X coordinate of [tau]_2 from challenge file #46, as (c0, c1)."""

CEREMONY_TAU_G2_Y: tuple[int, int] = (
    0x2D58022915FC6BC90E036E858FBC98055084AC7AFF98CCCEB0E3FDE64BC1A084,
    0x204B66D8E1FADC307C35187A6B813BE0B46BA1CD720CD1C4EE5F68D13036B4BA,
)
"""Y coordinate of [tau]_2 from challenge file #46, as (c0, c1)."""


def _coordinate(value: int | str) -> int:
    """Parse a JSON coordinate given as an integer, decimal string or hex string."""
    if isinstance(value, int):
        return value
    text = value.strip()
    return int(text, 16) if text.lower().startswith("0x") else int(text)


@lru_cache(maxsize=1)
def ceremony_g2_powers() -> tuple[G2Point, G2Point]:
    """The G2 half of the ceremony reference string, `([1]_2, [tau]_2)`."""
    return G2Point.generator(), G2Point(x=CEREMONY_TAU_G2_X, y=CEREMONY_TAU_G2_Y)


class StructuredReferenceString(StrictBaseModel):
    """An immutable KZG reference string."""

    g1_powers: tuple[G1Point, ...] = Field(min_length=1)
    """`[tau^i]_1` for i = 0, 1, ..., max_degree."""

    g2_powers: tuple[G2Point, G2Point]
    """`[1]_2` and `[tau]_2`."""

    @property
    def size(self) -> int:
        """Number of G1 powers, i.e. the largest committable coefficient count."""
        return len(self.g1_powers)

    def truncate(self, size: int) -> Self:
        """A reference string restricted to the first `size` G1 powers."""
        if not 0 < size <= self.size:
            raise SRSError(f"Cannot truncate a reference string of size {self.size} to {size}")
        return self.__class__(g1_powers=self.g1_powers[:size], g2_powers=self.g2_powers)

    @classmethod
    def load(cls, path: Path, size: int | None = None) -> Self:
        """
        Read ceremony G1 powers from a JSON file.

        The file is a list of `[x, y]` pairs whose coordinates are decimal
        or 0x-prefixed hex strings. Only the first `size` entries are kept
        when `size` is given.

        Raises:
            SRSError: If the file is malformed, holds a point off the curve,
                or has fewer than `size` entries.
        """
        try:
            raw = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise SRSError(f"Cannot read reference string {path}: {exc}") from exc

        if not isinstance(raw, list):
            raise SRSError(f"Reference string {path} must hold a list of points")
        if size is not None:
            if len(raw) < size:
                raise SRSError(f"Reference string {path} has {len(raw)} powers, need {size}")
            raw = raw[:size]

        try:
            points = tuple(G1Point(x=_coordinate(x), y=_coordinate(y)) for x, y, *_ in raw)
        except (TypeError, ValueError) as exc:
            raise SRSError(f"Malformed point in reference string {path}: {exc}") from exc

        logger.info("Loaded %d G1 powers from %s", len(points), path)
        return cls(g1_powers=points, g2_powers=ceremony_g2_powers())

    @classmethod
    def insecure_from_secret(cls, secret: int, size: int) -> Self:
        """
        Generate a reference string from a known trapdoor.

        Anyone who knows `secret` can forge openings, so this is only for
        tests and local development.
        """
        if size < 1:
            raise SRSError("A reference string needs at least one power")

        tau = secret % CURVE_ORDER
        g1 = G1Point.generator()
        powers = []
        power = 1
        for _ in range(size):
            powers.append(g1 * power)
            power = power * tau % CURVE_ORDER

        g2 = G2Point.generator()
        return cls(g1_powers=tuple(powers), g2_powers=(g2, g2 * tau))
