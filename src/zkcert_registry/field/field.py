"""Core definition of the BN254 scalar field Fr."""

from typing import Self

from pydantic import Field, field_validator

from zkcert_registry.types import StrictBaseModel

# =================================================================
# Field Constants
#
# The scalar field of the BN254 (alt_bn128) curve. Leaves, tree nodes,
# and polynomial coefficients all live here, matching the field used
# by the circuits that consume the proofs.
# =================================================================

P: int = 21888242871839275222246405745257275088548364400416034343698204186575808495617
"""The BN254 scalar field modulus (the order of the G1 group)."""

P_BITS: int = 254
"""The number of bits in the prime P."""

P_BYTES: int = 32
"""The size of a serialized field element in bytes."""


# =================================================================
# Scalar Field Fr
# =================================================================


class Fr(StrictBaseModel):
    """An element in the BN254 scalar field F_r."""

    value: int = Field(ge=0, lt=P, description="Field element value in the range [0, P)")

    @field_validator("value", mode="before")
    @classmethod
    def reduce_modulo_p(cls, v: int) -> int:
        """Reduces an integer input modulo P before validation."""
        return v % P

    @classmethod
    def zero(cls) -> Self:
        """The additive identity."""
        return cls(value=0)

    @classmethod
    def one(cls) -> Self:
        """The multiplicative identity."""
        return cls(value=1)

    def __add__(self, other: Self) -> Self:
        """Field addition."""
        return self.__class__(value=self.value + other.value)

    def __sub__(self, other: Self) -> Self:
        """Field subtraction."""
        return self.__class__(value=self.value - other.value)

    def __neg__(self) -> Self:
        """Field negation."""
        return self.__class__(value=-self.value)

    def __mul__(self, other: Self) -> Self:
        """Field multiplication."""
        return self.__class__(value=self.value * other.value)

    def __pow__(self, exponent: int) -> Self:
        """Field exponentiation."""
        return self.__class__(value=pow(self.value, exponent, P))

    def inverse(self) -> Self:
        """Computes the multiplicative inverse."""
        if self.value == 0:
            raise ZeroDivisionError("Cannot invert the zero element.")
        # a^(P-2) is the multiplicative inverse of a in F_p
        return self ** (P - 2)

    def __truediv__(self, other: Self) -> Self:
        """Field division."""
        return self * other.inverse()

    def __bytes__(self) -> bytes:
        """
        Serialize the field element as a 32-byte big-endian word.

        This is the encoding of a `bytes32` argument in ledger calls.

        Example:
            >>> len(bytes(Fr(value=42)))
            32
        """
        return self.value.to_bytes(P_BYTES, byteorder="big")

    @classmethod
    def from_bytes(cls, data: bytes) -> Self:
        """
        Decode a 32-byte big-endian word.

        Words at or above the modulus are rejected rather than reduced, since
        a ledger word carrying such a value cannot have come from this field.

        Raises:
            ValueError: If data has the wrong length or is not a canonical element.
        """
        if len(data) != P_BYTES:
            raise ValueError(f"Expected {P_BYTES} bytes, got {len(data)}")

        value = int.from_bytes(data, byteorder="big")

        if value >= P:
            raise ValueError(f"Value 0x{value:064x} exceeds field modulus")

        return cls(value=value)

    @classmethod
    def from_hex(cls, text: str) -> Self:
        """Decode a hex string, with or without a 0x prefix."""
        return cls.from_bytes(bytes.fromhex(text.removeprefix("0x").rjust(2 * P_BYTES, "0")))

    def hex(self) -> str:
        """0x-prefixed 32-byte hex encoding."""
        return "0x" + bytes(self).hex()
