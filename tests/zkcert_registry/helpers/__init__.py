"""Test helpers for registry engine unit tests."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TypeVar

from zkcert_registry.field import Fr

from .mocks import (
    CHAIN_ID,
    GUARDIAN,
    OTHER_ACCOUNT,
    QUEUE_EXPIRATION_TIME,
    REGISTRY_ADDRESS,
    FakeRegistryLedger,
)

_T = TypeVar("_T")


def run_async(coro: Coroutine[object, object, _T]) -> _T:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def make_leaf(seed: int) -> Fr:
    """A distinct, non-empty leaf value."""
    return Fr(value=1_000_003 * (seed + 1))


__all__ = [
    "CHAIN_ID",
    "FakeRegistryLedger",
    "GUARDIAN",
    "OTHER_ACCOUNT",
    "QUEUE_EXPIRATION_TIME",
    "REGISTRY_ADDRESS",
    "make_leaf",
    "run_async",
]
