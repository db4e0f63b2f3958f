"""
Persistent cache of reconciled leaf logs.

One JSON file per (chain id, registry address) stores the active leaves
and the last block they account for, so a later reconciliation only scans
blocks added since. The file layout is:

    {
      "chainId": 41238,
      "registryAddress": "0xabc...",
      "lastBlockConsidered": 1234,
      "leafLogResults": [{"leafHash": "123...", "index": "0"}, ...]
    }

Leaf hashes and indices are decimal strings.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Self

from pydantic import Field, ValidationError

from zkcert_registry.field import Fr
from zkcert_registry.types import StrictBaseModel

logger = logging.getLogger(__name__)


class LeafLogResult(StrictBaseModel):
    """An active leaf and the index it occupies."""

    leaf_hash: Fr
    index: int = Field(ge=0)


class CachedLeaf(StrictBaseModel):
    """Serialized form of a `LeafLogResult`."""

    leaf_hash: str
    index: str

    @classmethod
    def from_result(cls, result: LeafLogResult) -> Self:
        return cls(leaf_hash=str(result.leaf_hash.value), index=str(result.index))

    def to_result(self) -> LeafLogResult:
        return LeafLogResult(leaf_hash=Fr(value=int(self.leaf_hash)), index=int(self.index))


class LeafLogCache(StrictBaseModel):
    """Snapshot of the reconciled leaf set of one registry."""

    chain_id: int
    registry_address: str
    last_block_considered: int
    leaf_log_results: tuple[CachedLeaf, ...] = ()

    @classmethod
    def build(
        cls,
        chain_id: int,
        registry_address: str,
        last_block_considered: int,
        results: list[LeafLogResult],
    ) -> Self:
        """Snapshot `results` for a registry up to and including a block."""
        return cls(
            chain_id=chain_id,
            registry_address=registry_address.lower(),
            last_block_considered=last_block_considered,
            leaf_log_results=tuple(CachedLeaf.from_result(r) for r in results),
        )

    def results(self) -> list[LeafLogResult]:
        """The cached leaves as domain values."""
        return [entry.to_result() for entry in self.leaf_log_results]


class LeafLogCacheStore:
    """
    Directory of leaf log cache files.

    Read and write failures never propagate. A broken cache only costs a
    longer scan, so it is logged and treated as absent.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, chain_id: int, registry_address: str) -> Path:
        """Cache file of one registry."""
        return self.directory / f"{chain_id}_{registry_address.lower()}.json"

    def load(self, chain_id: int, registry_address: str) -> LeafLogCache | None:
        """
        Read the cache of a registry.

        Returns None when there is no cache file, when it cannot be parsed,
        or when it belongs to another registry.
        """
        path = self.path_for(chain_id, registry_address)
        if not path.exists():
            return None

        try:
            cache = LeafLogCache.model_validate_json(path.read_text())
        except (OSError, ValidationError, ValueError) as exc:
            logger.warning("Ignoring unreadable leaf log cache %s: %s", path, exc)
            return None

        if cache.chain_id != chain_id or cache.registry_address != registry_address.lower():
            logger.warning("Ignoring leaf log cache %s written for another registry", path)
            return None

        return cache

    def save(self, cache: LeafLogCache) -> None:
        """Write a cache file, creating the directory on demand."""
        path = self.path_for(cache.chain_id, cache.registry_address)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(cache.model_dump_json(by_alias=True, indent=2))
        except OSError as exc:
            logger.warning("Could not write leaf log cache %s: %s", path, exc)
            return

        logger.debug(
            "Cached %d leaves up to block %d in %s",
            len(cache.leaf_log_results),
            cache.last_block_considered,
            path,
        )
