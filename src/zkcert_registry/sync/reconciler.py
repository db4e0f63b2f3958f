"""
Reconciliation of the active leaf set from registry events.

The Problem
-----------
The registry contract only emits events: a leaf was added at an index, or
the leaf at an index was revoked. To rebuild the tree off-chain we need
the set of leaves that are still active, i.e. every addition minus the
additions that were later revoked.

Node providers cap the block range of a single log query, and queries
fail transiently. A scan over a long-lived registry therefore has to be
split into windows, retried, and resumable.

How It Works
------------
1. Load the cache of this registry. If it already covers the current
   block, return it without touching the ledger.
2. Scan from the block after the cache (or from `first_block`) to the
   current block in fixed windows, retrying each window a bounded number
   of times. A window that keeps failing aborts the reconciliation: a
   skipped window would silently corrupt the tree.
3. Drop re-delivered events, then bucket the rest into additions and
   revocations.
4. Each addition (cached ones first) consumes the first revocation with
   the same leaf and index. Unmatched additions are the active set.
5. A revocation left unconsumed has no addition and aborts.
6. Persist the active set with the current block as the new high mark.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from zkcert_registry.ledger import LeafEvent, LeafOperation, RegistryLedger
from zkcert_registry.metrics import log_query_retries, reconciled_leaves
from zkcert_registry.types import LogQueryError, OrphanRevocationError

from .cache import LeafLogCache, LeafLogCacheStore, LeafLogResult
from .config import LOG_BLOCK_WINDOW, LOG_RETRY_DELAY, MAX_LOG_QUERY_RETRIES

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]
"""Receives the scan progress as an integer percentage string, "0" to "100"."""


@dataclass(slots=True)
class LogReconciler:
    """Rebuilds the active leaf set of one registry from its event log."""

    ledger: RegistryLedger
    """Source of events and chain metadata."""

    cache_store: LeafLogCacheStore
    """Where reconciled snapshots are persisted."""

    first_block: int = 0
    """Block the registry was deployed in. Nothing before it is scanned."""

    block_window: int = LOG_BLOCK_WINDOW
    """Blocks per event query."""

    max_retries: int = MAX_LOG_QUERY_RETRIES
    """Attempts per window before giving up."""

    retry_delay: float = LOG_RETRY_DELAY
    """Seconds between attempts on a failing window."""

    on_progress: ProgressCallback | None = field(default=None, repr=False)
    """Optional progress sink."""

    async def reconcile(self) -> list[LeafLogResult]:
        """
        Return the leaves that are currently active in the registry.

        Raises:
            LogQueryError: If a block window could not be queried.
            OrphanRevocationError: If a revocation has no matching addition.
        """
        chain_id = await self.ledger.chain_id()
        address = self.ledger.address
        current_block = await self.ledger.block_number()

        cache = self.cache_store.load(chain_id, address)
        if cache is not None and cache.last_block_considered >= current_block:
            logger.info(
                "Leaf log cache is current at block %d, skipping scan",
                cache.last_block_considered,
            )
            self._report(100)
            return cache.results()

        start_block = self.first_block
        cached: list[LeafLogResult] = []
        if cache is not None:
            start_block = max(self.first_block, cache.last_block_considered + 1)
            cached = cache.results()

        events = await self._scan(start_block, current_block)

        added = cached + [_result(e) for e in events if e.operation is LeafOperation.ADD]
        revoked = [_result(e) for e in events if e.operation is LeafOperation.REVOKE]
        active = _consume_revocations(added, revoked)

        reconciled_leaves.set(len(active))
        logger.info(
            "Reconciled %d active leaves from %d new events up to block %d",
            len(active),
            len(events),
            current_block,
        )

        self.cache_store.save(LeafLogCache.build(chain_id, address, current_block, active))
        return active

    async def _scan(self, start_block: int, end_block: int) -> list[LeafEvent]:
        """Collect events of `[start_block, end_block]`, dropping re-deliveries."""
        events: list[LeafEvent] = []
        seen: set[tuple[str, int]] = set()
        total = end_block - start_block + 1

        self._report(0)
        for window_start in range(start_block, end_block + 1, self.block_window):
            window_end = min(window_start + self.block_window - 1, end_block)
            for event in await self._query_window(window_start, window_end):
                if event.key in seen:
                    logger.debug(
                        "Dropping re-delivered event %s:%d",
                        event.transaction_hash,
                        event.log_index,
                    )
                    continue
                seen.add(event.key)
                events.append(event)

            self._report((window_end - start_block + 1) * 100 // total)

        if total <= 0:
            self._report(100)
        return events

    async def _query_window(self, from_block: int, to_block: int) -> list[LeafEvent]:
        """Query one window, retrying transient failures."""
        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self.ledger.leaf_events(from_block, to_block)
            except Exception as exc:
                last_error = exc
                log_query_retries.inc()
                logger.warning(
                    "Event query for blocks %d-%d failed (attempt %d/%d): %s",
                    from_block,
                    to_block,
                    attempt,
                    self.max_retries,
                    exc,
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay)

        raise LogQueryError(from_block, to_block, self.max_retries, last_error)

    def _report(self, percent: int) -> None:
        if self.on_progress is not None:
            self.on_progress(str(percent))


def _result(event: LeafEvent) -> LeafLogResult:
    return LeafLogResult(leaf_hash=event.leaf_hash, index=event.index)


def _consume_revocations(
    added: list[LeafLogResult], revoked: list[LeafLogResult]
) -> list[LeafLogResult]:
    """
    Remove revoked additions, one revocation per addition.

    Raises:
        OrphanRevocationError: If a revocation matches no addition.
    """
    pending = list(revoked)
    active: list[LeafLogResult] = []
    for entry in added:
        try:
            pending.remove(entry)
        except ValueError:
            active.append(entry)

    if pending:
        orphan = pending[0]
        raise OrphanRevocationError(orphan.leaf_hash, orphan.index)
    return active
