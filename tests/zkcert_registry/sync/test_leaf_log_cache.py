"""Tests for the persistent leaf log cache."""

import json
import logging
from pathlib import Path

import pytest

from zkcert_registry.field import Fr
from zkcert_registry.sync import LeafLogCache, LeafLogCacheStore, LeafLogResult

from tests.zkcert_registry.helpers import CHAIN_ID, REGISTRY_ADDRESS, make_leaf


def results(*indices: int) -> list[LeafLogResult]:
    return [LeafLogResult(leaf_hash=make_leaf(i), index=i) for i in indices]


@pytest.fixture
def store(tmp_path: Path) -> LeafLogCacheStore:
    return LeafLogCacheStore(tmp_path / "cache")


class TestLeafLogCache:
    """The cache model and its file layout."""

    def test_build_lowercases_address(self) -> None:
        cache = LeafLogCache.build(CHAIN_ID, REGISTRY_ADDRESS, 10, results(0))
        assert cache.registry_address == REGISTRY_ADDRESS.lower()

    def test_results_roundtrip(self) -> None:
        entries = results(0, 3, 7)
        assert LeafLogCache.build(CHAIN_ID, REGISTRY_ADDRESS, 10, entries).results() == entries

    def test_wire_layout(self) -> None:
        entry = LeafLogResult(leaf_hash=Fr(value=123), index=4)
        cache = LeafLogCache.build(CHAIN_ID, REGISTRY_ADDRESS, 99, [entry])

        data = json.loads(cache.model_dump_json(by_alias=True))

        assert data == {
            "chainId": CHAIN_ID,
            "registryAddress": REGISTRY_ADDRESS.lower(),
            "lastBlockConsidered": 99,
            "leafLogResults": [{"leafHash": "123", "index": "4"}],
        }


class TestLeafLogCacheStore:
    """Reading and writing cache files."""

    def test_missing_file(self, store: LeafLogCacheStore) -> None:
        assert store.load(CHAIN_ID, REGISTRY_ADDRESS) is None

    def test_save_then_load(self, store: LeafLogCacheStore) -> None:
        cache = LeafLogCache.build(CHAIN_ID, REGISTRY_ADDRESS, 42, results(0, 1))
        store.save(cache)

        assert store.load(CHAIN_ID, REGISTRY_ADDRESS) == cache

    def test_file_name(self, store: LeafLogCacheStore) -> None:
        path = store.path_for(CHAIN_ID, REGISTRY_ADDRESS)
        assert path.name == f"{CHAIN_ID}_{REGISTRY_ADDRESS.lower()}.json"

    def test_address_case_is_ignored(self, store: LeafLogCacheStore) -> None:
        store.save(LeafLogCache.build(CHAIN_ID, REGISTRY_ADDRESS, 1, []))
        assert store.load(CHAIN_ID, REGISTRY_ADDRESS.upper().replace("0X", "0x")) is not None

    def test_corrupt_file_is_ignored(
        self, store: LeafLogCacheStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = store.path_for(CHAIN_ID, REGISTRY_ADDRESS)
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        with caplog.at_level(logging.WARNING):
            assert store.load(CHAIN_ID, REGISTRY_ADDRESS) is None
        assert "unreadable" in caplog.text

    def test_foreign_cache_is_ignored(self, store: LeafLogCacheStore) -> None:
        foreign = LeafLogCache.build(CHAIN_ID + 1, REGISTRY_ADDRESS, 1, [])
        path = store.path_for(CHAIN_ID, REGISTRY_ADDRESS)
        path.parent.mkdir(parents=True)
        path.write_text(foreign.model_dump_json(by_alias=True))

        assert store.load(CHAIN_ID, REGISTRY_ADDRESS) is None

    def test_unwritable_directory_is_logged(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = LeafLogCacheStore(blocker / "cache")

        with caplog.at_level(logging.WARNING):
            store.save(LeafLogCache.build(CHAIN_ID, REGISTRY_ADDRESS, 1, []))
        assert "Could not write" in caplog.text
