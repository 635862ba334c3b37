"""
Tests for the airdrop store (in-memory and JSON file persistence).
"""

from __future__ import annotations

import json

import pytest

from airdrop_radar.models import AirdropFilters
from airdrop_radar.store import InMemoryAirdropStore, JsonFileAirdropStore


def test_query_filters_and_orders(store):
    live = store.query(AirdropFilters(status="live"))
    # featured が先頭、次に推定価値の高い順
    assert [a.id for a in live] == ["jupiter", "kamino"]

    assert [a.id for a in store.query(AirdropFilters(category="NFTs"))] == ["tensor"]
    assert [a.id for a in store.query(AirdropFilters(search="kmno"))] == ["kamino"]
    assert [a.id for a in store.query(AirdropFilters(friction_level="high"))] == ["tensor"]
    assert len(store.query()) == 4


def test_update_applies_changes_and_protects_identity(store):
    updated = store.update("kamino", {"status": "ended", "id": "other", "verified": True})
    assert updated.id == "kamino"
    assert updated.status == "ended"
    assert updated.verified is True
    assert store.get("kamino").status == "ended"
    assert store.get("other") is None


def test_update_unknown_id_and_bad_fields(store):
    with pytest.raises(KeyError):
        store.update("missing", {"status": "live"})
    with pytest.raises(ValueError):
        store.update("kamino", {"colour": "blue"})
    with pytest.raises(ValueError):
        store.update("kamino", {"status": "exploded"})


def test_delete(store):
    assert store.delete("tensor") is True
    assert store.delete("tensor") is False
    assert store.get("tensor") is None


def test_category_counts_and_stats(store):
    assert store.category_counts() == {"DeFi": 2, "DEX": 1, "Lending": 1}
    stats = store.stats()
    assert stats["total"] == 4
    assert stats["live"] == 2
    assert stats["verified"] == 1
    assert stats["byStatus"] == {"live": 2, "upcoming": 1, "ended": 1}


def test_upsert_stores_a_copy(sample_airdrops):
    store = InMemoryAirdropStore()
    airdrop = sample_airdrops[0]
    store.upsert([airdrop])
    airdrop.status = "ended"
    assert store.get("jupiter").status == "live"


def test_json_store_round_trip(tmp_path, sample_airdrops):
    path = tmp_path / "data" / "airdrops.json"
    store = JsonFileAirdropStore(str(path))
    assert store.list_all() == []

    store.upsert(sample_airdrops)
    assert path.exists()

    reloaded = JsonFileAirdropStore(str(path))
    jupiter = reloaded.get("jupiter")
    assert jupiter is not None
    assert jupiter.rules.min_transactions == 5
    assert jupiter.discovered_at == sample_airdrops[0].discovered_at
    assert reloaded.get("kamino").estimated_value == 200
    assert sorted(a.id for a in reloaded.list_all()) == sorted(a.id for a in sample_airdrops)

    reloaded.delete("tensor")
    assert JsonFileAirdropStore(str(path)).get("tensor") is None


def test_json_store_skips_corrupt_records(tmp_path):
    path = tmp_path / "airdrops.json"
    path.write_text(json.dumps({"airdrops": [
        {"id": "ok", "name": "Ok", "status": "live"},
        {"id": "bad", "name": "Bad", "status": "exploded"},
        {"name": "No id"},
    ]}), encoding="utf-8")
    store = JsonFileAirdropStore(str(path))
    assert [a.id for a in store.list_all()] == ["ok"]


def test_update_rejects_malformed_nested_values(store):
    for changes in (
        {"sources": [1]},
        {"estimatedValueRange": "big"},
        {"rules": "none"},
        {"categories": "DeFi"},
    ):
        with pytest.raises(ValueError):
            store.update("jupiter", changes)
    assert store.get("jupiter").categories == ["DEX", "DeFi"]
