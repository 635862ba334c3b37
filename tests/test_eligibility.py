"""
Tests for the wallet eligibility rule evaluator.
"""

from __future__ import annotations

from datetime import timedelta

from airdrop_radar.eligibility import (
    ELIGIBLE_REASON,
    eligible_only,
    evaluate,
    evaluate_all,
    total_estimated_value,
)
from airdrop_radar.models import AirdropRule, WalletActivity

from conftest import NOW, WALLET, make_airdrop


def test_min_transactions_scenario_names_required_and_found():
    airdrop = make_airdrop("zeta", "Zeta", status="live", rules=AirdropRule(min_transactions=5))
    activity = WalletActivity(address=WALLET, transaction_counts={"progA": 1, "progB": 1})

    result = evaluate(activity, airdrop)

    assert not result.eligible
    assert len(result.missing_requirements) == 1
    message = result.missing_requirements[0]
    assert "5" in message and "2" in message
    assert result.reason == message


def test_every_failed_predicate_is_reported():
    airdrop = make_airdrop("all", "All Rules", status="live", rules=AirdropRule(
        required_programs=["progX"],
        min_transactions=10,
        required_tokens=["mintA"],
        min_token_amount=100,
        required_nfts=["nftA"],
        governance_actions=["vote"],
        bridge_usage=["wormhole"],
        testnet_participation=True,
    ))
    result = evaluate(WalletActivity(address=WALLET), airdrop)

    assert not result.eligible
    assert result.missing_requirements == [
        "Required program interaction not found",
        "Minimum 10 transactions required (found 0)",
        "Required token not held",
        "Minimum token amount: 100",
        "Required NFT not held",
        "Required governance participation not found",
        "Required bridge usage not found",
        "Testnet participation verification required",
    ]
    assert result.reason == "; ".join(result.missing_requirements)


def test_testnet_participation_is_never_satisfied():
    airdrop = make_airdrop("t", "T", status="live", rules=AirdropRule(testnet_participation=True))
    busy = WalletActivity(address=WALLET, programs=["anything"], transaction_counts={"anything": 500})
    result = evaluate(busy, airdrop)
    assert not result.eligible
    assert result.missing_requirements == ["Testnet participation verification required"]


def test_eligible_wallet(sample_airdrops, active_wallet):
    result = evaluate(active_wallet, sample_airdrops[0])
    assert result.eligible
    assert result.missing_requirements == []
    assert result.reason == ELIGIBLE_REASON
    assert result.estimated_value == 500
    assert result.claim_url == "https://claim.jup.ag"


def test_token_amount_and_nft_collections(active_wallet):
    kamino = make_airdrop("k", "K", rules=AirdropRule(required_tokens=["KMNOmint"], min_token_amount=10))
    result = evaluate(active_wallet, kamino)
    assert result.missing_requirements == ["Minimum token amount: 10"]

    by_collection = make_airdrop("n", "N", rules=AirdropRule(required_nfts=["collectionX"]))
    holder = WalletActivity(address=WALLET, nfts=["mint1"], nft_collections=["collectionX"])
    assert evaluate(holder, by_collection).eligible


def test_activity_window():
    rules = AirdropRule(earliest_transaction=NOW - timedelta(days=30), latest_transaction=NOW - timedelta(days=10))
    airdrop = make_airdrop("w", "W", rules=rules)

    inside = WalletActivity(
        address=WALLET,
        first_transaction_at=NOW - timedelta(days=60),
        last_transaction_at=NOW - timedelta(days=5),
    )
    assert evaluate(inside, airdrop).eligible

    too_old = WalletActivity(address=WALLET, first_transaction_at=NOW - timedelta(days=90), last_transaction_at=NOW - timedelta(days=60))
    assert evaluate(too_old, airdrop).missing_requirements == [
        f"Activity required after {(NOW - timedelta(days=30)).date().isoformat()}"
    ]

    too_new = WalletActivity(address=WALLET, first_transaction_at=NOW - timedelta(days=1), last_transaction_at=NOW)
    assert evaluate(too_new, airdrop).missing_requirements == [
        f"Activity required before {(NOW - timedelta(days=10)).date().isoformat()}"
    ]

    # タイムスタンプ不明なら失格にしない
    assert evaluate(WalletActivity(address=WALLET), airdrop).eligible


def test_evaluate_all_only_live_and_totals(sample_airdrops, active_wallet):
    results = evaluate_all(active_wallet, sample_airdrops)
    assert [r.airdrop_id for r in results] == ["jupiter", "kamino"]
    assert [r.airdrop_id for r in eligible_only(results)] == ["jupiter"]
    assert total_estimated_value(results) == 500

    rich = WalletActivity(
        address=WALLET,
        programs=active_wallet.programs,
        tokens={"KMNOmint": 50},
        transaction_counts=active_wallet.transaction_counts,
    )
    assert total_estimated_value(evaluate_all(rich, sample_airdrops)) == 700
