"""
適格性判定 — ウォレット活動 × エアドロップのルール

設定されている条件を全てチェックし、不足をすべて列挙する（途中で打ち切らない）。
テストネット参加は自動判定できないため、設定されていれば常に未充足として扱う。
"""
import logging
from typing import Iterable

from .models import Airdrop, EligibilityResult, WalletActivity

logger = logging.getLogger(__name__)

ELIGIBLE_REASON = "Wallet meets all eligibility requirements"


def _missing_requirements(activity: WalletActivity, airdrop: Airdrop) -> list[str]:
    rules = airdrop.rules
    missing: list[str] = []

    if rules.required_programs:
        programs = set(activity.programs)
        if not any(p in programs for p in rules.required_programs):
            missing.append("Required program interaction not found")

    if rules.min_transactions is not None:
        total = activity.total_transactions
        if total < rules.min_transactions:
            missing.append(
                f"Minimum {rules.min_transactions} transactions required (found {total})"
            )

    if rules.required_tokens:
        if not any(t in activity.tokens for t in rules.required_tokens):
            missing.append("Required token not held")

    if rules.min_token_amount is not None:
        held = [activity.tokens.get(t, 0) for t in rules.required_tokens] or list(activity.tokens.values())
        if not any(amount >= rules.min_token_amount for amount in held):
            missing.append(f"Minimum token amount: {rules.min_token_amount:g}")

    if rules.required_nfts:
        owned = set(activity.nfts) | set(activity.nft_collections)
        if not any(n in owned for n in rules.required_nfts):
            missing.append("Required NFT not held")

    if rules.governance_actions:
        if not any(g in activity.governance_actions for g in rules.governance_actions):
            missing.append("Required governance participation not found")

    if rules.bridge_usage:
        if not any(b in activity.bridges for b in rules.bridge_usage):
            missing.append("Required bridge usage not found")

    if rules.testnet_participation:
        missing.append("Testnet participation verification required")

    # 期間条件（タイムスタンプ不明なら失格にしない）
    if rules.earliest_transaction is not None and activity.last_transaction_at is not None:
        if activity.last_transaction_at < rules.earliest_transaction:
            missing.append(
                f"Activity required after {rules.earliest_transaction.date().isoformat()}"
            )

    if rules.latest_transaction is not None and activity.first_transaction_at is not None:
        if activity.first_transaction_at > rules.latest_transaction:
            missing.append(
                f"Activity required before {rules.latest_transaction.date().isoformat()}"
            )

    return missing


def evaluate(activity: WalletActivity, airdrop: Airdrop) -> EligibilityResult:
    """1件のエアドロップに対する適格性"""
    missing = _missing_requirements(activity, airdrop)
    eligible = not missing
    return EligibilityResult(
        eligible=eligible,
        airdrop_id=airdrop.id,
        airdrop_name=airdrop.name,
        estimated_value=airdrop.estimated_value,
        reason=ELIGIBLE_REASON if eligible else "; ".join(missing),
        missing_requirements=missing,
        claim_url=airdrop.claim_url,
        friction_level=airdrop.friction_level,
        categories=list(airdrop.categories),
    )


def evaluate_all(activity: WalletActivity, airdrops: Iterable[Airdrop]) -> list[EligibilityResult]:
    """live のエアドロップ全件を判定"""
    results = [evaluate(activity, a) for a in airdrops if a.status == "live"]
    eligible = sum(1 for r in results if r.eligible)
    logger.info(f"適格性判定: {activity.address[:8]}... {eligible}/{len(results)}件が適格")
    return results


def eligible_only(results: Iterable[EligibilityResult]) -> list[EligibilityResult]:
    return [r for r in results if r.eligible]


def total_estimated_value(results: Iterable[EligibilityResult]) -> float:
    """適格な結果の推定価値合計"""
    return sum(r.estimated_value or 0 for r in results if r.eligible)
