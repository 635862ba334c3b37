"""
関連度スコアリング v1.2 — 全ソース共通のパラメータ化スコアラー

■ スコア計算（score_text）:
  1. サニタイズ + 小文字化、詐欺フレーズ一致で即除外
  2. キーワード重みの合計（高重みはシグナル付与）
  3. ボーナスルール（フレーズ群の組み合わせ）
  4. ネガティブキーワード減点
  5. 複数キーワード一致ボーナス
  6. 鮮度ボーナス / 古い情報の減点
  7. エンゲージメント・信頼ソース・注目カテゴリ/チェーン
  8. [0, max_score] にクランプ
  9. キーワードもボーナスルールも一致しなければ None
     （allow_signal_only のプロファイルはエンゲージメント等のシグナルだけでも残す）

■ 各アダプタは ScoringProfile（データのみ）でチューニングする
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .models import utcnow
from .sanitizer import sanitize

logger = logging.getLogger(__name__)

# ── 詐欺・スパム判定（スコアに関係なく即除外）──
SCAM_PHRASES = (
    "send sol", "send eth", "send usdc", "send usdt", "send crypto",
    "send first", "send a small amount",
    "private key", "seed phrase", "recovery phrase", "secret phrase",
    "mnemonic", "wallet validation", "validate your wallet",
    "sync your wallet", "double your",
    "bit.ly/", "tinyurl.com/", "t.ly/", "cutt.ly/", "rebrand.ly/",
    "shorturl.at/", "is.gd/",
)

# ── 手間レベル判定 ──
LOW_FRICTION_TERMS = (
    "claim now", "claim your", "claim live", "claim is live", "airdrop live",
    "airdrop is live", "claim available", "check eligibility",
    "snapshot taken", "snapshot has been taken", "claim",
)
HIGH_FRICTION_TERMS = (
    "testnet", "quest", "task", "galxe", "zealy", "points", "season",
    "leaderboard", "grind", "farming", "daily check-in", "referral",
)

# ── 受取方式判定 ──
ON_CHAIN_TERMS = (
    "on-chain", "onchain", "claim portal", "connect wallet", "connect your wallet",
    "smart contract", "merkle", "claim page", "claim site",
)
OFF_CHAIN_TERMS = (
    "off-chain", "offchain", "kyc", "google form", "form", "discord role",
    "galxe", "zealy", "email", "whitelist", "allowlist",
)

UPCOMING_TERMS = ("coming soon", "upcoming", "will be announced", "soon™", "stay tuned")

# ── カテゴリ ──
CATEGORY_MAP = {
    "defi":           ["DeFi"],
    "dex":            ["DEX", "DeFi"],
    "lending":        ["Lending", "DeFi"],
    "nft-lending":    ["NFTs", "Lending"],
    "perpetuals":     ["Perpetuals", "DeFi"],
    "nft":            ["NFTs"],
    "gaming":         ["Gaming"],
    "bridge":         ["Bridges", "Infrastructure"],
    "oracle":         ["Oracle", "Infrastructure"],
    "wallet":         ["Wallet", "Infrastructure"],
    "infrastructure": ["Infrastructure"],
    "ecosystem":      ["Infrastructure"],
    "liquid-staking": ["Liquid Staking", "DeFi"],
    "stablecoin":     ["DeFi"],
    "layer2":         ["Layer 2"],
    "governance":     ["Governance"],
    "social":         ["Social"],
    "testnet":        ["Testnets"],
    "news":           ["DeFi"],
    "influencer":     ["DeFi"],
}

CATEGORY_KEYWORDS = {
    "DEX":            ("dex", "swap", "amm", "liquidity pool"),
    "Lending":        ("lending", "borrow", "lend "),
    "Perpetuals":     ("perp", "perpetual", "futures"),
    "NFTs":           ("nft", "collection", "mint"),
    "Gaming":         ("game", "gaming", "play-to-earn", "p2e"),
    "Bridges":        ("bridge", "cross-chain", "crosschain"),
    "Liquid Staking": ("liquid staking", "lst", "restaking"),
    "Governance":     ("governance", "dao", "vote"),
    "Layer 2":        ("layer 2", "layer-2", "l2", "rollup", "zksync", "starknet",
                       "arbitrum", "optimism", "base network", "linea", "scroll"),
    "Testnets":       ("testnet",),
    "Social":         ("social", "socialfi"),
    "Oracle":         ("oracle",),
    "Wallet":         ("wallet app", "wallet extension"),
}

CHAIN_KEYWORDS = {
    "Solana":   ("solana", " sol ", "$sol"),
    "Ethereum": ("ethereum", " eth ", "$eth", "mainnet"),
    "Arbitrum": ("arbitrum",),
    "Optimism": ("optimism",),
    "Base":     ("base network", "on base", "base chain"),
    "zkSync":   ("zksync",),
    "Starknet": ("starknet",),
    "Linea":    ("linea",),
    "Scroll":   ("scroll",),
    "Sui":      (" sui ", "sui network"),
    "Aptos":    ("aptos",),
    "Cosmos":   ("cosmos",),
    "Polkadot": ("polkadot",),
}

# 価値推定の基準額（USD）
BASE_VALUES = {
    "defi": 250, "dex": 200, "lending": 180, "perpetuals": 220,
    "nft": 120, "gaming": 100, "bridge": 280, "oracle": 180,
    "wallet": 100, "infrastructure": 150, "liquid-staking": 200,
    "ecosystem": 300, "news": 50, "influencer": 50,
}
DEFAULT_BASE_VALUE = 150


@dataclass(frozen=True)
class BonusRule:
    """all_of の各グループ（どれか1語）が全て一致したら bonus + signal"""
    all_of: tuple
    bonus: float
    signal: str


@dataclass(frozen=True)
class ScoringProfile:
    """アダプタごとのチューニング（データのみ）"""
    keywords: dict
    high_confidence_at: float = 0.9
    bonus_rules: tuple = ()
    negative_keywords: tuple = ()
    negative_penalty: float = 0.15
    # ここに挙げたキーワードが一致していればネガティブ減点しない
    negatives_unless: tuple = ()
    multi_bonus: tuple = (0.3, 0.15)       # (3件以上, 2件)
    # (経過時間の上限[h], ボーナス) を昇順で
    recency_tiers: tuple = ()
    stale_after_hours: Optional[float] = None
    stale_penalty: float = 0.0
    # (エンゲージメント下限, ボーナス, シグナル) を降順で
    engagement_tiers: tuple = ()
    trusted_bonus: float = 0.0
    trusted_signal: str = ""
    hot_categories: frozenset = frozenset()
    hot_chains: frozenset = frozenset()
    hot_bonus: float = 0.0
    max_score: float = 1.0
    # キーワードなしでもシグナルがあれば候補に残す
    allow_signal_only: bool = False


@dataclass
class ScoreResult:
    score: float
    keywords: list[str] = field(default_factory=list)
    signals: list[str] = field(default_factory=list)

    def has(self, signal: str) -> bool:
        return signal in self.signals


def is_scam(text: str) -> bool:
    """詐欺・送金要求・短縮URLを含むか"""
    lowered = f" {sanitize(text).lower()} "
    return any(p in lowered for p in SCAM_PHRASES)


def _age_hours(published_at: Optional[datetime], now: datetime) -> Optional[float]:
    if published_at is None:
        return None
    return (now - published_at).total_seconds() / 3600


def _add_signal(signals: list[str], signal: str):
    if signal and signal not in signals:
        signals.append(signal)


def score_text(
    profile: ScoringProfile,
    text: str,
    *,
    published_at: Optional[datetime] = None,
    engagement: Optional[float] = None,
    trusted: bool = False,
    category: str = "",
    chain: str = "",
    extra_bonus: float = 0.0,
    extra_signals: tuple = (),
    now: Optional[datetime] = None,
) -> Optional[ScoreResult]:
    """テキストの関連度スコア（対象外なら None）"""
    lowered = sanitize(text).lower()
    if is_scam(lowered):
        logger.debug(f"詐欺フレーズ検出 → 除外: {lowered[:60]}")
        return None

    now = now or utcnow()
    score = 0.0
    keywords: list[str] = []
    signals: list[str] = []

    # ── キーワード ──
    for kw, weight in profile.keywords.items():
        if kw in lowered:
            keywords.append(kw)
            score += weight
            if weight >= profile.high_confidence_at:
                _add_signal(signals, "high_confidence_keyword")
            if "claim" in kw:
                _add_signal(signals, "claim_available")
            if "snapshot" in kw:
                _add_signal(signals, "snapshot_complete")

    # ── ボーナスルール ──
    rule_hits = 0
    for rule in profile.bonus_rules:
        if all(any(p in lowered for p in group) for group in rule.all_of):
            score += rule.bonus
            rule_hits += 1
            _add_signal(signals, rule.signal)

    # ── ネガティブ ──
    suppressed = any(k in keywords for k in profile.negatives_unless)
    if not suppressed:
        for neg in profile.negative_keywords:
            if neg in lowered:
                score -= profile.negative_penalty

    # ── 複数一致 ──
    if len(keywords) >= 3:
        score += profile.multi_bonus[0]
    elif len(keywords) == 2:
        score += profile.multi_bonus[1]

    # ── 鮮度 ──
    age = _age_hours(published_at, now)
    if age is not None:
        for max_age, bonus in profile.recency_tiers:
            if age < max_age:
                score += bonus
                break
        else:
            if profile.stale_after_hours is not None and age > profile.stale_after_hours:
                score -= profile.stale_penalty

    # ── エンゲージメント ──
    if engagement is not None:
        for threshold, bonus, signal in profile.engagement_tiers:
            if engagement > threshold:
                score += bonus
                _add_signal(signals, signal)
                break

    if trusted and profile.trusted_bonus:
        score += profile.trusted_bonus
        _add_signal(signals, profile.trusted_signal)

    if category.lower() in profile.hot_categories or chain.lower() in profile.hot_chains:
        score += profile.hot_bonus

    score += extra_bonus
    for s in extra_signals:
        _add_signal(signals, s)

    score = min(max(score, 0.0), profile.max_score)

    if not keywords and not rule_hits:
        if not (profile.allow_signal_only and signals):
            return None

    return ScoreResult(score=round(score, 4), keywords=keywords, signals=signals)


# ============================================================
# 派生分類
# ============================================================

def _count(text: str, terms: tuple) -> int:
    return sum(1 for t in terms if t in text)


def classify_friction(text: str) -> str:
    """claim 系の語が多ければ low、タスク系が多ければ high"""
    lowered = sanitize(text).lower()
    low = _count(lowered, LOW_FRICTION_TERMS)
    high = _count(lowered, HIGH_FRICTION_TERMS)
    if high > low:
        return "high"
    if low > high:
        return "low"
    return "medium"


def classify_claim_type(text: str, default: str = "mixed") -> str:
    lowered = sanitize(text).lower()
    on_chain = _count(lowered, ON_CHAIN_TERMS) > 0
    off_chain = _count(lowered, OFF_CHAIN_TERMS) > 0
    if on_chain and off_chain:
        return "mixed"
    if on_chain:
        return "on-chain"
    if off_chain:
        return "off-chain"
    return default


def classify_status(text: str, signals: list[str], live_signals: tuple = ("claim_available",)) -> str:
    if any(s in signals for s in live_signals):
        return "live"
    lowered = sanitize(text).lower()
    if any(t in lowered for t in UPCOMING_TERMS):
        return "upcoming"
    return "unverified"


def estimate_value(
    category: str,
    score: float,
    signals: list[str],
    base_values: Optional[dict] = None,
    default_base: float = DEFAULT_BASE_VALUE,
) -> int:
    """基準額 × (0.5 + 0.5·score) にシグナル倍率を掛ける"""
    table = BASE_VALUES if base_values is None else base_values
    value = table.get((category or "").lower(), default_base)
    value *= 0.5 + score * 0.5

    if "snapshot_complete" in signals:
        value *= 1.5
    if "claim_available" in signals:
        value *= 2
    if "high_confidence_keyword" in signals:
        value *= 1.3

    return round(value)


def categorize(category: str) -> list[str]:
    """アダプタ側カテゴリ → 正規カテゴリ"""
    return list(CATEGORY_MAP.get((category or "").lower(), ["DeFi"]))


def infer_categories(text: str, default: Optional[list[str]] = None) -> list[str]:
    lowered = f" {sanitize(text).lower()} "
    found = [cat for cat, words in CATEGORY_KEYWORDS.items() if any(w in lowered for w in words)]
    if found:
        if "DEX" in found or "Lending" in found or "Perpetuals" in found:
            found.append("DeFi")
        return found
    return list(default) if default is not None else ["DeFi"]


def detect_chain(text: str, default: str = "Solana") -> str:
    lowered = f" {sanitize(text).lower()} "
    for chain, words in CHAIN_KEYWORDS.items():
        if any(w in lowered for w in words):
            return chain
    return default
