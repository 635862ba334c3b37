"""
X（Twitter）ソース v1.1 — プロトコル公式 / エアドロ系アカウントのタイムライン監視

■ 仕組み:
  - Twitter API v2（Bearer トークン必須、未設定なら即スキップ）
  - users/by/username → users/{id}/tweets（最新10件）
  - URL / claim URL / ハッシュタグ / エンゲージメント / 鮮度で加点
  - 429 はレート制限としてそのアカウントだけスキップ
"""
import logging
from typing import Optional

from .fetcher import BaseSource, Target
from .models import AirdropSource, FetchOptions, ScoredCandidate, parse_datetime
from .sanitizer import derive_symbol, sanitize, truncate
from .scoring import (
    ScoringProfile,
    categorize,
    classify_claim_type,
    classify_friction,
    estimate_value,
    is_scam,
    score_text,
)

logger = logging.getLogger(__name__)

API_BASE = "https://api.twitter.com/2"
TWEETS_PER_ACCOUNT = 10

# 監視対象アカウント（username, 表示名, カテゴリ）
WATCH_ACCOUNTS = (
    # 主要プロトコル
    Target("solana", "Solana", "ecosystem"),
    Target("JupiterExchange", "Jupiter", "defi"),
    Target("jito_sol", "Jito", "liquid-staking"),
    Target("PythNetwork", "Pyth Network", "oracle", "multi"),
    Target("marginfi", "MarginFi", "lending"),
    Target("DriftProtocol", "Drift", "perpetuals"),
    Target("TensorTrade", "Tensor", "nft"),
    Target("SharkyFi", "Sharky", "nft-lending"),
    Target("wormhole", "Wormhole", "bridge", "multi"),
    Target("staratlas", "Star Atlas", "gaming"),
    Target("RaydiumProtocol", "Raydium", "dex"),
    Target("orca_so", "Orca", "dex"),
    Target("MeteoraAG", "Meteora", "dex"),
    Target("KaminoFinance", "Kamino", "lending"),
    Target("solendprotocol", "Solend", "lending"),
    Target("phantom", "Phantom", "wallet", "multi"),
    Target("MagicEden", "Magic Eden", "nft", "multi"),
    Target("saber_hq", "Saber", "dex"),
    Target("HubbleProtocol", "Hubble", "lending"),
    Target("UXDProtocol", "UXD", "stablecoin"),
    # エアドロハンター / インフルエンサー
    Target("lookonchain", "Lookonchain", "news", "multi"),
    Target("whale_alert", "Whale Alert", "news", "multi"),
    Target("DeFiMoon", "DeFi Moon", "news", "multi"),
    Target("AirdropOfficial", "Airdrop Official", "news", "multi"),
    Target("cryptoalexo", "Alexo", "influencer", "multi"),
    Target("DefiIgnas", "DeFi Ignas", "influencer", "multi"),
)

AIRDROP_HASHTAGS = {"airdrop", "cryptoairdrop", "solanaairdrop"}

TWITTER_PROFILE = ScoringProfile(
    keywords={
        # 強シグナル
        "airdrop is live": 0.4,
        "claim your": 0.4,
        "check if you're eligible": 0.4,
        "snapshot has been taken": 0.4,
        "retroactive airdrop": 0.4,
        "token generation event": 0.4,
        "tge announcement": 0.4,
        # 一般キーワード
        "airdrop": 0.2,
        "claim": 0.2,
        "eligibility": 0.2,
        "snapshot": 0.2,
        "air drop": 0.1,
        "claim now": 0.1,
        "check eligibility": 0.1,
        "snapshot taken": 0.1,
        "token distribution": 0.1,
        "retroactive": 0.1,
        "season rewards": 0.1,
        "points program": 0.1,
        "claim live": 0.1,
        "airdrop live": 0.1,
        "token claim": 0.1,
        "eligibility check": 0.1,
        "genesis drop": 0.1,
        "community drop": 0.1,
    },
    high_confidence_at=0.4,
    negative_keywords=(
        "just bought", "just sold", "price prediction", "technical analysis",
        "chart", "partnership with", "listing on",
    ),
    negative_penalty=0.15,
    negatives_unless=("airdrop",),
    multi_bonus=(0.0, 0.0),
    recency_tiers=((24, 0.2), (72, 0.1)),
    stale_after_hours=168,
    stale_penalty=0.2,
    engagement_tiers=((1000, 0.15, "high_engagement"), (100, 0.05, "")),
    allow_signal_only=True,
)


def tweet_engagement(metrics: dict) -> float:
    """いいね + RT×2 + リプライ×0.5"""
    metrics = metrics or {}
    return (
        metrics.get("like_count", 0)
        + metrics.get("retweet_count", 0) * 2
        + metrics.get("reply_count", 0) * 0.5
    )


class TwitterSource(BaseSource):
    """X（Twitter）タイムラインスキャナー"""

    name = "twitter"
    TARGETS = WATCH_ACCOUNTS

    REQUEST_DELAY = 1.0
    REQUEST_JITTER = 1.0
    BATCH_SIZE = 3
    BATCH_DELAY = 5.0
    TIMEOUT = 10
    MAX_RETRIES = 2
    RETRY_BASE_DELAY = 2.0
    MIN_SCORE = 0.5

    REQUIRED_CREDENTIAL = "twitter_bearer_token"
    MISSING_CREDENTIAL_ERROR = "Twitter API token not configured"

    def _headers(self, options: FetchOptions) -> dict:
        headers = self.default_headers(options)
        headers["Authorization"] = f"Bearer {options.credentials[self.REQUIRED_CREDENTIAL]}"
        return headers

    async def scan_target(self, target: Target, options: FetchOptions) -> list[ScoredCandidate]:
        headers = self._headers(options)

        user = await self.get_json(f"{API_BASE}/users/by/username/{target.key}", headers=headers)
        user_id = ((user or {}).get("data") or {}).get("id")
        if not user_id:
            logger.debug(f"[twitter] @{target.key} ユーザー取得失敗")
            return []

        timeline = await self.get_json(
            f"{API_BASE}/users/{user_id}/tweets",
            headers=headers,
            params={
                "max_results": str(TWEETS_PER_ACCOUNT),
                "tweet.fields": "created_at,public_metrics,entities",
            },
        )

        found = []
        for tweet in ((timeline or {}).get("data") or [])[:TWEETS_PER_ACCOUNT]:
            candidate = self.analyze_tweet(target, tweet)
            if candidate is not None:
                found.append(candidate)
        return found

    def analyze_tweet(self, target: Target, tweet: dict) -> Optional[ScoredCandidate]:
        text = sanitize(tweet.get("text"))
        entities = tweet.get("entities") or {}
        urls = [u.get("expanded_url") or u.get("url") or "" for u in entities.get("urls") or []]
        hashtags = [(h.get("tag") or "").lower() for h in entities.get("hashtags") or []]
        if is_scam(" ".join(urls)):
            return None

        # ── URL / ハッシュタグ加点 ──
        bonus = 0.0
        signals = []
        claim_urls = [u for u in urls if "claim" in u.lower() or "airdrop" in u.lower()]
        if urls:
            bonus += 0.1
        if claim_urls:
            bonus += 0.2 * len(claim_urls)
            signals.append("claim_url")
        bonus += 0.15 * sum(1 for h in hashtags if h in AIRDROP_HASHTAGS)

        engagement = tweet_engagement(tweet.get("public_metrics"))
        analysis = score_text(
            TWITTER_PROFILE, text,
            published_at=parse_datetime(tweet.get("created_at")),
            engagement=engagement,
            extra_bonus=bonus,
            extra_signals=tuple(signals),
        )
        if analysis is None or analysis.score < self.MIN_SCORE:
            return None

        lowered = text.lower()
        if analysis.has("claim_url") or "claim now" in analysis.keywords:
            status = "live"
        elif "coming soon" in lowered or " soon" in lowered:
            status = "upcoming"
        else:
            status = "unverified"

        claim_url = sanitize(claim_urls[0]) if claim_urls else ""
        value = estimate_value(target.category, analysis.score, analysis.signals)
        if engagement > 10000:
            value *= 2
        elif engagement > 5000:
            value *= 1.5

        profile_url = f"https://twitter.com/{target.key}"
        return ScoredCandidate(
            name=target.name,
            score=analysis.score,
            source=AirdropSource(
                type="twitter",
                url=f"{profile_url}/status/{tweet.get('id', '')}",
                confidence=analysis.score,
            ),
            symbol=derive_symbol(target.name),
            description=truncate(text, 280),
            twitter=profile_url,
            website=claim_url or profile_url,
            claim_url=claim_url,
            claim_type=classify_claim_type(text, "on-chain" if claim_url else "mixed"),
            categories=categorize(target.category),
            chains=["Solana"],
            status=status,
            verified=analysis.score > 0.85,
            featured=analysis.score > 0.8 and engagement > 500,
            friction_level=classify_friction(text),
            estimated_value_usd=round(value),
            community_score=engagement,
            keywords=analysis.keywords,
            signals=analysis.signals,
        )
