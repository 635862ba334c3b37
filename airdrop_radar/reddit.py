"""
Reddit ソース — 暗号資産系サブレディットの hot 投稿を監視（認証不要）

■ エンゲージメント = スコア + コメント数×2
■ 信頼サブレディット（CryptoAirdrops / solana / ethereum / CryptoCurrency）は加点
■ スコア上限 1.5（エンゲージメント加点を潰さないため）
"""
import logging
from typing import Optional

from .fetcher import BaseSource, Target
from .models import AirdropSource, FetchOptions, ScoredCandidate, parse_datetime
from .sanitizer import derive_symbol, extract_project_name, sanitize, sanitize_and_truncate
from .scoring import (
    ScoringProfile,
    classify_claim_type,
    classify_friction,
    detect_chain,
    score_text,
)

logger = logging.getLogger(__name__)

POSTS_PER_SUBREDDIT = 25

SUBREDDITS = (
    Target("CryptoAirdrops", "r/CryptoAirdrops", "defi", "multi"),
    Target("solana", "r/solana", "infrastructure", "solana"),
    Target("ethereum", "r/ethereum", "defi", "ethereum"),
    Target("CryptoCurrency", "r/CryptoCurrency", "defi", "multi"),
    Target("defi", "r/defi", "defi", "multi"),
    Target("NFT", "r/NFT", "nft", "multi"),
    Target("base", "r/base", "layer2", "base"),
    Target("arbitrum", "r/arbitrum", "layer2", "arbitrum"),
    Target("optimism", "r/optimism", "layer2", "optimism"),
    Target("layerzero", "r/layerzero", "bridge", "multi"),
    Target("zksync", "r/zksync", "layer2", "zksync"),
    Target("Starknet", "r/Starknet", "layer2", "starknet"),
    Target("sui", "r/sui", "defi", "sui"),
    Target("aptos", "r/aptos", "defi", "aptos"),
    Target("CosmosNetwork", "r/CosmosNetwork", "infrastructure", "cosmos"),
    Target("polkadot", "r/polkadot", "infrastructure", "polkadot"),
)

TRUSTED_SUBREDDITS = {"CryptoAirdrops", "solana", "ethereum", "CryptoCurrency"}

SUBREDDIT_CATEGORIES = {
    "solana": ["DeFi", "Infrastructure"],
    "ethereum": ["DeFi", "Layer 2"],
    "defi": ["DeFi"],
    "NFT": ["NFTs"],
    "base": ["Layer 2", "DeFi"],
    "arbitrum": ["Layer 2", "DeFi"],
    "optimism": ["Layer 2", "DeFi"],
    "layerzero": ["Bridges", "Infrastructure"],
    "zksync": ["Layer 2"],
    "Starknet": ["Layer 2"],
    "sui": ["DeFi"],
    "aptos": ["DeFi"],
    "CosmosNetwork": ["Infrastructure"],
    "polkadot": ["Infrastructure"],
}

SUBREDDIT_CHAINS = {
    "solana": "Solana", "ethereum": "Ethereum", "base": "Base",
    "arbitrum": "Arbitrum", "optimism": "Optimism", "zksync": "zkSync",
    "Starknet": "Starknet", "sui": "Sui", "aptos": "Aptos",
    "CosmosNetwork": "Cosmos", "polkadot": "Polkadot",
}

REDDIT_PROFILE = ScoringProfile(
    keywords={
        "airdrop": 1.0,
        "claim": 0.5,
        "eligibility": 0.5,
        "snapshot": 0.5,
        "token distribution": 0.5,
        "retroactive": 0.5,
        "rewards": 0.5,
        "points": 0.5,
        "season": 0.5,
        "allocation": 0.5,
    },
    high_confidence_at=1.0,
    multi_bonus=(0.0, 0.0),
    recency_tiers=((24, 0.2), (72, 0.1)),
    stale_after_hours=168,
    stale_penalty=0.2,
    engagement_tiers=((1000, 0.3, "high_engagement"), (100, 0.15, "")),
    trusted_bonus=0.1,
    trusted_signal="trusted_subreddit",
    max_score=1.5,
)


class RedditSource(BaseSource):
    """サブレディット hot 投稿スキャナー"""

    name = "reddit"
    TARGETS = SUBREDDITS

    REQUEST_DELAY = 1.5
    REQUEST_JITTER = 0.0
    BATCH_SIZE = 4
    BATCH_DELAY = 1.5
    TIMEOUT = 10
    MAX_RETRIES = 2
    RETRY_BASE_DELAY = 2.0
    MIN_SCORE = 0.5

    async def scan_target(self, target: Target, options: FetchOptions) -> list[ScoredCandidate]:
        data = await self.get_json(
            f"https://www.reddit.com/r/{target.key}/hot.json",
            headers=self.default_headers(options),
            params={"limit": str(POSTS_PER_SUBREDDIT)},
        )
        children = ((data or {}).get("data") or {}).get("children") or []

        found = []
        for child in children:
            post = child.get("data") or {}
            if post.get("stickied"):
                continue
            candidate = self.analyze_post(target, post)
            if candidate is not None:
                found.append(candidate)
        return found

    def analyze_post(self, target: Target, post: dict) -> Optional[ScoredCandidate]:
        title = sanitize(post.get("title"))
        body = sanitize(post.get("selftext"))
        text = f"{title} {body}"
        subreddit = post.get("subreddit") or target.key
        engagement = (post.get("score") or 0) + (post.get("num_comments") or 0) * 2

        analysis = score_text(
            REDDIT_PROFILE, f"{text} {post.get('url') or ''}",
            published_at=parse_datetime(post.get("created_utc")),
            engagement=engagement,
            trusted=subreddit in TRUSTED_SUBREDDITS,
        )
        if analysis is None or analysis.score < self.MIN_SCORE:
            return None

        permalink = f"https://reddit.com{post.get('permalink', '')}"
        url = post.get("url") or ""
        name = extract_project_name(title)

        value = 150 * (0.5 + min(analysis.score, 1.0) * 0.5)
        if engagement > 1000:
            value *= 1.5
        elif engagement > 500:
            value *= 1.2

        return ScoredCandidate(
            name=name,
            score=analysis.score,
            source=AirdropSource(type="reddit", url=permalink, confidence=analysis.score),
            symbol=derive_symbol(name),
            description=sanitize_and_truncate(post.get("selftext") or title, 500),
            website=url if url.startswith("http") else permalink,
            categories=list(SUBREDDIT_CATEGORIES.get(subreddit, ["DeFi"])),
            chains=[SUBREDDIT_CHAINS.get(subreddit) or detect_chain(text)],
            status="live" if analysis.has("high_engagement") else "unverified",
            verified=analysis.score > 0.8,
            featured=analysis.score > 0.85,
            friction_level=classify_friction(text),
            claim_type=classify_claim_type(text),
            estimated_value_usd=round(value),
            community_score=engagement,
            keywords=analysis.keywords,
            signals=analysis.signals,
        )
