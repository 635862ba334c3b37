"""
RSS ソース — プロトコル公式ブログ / Solana 系ニュースのフィード監視

■ rss2json ブリッジ経由で JSON 取得（各フィード先頭5件）
■ claim 告知フレーズ → live、本文から claim URL / プロジェクト名を抽出
"""
import logging

from .fetcher import BaseSource, FetchError, Target
from .models import AirdropSource, FetchOptions, ScoredCandidate, parse_datetime
from .sanitizer import (
    derive_symbol,
    extract_claim_url,
    extract_project_name,
    html_to_text,
    sanitize,
    truncate,
)
from .scoring import (
    BonusRule,
    ScoringProfile,
    categorize,
    classify_friction,
    estimate_value,
    score_text,
)

logger = logging.getLogger(__name__)

RSS2JSON_URL = "https://api.rss2json.com/v1/api.json"
ITEMS_PER_FEED = 5

RSS_FEEDS = (
    # プロトコル公式ブログ
    Target("solana-foundation", "Solana Foundation", "ecosystem", url="https://solana.com/news"),
    Target("jupiter", "Jupiter", "defi", url="https://blog.jup.ag"),
    Target("magic-eden", "Magic Eden", "nft", "multi", url="https://magiceden.io/blog"),
    Target("phantom", "Phantom", "wallet", "multi", url="https://phantom.app/blog"),
    Target("marinade", "Marinade Finance", "liquid-staking", url="https://marinade.finance/blog"),
    Target("raydium", "Raydium", "dex", url="https://raydium.io/blog"),
    Target("orca", "Orca", "dex", url="https://www.orca.so/blog"),
    Target("meteora", "Meteora", "dex", url="https://meteora.ag/blog"),
    Target("kamino", "Kamino", "lending", url="https://kamino.finance/blog"),
    Target("drift", "Drift Protocol", "perpetuals", url="https://drift.trade/blog"),
    Target("tensor", "Tensor", "nft", url="https://tensor.trade/blog"),
    Target("wormhole", "Wormhole", "bridge", "multi", url="https://wormhole.com/blog"),
    Target("pyth", "Pyth Network", "oracle", "multi", url="https://pyth.network/blog"),
    Target("jito", "Jito", "liquid-staking", url="https://jito.network/blog"),
    Target("marginfi", "MarginFi", "lending", url="https://marginfi.com/blog"),
    Target("solend", "Solend", "lending", url="https://solend.fi/blog"),
    Target("star-atlas", "Star Atlas", "gaming", url="https://staratlas.com/blog"),
    Target("aurory", "Aurory", "gaming", url="https://aurory.io/blog"),
    Target("genopets", "Genopets", "gaming", url="https://genopets.me/blog"),
    Target("sharky", "Sharky", "nft-lending", url="https://sharky.fi/blog"),
    # ニュースアグリゲーター
    Target("solana-beach", "Solana Beach", "ecosystem", url="https://solanabeach.io/blog"),
    Target("solana-floor", "Solana Floor", "nft", url="https://solanafloor.com"),
    Target("solana-post", "The Solana Post", "ecosystem", url="https://thesolanapost.com"),
    # 暗号資産ニュース
    Target("coindesk-solana", "CoinDesk Solana", "news", url="https://coindesk.com/tag/solana"),
    Target("cointelegraph-solana", "Cointelegraph Solana", "news", url="https://cointelegraph.com/tags/solana"),
    Target("decrypt-solana", "Decrypt Solana", "news", url="https://decrypt.co/tag/solana"),
)

CLAIM_PHRASES = ("claim now", "check eligibility", "claim your", "airdrop live", "distribution begins")

RSS_PROFILE = ScoringProfile(
    keywords={
        "airdrop": 0.25, "claim": 0.25, "eligibility": 0.25, "snapshot": 0.25,
        "token": 0.15, "rewards": 0.15, "points": 0.15,
        "distribution": 0.08, "retroactive": 0.08, "season": 0.08,
        "allocation": 0.08, "genesis": 0.08, "launch": 0.08, "tge": 0.08,
        "token generation": 0.08, "community rewards": 0.08,
        "early user": 0.08, "loyalty rewards": 0.08,
    },
    high_confidence_at=0.25,
    bonus_rules=(
        BonusRule(all_of=(("token", "$"), ("launch", "announcing")), bonus=0.2, signal="token_launch"),
        BonusRule(all_of=(CLAIM_PHRASES,), bonus=0.3, signal="claim_announcement"),
    ),
    negative_keywords=("partnership", "integration", "listing", "hackathon", "event", "conference", "ama"),
    negative_penalty=0.1,
    negatives_unless=("airdrop",),
    multi_bonus=(0.0, 0.0),
    recency_tiers=((7 * 24, 0.15), (30 * 24, 0.05)),
    stale_after_hours=90 * 24,
    stale_penalty=0.2,
)


class RSSSource(BaseSource):
    """プロトコルブログ RSS スキャナー"""

    name = "rss"
    TARGETS = RSS_FEEDS

    REQUEST_DELAY = 0.5
    REQUEST_JITTER = 0.5
    BATCH_SIZE = 5
    BATCH_DELAY = 2.0
    TIMEOUT = 15
    MAX_RETRIES = 2
    RETRY_BASE_DELAY = 1.0
    MIN_SCORE = 0.5

    async def scan_target(self, target: Target, options: FetchOptions) -> list[ScoredCandidate]:
        data = await self.get_json(
            RSS2JSON_URL,
            headers=self.default_headers(options),
            params={"rss_url": target.url},
        )
        if not data:
            return []
        if data.get("status") != "ok":
            raise FetchError("Invalid RSS response")

        found = []
        for item in (data.get("items") or [])[:ITEMS_PER_FEED]:
            title = sanitize(item.get("title"))
            description = html_to_text(item.get("description") or "")[:500]
            analysis = score_text(
                RSS_PROFILE, f"{title} {description}",
                published_at=parse_datetime(item.get("pubDate")),
            )
            if analysis and analysis.score >= self.MIN_SCORE:
                found.append(self._to_candidate(target, item, title, description, analysis))
        return found

    def _to_candidate(self, target: Target, item: dict, title: str, description: str, analysis) -> ScoredCandidate:
        link = item.get("link", "")
        name = extract_project_name(title, target.name)
        claim_url = extract_claim_url(item.get("description") or "") or ""
        text = f"{title} {description}"
        return ScoredCandidate(
            name=name,
            score=analysis.score,
            source=AirdropSource(type="rss", url=link, confidence=analysis.score),
            symbol=derive_symbol(name),
            description=truncate(description or title, 500),
            website=link,
            blog=target.url,
            claim_url=claim_url,
            claim_type="on-chain" if claim_url else "mixed",
            categories=categorize(target.category),
            chains=["Solana"],
            status="live" if analysis.has("claim_announcement") else "unverified",
            verified=analysis.score > 0.85,
            featured=analysis.score > 0.8,
            friction_level=classify_friction(text),
            estimated_value_usd=estimate_value(target.category, analysis.score, analysis.signals),
            image_url=item.get("thumbnail") or (item.get("enclosure") or {}).get("link") or "",
            keywords=analysis.keywords,
            signals=analysis.signals,
        )
