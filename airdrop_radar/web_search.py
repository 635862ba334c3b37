"""
Web 検索ソース — 検索エンジン + 暗号資産ニュース RSS

■ 検索:
  - search_api_key + google_cse_id があれば Google Custom Search（クエリ先頭10件）
  - なければ CryptoPanic の hot 投稿から "airdrop" を含むものだけ（匿名、1回のみ）
■ ニュース:
  - CoinDesk / Cointelegraph / The Block / Decrypt / Blockworks の RSS（rss2json 経由）
  - タイトル or 本文に "airdrop" を含む記事のみ
"""
import logging
from typing import Optional

from .fetcher import BaseSource, FetchError, Target, filter_by_chain
from .models import AirdropSource, FetchOptions, ScoredCandidate, parse_datetime
from .rss import RSS2JSON_URL
from .sanitizer import derive_symbol, extract_project_name, html_to_text, sanitize, sanitize_and_truncate
from .scoring import (
    ScoringProfile,
    classify_claim_type,
    classify_friction,
    classify_status,
    detect_chain,
    infer_categories,
    score_text,
)

logger = logging.getLogger(__name__)

GOOGLE_CSE_URL = "https://www.googleapis.com/customsearch/v1"
CRYPTOPANIC_URL = "https://cryptopanic.com/api/posts/"
MAX_QUERIES = 10

SEARCH_QUERIES = (
    "solana airdrop claim 2025",
    "ethereum airdrop eligibility",
    "new crypto airdrop announced",
    "layer 2 airdrop snapshot",
    "defi protocol token distribution",
    "nft project airdrop",
    "gaming crypto airdrop",
    "testnet rewards airdrop",
    "retroactive airdrop claim",
    "crypto airdrop live now",
    "base network airdrop",
    "arbitrum airdrop season",
    "optimism airdrop eligibility",
    "zkSync airdrop claim",
    "starknet airdrop distribution",
    "linea airdrop campaign",
    "scroll airdrop points",
    "sui airdrop claim",
    "aptos airdrop rewards",
)

NEWS_FEEDS = (
    Target("news:coindesk", "CoinDesk", "news", "multi", url="https://coindesk.com/arc/outboundfeeds/rss/"),
    Target("news:cointelegraph", "Cointelegraph", "news", "multi", url="https://cointelegraph.com/rss"),
    Target("news:theblock", "The Block", "news", "multi", url="https://theblock.co/rss.xml"),
    Target("news:decrypt", "Decrypt", "news", "multi", url="https://decrypt.co/feed"),
    Target("news:blockworks", "Blockworks", "news", "multi", url="https://blockworks.co/news/feed"),
)

QUERY_TARGETS = tuple(
    Target(f"query:{q}", f'Search "{q}"', "defi", "multi") for q in SEARCH_QUERIES[:MAX_QUERIES]
)
CRYPTOPANIC_TARGET = Target("cryptopanic", "CryptoPanic", "news", "multi", url=CRYPTOPANIC_URL)

TRUSTED_SOURCES = ("coindesk", "cointelegraph", "theblock", "the block", "decrypt", "blockworks", "coinmarketcap")

WEB_PROFILE = ScoringProfile(
    keywords={
        "airdrop": 1.0,
        "claim": 0.8,
        "eligibility": 0.7,
        "snapshot": 0.8,
        "token distribution": 0.9,
        "retroactive": 0.9,
        "live": 0.6,
        "announced": 0.5,
        "rewards": 0.6,
        "points": 0.5,
    },
    high_confidence_at=0.8,
    multi_bonus=(0.0, 0.0),
    recency_tiers=((7 * 24, 0.2), (30 * 24, 0.1)),
    stale_after_hours=180 * 24,
    stale_penalty=0.3,
    trusted_bonus=0.15,
    trusted_signal="trusted_source",
)


class WebSearchSource(BaseSource):
    """Web 検索 + ニュース RSS スキャナー"""

    name = "web-search"
    TARGETS = QUERY_TARGETS + NEWS_FEEDS

    REQUEST_DELAY = 2.0
    REQUEST_JITTER = 0.0
    BATCH_SIZE = 3
    BATCH_DELAY = 2.0
    TIMEOUT = 15
    MAX_RETRIES = 1
    RETRY_BASE_DELAY = 1.0
    MIN_SCORE = 0.5

    @staticmethod
    def _has_search_api(options: FetchOptions) -> bool:
        creds = options.credentials
        return bool(creds.get("search_api_key") and creds.get("google_cse_id"))

    def select_targets(self, options: FetchOptions) -> list[Target]:
        search = QUERY_TARGETS if self._has_search_api(options) else (CRYPTOPANIC_TARGET,)
        return filter_by_chain(search + NEWS_FEEDS, options.chain_filter)

    async def scan_target(self, target: Target, options: FetchOptions) -> list[ScoredCandidate]:
        if target.key.startswith("query:"):
            results = await self._google_search(target.key[len("query:"):], options)
        elif target is CRYPTOPANIC_TARGET:
            results = await self._cryptopanic(options)
        else:
            results = await self._news_feed(target, options)

        found = []
        for result in results:
            candidate = self.analyze_result(result)
            if candidate is not None:
                found.append(candidate)
        return found

    # ── 検索バックエンド ──

    async def _google_search(self, query: str, options: FetchOptions) -> list[dict]:
        data = await self.get_json(
            GOOGLE_CSE_URL,
            headers=self.default_headers(options),
            params={
                "key": options.credentials["search_api_key"],
                "cx": options.credentials["google_cse_id"],
                "q": query,
                "num": "10",
            },
        ) or {}
        return [
            {
                "title": item.get("title", ""),
                "url": item.get("link", ""),
                "snippet": item.get("snippet", ""),
                "source": item.get("displayLink") or "Google Search",
            }
            for item in data.get("items") or []
        ]

    async def _cryptopanic(self, options: FetchOptions) -> list[dict]:
        data = await self.get_json(
            CRYPTOPANIC_URL,
            headers=self.default_headers(options),
            params={"public": "true", "filter": "hot"},
        ) or {}
        return [
            {
                "title": item.get("title", ""),
                "url": item.get("url", ""),
                "snippet": item.get("body") or "",
                "source": (item.get("source") or {}).get("title") or "CryptoPanic",
                "published_at": item.get("published_at"),
            }
            for item in data.get("results") or []
            if "airdrop" in (item.get("title") or "").lower()
        ]

    async def _news_feed(self, target: Target, options: FetchOptions) -> list[dict]:
        data = await self.get_json(
            RSS2JSON_URL,
            headers=self.default_headers(options),
            params={"rss_url": target.url},
        )
        if not data:
            return []
        if data.get("status") != "ok":
            raise FetchError("Invalid RSS response")

        results = []
        for item in (data.get("items") or [])[:10]:
            title = item.get("title") or ""
            description = html_to_text(item.get("description") or "")
            if "airdrop" not in title.lower() and "airdrop" not in description.lower():
                continue
            results.append({
                "title": title,
                "url": item.get("link", ""),
                "snippet": description[:500],
                "source": target.name,
                "published_at": item.get("pubDate"),
            })
        return results

    # ── スコアリング ──

    def analyze_result(self, result: dict) -> Optional[ScoredCandidate]:
        title = sanitize(result.get("title"))
        snippet = sanitize(result.get("snippet"))
        text = f"{title} {snippet}"
        source_name = (result.get("source") or "").lower()

        analysis = score_text(
            WEB_PROFILE, f"{text} {result.get('url') or ''}",
            published_at=parse_datetime(result.get("published_at")),
            trusted=any(s in source_name for s in TRUSTED_SOURCES),
        )
        if analysis is None or analysis.score < self.MIN_SCORE:
            return None

        url = sanitize(result.get("url"))
        name = extract_project_name(title)
        return ScoredCandidate(
            name=name,
            score=analysis.score,
            source=AirdropSource(type="web-search", url=url, confidence=analysis.score),
            symbol=derive_symbol(name),
            description=sanitize_and_truncate(snippet or title, 500),
            website=url,
            categories=infer_categories(text),
            chains=[detect_chain(text)],
            status=classify_status(text, analysis.signals),
            verified=analysis.score > 0.85,
            featured=analysis.score > 0.8,
            friction_level=classify_friction(text),
            claim_type=classify_claim_type(text),
            estimated_value_usd=round(150 * analysis.score),
            keywords=analysis.keywords,
            signals=analysis.signals,
        )
