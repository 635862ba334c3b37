"""
GitHub ソース — Solana 主要プロトコルのリリース / Issue を監視

■ 取得内容:
  - リリース（最新15件）: スコア 0.5 以上を採用、claim シグナルで live
  - Issue（PR を除く最新5件）: スコア 0.6 以上を採用、価値は 0.7 倍
■ レート制限:
  - 403/429 → RateLimitError
  - x-ratelimit-remaining < 10 → reset まで待機（最大60秒）
  - トークンなしは匿名アクセス（バッチ縮小 + ディレイ延長）
"""
import logging
import time

from .fetcher import BaseSource, Target
from .models import AirdropSource, FetchOptions, ScoredCandidate, parse_datetime
from .sanitizer import derive_symbol, extract_requirements, sanitize, sanitize_and_truncate
from .scoring import (
    ScoringProfile,
    categorize,
    classify_friction,
    estimate_value,
    score_text,
)

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"

TARGET_REPOS = (
    Target("jup-ag/core", "Jupiter", "defi"),
    Target("jito-foundation/jito-dapps", "Jito", "defi"),
    Target("pyth-network/pyth-sdk-solana", "Pyth", "oracle"),
    Target("marginfi/protocol", "MarginFi", "lending"),
    Target("drift-labs/protocol-v2", "Drift", "perpetuals"),
    Target("tensor-hq/tensor-sdk", "Tensor", "nft"),
    Target("sharky-fi/sharky-protocol", "Sharky", "nft-lending"),
    Target("wormhole-foundation/wormhole", "Wormhole", "bridge", "multi"),
    Target("raydium-io/raydium-sdk", "Raydium", "dex"),
    Target("orca-so/whirlpool", "Orca", "dex"),
    Target("meteora-ag/dlmm-sdk", "Meteora", "dex"),
    Target("Kamino-Finance/lending", "Kamino", "lending"),
    Target("solendprotocol/solana-program-library", "Solend", "lending"),
    Target("PhantomApp/phantom-core", "Phantom", "wallet", "multi"),
    Target("HubbleProtocol/hubble-contracts", "Hubble", "lending"),
    Target("UXDProtocol/uxd-program", "UXD", "stablecoin"),
    Target("saber-hq/saber-common", "Saber", "dex"),
    Target("StarAtlasMeta/star-atlas", "Star Atlas", "gaming"),
)

GITHUB_PROFILE = ScoringProfile(
    keywords={
        "airdrop": 1.0,
        "air drop": 1.0,
        "token distribution": 0.95,
        "claim now": 0.95,
        "eligibility check": 0.9,
        "snapshot taken": 0.9,
        "retroactive airdrop": 0.95,
        "token generation event": 0.85,
        "tge": 0.8,
        "token launch": 0.7,
        "token claim": 0.8,
        "rewards program": 0.6,
        "points program": 0.5,
        "season rewards": 0.6,
        "community allocation": 0.7,
        "governance token": 0.65,
        "early user rewards": 0.75,
        "claim": 0.4,
        "eligibility": 0.5,
        "snapshot": 0.6,
        "rewards": 0.4,
        "retroactive": 0.7,
        "genesis": 0.5,
        "vesting": 0.4,
        "distribution": 0.4,
    },
    high_confidence_at=0.9,
    negative_keywords=(
        "partnership", "integration", "listing", "hackathon", "event",
        "conference", "ama", "sponsor", "collaboration", "exchange listing",
    ),
    negative_penalty=0.15,
    multi_bonus=(0.3, 0.15),
    recency_tiers=((7 * 24, 0.25), (14 * 24, 0.15), (30 * 24, 0.05)),
    stale_after_hours=180 * 24,
    stale_penalty=0.3,
    hot_categories=frozenset({"defi", "nft", "gaming", "bridge"}),
    hot_bonus=0.1,
)

RELEASE_MIN_SCORE = 0.5
ISSUE_MIN_SCORE = 0.6
RATE_LIMIT_FLOOR = 10
RATE_LIMIT_MAX_WAIT = 60.0


class GitHubSource(BaseSource):
    """GitHub リリース / Issue スキャナー"""

    name = "github"
    TARGETS = TARGET_REPOS

    REQUEST_DELAY = 2.0
    REQUEST_JITTER = 3.0
    BATCH_SIZE = 5
    BATCH_DELAY = 5.0
    TIMEOUT = 10
    MAX_RETRIES = 3
    RETRY_BASE_DELAY = 2.0
    MIN_SCORE = RELEASE_MIN_SCORE

    # 匿名アクセス時（60 req/h）
    ANON_BATCH_SIZE = 2
    ANON_BATCH_DELAY = 10.0

    def pacing(self, options: FetchOptions) -> tuple[int, float]:
        if options.credentials.get("github_token"):
            return self.BATCH_SIZE, self.BATCH_DELAY
        return self.ANON_BATCH_SIZE, self.ANON_BATCH_DELAY

    def _headers(self, options: FetchOptions) -> dict:
        headers = self.default_headers(options)
        headers["Accept"] = "application/vnd.github.v3+json"
        token = options.credentials.get("github_token")
        if token:
            headers["Authorization"] = f"token {token}"
        return headers

    async def on_response(self, resp):
        """レート残量が少なければ reset まで待つ"""
        remaining = resp.headers.get("x-ratelimit-remaining")
        reset = resp.headers.get("x-ratelimit-reset")
        if remaining is None or reset is None:
            return
        try:
            remaining_n = int(remaining)
            reset_at = float(reset)
        except ValueError:
            return
        if remaining_n < RATE_LIMIT_FLOOR:
            wait = min(max(reset_at - time.time(), 0.0), RATE_LIMIT_MAX_WAIT)
            logger.info(f"[github] レート残量 {remaining_n} → {wait:.0f}秒待機")
            await self._sleep(wait)

    async def scan_target(self, target: Target, options: FetchOptions) -> list[ScoredCandidate]:
        headers = self._headers(options)
        found: list[ScoredCandidate] = []

        releases = await self.get_json(
            f"{API_BASE}/repos/{target.key}/releases",
            headers=headers,
            params={"per_page": "15"},
        ) or []
        for release in releases:
            text = f"{release.get('name') or ''} {release.get('body') or ''}"
            analysis = score_text(
                GITHUB_PROFILE, text,
                published_at=parse_datetime(release.get("published_at")),
                category=target.category,
            )
            if analysis and analysis.score >= RELEASE_MIN_SCORE:
                found.append(self._from_release(target, release, analysis))

        await self._pace()

        issues = await self.get_json(
            f"{API_BASE}/repos/{target.key}/issues",
            headers=headers,
            params={"state": "open", "per_page": "10"},
        ) or []
        issues = [i for i in issues if "pull_request" not in i][:5]
        for issue in issues:
            text = f"{issue.get('title') or ''} {issue.get('body') or ''}"
            analysis = score_text(
                GITHUB_PROFILE, text,
                published_at=parse_datetime(issue.get("created_at")),
                category=target.category,
            )
            if analysis and analysis.score >= ISSUE_MIN_SCORE:
                found.append(self._from_issue(target, issue, analysis))

        if found:
            logger.debug(f"[github] {target.key}: {len(found)}件")
        return found

    def _from_release(self, target: Target, release: dict, analysis) -> ScoredCandidate:
        url = release.get("html_url", "")
        body = release.get("body") or ""
        claim = analysis.has("claim_available")
        return ScoredCandidate(
            name=target.name,
            score=analysis.score,
            source=AirdropSource(type="github", url=url, confidence=analysis.score),
            symbol=derive_symbol(target.name),
            description=sanitize_and_truncate(body, 500),
            website=url,
            github=url,
            categories=categorize(target.category),
            chains=["Solana"],
            status="live" if claim else "unverified",
            verified=analysis.score > 0.85,
            featured=analysis.score > 0.8,
            friction_level="low" if claim else classify_friction(body),
            claim_type="on-chain",
            estimated_value_usd=estimate_value(target.category, analysis.score, analysis.signals),
            requirements=extract_requirements(body),
            keywords=analysis.keywords,
            signals=analysis.signals,
        )

    def _from_issue(self, target: Target, issue: dict, analysis) -> ScoredCandidate:
        url = issue.get("html_url", "")
        body = sanitize(issue.get("body") or "")
        value = estimate_value(target.category, analysis.score, analysis.signals)
        return ScoredCandidate(
            name=target.name,
            score=analysis.score,
            source=AirdropSource(type="github", url=url, confidence=analysis.score),
            symbol=derive_symbol(target.name),
            description=sanitize_and_truncate(body, 500),
            website=url,
            github=url,
            categories=categorize(target.category),
            chains=["Solana"],
            status="unverified",
            verified=analysis.score > 0.9,
            featured=analysis.score > 0.85,
            friction_level="medium",
            claim_type="mixed",
            estimated_value_usd=round(value * 0.7),
            keywords=analysis.keywords,
            signals=analysis.signals,
        )
