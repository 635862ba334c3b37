"""
ディスカバリー — 全ソースの並列実行 + スクレイプパイプライン

■ DiscoveryOrchestrator.discover()
  - 選択されたソースを asyncio.gather で同時実行
  - ソースごとの件数上限 = ceil(limit × 配分)
  - 例外を投げたソースは success=False の結果 + エラー文字列に変換
  - 確信度 min_confidence 未満の候補は除外（永続化はしない）

■ ScraperRunner.run()
  discover → reconcile → エンリッチメント（新規のみ）→ ended を除外 → 再照合 → upsert
  直近の実行結果と次回実行予定（6時間間隔）を保持する。
"""
import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

import aiohttp

from .config import config
from .enrichment import Enricher, apply_enrichment, build_enrichment_content
from .fetcher import BaseSource
from .github import GitHubSource
from .merge import reconcile, refold
from .models import Airdrop, DiscoveryResult, FetchOptions, ScoredCandidate, to_iso, utcnow
from .reddit import RedditSource
from .rss import RSSSource
from .store import AirdropStore
from .twitter import TwitterSource
from .web_search import WebSearchSource

logger = logging.getLogger(__name__)

SOURCE_CLASSES = (GitHubSource, RSSSource, TwitterSource, WebSearchSource, RedditSource)
DEFAULT_LIMIT = 150
DEFAULT_MIN_CONFIDENCE = 0.5
ENRICHMENT_DELAY = 0.5  # 秒


def build_sources(session: aiohttp.ClientSession, sleep: Optional[Callable] = None) -> dict[str, BaseSource]:
    """共有セッションで全ソースアダプタを生成"""
    return {cls.name: cls(session, sleep=sleep) for cls in SOURCE_CLASSES}


@dataclass
class DiscoveryReport:
    success: bool = False
    candidates: list[ScoredCandidate] = field(default_factory=list)
    results: dict[str, DiscoveryResult] = field(default_factory=dict)
    sources: dict[str, int] = field(default_factory=dict)
    total_discovered: int = 0
    errors: list[str] = field(default_factory=list)
    scraped_at: datetime = field(default_factory=utcnow)


class DiscoveryOrchestrator:
    """ソースアダプタ群の並列実行"""

    def __init__(self, sources: dict[str, BaseSource], shares: Optional[dict[str, float]] = None):
        self.sources = dict(sources)
        self.shares = dict(shares or config.source_shares)

    def source_limit(self, name: str, limit: int) -> int:
        return math.ceil(limit * self.shares.get(name, 1.0))

    async def discover(
        self,
        source_names: Optional[list[str]] = None,
        limit: int = DEFAULT_LIMIT,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        credentials: Optional[dict] = None,
        chain_filter: Optional[str] = None,
    ) -> DiscoveryReport:
        report = DiscoveryReport()
        names = list(source_names) if source_names else list(self.sources)

        selected = []
        for name in names:
            if name in self.sources:
                selected.append(name)
            else:
                report.errors.append(f"{name}: unknown source")

        logger.info(f"ディスカバリー開始: {', '.join(selected) or '(なし)'} limit={limit}")

        tasks = [
            self.sources[name].fetch(FetchOptions(
                limit=self.source_limit(name, limit),
                credentials=dict(credentials or {}),
                chain_filter=chain_filter,
            ))
            for name in selected
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        for name, outcome in zip(selected, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(f"ソース {name} エラー: {outcome}")
                outcome = DiscoveryResult(source=name, success=False, errors=[f"{name}: {outcome}"])

            report.results[name] = outcome
            report.sources[name] = len(outcome.airdrops)
            report.total_discovered += len(outcome.airdrops)
            report.errors.extend(outcome.errors)

            for candidate in outcome.airdrops:
                if candidate.sources[0].confidence >= min_confidence:
                    report.candidates.append(candidate)

        report.success = any(r.success for r in report.results.values())
        report.scraped_at = utcnow()
        logger.info(
            f"ディスカバリー完了: 発見 {report.total_discovered}件 → "
            f"確信度 {min_confidence} 以上 {len(report.candidates)}件 (エラー {len(report.errors)}件)"
        )
        return report


@dataclass
class ScraperRunResult:
    success: bool
    sources: dict[str, int]
    total_discovered: int
    new_airdrops: list[Airdrop]
    updated_airdrops: list[Airdrop]
    enriched: int = 0
    failed_enrichment: int = 0
    filtered_out: int = 0
    errors: list[str] = field(default_factory=list)
    scraped_at: datetime = field(default_factory=utcnow)

    def summary(self) -> dict:
        """GET /scraper/run 用の要約"""
        return {
            "success": self.success,
            "timestamp": to_iso(self.scraped_at),
            "newAirdrops": len(self.new_airdrops),
            "updatedAirdrops": len(self.updated_airdrops),
            "errors": list(self.errors),
        }

    def to_dict(self) -> dict:
        return {
            "newAirdrops": len(self.new_airdrops),
            "updatedAirdrops": len(self.updated_airdrops),
            "enriched": self.enriched,
            "failedEnrichment": self.failed_enrichment,
            "totalDiscovered": self.total_discovered,
            "filteredOut": self.filtered_out,
            "errors": list(self.errors),
            "sources": dict(self.sources),
            "airdrops": [a.to_dict(include_rules=False) for a in self.new_airdrops],
        }


class ScraperRunner:
    """スクレイプ実行（ディスカバリー → マージ → エンリッチ → 保存）"""

    def __init__(
        self,
        orchestrator: DiscoveryOrchestrator,
        store: AirdropStore,
        enricher: Optional[Enricher] = None,
        interval_hours: int = 6,
        limit: int = DEFAULT_LIMIT,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        credentials: Optional[dict] = None,
        sleep: Optional[Callable] = None,
    ):
        self.orchestrator = orchestrator
        self.store = store
        self.enricher = enricher
        self.interval = timedelta(hours=interval_hours)
        self.limit = limit
        self.min_confidence = min_confidence
        self.credentials = dict(credentials or {})
        self._sleep = sleep or asyncio.sleep
        self.last_run: Optional[ScraperRunResult] = None
        # apscheduler の Job（登録されていれば next_run_time を使う）
        self.job = None

    async def run(
        self,
        sources: Optional[list[str]] = None,
        limit: Optional[int] = None,
        min_confidence: Optional[float] = None,
    ) -> ScraperRunResult:
        report = await self.orchestrator.discover(
            source_names=sources,
            limit=limit or self.limit,
            min_confidence=self.min_confidence if min_confidence is None else min_confidence,
            credentials=self.credentials,
        )

        merged = reconcile(report.candidates, self.store.list_all(), now=report.scraped_at)
        new_airdrops = merged.new
        enriched = failed = 0

        if self.enricher is not None and new_airdrops:
            logger.info(f"エンリッチメント: {len(new_airdrops)}件")
            new_airdrops, enriched, failed = await self._enrich_all(new_airdrops)

        ongoing = [a for a in new_airdrops if a.status != "ended"]
        filtered_out = len(new_airdrops) - len(ongoing)
        if self.enricher is not None and ongoing:
            # 改名で既存と同名になったものは新規にしない
            merged = refold(ongoing, self.store.list_all(), merged.updated, now=report.scraped_at)
            ongoing = merged.new
        self.store.upsert(ongoing + merged.updated)

        result = ScraperRunResult(
            success=report.success,
            sources=report.sources,
            total_discovered=report.total_discovered,
            new_airdrops=ongoing,
            updated_airdrops=merged.updated,
            enriched=enriched,
            failed_enrichment=failed,
            filtered_out=filtered_out,
            errors=report.errors,
            scraped_at=report.scraped_at,
        )
        self.last_run = result
        logger.info(
            f"スクレイプ完了: 新規 {len(ongoing)}件 / 更新 {len(merged.updated)}件 / "
            f"エンリッチ {enriched}件 / 除外 {result.filtered_out}件"
        )
        return result

    async def _enrich_all(self, airdrops: list[Airdrop]) -> tuple[list[Airdrop], int, int]:
        out = []
        enriched = failed = 0
        for i, airdrop in enumerate(airdrops):
            try:
                outcome = await self.enricher.enrich(build_enrichment_content(airdrop))
            except Exception as e:
                logger.warning(f"エンリッチメント失敗: {airdrop.name}: {e}")
                out.append(airdrop)
                failed += 1
                continue

            updated = apply_enrichment(airdrop, outcome)
            if outcome.success and updated.status != "ended":
                enriched += 1
            else:
                failed += 1
            out.append(updated)

            if i < len(airdrops) - 1:
                await self._sleep(ENRICHMENT_DELAY)
        return out, enriched, failed

    def next_run_at(self) -> datetime:
        """次回実行予定"""
        if self.job is not None and getattr(self.job, "next_run_time", None):
            return self.job.next_run_time
        if self.last_run is not None:
            return self.last_run.scraped_at + self.interval
        return utcnow() + self.interval
