"""
Tests for the discovery orchestrator and the scrape pipeline runner.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

from airdrop_radar.discovery import (
    ENRICHMENT_DELAY,
    SOURCE_CLASSES,
    DiscoveryOrchestrator,
    ScraperRunner,
    build_sources,
)
from airdrop_radar.enrichment import Enrichment, EnrichmentResult
from airdrop_radar.models import AirdropSource, DiscoveryResult, ScoredCandidate
from airdrop_radar.store import InMemoryAirdropStore

from conftest import NOW, FakeSession, SleepRecorder


def candidate(name: str, score: float, source_type: str = "rss", **kwargs) -> ScoredCandidate:
    url = kwargs.pop("url", f"https://{name.lower()}.example/post")
    return ScoredCandidate(
        name=name,
        score=score,
        source=AirdropSource(type=source_type, url=url, fetched_at=NOW, confidence=score),
        **kwargs,
    )


class StaticSource:
    """決まった候補を返すソース（受け取ったオプションを記録）"""

    def __init__(self, name: str, candidates=(), errors=()):
        self.name = name
        self.candidates = list(candidates)
        self.errors = list(errors)
        self.options = []

    async def fetch(self, options):
        self.options.append(options)
        return DiscoveryResult(
            source=self.name,
            success=True,
            airdrops=list(self.candidates),
            errors=list(self.errors),
        )


class BrokenSource:
    name = "twitter"

    async def fetch(self, options):
        raise RuntimeError("boom")


class FakeEnricher:
    """名前ごとに結果を決め打ちするエンリッチャー"""

    def __init__(self, outcomes: dict):
        self.outcomes = outcomes
        self.contents: list[str] = []

    async def enrich(self, raw_text: str) -> EnrichmentResult:
        self.contents.append(raw_text)
        for name, outcome in self.outcomes.items():
            if f"Name: {name}" in raw_text:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return EnrichmentResult(success=False, error="no match")


def test_build_sources_uses_every_adapter():
    sources = build_sources(FakeSession())
    assert set(sources) == {"github", "rss", "twitter", "web-search", "reddit"}
    assert len(sources) == len(SOURCE_CLASSES)


def test_discover_isolates_failures_and_unknown_names():
    github = StaticSource("github", [candidate("Zeta", 0.8, "github")])
    orchestrator = DiscoveryOrchestrator({"github": github, "twitter": BrokenSource()})

    report = asyncio.run(orchestrator.discover(["github", "twitter", "mastodon"]))

    assert report.success is True
    assert [c.name for c in report.candidates] == ["Zeta"]
    assert report.results["twitter"].success is False
    assert report.sources == {"github": 1, "twitter": 0}
    assert "mastodon: unknown source" in report.errors
    assert "twitter: boom" in report.errors


def test_discover_all_failed_is_unsuccessful():
    report = asyncio.run(DiscoveryOrchestrator({"twitter": BrokenSource()}).discover())
    assert report.success is False
    assert report.candidates == []


def test_per_source_limit_is_share_of_total():
    github = StaticSource("github")
    reddit = StaticSource("reddit")
    custom = StaticSource("custom")
    orchestrator = DiscoveryOrchestrator(
        {"github": github, "reddit": reddit, "custom": custom},
        shares={"github": 0.4, "reddit": 0.15},
    )
    asyncio.run(orchestrator.discover(limit=10, credentials={"TWITTER_BEARER_TOKEN": "t"}))

    assert github.options[0].limit == 4
    assert reddit.options[0].limit == 2
    assert custom.options[0].limit == 10
    assert github.options[0].credentials == {"TWITTER_BEARER_TOKEN": "t"}


def test_min_confidence_filters_candidates_but_counts_discovered():
    source = StaticSource("rss", [candidate("Zeta", 0.8), candidate("Noise", 0.3), candidate("Edge", 0.5)])
    report = asyncio.run(DiscoveryOrchestrator({"rss": source}).discover(min_confidence=0.5))
    assert [c.name for c in report.candidates] == ["Zeta", "Edge"]
    assert report.total_discovered == 3


def test_scraper_run_pipeline(sample_airdrops):
    store = InMemoryAirdropStore(sample_airdrops)
    source = StaticSource("rss", [
        candidate("Zeta", 0.8, description="perp dex"),
        candidate("Parcl", 0.7),
        candidate("Noise", 0.2),
        candidate("Jupiter", 0.9, url="https://blog.jup.ag/lfg"),
    ])
    enricher = FakeEnricher({
        "Zeta": EnrichmentResult(success=True, data=Enrichment(symbol="ZEX", is_ongoing=True, confidence=0.9)),
        "Parcl": EnrichmentResult(success=True, data=Enrichment(is_ongoing=False, confidence=0.9)),
    })
    sleep = SleepRecorder()
    runner = ScraperRunner(DiscoveryOrchestrator({"rss": source}), store, enricher=enricher, sleep=sleep)

    result = asyncio.run(runner.run())

    assert [a.id for a in result.new_airdrops] == ["zeta"]
    assert [a.id for a in result.updated_airdrops] == ["jupiter"]
    assert result.enriched == 1
    assert result.failed_enrichment == 1
    assert result.filtered_out == 1
    assert result.total_discovered == 4

    assert store.get("zeta").symbol == "ZEX"
    assert store.get("parcl") is None
    assert store.get("noise") is None
    assert len(store.get("jupiter").sources) == 2
    assert sleep.delays == [ENRICHMENT_DELAY]
    assert runner.last_run is result

    summary = result.summary()
    assert summary["newAirdrops"] == 1
    assert summary["updatedAirdrops"] == 1
    body = result.to_dict()
    assert body["filteredOut"] == 1
    assert "rules" not in body["airdrops"][0]


def test_enrichment_exception_keeps_record():
    store = InMemoryAirdropStore()
    source = StaticSource("rss", [candidate("Zeta", 0.8)])
    enricher = FakeEnricher({"Zeta": RuntimeError("service down")})
    runner = ScraperRunner(DiscoveryOrchestrator({"rss": source}), store, enricher=enricher, sleep=SleepRecorder())

    result = asyncio.run(runner.run())

    assert result.failed_enrichment == 1
    assert store.get("zeta") is not None


def test_run_overrides_and_no_enricher():
    store = InMemoryAirdropStore()
    source = StaticSource("rss", [candidate("Zeta", 0.4)])
    runner = ScraperRunner(DiscoveryOrchestrator({"rss": source}, shares={"rss": 1.0}), store, limit=20)

    result = asyncio.run(runner.run(limit=7, min_confidence=0.3))

    assert source.options[0].limit == 7
    assert [a.id for a in result.new_airdrops] == ["zeta"]
    assert result.enriched == 0


def test_next_run_at():
    runner = ScraperRunner(DiscoveryOrchestrator({}), InMemoryAirdropStore(), interval_hours=6)
    before = runner.next_run_at()
    assert before > NOW

    asyncio.run(runner.run())
    assert runner.next_run_at() == runner.last_run.scraped_at + timedelta(hours=6)

    class JobStub:
        next_run_time = NOW

    runner.job = JobStub()
    assert runner.next_run_at() == NOW


def test_enrichment_rename_to_existing_name_updates_instead_of_duplicating(sample_airdrops):
    store = InMemoryAirdropStore(sample_airdrops)
    source = StaticSource("rss", [candidate("Zeta", 0.8)])
    enricher = FakeEnricher({
        "Zeta": EnrichmentResult(success=True, data=Enrichment(
            name="Jupiter", symbol="JUP", is_ongoing=True, confidence=0.9,
        )),
    })
    runner = ScraperRunner(DiscoveryOrchestrator({"rss": source}), store, enricher=enricher, sleep=SleepRecorder())

    result = asyncio.run(runner.run())

    assert result.new_airdrops == []
    assert [a.id for a in result.updated_airdrops] == ["jupiter"]
    assert result.enriched == 1
    assert store.get("zeta") is None
    names = [a.name.lower() for a in store.list_all()]
    assert len(names) == len(set(names))

    jupiter = store.get("jupiter")
    assert "https://zeta.example/post" in [s.url for s in jupiter.sources]
    assert jupiter.friction_level == "low"
    assert jupiter.claim_url == "https://claim.jup.ag"
    assert jupiter.rules.min_transactions == 5


def test_enrichment_renames_collapse_within_one_run():
    store = InMemoryAirdropStore()
    renamed = EnrichmentResult(success=True, data=Enrichment(name="Zeta Markets", is_ongoing=True, confidence=0.9))
    source = StaticSource("rss", [candidate("Zeta", 0.8), candidate("Zex", 0.7)])
    enricher = FakeEnricher({"Zeta": renamed, "Zex": renamed})
    runner = ScraperRunner(DiscoveryOrchestrator({"rss": source}), store, enricher=enricher, sleep=SleepRecorder())

    result = asyncio.run(runner.run())

    assert [a.id for a in result.new_airdrops] == ["zeta"]
    assert result.updated_airdrops == []
    assert [a.id for a in store.list_all()] == ["zeta"]
    assert [s.url for s in store.get("zeta").sources] == [
        "https://zeta.example/post",
        "https://zex.example/post",
    ]
