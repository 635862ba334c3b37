"""設定管理 — Airdrop Radar v1.2"""
import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Config:
    # ── ソース認証情報（任意） ──
    github_token: str = os.getenv("GITHUB_TOKEN", "")
    twitter_bearer_token: str = os.getenv("TWITTER_BEARER_TOKEN", "")
    search_api_key: str = os.getenv("SEARCH_API_KEY", "")
    google_cse_id: str = os.getenv("GOOGLE_CSE_ID", "")

    # ── 管理者トークン（空なら認証なし） ──
    admin_token: str = os.getenv("ADMIN_TOKEN", "")

    # ── 外部コラボレーター ──
    enrichment_url: str = os.getenv("ENRICHMENT_URL", "")
    wallet_scanner_url: str = os.getenv("WALLET_SCANNER_URL", "")

    # ── ストア ──
    store_file: str = os.getenv("AIRDROP_STORE_FILE", "data/airdrops.json")
    # 空のストアに既知エアドロップを投入する
    seed_store: bool = os.getenv("SEED_STORE", "true").lower() == "true"

    # ── 機能トグル ──
    enable_scheduler: bool = os.getenv("ENABLE_SCHEDULER", "true").lower() == "true"
    enable_enrichment: bool = os.getenv("ENABLE_ENRICHMENT", "true").lower() == "true"

    # ── 定期スクレイプ ──
    scrape_interval_hours: int = int(os.getenv("SCRAPE_INTERVAL_HOURS", "6"))
    scrape_limit: int = int(os.getenv("SCRAPE_LIMIT", "100"))
    scrape_min_confidence: float = float(os.getenv("SCRAPE_MIN_CONFIDENCE", "0.55"))
    # "github,rss,twitter"
    scrape_sources: str = os.getenv("SCRAPE_SOURCES", "github,rss,twitter")

    # ── HTTP API ──
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # ── ソースごとの件数配分（合計 1.0 を超えてよい）──
    source_shares: dict = field(default_factory=lambda: {
        "github":     0.40,
        "rss":        0.20,
        "twitter":    0.20,
        "web-search": 0.15,
        "reddit":     0.15,
    })

    def credentials(self) -> dict[str, str]:
        """アダプタに渡す認証情報（空の値は除外）"""
        creds = {
            "github_token": self.github_token,
            "twitter_bearer_token": self.twitter_bearer_token,
            "search_api_key": self.search_api_key,
            "google_cse_id": self.google_cse_id,
        }
        return {k: v for k, v in creds.items() if v}

    def scheduled_sources(self) -> list[str]:
        return [s.strip() for s in self.scrape_sources.split(",") if s.strip()]


config = Config()
