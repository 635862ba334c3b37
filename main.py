"""
Airdrop Radar v1.2 — main.py

■ 構成:
  - HTTP API（FastAPI / uvicorn）
  - 定期スクレイプ（apscheduler、SCRAPE_INTERVAL_HOURS 間隔、既定 6時間）
  - 両方を同じイベントループ上で動かす

■ ソース:
  GitHub / プロトコルブログ RSS / X(Twitter) / Reddit / Web検索 + ニュース
"""
import asyncio
import logging
import os
import sys

import aiohttp
import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

# ── ログ設定 ──
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

if os.getenv("ENABLE_FILE_LOG", "false").lower() == "true":
    try:
        os.makedirs("logs", exist_ok=True)
        handlers.append(logging.FileHandler("logs/airdrop-radar.log"))
    except OSError:
        pass

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=handlers,
)
logger = logging.getLogger("airdrop-radar")

# ── モジュールインポート ──
from airdrop_radar import __version__
from airdrop_radar.api import create_app
from airdrop_radar.config import config
from airdrop_radar.discovery import DiscoveryOrchestrator, ScraperRunner, build_sources
from airdrop_radar.enrichment import HttpEnricher
from airdrop_radar.seed import seed_airdrops
from airdrop_radar.store import JsonFileAirdropStore
from airdrop_radar.wallet import HttpWalletScanner

# ── グローバル変数 ──
session: aiohttp.ClientSession = None
store: JsonFileAirdropStore = None
runner: ScraperRunner = None
scanner: HttpWalletScanner = None


async def init():
    """全モジュールを初期化"""
    global session, store, runner, scanner

    timeout = aiohttp.ClientTimeout(total=30)
    session = aiohttp.ClientSession(timeout=timeout)

    store = JsonFileAirdropStore(
        config.store_file,
        seed=seed_airdrops() if config.seed_store else None,
    )

    enricher = None
    if config.enable_enrichment and config.enrichment_url:
        enricher = HttpEnricher(session, config.enrichment_url)

    orchestrator = DiscoveryOrchestrator(build_sources(session), shares=config.source_shares)
    runner = ScraperRunner(
        orchestrator,
        store,
        enricher=enricher,
        interval_hours=config.scrape_interval_hours,
        limit=config.scrape_limit,
        min_confidence=config.scrape_min_confidence,
        credentials=config.credentials(),
    )

    if config.wallet_scanner_url:
        scanner = HttpWalletScanner(session, config.wallet_scanner_url)

    logger.info("✅ 全モジュール初期化完了（v1.2）")


# ============================================================
# 定期スクレイプ
# ============================================================
async def run_scheduled_scrape():
    """定期スクレイプ（SCRAPE_SOURCES のソースのみ）"""
    logger.info("🔍 定期スクレイプ開始")
    try:
        result = await runner.run(sources=config.scheduled_sources())
        logger.info(
            f"🔍 定期スクレイプ完了: 新規 {len(result.new_airdrops)}件 / "
            f"更新 {len(result.updated_airdrops)}件 / エラー {len(result.errors)}件"
        )
    except Exception as e:
        logger.error(f"定期スクレイプエラー: {e}", exc_info=True)


# ============================================================
# メイン
# ============================================================
async def main():
    """エントリーポイント"""
    logger.info("=" * 60)
    logger.info(f"🚀 Airdrop Radar v{__version__} 起動")
    logger.info("=" * 60)

    if not config.admin_token:
        logger.warning("⚠️ ADMIN_TOKEN が未設定です（管理 API は認証なし）")

    logger.info(f"  ストア: {config.store_file}")
    logger.info(f"  スクレイプ間隔: {config.scrape_interval_hours}時間")
    logger.info(f"  定期スクレイプ対象: {', '.join(config.scheduled_sources())}")
    logger.info(f"  件数上限: {config.scrape_limit} / 最低確信度: {config.scrape_min_confidence}")
    logger.info(f"  エンリッチメント: {'ON' if config.enable_enrichment and config.enrichment_url else 'OFF'}")
    logger.info(f"  ウォレットスキャナー: {'ON' if config.wallet_scanner_url else 'OFF'}")
    logger.info(f"  認証情報: {', '.join(sorted(config.credentials())) or 'なし'}")

    await init()

    app = create_app(store, runner=runner, scanner=scanner, admin_token=config.admin_token)
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=config.api_host,
        port=config.api_port,
        log_level=LOG_LEVEL.lower(),
    ))

    # スケジューラ設定
    scheduler = AsyncIOScheduler(timezone="UTC")
    if config.enable_scheduler:
        runner.job = scheduler.add_job(
            run_scheduled_scrape,
            IntervalTrigger(hours=config.scrape_interval_hours),
            id="scheduled_scrape",
            name="定期スクレイプ",
            max_instances=1,
            misfire_grace_time=600,
        )
        scheduler.start()
        logger.info("📅 スケジューラ起動完了")
    else:
        logger.info("📅 スケジューラ無効（ENABLE_SCHEDULER=false）")

    try:
        await server.serve()
    except (KeyboardInterrupt, SystemExit):
        logger.info("シャットダウン中...")
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)
        if session and not session.closed:
            await session.close()
        logger.info("👋 シャットダウン完了")


if __name__ == "__main__":
    asyncio.run(main())
