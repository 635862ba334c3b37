"""
ソースアダプタ共通基盤

■ 共通動作:
  - リクエスト前にジッター付きディレイ
  - ターゲットをバッチ分割 → バッチ内は並列、バッチ間は固定ディレイ
  - 一時的エラー（ネットワーク/タイムアウト/5xx）は指数バックオフで再試行
  - 403/429 は RateLimitError（再試行しない、そのターゲットのみスキップ）
  - ターゲット単位で失敗を記録して続行
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional

import aiohttp

from .models import DiscoveryResult, FetchOptions, ScoredCandidate, utcnow
from .sanitizer import chunk

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; AirdropRadar/1.2)"


class FetchError(Exception):
    """取得失敗（再試行上限到達 or 再試行不可）"""


class RateLimitError(FetchError):
    """レート制限（再試行しない）"""


class ServerError(FetchError):
    """5xx（再試行対象）"""


@dataclass(frozen=True)
class Target:
    """スキャン対象（リポジトリ / フィード / アカウント / サブレディット / クエリ）"""
    key: str
    name: str
    category: str = "defi"
    chain: str = "solana"
    url: str = ""


def filter_by_chain(targets, chain: Optional[str]) -> list[Target]:
    """指定チェーン or multi のターゲットだけ残す"""
    if not chain:
        return list(targets)
    wanted = chain.lower()
    return [t for t in targets if t.chain.lower() in (wanted, "multi")]


class BaseSource:
    """ソースアダプタ基底クラス"""

    name = "base"
    TARGETS: tuple = ()

    REQUEST_DELAY = 1.0      # 秒
    REQUEST_JITTER = 0.0     # 秒（0〜この値を上乗せ）
    BATCH_SIZE = 5
    BATCH_DELAY = 5.0
    TIMEOUT = 10
    MAX_RETRIES = 3
    RETRY_BASE_DELAY = 2.0
    MIN_SCORE = 0.5

    # 必須の認証情報キー（None なら匿名で動作）
    REQUIRED_CREDENTIAL: Optional[str] = None
    MISSING_CREDENTIAL_ERROR = ""

    def __init__(self, session: aiohttp.ClientSession, sleep: Optional[Callable] = None):
        self.session = session
        self._sleep = sleep or asyncio.sleep

    # ============================================================
    # 公開API
    # ============================================================
    async def fetch(self, options: Optional[FetchOptions] = None) -> DiscoveryResult:
        """全ターゲットをスキャンしてスコア順に limit 件返す"""
        options = options or FetchOptions()
        result = DiscoveryResult(source=self.name)

        if self.REQUIRED_CREDENTIAL and not options.credentials.get(self.REQUIRED_CREDENTIAL):
            logger.warning(f"[{self.name}] 認証情報なし → スキップ")
            result.errors.append(self.MISSING_CREDENTIAL_ERROR or f"{self.REQUIRED_CREDENTIAL} not configured")
            return result

        targets = self.select_targets(options)
        batch_size, batch_delay = self.pacing(options)
        logger.info(f"[{self.name}] スキャン開始: {len(targets)}ターゲット, limit={options.limit}")

        candidates: list[ScoredCandidate] = []
        batches = chunk(targets, batch_size)

        for i, batch in enumerate(batches):
            outcomes = await asyncio.gather(
                *(self._run_target(t, options) for t in batch),
                return_exceptions=True,
            )
            for target, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning(f"[{self.name}] {target.name} エラー: {outcome}")
                    result.errors.append(f"{target.name}: {outcome}")
                else:
                    candidates.extend(outcome)

            if len(candidates) >= options.limit:
                logger.debug(f"[{self.name}] limit 到達 → 早期終了")
                break
            if i < len(batches) - 1:
                await self._sleep(batch_delay)

        candidates.sort(key=lambda c: c.score, reverse=True)
        result.airdrops = candidates[:options.limit]
        result.success = len(result.airdrops) > 0
        result.scraped_at = utcnow()

        logger.info(
            f"[{self.name}] 完了: {len(result.airdrops)}件 (エラー {len(result.errors)}件)"
        )
        return result

    def select_targets(self, options: FetchOptions) -> list[Target]:
        return filter_by_chain(self.TARGETS, options.chain_filter)

    def pacing(self, options: FetchOptions) -> tuple[int, float]:
        """(バッチサイズ, バッチ間ディレイ)"""
        return self.BATCH_SIZE, self.BATCH_DELAY

    async def scan_target(self, target: Target, options: FetchOptions) -> list[ScoredCandidate]:
        raise NotImplementedError

    # ============================================================
    # 内部
    # ============================================================
    async def _run_target(self, target: Target, options: FetchOptions) -> list[ScoredCandidate]:
        await self._pace()
        return await self.scan_target(target, options)

    async def _pace(self):
        delay = self.REQUEST_DELAY + random.random() * self.REQUEST_JITTER
        if delay > 0:
            await self._sleep(delay)

    def default_headers(self, options: FetchOptions) -> dict:
        return {"User-Agent": USER_AGENT, "Accept": "application/json"}

    async def get_json(
        self,
        url: str,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
    ):
        """GET → JSON（404 は None、一時的エラーは再試行）"""
        last_error: Optional[Exception] = None

        for attempt in range(self.MAX_RETRIES + 1):
            try:
                async with self.session.get(
                    url,
                    headers=headers,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.TIMEOUT),
                ) as resp:
                    if resp.status in (403, 429):
                        raise RateLimitError(f"rate limited (HTTP {resp.status})")
                    if resp.status == 404:
                        return None
                    if resp.status >= 500:
                        raise ServerError(f"HTTP {resp.status}")
                    if resp.status >= 400:
                        raise FetchError(f"HTTP {resp.status}")

                    await self.on_response(resp)
                    return await resp.json(content_type=None)

            except (aiohttp.ClientError, asyncio.TimeoutError, ServerError) as e:
                last_error = e
                if attempt >= self.MAX_RETRIES:
                    break
                delay = self.RETRY_BASE_DELAY * (2 ** attempt)
                logger.debug(f"[{self.name}] 再試行 {attempt + 1}/{self.MAX_RETRIES} ({delay:.1f}s後): {e}")
                await self._sleep(delay)

        raise FetchError(f"request failed after {self.MAX_RETRIES + 1} attempts: {last_error}")

    async def on_response(self, resp):
        """レスポンスヘッダのフック（GitHub のレート残量監視など）"""
        return None
