"""
エンリッチメント — 新規エアドロップの情報補完（外部サービス）

■ 契約: 生テキスト → {name, symbol, description, website, twitter, discord,
         telegram, categories, isOngoing, confidence}
■ 適用: isOngoing かつ confidence > 0.5 → 項目を上書き
        それ以外（成功だが終了/低確度） → status を ended に
        失敗 → 何もしない
"""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Protocol

import aiohttp

from .models import Airdrop, utcnow
from .sanitizer import sanitize, truncate

logger = logging.getLogger(__name__)

MIN_ENRICHMENT_CONFIDENCE = 0.5


@dataclass
class Enrichment:
    name: str = ""
    symbol: str = ""
    description: str = ""
    website: str = ""
    twitter: str = ""
    discord: str = ""
    telegram: str = ""
    categories: list[str] = field(default_factory=list)
    is_ongoing: bool = False
    confidence: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "Enrichment":
        return cls(
            name=sanitize(data.get("name")),
            symbol=sanitize(data.get("symbol")).upper(),
            description=truncate(sanitize(data.get("description")), 500),
            website=sanitize(data.get("website")),
            twitter=sanitize(data.get("twitter")),
            discord=sanitize(data.get("discord")),
            telegram=sanitize(data.get("telegram")),
            categories=[sanitize(c) for c in data.get("categories") or [] if sanitize(c)],
            is_ongoing=bool(data.get("isOngoing", False)),
            confidence=float(data.get("confidence", 0) or 0),
        )


@dataclass
class EnrichmentResult:
    success: bool
    data: Optional[Enrichment] = None
    error: str = ""


class Enricher(Protocol):
    async def enrich(self, raw_text: str) -> EnrichmentResult:
        ...


class HttpEnricher:
    """ENRICHMENT_URL に生テキストを POST して構造化結果を受け取る"""

    def __init__(self, session: aiohttp.ClientSession, url: str, timeout: int = 30):
        self.session = session
        self.url = url
        self.timeout = timeout

    async def enrich(self, raw_text: str) -> EnrichmentResult:
        try:
            async with self.session.post(
                self.url,
                json={"content": raw_text},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status != 200:
                    return EnrichmentResult(success=False, error=f"HTTP {resp.status}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"エンリッチメント呼び出しエラー: {e}")
            return EnrichmentResult(success=False, error=str(e))

        try:
            return EnrichmentResult(success=True, data=Enrichment.from_dict(data))
        except (TypeError, ValueError, AttributeError) as e:
            return EnrichmentResult(success=False, error=f"invalid response: {e}")


def build_enrichment_content(airdrop: Airdrop) -> str:
    """エンリッチメントに渡す生テキスト"""
    lines = [
        f"Name: {airdrop.name}",
        f"Symbol: {airdrop.symbol}",
        f"Description: {airdrop.description}",
        f"Website: {airdrop.website}",
        f"Sources: {', '.join(s.url for s in airdrop.sources)}",
    ]
    if airdrop.claim_url:
        lines.append(f"Claim URL: {airdrop.claim_url}")
    if airdrop.requirements:
        lines.append(f"Requirements: {'; '.join(airdrop.requirements)}")
    return "\n".join(lines)


def apply_enrichment(airdrop: Airdrop, result: EnrichmentResult) -> Airdrop:
    """結果を反映したレコードを返す（失敗時はそのまま）"""
    if not result.success or result.data is None:
        return airdrop

    data = result.data
    if not data.is_ongoing or data.confidence <= MIN_ENRICHMENT_CONFIDENCE:
        return replace(airdrop, status="ended", updated_at=utcnow())

    changes = {
        k: v for k, v in {
            "name": data.name,
            "symbol": data.symbol,
            "description": data.description,
            "website": data.website,
            "twitter": data.twitter,
            "discord": data.discord,
            "telegram": data.telegram,
        }.items() if v
    }
    if data.categories:
        changes["categories"] = data.categories
    changes["updated_at"] = utcnow()
    return replace(airdrop, **changes)
