"""
ウォレット活動スキャナー（外部サービス）

WALLET_SCANNER_URL/activity/{address} が WalletActivity 相当の JSON を返す前提。
RPC 解析そのものはスキャナー側の責務。
"""
import asyncio
import logging
import re
from typing import Protocol

import aiohttp

from .fetcher import FetchError
from .models import WalletActivity

logger = logging.getLogger(__name__)

# base58（0, O, I, l を含まない）32〜44文字
ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def validate_address(address) -> bool:
    return isinstance(address, str) and bool(ADDRESS_RE.match(address))


class WalletScanner(Protocol):
    async def scan(self, address: str) -> WalletActivity:
        ...


class HttpWalletScanner:
    """HTTP 経由でウォレット活動を取得"""

    def __init__(self, session: aiohttp.ClientSession, base_url: str, timeout: int = 30):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def scan(self, address: str) -> WalletActivity:
        if not validate_address(address):
            raise ValueError(f"invalid wallet address: {address!r}")

        url = f"{self.base_url}/activity/{address}"
        try:
            async with self.session.get(
                url, timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status != 200:
                    raise FetchError(f"wallet scanner HTTP {resp.status}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"wallet scanner unreachable: {e}") from e

        if not isinstance(data, dict):
            raise FetchError("wallet scanner returned a non-object body")
        data = dict(data)
        data.setdefault("address", address)
        try:
            activity = WalletActivity.from_dict(data)
        except (ValueError, TypeError) as e:
            raise FetchError(f"wallet scanner returned malformed activity: {e}") from e
        logger.info(
            f"ウォレットスキャン: {address[:8]}... "
            f"プログラム {len(activity.programs)}件 / Tx {activity.total_transactions}件"
        )
        return activity
