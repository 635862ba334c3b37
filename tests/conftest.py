"""
Pytest fixtures for Airdrop Radar tests.

Network access is replaced by FakeSession (URL prefix routing, records calls);
sleeps are replaced by SleepRecorder so pacing and backoff cost nothing.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from airdrop_radar.models import (
    Airdrop,
    AirdropRule,
    AirdropSource,
    ValueRange,
    WalletActivity,
)
from airdrop_radar.store import InMemoryAirdropStore

WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    """aiohttp のレスポンス（async context manager）の代用"""

    def __init__(self, status: int = 200, payload=None, headers: dict | None = None):
        self.status = status
        self.payload = payload
        self.headers = headers or {}

    async def json(self, content_type=None):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """
    aiohttp.ClientSession の代用。

    routes: URL prefix -> FakeResponse | Exception | list (consumed in order,
    last one repeats) | callable(url, params) returning one of those.
    Unrouted URLs answer 404.
    """

    def __init__(self, routes: dict | None = None):
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str, dict]] = []
        self.posted: list = []

    def _respond(self, method: str, url: str, params=None):
        self.calls.append((method, url, dict(params or {})))
        for prefix in sorted(self.routes, key=len, reverse=True):
            if not url.startswith(prefix):
                continue
            resp = self.routes[prefix]
            if callable(resp) and not isinstance(resp, (FakeResponse, Exception)):
                resp = resp(url, params or {})
            if isinstance(resp, list):
                resp = resp.pop(0) if len(resp) > 1 else resp[0]
            if isinstance(resp, Exception):
                raise resp
            return resp
        return FakeResponse(404)

    def get(self, url, headers=None, params=None, timeout=None):
        return self._respond("GET", url, params)

    def post(self, url, json=None, timeout=None):
        self.posted.append(json)
        return self._respond("POST", url)

    def calls_to(self, prefix: str) -> int:
        return sum(1 for _, url, _ in self.calls if url.startswith(prefix))


class SleepRecorder:
    """asyncio.sleep の代用（待たずに秒数だけ記録）"""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay):
        self.delays.append(delay)


class FakeScanner:
    """WalletScanner の代用"""

    def __init__(self, activity: WalletActivity):
        self.activity = activity
        self.scanned: list[str] = []

    async def scan(self, address: str) -> WalletActivity:
        self.scanned.append(address)
        return self.activity


def make_airdrop(airdrop_id: str, name: str, **kwargs) -> Airdrop:
    kwargs.setdefault("sources", [AirdropSource(type="manual", url=f"https://{airdrop_id}.example/news", confidence=0.9)])
    kwargs.setdefault("discovered_at", NOW)
    kwargs.setdefault("created_at", NOW)
    kwargs.setdefault("updated_at", NOW)
    return Airdrop(id=airdrop_id, name=name, **kwargs)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def no_sleep():
    return SleepRecorder()


@pytest.fixture
def sample_airdrops() -> list[Airdrop]:
    return [
        make_airdrop(
            "jupiter", "Jupiter",
            symbol="JUP",
            website="https://jup.ag",
            status="live",
            verified=True,
            featured=True,
            categories=["DEX", "DeFi"],
            friction_level="low",
            estimated_value_usd=500,
            claim_url="https://claim.jup.ag",
            rules=AirdropRule(required_programs=["JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"], min_transactions=5),
        ),
        make_airdrop(
            "kamino", "Kamino",
            symbol="KMNO",
            website="https://kamino.finance",
            status="live",
            categories=["Lending", "DeFi"],
            estimated_value_range=ValueRange(min=100, max=300),
            rules=AirdropRule(required_tokens=["KMNOmint"], min_token_amount=10),
        ),
        make_airdrop(
            "tensor", "Tensor",
            symbol="TNSR",
            status="upcoming",
            categories=["NFTs"],
            friction_level="high",
            rules=AirdropRule(testnet_participation=True),
        ),
        make_airdrop(
            "old-drop", "Old Drop",
            status="ended",
            categories=["Gaming"],
        ),
    ]


@pytest.fixture
def store(sample_airdrops) -> InMemoryAirdropStore:
    return InMemoryAirdropStore(sample_airdrops)


@pytest.fixture
def active_wallet() -> WalletActivity:
    return WalletActivity(
        address=WALLET,
        programs=["JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"],
        tokens={"KMNOmint": 4.0},
        transaction_counts={"JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4": 12},
        first_transaction_at=NOW - timedelta(days=300),
        last_transaction_at=NOW - timedelta(days=2),
    )
