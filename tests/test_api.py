"""
Tests for the FastAPI surface (listing, admin edits, scraper, eligibility).
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from airdrop_radar.api import create_app
from airdrop_radar.discovery import DiscoveryOrchestrator, ScraperRunner
from airdrop_radar.fetcher import FetchError
from airdrop_radar.models import AirdropSource, DiscoveryResult, ScoredCandidate
from airdrop_radar.wallet import HttpWalletScanner

from conftest import NOW, WALLET, FakeResponse, FakeScanner, FakeSession

ADMIN = {"Authorization": "Bearer secret"}


class OneShotSource:
    name = "rss"

    async def fetch(self, options):
        return DiscoveryResult(source="rss", success=True, airdrops=[
            ScoredCandidate(
                name="Zeta",
                score=0.8,
                source=AirdropSource(type="rss", url="https://zeta.markets/blog/airdrop", fetched_at=NOW, confidence=0.8),
            ),
        ])


class FailingScanner:
    async def scan(self, address):
        raise FetchError("wallet scanner HTTP 500")


@pytest.fixture
def runner(store):
    return ScraperRunner(DiscoveryOrchestrator({"rss": OneShotSource()}, shares={"rss": 1.0}), store)


@pytest.fixture
def scanner(active_wallet):
    return FakeScanner(active_wallet)


@pytest.fixture
def client(store, runner, scanner):
    return TestClient(create_app(store, runner=runner, scanner=scanner, admin_token="secret"))


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["status"] == "healthy"
    assert body["version"]


def test_list_defaults_to_live_and_hides_rules(client):
    body = client.get("/airdrops").json()
    assert body["success"] is True
    assert [a["id"] for a in body["data"]] == ["jupiter", "kamino"]
    assert body["count"] == 2
    assert body["filters"]["status"] == "live"
    assert all("rules" not in a for a in body["data"])


def test_list_filters(client):
    assert client.get("/airdrops", params={"status": "all"}).json()["count"] == 4
    assert [a["id"] for a in client.get("/airdrops", params={"status": "upcoming"}).json()["data"]] == ["tensor"]
    assert [a["id"] for a in client.get("/airdrops", params={"category": "Lending"}).json()["data"]] == ["kamino"]
    assert client.get("/airdrops", params={"status": "bogus"}).status_code == 400
    assert client.get("/airdrops", params={"friction": "extreme"}).status_code == 400


def test_get_airdrop(client):
    body = client.get("/airdrops/jupiter").json()
    assert body["data"]["name"] == "Jupiter"
    assert "rules" not in body["data"]

    missing = client.get("/airdrops/nope")
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": "Airdrop not found"}


def test_admin_endpoints_require_token(client):
    assert client.put("/airdrops/kamino", json={"verified": True}).status_code == 401
    assert client.put("/airdrops/kamino", json={"verified": True}, headers={"Authorization": "Bearer wrong"}).status_code == 401
    assert client.delete("/airdrops/kamino").status_code == 401
    assert client.post("/scraper/run").status_code == 401


def test_update_airdrop(client, store):
    resp = client.put("/airdrops/kamino", json={"verified": True, "featured": True}, headers=ADMIN)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Airdrop updated successfully"
    assert body["data"]["verified"] is True
    assert store.get("kamino").featured is True

    assert client.put("/airdrops/nope", json={"verified": True}, headers=ADMIN).status_code == 404
    assert client.put("/airdrops/kamino", json={"status": "exploded"}, headers=ADMIN).status_code == 400
    assert client.put("/airdrops/kamino", json=["not", "an", "object"], headers=ADMIN).status_code == 400
    bad_json = client.put(
        "/airdrops/kamino",
        content=b"{not json",
        headers={**ADMIN, "Content-Type": "application/json"},
    )
    assert bad_json.status_code == 400


def test_delete_airdrop(client, store):
    resp = client.delete("/airdrops/tensor", headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Airdrop deleted successfully"
    assert store.get("tensor") is None
    assert client.delete("/airdrops/tensor", headers=ADMIN).status_code == 404


def test_categories(client):
    body = client.get("/categories").json()
    counts = {c["name"]: c["count"] for c in body["data"]}
    assert counts == {"DeFi": 2, "DEX": 1, "Lending": 1}
    assert body["total"] == 4


def test_scraper_run_and_status(client, store):
    status = client.get("/scraper/run").json()["data"]
    assert status["lastRun"] is None
    assert status["nextRunAt"]
    assert status["stats"]["total"] == 4

    resp = client.post("/scraper/run", json={"limit": 10}, headers=ADMIN)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["newAirdrops"] == 1
    assert data["airdrops"][0]["id"] == "zeta"
    assert store.get("zeta") is not None

    last = client.get("/scraper/run").json()["data"]["lastRun"]
    assert last["newAirdrops"] == 1
    assert last["success"] is True


def test_scraper_run_validation_and_unconfigured(store):
    client = TestClient(create_app(store, admin_token="secret"))
    assert client.post("/scraper/run", headers=ADMIN).status_code == 503
    assert client.get("/scraper/run").json()["data"]["nextRunAt"] is None

    configured = TestClient(create_app(store, runner=ScraperRunner(DiscoveryOrchestrator({}), store), admin_token="secret"))
    assert configured.post("/scraper/run", json={"limit": 0}, headers=ADMIN).status_code == 400


def test_eligibility_single_airdrop(client, scanner):
    resp = client.post("/eligibility/check", json={"walletAddress": WALLET, "airdropId": "jupiter"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["eligible"] is True
    assert data["message"] == "Wallet is eligible for this airdrop"
    assert "missingRequirements" not in data
    assert scanner.scanned == [WALLET]

    kamino = client.post("/eligibility/check", json={"walletAddress": WALLET, "airdropId": "kamino"}).json()["data"]
    assert kamino["eligible"] is False
    assert kamino["message"] == "Wallet does not meet eligibility requirements"


def test_eligibility_all_live_airdrops(client):
    data = client.post("/eligibility/check", json={"walletAddress": WALLET}).json()["data"]
    assert [r["airdropId"] for r in data["results"]] == ["jupiter", "kamino"]
    assert [r["message"] for r in data["results"]] == ["Eligible", "Not eligible"]
    assert data["summary"] == {"totalAirdrops": 2, "eligibleCount": 1, "totalEstimatedValue": 500}


def test_eligibility_errors(client, store):
    assert client.post("/eligibility/check", json={"walletAddress": "not-a-wallet"}).status_code == 400
    assert client.post("/eligibility/check", json={}).status_code == 400
    # live 以外は対象外
    assert client.post("/eligibility/check", json={"walletAddress": WALLET, "airdropId": "tensor"}).status_code == 404
    assert client.post("/eligibility/check", json={"walletAddress": WALLET, "airdropId": "nope"}).status_code == 404

    no_scanner = TestClient(create_app(store, admin_token="secret"))
    assert no_scanner.post("/eligibility/check", json={"walletAddress": WALLET}).status_code == 503

    failing = TestClient(create_app(store, scanner=FailingScanner(), admin_token="secret"))
    resp = failing.post("/eligibility/check", json={"walletAddress": WALLET})
    assert resp.status_code == 502
    assert resp.json()["error"] == "Failed to scan wallet"


def test_open_admin_when_token_unset(store):
    client = TestClient(create_app(store, admin_token=""))
    assert client.delete("/airdrops/old-drop").status_code == 200


@pytest.mark.parametrize("payload", [
    {"sources": [1]},
    {"sources": "https://jup.ag"},
    {"estimatedValueRange": "big"},
    {"rules": ["minTransactions"]},
    {"rules": {"requiredPrograms": "JUP"}},
])
def test_update_with_malformed_shapes_is_400(client, store, payload):
    resp = client.put("/airdrops/jupiter", json=payload, headers=ADMIN)
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert store.get("jupiter").rules.min_transactions == 5


def test_malformed_scanner_response_is_502(store):
    session = FakeSession({"https://scanner.example/activity/": FakeResponse(200, {"programs": "JUP6"})})
    scanner = HttpWalletScanner(session, "https://scanner.example")
    client = TestClient(create_app(store, scanner=scanner, admin_token="secret"))

    resp = client.post("/eligibility/check", json={"walletAddress": WALLET})
    assert resp.status_code == 502
    assert resp.json()["error"] == "Failed to scan wallet"
