"""
既知エアドロップのシードカタログ

ストアが空の状態で起動したときに投入する。スクレイプで見つかるレコードは
rules が空なので、適格性判定の実際の条件はここに載っているものだけになる。
"""
import logging

from .models import Airdrop

logger = logging.getLogger(__name__)

# キャメルケース（Airdrop.from_dict の入力形式）
SEED_AIRDROPS = [
    {
        "id": "jito",
        "name": "Jito",
        "symbol": "JTO",
        "description": "Liquid staking protocol on Solana that passes MEV rewards to stakers. JTO is claimable for ecosystem participants.",
        "website": "https://jito.network",
        "twitter": "https://twitter.com/jito_sol",
        "blog": "https://blog.jito.network",
        "claimUrl": "https://airdrop.jito.network",
        "claimType": "on-chain",
        "estimatedValueUSD": 150,
        "categories": ["DeFi", "Infrastructure"],
        "frictionLevel": "low",
        "rules": {
            "requiredPrograms": ["Jito4E1FxqhR6FkU4VyXGj9kZy9rWnHzNDR5mVYzQsT"],
            "minTransactions": 1,
            "earliestTransaction": "2023-01-01",
        },
        "status": "live",
        "verified": True,
        "featured": True,
        "sources": [{"type": "github", "url": "https://github.com/jito-foundation", "confidence": 1.0}],
        "createdAt": "2023-12-07",
        "updatedAt": "2024-01-15",
    },
    {
        "id": "jupiter",
        "name": "Jupiter",
        "symbol": "JUP",
        "description": "Liquidity aggregator for Solana with best-rate swaps across all tokens. JUP is claimable for ecosystem participation.",
        "website": "https://jup.ag",
        "twitter": "https://twitter.com/JupiterExchange",
        "blog": "https://blog.jup.ag",
        "claimUrl": "https://claim.jup.ag",
        "claimType": "on-chain",
        "estimatedValueUSD": 500,
        "categories": ["DEX", "DeFi"],
        "frictionLevel": "low",
        "rules": {
            "requiredPrograms": ["JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"],
            "minTransactions": 3,
            "earliestTransaction": "2023-01-01",
            "latestTransaction": "2024-01-31",
        },
        "status": "live",
        "verified": True,
        "featured": True,
        "sources": [{"type": "twitter", "url": "https://twitter.com/JupiterExchange", "confidence": 1.0}],
        "createdAt": "2024-01-31",
        "updatedAt": "2024-02-15",
    },
    {
        "id": "pyth-network",
        "name": "Pyth Network",
        "symbol": "PYTH",
        "description": "Decentralized oracle network delivering real-time market data. PYTH is claimable for users of Pyth-fed protocols.",
        "website": "https://pyth.network",
        "twitter": "https://twitter.com/PythNetwork",
        "blog": "https://pyth.network/blog",
        "claimUrl": "https://pyth.network/claim",
        "claimType": "on-chain",
        "estimatedValueUSD": 200,
        "categories": ["Oracle", "Infrastructure"],
        "frictionLevel": "low",
        "rules": {
            "requiredPrograms": ["FsJ3A3u2vn5cTVofAjvy6y5kwABJAqYWpe4975bi2epH"],
            "minTransactions": 1,
        },
        "status": "live",
        "verified": True,
        "featured": True,
        "sources": [{"type": "rss", "url": "https://pyth.network/blog/airdrop", "confidence": 1.0}],
        "createdAt": "2023-11-20",
        "updatedAt": "2024-01-10",
    },
    {
        "id": "marginfi",
        "name": "MarginFi",
        "symbol": "MFI",
        "description": "Decentralized lending protocol on Solana. MFI rewards liquidity providers and borrowers.",
        "website": "https://marginfi.com",
        "twitter": "https://twitter.com/marginfi",
        "claimUrl": "https://app.marginfi.com/claim",
        "claimType": "on-chain",
        "estimatedValueRange": {"min": 50, "max": 500},
        "categories": ["Lending", "DeFi"],
        "frictionLevel": "medium",
        "rules": {
            "requiredPrograms": ["marBjsLQjFHMz4BkGfZvqTJZvJhZ1"],
            "minTransactions": 5,
            "earliestTransaction": "2023-03-01",
        },
        "status": "live",
        "verified": True,
        "sources": [{"type": "twitter", "url": "https://twitter.com/marginfi", "confidence": 1.0}],
        "createdAt": "2023-09-15",
        "updatedAt": "2024-02-01",
    },
    {
        "id": "drift-protocol",
        "name": "Drift Protocol",
        "symbol": "DRIFT",
        "description": "Decentralized perpetual futures exchange on Solana. DRIFT is claimable for trading activity.",
        "website": "https://drift.trade",
        "twitter": "https://twitter.com/DriftProtocol",
        "claimUrl": "https://app.drift.trade/airdrop",
        "claimType": "on-chain",
        "estimatedValueRange": {"min": 100, "max": 1000},
        "categories": ["Perpetuals", "DeFi"],
        "frictionLevel": "medium",
        "rules": {
            "requiredPrograms": ["dRIFT5XGhJN9K1RvNqJz8V1"],
            "minTransactions": 10,
            "earliestTransaction": "2023-06-01",
        },
        "status": "live",
        "verified": True,
        "sources": [{"type": "rss", "url": "https://drift.trade/blog", "confidence": 1.0}],
        "createdAt": "2023-10-01",
        "updatedAt": "2024-01-20",
    },
    {
        "id": "tensor",
        "name": "Tensor",
        "symbol": "TNSR",
        "description": "NFT marketplace on Solana. TNSR is claimable for NFT trading activity.",
        "website": "https://tensor.trade",
        "twitter": "https://twitter.com/TensorTrade",
        "claimUrl": "https://app.tensor.trade/claim",
        "claimType": "on-chain",
        "estimatedValueRange": {"min": 50, "max": 300},
        "categories": ["NFTs"],
        "frictionLevel": "low",
        "rules": {
            "requiredPrograms": ["TSWAPcL9Ly28vwZJ"],
            "minTransactions": 5,
            "earliestTransaction": "2023-01-01",
        },
        "status": "live",
        "verified": True,
        "featured": True,
        "sources": [{"type": "twitter", "url": "https://twitter.com/TensorTrade", "confidence": 1.0}],
        "createdAt": "2024-04-01",
        "updatedAt": "2024-04-15",
    },
    {
        "id": "sharky",
        "name": "Sharky",
        "symbol": "SHARK",
        "description": "NFT lending protocol on Solana. SHARK rewards lenders and borrowers against NFTs.",
        "website": "https://sharky.fi",
        "twitter": "https://twitter.com/SharkyFi",
        "claimUrl": "https://app.sharky.fi/claim",
        "claimType": "on-chain",
        "estimatedValueRange": {"min": 20, "max": 150},
        "categories": ["NFTs", "Lending"],
        "frictionLevel": "medium",
        "rules": {
            "requiredPrograms": ["SHARKobtfF1bHhxDZimZjQ"],
            "minTransactions": 3,
        },
        "status": "live",
        "verified": True,
        "sources": [{"type": "github", "url": "https://github.com/sharky-fi", "confidence": 1.0}],
        "createdAt": "2023-08-01",
        "updatedAt": "2024-01-05",
    },
    {
        "id": "wormhole",
        "name": "Wormhole",
        "symbol": "W",
        "description": "Cross-chain bridge protocol connecting multiple blockchains. W is claimable for bridge usage.",
        "website": "https://wormhole.com",
        "twitter": "https://twitter.com/wormhole",
        "blog": "https://wormhole.com/blog",
        "claimUrl": "https://claim.wormhole.com",
        "claimType": "on-chain",
        "estimatedValueUSD": 300,
        "categories": ["Bridges", "Infrastructure"],
        "frictionLevel": "low",
        "rules": {
            "requiredPrograms": ["wormDTUJ6RCPNLsX1DYvM"],
            "minTransactions": 1,
            "bridgeUsage": ["wormhole"],
        },
        "status": "live",
        "verified": True,
        "featured": True,
        "sources": [{"type": "rss", "url": "https://wormhole.com/blog/airdrop", "confidence": 1.0}],
        "createdAt": "2024-02-20",
        "updatedAt": "2024-03-01",
    },
    {
        "id": "star-atlas",
        "name": "Star Atlas",
        "symbol": "ATLAS",
        "description": "Blockchain space exploration game. ATLAS is claimable for gameplay and participation.",
        "website": "https://staratlas.com",
        "twitter": "https://twitter.com/staratlas",
        "claimType": "on-chain",
        "estimatedValueRange": {"min": 30, "max": 200},
        "categories": ["Gaming", "NFTs"],
        "frictionLevel": "medium",
        "rules": {
            "requiredPrograms": ["ATLAS7kUqNzjN1"],
            "minTransactions": 5,
            "requiredNFTs": ["star-atlas-ship"],
        },
        "status": "live",
        "verified": True,
        "sources": [{"type": "github", "url": "https://github.com/staratlasmeta", "confidence": 1.0}],
        "createdAt": "2023-07-01",
        "updatedAt": "2024-01-15",
    },
    {
        "id": "solana-testnet-rewards",
        "name": "Solana Testnet Rewards",
        "symbol": "SOL",
        "description": "Solana testnet programs that reward participants for testing new features.",
        "website": "https://solana.com",
        "twitter": "https://twitter.com/solana",
        "claimType": "off-chain",
        "estimatedValueRange": {"min": 5, "max": 50},
        "categories": ["Testnets", "Infrastructure"],
        "frictionLevel": "high",
        "rules": {
            "testnetParticipation": True,
            "minTransactions": 10,
        },
        "status": "live",
        "verified": True,
        "sources": [{"type": "github", "url": "https://github.com/solana-labs", "confidence": 1.0}],
        "createdAt": "2023-01-01",
        "updatedAt": "2024-02-01",
    },
    {
        "id": "realm",
        "name": "Realm",
        "symbol": "RLM",
        "description": "DAO governance platform on Solana. RLM is claimable for governance participation.",
        "website": "https://realm.so",
        "twitter": "https://twitter.com/realm_dao",
        "claimType": "on-chain",
        "estimatedValueRange": {"min": 20, "max": 100},
        "categories": ["Governance", "Infrastructure"],
        "frictionLevel": "medium",
        "rules": {
            "governanceActions": ["vote", "propose"],
            "minTransactions": 3,
        },
        "status": "live",
        "verified": True,
        "sources": [{"type": "rss", "url": "https://realm.so/blog", "confidence": 1.0}],
        "createdAt": "2023-05-01",
        "updatedAt": "2024-01-10",
    },
]


def seed_airdrops() -> list[Airdrop]:
    """シードカタログを Airdrop に変換（discoveredAt は createdAt と同じ）"""
    out = []
    for item in SEED_AIRDROPS:
        data = dict(item)
        data.setdefault("discoveredAt", data.get("createdAt"))
        data.setdefault("lastVerifiedAt", data.get("updatedAt"))
        out.append(Airdrop.from_dict(data))
    return out
