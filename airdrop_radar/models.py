"""
データモデル

■ 永続化・API 応答はキャメルケースの dict（ISO-8601 タイムスタンプ）
■ Airdrop       — 正規レコード（ストアの単位）
■ ScoredCandidate — アダプタが返す部分レコード + スコア
"""
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Optional

STATUSES = ("live", "upcoming", "ended", "unverified")
FRICTION_LEVELS = ("low", "medium", "high")
CLAIM_TYPES = ("on-chain", "off-chain", "mixed")
SOURCE_TYPES = ("github", "rss", "twitter", "reddit", "web-search", "manual")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_datetime(value) -> Optional[datetime]:
    """ISO 文字列 / epoch 秒 / datetime → aware datetime（不正値は None）"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip().replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            # RSS の pubDate 形式 "2025-01-02 10:00:00"
            try:
                dt = datetime.strptime(text[:19], "%Y-%m-%d %H:%M:%S")
            except ValueError:
                return None
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return None


def _choice(value, allowed: tuple, name: str, default=None):
    if value is None:
        return default
    if value not in allowed:
        raise ValueError(f"invalid {name}: {value!r}")
    return value


def _require_object(data, name: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be an object")
    return data


def _str_list(value, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    return [str(v) for v in value]


@dataclass
class ValueRange:
    min: float = 0.0
    max: float = 0.0

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max}

    @classmethod
    def from_dict(cls, data) -> Optional["ValueRange"]:
        if not data:
            return None
        data = _require_object(data, "estimatedValueRange")
        return cls(min=float(data.get("min", 0)), max=float(data.get("max", 0)))


@dataclass
class AirdropSource:
    """発見元（type + URL + 取得時刻 + 確信度）"""
    type: str
    url: str
    fetched_at: datetime = field(default_factory=utcnow)
    confidence: float = 0.0

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "url": self.url,
            "fetchedAt": to_iso(self.fetched_at),
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AirdropSource":
        data = _require_object(data, "source")
        return cls(
            type=_choice(data.get("type"), SOURCE_TYPES, "source type", "manual"),
            url=str(data.get("url", "")),
            fetched_at=parse_datetime(data.get("fetchedAt")) or utcnow(),
            confidence=float(data.get("confidence", 0) or 0),
        )


@dataclass
class AirdropRule:
    """適格性ルール（未設定の項目は制約なし）"""
    required_programs: list[str] = field(default_factory=list)
    required_tokens: list[str] = field(default_factory=list)
    min_token_amount: Optional[float] = None
    required_nfts: list[str] = field(default_factory=list)
    min_transactions: Optional[int] = None
    governance_actions: list[str] = field(default_factory=list)
    bridge_usage: list[str] = field(default_factory=list)
    testnet_participation: bool = False
    earliest_transaction: Optional[datetime] = None
    latest_transaction: Optional[datetime] = None

    _KEYS = {
        "required_programs": "requiredPrograms",
        "required_tokens": "requiredTokens",
        "min_token_amount": "minTokenAmount",
        "required_nfts": "requiredNFTs",
        "min_transactions": "minTransactions",
        "governance_actions": "governanceActions",
        "bridge_usage": "bridgeUsage",
        "testnet_participation": "testnetParticipation",
        "earliest_transaction": "earliestTransaction",
        "latest_transaction": "latestTransaction",
    }

    def to_dict(self) -> dict:
        out = {}
        for attr, key in self._KEYS.items():
            value = getattr(self, attr)
            if value in (None, [], False):
                continue
            out[key] = to_iso(value) if isinstance(value, datetime) else value
        return out

    @classmethod
    def from_dict(cls, data) -> "AirdropRule":
        data = _require_object(data or {}, "rules")
        min_amount = data.get("minTokenAmount")
        min_tx = data.get("minTransactions")
        return cls(
            required_programs=_str_list(data.get("requiredPrograms"), "requiredPrograms"),
            required_tokens=_str_list(data.get("requiredTokens"), "requiredTokens"),
            min_token_amount=float(min_amount) if min_amount is not None else None,
            required_nfts=_str_list(data.get("requiredNFTs"), "requiredNFTs"),
            min_transactions=int(min_tx) if min_tx is not None else None,
            governance_actions=_str_list(data.get("governanceActions"), "governanceActions"),
            bridge_usage=_str_list(data.get("bridgeUsage"), "bridgeUsage"),
            testnet_participation=bool(data.get("testnetParticipation", False)),
            earliest_transaction=parse_datetime(data.get("earliestTransaction")),
            latest_transaction=parse_datetime(data.get("latestTransaction")),
        )


# Airdrop の属性名 → キャメルケース
_AIRDROP_KEYS = {
    "id": "id",
    "name": "name",
    "symbol": "symbol",
    "description": "description",
    "website": "website",
    "twitter": "twitter",
    "blog": "blog",
    "github": "github",
    "discord": "discord",
    "telegram": "telegram",
    "claim_url": "claimUrl",
    "claim_type": "claimType",
    "claim_deadline": "claimDeadline",
    "estimated_value_usd": "estimatedValueUSD",
    "estimated_value_range": "estimatedValueRange",
    "chains": "chains",
    "primary_chain": "primaryChain",
    "categories": "categories",
    "friction_level": "frictionLevel",
    "rules": "rules",
    "status": "status",
    "verified": "verified",
    "featured": "featured",
    "sources": "sources",
    "requirements": "requirements",
    "community_score": "communityScore",
    "upvotes": "upvotes",
    "downvotes": "downvotes",
    "image_url": "imageUrl",
    "discovered_at": "discoveredAt",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "last_verified_at": "lastVerifiedAt",
}
CAMEL_TO_ATTR = {v: k for k, v in _AIRDROP_KEYS.items()}

_DATETIME_FIELDS = {"claim_deadline", "discovered_at", "created_at", "updated_at", "last_verified_at"}


@dataclass
class Airdrop:
    """エアドロップ正規レコード"""
    id: str
    name: str
    symbol: str = ""
    description: str = ""
    website: str = ""
    twitter: str = ""
    blog: str = ""
    github: str = ""
    discord: str = ""
    telegram: str = ""
    claim_url: str = ""
    claim_type: str = "mixed"            # on-chain / off-chain / mixed
    claim_deadline: Optional[datetime] = None
    estimated_value_usd: Optional[float] = None
    estimated_value_range: Optional[ValueRange] = None
    chains: list[str] = field(default_factory=lambda: ["Solana"])
    primary_chain: str = "Solana"
    categories: list[str] = field(default_factory=list)
    friction_level: str = "medium"       # low / medium / high
    rules: AirdropRule = field(default_factory=AirdropRule)
    status: str = "unverified"           # live / upcoming / ended / unverified
    verified: bool = False
    featured: bool = False
    sources: list[AirdropSource] = field(default_factory=list)
    requirements: list[str] = field(default_factory=list)
    community_score: Optional[float] = None
    upvotes: int = 0
    downvotes: int = 0
    image_url: str = ""
    discovered_at: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_verified_at: Optional[datetime] = None

    def __post_init__(self):
        _choice(self.status, STATUSES, "status")
        _choice(self.friction_level, FRICTION_LEVELS, "frictionLevel")
        _choice(self.claim_type, CLAIM_TYPES, "claimType")

    @property
    def estimated_value(self) -> Optional[float]:
        """点推定を優先、なければレンジ中央値"""
        if self.estimated_value_usd is not None:
            return self.estimated_value_usd
        if self.estimated_value_range is not None:
            return self.estimated_value_range.midpoint
        return None

    def to_dict(self, include_rules: bool = True) -> dict:
        out = {}
        for f in fields(self):
            key = _AIRDROP_KEYS[f.name]
            value = getattr(self, f.name)
            if f.name == "rules":
                if not include_rules:
                    continue
                value = value.to_dict()
            elif f.name == "sources":
                value = [s.to_dict() for s in value]
            elif f.name == "estimated_value_range":
                value = value.to_dict() if value else None
            elif f.name in _DATETIME_FIELDS:
                value = to_iso(value)
            elif isinstance(value, list):
                value = list(value)
            out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "Airdrop":
        """キャメルケース dict → Airdrop（不正値は ValueError）"""
        if not isinstance(data, dict):
            raise ValueError("airdrop payload must be an object")
        if not data.get("id") or not data.get("name"):
            raise ValueError("airdrop requires id and name")

        kwargs = {}
        for key, value in data.items():
            attr = CAMEL_TO_ATTR.get(key)
            if attr is None or value is None:
                continue
            if attr == "rules":
                value = AirdropRule.from_dict(value)
            elif attr == "sources":
                if not isinstance(value, list):
                    raise ValueError(f"{key} must be a list")
                value = [AirdropSource.from_dict(s) for s in value]
            elif attr == "estimated_value_range":
                value = ValueRange.from_dict(value)
            elif attr in _DATETIME_FIELDS:
                value = parse_datetime(value)
                if value is None:
                    continue
            elif attr in ("estimated_value_usd", "community_score"):
                value = float(value)
            elif attr in ("upvotes", "downvotes"):
                value = int(value)
            elif attr in ("verified", "featured"):
                if not isinstance(value, bool):
                    raise ValueError(f"{key} must be a boolean")
            elif attr in ("chains", "categories", "requirements"):
                if not isinstance(value, list):
                    raise ValueError(f"{key} must be a list")
                value = [str(v) for v in value]
            kwargs[attr] = value
        return cls(**kwargs)


@dataclass
class ScoredCandidate:
    """アダプタ出力: 部分的な Airdrop + スコア（sources[0].confidence == score）"""
    name: str
    score: float
    source: AirdropSource
    symbol: str = ""
    description: str = ""
    website: str = ""
    twitter: str = ""
    blog: str = ""
    github: str = ""
    claim_url: str = ""
    claim_type: Optional[str] = None
    estimated_value_usd: Optional[float] = None
    chains: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    friction_level: Optional[str] = None
    status: Optional[str] = None
    verified: bool = False
    featured: bool = False
    requirements: list[str] = field(default_factory=list)
    community_score: Optional[float] = None
    image_url: str = ""
    keywords: list[str] = field(default_factory=list)
    signals: list[str] = field(default_factory=list)

    @property
    def sources(self) -> list[AirdropSource]:
        return [self.source]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "description": self.description,
            "website": self.website,
            "claimUrl": self.claim_url,
            "claimType": self.claim_type,
            "estimatedValueUSD": self.estimated_value_usd,
            "chains": list(self.chains),
            "categories": list(self.categories),
            "frictionLevel": self.friction_level,
            "status": self.status,
            "verified": self.verified,
            "featured": self.featured,
            "score": self.score,
            "signals": list(self.signals),
            "sources": [self.source.to_dict()],
        }


@dataclass
class DiscoveryResult:
    """1アダプタの実行結果"""
    source: str
    success: bool = False
    airdrops: list[ScoredCandidate] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    scraped_at: datetime = field(default_factory=utcnow)


@dataclass
class FetchOptions:
    limit: int = 50
    credentials: dict = field(default_factory=dict)
    chain_filter: Optional[str] = None


@dataclass
class WalletActivity:
    """ウォレット活動のスナップショット（リクエスト単位、永続化しない）"""
    address: str
    programs: list[str] = field(default_factory=list)
    tokens: dict[str, float] = field(default_factory=dict)
    nfts: list[str] = field(default_factory=list)
    nft_collections: list[str] = field(default_factory=list)
    governance_actions: list[str] = field(default_factory=list)
    bridges: list[str] = field(default_factory=list)
    transaction_counts: dict[str, int] = field(default_factory=dict)
    first_transaction_at: Optional[datetime] = None
    last_transaction_at: Optional[datetime] = None

    @property
    def total_transactions(self) -> int:
        return sum(self.transaction_counts.values())

    @classmethod
    def from_dict(cls, data: dict) -> "WalletActivity":
        """スキャナー応答 → WalletActivity（形が不正なら ValueError）"""
        data = _require_object(data, "wallet activity")
        tokens = _require_object(data.get("tokens") or {}, "tokens")
        counts = _require_object(data.get("transactionCounts") or {}, "transactionCounts")
        return cls(
            address=str(data.get("address", "")),
            programs=_str_list(data.get("programs"), "programs"),
            tokens={k: float(v) for k, v in tokens.items()},
            nfts=_str_list(data.get("nfts"), "nfts"),
            nft_collections=_str_list(data.get("nftCollections"), "nftCollections"),
            governance_actions=_str_list(data.get("governanceActions"), "governanceActions"),
            bridges=_str_list(data.get("bridges"), "bridges"),
            transaction_counts={k: int(v) for k, v in counts.items()},
            first_transaction_at=parse_datetime(data.get("firstTransactionAt")),
            last_transaction_at=parse_datetime(data.get("lastTransactionAt")),
        )


@dataclass
class EligibilityResult:
    eligible: bool
    airdrop_id: str
    airdrop_name: str
    reason: str
    estimated_value: Optional[float] = None
    missing_requirements: list[str] = field(default_factory=list)
    claim_url: str = ""
    friction_level: str = "medium"
    categories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "eligible": self.eligible,
            "airdropId": self.airdrop_id,
            "airdropName": self.airdrop_name,
            "estimatedValue": self.estimated_value,
            "reason": self.reason,
            "missingRequirements": list(self.missing_requirements),
            "claimUrl": self.claim_url or None,
            "frictionLevel": self.friction_level,
            "categories": list(self.categories),
        }


@dataclass
class AirdropFilters:
    """一覧取得の絞り込み条件（None は無条件）"""
    status: Optional[str] = None
    category: Optional[str] = None
    friction_level: Optional[str] = None
    verified: Optional[bool] = None
    featured: Optional[bool] = None
    search: Optional[str] = None

    def matches(self, airdrop: Airdrop) -> bool:
        if self.status and airdrop.status != self.status:
            return False
        if self.category and self.category not in airdrop.categories:
            return False
        if self.friction_level and airdrop.friction_level != self.friction_level:
            return False
        if self.verified is not None and airdrop.verified != self.verified:
            return False
        if self.featured is not None and airdrop.featured != self.featured:
            return False
        if self.search:
            q = self.search.lower()
            haystack = " ".join([airdrop.name, airdrop.symbol, airdrop.description]).lower()
            if q not in haystack:
                return False
        return True
