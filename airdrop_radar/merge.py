"""
重複排除 & マージ

■ 照合順:
  1. 名前の完全一致（大文字小文字を無視）
  2. Web サイトのホスト名一致（github.com 等の共有プラットフォームは対象外）
  最初に一致したレコードへマージする。

■ マージ規則:
  - スカラー値は新しい値が truthy の場合のみ上書き
  - id / name / createdAt / discoveredAt / rules は既存を維持
  - status は "live" への昇格のみ（自動降格しない）
  - verified / featured は OR
  - sources は URL 単位で追記のみ
  - categories / chains / requirements は順序付き和集合
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, Optional

from .models import Airdrop, AirdropSource, ScoredCandidate, utcnow
from .sanitizer import derive_symbol, normalize_host, slugify
from .scoring import infer_categories

logger = logging.getLogger(__name__)

# 複数プロジェクトが同居するホストは同一性の根拠にしない
SHARED_HOSTS = {
    "github.com", "gitlab.com", "twitter.com", "x.com", "reddit.com",
    "medium.com", "mirror.xyz", "substack.com", "t.me", "discord.gg",
    "discord.com", "youtube.com", "youtu.be", "google.com", "notion.site",
    "linktr.ee", "coindesk.com", "cointelegraph.com", "decrypt.co",
    "theblock.co", "blockworks.co", "cryptopanic.com",
}

_SCALAR_FIELDS = (
    "symbol", "description", "website", "twitter", "blog", "github",
    "claim_url", "claim_type", "estimated_value_usd", "friction_level",
    "community_score", "image_url",
)


@dataclass
class ReconcileResult:
    new: list[Airdrop] = field(default_factory=list)
    updated: list[Airdrop] = field(default_factory=list)


def _name_key(name: str) -> str:
    return (name or "").strip().lower()


def identity_host(url: str) -> str:
    """同一性判定に使うホスト名（共有ホストは空文字）"""
    host = normalize_host(url)
    if not host or host in SHARED_HOSTS:
        return ""
    return host


def _union(existing: Iterable[str], incoming: Iterable[str]) -> list[str]:
    out = list(existing)
    for item in incoming:
        if item and item not in out:
            out.append(item)
    return out


def _merge_sources(existing: list[AirdropSource], incoming: list[AirdropSource]) -> list[AirdropSource]:
    urls = {s.url for s in existing}
    merged = list(existing)
    for s in incoming:
        if s.url not in urls:
            merged.append(s)
            urls.add(s.url)
    return merged


def _fallback_id(now: datetime, taken) -> str:
    """airdrop-<ミリ秒>（同一実行内で重複したら連番）"""
    base = f"airdrop-{int(now.timestamp() * 1000)}"
    candidate_id, n = base, 1
    while candidate_id in taken:
        n += 1
        candidate_id = f"{base}-{n}"
    return candidate_id


def materialize(candidate: ScoredCandidate, now: Optional[datetime] = None) -> Airdrop:
    """候補 → 新規 Airdrop（不足項目は既定値で補完）"""
    now = now or utcnow()
    chains = list(candidate.chains) or ["Solana"]
    categories = list(candidate.categories) or infer_categories(
        f"{candidate.name} {candidate.description}"
    )
    return Airdrop(
        id=slugify(candidate.name),
        name=candidate.name,
        symbol=candidate.symbol or derive_symbol(candidate.name),
        description=candidate.description,
        website=candidate.website,
        twitter=candidate.twitter,
        blog=candidate.blog,
        github=candidate.github,
        claim_url=candidate.claim_url,
        claim_type=candidate.claim_type or "mixed",
        estimated_value_usd=candidate.estimated_value_usd,
        chains=chains,
        primary_chain=chains[0],
        categories=categories,
        friction_level=candidate.friction_level or "medium",
        status=candidate.status or "unverified",
        verified=candidate.verified,
        featured=candidate.featured,
        sources=list(candidate.sources),
        requirements=list(candidate.requirements),
        community_score=candidate.community_score,
        image_url=candidate.image_url,
        discovered_at=now,
        created_at=now,
        updated_at=now,
        last_verified_at=now if candidate.verified else None,
    )


def merge_into(existing: Airdrop, candidate: ScoredCandidate, now: Optional[datetime] = None) -> Airdrop:
    """既存レコードに候補をマージした新しいレコードを返す"""
    now = now or utcnow()
    changes = {}
    for name in _SCALAR_FIELDS:
        value = getattr(candidate, name)
        if value:
            changes[name] = value

    if candidate.status == "live":
        changes["status"] = "live"

    chains = _union(existing.chains, candidate.chains)
    changes.update(
        verified=existing.verified or candidate.verified,
        featured=existing.featured or candidate.featured,
        sources=_merge_sources(existing.sources, candidate.sources),
        categories=_union(existing.categories, candidate.categories),
        chains=chains,
        primary_chain=existing.primary_chain or (chains[0] if chains else ""),
        requirements=_union(existing.requirements, candidate.requirements),
        updated_at=now,
    )
    if candidate.verified:
        changes["last_verified_at"] = now

    return replace(existing, **changes)


class _Catalog:
    """id / 名前 / ホストの索引"""

    def __init__(self, airdrops: Iterable[Airdrop] = ()):
        self.records: dict[str, Airdrop] = {}
        self.by_name: dict[str, str] = {}
        self.by_host: dict[str, str] = {}
        for airdrop in airdrops:
            self.add(airdrop)

    def add(self, airdrop: Airdrop):
        self.records[airdrop.id] = airdrop
        self.by_name.setdefault(_name_key(airdrop.name), airdrop.id)
        host = identity_host(airdrop.website)
        if host:
            self.by_host.setdefault(host, airdrop.id)

    def match(self, name: str, website: str) -> Optional[str]:
        match_id = self.by_name.get(_name_key(name))
        if match_id is None:
            host = identity_host(website)
            match_id = self.by_host.get(host) if host else None
        return match_id


def reconcile(
    candidates: Iterable[ScoredCandidate],
    existing: Iterable[Airdrop],
    now: Optional[datetime] = None,
) -> ReconcileResult:
    """候補群を既存レコードと突き合わせて new / updated に振り分ける"""
    now = now or utcnow()
    catalog = _Catalog(existing)
    records = catalog.records
    new_ids: list[str] = []
    updated_ids: list[str] = []

    for candidate in candidates:
        match_id = catalog.match(candidate.name, candidate.website)
        if match_id is not None:
            records[match_id] = merge_into(records[match_id], candidate, now)
            if match_id not in new_ids and match_id not in updated_ids:
                updated_ids.append(match_id)
            continue

        airdrop = materialize(candidate, now)
        if not airdrop.id:
            airdrop = replace(airdrop, id=_fallback_id(now, records))
            logger.info(f"名前から ID を生成できないため {airdrop.id} を割り当て: {candidate.name!r}")
        elif airdrop.id in records:
            # 名前の表記揺れで slug が衝突 → 既存にマージ
            records[airdrop.id] = merge_into(records[airdrop.id], candidate, now)
            if airdrop.id not in new_ids and airdrop.id not in updated_ids:
                updated_ids.append(airdrop.id)
            continue

        catalog.add(airdrop)
        new_ids.append(airdrop.id)

    result = ReconcileResult(
        new=[records[i] for i in new_ids],
        updated=[records[i] for i in updated_ids],
    )
    logger.info(f"マージ結果: 新規 {len(result.new)}件 / 更新 {len(result.updated)}件")
    return result


def refold(
    new: Iterable[Airdrop],
    existing: Iterable[Airdrop],
    updated: Iterable[Airdrop] = (),
    now: Optional[datetime] = None,
) -> ReconcileResult:
    """
    新規レコードを再照合する（エンリッチメント後用）

    改名や Web サイトの補完で既存レコード（または同じバッチの別レコード）と
    同一と判明したものは新規として残さず、相手側にマージする。
    """
    now = now or utcnow()
    catalog = _Catalog(existing)
    records = catalog.records
    updated_ids: list[str] = []
    for airdrop in updated:
        records[airdrop.id] = airdrop
        updated_ids.append(airdrop.id)
    new_ids: list[str] = []

    for airdrop in new:
        match_id = catalog.match(airdrop.name, airdrop.website)
        if match_id is None:
            catalog.add(airdrop)
            new_ids.append(airdrop.id)
            continue

        logger.info(f"エンリッチ後に既存レコードと一致: {airdrop.id} → {match_id}")
        target = records[match_id]
        # materialize で補った既定値で相手を上書きしない
        records[match_id] = replace(
            merge_into(target, airdrop, now),
            claim_type=target.claim_type,
            friction_level=target.friction_level,
        )
        if match_id not in new_ids and match_id not in updated_ids:
            updated_ids.append(match_id)

    return ReconcileResult(
        new=[records[i] for i in new_ids],
        updated=[records[i] for i in updated_ids],
    )
