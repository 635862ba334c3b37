"""
エアドロップストア

■ AirdropStore        — インターフェース（id → Airdrop の KV + 絞り込み）
■ InMemoryAirdropStore — プロセス内（テスト / 単発実行）
■ JsonFileAirdropStore — JSON ファイル永続化（書き込みごとに保存）

ストアは明示的に注入する（モジュールグローバルの状態は持たない）。
"""
import json
import logging
import os
from collections import Counter
from dataclasses import replace
from typing import Iterable, Optional

from .models import CAMEL_TO_ATTR, Airdrop, AirdropFilters, utcnow

logger = logging.getLogger(__name__)

# 管理者更新で変更できない項目
IMMUTABLE_FIELDS = {"id", "createdAt", "discoveredAt"}


class AirdropStore:
    """ストアのインターフェース"""

    def get(self, airdrop_id: str) -> Optional[Airdrop]:
        raise NotImplementedError

    def list_all(self) -> list[Airdrop]:
        raise NotImplementedError

    def upsert(self, airdrops: Iterable[Airdrop]) -> int:
        raise NotImplementedError

    def delete(self, airdrop_id: str) -> bool:
        raise NotImplementedError

    # ── 共通実装 ──

    def query(self, filters: Optional[AirdropFilters] = None) -> list[Airdrop]:
        """絞り込み（featured → 推定価値の高い順）"""
        filters = filters or AirdropFilters()
        found = [a for a in self.list_all() if filters.matches(a)]
        found.sort(key=lambda a: (not a.featured, -(a.estimated_value or 0), a.name.lower()))
        return found

    def update(self, airdrop_id: str, changes: dict) -> Airdrop:
        """管理者による部分更新（キャメルケース dict）。未知の id は KeyError"""
        existing = self.get(airdrop_id)
        if existing is None:
            raise KeyError(airdrop_id)

        unknown = [k for k in changes if k not in CAMEL_TO_ATTR]
        if unknown:
            raise ValueError(f"unknown fields: {', '.join(sorted(unknown))}")

        payload = existing.to_dict()
        payload.update({k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS})
        payload["updatedAt"] = utcnow().isoformat()
        updated = Airdrop.from_dict(payload)
        self.upsert([updated])
        logger.info(f"管理者更新: {airdrop_id} ({', '.join(sorted(changes))})")
        return updated

    def category_counts(self, statuses: tuple = ("live", "unverified")) -> dict[str, int]:
        counts: Counter = Counter()
        for airdrop in self.list_all():
            if airdrop.status in statuses:
                counts.update(airdrop.categories)
        return {k: v for k, v in counts.most_common() if v > 0}

    def stats(self) -> dict:
        airdrops = self.list_all()
        by_status = Counter(a.status for a in airdrops)
        return {
            "total": len(airdrops),
            "live": by_status.get("live", 0),
            "verified": sum(1 for a in airdrops if a.verified),
            "byStatus": dict(by_status),
        }


class InMemoryAirdropStore(AirdropStore):
    """プロセス内ストア"""

    def __init__(self, airdrops: Optional[Iterable[Airdrop]] = None):
        self._records: dict[str, Airdrop] = {}
        if airdrops:
            self.upsert(airdrops)

    def get(self, airdrop_id: str) -> Optional[Airdrop]:
        return self._records.get(airdrop_id)

    def list_all(self) -> list[Airdrop]:
        return list(self._records.values())

    def upsert(self, airdrops: Iterable[Airdrop]) -> int:
        n = 0
        for airdrop in airdrops:
            self._records[airdrop.id] = replace(airdrop)
            n += 1
        return n

    def delete(self, airdrop_id: str) -> bool:
        return self._records.pop(airdrop_id, None) is not None


class JsonFileAirdropStore(InMemoryAirdropStore):
    """JSON ファイル永続化ストア"""

    def __init__(self, filepath: str, seed: Optional[Iterable[Airdrop]] = None):
        self.filepath = filepath
        super().__init__()
        self._load()
        # 空で起動したときだけシードを投入
        if not self._records and seed:
            n = self.upsert(seed)
            logger.info(f"シードカタログを投入: {n}件")

    def _load(self):
        """ファイルから読み込み（壊れたレコードはスキップ）"""
        if not os.path.exists(self.filepath):
            return
        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"ストア読み込みエラー: {e}")
            return

        for item in raw.get("airdrops", []):
            try:
                airdrop = Airdrop.from_dict(item)
            except (ValueError, TypeError) as e:
                logger.warning(f"不正なレコードをスキップ: {item.get('id') if isinstance(item, dict) else item!r}: {e}")
                continue
            self._records[airdrop.id] = airdrop
        logger.info(f"ストア読み込み: {len(self._records)}件 ({self.filepath})")

    def _save(self):
        """アトミックに保存（一時ファイル → rename）"""
        os.makedirs(os.path.dirname(self.filepath) or ".", exist_ok=True)
        tmp = f"{self.filepath}.tmp"
        data = {"airdrops": [a.to_dict() for a in self._records.values()]}
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.filepath)

    def upsert(self, airdrops: Iterable[Airdrop]) -> int:
        n = super().upsert(airdrops)
        if n:
            self._save()
        return n

    def delete(self, airdrop_id: str) -> bool:
        removed = super().delete(airdrop_id)
        if removed:
            self._save()
        return removed
