"""
テキストサニタイズ + 抽出ユーティリティ

■ 外部ソース由来のテキストは、スコアリング前・保存前に必ず sanitize() を通す
  - < > を除去
  - javascript: / data: スキームを除去
  - インラインイベントハンドラ（onclick= 等）を除去
  - 数値文字参照（&#60; 等）を除去
"""
import re
from typing import Iterable, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

_ANGLE_RE = re.compile(r"[<>]")
_JS_SCHEME_RE = re.compile(r"javascript:", re.IGNORECASE)
_DATA_URI_RE = re.compile(r"data:[a-z0-9.+-]+/[a-z0-9.+-]+[;,]", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+=", re.IGNORECASE)
_NUMERIC_ENTITY_RE = re.compile(r"&#\d+;")
_WHITESPACE_RE = re.compile(r"\s+")

# 既知ティッカー
KNOWN_SYMBOLS = {
    "Jupiter": "JUP", "Jito": "JTO", "Pyth": "PYTH", "Pyth Network": "PYTH",
    "MarginFi": "MFI", "Drift": "DRIFT", "Drift Protocol": "DRIFT",
    "Tensor": "TNSR", "Sharky": "SHARK", "Wormhole": "W",
    "Raydium": "RAY", "Orca": "ORCA", "Meteora": "MET", "Kamino": "KMNO",
    "Solend": "SLND", "Phantom": "PHM", "Saber": "SBR", "Hubble": "HBB",
    "UXD": "UXP", "Star Atlas": "ATLAS", "Magic Eden": "ME",
    "Marinade Finance": "MNDE", "Aurory": "AURY", "Genopets": "GENE",
}

_REQUIREMENT_PATTERNS = [
    re.compile(r"must have (?:used|interacted with)\s*([^.\n]+)", re.IGNORECASE),
    re.compile(r"required?:\s*([^.\n]+)", re.IGNORECASE),
    re.compile(r"eligibility:?\s*([^.\n]+)", re.IGNORECASE),
    re.compile(r"prerequisites?:\s*([^.\n]+)", re.IGNORECASE),
]

_PROJECT_NAME_PATTERNS = [
    re.compile(r"((?:[A-Z][a-zA-Z0-9]+ )*[A-Z][a-zA-Z0-9]+) (?i:airdrop|token|launch)"),
    re.compile(r"(?:Announcing|Introducing) ([A-Z][a-zA-Z]+)"),
    re.compile(r"^([A-Z][a-zA-Z]+):"),
]
_LEADING_CAPS_RE = re.compile(r"^([A-Z][a-zA-Z0-9]+(?:\s[A-Z][a-zA-Z0-9]+)*)")

_CLAIM_URL_PATTERNS = [
    re.compile(r"https?://[^\s\"'<>]*claim[^\s\"'<>]*", re.IGNORECASE),
    re.compile(r"claim\.[a-zA-Z0-9-]+\.[a-zA-Z]{2,}", re.IGNORECASE),
    re.compile(r"airdrop\.[a-zA-Z0-9-]+\.[a-zA-Z]{2,}", re.IGNORECASE),
    re.compile(r"app\.[a-zA-Z0-9-]+\.[a-zA-Z]{2,}/claim", re.IGNORECASE),
]


def sanitize(text) -> str:
    """危険なマークアップ断片を除去（None や非文字列は空文字）"""
    if not isinstance(text, str):
        return ""
    text = _ANGLE_RE.sub("", text)
    text = _JS_SCHEME_RE.sub("", text)
    text = _DATA_URI_RE.sub("", text)
    text = _EVENT_HANDLER_RE.sub("", text)
    text = _NUMERIC_ENTITY_RE.sub("", text)
    return text.strip()


def truncate(text: str, max_length: int) -> str:
    """max_length 超過時は切り詰めて '...' を付与"""
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + "..."


def sanitize_and_truncate(text, max_length: int) -> str:
    return truncate(sanitize(text), max_length)


def html_to_text(html) -> str:
    """HTML → プレーンテキスト（タイトル・見出し・リンク・本文）"""
    if not isinstance(html, str) or not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    parts: list[str] = []
    if soup.title and soup.title.string:
        parts.append(soup.title.string.strip())

    for heading in soup.find_all(["h1", "h2", "h3"]):
        text = heading.get_text(" ", strip=True)
        if text:
            parts.append(text)

    for a in soup.find_all("a", href=True):
        label = a.get_text(" ", strip=True)
        href = a["href"]
        if href.startswith("http"):
            parts.append(f"{label} ({href})" if label else href)

    body = soup.get_text(" ", strip=True)
    if body:
        parts.append(body)

    text = _WHITESPACE_RE.sub(" ", " ".join(parts))
    return sanitize(text)


# ── URL / 名前 ──

def normalize_host(url) -> str:
    """URL → ホスト名（スキーム・www.・ポート・パスを除去、小文字化）"""
    if not isinstance(url, str) or not url.strip():
        return ""
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def slugify(name: str) -> str:
    """'Foo Protocol!' → 'foo-protocol'"""
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower())
    return slug.strip("-")


def derive_symbol(name: str, known: Optional[dict[str, str]] = None) -> str:
    """ティッカー推定: 既知テーブル → 複数語なら頭文字 → 先頭4文字"""
    name = (name or "").strip()
    table = KNOWN_SYMBOLS if known is None else known
    if name in table:
        return table[name]
    words = [w for w in re.split(r"\s+", name) if w]
    if len(words) > 1:
        return "".join(w[0] for w in words[:5]).upper()
    letters = re.sub(r"[^A-Za-z0-9]", "", name)
    return letters[:4].upper()


def extract_project_name(title: str, fallback: str = "") -> str:
    """タイトルからプロジェクト名を抽出（見つからなければ fallback）"""
    title = sanitize(title)
    for pattern in _PROJECT_NAME_PATTERNS:
        m = pattern.search(title)
        if m:
            return m.group(1)

    if fallback:
        return fallback

    m = _LEADING_CAPS_RE.match(title)
    if m:
        return m.group(1)
    return " ".join(title.split()[:3])


def extract_claim_url(text: str) -> Optional[str]:
    """本文中の claim 系 URL を抽出"""
    if not text:
        return None
    for pattern in _CLAIM_URL_PATTERNS:
        m = pattern.search(text)
        if m:
            url = m.group(0).rstrip(".,;)")
            if not url.lower().startswith("http"):
                url = f"https://{url}"
            return sanitize(url)
    return None


def extract_requirements(text: str) -> list[str]:
    """'Eligibility: ...' 形式の参加条件を抽出"""
    cleaned = sanitize(text)
    found = []
    for pattern in _REQUIREMENT_PATTERNS:
        m = pattern.search(cleaned)
        if m:
            req = m.group(1).strip()
            if req and req not in found:
                found.append(req)
    return found


def chunk(items: Iterable, size: int) -> list[list]:
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), max(size, 1))]
