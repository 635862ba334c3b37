"""
Tests for content sanitization and text extraction helpers.
"""

from __future__ import annotations

from airdrop_radar.sanitizer import (
    chunk,
    derive_symbol,
    extract_claim_url,
    extract_project_name,
    extract_requirements,
    html_to_text,
    normalize_host,
    sanitize,
    sanitize_and_truncate,
    slugify,
    truncate,
)


def test_sanitize_strips_markup_fragments():
    cleaned = sanitize('<img src=x onerror=alert(1)> javascript:steal() &#60;b&#62; data:text/html;base64,AAA')
    assert "<" not in cleaned and ">" not in cleaned
    assert "onerror=" not in cleaned
    assert "javascript:" not in cleaned
    assert "&#60;" not in cleaned
    assert "data:text/html;" not in cleaned


def test_sanitize_non_string_is_empty():
    assert sanitize(None) == ""
    assert sanitize(42) == ""


def test_truncate_appends_ellipsis_only_when_needed():
    assert truncate("abcdef", 3) == "abc..."
    assert truncate("abc", 3) == "abc"
    assert sanitize_and_truncate("<b>hello world</b>", 5) == "bhell..."


def test_html_to_text_drops_scripts_and_keeps_links():
    html = (
        "<html><head><title>Claim Page</title><script>evil()</script></head>"
        "<body><h1>Season 1</h1><a href='https://claim.foo.xyz'>Claim</a><p>Body text</p></body></html>"
    )
    text = html_to_text(html)
    assert "Claim Page" in text
    assert "Season 1" in text
    assert "Claim (https://claim.foo.xyz)" in text
    assert "evil()" not in text


def test_normalize_host_and_slugify():
    assert normalize_host("https://www.Jup.ag/claim?x=1") == "jup.ag"
    assert normalize_host("kamino.finance/blog") == "kamino.finance"
    assert normalize_host("") == ""
    assert slugify("Foo Protocol!") == "foo-protocol"
    assert slugify("  --Star   Atlas-- ") == "star-atlas"


def test_derive_symbol():
    assert derive_symbol("Jupiter") == "JUP"
    assert derive_symbol("Foo Protocol") == "FP"
    assert derive_symbol("Zetamarkets") == "ZETA"
    assert derive_symbol("Foo", known={"Foo": "FOO1"}) == "FOO1"


def test_extract_project_name():
    assert extract_project_name("Foo Protocol Airdrop - Claim Now!") == "Foo Protocol"
    assert extract_project_name("Announcing Zeta season rewards") == "Zeta"
    assert extract_project_name("weekly recap", fallback="Jupiter") == "Jupiter"


def test_extract_claim_url():
    assert extract_claim_url("Visit https://claim.foo.xyz/now.") == "https://claim.foo.xyz/now"
    assert extract_claim_url("head to claim.foo.io today") == "https://claim.foo.io"
    assert extract_claim_url("nothing here") is None


def test_extract_requirements():
    assert extract_requirements("Eligibility: must hold JUP. Other text") == ["must hold JUP"]


def test_chunk():
    assert chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert chunk([], 3) == []
