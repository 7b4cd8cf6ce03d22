"""Tests for slugs, canonical URLs, content hashes and topic identities."""

from datetime import datetime, timedelta, timezone

from trendpress.core.entry import (
    canonicalize_url,
    content_hash,
    domain_of,
    slugify,
    strip_markup,
    topic_identity,
    truncate_body,
)


def test_slugify_basic():
    assert slugify("Gold Price Updates: Rally Continues!") == "gold-price-updates-rally-continues"


def test_slugify_empty_falls_back():
    assert slugify("!!!") == "untitled"


def test_slugify_respects_max_length_without_trailing_dash():
    slug = slugify("alpha beta gamma delta", max_length=11)
    assert slug == "alpha-beta"


def test_canonicalize_url_drops_tracking_and_fragment():
    url = "HTTPS://News.Example.com/story/42/?utm_source=x&b=2&a=1&fbclid=zzz#comments"
    assert canonicalize_url(url) == "https://news.example.com/story/42?a=1&b=2"


def test_canonicalize_url_keeps_root_path():
    assert canonicalize_url("https://example.com") == "https://example.com/"


def test_content_hash_is_stable_and_sensitive_to_inputs():
    first = content_hash("wire", "https://example.com/a", "Body text")
    assert first == content_hash("wire", "https://example.com/a", "Body text")
    assert first != content_hash("other", "https://example.com/a", "Body text")
    assert first != content_hash("wire", "https://example.com/b", "Body text")
    assert first != content_hash("wire", "https://example.com/a", "Different body")


def test_content_hash_only_uses_body_prefix():
    prefix = "x" * 500
    assert content_hash("wire", "u", prefix + "tail one") == content_hash("wire", "u", prefix + "tail two")


def test_strip_markup_removes_tags_and_scripts():
    html = "<p>Shares <b>rose</b></p><script>track()</script>\n\n<p>today</p>"
    assert strip_markup(html) == "Shares rose today"


def test_truncate_body_prefers_word_boundary():
    text = "word " * 50
    cut = truncate_body(text, 23)
    assert len(cut) <= 23
    assert not cut.endswith(" ")
    assert cut.endswith("word")


def test_topic_identity_buckets_by_utc_day():
    morning = datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc)
    evening = morning + timedelta(hours=20)
    next_day = morning + timedelta(days=1)

    assert topic_identity("news", "Rate Decision", morning) == topic_identity("news", "rate  decision!", evening)
    assert topic_identity("news", "Rate Decision", morning) != topic_identity("news", "Rate Decision", next_day)
    assert topic_identity("news", "Rate Decision", morning) != topic_identity("stocks", "Rate Decision", morning)


def test_domain_of_strips_www():
    assert domain_of("https://www.Example.com/path") == "example.com"
