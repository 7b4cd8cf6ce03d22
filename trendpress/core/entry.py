"""Identity helpers: slugs, canonical URLs, content hashes and topic identities.

Every deduplication decision in the pipeline is made on a value computed
here, so all helpers are pure and deterministic.
"""

from __future__ import annotations

from datetime import datetime, timezone
import hashlib
import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from bs4 import BeautifulSoup


_TRACKING_PARAMS = {"fbclid", "gclid", "mc_cid", "mc_eid", "ref", "ref_src"}
_WHITESPACE_RE = re.compile(r"\s+")


def slugify(text: str, max_length: int = 80) -> str:
    """Convert text to URL-safe slug.

    Args:
        text: The text to slugify
        max_length: Maximum slug length

    Returns:
        A lowercase, hyphenated slug, "untitled" when nothing survives
    """
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    if not slug:
        slug = "untitled"
    return slug[:max_length].rstrip("-")


def short_hash(value: str, length: int = 16) -> str:
    """Return the first ``length`` hex characters of the SHA-256 of value."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]


def canonicalize_url(url: str) -> str:
    """Normalize a URL so trivially different links compare equal.

    Lower-cases scheme and host, drops the fragment, tracking parameters
    (utm_*, fbclid, gclid, ...) and a trailing slash, and sorts the query.
    """
    parts = urlsplit(url.strip())
    scheme = (parts.scheme or "https").lower()
    netloc = parts.netloc.lower()
    if netloc.endswith(":80") and scheme == "http":
        netloc = netloc[:-3]
    if netloc.endswith(":443") and scheme == "https":
        netloc = netloc[:-4]
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not key.lower().startswith("utm_") and key.lower() not in _TRACKING_PARAMS
    ]
    path = parts.path or "/"
    if len(path) > 1:
        path = path.rstrip("/")
    return urlunsplit((scheme, netloc, path, urlencode(sorted(query)), ""))


def strip_markup(text: str) -> str:
    """Remove HTML tags and collapse whitespace."""
    if not text:
        return ""
    if "<" in text and ">" in text:
        soup = BeautifulSoup(text, "html.parser")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        text = soup.get_text(separator=" ")
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate_body(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    # Prefer cutting at a word boundary.
    space = cut.rfind(" ")
    if space > max_chars * 0.8:
        cut = cut[:space]
    return cut.rstrip()


def content_hash(source_id: str, canonical_url: str, body: str, prefix_chars: int = 500) -> str:
    """Fingerprint of one item: source, canonical URL and the body prefix."""
    payload = f"{source_id}|{canonical_url}|{body[:prefix_chars]}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def normalize_label(label: str) -> str:
    return _WHITESPACE_RE.sub(" ", re.sub(r"[^a-z0-9 ]+", " ", label.lower())).strip()


def topic_identity(category: str, label: str, first_seen: datetime) -> str:
    """Deterministic key for one topic: category, normalized label, UTC date bucket."""
    bucket = first_seen.astimezone(timezone.utc).strftime("%Y-%m-%d")
    return short_hash(f"{category.lower()}|{normalize_label(label)}|{bucket}", 24)


def domain_of(url: str) -> str:
    netloc = urlsplit(url).netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]
    return netloc
