"""Quality gate applied to topics before any generation call."""

from __future__ import annotations

import re
from typing import Collection

from ..core.types import TopicCluster
from ..errors import ValidationError
from ..scrape.parsers import METALS

MIN_TOPIC_LENGTH = 4
MIN_FACTS_FOR_GENERIC = 3
MIN_CLAIM_CHARS = 20

GENERIC_TOPICS = {
    "general",
    "market update",
    "market",
    "news",
    "latest",
    "updates",
    "trending",
    "financial",
    "finance",
    "investing",
    "investment",
}


def validate_topic(
    cluster: TopicCluster,
    related_symbol: str | None,
    min_sources: int = 2,
    known_symbols: Collection[str] | None = None,
) -> None:
    """Raise ValidationError when the topic cannot support an article.

    Checks, in order: label length, generic labels without enough facts,
    source diversity, an extractable claim, and the related instrument
    (metals must be known; symbols must be in known_symbols when given).
    With known_symbols, a short label prefix must itself be a known symbol
    or metal.
    """
    label = cluster.label.strip()
    if len(label) < MIN_TOPIC_LENGTH:
        raise ValidationError(f"topic too short: {label!r}")

    if label.lower() in GENERIC_TOPICS and cluster.size < MIN_FACTS_FOR_GENERIC:
        raise ValidationError(f"generic topic {label!r} needs at least {MIN_FACTS_FOR_GENERIC} facts")

    sources = cluster.source_ids
    if len(sources) < min_sources:
        raise ValidationError(f"only {len(sources)} distinct source(s), need {min_sources}")

    if not any(_has_claim(item.title) or _has_claim(item.body) for item in cluster.members):
        raise ValidationError("no member carries an extractable claim")

    if related_symbol:
        if related_symbol.lower() in METALS or cluster.category == "metals":
            if related_symbol.lower() not in METALS:
                raise ValidationError(f"unknown metal: {related_symbol}")
        elif known_symbols:
            allowed = {symbol.upper() for symbol in known_symbols}
            if related_symbol.upper() not in allowed:
                raise ValidationError(f"unknown stock symbol: {related_symbol}")

    if known_symbols:
        prefix = re.split(r"[\s:-]", label, maxsplit=1)[0]
        allowed = {symbol.upper() for symbol in known_symbols}
        if prefix and len(prefix) < MIN_TOPIC_LENGTH and prefix.upper() not in allowed and prefix.lower() not in METALS:
            raise ValidationError(f"topic prefix {prefix!r} is not a known stock or metal")


def _has_claim(text: str) -> bool:
    stripped = re.sub(r"\s+", " ", text or "").strip()
    return len(stripped) >= MIN_CLAIM_CHARS and bool(re.search(r"[A-Za-z]{3,}", stripped))
