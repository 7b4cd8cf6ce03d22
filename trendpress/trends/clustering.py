"""
Agglomerative clustering and trend scoring.

Clustering is average-linkage agglomeration over cosine similarity. Every
item starts as its own cluster; the most similar pair of clusters is merged
while that similarity reaches the threshold. The similarity of two clusters
is the mean pairwise similarity of their members, which equals the dot
product of their unit-vector centroids scaled by size. Equal similarities
resolve to the earliest pair in input order.

The merge sequence does not depend on the threshold, only where it stops
does. A higher threshold therefore stops earlier and yields a finer
partition of the same items.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
import math
from typing import Sequence

import numpy as np

from ..core.types import ScrapedItem

# Similarities are rounded before comparison so float noise cannot break ties.
_SIM_DECIMALS = 9


def cluster_vectors(vectors: Sequence[Sequence[float]], threshold: float) -> list[list[int]]:
    """Partition vectors into clusters.

    Args:
        vectors: Equal-length vectors in processing order
        threshold: Cosine similarity cutoff in (0, 1]

    Returns:
        Member index lists ordered by their earliest member; every index
        appears once and indexes within a cluster are ascending
    """
    if not 0.0 < threshold <= 1.0:
        raise ValueError(f"threshold must be in (0, 1], got {threshold}")
    if len(vectors) == 0:
        return []

    matrix = np.asarray(vectors, dtype=float)
    if matrix.ndim != 2:
        raise ValueError("vectors must share one dimension")
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    unit = matrix / np.where(norms > 0, norms, 1.0)

    n = len(unit)
    sims = unit @ unit.T
    sizes = np.ones(n)
    active = np.ones(n, dtype=bool)
    members: list[list[int]] = [[idx] for idx in range(n)]
    upper = np.triu(np.ones((n, n), dtype=bool), k=1)
    cutoff = round(threshold, _SIM_DECIMALS)

    while True:
        candidates = np.where(
            upper & active[:, None] & active[None, :],
            np.round(sims, _SIM_DECIMALS),
            -np.inf,
        )
        # argmax returns the first maximum in row-major order, i.e. the earliest pair.
        i, j = divmod(int(np.argmax(candidates)), n)
        if candidates[i, j] < cutoff:
            break
        merged = (sizes[i] * sims[i] + sizes[j] * sims[j]) / (sizes[i] + sizes[j])
        sims[i, :] = merged
        sims[:, i] = merged
        sizes[i] += sizes[j]
        active[j] = False
        members[i].extend(members[j])
        members[j] = []

    return [sorted(group) for group, alive in zip(members, active) if alive]


def centroid_of(vectors: Sequence[Sequence[float]]) -> list[float]:
    matrix = np.asarray(vectors, dtype=float)
    return matrix.mean(axis=0).tolist()


def trend_score(scraped_times: Sequence[datetime], now: datetime, half_life_hours: float) -> float:
    """Volume with exponential recency decay.

    Each member contributes 0.5 ** (age_hours / half_life_hours), so a fresh
    member counts 1.0 and one half-life old counts 0.5.
    """
    if half_life_hours <= 0:
        raise ValueError("half_life_hours must be positive")
    total = 0.0
    for scraped_at in scraped_times:
        age_hours = max(0.0, (now - scraped_at).total_seconds() / 3600.0)
        total += math.pow(0.5, age_hours / half_life_hours)
    return round(total, 6)


def topic_label(members: Sequence[ScrapedItem], category: str) -> tuple[str, str | None]:
    """Readable label for a cluster and the symbol or metal it is about.

    A symbol or metal mentioned by at least half of the members names the
    topic; otherwise the earliest member's title does.
    """
    quorum = max(1, math.ceil(len(members) / 2))

    metals = Counter(metal for item in members for metal in set(item.related_metals))
    if metals:
        metal, count = sorted(metals.items(), key=lambda kv: (-kv[1], kv[0]))[0]
        if count >= quorum and (category == "metals" or not _majority_symbol(members, quorum)):
            return f"{metal.title()} Price Updates", metal

    symbol = _majority_symbol(members, quorum)
    if symbol and category in ("stocks", "sharia"):
        return f"{symbol} - Latest Market Updates", symbol

    return members[0].title, symbol


def _majority_symbol(members: Sequence[ScrapedItem], quorum: int) -> str | None:
    symbols = Counter(symbol for item in members for symbol in set(item.related_symbols))
    if not symbols:
        return None
    symbol, count = sorted(symbols.items(), key=lambda kv: (-kv[1], kv[0]))[0]
    return symbol if count >= quorum else None
