"""Tests for agglomerative clustering, trend scoring and labels."""

from datetime import timedelta
import math
import random

import pytest

from conftest import NOW, make_item

from trendpress.trends.clustering import centroid_of, cluster_vectors, topic_label, trend_score


def _noisy_groups(seed: int, groups: int = 4, per_group: int = 6, dim: int = 12):
    rng = random.Random(seed)
    vectors = []
    for g in range(groups):
        for _ in range(per_group):
            vector = [rng.uniform(0.0, 0.05) for _ in range(dim)]
            vector[g] += 1.0
            vectors.append(vector)
    rng.shuffle(vectors)
    return vectors


def test_identical_vectors_form_one_cluster():
    assert cluster_vectors([[1.0, 0.0]] * 3, 0.9) == [[0, 1, 2]]


def test_orthogonal_vectors_stay_apart():
    assert cluster_vectors([[1, 0, 0], [0, 1, 0], [0, 0, 1]], 0.5) == [[0], [1], [2]]


def test_clusters_are_a_partition():
    vectors = _noisy_groups(seed=7)
    clusters = cluster_vectors(vectors, 0.75)
    flat = sorted(idx for cluster in clusters for idx in cluster)
    assert flat == list(range(len(vectors)))
    assert len(clusters) == 4


def test_same_input_gives_same_partition():
    vectors = _noisy_groups(seed=11)
    assert cluster_vectors(vectors, 0.75) == cluster_vectors(vectors, 0.75)


def test_ties_resolve_to_earliest_cluster():
    vectors = [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]
    # The third vector is equally close (0.707) to both existing clusters.
    assert cluster_vectors(vectors, 0.7) == [[0, 2], [1]]


def _unit_angles(degrees):
    return [[math.cos(math.radians(a)), math.sin(math.radians(a))] for a in degrees]


def _random_vectors(rng, count, dim):
    return [[rng.gauss(0.0, 1.0) for _ in range(dim)] for _ in range(count)]


def test_raising_threshold_never_grows_largest_cluster_on_arc():
    vectors = _unit_angles([73.5, 107.6, 155.4, 18.1, 11.5, 124.8, 105.8, 129.8])
    largest_low = max(len(c) for c in cluster_vectors(vectors, 0.6))
    largest_high = max(len(c) for c in cluster_vectors(vectors, 0.9))
    assert largest_high <= largest_low


@pytest.mark.parametrize("seed", range(25))
def test_raising_threshold_never_grows_largest_cluster(seed):
    rng = random.Random(seed)
    dim = rng.choice([2, 3, 8])
    vectors = _random_vectors(rng, rng.randint(2, 30), dim)
    if rng.random() < 0.5:
        vectors = [[abs(x) for x in v] for v in vectors]
    largest_low = max(len(c) for c in cluster_vectors(vectors, 0.6))
    largest_high = max(len(c) for c in cluster_vectors(vectors, 0.9))
    assert largest_high <= largest_low


@pytest.mark.parametrize("seed", range(10))
def test_higher_threshold_refines_partition(seed):
    rng = random.Random(100 + seed)
    vectors = [[abs(x) for x in v] for v in _random_vectors(rng, 20, 4)]
    coarse = cluster_vectors(vectors, 0.6)
    fine = cluster_vectors(vectors, 0.9)
    owner = {idx: n for n, cluster in enumerate(coarse) for idx in cluster}
    for cluster in fine:
        assert len({owner[idx] for idx in cluster}) == 1


def test_cluster_similarity_is_average_linkage():
    # 2 joins 0 at 0.8; the pair average to 1 is (0.0 + 0.6) / 2 = 0.3, below 0.5.
    vectors = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.8, 0.6, 0.0]]
    assert cluster_vectors(vectors, 0.5) == [[0, 2], [1]]
    assert cluster_vectors(vectors, 0.25) == [[0, 1, 2]]


def test_threshold_one_only_merges_exact_directions():
    clusters = cluster_vectors([[1.0, 0.0], [2.0, 0.0], [1.0, 0.01]], 1.0)
    assert clusters == [[0, 1], [2]]


@pytest.mark.parametrize("threshold", [0.0, -0.1, 1.01])
def test_invalid_threshold(threshold):
    with pytest.raises(ValueError):
        cluster_vectors([[1.0]], threshold)


def test_empty_input():
    assert cluster_vectors([], 0.75) == []


def test_centroid_is_member_mean():
    assert centroid_of([[1.0, 0.0], [0.0, 1.0]]) == [0.5, 0.5]


def test_trend_score_decays_with_half_life():
    times = [NOW, NOW - timedelta(hours=12), NOW - timedelta(hours=24)]
    assert trend_score(times, NOW, half_life_hours=12) == pytest.approx(1.75)


def test_trend_score_ignores_future_skew():
    assert trend_score([NOW + timedelta(minutes=5)], NOW, 12) == 1.0


def test_label_prefers_metal_for_metals_category():
    members = [
        make_item("a", title="Gold rallies", metals=["gold"]),
        make_item("b", title="Bullion demand", metals=["gold", "silver"]),
    ]
    assert topic_label(members, "metals") == ("Gold Price Updates", "gold")


def test_label_uses_majority_symbol_for_stocks():
    members = [
        make_item("a", title="Infosys beats estimates", symbols=["INFY"]),
        make_item("b", title="IT stocks climb", symbols=["INFY", "TCS"]),
        make_item("c", title="Sensex ends higher"),
    ]
    assert topic_label(members, "stocks") == ("INFY - Latest Market Updates", "INFY")


def test_label_falls_back_to_first_title():
    members = [make_item("a", title="Parliament passes budget"), make_item("b", title="Budget vote")]
    assert topic_label(members, "news") == ("Parliament passes budget", None)
