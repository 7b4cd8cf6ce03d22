"""Trend clustering: the pure algorithm and the detection stage."""

from .clustering import cluster_vectors, topic_label, trend_score
from .detector import TrendDetector, TrendResult

__all__ = ["TrendDetector", "TrendResult", "cluster_vectors", "topic_label", "trend_score"]
