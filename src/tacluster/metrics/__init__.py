"""Pluggable distance metrics between time-activity curves."""

from tacluster.metrics.base import MAX_DISTANCE, DistanceMetric
from tacluster.metrics.registry import get_metric, list_metrics, register_metric

__all__ = [
    "MAX_DISTANCE",
    "DistanceMetric",
    "get_metric",
    "list_metrics",
    "register_metric",
]
