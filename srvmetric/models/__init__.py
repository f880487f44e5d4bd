"""
Data models package
"""

from .record import MetricRecord, ResourceSnapshot

__all__ = [
    "MetricRecord",
    "ResourceSnapshot",
]
