"""
Custom exceptions for the metric sampler
"""


class MetricSystemError(Exception):
    """Base exception for metric sampler errors"""


class ConfigurationError(MetricSystemError):
    """Configuration related errors"""


class SamplerStateError(MetricSystemError):
    """Sampler started twice, or started after stop"""

