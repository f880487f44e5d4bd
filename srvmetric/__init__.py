"""
srvmetric - in-process server metric sampler
Main package initialization
"""

__version__ = "0.1.0"

from srvmetric.core.asgi import MetricMiddleware
from srvmetric.core.exceptions import ConfigurationError, MetricSystemError
from srvmetric.core.extension import MetricExtension
from srvmetric.utils.config import MetricConfig, load_config

__all__ = [
    "MetricExtension",
    "MetricMiddleware",
    "MetricConfig",
    "load_config",
    "MetricSystemError",
    "ConfigurationError",
]
