"""
Observability for the gist pipeline: Prometheus metrics and structured logging.
"""

from gist_agent.observability.logging import log_context, setup_logging
from gist_agent.observability.metrics import get_metrics, metrics_registry

__all__ = [
    "metrics_registry",
    "get_metrics",
    "setup_logging",
    "log_context",
]
