"""
Prometheus metrics for the Gist Agent pipeline.

This module defines the counters and histograms exposed on ``/metrics``:
- publish outcomes per stage and publish latency
- news provider request outcomes
- cache hit rates per namespace
- LLM and image vendor calls
- batch orchestrator runs and per-item outcomes
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


# Custom registry for this application
metrics_registry = CollectorRegistry()


# ============================================================================
# Publishing Metrics
# ============================================================================

publish_counter = Counter(
    "gist_publish_total",
    "Publish invocations by terminal stage and outcome",
    ["stage", "outcome"],
    registry=metrics_registry,
)

publish_duration = Histogram(
    "gist_publish_duration_seconds",
    "Publish invocation duration in seconds",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0],
    registry=metrics_registry,
)

# ============================================================================
# Upstream Metrics
# ============================================================================

provider_request_counter = Counter(
    "provider_requests_total",
    "News provider requests by outcome",
    ["provider", "outcome"],  # outcome: success, timeout, error
    registry=metrics_registry,
)

llm_request_counter = Counter(
    "llm_requests_total",
    "Language and image generation requests",
    ["kind", "outcome"],  # kind: completion, image
    registry=metrics_registry,
)

cache_lookup_counter = Counter(
    "cache_lookups_total",
    "Cache lookups by key namespace and result",
    ["namespace", "result"],  # result: hit, miss
    registry=metrics_registry,
)

# ============================================================================
# Batch Metrics
# ============================================================================

batch_run_counter = Counter(
    "batch_runs_total",
    "Batch orchestrator runs",
    registry=metrics_registry,
)

batch_item_counter = Counter(
    "batch_items_total",
    "Batch candidates by outcome",
    ["outcome"],  # outcome: generated, skipped, failed
    registry=metrics_registry,
)


# ============================================================================
# Helper Functions
# ============================================================================


def record_provider_request(provider: str, outcome: str):
    provider_request_counter.labels(provider=provider, outcome=outcome).inc()


def record_cache_lookup(namespace: str, hit: bool):
    cache_lookup_counter.labels(
        namespace=namespace, result="hit" if hit else "miss"
    ).inc()


def record_llm_request(kind: str, outcome: str):
    llm_request_counter.labels(kind=kind, outcome=outcome).inc()


def record_publish(stage: str, outcome: str):
    publish_counter.labels(stage=stage, outcome=outcome).inc()


@contextmanager
def track_publish_duration():
    """Observe the wrapped block's duration on the publish histogram."""
    start_time = time.time()
    try:
        yield
    finally:
        publish_duration.observe(time.time() - start_time)


def get_metrics() -> bytes:
    """Metrics in Prometheus text format."""
    return generate_latest(metrics_registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
