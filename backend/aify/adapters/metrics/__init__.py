"""Metrics adapters: Prometheus counters and renderer, plus in-memory fakes."""

from aify.adapters.metrics.billing import (
    FakeBillingMetrics,
    FakeMetricsRenderer,
    PrometheusBillingMetrics,
    PrometheusMetricsRenderer,
    WebhookEventRecord,
)

__all__ = [
    "FakeBillingMetrics",
    "FakeMetricsRenderer",
    "PrometheusBillingMetrics",
    "PrometheusMetricsRenderer",
    "WebhookEventRecord",
]
