"""Billing metrics adapters (Prometheus + Fake).

The counters and the renderer share one CollectorRegistry per container, so
the scrape endpoint serves exactly the ledger and webhook series and nothing
from the process-wide default registry.
"""

from dataclasses import dataclass

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

from aify.core.protocols.metrics import BillingMetrics, MetricsRenderer


class PrometheusBillingMetrics(BillingMetrics):
    """Prometheus-backed ledger and webhook metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._ledger_operations = Counter(
            "aify_ledger_operations_total",
            "Committed ledger entries",
            ["kind"],
            registry=self._registry,
        )

        self._insufficient_balance = Counter(
            "aify_ledger_insufficient_balance_total",
            "Debits rejected for insufficient balance",
            registry=self._registry,
        )

        self._webhook_events = Counter(
            "aify_billing_webhook_events_total",
            "Processed billing webhook events",
            ["event_type", "outcome"],
            registry=self._registry,
        )

    # -- BillingMetrics protocol methods --

    def inc_ledger_operation(self, kind: str) -> None:
        self._ledger_operations.labels(kind=kind).inc()

    def inc_insufficient_balance(self) -> None:
        self._insufficient_balance.inc()

    def inc_webhook_event(self, event_type: str, outcome: str) -> None:
        self._webhook_events.labels(event_type=event_type, outcome=outcome).inc()


def split_charset(content_type: str) -> tuple[str, str]:
    """Return ``content_type`` without its charset parameter, and the charset.

    aiohttp takes the charset as a separate argument, and the prometheus
    constant carries it inline.
    """
    params = [p.strip() for p in content_type.split(";") if p.strip()]
    charsets = [p for p in params if p.lower().startswith("charset=")]
    media = "; ".join(p for p in params if p not in charsets)
    charset = charsets[-1].split("=", 1)[1].strip() if charsets else "utf-8"
    return media, charset


class PrometheusMetricsRenderer(MetricsRenderer):
    """Text exposition of the billing registry."""

    def __init__(self, registry: CollectorRegistry) -> None:
        self._registry = registry
        self._content_type, self._charset = split_charset(CONTENT_TYPE_LATEST)

    @property
    def content_type(self) -> str:
        return self._content_type

    @property
    def charset(self) -> str:
        return self._charset

    def generate(self) -> bytes:
        return generate_latest(self._registry)


# ---------------------------------------------------------------------------
# Fake
# ---------------------------------------------------------------------------


@dataclass
class WebhookEventRecord:
    """Single observed webhook outcome."""

    event_type: str
    outcome: str


class FakeBillingMetrics(BillingMetrics):
    """In-memory spy implementing the BillingMetrics protocol."""

    def __init__(self) -> None:
        self.ledger_operations: dict[str, int] = {}
        self.insufficient_balance: int = 0
        self.webhook_events: list[WebhookEventRecord] = []

    def inc_ledger_operation(self, kind: str) -> None:
        self.ledger_operations[kind] = self.ledger_operations.get(kind, 0) + 1

    def inc_insufficient_balance(self) -> None:
        self.insufficient_balance += 1

    def inc_webhook_event(self, event_type: str, outcome: str) -> None:
        self.webhook_events.append(WebhookEventRecord(event_type, outcome))

    # -- test helpers --

    def outcomes(self) -> list[str]:
        """Webhook outcomes in the order they were recorded."""
        return [r.outcome for r in self.webhook_events]

    def clear(self) -> None:
        """Reset all recorded state."""
        self.ledger_operations.clear()
        self.insufficient_balance = 0
        self.webhook_events.clear()


class FakeMetricsRenderer(MetricsRenderer):
    """Renderer stub that counts scrapes."""

    content_type = "text/plain"
    charset = "utf-8"

    def __init__(self) -> None:
        self.generate_calls = 0

    def generate(self) -> bytes:
        self.generate_calls += 1
        return b"# fake metrics\n"
