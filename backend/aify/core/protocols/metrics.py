"""Metrics protocols for dependency injection.

- BillingMetrics: ledger and webhook instrumentation
- MetricsRenderer: metrics serialization for scraping
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

# ---------------------------------------------------------------------------
# BillingMetrics
# ---------------------------------------------------------------------------


@runtime_checkable
class BillingMetrics(Protocol):
    """Protocol for credit ledger and billing webhook metrics."""

    def inc_ledger_operation(self, kind: str) -> None:
        """Count a committed ledger entry of the given kind."""
        ...

    def inc_insufficient_balance(self) -> None:
        """Count a debit rejected for insufficient balance."""
        ...

    def inc_webhook_event(self, event_type: str, outcome: str) -> None:
        """Count a processed billing webhook event.

        Args:
            event_type: Provider event type (``customer.subscription.updated``, ...).
            outcome: ``applied``, ``ignored``, ``stale``, ``unresolved``, ``rejected``
                or ``failed``.
        """
        ...


# ---------------------------------------------------------------------------
# MetricsRenderer
# ---------------------------------------------------------------------------


@runtime_checkable
class MetricsRenderer(Protocol):
    """Serializes collected metrics for a scraper."""

    @property
    def content_type(self) -> str:
        """Content-Type header value for the rendered payload."""
        ...

    @property
    def charset(self) -> str:
        """Charset of the rendered payload."""
        ...

    def generate(self) -> bytes:
        """Render all metrics."""
        ...
