"""Core protocols for dependency injection.

Domain-specific protocols (repositories, ledger, reconciler) live in their
respective domains/ directories. This module keeps cross-cutting
infrastructure protocols only.
"""

from aify.core.protocols.generation import ImageGenerator
from aify.core.protocols.metrics import BillingMetrics, MetricsRenderer
from aify.core.protocols.payment import PaymentGatewayProtocol

__all__ = [
    "BillingMetrics",
    "ImageGenerator",
    "MetricsRenderer",
    "PaymentGatewayProtocol",
]
