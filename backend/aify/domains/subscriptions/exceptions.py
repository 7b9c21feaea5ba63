"""Subscriptions domain exceptions."""

import functools

from aify.core.exceptions import ExternalServiceError, InvalidStateError


class UnverifiedEventError(ValueError):
    """Raised when a billing webhook fails signature verification.

    Subclasses ValueError so the webhook endpoint maps it to 400 alongside
    malformed payloads. Nothing was applied.
    """

    def __init__(self, message: str = "Webhook signature verification failed"):
        """Initialize with default message."""
        self.message = message
        super().__init__(message)


class SubscriptionStateError(InvalidStateError):
    """Raised when a subscription operation is invalid for the account's current state."""

    def __init__(self, message: str = "Invalid subscription state"):
        """Initialize with default message."""
        super().__init__(message)


class BillingNotAvailableError(InvalidStateError):
    """Raised by NullPaymentGateway when billing is not enabled."""

    def __init__(self, message: str = "Billing is not enabled for this instance"):
        """Initialize with default message."""
        super().__init__(message)


class PaymentGatewayError(ExternalServiceError):
    """Wraps ExternalServiceError from the payment adapter at the domain boundary."""

    def __init__(self, message: str = "Payment gateway error"):
        """Initialize with default message."""
        super().__init__(service_name="PaymentGateway", message=message)


def wrap_gateway_errors(fn):
    """Decorator: catch ExternalServiceError from the gateway, re-raise as PaymentGatewayError."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except PaymentGatewayError:
            raise
        except ExternalServiceError as e:
            raise PaymentGatewayError(message=e.message) from e

    return wrapper
