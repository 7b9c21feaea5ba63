"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError


class AifyException(Exception):
    """Base for errors the API layer maps to a response status."""


class PermissionException(AifyException):
    """The caller may not touch this account or resource."""

    def __init__(self, message: Optional[str] = "Not allowed to access this account"):
        self.message = message
        super().__init__(self.message)


class NotFoundException(AifyException):
    """A referenced account or record does not exist."""

    def __init__(self, message: Optional[str] = "Object not found"):
        self.message = message
        super().__init__(self.message)


class PaymentRequiredException(AifyException):
    """Exception raised when an action needs credits or a paid plan the caller lacks."""

    def __init__(self, message: Optional[str] = "Payment required"):
        """Create a new PaymentRequiredException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ConcurrencyException(AifyException):
    """Exception raised when an operation lost a race for a shared resource.

    The operation did not apply and can be retried from scratch.
    """

    def __init__(
        self,
        message: Optional[str] = "Resource is busy, please retry",
        retry_after: float = 1.0,
    ):
        """Create a new ConcurrencyException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            retry_after (float): Suggested delay before retrying, in seconds.

        """
        self.message = message
        self.retry_after = retry_after
        super().__init__(self.message)


class ExternalServiceError(Exception):
    """Exception raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The error message. Has default message.

        """
        self.service_name = service_name
        self.message = message
        super().__init__(f"{service_name}: {message}")


class InvalidStateError(Exception):
    """Exception raised when an object is in an invalid state.

    Used when a request is valid on its own but conflicts with the current
    state of the account or subscription it targets.
    """

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_messages.append({field: message})

    return {"errors": error_messages}
