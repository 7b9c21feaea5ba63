"""Designs domain exceptions."""

from aify.core.exceptions import ExternalServiceError


class GenerationFailedError(ExternalServiceError):
    """Raised when the image provider failed after the credit was debited.

    ``refunded`` tells whether the compensating credit was written.
    """

    def __init__(self, generation_id: str, refunded: bool = True):
        """Initialize with the failed generation and refund outcome."""
        self.generation_id = generation_id
        self.refunded = refunded
        if refunded:
            message = "Failed to generate design. Your credit has been refunded."
        else:
            message = "Failed to generate design. Your refund is being processed."
        super().__init__(service_name="ImageGeneration", message=message)
