"""Image generation provider protocol.

The provider is opaque to the core: it receives a rendering request and
either returns an artifact or raises. Callers only distinguish success
from failure.

Usage::

    from aify.core.protocols.generation import ImageGenerator


    async def render(generator: ImageGenerator, request: GenerationRequest) -> ...:
        result = await generator.generate(request)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from aify.schemas.design import GeneratedImage, GenerationRequest


@runtime_checkable
class ImageGenerator(Protocol):
    """Structural protocol for image generation providers."""

    async def generate(self, request: GenerationRequest) -> GeneratedImage:
        """Render a redesigned room.

        Args:
            request: Style, room type, source photo and optional prompt.

        Returns:
            The generated image and provider metadata.

        Raises:
            ExternalServiceError: The provider failed or timed out.
        """
        ...

    async def close(self) -> None:
        """Release provider connections at shutdown."""
        ...
