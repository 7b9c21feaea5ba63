"""Fake image generator for testing.

Records every request and returns a fixed image. Set ``should_raise`` to
simulate a provider failure.
"""

from typing import Optional

from aify.adapters.generation.openai import build_prompt
from aify.schemas.design import GeneratedImage, GenerationRequest

FAKE_IMAGE_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="


class FakeImageGenerator:
    """In-memory ImageGenerator."""

    def __init__(self, should_raise: Optional[Exception] = None) -> None:
        """Initialize with optional error injection."""
        self.should_raise = should_raise
        self.calls: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> GeneratedImage:
        """Record the request and return the fixed image, or raise."""
        self.calls.append(request)
        if self.should_raise is not None:
            raise self.should_raise
        return GeneratedImage(
            image_b64=FAKE_IMAGE_B64,
            prompt=build_prompt(request.style, request.room_type, request.custom_prompt),
            model="fake-image-model",
            generation_seconds=0.0,
        )

    async def close(self) -> None:
        """Nothing to release."""
