"""OpenAI image generation provider.

Renders a redesigned room with the Images API. The provider is the slow
part of a generation request, so every call is bounded by a timeout and
every failure surfaces as ExternalServiceError for the caller to refund.
"""

import asyncio
import time
from typing import Optional

from openai import AsyncOpenAI

from aify.core.exceptions import ExternalServiceError
from aify.core.logging import logger
from aify.schemas.design import GeneratedImage, GenerationRequest

_PROVIDER = "OpenAI"

_STYLE_SUFFIX = (
    "High-resolution, photorealistic, professional architectural photography, "
    "natural lighting, wide-angle view from eye level, beautifully styled and "
    "decorated, magazine-quality interior design."
)


def build_prompt(style: str, room_type: str, custom_prompt: Optional[str] = None) -> str:
    """Compose the rendering prompt for a room and style."""
    prompt = (
        f"Professional interior design photograph of a {room_type.lower()} "
        f"in {style} style. "
    )
    if custom_prompt and custom_prompt.strip():
        prompt += f"Additional requirements: {custom_prompt.strip()}. "
    return prompt + _STYLE_SUFFIX


class OpenAIImageGenerator:
    """ImageGenerator backed by the OpenAI Images API."""

    def __init__(
        self,
        api_key: str,
        model: str = "dall-e-3",
        size: str = "1024x1024",
        quality: str = "hd",
        timeout: float = 120.0,
        max_retries: int = 2,
    ) -> None:
        """Initialize the OpenAI client.

        Args:
            api_key: OpenAI API key.
            model: Image model name.
            size: Output resolution.
            quality: ``hd`` or ``standard``; requests with ``hd=False`` use standard.
            timeout: Upper bound on one generation, in seconds.
            max_retries: Client-level retries for transient transport errors.
        """
        self._model = model
        self._size = size
        self._quality = quality
        self._timeout = timeout
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)

    async def generate(self, request: GenerationRequest) -> GeneratedImage:
        """Render the room described by ``request``.

        Raises:
            ExternalServiceError: On any provider error, timeout or empty response.
        """
        import openai

        prompt = build_prompt(request.style, request.room_type, request.custom_prompt)
        log = logger.with_context(generation_id=request.generation_id)
        started = time.monotonic()

        try:
            response = await asyncio.wait_for(
                self._client.images.generate(
                    model=self._model,
                    prompt=prompt,
                    n=1,
                    size=self._size,
                    quality=self._quality if request.hd else "standard",
                    response_format="b64_json",
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            log.warning(f"Image generation timed out after {self._timeout}s")
            raise ExternalServiceError(
                _PROVIDER, f"Image generation timed out after {self._timeout}s"
            ) from e
        except openai.APIStatusError as e:
            log.error(f"Image generation failed (status {e.status_code}): {e}")
            raise ExternalServiceError(
                _PROVIDER, f"Image generation failed (status {e.status_code})"
            ) from e
        except openai.OpenAIError as e:
            log.error(f"Image generation failed: {e}")
            raise ExternalServiceError(_PROVIDER, f"Image generation failed: {e}") from e

        data = getattr(response, "data", None) or []
        image_b64 = getattr(data[0], "b64_json", None) if data else None
        if not image_b64:
            raise ExternalServiceError(_PROVIDER, "No image returned from provider")

        elapsed = time.monotonic() - started
        log.info(f"Generated {request.style} {request.room_type} image in {elapsed:.1f}s")
        return GeneratedImage(
            image_b64=image_b64,
            prompt=prompt,
            model=self._model,
            generation_seconds=elapsed,
        )

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        await self._client.close()
