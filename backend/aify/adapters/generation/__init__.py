"""Image generation provider adapters."""

from aify.adapters.generation.fake import FakeImageGenerator
from aify.adapters.generation.openai import OpenAIImageGenerator, build_prompt

__all__ = ["FakeImageGenerator", "OpenAIImageGenerator", "build_prompt"]
