"""Unit tests for the image generation adapters.

The OpenAI SDK client is mocked; no network calls.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from aify.adapters.generation.fake import FAKE_IMAGE_B64, FakeImageGenerator
from aify.adapters.generation.openai import OpenAIImageGenerator, build_prompt
from aify.core.exceptions import ExternalServiceError
from aify.schemas.design import GenerationRequest

_API_KEY = "sk-test-key"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request(**overrides) -> GenerationRequest:
    defaults = dict(
        generation_id="gen123",
        original_image="aGVsbG8=",
        style="Scandinavian",
        room_type="Living Room",
    )
    defaults.update(overrides)
    return GenerationRequest(**defaults)


def _make_response(b64: str | None = "aW1hZ2U=") -> SimpleNamespace:
    data = [SimpleNamespace(b64_json=b64)] if b64 is not None else []
    return SimpleNamespace(data=data)


def _build_generator(client_mock: AsyncMock | None = None, **kwargs) -> OpenAIImageGenerator:
    with patch("aify.adapters.generation.openai.AsyncOpenAI") as mock_openai:
        mock_openai.return_value = client_mock or AsyncMock()
        return OpenAIImageGenerator(api_key=_API_KEY, **kwargs)


def _make_status_error_500():
    import openai

    return openai.APIStatusError(
        message="Internal server error",
        response=MagicMock(status_code=500, headers={}),
        body=None,
    )


# ---------------------------------------------------------------------------
# build_prompt
# ---------------------------------------------------------------------------


class TestBuildPrompt:
    def test_lowercases_room_type(self):
        prompt = build_prompt("Industrial", "Home Office")
        assert prompt.startswith(
            "Professional interior design photograph of a home office in Industrial style. "
        )
        assert "Additional requirements" not in prompt

    def test_includes_stripped_custom_prompt(self):
        prompt = build_prompt("Boho", "Bedroom", "  lots of plants  ")
        assert "Additional requirements: lots of plants. " in prompt

    def test_blank_custom_prompt_ignored(self):
        assert "Additional requirements" not in build_prompt("Boho", "Bedroom", "   ")

    def test_ends_with_photography_guidance(self):
        assert build_prompt("Boho", "Bedroom").endswith("magazine-quality interior design.")


# ---------------------------------------------------------------------------
# OpenAIImageGenerator
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestOpenAIImageGenerator:
    async def test_returns_generated_image(self):
        client = AsyncMock()
        client.images.generate.return_value = _make_response("aW1hZ2U=")
        generator = _build_generator(client)

        result = await generator.generate(_request())

        assert result.image_b64 == "aW1hZ2U="
        assert result.model == "dall-e-3"
        assert "living room in Scandinavian style" in result.prompt
        kwargs = client.images.generate.await_args.kwargs
        assert kwargs["n"] == 1
        assert kwargs["quality"] == "hd"
        assert kwargs["response_format"] == "b64_json"

    async def test_standard_quality_when_hd_disabled(self):
        client = AsyncMock()
        client.images.generate.return_value = _make_response()
        generator = _build_generator(client)

        await generator.generate(_request(hd=False))

        assert client.images.generate.await_args.kwargs["quality"] == "standard"

    async def test_empty_response_raises(self):
        client = AsyncMock()
        client.images.generate.return_value = _make_response(None)
        generator = _build_generator(client)

        with pytest.raises(ExternalServiceError, match="No image returned"):
            await generator.generate(_request())

    async def test_status_error_is_wrapped(self):
        client = AsyncMock()
        client.images.generate.side_effect = _make_status_error_500()
        generator = _build_generator(client)

        with pytest.raises(ExternalServiceError) as exc_info:
            await generator.generate(_request())
        assert exc_info.value.service_name == "OpenAI"
        assert "status 500" in exc_info.value.message

    async def test_connection_error_is_wrapped(self):
        import openai

        client = AsyncMock()
        client.images.generate.side_effect = openai.APIConnectionError(request=MagicMock())
        generator = _build_generator(client)

        with pytest.raises(ExternalServiceError, match="OpenAI"):
            await generator.generate(_request())

    async def test_timeout_is_wrapped(self):
        async def _slow(**kwargs):
            await asyncio.sleep(1)

        client = AsyncMock()
        client.images.generate.side_effect = _slow
        generator = _build_generator(client, timeout=0.01)

        with pytest.raises(ExternalServiceError, match="timed out"):
            await generator.generate(_request())

    async def test_close_closes_client(self):
        client = AsyncMock()
        generator = _build_generator(client)

        await generator.close()

        client.close.assert_awaited_once()


# ---------------------------------------------------------------------------
# FakeImageGenerator
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestFakeImageGenerator:
    async def test_records_requests(self):
        fake = FakeImageGenerator()

        result = await fake.generate(_request())

        assert result.image_b64 == FAKE_IMAGE_B64
        assert [r.generation_id for r in fake.calls] == ["gen123"]

    async def test_should_raise(self):
        fake = FakeImageGenerator(should_raise=ExternalServiceError("OpenAI", "down"))

        with pytest.raises(ExternalServiceError):
            await fake.generate(_request())
        assert len(fake.calls) == 1
