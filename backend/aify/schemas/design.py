"""Design generation schema module."""

from typing import Optional

from pydantic import BaseModel, Field


class DesignGenerateRequest(BaseModel):
    """Body of ``POST /designs/generate``."""

    original_image: str = Field(..., min_length=1, description="Base64 encoded room photo")
    style: str = Field(..., min_length=1, max_length=100)
    room_type: str = Field(..., min_length=1, max_length=100)
    custom_prompt: Optional[str] = Field(None, max_length=1000)


class GenerationRequest(BaseModel):
    """Request handed to the image generation provider."""

    generation_id: str
    original_image: str
    style: str
    room_type: str
    custom_prompt: Optional[str] = None
    hd: bool = True


class GeneratedImage(BaseModel):
    """Provider output."""

    image_b64: str
    prompt: str
    model: str
    generation_seconds: float


class DesignGenerateResponse(BaseModel):
    """Result of a successful generation."""

    generation_id: str
    image_b64: str
    style: str
    room_type: str
    has_watermark: bool
    credits_remaining: Optional[int] = None
