"""API endpoints for room redesign generation."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from aify import schemas
from aify.api import deps
from aify.api.context import ApiContext
from aify.api.deps import Inject
from aify.domains.designs.protocols import DesignGenerationServiceProtocol

router = APIRouter()


@router.post(
    "/generate",
    response_model=schemas.DesignGenerateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {"description": "Not enough credits"},
        502: {"description": "Image provider failed; the credit was refunded"},
        503: {"description": "Account busy, retry after the Retry-After delay"},
    },
)
async def generate_design(
    request: schemas.DesignGenerateRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    designs: DesignGenerationServiceProtocol = Inject(DesignGenerationServiceProtocol),
) -> schemas.DesignGenerateResponse:
    """Generate a redesign of the uploaded room photo.

    Free-tier accounts are charged one credit before the provider is called;
    the credit is refunded if the provider fails. Paid tiers are not charged.

    Args:
        request: Room photo, style and room type
        db: Database session
        ctx: Authentication context
        designs: Design generation service

    Returns:
        The generated image and the remaining balance
    """
    ctx.logger.info(f"Generating {request.style} {request.room_type} design")
    return await designs.generate(db, ctx.account, request)
