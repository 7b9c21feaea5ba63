"""The API module that contains the endpoints for the calling user."""

from fastapi import APIRouter, Depends

from aify import schemas
from aify.api import deps
from aify.api.context import ApiContext

router = APIRouter()


@router.get("/me", response_model=schemas.Account)
async def read_user_me(
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.Account:
    """Get the caller's account.

    The account is provisioned with the free-tier grant on first contact.

    Args:
    ----
        ctx (ApiContext): The current request context.

    Returns:
    -------
        schemas.Account: The caller's account with its balance.

    """
    return schemas.Account.from_model(ctx.account)
