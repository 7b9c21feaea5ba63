"""Auth0 integration.

``auth0.get_user`` is used as a FastAPI dependency. The real ``Auth0`` client
fetches the tenant's JWKS when constructed, so it is only built when
authentication is enabled; otherwise a stand-in that never yields a user is
exported and requests run as the local principal.
"""

from typing import Optional

from fastapi_auth0 import Auth0, Auth0User

from aify.core.config import settings
from aify.core.logging import logger


class _DisabledAuth0:
    """Stand-in for ``Auth0`` when AUTH_ENABLED is false."""

    async def get_user(self) -> Optional[Auth0User]:
        return None


def _build_auth0():
    if not settings.AUTH_ENABLED:
        logger.info("Authentication disabled, requests run as the local principal")
        return _DisabledAuth0()

    if not settings.AUTH0_DOMAIN or not settings.AUTH0_AUDIENCE:
        raise ValueError("AUTH_ENABLED requires AUTH0_DOMAIN and AUTH0_AUDIENCE")

    return Auth0(
        domain=settings.AUTH0_DOMAIN,
        api_audience=settings.AUTH0_AUDIENCE,
        auto_error=False,
    )


auth0 = _build_auth0()
