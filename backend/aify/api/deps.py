"""Dependencies that are used in the API endpoints."""

import uuid
from typing import Optional, Tuple, get_type_hints

from fastapi import Depends, HTTPException, Request
from fastapi_auth0 import Auth0User
from sqlalchemy.ext.asyncio import AsyncSession

from aify.api.auth import auth0
from aify.api.context import ApiContext
from aify.core import container as container_mod
from aify.core.config import settings
from aify.core.container import Container
from aify.core.logging import ContextualLogger, logger
from aify.core.shared_models import AuthMethod
from aify.db.session import get_db
from aify.schemas.account import Principal


def _local_principal() -> Tuple[Principal, AuthMethod, dict]:
    """Principal used for every request when auth is disabled."""
    principal = Principal(
        external_id=settings.LOCAL_PRINCIPAL_ID,
        email=settings.LOCAL_PRINCIPAL_EMAIL,
        display_name="Local User",
    )
    return principal, AuthMethod.SYSTEM, {"disabled_auth": True}


def _auth0_principal(auth0_user: Auth0User) -> Tuple[Principal, AuthMethod, dict]:
    """Map a verified Auth0 token to a principal."""
    if not auth0_user.email:
        logger.error(f"Auth0 token for {auth0_user.id} carries no email claim")
        raise HTTPException(status_code=401, detail="User email not found in Auth0")

    principal = Principal(external_id=auth0_user.id, email=auth0_user.email)
    return principal, AuthMethod.AUTH0, {"auth0_id": auth0_user.id}


async def get_principal(
    auth0_user: Optional[Auth0User] = Depends(auth0.get_user),
) -> Tuple[Principal, AuthMethod, dict]:
    """Resolve the caller's identity.

    Returns:
    -------
        Tuple of (principal, auth_method, auth_metadata).

    Raises:
    ------
        HTTPException: 401 if auth is enabled and no valid token was presented.
    """
    if not settings.AUTH_ENABLED:
        return _local_principal()
    if auth0_user:
        return _auth0_principal(auth0_user)
    raise HTTPException(status_code=401, detail="No valid authentication provided")


# ---------------------------------------------------------------------------
# DI Container
# ---------------------------------------------------------------------------


def get_container() -> Container:
    """Get the DI container. Initialized at startup."""
    c = container_mod.container
    if c is None:
        raise RuntimeError("Container not initialized. Call initialize_container() first.")
    return c


async def get_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    identity: Tuple[Principal, AuthMethod, dict] = Depends(get_principal),
    c: Container = Depends(get_container),
) -> ApiContext:
    """Create unified API context for the request.

    This is the primary dependency for all authenticated endpoints. It
    provisions the caller's account on first contact and applies a due
    free-tier rollover before any handler reads the balance.

    Args:
    ----
        request (Request): The FastAPI request object.
        db (AsyncSession): Database session.
        identity: Principal resolved by get_principal.
        c (Container): The DI container.

    Returns:
    -------
        ApiContext: Unified API context with account and logging.
    """
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    principal, auth_method, auth_metadata = identity

    account = await c.account_provisioner.get_or_create(db, principal)

    entry = await c.credit_ledger.rollover_if_due(db, account.id)
    if entry is not None:
        refreshed = await c.account_repo.get(db, account_id=account.id)
        if refreshed is not None:
            account = refreshed

    base_logger = logger.with_context(
        request_id=request_id,
        account_id=str(account.id),
        auth_method=auth_method.value,
        context_base="api",
    )

    ctx = ApiContext(
        account=account,
        principal=principal,
        logger=base_logger,
        request_id=request_id,
        auth_method=auth_method,
        auth_metadata=auth_metadata,
    )

    # Store context in request state for middleware access
    request.state.api_context = ctx
    return ctx


async def get_logger(
    context: ApiContext = Depends(get_context),
) -> ContextualLogger:
    """Get a logger with the current authentication context."""
    return context.logger


# ---------------------------------------------------------------------------
# Protocol Injection
# ---------------------------------------------------------------------------

# Cache of protocol_type → Container field name, built once at first call.
_INJECT_CACHE: dict[type, str] = {}


def _resolve_field_name(protocol_type: type) -> str:
    """Find which Container field matches the given protocol type.

    Uses get_type_hints() to introspect the Container dataclass.
    Result is cached so the lookup happens at most once per protocol type.
    """
    if not _INJECT_CACHE:
        for name, hint in get_type_hints(Container).items():
            _INJECT_CACHE[hint] = name

    field_name = _INJECT_CACHE.get(protocol_type)
    if field_name is None:
        available = list(_INJECT_CACHE.values())
        raise TypeError(
            f"No binding for {protocol_type.__name__} in Container. Available fields: {available}"
        )
    return field_name


def Inject(protocol_type: type):  # noqa: N802 (uppercase to match FastAPI convention)
    """Resolve a protocol implementation from the DI container.

    Works like ``Depends()`` but looks up the implementation by protocol type
    instead of requiring the caller to know about the Container internals.

    Usage in FastAPI endpoints::

        from aify.api.deps import Inject
        from aify.domains.credits.protocols import CreditLedgerProtocol


        @router.get("/balance")
        async def balance(
            ledger: CreditLedgerProtocol = Inject(CreditLedgerProtocol),
        ):
            ...
    """
    field_name = _resolve_field_name(protocol_type)

    def _resolve(c: Container = Depends(get_container)):
        return getattr(c, field_name)

    return Depends(_resolve)
