"""HTTP API request context.

Only the API layer creates these via deps.get_context().
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from aify.core.logging import ContextualLogger
from aify.core.shared_models import AuthMethod
from aify.models import Account
from aify.schemas.account import Principal


@dataclass
class ApiContext:
    """Full HTTP request context.

    Carries the caller's provisioned account (already rolled over if its
    free-tier period had elapsed), the identity it was resolved from and a
    logger bound to both.
    """

    account: Account
    principal: Principal
    logger: ContextualLogger = field(repr=False)

    # Request metadata
    request_id: str = ""

    # Authentication context
    auth_method: AuthMethod = AuthMethod.SYSTEM
    auth_metadata: Optional[Dict[str, Any]] = None

    @property
    def is_user_auth(self) -> bool:
        """Whether this is user authentication (Auth0)."""
        return self.auth_method == AuthMethod.AUTH0

    def __str__(self) -> str:
        """String representation for logging."""
        return (
            f"ApiContext(request_id={self.request_id[:8]}..., "
            f"method={self.auth_method.value}, account={self.account.id})"
        )
