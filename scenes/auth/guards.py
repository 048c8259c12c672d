"""Session-based authentication guard.

Credential checks happen elsewhere; a request is authenticated once its
session carries a ``user_id``.
"""

from litestar.connection import ASGIConnection
from litestar.exceptions import NotAuthorizedException
from litestar.handlers.base import BaseRouteHandler

SESSION_USER_ID = "user_id"


def is_authenticated(connection: ASGIConnection) -> bool:
    """True when the connection's session identifies a user."""
    session = connection.scope.get("session") or {}
    return bool(session.get(SESSION_USER_ID))


async def auth_guard(connection: ASGIConnection, _: BaseRouteHandler) -> None:
    """Reject requests without a logged-in user."""
    if not is_authenticated(connection):
        raise NotAuthorizedException("Authentication required")
