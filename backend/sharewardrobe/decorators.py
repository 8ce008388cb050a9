# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, g

from .errors import ForbiddenError, UnauthorizedError
from .models.users import USER_STATUS_ACTIVE
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets on Flask g:
    - g.current_user: the authenticated User
    - g.session_context: the SessionContext

    401 when the token is missing, unknown, expired or the account is deleted.
    403 when the account is suspended or inactive.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise UnauthorizedError("Authentication required")

        context = session_service.validate_session(token)
        if not context:
            raise UnauthorizedError("Invalid or expired token")

        if context.status != USER_STATUS_ACTIVE:
            raise ForbiddenError(f"Account is {context.status}")

        g.current_user = context.user
        g.session_context = context
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require @require_auth first; the user's role must be one of `roles`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                raise UnauthorizedError("Authentication required")
            if g.current_user.role not in roles:
                raise ForbiddenError("Insufficient permissions", details={"required_roles": list(roles)})
            return f(*args, **kwargs)
        return decorated_function
    return decorator
