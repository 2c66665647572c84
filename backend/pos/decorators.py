# Overview: Request decorators that establish the caller's tenant scope and check route policy.

from functools import wraps
from flask import request, g

from .errors import Forbidden, Unauthenticated
from .models import WriteContext
from .services import auth_service
from .services.policy_service import get_enforcer
from .services.tenant_service import resolve_owner_id


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'owner_id')


def require_auth(f):
    """
    Require a valid bearer token and establish tenant context.

    Sets the following Flask g attributes:
    - g.current_user: the authenticated User
    - g.owner_id: the owner whose data the user acts on
    - g.write_ctx: WriteContext attributing writes to the user

    SECURITY: Raises Unauthenticated when the Authorization header is missing,
    and InvalidToken when the token is expired, forged or names an inactive user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            raise Unauthenticated()

        token = auth_header.split(" ", 1)[1].strip()
        user = auth_service.user_for_token(token)

        g.current_user = user
        g.owner_id = resolve_owner_id(user)
        g.write_ctx = WriteContext(actor_id=user.id)

        return f(*args, **kwargs)

    return decorated_function


def require_policy(resource: str, action: str):
    """Require the policy engine to allow `action` on `resource` for the current user."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth ran first
            if not _is_authenticated():
                raise Unauthenticated()

            user = g.current_user
            if not get_enforcer().enforce(user.role, user.uuid, resource, action):
                raise Forbidden(payload={"resource": resource, "action": action})

            return f(*args, **kwargs)

        return decorated_function
    return decorator
