from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app
from werkzeug.exceptions import Forbidden

from models.user import UserRole
from utils.security import TokenError

# Higher level = more permissions
ROLE_HIERARCHY = {
    UserRole.TEAM_MEMBER.value: 1,
    UserRole.PROJECT_MANAGER.value: 2,
    UserRole.PRODUCT_OWNER.value: 3,
    UserRole.ADMIN.value: 4,
}


def _role_value(role) -> str:
    return getattr(role, "value", role)


def role_level(role) -> int:
    """Unknown roles have level 0."""
    return ROLE_HIERARCHY.get(_role_value(role), 0)


def has_role(user_role, required_role) -> bool:
    """True when user_role is required_role or above it in the hierarchy."""
    return role_level(user_role) >= role_level(required_role)


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth:
                abort(401, description="No token provided")
            scheme, _, token = auth.partition(" ")
            token = token.strip()
            if scheme != "Bearer" or not token:
                abort(401, description="Malformed token")

            auth_service = current_app.extensions["auth_service"]
            try:
                decoded = auth_service.decode_access_token(token)
            except TokenError:
                abort(401, description="Invalid token")

            user = auth_service.users.find_by_id(decoded["id"])
            if not user:
                abort(401, description="User not found")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(*allowed_roles):
    """
    Allow access if the user's role is one of allowed_roles, or ranks at or
    above any of them in ROLE_HIERARCHY. Otherwise 403.
    """
    allowed = [_role_value(r) for r in allowed_roles]

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            user_role = _role_value(g.current_user.role)
            if user_role not in allowed and not any(has_role(user_role, r) for r in allowed):
                exc = Forbidden(description="Access denied. Insufficient permissions.")
                exc.details = {"required_roles": allowed, "user_role": user_role}
                raise exc
            return fn(*args, **kwargs)

        return wrapper

    return decorator
