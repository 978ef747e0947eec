# Overview: Request decorators resolving the acting user for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import UnauthenticatedError, ForbiddenError
from .services.registry import get_services


def _bearer_token():
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_actor(f):
    """
    Require an authenticated marketplace user.

    Resolves the bearer token through the gateway and sets g.current_actor
    (id, email_verified, scopes). The actor id always comes from the session,
    never from the request body.

    Returns 401 if the header is missing or the gateway knows no such session.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify(UnauthenticatedError("Authentication required").to_dict()), 401

        try:
            actor = get_services().gateway.resolve_current_actor(token)
        except UnauthenticatedError as e:
            return jsonify(e.to_dict()), e.status_code

        g.current_actor = actor
        return f(*args, **kwargs)

    return decorated_function


def require_any_scope(*scopes):
    """
    Require any of the specified scopes (exact, case-sensitive match).

    Must be stacked under @require_actor.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = getattr(g, "current_actor", None)
            if actor is None:
                return jsonify(UnauthenticatedError("Authentication required").to_dict()), 401

            if not actor.has_any_scope(*scopes):
                current_app.logger.warning(
                    "Scope check failed for user %s on %s %s (needs any of: %s)",
                    actor.id, request.method, request.path, ", ".join(scopes),
                )
                error = ForbiddenError(f"Requires any of: {', '.join(scopes)}")
                body = error.to_dict()
                body["required_scopes"] = list(scopes)
                return jsonify(body), error.status_code

            return f(*args, **kwargs)

        return decorated_function
    return decorator
