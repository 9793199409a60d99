# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, g

from .errors import error_response
from .permissions import AUTHENTICATED, has_capability
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets g.current_user (User) and g.session_token (SessionToken row).

    Returns 401 if:
    - No Authorization header or not a Bearer credential
    - Token unknown, revoked or expired
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return error_response("Token requerido", "Se requiere un token de acceso", 401)

        context = session_service.validate_session(token)
        if not context or not has_capability(context.user, AUTHENTICATED):
            return error_response("Token inválido", "El token no es válido o ha expirado", 401)

        g.current_user = context.user
        g.session_token = context.session
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """Attach the user when a valid token is sent; never rejects the request."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_user = None
        g.session_token = None
        token = _bearer_token()
        if token:
            context = session_service.validate_session(token)
            if context:
                g.current_user = context.user
                g.session_token = context.session
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission: str):
    """Require one permission flag; owners always pass. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return error_response("Token requerido", "Se requiere un token de acceso", 401)

            if not has_capability(g.current_user, permission):
                return error_response("Acceso denegado", f"No tienes permiso para: {permission}", 403)

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_role(*roles: str):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return error_response("Token requerido", "Se requiere un token de acceso", 401)

            if not any(has_capability(g.current_user, f"role:{role}") for role in roles):
                return error_response("Acceso denegado", f"Rol requerido: {', '.join(roles)}", 403)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
