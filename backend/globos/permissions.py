# Overview: Capability checks for users; the single place that decides who may do what.

from __future__ import annotations

from .models.auth import PERMISSION_FLAGS, ROLE_OWNER, ROLES

AUTHENTICATED = "authenticated"
# Profit, margin and inventory-value figures
VIEW_PROFIT = "ganancias"


def has_capability(user, capability: str) -> bool:
    """
    Decide whether user holds capability.

    Capabilities:
    - "authenticated": any active user
    - a permission flag ("ventas", "productos", ...): owners always, others by flag
    - "role:<name>": the user's role is <name>
    - "ganancias": owners only
    """
    if user is None or not user.activo:
        return False

    if capability == AUTHENTICATED:
        return True

    if capability.startswith("role:"):
        role = capability.split(":", 1)[1]
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        return user.rol == role

    if capability == VIEW_PROFIT:
        return user.rol == ROLE_OWNER

    if capability in PERMISSION_FLAGS:
        if user.rol == ROLE_OWNER:
            return True
        return bool(getattr(user, f"perm_{capability}"))

    raise ValueError(f"Unknown capability: {capability}")


def effective_permissions(user) -> dict[str, bool]:
    return {flag: has_capability(user, flag) for flag in PERMISSION_FLAGS}
