from functools import wraps
from flask import g, jsonify

PLAYER = "PLAYER"
COACH = "COACH"
ADMIN = "ADMIN"


def has_role(role_name: str, user=None) -> bool:
    user = user or getattr(g, "user", None)
    if not user:
        return False
    return any(r.name == role_name for r in user.roles)


def is_staff(user=None) -> bool:
    """Admins and coaches book without paying (front desk flow)."""
    return has_role(ADMIN, user) or has_role(COACH, user)


def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    ADMIN passes every check.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            user_roles = {r.name for r in user.roles}
            if ADMIN not in user_roles and not user_roles.intersection(role_names):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
