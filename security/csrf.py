import secrets
from flask import request, jsonify, current_app, g

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

UNSAFE_METHODS = ("POST", "PUT", "PATCH", "DELETE")

# login/register mint the session, Stripe signs its own webhooks
CSRF_EXEMPT_PATHS = {
    "/auth/login",
    "/auth/register",
    "/webhooks/stripe",
    "/health",
}


def issue_csrf_token(resp):
    """Sets the double-submit cookie next to a fresh web session."""
    resp.set_cookie(
        CSRF_COOKIE,
        secrets.token_urlsafe(32),
        httponly=False,  # the web client echoes it back in X-CSRF-Token
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp


def csrf_failure():
    """403 response when the cookie and header tokens differ, else None."""
    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or not secrets.compare_digest(cookie_token, header_token):
        return jsonify(error="CSRF validation failed"), 403
    return None


def protect_request():
    """
    before_request hook. Browsers attach the session cookie on their own,
    Bearer tokens from the mobile app are never sent implicitly, so only
    cookie-authenticated writes are checked.
    """
    if request.method not in UNSAFE_METHODS or request.path in CSRF_EXEMPT_PATHS:
        return None
    if getattr(g, "auth_source", None) != "cookie":
        return None
    return csrf_failure()
