from functools import wraps
from flask import g, jsonify, current_app

from models import db
from models.user import User
from security.session import get_session_from_request, token_from_request


def load_current_user():
    sess = get_session_from_request()
    g.user = None
    g.session = None
    g.auth_source = None
    if not sess:
        return
    g.session = sess
    g.user = db.session.get(User, sess.user_id)
    _, g.auth_source = token_from_request()


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper


def waiver_required(fn):
    """Reservations and lessons need the liability waiver on file."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = getattr(g, "user", None)
        if user is None:
            return jsonify(error="Authentication required"), 401
        if current_app.config.get("REQUIRE_WAIVER", True) and not user.has_signed_waiver:
            return jsonify(error="Please sign the waiver before booking", waiver_required=True), 403
        return fn(*args, **kwargs)
    return wrapper
