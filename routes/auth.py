from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.password import hash_password, verify_password, password_problems
from security.session import create_session, revoke_session, revoke_all_sessions, token_from_request
from security.bruteforce import is_locked, register_failure, reset_attempts
from security.rate_limit import check_and_increment_login_rate
from security.csrf import issue_csrf_token
from utils.audit import log_event
from utils.auth_context import login_required
from utils.memberships import get_active_membership
from booking.pricing import display_name

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

PROFILE_FIELDS = {"first_name": 80, "last_name": 80, "phone_number": 30}


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _profile(user: User) -> dict:
    membership = get_active_membership(user.id)
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone_number": user.phone_number,
        "roles": user.role_names(),
        "is_coach": user.is_coach,
        "has_signed_waiver": user.has_signed_waiver,
        "active_membership": {
            **membership.to_dict(),
            "display_name": display_name(membership.membership_type.name),
        } if membership else None,
    }


def _apply_profile_fields(user: User, data: dict):
    """Returns an error message or None."""
    for field, max_len in PROFILE_FIELDS.items():
        value = data.get(field)
        if value is None:
            continue
        if not isinstance(value, str) or len(value.strip()) > max_len:
            return f"Invalid {field}"
        setattr(user, field, value.strip() or None)
    return None


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    problems = password_problems(password)
    if problems:
        return jsonify(error="Password does not meet policy", details=problems), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(email=email, password_hash=hash_password(password))
    error = _apply_profile_fields(user, data)
    if error:
        return jsonify(error=error), 400

    db.session.add(user)
    db.session.flush()

    player_role = Role.query.filter_by(name="PLAYER").first()
    if player_role:
        user.roles.append(player_role)

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id)
    return jsonify(message="Registered successfully", id=user.id), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    client = "mobile" if data.get("client") == "mobile" else "web"

    allowed, retry_after = check_and_increment_login_rate()
    if not allowed:
        log_event("LOGIN_RATE_LIMIT", metadata={"email": email, "retry_after": retry_after})
        return jsonify(error="Too many login requests. Slow down.", retry_after_seconds=retry_after), 429

    locked, seconds_left = is_locked(email)
    if locked:
        log_event("LOGIN_LOCKED", metadata={"email": email, "seconds_left": seconds_left})
        return jsonify(error="Account temporarily locked. Try again later.", retry_after_seconds=seconds_left), 429

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        fail_count, locked_now = register_failure(email)
        log_event(
            "LOGIN_FAIL",
            user_id=user.id if user else None,
            metadata={"email": email, "fail_count": fail_count, "locked_now": locked_now},
        )
        if locked_now:
            return jsonify(
                error="Too many failed attempts. Account locked.",
                lockout_minutes=current_app.config.get("LOCKOUT_MINUTES", 5),
            ), 429
        return jsonify(error="Invalid credentials"), 401

    reset_attempts(email)
    raw_token = create_session(user.id, client=client)
    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"client": client})

    if client == "mobile":
        # the app keeps the token in secure storage and sends it as Bearer
        return jsonify(message="Login OK", access_token=raw_token, user=_profile(user)), 200

    resp = jsonify(message="Login OK", user=_profile(user))
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "pickleclub_session"),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS"),
        path="/",
    )
    return issue_csrf_token(resp), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_profile(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    raw_token, _ = token_from_request()
    revoke_session(raw_token)
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "pickleclub_session"), path="/")
    return resp, 200


@auth_bp.post("/logout_all")
@login_required
def logout_all():
    count = revoke_all_sessions(g.user.id)
    log_event("LOGOUT_ALL", user_id=g.user.id, metadata={"revoked_sessions": count})

    resp = jsonify(message="Logged out everywhere", revoked_sessions=count)
    resp.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "pickleclub_session"), path="/")
    return resp, 200


@auth_bp.post("/change_password")
@login_required
def change_password():
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password") or ""

    if not verify_password(current_password, g.user.password_hash):
        return jsonify(error="Invalid current password"), 401

    problems = password_problems(new_password)
    if problems:
        return jsonify(error="Password does not meet policy", details=problems), 400

    g.user.password_hash = hash_password(new_password)
    db.session.commit()
    log_event("PASSWORD_CHANGED", user_id=g.user.id)
    return jsonify(message="Password updated"), 200


@auth_bp.get("/profile")
@login_required
def get_profile():
    return jsonify(_profile(g.user)), 200


@auth_bp.put("/profile")
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    error = _apply_profile_fields(g.user, data)
    if error:
        db.session.rollback()
        return jsonify(error=error), 400

    db.session.commit()
    log_event("PROFILE_UPDATE", user_id=g.user.id)
    return jsonify(message="Profile updated", profile=_profile(g.user)), 200


@auth_bp.post("/waiver")
@login_required
def sign_waiver():
    data = request.get_json(silent=True) or {}
    if data.get("accepted") is not True:
        return jsonify(error="The waiver must be accepted"), 400

    if not g.user.has_signed_waiver:
        g.user.has_signed_waiver = True
        g.user.waiver_signed_at = datetime.utcnow()
        db.session.commit()
        log_event("WAIVER_SIGNED", user_id=g.user.id)
    return jsonify(message="Waiver signed", has_signed_waiver=True), 200
