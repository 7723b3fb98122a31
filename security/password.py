import bcrypt
from flask import current_app


def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in the database
        return False


def password_problems(pw) -> list:
    """Human readable reasons the password is rejected; empty when acceptable."""
    if not isinstance(pw, str):
        return ["Password must be a string"]

    min_len = current_app.config.get("PASSWORD_MIN_LEN", 8)
    problems = []
    if len(pw) < min_len:
        problems.append(f"Password must be at least {min_len} characters")
    if len(pw) > 128:
        problems.append("Password must be at most 128 characters")
    if not any(ch.isdigit() for ch in pw) or not any(ch.isalpha() for ch in pw):
        problems.append("Password must include letters and numbers")
    return problems
